"""
Intake configuration schema.

The YAML file is parsed by ``ledger_config.loader`` into these frozen
types.  Everything here is data; no component branches on where a value
came from.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

# Payment method tags accepted on payment splits.
PAYMENT_METHODS: tuple[str, ...] = (
    "bank_transfer",
    "cash",
    "check",
    "bit",
    "paybox",
    "credit_card",
    "credit_company",
    "standing_order",
    "other",
)


@dataclass(frozen=True)
class IntakeConfig:
    """Runtime settings for document approval and price tracking.

    Contract: frozen; validated at construction.
    Guarantees:
        - ``0 <= vat_rate < 1``.
        - ``price_alert_tolerance >= 0`` and ``price_alert_min_change_pct >= 0``.
        - ``claim_ttl_minutes > 0``.
        - ``default_payment_method`` is one of ``PAYMENT_METHODS``.
    """

    vat_rate: Decimal = Decimal("0.17")
    price_alert_tolerance: Decimal = Decimal("0.01")
    price_alert_min_change_pct: Decimal = Decimal("0")
    claim_ttl_minutes: int = 15
    default_payment_method: str = "bank_transfer"
    currency_places: int = 2
    config_id: str = "default"
    checksum: str = field(default="", compare=False)

    def __post_init__(self) -> None:
        if not (Decimal("0") <= self.vat_rate < Decimal("1")):
            raise ValueError(f"vat_rate must be in [0, 1), got {self.vat_rate}")
        if self.price_alert_tolerance < 0:
            raise ValueError("price_alert_tolerance cannot be negative")
        if self.price_alert_min_change_pct < 0:
            raise ValueError("price_alert_min_change_pct cannot be negative")
        if self.claim_ttl_minutes <= 0:
            raise ValueError("claim_ttl_minutes must be positive")
        if self.default_payment_method not in PAYMENT_METHODS:
            raise ValueError(
                f"Unknown default_payment_method: {self.default_payment_method!r}"
            )
        if not (0 <= self.currency_places <= 4):
            raise ValueError("currency_places must be between 0 and 4")
