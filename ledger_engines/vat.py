"""
Module: ledger_engines.vat
Responsibility:
    Back VAT out of a tax-inclusive amount at a fixed statutory rate.
    Used for consolidated summaries, whose header and child delivery-note
    lines are captured as gross totals.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - ``subtotal + vat_amount == total`` exactly; VAT is derived as the
      difference so rounding never leaks a cent.

Failure modes:
    - ValueError for a negative rate.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ledger_kernel.db.types import CURRENCY_DECIMAL_PLACES, round_money


@dataclass(frozen=True)
class VatBreakdown:
    """A gross amount split into net subtotal and VAT."""

    subtotal: Decimal
    vat_amount: Decimal
    total: Decimal


def back_out_vat(
    total: Decimal,
    vat_rate: Decimal,
    places: int = CURRENCY_DECIMAL_PLACES,
) -> VatBreakdown:
    """
    Decompose a tax-inclusive ``total``.

    ``subtotal = round(total / (1 + vat_rate))`` and
    ``vat_amount = total - subtotal``.
    """
    if vat_rate < 0:
        raise ValueError(f"vat_rate cannot be negative, got {vat_rate}")
    gross = round_money(total, places)
    subtotal = round_money(gross / (Decimal("1") + vat_rate), places)
    return VatBreakdown(subtotal=subtotal, vat_amount=gross - subtotal, total=gross)
