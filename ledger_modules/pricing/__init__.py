"""
Pricing Module (``ledger_modules.pricing``).

Responsibility
--------------
Per-business, per-supplier item catalog, append-only price history and
price-change alerts.

Architecture position
---------------------
**Modules layer** -- ``PriceHistoryTracker`` writes through a
caller-owned session; threshold logic lives in
``ledger_engines.price_drift``.
"""

from ledger_modules.pricing.models import (
    PriceAlert,
    PriceAlertStatus,
    PriceComparison,
    PriceTrackingResult,
    SupplierItem,
    SupplierItemPrice,
    TrackedLine,
    TrackedLineOutcome,
)
from ledger_modules.pricing.service import PriceHistoryTracker
from ledger_modules.pricing.workflows import PRICE_ALERT_WORKFLOW

__all__ = [
    "PriceAlert",
    "PriceAlertStatus",
    "PriceComparison",
    "PriceTrackingResult",
    "SupplierItem",
    "SupplierItemPrice",
    "TrackedLine",
    "TrackedLineOutcome",
    "PriceHistoryTracker",
    "PRICE_ALERT_WORKFLOW",
]
