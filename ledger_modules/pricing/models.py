"""
Pricing Domain Models (``ledger_modules.pricing.models``).

Responsibility
--------------
Frozen value objects for the supplier item catalog, its append-only price
history, price alerts, and the inputs/outputs of a price tracking run.

Architecture position
---------------------
**Modules layer** -- pure data definitions.  No I/O, no database.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class PriceAlertStatus(Enum):
    """Alert states.  Must align with ``workflows.PRICE_ALERT_WORKFLOW.states``."""
    UNREAD = "unread"
    READ = "read"
    DISMISSED = "dismissed"


def normalize_item_name(description: str | None) -> str:
    """Catalog key for a free-text line description (trimmed)."""
    return (description or "").strip()


@dataclass(frozen=True)
class TrackedLine:
    """A line item handed to the price tracker."""
    description: str | None
    unit_price: Decimal | None
    quantity: Decimal | None = None
    matched_supplier_item_id: UUID | None = None

    @property
    def item_name(self) -> str:
        return normalize_item_name(self.description)

    @property
    def is_trackable(self) -> bool:
        return bool(self.item_name) and self.unit_price is not None


@dataclass(frozen=True)
class SupplierItem:
    """A per-business, per-supplier catalog entry."""
    id: UUID
    business_id: UUID
    supplier_id: UUID
    item_name: str
    current_price: Decimal | None
    last_price_date: date | None = None
    unit: str | None = None
    is_active: bool = True


@dataclass(frozen=True)
class SupplierItemPrice:
    """One append-only price observation."""
    id: UUID
    supplier_item_id: UUID
    price: Decimal
    document_date: date
    quantity: Decimal | None = None
    invoice_id: UUID | None = None
    document_id: UUID | None = None


@dataclass(frozen=True)
class PriceAlert:
    """A reviewable notice that an item's price changed."""
    id: UUID
    business_id: UUID
    supplier_item_id: UUID
    supplier_id: UUID
    old_price: Decimal
    new_price: Decimal
    change_pct: Decimal | None
    document_date: date
    status: PriceAlertStatus
    document_id: UUID | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class PriceComparison:
    """Read-only preview of how a line compares to the catalog."""
    item_description: str
    current_price: Decimal
    previous_price: Decimal | None
    change_pct: Decimal | None
    is_new_item: bool
    would_alert: bool
    supplier_item_id: UUID | None = None


@dataclass(frozen=True)
class TrackedLineOutcome:
    """What happened to one line during a tracking run."""
    item_name: str
    supplier_item_id: UUID | None
    created_item: bool = False
    alert_id: UUID | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class PriceTrackingResult:
    """Per-document summary of a tracking run."""
    outcomes: tuple[TrackedLineOutcome, ...] = ()
    skipped: int = 0

    @property
    def recorded(self) -> int:
        return sum(1 for o in self.outcomes if o.succeeded)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.succeeded)

    @property
    def alerts_raised(self) -> int:
        return sum(1 for o in self.outcomes if o.alert_id is not None)

    @property
    def items_created(self) -> int:
        return sum(1 for o in self.outcomes if o.created_item)
