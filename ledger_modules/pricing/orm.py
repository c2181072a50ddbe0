"""
Pricing ORM Models (``ledger_modules.pricing.orm``).

Responsibility
--------------
SQLAlchemy persistence for the supplier item catalog, its price history
and price alerts.

Invariants enforced
-------------------
* ``supplier_items`` is unique on (business_id, supplier_id, item_name):
  the same trimmed name for the same supplier resolves to one row.
* ``supplier_item_prices`` rows are never updated or deleted by this
  package.
* ``price_alerts.status`` is constrained to unread / read / dismissed.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase


class SupplierItemModel(TrackedBase):
    """ORM model for supplier catalog items."""

    __tablename__ = "supplier_items"

    __table_args__ = (
        UniqueConstraint(
            "business_id",
            "supplier_id",
            "item_name",
            name="uq_supplier_items_business_supplier_name",
        ),
        Index("idx_supplier_items_supplier_id", "supplier_id"),
    )

    business_id: Mapped[UUID] = mapped_column(nullable=False)
    supplier_id: Mapped[UUID] = mapped_column(nullable=False)
    item_name: Mapped[str] = mapped_column(String(500), nullable=False)
    unit: Mapped[str | None] = mapped_column(String(30), nullable=True)
    current_price: Mapped[Decimal | None] = mapped_column(nullable=True)
    last_price_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    def to_dto(self):
        from ledger_modules.pricing.models import SupplierItem

        return SupplierItem(
            id=self.id,
            business_id=self.business_id,
            supplier_id=self.supplier_id,
            item_name=self.item_name,
            current_price=self.current_price,
            last_price_date=self.last_price_date,
            unit=self.unit,
            is_active=self.is_active,
        )

    def __repr__(self) -> str:
        return f"<SupplierItemModel {self.item_name}: {self.current_price}>"


class SupplierItemPriceModel(TrackedBase):
    """ORM model for append-only price observations."""

    __tablename__ = "supplier_item_prices"

    __table_args__ = (
        Index("idx_supplier_item_prices_item_date", "supplier_item_id", "document_date"),
    )

    supplier_item_id: Mapped[UUID] = mapped_column(
        ForeignKey("supplier_items.id"), nullable=False
    )
    price: Mapped[Decimal] = mapped_column(nullable=False)
    quantity: Mapped[Decimal | None] = mapped_column(nullable=True)
    invoice_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("invoices.id"), nullable=True
    )
    document_id: Mapped[UUID | None] = mapped_column(nullable=True)
    document_date: Mapped[date] = mapped_column(Date, nullable=False)

    def to_dto(self):
        from ledger_modules.pricing.models import SupplierItemPrice

        return SupplierItemPrice(
            id=self.id,
            supplier_item_id=self.supplier_item_id,
            price=self.price,
            document_date=self.document_date,
            quantity=self.quantity,
            invoice_id=self.invoice_id,
            document_id=self.document_id,
        )


class PriceAlertModel(TrackedBase):
    """ORM model for price change alerts."""

    __tablename__ = "price_alerts"

    __table_args__ = (
        CheckConstraint(
            "status IN ('unread', 'read', 'dismissed')", name="chk_price_alerts_status"
        ),
        Index("idx_price_alerts_business_status", "business_id", "status"),
    )

    business_id: Mapped[UUID] = mapped_column(nullable=False)
    supplier_item_id: Mapped[UUID] = mapped_column(
        ForeignKey("supplier_items.id"), nullable=False
    )
    supplier_id: Mapped[UUID] = mapped_column(nullable=False)
    document_id: Mapped[UUID | None] = mapped_column(nullable=True)
    old_price: Mapped[Decimal] = mapped_column(nullable=False)
    new_price: Mapped[Decimal] = mapped_column(nullable=False)
    change_pct: Mapped[Decimal | None] = mapped_column(nullable=True)
    document_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="unread")

    def to_dto(self):
        from ledger_modules.pricing.models import PriceAlert, PriceAlertStatus

        return PriceAlert(
            id=self.id,
            business_id=self.business_id,
            supplier_item_id=self.supplier_item_id,
            supplier_id=self.supplier_id,
            old_price=self.old_price,
            new_price=self.new_price,
            change_pct=self.change_pct,
            document_date=self.document_date,
            status=PriceAlertStatus(self.status),
            document_id=self.document_id,
            created_at=self.created_at,
        )
