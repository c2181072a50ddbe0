"""
Ledger ORM Models (``ledger_modules.ledger.orm``).

Responsibility
--------------
SQLAlchemy persistence for the records an approved document produces,
plus the two read-mostly inputs the materializer consults (business
credit cards and managed products).

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``ledger_kernel.db.base``
and sibling ``models.py``.

Invariants enforced
-------------------
* ``source_document_id`` is unique on invoices, payments and daily
  entries: one document materializes at most one of each.
* ``daily_entries`` is unique on (business_id, entry_date).
* ``payment_splits.installment_number`` lies in 1..installments_count.
* Monetary fields use Decimal (Numeric(38,9) via type_annotation_map).
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
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_config.schema import PAYMENT_METHODS
from ledger_kernel.db.base import TrackedBase

_METHOD_LIST = ", ".join(f"'{m}'" for m in PAYMENT_METHODS)


# ---------------------------------------------------------------------------
# 1. BusinessCreditCardModel
# ---------------------------------------------------------------------------


class BusinessCreditCardModel(TrackedBase):
    """
    ORM model for a business's credit cards.

    Guarantees:
        - billing_day in 1..31.
    """

    __tablename__ = "business_credit_cards"

    __table_args__ = (
        CheckConstraint(
            "billing_day BETWEEN 1 AND 31", name="chk_business_credit_cards_billing_day"
        ),
        Index("idx_business_credit_cards_business_id", "business_id"),
    )

    business_id: Mapped[UUID] = mapped_column(nullable=False)
    card_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_four_digits: Mapped[str | None] = mapped_column(String(4), nullable=True)
    billing_day: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    def to_dto(self):
        from ledger_modules.ledger.models import BusinessCreditCard

        return BusinessCreditCard(
            id=self.id,
            business_id=self.business_id,
            card_name=self.card_name,
            billing_day=self.billing_day,
            last_four_digits=self.last_four_digits,
            is_active=self.is_active,
        )

    def __repr__(self) -> str:
        return f"<BusinessCreditCardModel {self.card_name} day={self.billing_day}>"


# ---------------------------------------------------------------------------
# 2. InvoiceModel
# ---------------------------------------------------------------------------


class InvoiceModel(TrackedBase):
    """
    ORM model for supplier invoices (including credit notes and
    summary-derived consolidated invoices).
    """

    __tablename__ = "invoices"

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'paid', 'needs_review')", name="chk_invoices_status"
        ),
        CheckConstraint(
            "invoice_type IN ('goods', 'current', 'employees')",
            name="chk_invoices_invoice_type",
        ),
        UniqueConstraint("source_document_id", name="uq_invoices_source_document_id"),
        Index("idx_invoices_business_id", "business_id"),
        Index("idx_invoices_supplier_id", "supplier_id"),
        Index("idx_invoices_invoice_date", "invoice_date"),
    )

    business_id: Mapped[UUID] = mapped_column(nullable=False)
    supplier_id: Mapped[UUID] = mapped_column(nullable=False)
    invoice_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    invoice_date: Mapped[date] = mapped_column(Date, nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(nullable=False)
    vat_amount: Mapped[Decimal] = mapped_column(nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    invoice_type: Mapped[str] = mapped_column(String(20), nullable=False, default="goods")
    is_consolidated: Mapped[bool] = mapped_column(Boolean, default=False)
    is_credit_note: Mapped[bool] = mapped_column(Boolean, default=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    attachment_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    source_document_id: Mapped[UUID | None] = mapped_column(nullable=True)

    delivery_notes: Mapped[list["DeliveryNoteModel"]] = relationship(
        back_populates="invoice",
        order_by="DeliveryNoteModel.delivery_date",
    )

    def to_dto(self):
        from ledger_modules.ledger.models import Invoice, InvoiceStatus, InvoiceType

        return Invoice(
            id=self.id,
            business_id=self.business_id,
            supplier_id=self.supplier_id,
            invoice_date=self.invoice_date,
            subtotal=self.subtotal,
            vat_amount=self.vat_amount,
            total_amount=self.total_amount,
            status=InvoiceStatus(self.status),
            invoice_type=InvoiceType(self.invoice_type),
            invoice_number=self.invoice_number,
            is_consolidated=self.is_consolidated,
            is_credit_note=self.is_credit_note,
            notes=self.notes,
            attachment_url=self.attachment_url,
            source_document_id=self.source_document_id,
        )

    def __repr__(self) -> str:
        return f"<InvoiceModel {self.invoice_number or self.id}: {self.total_amount}>"


# ---------------------------------------------------------------------------
# 3. PaymentModel / PaymentSplitModel
# ---------------------------------------------------------------------------


class PaymentModel(TrackedBase):
    """
    ORM model for payments.

    Guarantees:
        - invoice_id is optional (standalone payment receipts).
        - splits are ordered by line_number.
    """

    __tablename__ = "payments"

    __table_args__ = (
        UniqueConstraint("source_document_id", name="uq_payments_source_document_id"),
        Index("idx_payments_business_id", "business_id"),
        Index("idx_payments_invoice_id", "invoice_id"),
    )

    business_id: Mapped[UUID] = mapped_column(nullable=False)
    supplier_id: Mapped[UUID | None] = mapped_column(nullable=True)
    invoice_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("invoices.id"), nullable=True
    )
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False)
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    attachment_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    source_document_id: Mapped[UUID | None] = mapped_column(nullable=True)

    splits: Mapped[list["PaymentSplitModel"]] = relationship(
        back_populates="payment",
        cascade="all, delete-orphan",
        order_by="PaymentSplitModel.line_number",
    )

    def to_dto(self):
        from ledger_modules.ledger.models import Payment

        return Payment(
            id=self.id,
            business_id=self.business_id,
            payment_date=self.payment_date,
            total_amount=self.total_amount,
            splits=tuple(split.to_dto() for split in self.splits),
            supplier_id=self.supplier_id,
            invoice_id=self.invoice_id,
            reference=self.reference,
            notes=self.notes,
            attachment_url=self.attachment_url,
            source_document_id=self.source_document_id,
        )

    def __repr__(self) -> str:
        return f"<PaymentModel {self.id}: {self.total_amount}>"


class PaymentSplitModel(TrackedBase):
    """ORM model for one disbursement leg of a payment."""

    __tablename__ = "payment_splits"

    __table_args__ = (
        CheckConstraint(
            f"payment_method IN ({_METHOD_LIST})", name="chk_payment_splits_method"
        ),
        CheckConstraint("installments_count >= 1", name="chk_payment_splits_count"),
        CheckConstraint(
            "installment_number BETWEEN 1 AND installments_count",
            name="chk_payment_splits_number",
        ),
        Index("idx_payment_splits_payment_id", "payment_id"),
        Index("idx_payment_splits_due_date", "due_date"),
    )

    payment_id: Mapped[UUID] = mapped_column(ForeignKey("payments.id"), nullable=False)
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    payment_method: Mapped[str] = mapped_column(String(30), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    installments_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    installment_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    credit_card_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("business_credit_cards.id"), nullable=True
    )
    check_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)

    payment: Mapped["PaymentModel"] = relationship(back_populates="splits")

    def to_dto(self):
        from ledger_modules.ledger.models import PaymentSplit

        return PaymentSplit(
            id=self.id,
            payment_id=self.payment_id,
            payment_method=self.payment_method,
            amount=self.amount,
            installments_count=self.installments_count,
            installment_number=self.installment_number,
            due_date=self.due_date,
            credit_card_id=self.credit_card_id,
            check_number=self.check_number,
        )


# ---------------------------------------------------------------------------
# 4. DeliveryNoteModel
# ---------------------------------------------------------------------------


class DeliveryNoteModel(TrackedBase):
    """
    ORM model for delivery notes.

    Guarantees:
        - invoice_id links summary children to their consolidated invoice.
        - source_document_id is NOT unique: one summary yields many notes.
    """

    __tablename__ = "delivery_notes"

    __table_args__ = (
        Index("idx_delivery_notes_business_id", "business_id"),
        Index("idx_delivery_notes_invoice_id", "invoice_id"),
        Index("idx_delivery_notes_source_document_id", "source_document_id"),
    )

    business_id: Mapped[UUID] = mapped_column(nullable=False)
    supplier_id: Mapped[UUID] = mapped_column(nullable=False)
    invoice_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("invoices.id"), nullable=True
    )
    delivery_note_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    delivery_date: Mapped[date] = mapped_column(Date, nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(nullable=False)
    vat_amount: Mapped[Decimal] = mapped_column(nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    attachment_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    source_document_id: Mapped[UUID | None] = mapped_column(nullable=True)

    invoice: Mapped["InvoiceModel"] = relationship(back_populates="delivery_notes")

    def to_dto(self):
        from ledger_modules.ledger.models import DeliveryNote

        return DeliveryNote(
            id=self.id,
            business_id=self.business_id,
            supplier_id=self.supplier_id,
            delivery_date=self.delivery_date,
            subtotal=self.subtotal,
            vat_amount=self.vat_amount,
            total_amount=self.total_amount,
            is_verified=self.is_verified,
            invoice_id=self.invoice_id,
            delivery_note_number=self.delivery_note_number,
            notes=self.notes,
            attachment_url=self.attachment_url,
            source_document_id=self.source_document_id,
        )


# ---------------------------------------------------------------------------
# 5. ManagedProductModel
# ---------------------------------------------------------------------------


class ManagedProductModel(TrackedBase):
    """ORM model for stock-tracked products whose usage is logged daily."""

    __tablename__ = "managed_products"

    __table_args__ = (
        Index("idx_managed_products_business_id", "business_id"),
    )

    business_id: Mapped[UUID] = mapped_column(nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    unit: Mapped[str] = mapped_column(String(30), nullable=False, default="unit")
    unit_cost: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    current_stock: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    def to_dto(self):
        from ledger_modules.ledger.models import ManagedProduct

        return ManagedProduct(
            id=self.id,
            business_id=self.business_id,
            name=self.name,
            unit=self.unit,
            unit_cost=self.unit_cost,
            current_stock=self.current_stock,
            is_active=self.is_active,
        )


# ---------------------------------------------------------------------------
# 6. DailyEntryModel and breakdown rows
# ---------------------------------------------------------------------------


class DailyEntryModel(TrackedBase):
    """
    ORM model for the daily operational log.

    Guarantees:
        - one row per (business_id, entry_date) (uq_daily_entries_business_date).
    """

    __tablename__ = "daily_entries"

    __table_args__ = (
        UniqueConstraint(
            "business_id", "entry_date", name="uq_daily_entries_business_date"
        ),
        UniqueConstraint("source_document_id", name="uq_daily_entries_source_document_id"),
    )

    business_id: Mapped[UUID] = mapped_column(nullable=False)
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_register: Mapped[Decimal] = mapped_column(nullable=False)
    labor_cost: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    labor_hours: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    discounts: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    day_factor: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("1"))
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    source_document_id: Mapped[UUID | None] = mapped_column(nullable=True)

    income: Mapped[list["DailyIncomeBreakdownModel"]] = relationship(
        cascade="all, delete-orphan"
    )
    receipts: Mapped[list["DailyReceiptModel"]] = relationship(
        cascade="all, delete-orphan"
    )
    parameters: Mapped[list["DailyParameterModel"]] = relationship(
        cascade="all, delete-orphan"
    )
    product_usage: Mapped[list["DailyProductUsageModel"]] = relationship(
        cascade="all, delete-orphan"
    )

    def to_dto(self):
        from ledger_modules.ledger.models import DailyEntry

        return DailyEntry(
            id=self.id,
            business_id=self.business_id,
            entry_date=self.entry_date,
            total_register=self.total_register,
            labor_cost=self.labor_cost,
            labor_hours=self.labor_hours,
            discounts=self.discounts,
            day_factor=self.day_factor,
            notes=self.notes,
            source_document_id=self.source_document_id,
        )


class DailyIncomeBreakdownModel(TrackedBase):
    """Income for one source on a daily entry."""

    __tablename__ = "daily_income_breakdown"

    daily_entry_id: Mapped[UUID] = mapped_column(
        ForeignKey("daily_entries.id"), nullable=False, index=True
    )
    income_source_id: Mapped[UUID] = mapped_column(nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    orders_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class DailyReceiptModel(TrackedBase):
    """Receipt total for one receipt type on a daily entry."""

    __tablename__ = "daily_receipts"

    daily_entry_id: Mapped[UUID] = mapped_column(
        ForeignKey("daily_entries.id"), nullable=False, index=True
    )
    receipt_type_id: Mapped[UUID] = mapped_column(nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)


class DailyParameterModel(TrackedBase):
    """Value of one business-defined parameter on a daily entry."""

    __tablename__ = "daily_parameters"

    daily_entry_id: Mapped[UUID] = mapped_column(
        ForeignKey("daily_entries.id"), nullable=False, index=True
    )
    parameter_id: Mapped[UUID] = mapped_column(nullable=False)
    value: Mapped[Decimal] = mapped_column(nullable=False)


class DailyProductUsageModel(TrackedBase):
    """Opening/received/closing stock of one managed product for the day."""

    __tablename__ = "daily_product_usage"

    daily_entry_id: Mapped[UUID] = mapped_column(
        ForeignKey("daily_entries.id"), nullable=False, index=True
    )
    product_id: Mapped[UUID] = mapped_column(
        ForeignKey("managed_products.id"), nullable=False
    )
    opening_stock: Mapped[Decimal] = mapped_column(nullable=False)
    received_quantity: Mapped[Decimal] = mapped_column(nullable=False)
    closing_stock: Mapped[Decimal] = mapped_column(nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    unit_cost_at_time: Mapped[Decimal] = mapped_column(nullable=False)
