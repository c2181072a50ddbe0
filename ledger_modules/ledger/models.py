"""
Ledger Domain Models (``ledger_modules.ledger.models``).

Responsibility
--------------
Frozen value objects for the ledger records a document approval produces
(invoices, payments and their splits, delivery notes, daily entries), and
the approval payloads a reviewer submits -- one variant per document kind.

Architecture position
---------------------
**Modules layer** -- pure data definitions.  No I/O, no database.

Invariants enforced
-------------------
* All monetary fields use ``Decimal``.
* All dataclasses are ``frozen=True``.
* Approval payloads form a closed set: each variant names the document kind
  it approves through the ``kind`` class attribute, and the materializer
  keeps exactly one handler per kind.
* Line-level constraints are checked in ``__post_init__`` (``ValueError``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Union
from uuid import UUID

from ledger_engines.installments import InstallmentOverride, PaymentMethodEntry
from ledger_modules.documents.models import DocumentType
from ledger_modules.pricing.models import PriceTrackingResult

__all__ = [
    "InvoiceStatus",
    "InvoiceType",
    "LineItem",
    "InstallmentOverride",
    "PaymentMethodEntry",
    "InvoiceApproval",
    "CreditNoteApproval",
    "DeliveryNoteApproval",
    "PaymentApproval",
    "SummaryDeliveryNoteLine",
    "SummaryApproval",
    "IncomeLine",
    "ReceiptLine",
    "ParameterLine",
    "ProductUsageLine",
    "DailyEntryApproval",
    "ApprovalPayload",
    "Invoice",
    "Payment",
    "PaymentSplit",
    "DeliveryNote",
    "DailyEntry",
    "BusinessCreditCard",
    "ManagedProduct",
    "MaterializationResult",
]


class InvoiceStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    NEEDS_REVIEW = "needs_review"


class InvoiceType(Enum):
    """Expense classification of an invoice."""
    GOODS = "goods"
    CURRENT = "current"
    EMPLOYEES = "employees"


# ---------------------------------------------------------------------------
# Approval payloads
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LineItem:
    """A reviewed line item.

    ``matched_supplier_item_id`` is set when the reviewer linked the line to
    an existing catalog item instead of matching by name.
    """
    description: str | None
    quantity: Decimal | None = None
    unit_price: Decimal | None = None
    total: Decimal | None = None
    matched_supplier_item_id: UUID | None = None


@dataclass(frozen=True)
class InvoiceApproval:
    """
    Confirmed fields for an invoice.

    Contract: frozen.  ``business_id`` overrides the document's business when
    the reviewer re-assigned it.  When ``is_paid`` is set, a payment is
    created for the invoice from ``payment_methods`` (or, with none, a single
    default-method split for ``total_amount``).
    """
    kind: ClassVar[DocumentType] = DocumentType.INVOICE

    supplier_id: UUID | None
    document_date: date | None
    total_amount: Decimal | None
    subtotal: Decimal | None = None
    vat_amount: Decimal | None = None
    document_number: str | None = None
    invoice_type: InvoiceType = InvoiceType.GOODS
    is_paid: bool = False
    payment_date: date | None = None
    payment_methods: tuple[PaymentMethodEntry, ...] = ()
    payment_reference: str | None = None
    line_items: tuple[LineItem, ...] = ()
    notes: str | None = None
    business_id: UUID | None = None


@dataclass(frozen=True)
class CreditNoteApproval(InvoiceApproval):
    """Confirmed fields for a supplier credit note (stored as a flagged invoice)."""
    kind: ClassVar[DocumentType] = DocumentType.CREDIT_NOTE


@dataclass(frozen=True)
class DeliveryNoteApproval:
    """Confirmed fields for a standalone delivery note."""
    kind: ClassVar[DocumentType] = DocumentType.DELIVERY_NOTE

    supplier_id: UUID | None
    document_date: date | None
    total_amount: Decimal | None
    subtotal: Decimal | None = None
    vat_amount: Decimal | None = None
    document_number: str | None = None
    line_items: tuple[LineItem, ...] = ()
    notes: str | None = None
    business_id: UUID | None = None


@dataclass(frozen=True)
class PaymentApproval:
    """Confirmed fields for a payment receipt not tied to an invoice."""
    kind: ClassVar[DocumentType] = DocumentType.PAYMENT

    document_date: date | None
    total_amount: Decimal | None = None
    supplier_id: UUID | None = None
    payment_methods: tuple[PaymentMethodEntry, ...] = ()
    reference: str | None = None
    notes: str | None = None
    business_id: UUID | None = None


@dataclass(frozen=True)
class SummaryDeliveryNoteLine:
    """One delivery note listed on a consolidated summary (gross amount)."""
    delivery_note_number: str | None
    delivery_date: date
    total_amount: Decimal
    notes: str | None = None

    def __post_init__(self) -> None:
        if self.total_amount < 0:
            raise ValueError("Delivery note amount cannot be negative")


@dataclass(frozen=True)
class SummaryApproval:
    """
    Confirmed fields for a consolidated summary.

    ``total_amount`` and every child line are tax-inclusive.  ``is_closed``
    marks a summary whose delivery notes were checked against the paper.
    """
    kind: ClassVar[DocumentType] = DocumentType.SUMMARY

    supplier_id: UUID | None
    document_date: date | None
    total_amount: Decimal | None
    document_number: str | None = None
    is_closed: bool = False
    delivery_notes: tuple[SummaryDeliveryNoteLine, ...] = ()
    invoice_type: InvoiceType = InvoiceType.GOODS
    notes: str | None = None
    business_id: UUID | None = None


@dataclass(frozen=True)
class IncomeLine:
    income_source_id: UUID
    amount: Decimal
    orders_count: int = 0


@dataclass(frozen=True)
class ReceiptLine:
    receipt_type_id: UUID
    amount: Decimal


@dataclass(frozen=True)
class ParameterLine:
    parameter_id: UUID
    value: Decimal


@dataclass(frozen=True)
class ProductUsageLine:
    """Stock movement of one managed product over the day."""
    product_id: UUID
    opening_stock: Decimal = Decimal("0")
    received_quantity: Decimal = Decimal("0")
    closing_stock: Decimal = Decimal("0")
    unit_cost: Decimal | None = None

    @property
    def quantity_used(self) -> Decimal:
        return self.opening_stock + self.received_quantity - self.closing_stock

    @property
    def has_activity(self) -> bool:
        return any(
            v != 0 for v in (self.opening_stock, self.received_quantity, self.closing_stock)
        )


@dataclass(frozen=True)
class DailyEntryApproval:
    """Confirmed daily operational log for one business and date."""
    kind: ClassVar[DocumentType] = DocumentType.DAILY_ENTRY

    entry_date: date | None
    total_register: Decimal | None
    labor_cost: Decimal = Decimal("0")
    labor_hours: Decimal = Decimal("0")
    discounts: Decimal = Decimal("0")
    day_factor: Decimal = Decimal("1")
    income: tuple[IncomeLine, ...] = ()
    receipts: tuple[ReceiptLine, ...] = ()
    parameters: tuple[ParameterLine, ...] = ()
    product_usage: tuple[ProductUsageLine, ...] = ()
    notes: str | None = None
    business_id: UUID | None = None


ApprovalPayload = Union[
    InvoiceApproval,
    CreditNoteApproval,
    DeliveryNoteApproval,
    PaymentApproval,
    SummaryApproval,
    DailyEntryApproval,
]


# ---------------------------------------------------------------------------
# Ledger records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Invoice:
    id: UUID
    business_id: UUID
    supplier_id: UUID
    invoice_date: date
    subtotal: Decimal
    vat_amount: Decimal
    total_amount: Decimal
    status: InvoiceStatus
    invoice_type: InvoiceType
    invoice_number: str | None = None
    is_consolidated: bool = False
    is_credit_note: bool = False
    notes: str | None = None
    attachment_url: str | None = None
    source_document_id: UUID | None = None


@dataclass(frozen=True)
class PaymentSplit:
    """One disbursement leg of a payment."""
    id: UUID
    payment_id: UUID
    payment_method: str
    amount: Decimal
    installments_count: int
    installment_number: int
    due_date: date
    credit_card_id: UUID | None = None
    check_number: str | None = None


@dataclass(frozen=True)
class Payment:
    """A payment and its ordered split legs.

    Guarantees: ``total_amount`` equals the sum of ``splits`` amounts.
    """
    id: UUID
    business_id: UUID
    payment_date: date
    total_amount: Decimal
    splits: tuple[PaymentSplit, ...] = field(default_factory=tuple)
    supplier_id: UUID | None = None
    invoice_id: UUID | None = None
    reference: str | None = None
    notes: str | None = None
    attachment_url: str | None = None
    source_document_id: UUID | None = None


@dataclass(frozen=True)
class DeliveryNote:
    id: UUID
    business_id: UUID
    supplier_id: UUID
    delivery_date: date
    subtotal: Decimal
    vat_amount: Decimal
    total_amount: Decimal
    is_verified: bool = False
    invoice_id: UUID | None = None
    delivery_note_number: str | None = None
    notes: str | None = None
    attachment_url: str | None = None
    source_document_id: UUID | None = None


@dataclass(frozen=True)
class DailyEntry:
    id: UUID
    business_id: UUID
    entry_date: date
    total_register: Decimal
    labor_cost: Decimal
    labor_hours: Decimal
    discounts: Decimal
    day_factor: Decimal
    notes: str | None = None
    source_document_id: UUID | None = None


@dataclass(frozen=True)
class BusinessCreditCard:
    id: UUID
    business_id: UUID
    card_name: str
    billing_day: int
    last_four_digits: str | None = None
    is_active: bool = True

    def __post_init__(self) -> None:
        if not 1 <= self.billing_day <= 31:
            raise ValueError(f"billing_day must be between 1 and 31, got {self.billing_day}")


@dataclass(frozen=True)
class ManagedProduct:
    id: UUID
    business_id: UUID
    name: str
    unit: str
    unit_cost: Decimal
    current_stock: Decimal
    is_active: bool = True


@dataclass(frozen=True)
class MaterializationResult:
    """Everything one approval wrote to the ledger.

    ``price_tracking`` is set for kinds that carry line items, else None.
    """
    document_type: DocumentType
    invoice_id: UUID | None = None
    payment_id: UUID | None = None
    delivery_note_ids: tuple[UUID, ...] = ()
    daily_entry_id: UUID | None = None
    price_tracking: PriceTrackingResult | None = None

    @property
    def delivery_note_id(self) -> UUID | None:
        return self.delivery_note_ids[0] if self.delivery_note_ids else None
