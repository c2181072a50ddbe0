"""
Ledger Materializer (``ledger_modules.ledger.materializer``).

Responsibility
--------------
Turns an approved document plus the reviewer's confirmed payload into
ledger records: invoices, payments with their split legs, delivery notes
and daily entries.  Runs the price tracker over line items afterwards.

Architecture position
---------------------
**Modules layer** -- service invoked by ``DocumentReviewService.approve``
inside the approval transaction.  Pure math comes from ``ledger_engines``
(installment splitter, billing cycle, VAT back-out).

Invariants enforced
-------------------
* Exactly one handler per ``DocumentType``; checked at import.
* Validation (business, supplier, amounts, dates, installment overrides,
  summary totals, product references) completes before the first insert.
* Payment total equals the sum of its split amounts.
* ``record_line_items`` runs after the ledger rows exist; its per-line
  failures never undo them.
* This class never commits.  The review service owns the transaction.

Failure modes
-------------
* ``MissingRequiredFieldError`` -- an identifying field is absent.
* ``UnsupportedPayloadError`` -- payload is not an approval variant.
* ``InstallmentMismatchError`` / ``SummaryTotalsMismatchError`` -- amounts
  do not reconcile.
* ``DuplicateDailyEntryError`` -- a daily entry already exists for the
  business and date (pre-check and unique constraint).
* ``MaterializationError`` -- a referenced managed product is unknown.

Audit relevance
---------------
Every created record carries ``source_document_id`` and the acting
reviewer as ``created_by_id``.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger_config.schema import IntakeConfig
from ledger_engines.installments import SplitPlan, split_payment
from ledger_engines.vat import back_out_vat
from ledger_kernel.db.types import CURRENCY_TOLERANCE, amounts_match, round_money
from ledger_kernel.exceptions import (
    DuplicateDailyEntryError,
    MaterializationError,
    MissingRequiredFieldError,
    SummaryTotalsMismatchError,
    UnsupportedPayloadError,
)
from ledger_kernel.logging_config import get_logger
from ledger_modules.documents.models import Document, DocumentType
from ledger_modules.ledger.attachments import AttachmentStore, SharedImageStore
from ledger_modules.ledger.models import (
    ApprovalPayload,
    CreditNoteApproval,
    DailyEntryApproval,
    DeliveryNoteApproval,
    InvoiceApproval,
    InvoiceStatus,
    LineItem,
    MaterializationResult,
    PaymentApproval,
    PaymentMethodEntry,
    SummaryApproval,
)
from ledger_modules.ledger.orm import (
    BusinessCreditCardModel,
    DailyEntryModel,
    DailyIncomeBreakdownModel,
    DailyParameterModel,
    DailyProductUsageModel,
    DailyReceiptModel,
    DeliveryNoteModel,
    InvoiceModel,
    ManagedProductModel,
    PaymentModel,
    PaymentSplitModel,
)
from ledger_modules.pricing.models import PriceTrackingResult, TrackedLine
from ledger_modules.pricing.service import PriceHistoryTracker

logger = get_logger("modules.ledger.materializer")


_PAYLOAD_TYPES: dict[type, DocumentType] = {
    InvoiceApproval: DocumentType.INVOICE,
    CreditNoteApproval: DocumentType.CREDIT_NOTE,
    DeliveryNoteApproval: DocumentType.DELIVERY_NOTE,
    PaymentApproval: DocumentType.PAYMENT,
    SummaryApproval: DocumentType.SUMMARY,
    DailyEntryApproval: DocumentType.DAILY_ENTRY,
}

_HANDLERS: dict[DocumentType, str] = {
    DocumentType.INVOICE: "_materialize_invoice",
    DocumentType.CREDIT_NOTE: "_materialize_invoice",
    DocumentType.DELIVERY_NOTE: "_materialize_delivery_note",
    DocumentType.PAYMENT: "_materialize_payment",
    DocumentType.SUMMARY: "_materialize_summary",
    DocumentType.DAILY_ENTRY: "_materialize_daily_entry",
}


def _check_exhaustive() -> None:
    kinds = set(DocumentType)
    if set(_PAYLOAD_TYPES.values()) != kinds:
        raise RuntimeError(f"Approval payload variants do not cover {sorted(k.value for k in kinds)}")
    if set(_HANDLERS) != kinds:
        missing = sorted(k.value for k in kinds - set(_HANDLERS))
        raise RuntimeError(f"No materializer handler for document types: {missing}")


_check_exhaustive()


def payload_kind(payload: object) -> DocumentType:
    """Document kind an approval payload confirms.

    Raises:
        UnsupportedPayloadError: ``payload`` is not an approval variant.
    """
    kind = _PAYLOAD_TYPES.get(type(payload))
    if kind is None:
        raise UnsupportedPayloadError(type(payload).__name__)
    return kind


def _require(kind: DocumentType, field_name: str, value):
    if value is None or (isinstance(value, str) and not value.strip()):
        raise MissingRequiredFieldError(kind.value, field_name)
    return value


class LedgerMaterializer:
    """
    Writes the ledger records for one approved document.

    Contract
    --------
    ``materialize(document, payload, actor_id)`` flushes every record it
    creates and returns a ``MaterializationResult``.  Nothing is written
    when validation fails.
    """

    def __init__(
        self,
        session: Session,
        config: IntakeConfig | None = None,
        tracker: PriceHistoryTracker | None = None,
        attachment_store: AttachmentStore | None = None,
    ):
        self._session = session
        self._config = config or IntakeConfig()
        self._tracker = tracker or PriceHistoryTracker(session, self._config)
        self._attachments = attachment_store or SharedImageStore()

    def materialize(
        self,
        document: Document,
        payload: ApprovalPayload,
        actor_id: UUID,
    ) -> MaterializationResult:
        kind = payload_kind(payload)
        business_id = payload.business_id or document.business_id
        _require(kind, "business_id", business_id)

        handler = getattr(self, _HANDLERS[kind])
        result = handler(document, payload, business_id, actor_id)

        logger.info(
            "ledger_records_created",
            extra={
                "document_id": str(document.id),
                "document_type": kind.value,
                "invoice_id": str(result.invoice_id) if result.invoice_id else None,
                "payment_id": str(result.payment_id) if result.payment_id else None,
                "delivery_note_count": len(result.delivery_note_ids),
                "daily_entry_id": str(result.daily_entry_id) if result.daily_entry_id else None,
            },
        )
        return result

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    def _money(self, value: Decimal) -> Decimal:
        return round_money(value, self._config.currency_places)

    def _net_and_vat(
        self,
        total: Decimal,
        subtotal: Decimal | None,
        vat_amount: Decimal | None,
    ) -> tuple[Decimal, Decimal]:
        """Fill in whichever of subtotal / VAT the reviewer left empty."""
        if subtotal is not None and vat_amount is not None:
            return self._money(subtotal), self._money(vat_amount)
        if subtotal is not None:
            return self._money(subtotal), self._money(total - subtotal)
        if vat_amount is not None:
            return self._money(total - vat_amount), self._money(vat_amount)
        breakdown = back_out_vat(total, self._config.vat_rate, self._config.currency_places)
        return breakdown.subtotal, breakdown.vat_amount

    def _card_billing_days(self, business_id: UUID) -> dict[UUID, int]:
        rows = self._session.execute(
            select(BusinessCreditCardModel.id, BusinessCreditCardModel.billing_day).where(
                BusinessCreditCardModel.business_id == business_id,
                BusinessCreditCardModel.is_active.is_(True),
            )
        ).all()
        return {card_id: billing_day for card_id, billing_day in rows}

    def _plan_payment(
        self,
        business_id: UUID,
        reference_date: date,
        methods: Sequence[PaymentMethodEntry],
        fallback_total: Decimal | None,
        kind: DocumentType,
    ) -> SplitPlan:
        if not methods:
            total = _require(kind, "total_amount", fallback_total)
            methods = (
                PaymentMethodEntry(
                    method=self._config.default_payment_method,
                    amount=total,
                ),
            )
        return split_payment(
            reference_date=reference_date,
            methods=tuple(methods),
            card_billing_days=self._card_billing_days(business_id),
            places=self._config.currency_places,
        )

    def _attach(self, document: Document, record_type: str, record_id: UUID) -> str | None:
        if not document.image_url:
            return None
        try:
            return self._attachments.attach(document.id, document.image_url, record_type, record_id)
        except Exception:
            logger.warning(
                "attachment_copy_failed",
                exc_info=True,
                extra={
                    "document_id": str(document.id),
                    "record_type": record_type,
                    "record_id": str(record_id),
                },
            )
            return None

    def _add_payment(
        self,
        document: Document,
        plan: SplitPlan,
        business_id: UUID,
        payment_date: date,
        actor_id: UUID,
        supplier_id: UUID | None = None,
        invoice_id: UUID | None = None,
        reference: str | None = None,
        notes: str | None = None,
    ) -> PaymentModel:
        payment_id = uuid4()
        payment = PaymentModel(
            id=payment_id,
            business_id=business_id,
            supplier_id=supplier_id,
            invoice_id=invoice_id,
            payment_date=payment_date,
            total_amount=plan.total,
            reference=reference,
            notes=notes,
            attachment_url=self._attach(document, "payments", payment_id),
            source_document_id=document.id,
            created_by_id=actor_id,
        )
        for line_number, split in enumerate(plan.splits, start=1):
            payment.splits.append(
                PaymentSplitModel(
                    line_number=line_number,
                    payment_method=split.payment_method,
                    amount=split.amount,
                    installments_count=split.installments_count,
                    installment_number=split.installment_number,
                    credit_card_id=split.credit_card_id,
                    check_number=split.check_number,
                    due_date=split.due_date,
                    created_by_id=actor_id,
                )
            )
        self._session.add(payment)
        return payment

    def _track_prices(
        self,
        document: Document,
        business_id: UUID,
        supplier_id: UUID,
        document_date: date,
        line_items: Sequence[LineItem],
        actor_id: UUID,
        invoice_id: UUID | None = None,
    ) -> PriceTrackingResult | None:
        if not line_items:
            return None
        lines = [
            TrackedLine(
                description=item.description,
                unit_price=item.unit_price,
                quantity=item.quantity,
                matched_supplier_item_id=item.matched_supplier_item_id,
            )
            for item in line_items
        ]
        return self._tracker.record_line_items(
            business_id=business_id,
            supplier_id=supplier_id,
            lines=lines,
            document_date=document_date,
            actor_id=actor_id,
            invoice_id=invoice_id,
            document_id=document.id,
        )

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _materialize_invoice(
        self,
        document: Document,
        payload: InvoiceApproval,
        business_id: UUID,
        actor_id: UUID,
    ) -> MaterializationResult:
        kind = payload_kind(payload)
        supplier_id = _require(kind, "supplier_id", payload.supplier_id)
        invoice_date = _require(kind, "document_date", payload.document_date)
        total = self._money(_require(kind, "total_amount", payload.total_amount))
        subtotal, vat_amount = self._net_and_vat(total, payload.subtotal, payload.vat_amount)

        plan = None
        payment_date = payload.payment_date or invoice_date
        if payload.is_paid:
            plan = self._plan_payment(
                business_id, payment_date, payload.payment_methods, total, kind,
            )

        invoice_id = uuid4()
        invoice = InvoiceModel(
            id=invoice_id,
            business_id=business_id,
            supplier_id=supplier_id,
            invoice_number=payload.document_number,
            invoice_date=invoice_date,
            subtotal=subtotal,
            vat_amount=vat_amount,
            total_amount=total,
            status=(InvoiceStatus.PAID if payload.is_paid else InvoiceStatus.PENDING).value,
            invoice_type=payload.invoice_type.value,
            is_credit_note=kind is DocumentType.CREDIT_NOTE,
            notes=payload.notes,
            attachment_url=self._attach(document, "invoices", invoice_id),
            source_document_id=document.id,
            created_by_id=actor_id,
        )
        self._session.add(invoice)
        self._session.flush()

        payment_id = None
        if plan is not None:
            payment = self._add_payment(
                document, plan, business_id, payment_date, actor_id,
                supplier_id=supplier_id,
                invoice_id=invoice_id,
                reference=payload.payment_reference,
            )
            self._session.flush()
            payment_id = payment.id

        tracking = self._track_prices(
            document, business_id, supplier_id, invoice_date,
            payload.line_items, actor_id, invoice_id=invoice_id,
        )
        return MaterializationResult(
            document_type=kind,
            invoice_id=invoice_id,
            payment_id=payment_id,
            price_tracking=tracking,
        )

    def _materialize_delivery_note(
        self,
        document: Document,
        payload: DeliveryNoteApproval,
        business_id: UUID,
        actor_id: UUID,
    ) -> MaterializationResult:
        kind = DocumentType.DELIVERY_NOTE
        supplier_id = _require(kind, "supplier_id", payload.supplier_id)
        delivery_date = _require(kind, "document_date", payload.document_date)
        total = self._money(_require(kind, "total_amount", payload.total_amount))
        subtotal, vat_amount = self._net_and_vat(total, payload.subtotal, payload.vat_amount)

        note_id = uuid4()
        self._session.add(
            DeliveryNoteModel(
                id=note_id,
                business_id=business_id,
                supplier_id=supplier_id,
                delivery_note_number=payload.document_number,
                delivery_date=delivery_date,
                subtotal=subtotal,
                vat_amount=vat_amount,
                total_amount=total,
                is_verified=False,
                notes=payload.notes,
                attachment_url=self._attach(document, "delivery_notes", note_id),
                source_document_id=document.id,
                created_by_id=actor_id,
            )
        )
        self._session.flush()

        tracking = self._track_prices(
            document, business_id, supplier_id, delivery_date, payload.line_items, actor_id,
        )
        return MaterializationResult(
            document_type=kind,
            delivery_note_ids=(note_id,),
            price_tracking=tracking,
        )

    def _materialize_payment(
        self,
        document: Document,
        payload: PaymentApproval,
        business_id: UUID,
        actor_id: UUID,
    ) -> MaterializationResult:
        kind = DocumentType.PAYMENT
        payment_date = _require(kind, "document_date", payload.document_date)
        fallback_total = payload.total_amount
        if fallback_total is None and document.candidate is not None:
            fallback_total = document.candidate.total_amount

        plan = self._plan_payment(
            business_id, payment_date, payload.payment_methods, fallback_total, kind,
        )
        payment = self._add_payment(
            document, plan, business_id, payment_date, actor_id,
            supplier_id=payload.supplier_id,
            reference=payload.reference,
            notes=payload.notes,
        )
        self._session.flush()
        return MaterializationResult(document_type=kind, payment_id=payment.id)

    def _materialize_summary(
        self,
        document: Document,
        payload: SummaryApproval,
        business_id: UUID,
        actor_id: UUID,
    ) -> MaterializationResult:
        kind = DocumentType.SUMMARY
        supplier_id = _require(kind, "supplier_id", payload.supplier_id)
        invoice_date = _require(kind, "document_date", payload.document_date)
        total = self._money(_require(kind, "total_amount", payload.total_amount))

        if payload.is_closed and payload.delivery_notes:
            notes_total = sum((line.total_amount for line in payload.delivery_notes), Decimal("0"))
            if not amounts_match(total, notes_total, CURRENCY_TOLERANCE):
                raise SummaryTotalsMismatchError(str(total), str(notes_total))

        places = self._config.currency_places
        breakdown = back_out_vat(total, self._config.vat_rate, places)
        status = InvoiceStatus.NEEDS_REVIEW if payload.is_closed else InvoiceStatus.PENDING

        invoice_id = uuid4()
        invoice = InvoiceModel(
            id=invoice_id,
            business_id=business_id,
            supplier_id=supplier_id,
            invoice_number=payload.document_number,
            invoice_date=invoice_date,
            subtotal=breakdown.subtotal,
            vat_amount=breakdown.vat_amount,
            total_amount=breakdown.total,
            status=status.value,
            invoice_type=payload.invoice_type.value,
            is_consolidated=True,
            notes=payload.notes,
            attachment_url=self._attach(document, "invoices", invoice_id),
            source_document_id=document.id,
            created_by_id=actor_id,
        )
        self._session.add(invoice)

        note_ids: list[UUID] = []
        for line in payload.delivery_notes:
            line_breakdown = back_out_vat(line.total_amount, self._config.vat_rate, places)
            note_id = uuid4()
            invoice.delivery_notes.append(
                DeliveryNoteModel(
                    id=note_id,
                    business_id=business_id,
                    supplier_id=supplier_id,
                    delivery_note_number=line.delivery_note_number,
                    delivery_date=line.delivery_date,
                    subtotal=line_breakdown.subtotal,
                    vat_amount=line_breakdown.vat_amount,
                    total_amount=line_breakdown.total,
                    is_verified=payload.is_closed,
                    notes=line.notes,
                    source_document_id=document.id,
                    created_by_id=actor_id,
                )
            )
            note_ids.append(note_id)
        self._session.flush()

        return MaterializationResult(
            document_type=kind,
            invoice_id=invoice_id,
            delivery_note_ids=tuple(note_ids),
        )

    def _materialize_daily_entry(
        self,
        document: Document,
        payload: DailyEntryApproval,
        business_id: UUID,
        actor_id: UUID,
    ) -> MaterializationResult:
        kind = DocumentType.DAILY_ENTRY
        entry_date = _require(kind, "entry_date", payload.entry_date)
        total_register = _require(kind, "total_register", payload.total_register)

        existing = self._session.execute(
            select(DailyEntryModel.id).where(
                DailyEntryModel.business_id == business_id,
                DailyEntryModel.entry_date == entry_date,
            )
        ).scalar_one_or_none()
        if existing is not None:
            raise DuplicateDailyEntryError(str(business_id), entry_date.isoformat())

        usage_lines = [line for line in payload.product_usage if line.has_activity]
        products: dict[UUID, ManagedProductModel] = {}
        for line in usage_lines:
            product = self._session.get(ManagedProductModel, line.product_id)
            if product is None or product.business_id != business_id:
                raise MaterializationError(
                    str(document.id), f"Unknown managed product {line.product_id}"
                )
            products[line.product_id] = product

        entry_id = uuid4()
        entry = DailyEntryModel(
            id=entry_id,
            business_id=business_id,
            entry_date=entry_date,
            total_register=self._money(total_register),
            labor_cost=self._money(payload.labor_cost),
            labor_hours=payload.labor_hours,
            discounts=self._money(payload.discounts),
            day_factor=payload.day_factor,
            notes=payload.notes,
            source_document_id=document.id,
            created_by_id=actor_id,
        )
        for line in payload.income:
            if line.amount != 0 or line.orders_count != 0:
                entry.income.append(
                    DailyIncomeBreakdownModel(
                        income_source_id=line.income_source_id,
                        amount=line.amount,
                        orders_count=line.orders_count,
                        created_by_id=actor_id,
                    )
                )
        for line in payload.receipts:
            if line.amount != 0:
                entry.receipts.append(
                    DailyReceiptModel(
                        receipt_type_id=line.receipt_type_id,
                        amount=line.amount,
                        created_by_id=actor_id,
                    )
                )
        for line in payload.parameters:
            if line.value != 0:
                entry.parameters.append(
                    DailyParameterModel(
                        parameter_id=line.parameter_id,
                        value=line.value,
                        created_by_id=actor_id,
                    )
                )
        for line in usage_lines:
            product = products[line.product_id]
            entry.product_usage.append(
                DailyProductUsageModel(
                    product_id=line.product_id,
                    opening_stock=line.opening_stock,
                    received_quantity=line.received_quantity,
                    closing_stock=line.closing_stock,
                    quantity=line.quantity_used,
                    unit_cost_at_time=(
                        line.unit_cost if line.unit_cost is not None else product.unit_cost
                    ),
                    created_by_id=actor_id,
                )
            )
            product.current_stock = line.closing_stock
            product.updated_by_id = actor_id

        self._session.add(entry)
        try:
            self._session.flush()
        except IntegrityError as exc:
            raise DuplicateDailyEntryError(str(business_id), entry_date.isoformat()) from exc

        return MaterializationResult(document_type=kind, daily_entry_id=entry_id)
