"""
Approval payload parsing.

Builds the frozen approval variants from plain JSON-style mappings, as
submitted by the review form or the command line.  The ``kind`` key picks
the variant; amounts are parsed through ``str`` into ``Decimal``.
Unknown keys are rejected so a misspelt field never silently drops data.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from ledger_kernel.exceptions import UnsupportedPayloadError
from ledger_modules.documents.models import DocumentType
from ledger_modules.ledger.models import (
    ApprovalPayload,
    CreditNoteApproval,
    DailyEntryApproval,
    DeliveryNoteApproval,
    IncomeLine,
    InstallmentOverride,
    InvoiceApproval,
    InvoiceType,
    LineItem,
    ParameterLine,
    PaymentApproval,
    PaymentMethodEntry,
    ProductUsageLine,
    ReceiptLine,
    SummaryApproval,
    SummaryDeliveryNoteLine,
)


def _decimal(data: dict[str, Any], key: str, default: Decimal | None = None) -> Decimal | None:
    value = data.get(key)
    if value is None or value == "":
        return default
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"{key} must be a decimal number, got {value!r}") from exc


def _required(data: dict[str, Any], key: str) -> Any:
    value = data.get(key)
    if value is None or value == "":
        raise ValueError(f"{key} is required")
    return value


def _required_decimal(data: dict[str, Any], key: str) -> Decimal:
    value = _decimal(data, key)
    if value is None:
        raise ValueError(f"{key} is required")
    return value


def _date(data: dict[str, Any], key: str) -> date | None:
    value = data.get(key)
    return date.fromisoformat(value) if value else None


def _uuid(data: dict[str, Any], key: str) -> UUID | None:
    value = data.get(key)
    return UUID(str(value)) if value else None


def _check_keys(kind: str, data: dict[str, Any], allowed: set[str]) -> None:
    unknown = set(data) - allowed - {"kind"}
    if unknown:
        raise ValueError(f"Unknown fields for {kind}: {sorted(unknown)}")


def _line_items(raw: list[dict[str, Any]] | None) -> tuple[LineItem, ...]:
    return tuple(
        LineItem(
            description=item.get("description"),
            quantity=_decimal(item, "quantity"),
            unit_price=_decimal(item, "unit_price"),
            total=_decimal(item, "total"),
            matched_supplier_item_id=_uuid(item, "matched_supplier_item_id"),
        )
        for item in raw or ()
    )


def _payment_methods(raw: list[dict[str, Any]] | None) -> tuple[PaymentMethodEntry, ...]:
    return tuple(
        PaymentMethodEntry(
            method=_required(entry, "method"),
            amount=_required_decimal(entry, "amount"),
            installments=int(entry.get("installments", 1)),
            credit_card_id=_uuid(entry, "credit_card_id"),
            check_number=entry.get("check_number"),
            overrides=tuple(
                InstallmentOverride(
                    amount=_required_decimal(o, "amount"),
                    due_date=date.fromisoformat(_required(o, "due_date")),
                )
                for o in entry.get("overrides") or ()
            ),
        )
        for entry in raw or ()
    )


_INVOICE_KEYS = {
    "supplier_id", "document_date", "total_amount", "subtotal", "vat_amount",
    "document_number", "invoice_type", "is_paid", "payment_date",
    "payment_methods", "payment_reference", "line_items", "notes", "business_id",
}


def _invoice(cls, data: dict[str, Any]) -> InvoiceApproval:
    return cls(
        supplier_id=_uuid(data, "supplier_id"),
        document_date=_date(data, "document_date"),
        total_amount=_decimal(data, "total_amount"),
        subtotal=_decimal(data, "subtotal"),
        vat_amount=_decimal(data, "vat_amount"),
        document_number=data.get("document_number"),
        invoice_type=InvoiceType(data.get("invoice_type", "goods")),
        is_paid=bool(data.get("is_paid", False)),
        payment_date=_date(data, "payment_date"),
        payment_methods=_payment_methods(data.get("payment_methods")),
        payment_reference=data.get("payment_reference"),
        line_items=_line_items(data.get("line_items")),
        notes=data.get("notes"),
        business_id=_uuid(data, "business_id"),
    )


def _delivery_note(data: dict[str, Any]) -> DeliveryNoteApproval:
    _check_keys("delivery_note", data, {
        "supplier_id", "document_date", "total_amount", "subtotal", "vat_amount",
        "document_number", "line_items", "notes", "business_id",
    })
    return DeliveryNoteApproval(
        supplier_id=_uuid(data, "supplier_id"),
        document_date=_date(data, "document_date"),
        total_amount=_decimal(data, "total_amount"),
        subtotal=_decimal(data, "subtotal"),
        vat_amount=_decimal(data, "vat_amount"),
        document_number=data.get("document_number"),
        line_items=_line_items(data.get("line_items")),
        notes=data.get("notes"),
        business_id=_uuid(data, "business_id"),
    )


def _payment(data: dict[str, Any]) -> PaymentApproval:
    _check_keys("payment", data, {
        "document_date", "total_amount", "supplier_id", "payment_methods",
        "reference", "notes", "business_id",
    })
    return PaymentApproval(
        document_date=_date(data, "document_date"),
        total_amount=_decimal(data, "total_amount"),
        supplier_id=_uuid(data, "supplier_id"),
        payment_methods=_payment_methods(data.get("payment_methods")),
        reference=data.get("reference"),
        notes=data.get("notes"),
        business_id=_uuid(data, "business_id"),
    )


def _summary(data: dict[str, Any]) -> SummaryApproval:
    _check_keys("summary", data, {
        "supplier_id", "document_date", "total_amount", "document_number",
        "is_closed", "delivery_notes", "invoice_type", "notes", "business_id",
    })
    return SummaryApproval(
        supplier_id=_uuid(data, "supplier_id"),
        document_date=_date(data, "document_date"),
        total_amount=_decimal(data, "total_amount"),
        document_number=data.get("document_number"),
        is_closed=bool(data.get("is_closed", False)),
        delivery_notes=tuple(
            SummaryDeliveryNoteLine(
                delivery_note_number=line.get("delivery_note_number"),
                delivery_date=date.fromisoformat(_required(line, "delivery_date")),
                total_amount=_decimal(line, "total_amount", Decimal("0")),
                notes=line.get("notes"),
            )
            for line in data.get("delivery_notes") or ()
        ),
        invoice_type=InvoiceType(data.get("invoice_type", "goods")),
        notes=data.get("notes"),
        business_id=_uuid(data, "business_id"),
    )


def _daily_entry(data: dict[str, Any]) -> DailyEntryApproval:
    _check_keys("daily_entry", data, {
        "entry_date", "total_register", "labor_cost", "labor_hours", "discounts",
        "day_factor", "income", "receipts", "parameters", "product_usage",
        "notes", "business_id",
    })
    zero = Decimal("0")
    return DailyEntryApproval(
        entry_date=_date(data, "entry_date"),
        total_register=_decimal(data, "total_register"),
        labor_cost=_decimal(data, "labor_cost", zero),
        labor_hours=_decimal(data, "labor_hours", zero),
        discounts=_decimal(data, "discounts", zero),
        day_factor=_decimal(data, "day_factor", Decimal("1")),
        income=tuple(
            IncomeLine(
                income_source_id=_uuid(line, "income_source_id"),
                amount=_decimal(line, "amount", zero),
                orders_count=int(line.get("orders_count", 0)),
            )
            for line in data.get("income") or ()
        ),
        receipts=tuple(
            ReceiptLine(
                receipt_type_id=_uuid(line, "receipt_type_id"),
                amount=_decimal(line, "amount", zero),
            )
            for line in data.get("receipts") or ()
        ),
        parameters=tuple(
            ParameterLine(
                parameter_id=_uuid(line, "parameter_id"),
                value=_decimal(line, "value", zero),
            )
            for line in data.get("parameters") or ()
        ),
        product_usage=tuple(
            ProductUsageLine(
                product_id=_uuid(line, "product_id"),
                opening_stock=_decimal(line, "opening_stock", zero),
                received_quantity=_decimal(line, "received_quantity", zero),
                closing_stock=_decimal(line, "closing_stock", zero),
                unit_cost=_decimal(line, "unit_cost"),
            )
            for line in data.get("product_usage") or ()
        ),
        notes=data.get("notes"),
        business_id=_uuid(data, "business_id"),
    )


def parse_approval_payload(data: dict[str, Any]) -> ApprovalPayload:
    """
    Build an approval variant from a mapping with a ``kind`` key.

    Raises:
        UnsupportedPayloadError: ``kind`` is missing or not a document type.
        ValueError: unknown keys or malformed values.
    """
    raw_kind = data.get("kind")
    try:
        kind = DocumentType(raw_kind)
    except ValueError as exc:
        raise UnsupportedPayloadError(str(raw_kind)) from exc

    if kind in (DocumentType.INVOICE, DocumentType.CREDIT_NOTE):
        _check_keys(kind.value, data, _INVOICE_KEYS)
        cls = CreditNoteApproval if kind is DocumentType.CREDIT_NOTE else InvoiceApproval
        return _invoice(cls, data)
    if kind is DocumentType.DELIVERY_NOTE:
        return _delivery_note(data)
    if kind is DocumentType.PAYMENT:
        return _payment(data)
    if kind is DocumentType.SUMMARY:
        return _summary(data)
    return _daily_entry(data)
