"""
Document Domain Models (``ledger_modules.documents.models``).

Responsibility
--------------
Frozen value objects for captured business papers: the document itself, the
candidate fields the upstream extraction collaborator attached to it, and
the explicit review session a reviewer holds while working on it.

Architecture position
---------------------
**Modules layer** -- pure data definitions.  No I/O, no database.  These
objects flow out of ``DocumentReviewService`` as immutable snapshots.

Invariants enforced
-------------------
* All monetary fields use ``Decimal`` (never ``float``).
* ``ExtractedCandidate`` round-trips through the JSON column without
  losing precision: amounts are serialized as strings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID


class DocumentStatus(Enum):
    """Persisted document states.  Must align with ``workflows.DOCUMENT_WORKFLOW.states``."""
    PENDING = "pending"
    REVIEWING = "reviewing"
    APPROVED = "approved"
    REJECTED = "rejected"


class DocumentType(Enum):
    """What kind of paper the reviewer says this is."""
    INVOICE = "invoice"
    CREDIT_NOTE = "credit_note"
    DELIVERY_NOTE = "delivery_note"
    PAYMENT = "payment"
    SUMMARY = "summary"
    DAILY_ENTRY = "daily_entry"


class DocumentSource(Enum):
    """Channel the document arrived through."""
    TELEGRAM = "telegram"
    WHATSAPP = "whatsapp"
    EMAIL = "email"
    UPLOAD = "upload"


class ExpenseType(Enum):
    GOODS = "goods"
    CURRENT = "current"


def _dec(value: Any) -> Decimal | None:
    if value is None or value == "":
        return None
    return Decimal(str(value))


def _str(value: Decimal | None) -> str | None:
    return None if value is None else str(value)


@dataclass(frozen=True)
class CandidateLineItem:
    """A free-text line item as read off the paper."""
    description: str | None = None
    quantity: Decimal | None = None
    unit_price: Decimal | None = None
    total: Decimal | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "description": self.description,
            "quantity": _str(self.quantity),
            "unit_price": _str(self.unit_price),
            "total": _str(self.total),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CandidateLineItem:
        return cls(
            description=data.get("description"),
            quantity=_dec(data.get("quantity")),
            unit_price=_dec(data.get("unit_price")),
            total=_dec(data.get("total")),
        )


@dataclass(frozen=True)
class ExtractedCandidate:
    """
    Candidate field set produced by the extraction collaborator.

    Contract: frozen, read-only, document-scoped.  The reviewer's confirmed
    values arrive separately as an approval payload; the candidate is only
    what the form is pre-filled with.
    """
    supplier_name: str | None = None
    supplier_tax_id: str | None = None
    document_number: str | None = None
    document_date: date | None = None
    subtotal: Decimal | None = None
    vat_amount: Decimal | None = None
    total_amount: Decimal | None = None
    confidence_score: Decimal | None = None
    raw_text: str | None = None
    line_items: tuple[CandidateLineItem, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "supplier_name": self.supplier_name,
            "supplier_tax_id": self.supplier_tax_id,
            "document_number": self.document_number,
            "document_date": self.document_date.isoformat() if self.document_date else None,
            "subtotal": _str(self.subtotal),
            "vat_amount": _str(self.vat_amount),
            "total_amount": _str(self.total_amount),
            "confidence_score": _str(self.confidence_score),
            "raw_text": self.raw_text,
            "line_items": [item.to_dict() for item in self.line_items],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExtractedCandidate:
        raw_date = data.get("document_date")
        return cls(
            supplier_name=data.get("supplier_name"),
            supplier_tax_id=data.get("supplier_tax_id"),
            document_number=data.get("document_number"),
            document_date=date.fromisoformat(raw_date) if raw_date else None,
            subtotal=_dec(data.get("subtotal")),
            vat_amount=_dec(data.get("vat_amount")),
            total_amount=_dec(data.get("total_amount")),
            confidence_score=_dec(data.get("confidence_score")),
            raw_text=data.get("raw_text"),
            line_items=tuple(
                CandidateLineItem.from_dict(item) for item in data.get("line_items") or ()
            ),
        )


@dataclass(frozen=True)
class Document:
    """A captured business paper.

    Contract: frozen snapshot of the ``documents`` row.
    Non-goals: does not carry the image bytes, only a reference.
    """
    id: UUID
    business_id: UUID | None
    source: DocumentSource
    status: DocumentStatus
    image_url: str | None = None
    document_type: DocumentType | None = None
    expense_type: ExpenseType | None = None
    candidate: ExtractedCandidate | None = None
    notes: str | None = None
    received_at: datetime | None = None
    reviewed_by: UUID | None = None
    reviewed_at: datetime | None = None
    rejection_reason: str | None = None
    created_invoice_id: UUID | None = None
    created_payment_id: UUID | None = None
    created_delivery_note_id: UUID | None = None
    created_daily_entry_id: UUID | None = None
    claimed_by: UUID | None = None
    claim_expires_at: datetime | None = None
    version: int = 1


@dataclass(frozen=True)
class ReviewSession:
    """
    The reviewer's explicit hold on one document.

    Returned by ``DocumentReviewService.select_document`` and passed back to
    approve / reject / skip.  ``business_id`` is the business the reviewer's
    active-business selector must be steered to.
    """
    document: Document
    reviewer_id: UUID
    business_id: UUID | None
    claim_expires_at: datetime

    @property
    def document_id(self) -> UUID:
        return self.document.id
