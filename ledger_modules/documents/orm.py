"""
Document ORM Models (``ledger_modules.documents.orm``).

Responsibility
--------------
SQLAlchemy persistence for captured documents.  Maps the frozen
``Document`` dataclass to the ``documents`` table.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``ledger_kernel.db.base``
and sibling ``models.py``.  Foreign keys point at ledger tables
(``ledger_modules.ledger.orm``) for the records a document produced.

Invariants enforced
-------------------
* ``status`` is constrained to the persisted lifecycle states.
* ``version`` is the mapper's ``version_id_col``: every UPDATE/DELETE
  carries ``WHERE version = <loaded version>``, so two writers acting on
  the same loaded row cannot both succeed.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, CheckConstraint, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase


class DocumentModel(TrackedBase):
    """
    ORM model for captured documents.

    Guarantees:
        - status in (pending, reviewing, approved, rejected).
        - created_*_id FKs reference the ledger rows produced on approval.
        - claimed_by / claim_expires_at describe the active review lease.
    """

    __tablename__ = "documents"

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'reviewing', 'approved', 'rejected')",
            name="chk_documents_status",
        ),
        Index("idx_documents_status", "status"),
        Index("idx_documents_business_id", "business_id"),
    )

    business_id: Mapped[UUID | None] = mapped_column(nullable=True)
    source: Mapped[str] = mapped_column(String(20), nullable=False)
    image_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    document_type: Mapped[str | None] = mapped_column(String(30), nullable=True)
    expense_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    extracted: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    received_at: Mapped[datetime] = mapped_column(nullable=False)

    reviewed_by: Mapped[UUID | None] = mapped_column(nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_invoice_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("invoices.id"), nullable=True
    )
    created_payment_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("payments.id"), nullable=True
    )
    created_delivery_note_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("delivery_notes.id"), nullable=True
    )
    created_daily_entry_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("daily_entries.id"), nullable=True
    )

    claimed_by: Mapped[UUID | None] = mapped_column(nullable=True)
    claim_expires_at: Mapped[datetime | None] = mapped_column(nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from ledger_modules.documents.models import (
            Document,
            DocumentSource,
            DocumentStatus,
            DocumentType,
            ExpenseType,
            ExtractedCandidate,
        )

        return Document(
            id=self.id,
            business_id=self.business_id,
            source=DocumentSource(self.source),
            status=DocumentStatus(self.status),
            image_url=self.image_url,
            document_type=DocumentType(self.document_type) if self.document_type else None,
            expense_type=ExpenseType(self.expense_type) if self.expense_type else None,
            candidate=ExtractedCandidate.from_dict(self.extracted) if self.extracted else None,
            notes=self.notes,
            received_at=self.received_at,
            reviewed_by=self.reviewed_by,
            reviewed_at=self.reviewed_at,
            rejection_reason=self.rejection_reason,
            created_invoice_id=self.created_invoice_id,
            created_payment_id=self.created_payment_id,
            created_delivery_note_id=self.created_delivery_note_id,
            created_daily_entry_id=self.created_daily_entry_id,
            claimed_by=self.claimed_by,
            claim_expires_at=self.claim_expires_at,
            version=self.version,
        )

    def __repr__(self) -> str:
        return f"<DocumentModel {self.id} [{self.status}]>"
