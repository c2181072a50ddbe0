"""
DocumentReviewService -- the document review lifecycle and transaction owner.

Responsibility:
    Moves captured documents through pending -> reviewing -> approved /
    rejected (and back to pending on skip), enforces the review lease, and
    on approval drives the ``LedgerMaterializer`` inside the same database
    transaction as the status change.  Also serves the review queue.

Architecture position:
    Services -- imperative shell.  Every legal status change is looked up
    in ``DOCUMENT_WORKFLOW``; ledger writes are delegated to
    ``ledger_modules.ledger.materializer``; time comes from an injected
    ``Clock``.

Invariants enforced:
    - ``approved`` and ``rejected`` are terminal; no action leaves them.
    - ``reviewing -> approved`` is the only edge that writes ledger records,
      and an approval is one transaction: ledger rows, price history and
      the status change commit together or not at all.
    - A document held by one reviewer cannot be selected, decided or
      deleted by another until the lease expires.
    - Every public method either commits and returns a frozen DTO, or rolls
      back and raises.

Failure modes:
    - DocumentNotFoundError: unknown document id.
    - DocumentAlreadyResolvedError: action on an approved/rejected document.
    - InvalidDocumentTransitionError: action not legal from current status.
    - DocumentClaimedError: another reviewer holds an active lease.
    - OptimisticLockError: the row changed since it was read (version
      column) or since the review session was opened.
    - ApprovalValidationError subclasses and DuplicateDailyEntryError from
      the materializer; the document stays ``reviewing``.
    - MaterializationError: a store constraint failed mid-approval.

Audit relevance:
    ``document_claimed``, ``approval_materialized``, ``document_rejected``,
    ``document_skipped`` and ``document_deleted`` are logged with the
    document, reviewer and business bound into ``LogContext``.
"""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ledger_config.schema import IntakeConfig
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.workflow import Transition
from ledger_kernel.exceptions import (
    DocumentAlreadyResolvedError,
    DocumentClaimedError,
    DocumentNotFoundError,
    InvalidDocumentTransitionError,
    MaterializationError,
    OptimisticLockError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_modules.documents.models import (
    Document,
    DocumentSource,
    DocumentStatus,
    DocumentType,
    ExpenseType,
    ExtractedCandidate,
    ReviewSession,
)
from ledger_modules.documents.orm import DocumentModel
from ledger_modules.documents.workflows import (
    CLAIM_AVAILABLE,
    DOCUMENT_WORKFLOW,
    REVIEWER_HOLDS_CLAIM,
)
from ledger_modules.ledger.attachments import AttachmentStore
from ledger_modules.ledger.materializer import LedgerMaterializer, payload_kind
from ledger_modules.ledger.models import ApprovalPayload, MaterializationResult

logger = get_logger("services.document_review")

QUEUE_STATUS_ALL = "all"


@dataclass(frozen=True)
class ApprovalResult:
    """The approved document and the ledger records it produced."""

    document: Document
    materialization: MaterializationResult


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes for timezone-aware columns.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class DocumentReviewService:
    """
    Review lifecycle for captured documents.

    Contract:
        Owns the session's transaction boundary.  Collaborators
        (materializer, price tracker) only flush.
    """

    def __init__(
        self,
        session: Session,
        config: IntakeConfig | None = None,
        clock: Clock | None = None,
        materializer: LedgerMaterializer | None = None,
        attachment_store: AttachmentStore | None = None,
    ):
        self._session = session
        self._config = config or IntakeConfig()
        self._clock = clock or SystemClock()
        self._materializer = materializer or LedgerMaterializer(
            session, self._config, attachment_store=attachment_store,
        )

    # ------------------------------------------------------------------
    # Transaction and guard helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _transaction(self, document_id: UUID) -> Generator[None, None, None]:
        try:
            yield
            self._session.commit()
        except StaleDataError as exc:
            self._session.rollback()
            raise OptimisticLockError("Document", str(document_id)) from exc
        except IntegrityError as exc:
            self._session.rollback()
            raise MaterializationError(str(document_id), str(exc.orig)) from exc
        except Exception:
            self._session.rollback()
            logger.warning(
                "document_action_rolled_back",
                extra={"document_id": str(document_id)},
            )
            raise

    def _load(self, document_id: UUID) -> DocumentModel:
        document = self._session.get(DocumentModel, document_id)
        if document is None:
            raise DocumentNotFoundError(str(document_id))
        return document

    def _lease_active(self, document: DocumentModel, now: datetime) -> bool:
        expires = _as_utc(document.claim_expires_at)
        return document.claimed_by is not None and expires is not None and expires > now

    def _transition(
        self,
        document: DocumentModel,
        action: str,
        reviewer_id: UUID,
    ) -> Transition:
        if DOCUMENT_WORKFLOW.is_terminal(document.status):
            raise DocumentAlreadyResolvedError(str(document.id), document.status)

        transition = DOCUMENT_WORKFLOW.find_transition(document.status, action)
        if transition is None:
            raise InvalidDocumentTransitionError(str(document.id), document.status, action)

        now = self._clock.now()
        if transition.guard is CLAIM_AVAILABLE:
            if self._lease_active(document, now) and document.claimed_by != reviewer_id:
                self._raise_claimed(document)
        elif transition.guard is REVIEWER_HOLDS_CLAIM:
            if document.claimed_by != reviewer_id:
                self._raise_claimed(document)
        return transition

    def _raise_claimed(self, document: DocumentModel) -> None:
        expires = _as_utc(document.claim_expires_at)
        raise DocumentClaimedError(
            str(document.id),
            str(document.claimed_by),
            expires.isoformat() if expires else "",
        )

    def _check_session(self, document: DocumentModel, review: ReviewSession) -> None:
        if document.version != review.document.version:
            raise OptimisticLockError("Document", str(document.id))

    def _release(self, document: DocumentModel) -> None:
        document.claimed_by = None
        document.claim_expires_at = None

    # ------------------------------------------------------------------
    # Intake
    # ------------------------------------------------------------------

    def register_document(
        self,
        actor_id: UUID,
        source: DocumentSource,
        business_id: UUID | None = None,
        image_url: str | None = None,
        candidate: ExtractedCandidate | None = None,
        document_type: DocumentType | None = None,
        expense_type: ExpenseType | None = None,
        notes: str | None = None,
    ) -> Document:
        """Record a newly captured document in ``pending``."""
        document = DocumentModel(
            business_id=business_id,
            source=source.value,
            image_url=image_url,
            status=DOCUMENT_WORKFLOW.initial_state,
            document_type=document_type.value if document_type else None,
            expense_type=expense_type.value if expense_type else None,
            extracted=candidate.to_dict() if candidate else None,
            notes=notes,
            received_at=self._clock.now(),
            created_by_id=actor_id,
        )
        try:
            self._session.add(document)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "document_registered",
            extra={
                "document_id": str(document.id),
                "source": source.value,
                "business_id": str(business_id) if business_id else None,
            },
        )
        return document.to_dto()

    # ------------------------------------------------------------------
    # Review actions
    # ------------------------------------------------------------------

    def select_document(self, document_id: UUID, reviewer_id: UUID) -> ReviewSession:
        """
        Claim a document for review.

        Re-selecting a document the reviewer already holds renews the lease.
        """
        with LogContext.bind(document_id=document_id, reviewer_id=reviewer_id):
            with self._transaction(document_id):
                document = self._load(document_id)
                transition = self._transition(document, "select", reviewer_id)

                expires = self._clock.now() + timedelta(minutes=self._config.claim_ttl_minutes)
                document.status = transition.to_state
                document.claimed_by = reviewer_id
                document.claim_expires_at = expires
                document.updated_by_id = reviewer_id
                self._session.flush()

            dto = document.to_dto()
            logger.info(
                "document_claimed",
                extra={
                    "business_id": str(dto.business_id) if dto.business_id else None,
                    "claim_expires_at": expires,
                    "version": dto.version,
                },
            )
            return ReviewSession(
                document=dto,
                reviewer_id=reviewer_id,
                business_id=dto.business_id,
                claim_expires_at=expires,
            )

    def approve(self, review: ReviewSession, payload: ApprovalPayload) -> ApprovalResult:
        """
        Approve the document and materialize its ledger records.

        The payload variant decides the document type.  On any failure the
        transaction is rolled back and the document stays ``reviewing``.
        """
        document_id = review.document_id
        with LogContext.bind(document_id=document_id, reviewer_id=review.reviewer_id):
            with self._transaction(document_id):
                document = self._load(document_id)
                transition = self._transition(document, "approve", review.reviewer_id)
                self._check_session(document, review)
                kind = payload_kind(payload)

                result = self._materializer.materialize(
                    document.to_dto(), payload, review.reviewer_id,
                )

                document.status = transition.to_state
                document.document_type = kind.value
                document.business_id = payload.business_id or document.business_id
                document.reviewed_by = review.reviewer_id
                document.reviewed_at = self._clock.now()
                document.created_invoice_id = result.invoice_id
                document.created_payment_id = result.payment_id
                document.created_delivery_note_id = result.delivery_note_id
                document.created_daily_entry_id = result.daily_entry_id
                document.updated_by_id = review.reviewer_id
                self._release(document)
                self._session.flush()

            tracking = result.price_tracking
            logger.info(
                "approval_materialized",
                extra={
                    "document_type": kind.value,
                    "invoice_id": result.invoice_id,
                    "payment_id": result.payment_id,
                    "daily_entry_id": result.daily_entry_id,
                    "price_items_recorded": tracking.recorded if tracking else 0,
                    "price_items_failed": tracking.failed if tracking else 0,
                    "price_alerts_raised": tracking.alerts_raised if tracking else 0,
                },
            )
            return ApprovalResult(document=document.to_dto(), materialization=result)

    def reject(self, review: ReviewSession, reason: str | None = None) -> Document:
        document_id = review.document_id
        with LogContext.bind(document_id=document_id, reviewer_id=review.reviewer_id):
            with self._transaction(document_id):
                document = self._load(document_id)
                transition = self._transition(document, "reject", review.reviewer_id)
                self._check_session(document, review)

                document.status = transition.to_state
                document.rejection_reason = reason
                document.reviewed_by = review.reviewer_id
                document.reviewed_at = self._clock.now()
                document.updated_by_id = review.reviewer_id
                self._release(document)
                self._session.flush()

            logger.info("document_rejected", extra={"reason": reason})
            return document.to_dto()

    def skip(self, review: ReviewSession) -> Document:
        """Hand the document back to the queue without deciding it."""
        document_id = review.document_id
        with LogContext.bind(document_id=document_id, reviewer_id=review.reviewer_id):
            with self._transaction(document_id):
                document = self._load(document_id)
                transition = self._transition(document, "skip", review.reviewer_id)

                document.status = transition.to_state
                document.updated_by_id = review.reviewer_id
                self._release(document)
                self._session.flush()

            logger.info("document_skipped")
            return document.to_dto()

    def delete(self, document_id: UUID, reviewer_id: UUID) -> None:
        """Remove an undecided document.  Ledger records are never touched."""
        with LogContext.bind(document_id=document_id, reviewer_id=reviewer_id):
            with self._transaction(document_id):
                document = self._load(document_id)
                self._transition(document, "delete", reviewer_id)
                previous = document.status
                self._session.delete(document)
                self._session.flush()

            logger.info("document_deleted", extra={"previous_status": previous})

    # ------------------------------------------------------------------
    # Queue
    # ------------------------------------------------------------------

    def list_documents(
        self,
        status: str = DocumentStatus.PENDING.value,
        business_id: UUID | None = None,
    ) -> tuple[Document, ...]:
        """Documents in the queue view, oldest first.

        ``status`` is a document status value or ``"all"``.
        """
        stmt = select(DocumentModel)
        if status != QUEUE_STATUS_ALL:
            stmt = stmt.where(DocumentModel.status == DocumentStatus(status).value)
        if business_id is not None:
            stmt = stmt.where(DocumentModel.business_id == business_id)
        stmt = stmt.order_by(DocumentModel.received_at, DocumentModel.id)
        return tuple(m.to_dto() for m in self._session.execute(stmt).scalars())

    def count_pending(self, business_id: UUID | None = None) -> int:
        stmt = select(func.count()).select_from(DocumentModel).where(
            DocumentModel.status == DocumentStatus.PENDING.value
        )
        if business_id is not None:
            stmt = stmt.where(DocumentModel.business_id == business_id)
        return self._session.execute(stmt).scalar_one()

    def next_pending(
        self,
        business_id: UUID | None = None,
        exclude: UUID | None = None,
    ) -> Document | None:
        """Oldest pending document, for auto-advancing after a decision."""
        stmt = select(DocumentModel).where(
            DocumentModel.status == DocumentStatus.PENDING.value
        )
        if business_id is not None:
            stmt = stmt.where(DocumentModel.business_id == business_id)
        if exclude is not None:
            stmt = stmt.where(DocumentModel.id != exclude)
        stmt = stmt.order_by(DocumentModel.received_at, DocumentModel.id).limit(1)
        document = self._session.execute(stmt).scalar_one_or_none()
        return document.to_dto() if document else None

    def release_expired_claims(self) -> int:
        """Return every ``reviewing`` document whose lease lapsed to ``pending``."""
        now = self._clock.now()
        try:
            candidates = self._session.execute(
                select(DocumentModel).where(
                    DocumentModel.status == DocumentStatus.REVIEWING.value
                )
            ).scalars().all()
            released = 0
            for document in candidates:
                if self._lease_active(document, now):
                    continue
                document.status = DocumentStatus.PENDING.value
                self._release(document)
                released += 1
            self._session.commit()
        except StaleDataError as exc:
            self._session.rollback()
            raise OptimisticLockError("Document", "expired-claims") from exc
        except Exception:
            self._session.rollback()
            raise

        if released:
            logger.info("expired_claims_released", extra={"count": released})
        return released
