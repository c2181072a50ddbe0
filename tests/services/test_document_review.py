"""
Tests for DocumentReviewService.

Validates:
- Registration and the review queue (order, filters, counts, next pending)
- Claim leases: exclusive while active, renewable, reclaimable after expiry
- Approval: one transaction for ledger rows, price history and status;
  failures leave the document reviewing with nothing written
- Reject / skip / delete and terminal-state protection
- Optimistic locking against stale review sessions and concurrent writers
- Expired claim release
"""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select, update

from ledger_kernel.exceptions import (
    DocumentAlreadyResolvedError,
    DocumentClaimedError,
    DocumentNotFoundError,
    DuplicateDailyEntryError,
    InvalidDocumentTransitionError,
    MissingRequiredFieldError,
    OptimisticLockError,
)
from ledger_modules.documents.models import (
    DocumentSource,
    DocumentStatus,
    DocumentType,
    ReviewSession,
)
from ledger_modules.documents.orm import DocumentModel
from ledger_modules.ledger.materializer import LedgerMaterializer
from ledger_modules.ledger.models import (
    DailyEntryApproval,
    InvoiceApproval,
    LineItem,
    PaymentApproval,
    SummaryApproval,
    SummaryDeliveryNoteLine,
)
from ledger_modules.ledger.orm import DailyEntryModel, InvoiceModel, PaymentModel
from ledger_modules.pricing.orm import SupplierItemModel, SupplierItemPriceModel
from ledger_modules.pricing.service import PriceHistoryTracker
from ledger_services.document_review import QUEUE_STATUS_ALL, DocumentReviewService


def _count(session, model) -> int:
    return session.execute(select(func.count()).select_from(model)).scalar_one()


@pytest.fixture
def invoice_payload(supplier_id):
    return InvoiceApproval(
        supplier_id=supplier_id,
        document_date=date(2024, 3, 5),
        total_amount=Decimal("118.00"),
        document_number="INV-1001",
        is_paid=True,
        line_items=(LineItem("Tomatoes", Decimal("10"), Decimal("4.50")),),
    )


@pytest.fixture
def claimed(register_document, review_service, reviewer_id, sample_candidate):
    """A registered document held by ``reviewer_id``."""
    document = register_document(candidate=sample_candidate)
    return review_service.select_document(document.id, reviewer_id)


# =============================================================================
# Registration and queue
# =============================================================================


class TestRegistration:

    def test_registered_pending(self, review_service, actor_id, business_id, clock, sample_candidate):
        document = review_service.register_document(
            actor_id=actor_id,
            source=DocumentSource.WHATSAPP,
            business_id=business_id,
            candidate=sample_candidate,
            document_type=DocumentType.INVOICE,
        )
        assert document.status is DocumentStatus.PENDING
        assert document.source is DocumentSource.WHATSAPP
        assert document.received_at == clock.now()
        assert document.version == 1
        assert document.document_type is DocumentType.INVOICE
        assert document.candidate == sample_candidate
        assert document.claimed_by is None

    def test_without_business(self, register_document):
        document = register_document(business_id=None)
        assert document.business_id is None

    def test_logs_registration(self, register_document, captured_logs):
        document = register_document()
        logged = [r for r in captured_logs() if r["message"] == "document_registered"]
        assert logged[-1]["document_id"] == str(document.id)
        assert logged[-1]["source"] == "telegram"


class TestQueue:

    def test_oldest_first(self, register_document, review_service):
        first = register_document()
        second = register_document()
        third = register_document()
        assert [d.id for d in review_service.list_documents()] == [first.id, second.id, third.id]

    def test_status_filter_and_all(self, register_document, review_service, reviewer_id):
        pending = register_document()
        reviewing = register_document()
        review_service.select_document(reviewing.id, reviewer_id)

        assert [d.id for d in review_service.list_documents()] == [pending.id]
        assert [d.id for d in review_service.list_documents("reviewing")] == [reviewing.id]
        assert len(review_service.list_documents(QUEUE_STATUS_ALL)) == 2

    def test_unknown_status_rejected(self, review_service):
        with pytest.raises(ValueError):
            review_service.list_documents("archived")

    def test_business_filter(self, register_document, review_service, business_id):
        register_document()
        register_document(business_id=uuid4())
        assert len(review_service.list_documents(business_id=business_id)) == 1
        assert review_service.count_pending() == 2
        assert review_service.count_pending(business_id) == 1

    def test_next_pending(self, register_document, review_service, reviewer_id):
        first = register_document()
        second = register_document()
        assert review_service.next_pending().id == first.id
        assert review_service.next_pending(exclude=first.id).id == second.id

        review_service.select_document(first.id, reviewer_id)
        assert review_service.next_pending().id == second.id

    def test_next_pending_empty(self, review_service):
        assert review_service.next_pending() is None


# =============================================================================
# Claims
# =============================================================================


class TestSelect:

    def test_select_claims(self, register_document, review_service, reviewer_id, business_id, clock):
        document = register_document()
        review = review_service.select_document(document.id, reviewer_id)

        assert review.document.status is DocumentStatus.REVIEWING
        assert review.document.claimed_by == reviewer_id
        assert review.reviewer_id == reviewer_id
        assert review.business_id == business_id
        assert review.claim_expires_at == clock.now() + timedelta(minutes=15)
        assert review.document.version == 2

    def test_unknown_document(self, review_service, reviewer_id):
        with pytest.raises(DocumentNotFoundError):
            review_service.select_document(uuid4(), reviewer_id)

    def test_active_claim_blocks_other_reviewer(self, claimed, review_service, other_reviewer_id):
        with pytest.raises(DocumentClaimedError) as exc_info:
            review_service.select_document(claimed.document_id, other_reviewer_id)
        assert exc_info.value.code == "DOCUMENT_CLAIMED"

    def test_same_reviewer_renews(self, claimed, review_service, reviewer_id, clock):
        clock.advance_minutes(10)
        renewed = review_service.select_document(claimed.document_id, reviewer_id)
        assert renewed.claim_expires_at == clock.now() + timedelta(minutes=15)
        assert renewed.claim_expires_at > claimed.claim_expires_at

    def test_expired_claim_can_be_taken(self, claimed, review_service, other_reviewer_id, clock):
        clock.advance_minutes(16)
        review = review_service.select_document(claimed.document_id, other_reviewer_id)
        assert review.document.claimed_by == other_reviewer_id

    def test_logs_claim_with_context(self, register_document, review_service, reviewer_id, captured_logs):
        document = register_document()
        review_service.select_document(document.id, reviewer_id)
        claimed_logs = [r for r in captured_logs() if r["message"] == "document_claimed"]
        assert claimed_logs[-1]["document_id"] == str(document.id)
        assert claimed_logs[-1]["reviewer_id"] == str(reviewer_id)


# =============================================================================
# Approval
# =============================================================================


class TestApprove:

    def test_invoice_approval(self, claimed, review_service, invoice_payload, session, reviewer_id, clock):
        result = review_service.approve(claimed, invoice_payload)

        document = result.document
        assert document.status is DocumentStatus.APPROVED
        assert document.document_type is DocumentType.INVOICE
        assert document.reviewed_by == reviewer_id
        assert document.reviewed_at == clock.now()
        assert document.claimed_by is None
        assert document.claim_expires_at is None
        assert document.created_invoice_id == result.materialization.invoice_id
        assert document.created_payment_id == result.materialization.payment_id
        assert result.materialization.price_tracking.recorded == 1

        session.expire_all()
        stored = session.get(DocumentModel, claimed.document_id)
        assert stored.status == "approved"
        assert _count(session, InvoiceModel) == 1
        assert _count(session, PaymentModel) == 1
        assert _count(session, SupplierItemPriceModel) == 1

    def test_payload_business_reassigns_document(self, claimed, review_service, invoice_payload):
        new_business = uuid4()
        payload = InvoiceApproval(
            supplier_id=invoice_payload.supplier_id,
            document_date=invoice_payload.document_date,
            total_amount=invoice_payload.total_amount,
            business_id=new_business,
        )
        result = review_service.approve(claimed, payload)
        assert result.document.business_id == new_business

    def test_payment_approval(self, claimed, review_service):
        result = review_service.approve(claimed, PaymentApproval(document_date=date(2024, 3, 5)))
        assert result.document.document_type is DocumentType.PAYMENT
        assert result.document.created_payment_id == result.materialization.payment_id
        assert result.document.created_invoice_id is None

    def test_summary_records_first_delivery_note(self, claimed, review_service, supplier_id):
        payload = SummaryApproval(
            supplier_id=supplier_id,
            document_date=date(2024, 3, 31),
            total_amount=Decimal("100"),
            delivery_notes=(
                SummaryDeliveryNoteLine("DN-1", date(2024, 3, 2), Decimal("40")),
                SummaryDeliveryNoteLine("DN-2", date(2024, 3, 9), Decimal("60")),
            ),
        )
        result = review_service.approve(claimed, payload)
        ids = result.materialization.delivery_note_ids
        assert len(ids) == 2
        assert result.document.created_delivery_note_id == ids[0]
        assert result.document.created_invoice_id == result.materialization.invoice_id

    def test_resolved_document_cannot_be_approved_again(self, claimed, review_service, invoice_payload, session):
        review_service.approve(claimed, invoice_payload)
        with pytest.raises(DocumentAlreadyResolvedError):
            review_service.approve(claimed, invoice_payload)
        assert _count(session, InvoiceModel) == 1

    def test_resolved_document_cannot_be_selected(self, claimed, review_service, invoice_payload, reviewer_id):
        review_service.approve(claimed, invoice_payload)
        with pytest.raises(DocumentAlreadyResolvedError):
            review_service.select_document(claimed.document_id, reviewer_id)

    def test_pending_document_cannot_be_approved(self, register_document, review_service, reviewer_id, invoice_payload, clock):
        document = register_document()
        review = ReviewSession(
            document=document,
            reviewer_id=reviewer_id,
            business_id=document.business_id,
            claim_expires_at=clock.now(),
        )
        with pytest.raises(InvalidDocumentTransitionError):
            review_service.approve(review, invoice_payload)

    def test_other_reviewer_cannot_approve(self, claimed, review_service, other_reviewer_id, invoice_payload, session):
        intruder = ReviewSession(
            document=claimed.document,
            reviewer_id=other_reviewer_id,
            business_id=claimed.business_id,
            claim_expires_at=claimed.claim_expires_at,
        )
        with pytest.raises(DocumentClaimedError):
            review_service.approve(intruder, invoice_payload)
        assert _count(session, InvoiceModel) == 0

    def test_lost_claim_cannot_approve(
        self, claimed, review_service, other_reviewer_id, invoice_payload, clock, session,
    ):
        clock.advance_minutes(16)
        review_service.select_document(claimed.document_id, other_reviewer_id)
        with pytest.raises(DocumentClaimedError):
            review_service.approve(claimed, invoice_payload)
        assert _count(session, InvoiceModel) == 0

    def test_validation_failure_keeps_reviewing(self, claimed, review_service, invoice_payload, session):
        broken = InvoiceApproval(supplier_id=None, document_date=date(2024, 3, 5), total_amount=Decimal("1"))
        with pytest.raises(MissingRequiredFieldError):
            review_service.approve(claimed, broken)

        assert review_service.list_documents("reviewing")[0].id == claimed.document_id
        assert _count(session, InvoiceModel) == 0

        # The same session can still approve once the payload is fixed.
        result = review_service.approve(claimed, invoice_payload)
        assert result.document.status is DocumentStatus.APPROVED

    def test_failure_after_ledger_writes_rolls_back_everything(
        self, claimed, session, config, clock, invoice_payload, captured_logs,
    ):
        class ExplodingTracker(PriceHistoryTracker):
            def record_line_items(self, *args, **kwargs):
                raise RuntimeError("price store unavailable")

        service = DocumentReviewService(
            session, config, clock,
            materializer=LedgerMaterializer(session, config, ExplodingTracker(session, config)),
        )
        with pytest.raises(RuntimeError, match="price store unavailable"):
            service.approve(claimed, invoice_payload)

        assert _count(session, InvoiceModel) == 0
        assert _count(session, PaymentModel) == 0
        assert _count(session, SupplierItemModel) == 0
        stored = session.get(DocumentModel, claimed.document_id)
        assert stored.status == "reviewing"
        assert stored.created_invoice_id is None
        assert any(r["message"] == "document_action_rolled_back" for r in captured_logs())

    def test_failing_price_line_does_not_block_approval(
        self, claimed, review_service, invoice_payload, session,
    ):
        payload = InvoiceApproval(
            supplier_id=invoice_payload.supplier_id,
            document_date=invoice_payload.document_date,
            total_amount=invoice_payload.total_amount,
            line_items=(
                LineItem("Ghost", unit_price=Decimal("1"), matched_supplier_item_id=uuid4()),
                LineItem("Tomatoes", unit_price=Decimal("4.50")),
            ),
        )
        result = review_service.approve(claimed, payload)

        tracking = result.materialization.price_tracking
        assert (tracking.recorded, tracking.failed) == (1, 1)
        assert result.document.status is DocumentStatus.APPROVED
        assert _count(session, SupplierItemPriceModel) == 1

    def test_duplicate_daily_entry_keeps_reviewing(
        self, register_document, review_service, reviewer_id, session,
    ):
        payload = DailyEntryApproval(entry_date=date(2024, 3, 5), total_register=Decimal("4200"))
        first = review_service.select_document(register_document().id, reviewer_id)
        review_service.approve(first, payload)

        second = review_service.select_document(register_document().id, reviewer_id)
        with pytest.raises(DuplicateDailyEntryError):
            review_service.approve(second, payload)

        assert _count(session, DailyEntryModel) == 1
        assert review_service.list_documents("reviewing")[0].id == second.document_id

    def test_logs_approval(self, claimed, review_service, invoice_payload, captured_logs):
        review_service.approve(claimed, invoice_payload)
        approved = [r for r in captured_logs() if r["message"] == "approval_materialized"]
        assert approved[-1]["document_id"] == str(claimed.document_id)
        assert approved[-1]["document_type"] == "invoice"
        assert approved[-1]["price_items_recorded"] == 1


class TestOptimisticLocking:

    def test_stale_review_session(self, claimed, review_service, reviewer_id, invoice_payload, session):
        review_service.select_document(claimed.document_id, reviewer_id)
        with pytest.raises(OptimisticLockError):
            review_service.approve(claimed, invoice_payload)
        assert _count(session, InvoiceModel) == 0

    def test_concurrent_writer(self, claimed, review_service, invoice_payload, session):
        table = DocumentModel.__table__
        session.execute(
            update(table)
            .where(table.c.id == str(claimed.document_id))
            .values(version=table.c.version + 1)
        )
        session.commit()

        with pytest.raises(OptimisticLockError):
            review_service.approve(claimed, invoice_payload)
        assert _count(session, InvoiceModel) == 0


# =============================================================================
# Reject / skip / delete
# =============================================================================


class TestReject:

    def test_reject(self, claimed, review_service, reviewer_id, session):
        document = review_service.reject(claimed, "Duplicate of INV-1000")
        assert document.status is DocumentStatus.REJECTED
        assert document.rejection_reason == "Duplicate of INV-1000"
        assert document.reviewed_by == reviewer_id
        assert document.claimed_by is None
        assert _count(session, InvoiceModel) == 0

    def test_rejected_is_terminal(self, claimed, review_service, invoice_payload):
        review_service.reject(claimed)
        with pytest.raises(DocumentAlreadyResolvedError):
            review_service.approve(claimed, invoice_payload)
        with pytest.raises(DocumentAlreadyResolvedError):
            review_service.reject(claimed)


class TestSkip:

    def test_skip_returns_to_queue(self, claimed, review_service, other_reviewer_id):
        document = review_service.skip(claimed)
        assert document.status is DocumentStatus.PENDING
        assert document.claimed_by is None

        # Another reviewer can pick it up straight away.
        review = review_service.select_document(claimed.document_id, other_reviewer_id)
        assert review.document.claimed_by == other_reviewer_id

    def test_skip_requires_claim(self, claimed, review_service, other_reviewer_id):
        intruder = ReviewSession(
            document=claimed.document,
            reviewer_id=other_reviewer_id,
            business_id=claimed.business_id,
            claim_expires_at=claimed.claim_expires_at,
        )
        with pytest.raises(DocumentClaimedError):
            review_service.skip(intruder)


class TestDelete:

    def test_delete_pending(self, register_document, review_service, reviewer_id):
        document = register_document()
        review_service.delete(document.id, reviewer_id)
        with pytest.raises(DocumentNotFoundError):
            review_service.select_document(document.id, reviewer_id)
        assert review_service.count_pending() == 0

    def test_delete_own_claim(self, claimed, review_service, reviewer_id):
        review_service.delete(claimed.document_id, reviewer_id)
        assert review_service.list_documents(QUEUE_STATUS_ALL) == ()

    def test_delete_blocked_by_other_claim(self, claimed, review_service, other_reviewer_id):
        with pytest.raises(DocumentClaimedError):
            review_service.delete(claimed.document_id, other_reviewer_id)

    def test_delete_resolved_refused(self, claimed, review_service, reviewer_id, invoice_payload, session):
        review_service.approve(claimed, invoice_payload)
        with pytest.raises(DocumentAlreadyResolvedError):
            review_service.delete(claimed.document_id, reviewer_id)
        assert _count(session, InvoiceModel) == 1


# =============================================================================
# Lease expiry
# =============================================================================


class TestReleaseExpiredClaims:

    def test_releases_only_expired(self, register_document, review_service, reviewer_id, other_reviewer_id, clock):
        stale = register_document()
        review_service.select_document(stale.id, reviewer_id)
        clock.advance_minutes(10)
        fresh = register_document()
        review_service.select_document(fresh.id, other_reviewer_id)
        clock.advance_minutes(6)

        assert review_service.release_expired_claims() == 1
        assert [d.id for d in review_service.list_documents()] == [stale.id]
        assert [d.id for d in review_service.list_documents("reviewing")] == [fresh.id]

    def test_nothing_to_release(self, claimed, review_service):
        assert review_service.release_expired_claims() == 0
