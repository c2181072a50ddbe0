"""
Tests for PriceHistoryTracker.

Validates:
- First sighting creates a catalog item without an alert
- Price moves beyond tolerance raise an unread alert with the percent change
- Reviewer-matched items and trimmed names resolve to the same catalog row
- A failing line is rolled back alone; the rest of the batch is kept
- The comparison preview writes nothing
- Alert status changes only move forward
- Price history is ordered by document date, newest first
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from ledger_config.schema import IntakeConfig
from ledger_kernel.exceptions import (
    InvalidAlertTransitionError,
    PriceAlertNotFoundError,
    SupplierItemNotFoundError,
)
from ledger_modules.pricing.models import PriceAlertStatus, TrackedLine
from ledger_modules.pricing.orm import PriceAlertModel, SupplierItemModel, SupplierItemPriceModel
from ledger_modules.pricing.service import PriceHistoryTracker

MARCH_1 = date(2024, 3, 1)
MARCH_8 = date(2024, 3, 8)


@pytest.fixture
def record(tracker, business_id, supplier_id, actor_id):
    """Record lines for the default business and supplier."""

    def _record(*lines, document_date=MARCH_1, **kwargs):
        return tracker.record_line_items(
            business_id=business_id,
            supplier_id=supplier_id,
            lines=list(lines),
            document_date=document_date,
            actor_id=actor_id,
            **kwargs,
        )

    return _record


def _count(session, model) -> int:
    return session.execute(select(func.count()).select_from(model)).scalar_one()


class TestRecordLineItems:

    def test_first_sighting_creates_item_without_alert(self, record, tracker, business_id):
        result = record(TrackedLine("Tomatoes", Decimal("4.50"), Decimal("10")))

        assert result.recorded == 1
        assert result.items_created == 1
        assert result.alerts_raised == 0
        items = tracker.list_supplier_items(business_id)
        assert [i.item_name for i in items] == ["Tomatoes"]
        assert items[0].current_price == Decimal("4.50")
        assert items[0].last_price_date == MARCH_1

    def test_price_increase_raises_alert(self, record, tracker, business_id):
        record(TrackedLine("Tomatoes", Decimal("4.50")))
        document_id = uuid4()
        result = record(
            TrackedLine("Tomatoes", Decimal("4.80")),
            document_date=MARCH_8,
            document_id=document_id,
        )

        assert result.alerts_raised == 1
        assert result.items_created == 0
        alerts = tracker.list_alerts(business_id)
        assert len(alerts) == 1
        alert = alerts[0]
        assert alert.old_price == Decimal("4.50")
        assert alert.new_price == Decimal("4.80")
        assert alert.change_pct == Decimal("6.67")
        assert alert.status is PriceAlertStatus.UNREAD
        assert alert.document_id == document_id
        assert alert.document_date == MARCH_8
        assert tracker.list_supplier_items(business_id)[0].current_price == Decimal("4.80")

    def test_price_decrease_raises_negative_alert(self, record, tracker, business_id):
        record(TrackedLine("Flour", Decimal("10.00")))
        record(TrackedLine("Flour", Decimal("8.00")), document_date=MARCH_8)
        assert tracker.list_alerts(business_id)[0].change_pct == Decimal("-20.00")

    def test_change_within_tolerance_updates_price_silently(self, record, tracker, business_id):
        record(TrackedLine("Tomatoes", Decimal("4.50")))
        result = record(TrackedLine("Tomatoes", Decimal("4.51")), document_date=MARCH_8)

        assert result.alerts_raised == 0
        assert tracker.list_alerts(business_id) == ()
        assert tracker.list_supplier_items(business_id)[0].current_price == Decimal("4.51")

    def test_alert_threshold_around_one_cent(self, record, tracker, business_id):
        record(TrackedLine("Olive oil", Decimal("10.00")))
        quiet = record(TrackedLine("Olive oil", Decimal("10.005")), document_date=MARCH_8)
        assert quiet.alerts_raised == 0
        assert tracker.list_alerts(business_id) == ()

        record(TrackedLine("Butter", Decimal("10.00")))
        loud = record(TrackedLine("Butter", Decimal("10.02")), document_date=MARCH_8)
        assert loud.alerts_raised == 1
        alert = tracker.list_alerts(business_id)[0]
        assert alert.old_price == Decimal("10.00")
        assert alert.new_price == Decimal("10.02")
        assert alert.change_pct == Decimal("0.2")

    def test_min_change_pct_suppresses_small_moves(self, session, business_id, supplier_id, actor_id):
        tracker = PriceHistoryTracker(
            session, IntakeConfig(price_alert_min_change_pct=Decimal("10")),
        )
        for price, day in ((Decimal("4.50"), MARCH_1), (Decimal("4.80"), MARCH_8)):
            tracker.record_line_items(
                business_id, supplier_id, [TrackedLine("Tomatoes", price)], day, actor_id,
            )
        assert tracker.list_alerts(business_id) == ()

    def test_zero_previous_price_alerts_without_percent(self, record, tracker, business_id):
        record(TrackedLine("Sample", Decimal("0")))
        record(TrackedLine("Sample", Decimal("3.00")), document_date=MARCH_8)
        alert = tracker.list_alerts(business_id)[0]
        assert alert.old_price == Decimal("0")
        assert alert.change_pct is None

    def test_names_are_trimmed(self, record, tracker, business_id):
        record(TrackedLine("  Tomatoes ", Decimal("4.50")))
        result = record(TrackedLine("Tomatoes", Decimal("4.50")), document_date=MARCH_8)
        assert result.items_created == 0
        assert len(tracker.list_supplier_items(business_id)) == 1

    def test_matched_item_wins_over_name(self, record, tracker, business_id):
        first = record(TrackedLine("Cherry tomatoes 1kg", Decimal("9.00")))
        item_id = first.outcomes[0].supplier_item_id

        result = record(
            TrackedLine("CHERRY TOM", Decimal("9.90"), matched_supplier_item_id=item_id),
            document_date=MARCH_8,
        )

        assert result.outcomes[0].supplier_item_id == item_id
        assert result.alerts_raised == 1
        assert len(tracker.list_supplier_items(business_id)) == 1

    def test_untrackable_lines_skipped(self, record, session):
        result = record(
            TrackedLine("Delivery fee", None),
            TrackedLine("   ", Decimal("5")),
            TrackedLine(None, Decimal("5")),
        )
        assert result.skipped == 3
        assert result.outcomes == ()
        assert _count(session, SupplierItemPriceModel) == 0

    def test_failing_line_isolated(self, record, session, captured_logs):
        result = record(
            TrackedLine("Ghost", Decimal("1.00"), matched_supplier_item_id=uuid4()),
            TrackedLine("Tomatoes", Decimal("4.50")),
        )

        assert result.failed == 1
        assert result.recorded == 1
        failed = result.outcomes[0]
        assert not failed.succeeded
        assert "Supplier item not found" in failed.error
        assert _count(session, SupplierItemModel) == 1
        assert _count(session, SupplierItemPriceModel) == 1
        assert any(r["message"] == "price_tracking_item_failed" for r in captured_logs())

    def test_records_one_observation_per_line(self, record, session, tracker, business_id):
        record(TrackedLine("Tomatoes", Decimal("4.50"), Decimal("10")))
        record(TrackedLine("Tomatoes", Decimal("4.50"), Decimal("12")), document_date=MARCH_8)
        item_id = tracker.list_supplier_items(business_id)[0].id
        history = tracker.price_history(item_id)
        assert [h.quantity for h in history] == [Decimal("12"), Decimal("10")]
        assert _count(session, SupplierItemPriceModel) == 2

    def test_alert_logged(self, record, captured_logs):
        record(TrackedLine("Tomatoes", Decimal("4.50")))
        record(TrackedLine("Tomatoes", Decimal("5.00")), document_date=MARCH_8)
        raised = [r for r in captured_logs() if r["message"] == "price_alert_raised"]
        assert len(raised) == 1
        assert raised[0]["item_name"] == "Tomatoes"
        assert raised[0]["change_pct"] == "11.11"


class TestComparePreview:

    def test_preview_writes_nothing(self, record, tracker, session, business_id, supplier_id):
        record(TrackedLine("Tomatoes", Decimal("4.50")))
        before = _count(session, SupplierItemPriceModel)

        comparisons = tracker.compare_line_items(
            business_id,
            supplier_id,
            [
                TrackedLine("Tomatoes", Decimal("5.40")),
                TrackedLine("Basil", Decimal("2.00")),
                TrackedLine("No price", None),
            ],
        )

        assert len(comparisons) == 2
        tomatoes, basil = comparisons
        assert tomatoes.previous_price == Decimal("4.50")
        assert tomatoes.change_pct == Decimal("20.00")
        assert tomatoes.would_alert
        assert not tomatoes.is_new_item
        assert basil.is_new_item
        assert basil.previous_price is None
        assert not basil.would_alert
        assert _count(session, SupplierItemPriceModel) == before
        assert _count(session, PriceAlertModel) == 0


class TestAlertStatus:

    @pytest.fixture
    def alert(self, record, tracker, business_id):
        record(TrackedLine("Tomatoes", Decimal("4.50")))
        record(TrackedLine("Tomatoes", Decimal("5.00")), document_date=MARCH_8)
        return tracker.list_alerts(business_id)[0]

    def test_mark_read(self, tracker, alert, actor_id, business_id):
        updated = tracker.mark_alert_read(alert.id, actor_id)
        assert updated.status is PriceAlertStatus.READ
        assert tracker.list_alerts(business_id, PriceAlertStatus.UNREAD) == ()
        assert len(tracker.list_alerts(business_id, PriceAlertStatus.READ)) == 1

    def test_dismiss_from_unread_and_read(self, tracker, alert, actor_id):
        tracker.mark_alert_read(alert.id, actor_id)
        assert tracker.dismiss_alert(alert.id, actor_id).status is PriceAlertStatus.DISMISSED

    def test_dismissed_is_final(self, tracker, alert, actor_id):
        tracker.dismiss_alert(alert.id, actor_id)
        with pytest.raises(InvalidAlertTransitionError) as exc_info:
            tracker.mark_alert_read(alert.id, actor_id)
        assert exc_info.value.from_status == "dismissed"
        assert exc_info.value.to_status == "read"

    def test_unknown_alert(self, tracker, actor_id):
        with pytest.raises(PriceAlertNotFoundError):
            tracker.dismiss_alert(uuid4(), actor_id)


class TestPriceHistory:

    def test_newest_document_date_first(self, record, tracker, business_id):
        record(TrackedLine("Tomatoes", Decimal("4.80")), document_date=MARCH_8)
        record(TrackedLine("Tomatoes", Decimal("4.50")), document_date=MARCH_1)
        item_id = tracker.list_supplier_items(business_id)[0].id

        history = tracker.price_history(item_id)
        assert [h.document_date for h in history] == [MARCH_8, MARCH_1]

    def test_unknown_item(self, tracker):
        with pytest.raises(SupplierItemNotFoundError):
            tracker.price_history(uuid4())

    def test_items_scoped_by_supplier(self, record, tracker, business_id, supplier_id, actor_id):
        record(TrackedLine("Tomatoes", Decimal("4.50")))
        other_supplier = uuid4()
        tracker.record_line_items(
            business_id, other_supplier, [TrackedLine("Tomatoes", Decimal("5.00"))],
            MARCH_1, actor_id,
        )
        assert len(tracker.list_supplier_items(business_id)) == 2
        assert len(tracker.list_supplier_items(business_id, supplier_id)) == 1
        assert tracker.list_alerts(business_id) == ()
