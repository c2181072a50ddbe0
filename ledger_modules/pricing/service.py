"""
Price History Tracker (``ledger_modules.pricing.service``).

Responsibility
--------------
Resolves reviewed line items to supplier catalog entries, appends a price
observation for each, keeps the catalog's current price up to date, and
raises a price alert when the price moved beyond tolerance.  Also serves
the price-tracking view: alert lists, alert status changes, per-item
price history, and a read-only comparison preview for the review form.

Architecture position
---------------------
**Modules layer** -- service.  Threshold logic is delegated to
``ledger_engines.price_drift``; persistence goes through the caller's
``Session``.

Invariants enforced
-------------------
* The previous price is read BEFORE the catalog row is mutated.
* A catalog item seen for the first time never raises an alert.
* Each line is recorded inside its own SAVEPOINT: a failing line is
  rolled back alone, logged, and reported in the result; later lines and
  the enclosing approval continue.
* ``record_line_items`` never commits.  The caller owns the transaction.
  The alert status methods own theirs (commit on success, rollback on
  failure).

Failure modes
-------------
* ``SupplierItemNotFoundError`` for a ``matched_supplier_item_id`` that
  does not exist for the business (isolated per line during recording).
* ``PriceAlertNotFoundError`` / ``InvalidAlertTransitionError`` from the
  alert status methods.

Audit relevance
---------------
``price_alert_raised`` and ``price_tracking_item_failed`` are logged with
item, supplier and document identifiers.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_config.schema import IntakeConfig
from ledger_engines.price_drift import evaluate_price_change
from ledger_kernel.exceptions import (
    InvalidAlertTransitionError,
    PriceAlertNotFoundError,
    SupplierItemNotFoundError,
)
from ledger_kernel.logging_config import get_logger
from ledger_modules.pricing.models import (
    PriceAlert,
    PriceAlertStatus,
    PriceComparison,
    PriceTrackingResult,
    SupplierItem,
    SupplierItemPrice,
    TrackedLine,
    TrackedLineOutcome,
)
from ledger_modules.pricing.orm import (
    PriceAlertModel,
    SupplierItemModel,
    SupplierItemPriceModel,
)
from ledger_modules.pricing.workflows import PRICE_ALERT_WORKFLOW

logger = get_logger("modules.pricing.service")


class PriceHistoryTracker:
    """
    Maintains supplier price history and price alerts.

    Contract
    --------
    * ``record_line_items`` writes through the session it was given and
      returns a ``PriceTrackingResult``; it never raises for a single bad
      line.
    * Read methods return frozen DTOs.
    """

    def __init__(self, session: Session, config: IntakeConfig | None = None):
        self._session = session
        self._config = config or IntakeConfig()

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record_line_items(
        self,
        business_id: UUID,
        supplier_id: UUID,
        lines: Sequence[TrackedLine],
        document_date: date,
        actor_id: UUID,
        invoice_id: UUID | None = None,
        document_id: UUID | None = None,
    ) -> PriceTrackingResult:
        """
        Record one price observation per trackable line.

        Lines without a description or unit price are skipped.
        """
        outcomes: list[TrackedLineOutcome] = []
        skipped = 0

        for line in lines:
            if not line.is_trackable:
                skipped += 1
                continue

            savepoint = self._session.begin_nested()
            try:
                outcome = self._record_line(
                    business_id, supplier_id, line, document_date,
                    actor_id, invoice_id, document_id,
                )
                savepoint.commit()
            except Exception as exc:
                savepoint.rollback()
                logger.warning(
                    "price_tracking_item_failed",
                    exc_info=True,
                    extra={
                        "item_name": line.item_name,
                        "supplier_id": str(supplier_id),
                        "source_document_id": str(document_id) if document_id else None,
                    },
                )
                outcome = TrackedLineOutcome(
                    item_name=line.item_name,
                    supplier_item_id=line.matched_supplier_item_id,
                    error=str(exc),
                )
            outcomes.append(outcome)

        result = PriceTrackingResult(outcomes=tuple(outcomes), skipped=skipped)
        logger.info(
            "price_tracking_completed",
            extra={
                "supplier_id": str(supplier_id),
                "recorded": result.recorded,
                "failed": result.failed,
                "skipped": result.skipped,
                "alerts_raised": result.alerts_raised,
            },
        )
        return result

    def _record_line(
        self,
        business_id: UUID,
        supplier_id: UUID,
        line: TrackedLine,
        document_date: date,
        actor_id: UUID,
        invoice_id: UUID | None,
        document_id: UUID | None,
    ) -> TrackedLineOutcome:
        item, created = self._resolve_item(business_id, supplier_id, line, document_date, actor_id)
        old_price = None if created else item.current_price
        new_price = line.unit_price

        self._session.add(
            SupplierItemPriceModel(
                supplier_item_id=item.id,
                price=new_price,
                quantity=line.quantity,
                invoice_id=invoice_id,
                document_id=document_id,
                document_date=document_date,
                created_by_id=actor_id,
            )
        )
        item.current_price = new_price
        item.last_price_date = document_date
        item.updated_by_id = actor_id

        change = evaluate_price_change(
            old_price,
            new_price,
            tolerance=self._config.price_alert_tolerance,
            min_change_pct=self._config.price_alert_min_change_pct,
        )

        alert_id = None
        if change.should_alert:
            alert_id = uuid4()
            self._session.add(
                PriceAlertModel(
                    id=alert_id,
                    business_id=business_id,
                    supplier_item_id=item.id,
                    supplier_id=supplier_id,
                    document_id=document_id,
                    old_price=old_price,
                    new_price=new_price,
                    change_pct=change.change_pct,
                    document_date=document_date,
                    status=PriceAlertStatus.UNREAD.value,
                    created_by_id=actor_id,
                )
            )
            logger.info(
                "price_alert_raised",
                extra={
                    "alert_id": str(alert_id),
                    "supplier_item_id": str(item.id),
                    "item_name": item.item_name,
                    "old_price": old_price,
                    "new_price": new_price,
                    "change_pct": change.change_pct,
                },
            )

        self._session.flush()
        return TrackedLineOutcome(
            item_name=item.item_name,
            supplier_item_id=item.id,
            created_item=created,
            alert_id=alert_id,
        )

    def _resolve_item(
        self,
        business_id: UUID,
        supplier_id: UUID,
        line: TrackedLine,
        document_date: date,
        actor_id: UUID,
    ) -> tuple[SupplierItemModel, bool]:
        """Return (catalog item, created?) for a line."""
        if line.matched_supplier_item_id is not None:
            item = self._session.get(SupplierItemModel, line.matched_supplier_item_id)
            if item is None or item.business_id != business_id:
                raise SupplierItemNotFoundError(str(line.matched_supplier_item_id))
            return item, False

        item = self._find_item(business_id, supplier_id, line.item_name)
        if item is not None:
            return item, False

        item = SupplierItemModel(
            id=uuid4(),
            business_id=business_id,
            supplier_id=supplier_id,
            item_name=line.item_name,
            current_price=line.unit_price,
            last_price_date=document_date,
            created_by_id=actor_id,
        )
        self._session.add(item)
        self._session.flush()
        logger.debug(
            "supplier_item_created",
            extra={"supplier_item_id": str(item.id), "item_name": item.item_name},
        )
        return item, True

    def _find_item(
        self, business_id: UUID, supplier_id: UUID, item_name: str,
    ) -> SupplierItemModel | None:
        return self._session.execute(
            select(SupplierItemModel).where(
                SupplierItemModel.business_id == business_id,
                SupplierItemModel.supplier_id == supplier_id,
                SupplierItemModel.item_name == item_name,
            )
        ).scalar_one_or_none()

    # ------------------------------------------------------------------
    # Preview
    # ------------------------------------------------------------------

    def compare_line_items(
        self,
        business_id: UUID,
        supplier_id: UUID,
        lines: Sequence[TrackedLine],
    ) -> tuple[PriceComparison, ...]:
        """Show how each trackable line compares to the catalog. No writes."""
        comparisons: list[PriceComparison] = []
        for line in lines:
            if not line.is_trackable:
                continue
            if line.matched_supplier_item_id is not None:
                item = self._session.get(SupplierItemModel, line.matched_supplier_item_id)
            else:
                item = self._find_item(business_id, supplier_id, line.item_name)

            previous = item.current_price if item is not None else None
            change = evaluate_price_change(
                previous,
                line.unit_price,
                tolerance=self._config.price_alert_tolerance,
                min_change_pct=self._config.price_alert_min_change_pct,
            )
            comparisons.append(
                PriceComparison(
                    item_description=line.item_name,
                    current_price=line.unit_price,
                    previous_price=previous,
                    change_pct=change.change_pct,
                    is_new_item=item is None,
                    would_alert=change.should_alert,
                    supplier_item_id=item.id if item is not None else None,
                )
            )
        return tuple(comparisons)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_alerts(
        self,
        business_id: UUID,
        status: PriceAlertStatus | None = None,
    ) -> tuple[PriceAlert, ...]:
        """Alerts for a business, newest first, optionally filtered by status."""
        stmt = select(PriceAlertModel).where(PriceAlertModel.business_id == business_id)
        if status is not None:
            stmt = stmt.where(PriceAlertModel.status == status.value)
        stmt = stmt.order_by(PriceAlertModel.created_at.desc(), PriceAlertModel.document_date.desc())
        return tuple(m.to_dto() for m in self._session.execute(stmt).scalars())

    def list_supplier_items(
        self,
        business_id: UUID,
        supplier_id: UUID | None = None,
    ) -> tuple[SupplierItem, ...]:
        stmt = select(SupplierItemModel).where(SupplierItemModel.business_id == business_id)
        if supplier_id is not None:
            stmt = stmt.where(SupplierItemModel.supplier_id == supplier_id)
        stmt = stmt.order_by(SupplierItemModel.item_name)
        return tuple(m.to_dto() for m in self._session.execute(stmt).scalars())

    def price_history(self, supplier_item_id: UUID) -> tuple[SupplierItemPrice, ...]:
        """Price observations for one item, most recent document date first."""
        if self._session.get(SupplierItemModel, supplier_item_id) is None:
            raise SupplierItemNotFoundError(str(supplier_item_id))
        stmt = (
            select(SupplierItemPriceModel)
            .where(SupplierItemPriceModel.supplier_item_id == supplier_item_id)
            .order_by(
                SupplierItemPriceModel.document_date.desc(),
                SupplierItemPriceModel.created_at.desc(),
            )
        )
        return tuple(m.to_dto() for m in self._session.execute(stmt).scalars())

    # ------------------------------------------------------------------
    # Alert status
    # ------------------------------------------------------------------

    def mark_alert_read(self, alert_id: UUID, actor_id: UUID) -> PriceAlert:
        return self._transition_alert(alert_id, "mark_read", actor_id)

    def dismiss_alert(self, alert_id: UUID, actor_id: UUID) -> PriceAlert:
        return self._transition_alert(alert_id, "dismiss", actor_id)

    def _transition_alert(self, alert_id: UUID, action: str, actor_id: UUID) -> PriceAlert:
        try:
            alert = self._session.get(PriceAlertModel, alert_id)
            if alert is None:
                raise PriceAlertNotFoundError(str(alert_id))
            transition = PRICE_ALERT_WORKFLOW.find_transition(alert.status, action)
            if transition is None:
                target = "read" if action == "mark_read" else "dismissed"
                raise InvalidAlertTransitionError(str(alert_id), alert.status, target)

            alert.status = transition.to_state
            alert.updated_by_id = actor_id
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "price_alert_status_changed",
            extra={"alert_id": str(alert_id), "status": alert.status},
        )
        return alert.to_dto()
