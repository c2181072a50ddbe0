"""
Module: ledger_engines.installments
Responsibility:
    Turn the payment methods a reviewer entered for a document into dated,
    amounted payment split legs, and build or rebalance even installment
    schedules for the review form.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Uses
    ``ledger_engines.billing_cycle`` for card-based due dates.

Invariants enforced:
    - All arithmetic is Decimal, quantized to currency places with
      ROUND_HALF_UP.
    - ``SplitPlan.total`` is the exact sum of the emitted split amounts.
      The document's extracted total never overrides what was entered.
    - Explicit installment overrides are emitted verbatim, numbered
      1..N with ``installments_count = N``.
    - Schedules and rebalanced schedules always sum to their total; the
      last installment absorbs rounding.

Failure modes:
    - InstallmentMismatchError when overrides do not sum to their method's
      amount within one currency unit tolerance.
    - ValueError for non-positive installment counts or bad indices.

Usage:
    plan = split_payment(
        reference_date=date(2024, 3, 20),
        methods=(PaymentMethodEntry("credit_card", Decimal("300"), 3, card_id),),
        card_billing_days={card_id: 15},
    )
    plan.splits[0].due_date  # date(2024, 4, 15)
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from ledger_engines.billing_cycle import add_months, calculate_due_date
from ledger_engines.tracer import traced_engine
from ledger_kernel.db.types import (
    CURRENCY_DECIMAL_PLACES,
    CURRENCY_TOLERANCE,
    amounts_match,
    floor_money,
    round_money,
)
from ledger_kernel.exceptions import InstallmentMismatchError

CREDIT_CARD_METHOD = "credit_card"


@dataclass(frozen=True)
class InstallmentOverride:
    """One reviewer-edited installment: amount and due date taken as given."""

    amount: Decimal
    due_date: date


@dataclass(frozen=True)
class PaymentMethodEntry:
    """
    One payment method line from the review form.

    Contract: frozen, validated at construction.
    Guarantees: ``installments >= 1``; ``method`` is non-empty.
    Non-goals: does not check that ``credit_card_id`` belongs to the
    business (the materializer resolves cards per business).
    """

    method: str
    amount: Decimal
    installments: int = 1
    credit_card_id: UUID | None = None
    check_number: str | None = None
    overrides: tuple[InstallmentOverride, ...] = ()

    def __post_init__(self) -> None:
        if not self.method:
            raise ValueError("Payment method is required")
        if self.installments < 1:
            raise ValueError(f"installments must be >= 1, got {self.installments}")


@dataclass(frozen=True)
class PlannedSplit:
    """A single payment split leg ready to be persisted."""

    payment_method: str
    amount: Decimal
    installments_count: int
    installment_number: int
    due_date: date
    credit_card_id: UUID | None = None
    check_number: str | None = None


@dataclass(frozen=True)
class SplitPlan:
    """All split legs for one payment, in method order."""

    splits: tuple[PlannedSplit, ...]
    total: Decimal


@dataclass(frozen=True)
class ScheduledInstallment:
    """One row of an installment schedule shown to the reviewer."""

    number: int
    due_date: date
    amount: Decimal


def _first_due_date(
    entry: PaymentMethodEntry,
    reference_date: date,
    card_billing_days: Mapping[UUID, int],
) -> date:
    if entry.method == CREDIT_CARD_METHOD and entry.credit_card_id in card_billing_days:
        return calculate_due_date(
            reference_date=reference_date,
            billing_day=card_billing_days[entry.credit_card_id],
        )
    return reference_date


def _override_splits(
    entry: PaymentMethodEntry,
    places: int,
    tolerance: Decimal,
) -> list[PlannedSplit]:
    amounts = [round_money(o.amount, places) for o in entry.overrides]
    expected = round_money(entry.amount, places)
    actual = sum(amounts, Decimal("0"))
    if not amounts_match(actual, expected, tolerance):
        raise InstallmentMismatchError(entry.method, str(expected), str(actual))

    count = len(entry.overrides)
    return [
        PlannedSplit(
            payment_method=entry.method,
            amount=amount,
            installments_count=count,
            installment_number=i + 1,
            due_date=override.due_date,
            credit_card_id=entry.credit_card_id,
            check_number=entry.check_number,
        )
        for i, (override, amount) in enumerate(zip(entry.overrides, amounts))
    ]


@traced_engine("installment_splitter", "1.0", fingerprint_fields=("reference_date", "methods"))
def split_payment(
    reference_date: date,
    methods: Sequence[PaymentMethodEntry],
    card_billing_days: Mapping[UUID, int] | None = None,
    places: int = CURRENCY_DECIMAL_PLACES,
    tolerance: Decimal = CURRENCY_TOLERANCE,
) -> SplitPlan:
    """
    Expand payment method entries into split legs.

    Without overrides a method yields exactly one split carrying the
    declared installment count, installment number 1, and a due date equal
    to ``reference_date`` or, for a known credit card, the card's
    billing-cycle date.

    Postconditions:
        ``result.total == sum(s.amount for s in result.splits)``.
    """
    card_billing_days = card_billing_days or {}
    splits: list[PlannedSplit] = []

    for entry in methods:
        if entry.overrides:
            splits.extend(_override_splits(entry, places, tolerance))
            continue
        splits.append(
            PlannedSplit(
                payment_method=entry.method,
                amount=round_money(entry.amount, places),
                installments_count=entry.installments,
                installment_number=1,
                due_date=_first_due_date(entry, reference_date, card_billing_days),
                credit_card_id=entry.credit_card_id,
                check_number=entry.check_number,
            )
        )

    total = sum((s.amount for s in splits), Decimal("0"))
    return SplitPlan(splits=tuple(splits), total=total)


def build_installment_schedule(
    total: Decimal,
    count: int,
    start_date: date,
    billing_day: int | None = None,
    places: int = CURRENCY_DECIMAL_PLACES,
) -> tuple[ScheduledInstallment, ...]:
    """
    Even installment schedule for ``total`` over ``count`` months.

    Every installment but the last is ``round(total / count)``; the last
    takes the remainder.  With a ``billing_day`` the first installment falls
    on the card's billing-cycle date for ``start_date`` and later ones keep
    that billing day; otherwise installments step monthly from
    ``start_date``.

    Raises:
        ValueError: ``count < 1``.
    """
    if count < 1:
        raise ValueError(f"count must be >= 1, got {count}")

    per_installment = round_money(total / count, places)
    last = round_money(total - per_installment * (count - 1), places)

    if billing_day is not None:
        first_due = calculate_due_date(reference_date=start_date, billing_day=billing_day)
        anchor_day = billing_day
    else:
        first_due = start_date
        anchor_day = start_date.day

    return tuple(
        ScheduledInstallment(
            number=i + 1,
            due_date=add_months(first_due, i, day=anchor_day),
            amount=last if i == count - 1 else per_installment,
        )
        for i in range(count)
    )


def rebalance_installments(
    schedule: Sequence[ScheduledInstallment],
    index: int,
    new_amount: Decimal,
    total: Decimal,
    places: int = CURRENCY_DECIMAL_PLACES,
) -> tuple[ScheduledInstallment, ...]:
    """
    Set one installment's amount and spread the remainder over the others.

    The edited amount is capped at ``total``.  The other installments get
    ``floor(remaining / others)`` each, and the last of them absorbs what
    is left, so the schedule still sums to ``total``.  Due dates are kept.

    Raises:
        ValueError: ``index`` outside the schedule.
    """
    if not 0 <= index < len(schedule):
        raise ValueError(f"installment index {index} out of range")

    capped = min(round_money(new_amount, places), total)
    remaining = round_money(total - capped, places)
    others = [i for i in range(len(schedule)) if i != index]

    amounts: dict[int, Decimal] = {index: capped}
    if others:
        per_other = floor_money(remaining / len(others), places)
        distributed = Decimal("0")
        for position, i in enumerate(others):
            if position == len(others) - 1:
                amounts[i] = round_money(remaining - distributed, places)
            else:
                amounts[i] = per_other
                distributed += per_other

    return tuple(
        ScheduledInstallment(number=inst.number, due_date=inst.due_date, amount=amounts[i])
        for i, inst in enumerate(schedule)
    )
