"""
Module: ledger_engines.billing_cycle
Responsibility:
    Credit-card statement cycle arithmetic.  Given the date a card payment
    was made and the card's fixed monthly billing day, return the date the
    charge is actually debited.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - A reference day strictly before the billing day is billed in the same
      month; on or after the billing day it rolls to the next month.
    - Billing days past the end of a month clamp to that month's last day
      (billing day 31 in April is April 30).
    - December rolls into January of the following year.

Failure modes:
    - ValueError when billing_day is outside 1..31.

Usage:
    calculate_due_date(reference_date=date(2024, 3, 10), billing_day=15)
    # -> date(2024, 3, 15)
"""

from __future__ import annotations

import calendar
from datetime import date

from ledger_engines.tracer import traced_engine


def _validate_billing_day(billing_day: int) -> None:
    if not 1 <= billing_day <= 31:
        raise ValueError(f"billing_day must be between 1 and 31, got {billing_day}")


def clamp_day(year: int, month: int, day: int) -> date:
    """Build a date, clamping ``day`` to the last day of the month."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


def add_months(d: date, months: int, day: int | None = None) -> date:
    """Shift ``d`` by ``months`` calendar months.

    ``day`` overrides the target day-of-month (defaults to ``d.day``) and is
    clamped to the length of the target month, so stepping a schedule that
    starts on the 31st keeps returning to the 31st where it exists.
    """
    month_index = d.year * 12 + (d.month - 1) + months
    year, month = divmod(month_index, 12)
    return clamp_day(year, month + 1, day if day is not None else d.day)


@traced_engine("billing_cycle", "1.0", fingerprint_fields=("reference_date", "billing_day"))
def calculate_due_date(reference_date: date, billing_day: int) -> date:
    """Due date of a card charge made on ``reference_date``.

    The comparison uses the card's nominal billing day; clamping only
    applies when building the resulting date.
    """
    _validate_billing_day(billing_day)
    if reference_date.day < billing_day:
        return clamp_day(reference_date.year, reference_date.month, billing_day)
    return add_months(reference_date, 1, day=billing_day)
