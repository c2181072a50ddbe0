"""
Module: ledger_engines.price_drift
Responsibility:
    Decide whether a newly observed supplier price differs enough from the
    previous observation to raise a price alert, and compute the percent
    change shown on that alert.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The pricing module reads
    the previous price from the catalog and hands both prices here.

Invariants enforced:
    - No previous price (first sighting) never alerts.
    - ``abs(new - old) <= tolerance`` never alerts.
    - ``change_pct = (new - old) / old * 100`` rounded to 2 places, and only
      when ``old > 0``; otherwise it is None.
    - With a positive ``min_change_pct``, changes whose absolute percent is
      below it do not alert.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ledger_kernel.db.types import CURRENCY_TOLERANCE, round_money

_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class PriceChange:
    """Outcome of comparing a new price observation with the previous one."""

    old_price: Decimal | None
    new_price: Decimal
    change_pct: Decimal | None
    should_alert: bool

    @property
    def difference(self) -> Decimal | None:
        if self.old_price is None:
            return None
        return self.new_price - self.old_price


def percent_change(old_price: Decimal, new_price: Decimal) -> Decimal | None:
    """Percent change rounded to 2 places; None when ``old_price <= 0``."""
    if old_price <= 0:
        return None
    return round_money((new_price - old_price) / old_price * _HUNDRED, 2)


def evaluate_price_change(
    old_price: Decimal | None,
    new_price: Decimal,
    tolerance: Decimal = CURRENCY_TOLERANCE,
    min_change_pct: Decimal = Decimal("0"),
) -> PriceChange:
    """Compare ``new_price`` against ``old_price`` and decide on an alert."""
    if old_price is None:
        return PriceChange(None, new_price, None, should_alert=False)

    change_pct = percent_change(old_price, new_price)
    if abs(new_price - old_price) <= tolerance:
        return PriceChange(old_price, new_price, change_pct, should_alert=False)

    if min_change_pct > 0 and change_pct is not None and abs(change_pct) < min_change_pct:
        return PriceChange(old_price, new_price, change_pct, should_alert=False)

    return PriceChange(old_price, new_price, change_pct, should_alert=True)
