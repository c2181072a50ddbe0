"""
Module: ledger_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  Canonical import surface for ledger_modules.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May import ledger_kernel (types, exceptions, logging) and sibling
    engine modules.  MUST NOT import ledger_modules or ledger_services.

Invariants enforced:
    - Engines never read the clock; dates are passed in explicitly.
    - Decimal-only arithmetic for all monetary amounts.
    - Identical inputs always produce identical outputs.
"""

from ledger_engines.billing_cycle import add_months, calculate_due_date, clamp_day
from ledger_engines.installments import (
    CREDIT_CARD_METHOD,
    InstallmentOverride,
    PaymentMethodEntry,
    PlannedSplit,
    ScheduledInstallment,
    SplitPlan,
    build_installment_schedule,
    rebalance_installments,
    split_payment,
)
from ledger_engines.price_drift import PriceChange, evaluate_price_change, percent_change
from ledger_engines.vat import VatBreakdown, back_out_vat

__all__ = [
    "add_months",
    "calculate_due_date",
    "clamp_day",
    "CREDIT_CARD_METHOD",
    "InstallmentOverride",
    "PaymentMethodEntry",
    "PlannedSplit",
    "ScheduledInstallment",
    "SplitPlan",
    "build_installment_schedule",
    "rebalance_installments",
    "split_payment",
    "PriceChange",
    "evaluate_price_change",
    "percent_change",
    "VatBreakdown",
    "back_out_vat",
]
