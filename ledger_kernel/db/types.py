"""
Module: ledger_kernel.db.types
Responsibility: Rounding helpers shared by every layer that touches money.
    Centralizes currency precision and the tolerance used when two amounts
    are compared "within rounding".
Architecture position: Kernel > DB.  May be imported by engines, modules
    and services.  MUST NOT import from any of those layers.

Invariants enforced:
    - No floats anywhere.  All monetary amounts are Decimal.
    - round_money() is the only sanctioned rounding function.
    - amounts_match() is the only sanctioned "equal within a cent" check.
"""

from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal

CURRENCY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP

# One minor currency unit
CURRENCY_TOLERANCE = Decimal("0.01")


def round_money(
    value: Decimal,
    decimal_places: int = CURRENCY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the given number of decimal places.

    Postconditions: Returns value quantized using the given rounding mode
        (ROUND_HALF_UP by default).
    """
    quantize_str = "0." + "0" * decimal_places if decimal_places else "1"
    return value.quantize(Decimal(quantize_str), rounding=rounding)


def floor_money(value: Decimal, decimal_places: int = CURRENCY_DECIMAL_PLACES) -> Decimal:
    """Truncate toward zero to the given number of decimal places."""
    return round_money(value, decimal_places, ROUND_DOWN)


def amounts_match(
    left: Decimal,
    right: Decimal,
    tolerance: Decimal = CURRENCY_TOLERANCE,
) -> bool:
    """True when two amounts differ by no more than ``tolerance``."""
    return abs(left - right) <= tolerance
