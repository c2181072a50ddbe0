"""Database layer - engine, base classes and money helpers."""

from ledger_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from ledger_kernel.db.engine import create_tables, get_engine, get_session
from ledger_kernel.db.types import CURRENCY_TOLERANCE, amounts_match, round_money

__all__ = [
    "get_engine",
    "get_session",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "CURRENCY_TOLERANCE",
    "amounts_match",
    "round_money",
]
