"""
Balance and allowance checks.

Pure functions, evaluated against the latest query results every time a
decision is needed. Unknown values (no query completed yet) count as zero.
"""

from typing import Optional


def is_positive(amount_in: int) -> bool:
    return amount_in > 0


def has_sufficient_balance(amount_in: int, balance: Optional[int]) -> bool:
    """True iff the user holds at least ``amount_in``; unknown balance fails closed."""
    if balance is None:
        return False
    return amount_in <= balance


def needs_approval(amount_in: int, allowance: Optional[int]) -> bool:
    """True iff the router may not yet spend ``amount_in``."""
    if amount_in <= 0:
        return False
    return amount_in > (allowance or 0)
