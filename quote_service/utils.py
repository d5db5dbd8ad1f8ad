"""
utils.py — Money and Time Helpers

round2 rounds to cents with halves away from zero; Python's round() would
round halves to even. utcnow returns timezone-aware UTC timestamps.
"""

import math
from datetime import datetime, timezone


def round2(amount: float) -> float:
    """Round to cents, halves away from zero (2.345 -> 2.35, -2.345 -> -2.35)."""
    cents = math.floor(abs(amount) * 100 + 0.5)
    return math.copysign(cents / 100, amount)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
