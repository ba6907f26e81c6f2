"""Date manipulation and currency rounding utilities"""

import calendar
import math
from datetime import date, datetime, time, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

DateLike = Union[date, datetime]

_CENT = Decimal("0.01")


def to_date(value: DateLike) -> date:
    """Reduce an instant to its calendar date (midnight of that day)"""
    if isinstance(value, datetime):
        return value.date()
    return value


def to_instant(day: date) -> datetime:
    """Midnight UTC of a calendar date"""
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def date_with_clamped_day(year: int, month: int, day: int) -> date:
    """
    Build a date, clamping the day to the month's length.

    `month` may fall outside 1..12; it is normalized into the right year first,
    so (2024, 14, 31) is 2025-02-28.
    """
    year += (month - 1) // 12
    month = (month - 1) % 12 + 1
    return date(year, month, min(day, days_in_month(year, month)))


def months_between(start: date, end: date) -> int:
    """Whole month offset between the months of two dates (days ignored)"""
    return (end.year - start.year) * 12 + (end.month - start.month)


def to_cycle_key(value: DateLike) -> str:
    """Cycle key in YYYY-MM form"""
    return f"{value.year:04d}-{value.month:02d}"


def finite_or_zero(value) -> float:
    """Coerce None / NaN / inf / non-numbers to 0.0"""
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return 0.0
    value = float(value)
    return value if math.isfinite(value) else 0.0


def round_currency(value: float) -> float:
    """Round half-up to cents"""
    return float(Decimal(repr(float(value))).quantize(_CENT, rounding=ROUND_HALF_UP)) + 0.0
