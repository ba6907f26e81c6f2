"""Cadence engine - recurrence arithmetic over calendar dates

Everything here is pure and takes the reference instant explicitly, so the same
inputs always give the same dates.
"""

from datetime import date, timedelta
from typing import Optional

from finance_cycle.domain.models import Cadence, CustomUnit, RecurrenceDefinition
from finance_cycle.utils.date_utils import (
    DateLike,
    date_with_clamped_day,
    finite_or_zero,
    months_between,
    to_date,
)

DAYS_PER_YEAR = 365.2425
MONTH_SEARCH_LIMIT = 36  # months scanned by next_occurrence
ELAPSED_CYCLE_LIMIT = 600  # ~50 years of monthly steps

_CADENCE_MONTHS = {
    Cadence.MONTHLY: 1,
    Cadence.QUARTERLY: 3,
    Cadence.YEARLY: 12,
}


def _valid_custom_interval(recurrence: RecurrenceDefinition) -> Optional[int]:
    interval = recurrence.custom_interval
    if recurrence.custom_unit is None or not isinstance(interval, int) or interval <= 0:
        return None
    return interval


def monthly_equivalent(amount: float, recurrence: RecurrenceDefinition) -> float:
    """
    Convert an amount paid on `recurrence` into its monthly equivalent.

    A misconfigured custom cadence yields 0 instead of raising; callers validate
    recurrences when they are written.
    """
    amount = finite_or_zero(amount)
    cadence = recurrence.cadence

    if cadence == Cadence.WEEKLY:
        return amount * 52 / 12
    if cadence == Cadence.BIWEEKLY:
        return amount * 26 / 12
    if cadence == Cadence.MONTHLY:
        return amount
    if cadence == Cadence.QUARTERLY:
        return amount / 3
    if cadence == Cadence.YEARLY:
        return amount / 12
    if cadence == Cadence.ONE_TIME:
        return 0.0

    interval = _valid_custom_interval(recurrence)
    if interval is None:
        return 0.0

    unit = recurrence.custom_unit
    if unit == CustomUnit.DAYS:
        return amount * DAYS_PER_YEAR / (interval * 12)
    if unit == CustomUnit.WEEKS:
        return amount * DAYS_PER_YEAR / (interval * 7 * 12)
    if unit == CustomUnit.MONTHS:
        return amount / interval
    if unit == CustomUnit.YEARS:
        return amount / (interval * 12)
    return 0.0


def _next_by_day_step(anchor: date, step_days: int, today: date) -> date:
    if anchor >= today:
        return anchor
    # Jump straight to the first step on/after today
    steps = -(-(today - anchor).days // step_days)
    return anchor + timedelta(days=steps * step_days)


def _next_by_month_cycle(day: int, cycle_months: int, anchor: date, today: date) -> Optional[date]:
    scan_year, scan_month = today.year, today.month

    for _ in range(MONTH_SEARCH_LIMIT):
        candidate = date_with_clamped_day(scan_year, scan_month, day)
        offset = months_between(anchor, candidate)
        if candidate >= today and offset >= 0 and offset % cycle_months == 0:
            return candidate

        scan_month += 1
        if scan_month > 12:
            scan_month = 1
            scan_year += 1

    return None


def next_occurrence(recurrence: RecurrenceDefinition, reference: DateLike) -> Optional[date]:
    """
    First date on/after the reference date on which `recurrence` fires.

    Returns None when the cadence is exhausted (a passed one-time event) or no
    candidate exists within MONTH_SEARCH_LIMIT months.
    """
    today = to_date(reference)
    anchor = to_date(recurrence.anchor)
    cadence = recurrence.cadence

    if cadence == Cadence.ONE_TIME:
        return anchor if anchor >= today else None

    if cadence in (Cadence.WEEKLY, Cadence.BIWEEKLY):
        return _next_by_day_step(anchor, 7 if cadence == Cadence.WEEKLY else 14, today)

    day = min(max(recurrence.day_of_month or anchor.day, 1), 31)

    if cadence == Cadence.CUSTOM:
        interval = _valid_custom_interval(recurrence)
        if interval is None:
            return None
        unit = recurrence.custom_unit
        if unit in (CustomUnit.DAYS, CustomUnit.WEEKS):
            return _next_by_day_step(anchor, interval if unit == CustomUnit.DAYS else interval * 7, today)
        cycle_months = interval if unit == CustomUnit.MONTHS else interval * 12
        return _next_by_month_cycle(day, cycle_months, anchor, today)

    cycle_months = _CADENCE_MONTHS.get(cadence)
    if cycle_months is None:
        return None
    return _next_by_month_cycle(day, cycle_months, anchor, today)


def _cycle_date(start: date, months: int, cycle_day: int) -> date:
    return date_with_clamped_day(start.year, start.month + months, cycle_day)


def elapsed_monthly_cycles(
    last_cycle_anchor: DateLike,
    reference: DateLike,
    cycle_day: Optional[int] = None,
) -> int:
    """
    Count whole calendar-month steps from the anchor date to the reference date.

    Each step lands on `cycle_day` (clamped to shorter months) and counts only
    when it falls on or before the reference date. `cycle_day` defaults to the
    anchor's own day; pass the liability's original day once the stored anchor
    may have been clamped, so a Jan 31 cycle keeps returning to the 31st.
    """
    start = to_date(last_cycle_anchor)
    today = to_date(reference)
    day = cycle_day or start.day
    cycles = 0

    for _ in range(ELAPSED_CYCLE_LIMIT):
        if _cycle_date(start, cycles + 1, day) > today:
            break
        cycles += 1

    return cycles


def advance_anchor(last_cycle_anchor: DateLike, cycles: int, cycle_day: Optional[int] = None) -> date:
    """Anchor date after consuming `cycles` monthly steps"""
    start = to_date(last_cycle_anchor)
    if cycles <= 0:
        return start
    return _cycle_date(start, cycles, cycle_day or start.day)
