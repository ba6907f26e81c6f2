"""Unit tests for calendar helpers and currency rounding"""

from datetime import date, datetime, timezone
from finance_cycle.utils.date_utils import (
    date_with_clamped_day,
    finite_or_zero,
    months_between,
    round_currency,
    to_cycle_key,
    to_instant,
)


def test_date_with_clamped_day_normalizes_month_overflow():
    assert date_with_clamped_day(2024, 14, 31) == date(2025, 2, 28)
    assert date_with_clamped_day(2024, 0, 15) == date(2023, 12, 15)
    assert date_with_clamped_day(2024, 2, 31) == date(2024, 2, 29)


def test_months_between():
    assert months_between(date(2024, 11, 30), date(2025, 2, 1)) == 3
    assert months_between(date(2024, 3, 1), date(2024, 1, 31)) == -2


def test_cycle_key_and_instant():
    assert to_cycle_key(datetime(2024, 3, 5, 23, 0, tzinfo=timezone.utc)) == "2024-03"
    assert to_instant(date(2024, 3, 5)) == datetime(2024, 3, 5, tzinfo=timezone.utc)


def test_round_currency_half_up():
    assert round_currency(2.675) == 2.68
    assert round_currency(0.125) == 0.13
    assert str(round_currency(-0.001)) == "0.0"


def test_finite_or_zero():
    assert finite_or_zero(None) == 0.0
    assert finite_or_zero(float("nan")) == 0.0
    assert finite_or_zero(True) == 0.0
    assert finite_or_zero(3) == 3.0
