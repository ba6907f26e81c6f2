"""Upcoming cash events projected from recurring incomes, bills and loans"""

from datetime import timedelta
from typing import Iterable, List

from finance_cycle.domain.cadence import next_occurrence
from finance_cycle.domain.models import BillSnapshot, CashEvent, IncomeSnapshot, LoanSnapshot
from finance_cycle.utils.date_utils import DateLike, round_currency, to_date


def upcoming_cash_events(
    incomes: Iterable[IncomeSnapshot],
    bills: Iterable[BillSnapshot],
    loans: Iterable[LoanSnapshot],
    reference: DateLike,
    horizon_days: int = 45,
) -> List[CashEvent]:
    """Next occurrence of each record within the horizon, earliest first"""
    today = to_date(reference)
    horizon = today + timedelta(days=horizon_days)

    sources = (
        [("income", i.name, i.amount, i.recurrence) for i in incomes]
        + [("bill", b.name, b.amount, b.recurrence) for b in bills]
        + [("loan", l.name, l.minimum_payment + l.subscription_cost, l.recurrence) for l in loans]
    )

    events = []
    for kind, name, amount, recurrence in sources:
        due = next_occurrence(recurrence, today)
        if due is None or due > horizon:
            continue
        events.append(CashEvent(kind=kind, name=name, due_date=due, amount=round_currency(amount)))

    events.sort(key=lambda e: (e.due_date, e.kind, e.name))
    return events
