"""Unit tests for the month-close summary"""

import pytest
from datetime import date
from finance_cycle.domain.models import (
    BillSnapshot,
    Cadence,
    CardSnapshot,
    CashAccountSnapshot,
    IncomeSnapshot,
    LoanSnapshot,
    RecurrenceDefinition,
)
from finance_cycle.domain.snapshot import RUNWAY_UNBOUNDED, compute_month_close_summary

MONTHLY = RecurrenceDefinition(cadence=Cadence.MONTHLY, anchor=date(2024, 1, 1))


@pytest.fixture
def household():
    return dict(
        incomes=[IncomeSnapshot(name="Salary", amount=4000.0, recurrence=MONTHLY)],
        bills=[BillSnapshot(name="Rent", amount=1000.0, recurrence=MONTHLY, autopay=True)],
        cards=[
            CardSnapshot(
                name="Visa",
                balance=1000.0,
                statement_balance=1000.0,
                credit_limit=5000.0,
                interest_rate_apr=24.0,
                minimum_payment=50.0,
            )
        ],
        loans=[
            LoanSnapshot(
                name="Car loan",
                balance=5000.0,
                recurrence=MONTHLY,
                interest_rate_apr=6.0,
                minimum_payment=200.0,
                subscription_cost=10.0,
            )
        ],
        accounts=[
            CashAccountSnapshot(name="Checking", account_type="checking", balance=3000.0, liquid=True),
            CashAccountSnapshot(name="Brokerage", account_type="investment", balance=2000.0, liquid=False),
            CashAccountSnapshot(name="Line of credit", account_type="debt", balance=-500.0),
            CashAccountSnapshot(name="Joint", account_type="checking", balance=-100.0, liquid=True),
        ],
    )


def test_month_close_summary(household):
    summary = compute_month_close_summary(**household)

    assert summary.monthly_income == 4000.0
    # rent + card payment estimate + loan payment + subscription
    assert summary.monthly_commitments == 1260.0
    assert summary.total_assets == 5000.0
    assert summary.liquid_reserves == 3000.0
    # debt account + overdraft + card + loan
    assert summary.total_liabilities == 6600.0
    assert summary.net_worth == 1140.0
    assert summary.runway_months == 1.53


def test_month_close_summary_empty_user():
    summary = compute_month_close_summary([], [], [], [], [])

    assert summary.net_worth == 0.0
    assert summary.runway_months == 0.0


def test_runway_unbounded_without_pressure():
    summary = compute_month_close_summary(
        incomes=[],
        bills=[],
        cards=[],
        loans=[],
        accounts=[CashAccountSnapshot(name="Savings", account_type="savings", balance=800.0)],
    )

    assert summary.runway_months == RUNWAY_UNBOUNDED
    assert summary.total_assets == 800.0
    assert summary.liquid_reserves == 800.0


def test_weekly_income_is_normalized(household):
    household["incomes"] = [
        IncomeSnapshot(
            name="Gig",
            amount=300.0,
            recurrence=RecurrenceDefinition(cadence=Cadence.WEEKLY, anchor=date(2024, 1, 1)),
        )
    ]

    summary = compute_month_close_summary(**household)

    assert summary.monthly_income == 1300.0
