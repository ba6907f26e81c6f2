"""Month-close summary - point-in-time financial position"""

from typing import Iterable

from finance_cycle.domain.cadence import monthly_equivalent
from finance_cycle.domain.lifecycle import estimate_card_monthly_payment
from finance_cycle.domain.models import (
    BillSnapshot,
    CardSnapshot,
    CashAccountSnapshot,
    IncomeSnapshot,
    LoanSnapshot,
    MonthCloseSummary,
)
from finance_cycle.utils.date_utils import finite_or_zero, round_currency

RUNWAY_UNBOUNDED = 99.0


def compute_month_close_summary(
    incomes: Iterable[IncomeSnapshot],
    bills: Iterable[BillSnapshot],
    cards: Iterable[CardSnapshot],
    loans: Iterable[LoanSnapshot],
    accounts: Iterable[CashAccountSnapshot],
) -> MonthCloseSummary:
    """
    Aggregate a user's records into the month-close position.

    Commitments: bills + estimated card payments + loan payments (normalized by
    cadence) + loan subscription costs.

    Liabilities: debt accounts, overdrawn accounts, card and loan balances.

    Runway: months the available pool (liquid reserves + assets + income) covers
    the monthly pressure (commitments + liabilities). 99 when there is a pool
    but no pressure.
    """
    loans = list(loans)
    accounts = list(accounts)
    cards = list(cards)

    monthly_income = sum(monthly_equivalent(i.amount, i.recurrence) for i in incomes)
    monthly_bills = sum(monthly_equivalent(b.amount, b.recurrence) for b in bills)
    monthly_card_payments = sum(estimate_card_monthly_payment(c) for c in cards)
    monthly_loan_payments = sum(monthly_equivalent(finite_or_zero(l.minimum_payment), l.recurrence) for l in loans)
    monthly_subscriptions = sum(finite_or_zero(l.subscription_cost) for l in loans)
    monthly_commitments = monthly_bills + monthly_card_payments + monthly_loan_payments + monthly_subscriptions

    account_debts = 0.0
    total_assets = 0.0
    liquid_reserves = 0.0
    for account in accounts:
        balance = finite_or_zero(account.balance)
        if account.account_type == "debt":
            account_debts += abs(balance)
            continue
        if balance < 0:
            account_debts += abs(balance)
        total_assets += max(balance, 0.0)
        if account.liquid:
            liquid_reserves += max(balance, 0.0)

    total_liabilities = (
        account_debts
        + sum(finite_or_zero(c.balance) for c in cards)
        + sum(finite_or_zero(l.balance) for l in loans)
    )

    net_worth = total_assets + monthly_income - total_liabilities - monthly_commitments

    available_pool = max(liquid_reserves + total_assets + monthly_income, 0.0)
    monthly_pressure = monthly_commitments + total_liabilities
    if monthly_pressure > 0:
        runway_months = available_pool / monthly_pressure
    else:
        runway_months = RUNWAY_UNBOUNDED if available_pool > 0 else 0.0

    return MonthCloseSummary(
        monthly_income=round_currency(monthly_income),
        monthly_commitments=round_currency(monthly_commitments),
        total_assets=round_currency(total_assets),
        total_liabilities=round_currency(total_liabilities),
        liquid_reserves=round_currency(liquid_reserves),
        net_worth=round_currency(net_worth),
        runway_months=round_currency(runway_months),
    )
