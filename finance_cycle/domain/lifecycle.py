"""Liability lifecycle simulator - advances cards and loans through monthly cycles

Interest accrues monthly at APR/12 on the statement balance (cards) or the
outstanding balance (loans). Sums are carried unrounded through the loop and
rounded to cents once at the end.
"""

from dataclasses import dataclass
from typing import Callable, Dict

from finance_cycle.domain.cadence import monthly_equivalent
from finance_cycle.domain.models import (
    AdvanceResult,
    CardCycleResult,
    CardSnapshot,
    LiabilityKind,
    LiabilitySnapshot,
    LoanCycleResult,
    LoanSnapshot,
    MinimumPaymentPolicy,
)
from finance_cycle.utils.date_utils import finite_or_zero, round_currency


def _non_negative(value) -> float:
    return max(finite_or_zero(value), 0.0)


def monthly_rate(apr: float) -> float:
    apr = finite_or_zero(apr)
    return apr / 100 / 12 if apr > 0 else 0.0


@dataclass
class PaymentPlan:
    minimum_due: float
    planned_payment: float


def resolve_card_payment(
    card: CardSnapshot,
    statement_balance: float,
    due_balance: float,
    interest: float,
) -> PaymentPlan:
    """Minimum due under the card's policy, plus any extra payment, capped at the due balance"""
    if card.minimum_payment_policy == MinimumPaymentPolicy.PERCENT_PLUS_INTEREST:
        percent = min(_non_negative(card.minimum_payment_percent), 100.0)
        minimum_raw = statement_balance * percent / 100 + interest
    else:
        minimum_raw = finite_or_zero(card.minimum_payment)

    minimum_due = min(due_balance, max(minimum_raw, 0.0))
    planned = min(due_balance, minimum_due + _non_negative(card.extra_payment))
    return PaymentPlan(minimum_due=minimum_due, planned_payment=planned)


def simulate_card_cycles(card: CardSnapshot, cycles: int) -> CardCycleResult:
    """
    Advance a card through `cycles` statement cycles.

    Per cycle:
    1. interest = statement balance x monthly rate
    2. due balance = statement balance + interest
    3. payment = min(due balance, minimum due + extra payment)
    4. new spend lands in pending charges, then rolls into the next statement:
       statement = (due balance - payment) + pending; pending = 0

    With zero cycles the balance fields come back as given and every aggregate is 0.
    """
    balance = _non_negative(card.balance)
    statement_balance = _non_negative(card.statement_balance)
    pending_charges = _non_negative(card.pending_charges)
    spend_per_month = _non_negative(card.spend_per_month)
    rate = monthly_rate(card.interest_rate_apr)

    interest_accrued = 0.0
    payments_applied = 0.0
    spend_added = 0.0
    due_balance = statement_balance
    minimum_due = 0.0

    for _ in range(max(int(cycles), 0)):
        interest = statement_balance * rate
        interest_accrued += interest
        due_balance = statement_balance + interest

        plan = resolve_card_payment(card, statement_balance, due_balance, interest)
        minimum_due = plan.minimum_due
        payments_applied += plan.planned_payment

        pending_charges += spend_per_month
        spend_added += spend_per_month

        statement_balance = (due_balance - plan.planned_payment) + pending_charges
        pending_charges = 0.0
        balance = statement_balance

    return CardCycleResult(
        cycles=max(int(cycles), 0),
        balance=round_currency(max(balance, 0.0)),
        statement_balance=round_currency(max(statement_balance, 0.0)),
        pending_charges=round_currency(max(pending_charges, 0.0)),
        due_balance=round_currency(max(due_balance, 0.0)),
        minimum_due=round_currency(minimum_due),
        interest_accrued=round_currency(interest_accrued),
        payments_applied=round_currency(payments_applied),
        spend_added=round_currency(spend_added),
    )


def simulate_loan_cycles(loan: LoanSnapshot, cycles: int) -> LoanCycleResult:
    """
    Advance a loan through `cycles` monthly cycles.

    The scheduled payment is normalized to a monthly amount from the loan's own
    cadence. Subscription add-on costs are not part of the balance.
    """
    balance = _non_negative(loan.balance)
    payment_per_month = monthly_equivalent(_non_negative(loan.minimum_payment), loan.recurrence)
    rate = monthly_rate(loan.interest_rate_apr)

    interest_accrued = 0.0
    payments_applied = 0.0

    for _ in range(max(int(cycles), 0)):
        interest = balance * rate
        balance += interest
        interest_accrued += interest
        payment = min(balance, payment_per_month)
        balance -= payment
        payments_applied += payment

    return LoanCycleResult(
        cycles=max(int(cycles), 0),
        balance=round_currency(max(balance, 0.0)),
        monthly_payment=round_currency(payment_per_month),
        interest_accrued=round_currency(interest_accrued),
        payments_applied=round_currency(payments_applied),
    )


_SIMULATORS: Dict[LiabilityKind, Callable[..., AdvanceResult]] = {
    LiabilityKind.CARD: simulate_card_cycles,
    LiabilityKind.LOAN: simulate_loan_cycles,
}


def advance(liability: LiabilitySnapshot, cycles: int) -> AdvanceResult:
    """Advance any liability by its kind"""
    return _SIMULATORS[liability.kind](liability, cycles)


def estimate_card_monthly_payment(card: CardSnapshot) -> float:
    """Payment the next statement would plan for, without advancing the card"""
    statement_balance = _non_negative(card.statement_balance)
    interest = statement_balance * monthly_rate(card.interest_rate_apr)
    plan = resolve_card_payment(card, statement_balance, statement_balance + interest, interest)
    return round_currency(plan.planned_payment)
