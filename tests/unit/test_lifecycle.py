"""Unit tests for the liability lifecycle simulator"""

import pytest
from datetime import date
from finance_cycle.domain.lifecycle import (
    advance,
    estimate_card_monthly_payment,
    simulate_card_cycles,
    simulate_loan_cycles,
)
from finance_cycle.domain.models import (
    Cadence,
    CardCycleResult,
    CardSnapshot,
    LoanCycleResult,
    LoanSnapshot,
    MinimumPaymentPolicy,
    RecurrenceDefinition,
)


@pytest.fixture
def card() -> CardSnapshot:
    """Statement of 1000 at 24% APR with a 50 fixed minimum"""
    return CardSnapshot(
        name="Visa",
        balance=1000.0,
        statement_balance=1000.0,
        pending_charges=0.0,
        credit_limit=5000.0,
        interest_rate_apr=24.0,
        minimum_payment=50.0,
        minimum_payment_policy=MinimumPaymentPolicy.FIXED,
    )


def monthly_loan(balance: float, apr: float, payment: float, cadence=Cadence.MONTHLY) -> LoanSnapshot:
    return LoanSnapshot(
        name="Car loan",
        balance=balance,
        recurrence=RecurrenceDefinition(cadence=cadence, anchor=date(2024, 1, 1)),
        interest_rate_apr=apr,
        minimum_payment=payment,
    )


def test_card_fixed_minimum_one_cycle(card: CardSnapshot):
    result = simulate_card_cycles(card, 1)

    assert result.interest_accrued == 20.0
    assert result.due_balance == 1020.0
    assert result.minimum_due == 50.0
    assert result.payments_applied == 50.0
    assert result.balance == 970.0
    assert result.statement_balance == 970.0
    assert result.pending_charges == 0.0


def test_card_percent_plus_interest_matches_fixed_at_same_minimum(card: CardSnapshot):
    """3% of 1000 plus 20 interest is also 50"""
    card.minimum_payment_policy = MinimumPaymentPolicy.PERCENT_PLUS_INTEREST
    card.minimum_payment_percent = 3.0

    result = simulate_card_cycles(card, 1)

    assert result.minimum_due == 50.0
    assert result.payments_applied == 50.0
    assert result.balance == 970.0


def test_card_zero_cycles_returns_inputs(card: CardSnapshot):
    card.balance = 1250.0
    card.pending_charges = 250.0

    result = simulate_card_cycles(card, 0)

    assert result.cycles == 0
    assert result.balance == 1250.0
    assert result.statement_balance == 1000.0
    assert result.pending_charges == 250.0
    assert result.interest_accrued == 0.0
    assert result.payments_applied == 0.0
    assert result.spend_added == 0.0


def test_card_spend_and_pending_roll_into_next_statement(card: CardSnapshot):
    card.balance = 1200.0
    card.pending_charges = 200.0
    card.spend_per_month = 300.0

    result = simulate_card_cycles(card, 1)

    # 1020 due - 50 paid + 200 carried pending + 300 new spend
    assert result.statement_balance == 1470.0
    assert result.balance == 1470.0
    assert result.pending_charges == 0.0
    assert result.spend_added == 300.0
    assert result.balance == result.statement_balance + result.pending_charges


def test_card_payment_capped_at_due_balance(card: CardSnapshot):
    card.balance = 30.0
    card.statement_balance = 30.0
    card.interest_rate_apr = 0.0
    card.extra_payment = 100.0

    result = simulate_card_cycles(card, 1)

    assert result.minimum_due == 30.0
    assert result.payments_applied == 30.0
    assert result.balance == 0.0


def test_card_extra_payment_added_to_minimum(card: CardSnapshot):
    card.extra_payment = 25.0
    result = simulate_card_cycles(card, 1)

    assert result.minimum_due == 50.0
    assert result.payments_applied == 75.0
    assert result.balance == 945.0


def test_card_multiple_cycles_iterate(card: CardSnapshot):
    result = simulate_card_cycles(card, 2)

    # Cycle 2 accrues on 970: 19.40 interest, 989.40 due, 939.40 after payment
    assert result.interest_accrued == 39.4
    assert result.payments_applied == 100.0
    assert result.due_balance == 989.4
    assert result.balance == 939.4


def test_card_non_finite_fields_are_treated_as_zero(card: CardSnapshot):
    card.spend_per_month = float("nan")
    card.extra_payment = float("inf")
    card.interest_rate_apr = float("nan")

    result = simulate_card_cycles(card, 1)

    assert result.interest_accrued == 0.0
    assert result.spend_added == 0.0
    assert result.payments_applied == 50.0


def test_loan_three_cycles_iterates_interest():
    """Each cycle accrues on the balance left by the previous one"""
    loan = monthly_loan(5000.0, 6.0, 200.0)

    result = simulate_loan_cycles(loan, 3)

    balance, interest_total = 5000.0, 0.0
    for _ in range(3):
        interest = balance * 0.005
        interest_total += interest
        balance = balance + interest - min(balance + interest, 200.0)

    assert result.balance == round(balance, 2) == 4472.37
    assert result.interest_accrued == 72.37
    assert result.payments_applied == 600.0
    assert result.balance != round(5000.0 + 3 * 25.0 - 600.0, 2)


def test_loan_payment_normalized_by_cadence():
    loan = monthly_loan(1000.0, 0.0, 100.0, cadence=Cadence.BIWEEKLY)

    result = simulate_loan_cycles(loan, 1)

    assert result.monthly_payment == 216.67
    assert result.payments_applied == 216.67
    assert result.balance == 783.33


def test_loan_paid_off_stops_at_zero():
    loan = monthly_loan(150.0, 0.0, 100.0)

    result = simulate_loan_cycles(loan, 3)

    assert result.balance == 0.0
    assert result.payments_applied == 150.0


def test_loan_zero_cycles_returns_inputs():
    result = simulate_loan_cycles(monthly_loan(5000.0, 6.0, 200.0), 0)
    assert result.balance == 5000.0
    assert result.interest_accrued == 0.0
    assert result.payments_applied == 0.0


def test_advance_dispatches_by_kind(card: CardSnapshot):
    assert isinstance(advance(card, 1), CardCycleResult)
    assert isinstance(advance(monthly_loan(100.0, 0.0, 10.0), 1), LoanCycleResult)


def test_balance_patch_only_carries_balance_fields(card: CardSnapshot):
    assert set(simulate_card_cycles(card, 1).balance_patch()) == {"balance", "statement_balance", "pending_charges"}
    assert simulate_loan_cycles(monthly_loan(100.0, 0.0, 10.0), 1).balance_patch() == {"balance": 90.0}


def test_estimate_card_monthly_payment_does_not_mutate(card: CardSnapshot):
    assert estimate_card_monthly_payment(card) == 50.0
    assert card.statement_balance == 1000.0

    card.minimum_payment_policy = MinimumPaymentPolicy.PERCENT_PLUS_INTEREST
    card.minimum_payment_percent = 5.0
    card.extra_payment = 10.0
    assert estimate_card_monthly_payment(card) == 80.0
