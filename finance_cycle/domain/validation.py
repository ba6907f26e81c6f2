"""Write-boundary validation for recurrences and liabilities

These checks run when records are created or edited. The simulator trusts what
passes here and only normalizes non-finite leftovers.
"""

import math
from typing import Optional

from finance_cycle.domain.exceptions import InvalidLiabilityError, InvalidRecurrenceError
from finance_cycle.domain.models import (
    Cadence,
    CardSnapshot,
    LoanSnapshot,
    MinimumPaymentPolicy,
    RecurrenceDefinition,
)

MAX_NAME_LENGTH = 140
MAX_CUSTOM_INTERVAL = 3650
BALANCE_TOLERANCE = 0.005  # half a cent


def _is_number(value) -> bool:
    return not isinstance(value, bool) and isinstance(value, (int, float)) and math.isfinite(value)


def _require_non_negative(value, field_name: str) -> None:
    if not _is_number(value) or value < 0:
        raise InvalidLiabilityError(f"{field_name} cannot be negative.")


def _require_positive(value, field_name: str) -> None:
    if not _is_number(value) or value <= 0:
        raise InvalidLiabilityError(f"{field_name} must be greater than 0.")


def _require_name(value: Optional[str], field_name: str) -> None:
    trimmed = (value or "").strip()
    if not trimmed:
        raise InvalidLiabilityError(f"{field_name} is required.")
    if len(trimmed) > MAX_NAME_LENGTH:
        raise InvalidLiabilityError(f"{field_name} must be {MAX_NAME_LENGTH} characters or less.")


def validate_recurrence(recurrence: RecurrenceDefinition) -> RecurrenceDefinition:
    """
    Reject malformed recurrences; return a copy with custom fields cleared
    for non-custom cadences.
    """
    day = recurrence.day_of_month
    if day is not None and (not isinstance(day, int) or isinstance(day, bool) or not 1 <= day <= 31):
        raise InvalidRecurrenceError("Day of month must be an integer between 1 and 31.")

    if recurrence.cadence != Cadence.CUSTOM:
        return RecurrenceDefinition(
            cadence=recurrence.cadence,
            anchor=recurrence.anchor,
            day_of_month=day,
        )

    if recurrence.custom_unit is None:
        raise InvalidRecurrenceError("Custom frequency unit is required.")

    interval = recurrence.custom_interval
    if (
        not isinstance(interval, int)
        or isinstance(interval, bool)
        or not 1 <= interval <= MAX_CUSTOM_INTERVAL
    ):
        raise InvalidRecurrenceError(
            f"Custom frequency interval must be an integer between 1 and {MAX_CUSTOM_INTERVAL}."
        )

    return recurrence


def validate_card(card: CardSnapshot) -> CardSnapshot:
    _require_name(card.name, "Card name")
    _require_positive(card.credit_limit, "Credit limit")
    _require_non_negative(card.balance, "Balance")
    _require_non_negative(card.statement_balance, "Statement balance")
    _require_non_negative(card.pending_charges, "Pending charges")
    _require_non_negative(card.minimum_payment, "Minimum payment")
    _require_non_negative(card.extra_payment, "Extra payment")
    _require_non_negative(card.spend_per_month, "Spend per month")
    _require_non_negative(card.interest_rate_apr, "Card APR")

    if abs(card.statement_balance + card.pending_charges - card.balance) >= BALANCE_TOLERANCE:
        raise InvalidLiabilityError("Statement balance plus pending charges must equal the balance.")

    if card.minimum_payment_policy == MinimumPaymentPolicy.PERCENT_PLUS_INTEREST:
        percent = card.minimum_payment_percent
        if percent is None:
            raise InvalidLiabilityError("Minimum payment % is required for % + interest cards.")
        _require_non_negative(percent, "Minimum payment %")
        if percent > 100:
            raise InvalidLiabilityError("Minimum payment % must be 100 or less.")
    return card


def validate_loan(loan: LoanSnapshot) -> LoanSnapshot:
    _require_name(loan.name, "Loan name")
    _require_non_negative(loan.balance, "Loan balance")
    _require_non_negative(loan.minimum_payment, "Minimum payment")
    _require_non_negative(loan.subscription_cost, "Subscription cost")
    _require_non_negative(loan.interest_rate_apr, "Loan APR")
    loan.recurrence = validate_recurrence(loan.recurrence)
    return loan
