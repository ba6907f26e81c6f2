"""Double-entry ledger rules: balance invariant, account codes, cycle postings

Account codes are part of the storage contract. Reporting groups by them, so the
same liability name must always map to the same code.
"""

import math
import re
from datetime import datetime
from typing import List, Optional

from finance_cycle.domain.exceptions import ImbalancedEntryError, InvalidLineAmountError
from finance_cycle.domain.models import (
    AdvanceResult,
    LedgerEntryDraft,
    LedgerLineDraft,
    LiabilityKind,
    LineType,
)
from finance_cycle.utils.date_utils import round_currency

CASH_ACCOUNT = "ASSET:CASH:UNASSIGNED"
REVERSAL_REFERENCE_TYPE = "ledger_entry"

_NON_TOKEN = re.compile(r"[^A-Z0-9]+")


def sanitize_ledger_token(value: str) -> str:
    """
    Uppercase token for account codes.

    "Chase Sapphire (x-1234)" -> "CHASE_SAPPHIRE_X_1234"; blank -> "UNSPECIFIED".
    """
    token = _NON_TOKEN.sub("_", (value or "").strip().upper()).strip("_")
    return token or "UNSPECIFIED"


def liability_account(kind: LiabilityKind, name: str) -> str:
    return f"LIABILITY:{LiabilityKind(kind).name}:{sanitize_ledger_token(name)}"


def validate_entry(draft: LedgerEntryDraft) -> List[LedgerLineDraft]:
    """
    Check the double-entry invariant and return lines rounded to cents.

    Raises:
        InvalidLineAmountError: a line amount is <= 0 or not finite
        ImbalancedEntryError: fewer than two lines, or debit and credit totals
            differ once rounded to cents
    """
    if len(draft.lines) < 2:
        raise ImbalancedEntryError("Ledger entries require at least two lines.")

    for line in draft.lines:
        amount = line.amount
        if isinstance(amount, bool) or not isinstance(amount, (int, float)) or not math.isfinite(amount) or amount <= 0:
            raise InvalidLineAmountError("Ledger line amount must be greater than 0.")

    debit_total = sum(line.amount for line in draft.lines if line.line_type == LineType.DEBIT)
    credit_total = sum(line.amount for line in draft.lines if line.line_type == LineType.CREDIT)

    if round_currency(debit_total) != round_currency(credit_total):
        raise ImbalancedEntryError(
            f"Ledger entry is imbalanced: debits {round_currency(debit_total):.2f} "
            f"!= credits {round_currency(credit_total):.2f}."
        )

    return [
        LedgerLineDraft(
            line_type=LineType(line.line_type),
            account_code=line.account_code,
            amount=round_currency(line.amount),
        )
        for line in draft.lines
    ]


def _transfer(debit_account: str, credit_account: str, amount: float) -> List[LedgerLineDraft]:
    return [
        LedgerLineDraft(line_type=LineType.DEBIT, account_code=debit_account, amount=amount),
        LedgerLineDraft(line_type=LineType.CREDIT, account_code=credit_account, amount=amount),
    ]


def cycle_entries(
    user_id: str,
    kind: LiabilityKind,
    name: str,
    reference_id: str,
    result: AdvanceResult,
    occurred_at: datetime,
    cycle_key: str,
) -> List[LedgerEntryDraft]:
    """
    Journal entries for one liability's cycle aggregates.

    One entry per non-zero aggregate:
    - spend:    debit EXPENSE:CARD_SPEND:<name>      / credit the liability
    - interest: debit EXPENSE:<KIND>_INTEREST:<name> / credit the liability
    - payment:  debit the liability                  / credit cash
    """
    kind = LiabilityKind(kind)
    label = kind.value.capitalize()
    token = sanitize_ledger_token(name)
    liability = liability_account(kind, name)

    postings = [
        ("spend", result.spend_added, f"EXPENSE:{kind.name}_SPEND:{token}", liability),
        ("interest", result.interest_accrued, f"EXPENSE:{kind.name}_INTEREST:{token}", liability),
        ("payment", result.payments_applied, liability, CASH_ACCOUNT),
    ]

    entries = []
    for movement, amount, debit_account, credit_account in postings:
        if amount <= 0:
            continue
        entries.append(
            LedgerEntryDraft(
                user_id=user_id,
                entry_type=f"cycle_{kind.value}_{movement}",
                description=f"{label} monthly {movement}: {name}",
                occurred_at=occurred_at,
                reference_type=kind.value,
                reference_id=reference_id,
                cycle_key=cycle_key,
                lines=_transfer(debit_account, credit_account, amount),
            )
        )
    return entries


def reversal_of(
    user_id: str,
    entry_id: str,
    entry_type: str,
    description: str,
    lines: List[LedgerLineDraft],
    occurred_at: datetime,
    cycle_key: Optional[str] = None,
) -> LedgerEntryDraft:
    """Correction entry: same accounts and amounts with debit/credit swapped"""
    swapped = [
        LedgerLineDraft(
            line_type=LineType.CREDIT if LineType(line.line_type) == LineType.DEBIT else LineType.DEBIT,
            account_code=line.account_code,
            amount=line.amount,
        )
        for line in lines
    ]
    return LedgerEntryDraft(
        user_id=user_id,
        entry_type=f"{entry_type}_reversal",
        description=f"Reverse: {description}",
        occurred_at=occurred_at,
        reference_type=REVERSAL_REFERENCE_TYPE,
        reference_id=entry_id,
        cycle_key=cycle_key,
        lines=swapped,
    )
