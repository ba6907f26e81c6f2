"""Ledger posting for collaborators outside the cycle run (purchases, corrections)"""

import logging
import uuid
from datetime import datetime

from sqlalchemy.orm import Session

from finance_cycle.domain.exceptions import (
    EntityNotFoundError,
    ImbalancedEntryError,
    InvalidLineAmountError,
    LedgerError,
)
from finance_cycle.domain.ledger import reversal_of
from finance_cycle.domain.models import LedgerEntryDraft, LedgerLineDraft
from finance_cycle.infrastructure.database.models import LedgerEntry
from finance_cycle.infrastructure.database.repositories import LedgerRepository
from finance_cycle.infrastructure.observability.metrics import ledger_entry_counter, ledger_rejection_counter

logger = logging.getLogger(__name__)

_REJECTION_REASONS = {
    ImbalancedEntryError: "imbalanced",
    InvalidLineAmountError: "invalid_amount",
}


def post_entry(ledger: LedgerRepository, draft: LedgerEntryDraft) -> LedgerEntry:
    """Append through the repository, counting postings and rejections"""
    try:
        entry = ledger.append(draft)
    except LedgerError as e:
        ledger_rejection_counter.labels(reason=_REJECTION_REASONS.get(type(e), "other")).inc()
        logger.warning(
            f"Ledger entry rejected: {e}",
            extra={"user_id": draft.user_id, "entry_type": draft.entry_type},
        )
        raise
    ledger_entry_counter.labels(entry_type=draft.entry_type).inc()
    return entry


def append_ledger_entry(db: Session, draft: LedgerEntryDraft) -> LedgerEntry:
    """Validate, persist and commit one balanced entry"""
    entry = post_entry(LedgerRepository(db), draft)
    db.commit()
    return entry


def reverse_ledger_entry(db: Session, user_id: str, entry_id: uuid.UUID, occurred_at: datetime) -> LedgerEntry:
    """
    Post the correcting entry for `entry_id`.

    Raises:
        EntityNotFoundError: no such entry for this user
        LedgerError: the entry was already reversed
    """
    ledger = LedgerRepository(db)
    original = ledger.get_entry(user_id, entry_id)
    if original is None:
        raise EntityNotFoundError(f"Ledger entry {entry_id} not found")
    if ledger.find_reversal(user_id, entry_id) is not None:
        raise LedgerError(f"Ledger entry {entry_id} is already reversed.")

    draft = reversal_of(
        user_id=user_id,
        entry_id=str(original.id),
        entry_type=original.entry_type,
        description=original.description,
        lines=[
            LedgerLineDraft(line_type=line.line_type, account_code=line.account_code, amount=line.amount)
            for line in original.lines
        ],
        occurred_at=occurred_at,
        cycle_key=original.cycle_key,
    )
    return append_ledger_entry(db, draft)
