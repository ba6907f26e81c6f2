"""POST/GET /v1/ledger/entries - Double-entry ledger endpoints"""

import logging
import uuid
from datetime import datetime
from typing import Callable, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from finance_cycle.api.dependencies import get_clock, get_request_id, get_user_id
from finance_cycle.api.v1.schemas import (
    LedgerEntriesResponse,
    LedgerEntryRequest,
    LedgerEntryResponse,
    LedgerLineSchema,
)
from finance_cycle.domain.exceptions import DomainValidationError, EntityNotFoundError
from finance_cycle.domain.models import LedgerEntryDraft, LedgerLineDraft
from finance_cycle.infrastructure.database.models import LedgerEntry
from finance_cycle.infrastructure.database.repositories import LedgerRepository
from finance_cycle.infrastructure.database.session import get_db
from finance_cycle.services.ledger_posting import append_ledger_entry, reverse_ledger_entry

router = APIRouter()


def _to_response(entry: LedgerEntry) -> LedgerEntryResponse:
    return LedgerEntryResponse(
        id=str(entry.id),
        entry_type=entry.entry_type,
        description=entry.description,
        occurred_at=entry.occurred_at,
        reference_type=entry.reference_type,
        reference_id=entry.reference_id,
        cycle_key=entry.cycle_key,
        lines=[
            LedgerLineSchema(line_type=line.line_type, account_code=line.account_code, amount=line.amount)
            for line in entry.lines
        ],
    )


@router.post("/ledger/entries", response_model=LedgerEntryResponse, status_code=201)
def create_ledger_entry(
    request_body: LedgerEntryRequest,
    request: Request,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Append one balanced journal entry.

    Returns:
        The stored entry, lines rounded to cents
    """
    draft = LedgerEntryDraft(
        user_id=user_id,
        entry_type=request_body.entry_type,
        description=request_body.description,
        occurred_at=request_body.occurred_at or clock(),
        lines=[
            LedgerLineDraft(line_type=line.line_type, account_code=line.account_code, amount=line.amount)
            for line in request_body.lines
        ],
        reference_type=request_body.reference_type,
        reference_id=request_body.reference_id,
        cycle_key=request_body.cycle_key,
    )

    try:
        entry = append_ledger_entry(db, draft)
    except DomainValidationError as e:
        db.rollback()
        logging.warning(f"Ledger entry rejected: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=422, detail=str(e))

    return _to_response(entry)


@router.get("/ledger/entries", response_model=LedgerEntriesResponse)
def list_ledger_entries(
    cycle_key: Optional[str] = Query(None, description="Restrict to one cycle (YYYY-MM)"),
    limit: int = Query(100, ge=1, le=500),
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """Retrieve recent journal entries for a user, newest first"""
    entries = LedgerRepository(db).list_entries(user_id, cycle_key=cycle_key, limit=limit)
    return LedgerEntriesResponse(user_id=user_id, entries=[_to_response(e) for e in entries])


@router.post("/ledger/entries/{entry_id}/reverse", response_model=LedgerEntryResponse, status_code=201)
def reverse_entry(
    entry_id: uuid.UUID,
    request: Request,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """Post the correcting entry that cancels `entry_id`"""
    try:
        entry = reverse_ledger_entry(db, user_id, entry_id, clock())
    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DomainValidationError as e:
        db.rollback()
        logging.warning(f"Ledger reversal rejected: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=422, detail=str(e))

    return _to_response(entry)
