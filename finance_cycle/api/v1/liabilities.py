"""POST /v1/cards, POST /v1/loans - Liability creation with write-boundary validation"""

import logging
from datetime import datetime
from typing import Callable

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from finance_cycle.api.dependencies import get_clock, get_request_id, get_user_id
from finance_cycle.api.v1.schemas import CardCreateRequest, LiabilityResponse, LoanCreateRequest
from finance_cycle.domain.exceptions import DomainValidationError
from finance_cycle.domain.models import LiabilityKind
from finance_cycle.domain.validation import validate_card, validate_loan
from finance_cycle.infrastructure.database.repositories import AuditRepository, LiabilityRepository
from finance_cycle.infrastructure.database.session import get_db

router = APIRouter()


@router.post("/cards", response_model=LiabilityResponse, status_code=201)
def create_card(
    request_body: CardCreateRequest,
    request: Request,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Create a credit card.

    Statement balance defaults to the balance, pending charges to whatever
    the statement does not cover, and the cycle anchor to now.
    """
    try:
        card = validate_card(request_body.to_domain())
    except DomainValidationError as e:
        logging.warning(f"Card rejected: {e}", extra={"request_id": get_request_id(request), "user_id": user_id})
        raise HTTPException(status_code=422, detail=str(e))

    anchor = request_body.last_cycle_anchor or clock()
    db_card = LiabilityRepository(db).create_card(user_id, card, anchor)
    AuditRepository(db).record(user_id, LiabilityKind.CARD.value, str(db_card.id), "created", {"name": db_card.name})
    db.commit()

    return LiabilityResponse(
        id=str(db_card.id),
        kind=LiabilityKind.CARD.value,
        name=db_card.name,
        balance=db_card.balance,
        statement_balance=db_card.statement_balance,
        pending_charges=db_card.pending_charges,
        last_cycle_anchor=db_card.last_cycle_anchor,
    )


@router.post("/loans", response_model=LiabilityResponse, status_code=201)
def create_loan(
    request_body: LoanCreateRequest,
    request: Request,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """Create a loan; the recurrence anchor and cycle anchor default to now"""
    now = clock()
    try:
        loan = validate_loan(request_body.to_domain(now))
    except DomainValidationError as e:
        logging.warning(f"Loan rejected: {e}", extra={"request_id": get_request_id(request), "user_id": user_id})
        raise HTTPException(status_code=422, detail=str(e))

    db_loan = LiabilityRepository(db).create_loan(user_id, loan, request_body.last_cycle_anchor or now)
    AuditRepository(db).record(user_id, LiabilityKind.LOAN.value, str(db_loan.id), "created", {"name": db_loan.name})
    db.commit()

    return LiabilityResponse(
        id=str(db_loan.id),
        kind=LiabilityKind.LOAN.value,
        name=db_loan.name,
        balance=db_loan.balance,
        last_cycle_anchor=db_loan.last_cycle_anchor,
    )
