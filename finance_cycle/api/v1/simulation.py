"""POST /v1/simulate/{card,loan} - Side-effect free cycle previews"""

from dataclasses import asdict
from datetime import datetime
from typing import Callable

from fastapi import APIRouter, Depends, HTTPException

from finance_cycle.api.dependencies import get_clock
from finance_cycle.api.v1.schemas import (
    CardCycleResponse,
    CardSimulationRequest,
    LoanCycleResponse,
    LoanSimulationRequest,
)
from finance_cycle.domain.exceptions import DomainValidationError
from finance_cycle.domain.lifecycle import simulate_card_cycles, simulate_loan_cycles
from finance_cycle.domain.validation import validate_card, validate_loan

router = APIRouter()


@router.post("/simulate/card", response_model=CardCycleResponse)
def simulate_card(request_body: CardSimulationRequest):
    """Preview a card after `cycles` statement cycles without persisting anything"""
    try:
        card = validate_card(request_body.card.to_domain())
    except DomainValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return asdict(simulate_card_cycles(card, request_body.cycles))


@router.post("/simulate/loan", response_model=LoanCycleResponse)
def simulate_loan(
    request_body: LoanSimulationRequest,
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """Preview a loan after `cycles` monthly cycles without persisting anything"""
    try:
        loan = validate_loan(request_body.loan.to_domain(clock()))
    except DomainValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return asdict(simulate_loan_cycles(loan, request_body.cycles))
