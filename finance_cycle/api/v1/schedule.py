"""GET /v1/schedule/upcoming - Projected incomes, bills and loan payments"""

from datetime import datetime
from typing import Callable

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from finance_cycle.api.dependencies import get_clock, get_user_id
from finance_cycle.api.v1.schemas import UpcomingEventSchema, UpcomingEventsResponse
from finance_cycle.domain.schedule import upcoming_cash_events
from finance_cycle.infrastructure.database.repositories import (
    LiabilityRepository,
    RecordRepository,
    loan_to_snapshot,
)
from finance_cycle.infrastructure.database.session import get_db

router = APIRouter()


@router.get("/schedule/upcoming", response_model=UpcomingEventsResponse)
def get_upcoming_events(
    horizon_days: int = Query(45, ge=1, le=366, description="Days ahead to project"),
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """Next occurrence of each income, bill and loan inside the horizon"""
    records = RecordRepository(db)
    loans = [loan_to_snapshot(l) for l in LiabilityRepository(db).list_loans(user_id)]
    today = clock().date()

    events = upcoming_cash_events(
        incomes=records.list_incomes(user_id),
        bills=records.list_bills(user_id),
        loans=loans,
        reference=today,
        horizon_days=horizon_days,
    )

    return UpcomingEventsResponse(
        user_id=user_id,
        reference_date=today,
        events=[
            UpcomingEventSchema(kind=e.kind, name=e.name, due_date=e.due_date, amount=e.amount)
            for e in events
        ],
    )
