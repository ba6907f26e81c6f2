"""POST /v1/cycles/run - Monthly cycle endpoint, plus run history and snapshots"""

import logging
from datetime import datetime
from typing import Callable

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from finance_cycle.api.dependencies import get_clock, get_cycle_event_client, get_request_id, get_user_id
from finance_cycle.api.v1.schemas import (
    CycleRunHistoryItem,
    CycleRunHistoryResponse,
    CycleRunRequest,
    CycleRunResponse,
    SnapshotResponse,
)
from finance_cycle.config import settings
from finance_cycle.domain.exceptions import CycleRunInProgressError, DomainValidationError
from finance_cycle.infrastructure.clients.webhook import CycleEventClient
from finance_cycle.infrastructure.database.repositories import CycleRunRepository, SnapshotRepository
from finance_cycle.infrastructure.database.session import get_db
from finance_cycle.services.monthly_cycle import MonthlyCycleService

router = APIRouter()


@router.post("/cycles/run", response_model=CycleRunResponse)
def run_monthly_cycle(
    request_body: CycleRunRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
    event_client: CycleEventClient = Depends(get_cycle_event_client),
):
    """
    Advance every card and loan of the user through its elapsed cycles.

    Flow:
    1. Replay the stored result if the idempotency key already completed
    2. Claim the key with a Running run
    3. Simulate, patch balances and post ledger entries per liability
    4. Store the month-close snapshot and mark the run Completed
    5. Publish MONTHLY_CYCLE_COMPLETED in the background (fresh runs only)
    """
    request_id = get_request_id(request)
    service = MonthlyCycleService(db, clock=clock)

    try:
        outcome = service.run_monthly_cycle(
            user_id,
            reference_instant=request_body.reference_instant,
            source=request_body.source,
            idempotency_key=request_body.idempotency_key,
        )

    except CycleRunInProgressError as e:
        logging.warning(f"Cycle run in progress: {e}", extra={"request_id": request_id, "user_id": user_id})
        raise HTTPException(status_code=409, detail=str(e))

    except DomainValidationError as e:
        logging.warning(f"Cycle run rejected: {e}", extra={"request_id": request_id, "user_id": user_id})
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        logging.error(f"Cycle run failed: {e}", extra={"request_id": request_id, "user_id": user_id})
        raise HTTPException(status_code=500, detail="Monthly cycle failed")

    result = outcome.result
    if not outcome.replayed and event_client.enabled:
        background_tasks.add_task(
            event_client.send_cycle_completed,
            {
                "user_id": user_id,
                "cycle_key": result["cycle_key"],
                "cycle_run_id": result["cycle_run_id"],
                "source": result["source"],
                "updated_cards": result["updated_cards"],
                "updated_loans": result["updated_loans"],
                "ledger_entries_posted": result["ledger_entries_posted"],
            },
        )

    return result


@router.get("/cycles/runs", response_model=CycleRunHistoryResponse)
def get_cycle_runs(
    limit: int = Query(20, ge=1, le=settings.max_run_history, description="Most recent runs to return"),
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """
    Retrieve recent cycle runs for a user.

    Returns:
        Runs newest first, including Failed runs and their reason
    """
    runs = CycleRunRepository(db).list_runs(user_id, limit=limit)

    items = [
        CycleRunHistoryItem(
            cycle_run_id=str(r.id),
            cycle_key=r.cycle_key,
            source=r.source,
            status=r.status,
            idempotency_key=r.requested_key,
            updated_card_count=r.updated_card_count,
            updated_loan_count=r.updated_loan_count,
            failure_reason=r.failure_reason,
            started_at=r.started_at.isoformat(),
        )
        for r in runs
    ]

    return CycleRunHistoryResponse(user_id=user_id, runs=items)


@router.get("/cycles/snapshots/{cycle_key}", response_model=SnapshotResponse)
def get_month_close_snapshot(
    cycle_key: str,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """Retrieve the financial position stored by the latest run of a cycle"""
    snapshot = SnapshotRepository(db).get(user_id, cycle_key)
    if snapshot is None:
        raise HTTPException(status_code=404, detail=f"No snapshot for cycle {cycle_key}")

    return SnapshotResponse(
        user_id=user_id,
        cycle_key=snapshot.cycle_key,
        ran_at=snapshot.ran_at.isoformat(),
        summary=snapshot.summary,
    )
