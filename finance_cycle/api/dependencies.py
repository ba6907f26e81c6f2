"""Dependency injection for FastAPI endpoints"""

from datetime import datetime
from typing import Callable

from fastapi import Header, Request
from finance_cycle.infrastructure.clients.webhook import CycleEventClient
from finance_cycle.services.monthly_cycle import utc_now


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_user_id(x_user_id: str = Header(..., min_length=1, description="Authenticated user identifier")) -> str:
    """Identity resolved upstream by the auth gateway"""
    return x_user_id


def get_clock() -> Callable[[], datetime]:
    """Source of the current instant; overridden in tests and backfills"""
    return utc_now


def get_cycle_event_client() -> CycleEventClient:
    """Provide cycle event webhook client instance"""
    return CycleEventClient()
