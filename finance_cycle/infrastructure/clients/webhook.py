"""Cycle event webhook client with exponential backoff retry logic"""

import httpx
import asyncio
import logging
from typing import Dict, Any, Optional
from finance_cycle.config import settings
from finance_cycle.infrastructure.observability.metrics import webhook_latency_histogram, webhook_failure_counter

logger = logging.getLogger(__name__)

CYCLE_COMPLETED_EVENT = "MONTHLY_CYCLE_COMPLETED"
RETRYABLE_CLIENT_STATUSES = {408, 429}


def is_retryable(error: httpx.HTTPError) -> bool:
    """Network failures, 5xx and throttling are worth another attempt; other 4xx are not"""
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        return status >= 500 or status in RETRYABLE_CLIENT_STATUSES
    return isinstance(error, httpx.RequestError)


def _failure_reason(error: httpx.HTTPError) -> str:
    if isinstance(error, httpx.HTTPStatusError):
        return f"http_{error.response.status_code // 100}xx"
    return "network"


class CycleEventClient:
    """Client for publishing cycle-completed events to downstream consumers"""

    def __init__(
        self,
        webhook_url: str | None = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.webhook_url = webhook_url or settings.cycle_webhook_url
        self.timeout = settings.http_timeout_seconds
        self.max_retries = settings.webhook_max_retries
        self.backoff_base = settings.webhook_backoff_base
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    async def send_cycle_completed(self, payload: Dict[str, Any]) -> None:
        """
        POST the MONTHLY_CYCLE_COMPLETED event for a fresh run.

        Every attempt carries the run id as Idempotency-Key so a consumer can
        drop the duplicates a retry after a lost response produces. Transient
        failures back off exponentially (base * 2^(attempt-1)); a rejection
        such as 400 or 422 is final on the first attempt.

        The run is already committed when this is called; a final failure is
        logged and re-raised to the background task runner.
        """
        if not self.enabled:
            return

        headers = {"Idempotency-Key": f"cycle-run:{payload.get('cycle_run_id')}"}
        body = {"event": CYCLE_COMPLETED_EVENT, **payload}

        attempt = 0
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            while True:
                attempt += 1
                try:
                    with webhook_latency_histogram.time():
                        response = await client.post(self.webhook_url, json=body, headers=headers)
                    response.raise_for_status()
                    return

                except httpx.HTTPError as e:
                    webhook_failure_counter.labels(reason=_failure_reason(e)).inc()
                    retryable = is_retryable(e)

                    if not retryable or attempt >= self.max_retries:
                        logger.error(
                            f"Cycle event delivery failed after {attempt} attempt(s): {e}",
                            extra={"cycle_run_id": payload.get("cycle_run_id"), "retryable": retryable},
                        )
                        raise

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    logger.warning(
                        f"Cycle event delivery attempt {attempt} failed, retrying in {backoff}s: {e}",
                        extra={"cycle_run_id": payload.get("cycle_run_id")},
                    )
                    await asyncio.sleep(backoff)
