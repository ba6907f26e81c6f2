"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger

from finance_cycle.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_cycle_run(
    user_id: str,
    cycle_key: str,
    source: str,
    outcome: str,
    idempotency_key: Optional[str] = None,
    updated_cards: int = 0,
    updated_loans: int = 0,
    duration_ms: Optional[float] = None,
    failure_reason: Optional[str] = None,
) -> None:
    """Log structured cycle run outcome for analysis"""
    extra = {
        "user_id": user_id,
        "cycle_key": cycle_key,
        "source": source,
        "idempotency_key": idempotency_key,
        "step": "cycle_run_complete",
        "outcome": outcome,
        "updated_cards": updated_cards,
        "updated_loans": updated_loans,
        "duration_ms": duration_ms,
    }
    if outcome == "failed":
        extra["failure_reason"] = failure_reason
        logging.error("Monthly cycle run failed", extra=extra)
    else:
        logging.info("Monthly cycle run %s", outcome, extra=extra)
