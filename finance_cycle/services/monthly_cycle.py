"""Monthly cycle orchestrator - advances every card and loan a user owns

Run lifecycle: NotStarted -> Running -> Completed | Failed.

The (user_id, idempotency_key) pair is claimed by inserting the Running row under
a unique constraint. A Completed run for the key is replayed verbatim; a Failed
run releases the key. Each liability's balance patch, ledger entries and audit
event commit together, one liability at a time. If a later liability fails,
earlier ones stay advanced; their anchors moved with them, so a retry only
picks up what is still due.
"""

import logging
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from finance_cycle.config import settings
from finance_cycle.domain.cadence import advance_anchor, elapsed_monthly_cycles
from finance_cycle.domain.exceptions import CycleRunInProgressError
from finance_cycle.domain.ledger import cycle_entries
from finance_cycle.domain.lifecycle import advance
from finance_cycle.domain.models import AdvanceResult, LiabilityKind, RunSource, RunStatus
from finance_cycle.domain.snapshot import compute_month_close_summary
from finance_cycle.infrastructure.database.models import CycleRun
from finance_cycle.infrastructure.database.repositories import (
    AuditRepository,
    CycleRunRepository,
    LedgerRepository,
    LiabilityRepository,
    RecordRepository,
    SnapshotRepository,
    card_to_snapshot,
    loan_to_snapshot,
)
from finance_cycle.infrastructure.observability.logging import log_cycle_run
from finance_cycle.infrastructure.observability.metrics import cycle_run_duration_histogram, record_cycle_run
from finance_cycle.services.ledger_posting import post_entry
from finance_cycle.utils.date_utils import round_currency, to_cycle_key, to_date, to_instant

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back naive
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def automatic_idempotency_key(cycle_key: str) -> str:
    return f"automatic:{cycle_key}"


@dataclass
class KindTotals:
    updated: int = 0
    cycles_applied: int = 0
    interest_accrued: float = 0.0
    payments_applied: float = 0.0
    spend_added: float = 0.0

    def add(self, result: AdvanceResult) -> None:
        self.updated += 1
        self.cycles_applied += result.cycles
        self.interest_accrued += result.interest_accrued
        self.payments_applied += result.payments_applied
        self.spend_added += result.spend_added


@dataclass
class CycleTotals:
    cards: KindTotals = field(default_factory=KindTotals)
    loans: KindTotals = field(default_factory=KindTotals)
    ledger_entries_posted: int = 0

    def for_kind(self, kind: LiabilityKind) -> KindTotals:
        return self.cards if kind == LiabilityKind.CARD else self.loans

    @property
    def changed(self) -> bool:
        return self.cards.updated > 0 or self.loans.updated > 0

    def as_aggregates(self) -> Dict[str, Any]:
        return {
            "updated_cards": self.cards.updated,
            "updated_loans": self.loans.updated,
            "card_cycles_applied": self.cards.cycles_applied,
            "loan_cycles_applied": self.loans.cycles_applied,
            "card_interest_accrued": round_currency(self.cards.interest_accrued),
            "card_payments_applied": round_currency(self.cards.payments_applied),
            "card_spend_added": round_currency(self.cards.spend_added),
            "loan_interest_accrued": round_currency(self.loans.interest_accrued),
            "loan_payments_applied": round_currency(self.loans.payments_applied),
            "ledger_entries_posted": self.ledger_entries_posted,
        }


@dataclass
class CycleRunOutcome:
    result: Dict[str, Any]
    replayed: bool = False


class MonthlyCycleService:
    """Runs the monthly cycle for one user at one reference instant"""

    def __init__(self, db: Session, clock: Callable[[], datetime] = utc_now):
        self.db = db
        self.clock = clock
        self.runs = CycleRunRepository(db)
        self.liabilities = LiabilityRepository(db)
        self.ledger = LedgerRepository(db)
        self.audit = AuditRepository(db)

    def run_monthly_cycle(
        self,
        user_id: str,
        reference_instant: Optional[datetime] = None,
        source: RunSource = RunSource.MANUAL,
        idempotency_key: Optional[str] = None,
    ) -> CycleRunOutcome:
        """
        Advance every liability with elapsed cycles and record the run.

        Returns the stored result of an earlier Completed run when the
        idempotency key matches one.

        Raises:
            CycleRunInProgressError: another run holds the key right now
            Exception: whatever aborted a fresh run, after it is recorded as Failed
        """
        source = RunSource(source)
        now = _as_utc(self.clock())
        reference = _as_utc(reference_instant) if reference_instant else now
        cycle_key = to_cycle_key(reference)

        key = (idempotency_key or "").strip() or None
        if key is None and source == RunSource.AUTOMATIC:
            key = automatic_idempotency_key(cycle_key)

        if key:
            existing = self.runs.get_by_key(user_id, key)
            if existing is not None and existing.status == RunStatus.COMPLETED.value:
                return self._replay(existing)

        run = self._claim(user_id, cycle_key, source, key, reference, now)
        if run.status == RunStatus.COMPLETED.value:
            return self._replay(run)

        started = time.perf_counter()
        try:
            result = self._execute(run, user_id, reference, cycle_key, source, key)
        except Exception as e:
            self._record_failure(run, user_id, cycle_key, source, key, e)
            raise

        duration = time.perf_counter() - started
        cycle_run_duration_histogram.observe(duration)
        record_cycle_run(source.value, "completed", result["updated_cards"], result["updated_loans"])
        log_cycle_run(
            user_id,
            cycle_key,
            source.value,
            "completed",
            idempotency_key=key,
            updated_cards=result["updated_cards"],
            updated_loans=result["updated_loans"],
            duration_ms=duration * 1000,
        )
        return CycleRunOutcome(result=result)

    def _replay(self, run: CycleRun) -> CycleRunOutcome:
        record_cycle_run(run.source, "replayed")
        log_cycle_run(run.user_id, run.cycle_key, run.source, "replayed", idempotency_key=run.idempotency_key)
        return CycleRunOutcome(result=run.result, replayed=True)

    def _claim(
        self,
        user_id: str,
        cycle_key: str,
        source: RunSource,
        key: Optional[str],
        reference: datetime,
        now: datetime,
    ) -> CycleRun:
        try:
            run = self.runs.create_running(user_id, cycle_key, source.value, key, reference, now)
            self.db.commit()
            return run
        except IntegrityError:
            self.db.rollback()

        holder = self.runs.get_by_key(user_id, key)
        if holder is None:
            raise CycleRunInProgressError(f"Cycle run for key {key!r} changed state, retry the request")
        if holder.status == RunStatus.COMPLETED.value:
            return holder

        stale_after = timedelta(seconds=settings.running_claim_stale_seconds)
        if now - _as_utc(holder.started_at) < stale_after:
            raise CycleRunInProgressError(f"Cycle run for key {key!r} is already in progress")

        logger.warning(
            "Taking over stale cycle run claim",
            extra={"user_id": user_id, "idempotency_key": key, "cycle_run_id": str(holder.id)},
        )
        if not self.runs.take_over(holder, reference, now):
            self.db.rollback()
            raise CycleRunInProgressError(f"Cycle run for key {key!r} was claimed by another request")
        self.db.commit()
        return holder

    def _execute(
        self,
        run: CycleRun,
        user_id: str,
        reference: datetime,
        cycle_key: str,
        source: RunSource,
        key: Optional[str],
    ) -> Dict[str, Any]:
        cards = self.liabilities.list_cards(user_id)
        loans = self.liabilities.list_loans(user_id)
        totals = CycleTotals()

        for kind, rows, to_snapshot in (
            (LiabilityKind.CARD, cards, card_to_snapshot),
            (LiabilityKind.LOAN, loans, loan_to_snapshot),
        ):
            for row in rows:
                self._advance_liability(kind, row, to_snapshot, user_id, reference, cycle_key, totals)

        records = RecordRepository(self.db)
        summary = asdict(
            compute_month_close_summary(
                incomes=records.list_incomes(user_id),
                bills=records.list_bills(user_id),
                cards=[card_to_snapshot(c) for c in cards],
                loans=[loan_to_snapshot(l) for l in loans],
                accounts=records.list_accounts(user_id),
            )
        )
        SnapshotRepository(self.db).upsert(user_id, cycle_key, reference, summary)

        aggregates = totals.as_aggregates()
        audit_log_id = None
        if source == RunSource.MANUAL or totals.changed:
            audit_log_id = str(self.runs.add_audit_log(run, reference, aggregates).id)

        result = {
            "cycle_run_id": str(run.id),
            "audit_log_id": audit_log_id,
            "status": RunStatus.COMPLETED.value,
            "source": source.value,
            "cycle_key": cycle_key,
            "idempotency_key": key,
            "reference_instant": reference.isoformat(),
            **aggregates,
            "cycles_applied": totals.cards.cycles_applied + totals.loans.cycles_applied,
            "interest_accrued": round_currency(totals.cards.interest_accrued + totals.loans.interest_accrued),
            "payments_applied": round_currency(totals.cards.payments_applied + totals.loans.payments_applied),
            "spend_added": round_currency(totals.cards.spend_added),
            "snapshot": summary,
        }

        self.runs.mark_completed(run, aggregates, result)
        self.audit.record(
            user_id,
            "monthly_cycle",
            cycle_key,
            "run_completed",
            {"source": source.value, "idempotency_key": key, **aggregates},
        )
        self.db.commit()
        return result

    def _advance_liability(self, kind, row, to_snapshot, user_id, reference, cycle_key, totals) -> None:
        cycle_day = row.cycle_day or to_date(row.last_cycle_anchor).day
        cycles = elapsed_monthly_cycles(row.last_cycle_anchor, reference, cycle_day)
        if cycles <= 0:
            return

        result = advance(to_snapshot(row), cycles)
        new_anchor = to_instant(advance_anchor(row.last_cycle_anchor, cycles, cycle_day))
        self.liabilities.apply_cycle(row, result.balance_patch(), new_anchor, cycle_day)

        drafts = cycle_entries(user_id, kind, row.name, str(row.id), result, new_anchor, cycle_key)
        for draft in drafts:
            post_entry(self.ledger, draft)

        self.audit.record(
            user_id,
            kind.value,
            str(row.id),
            "monthly_cycle_applied",
            {"cycle_key": cycle_key, "cycles_applied": cycles, "result": asdict(result)},
        )
        self.db.commit()

        totals.for_kind(kind).add(result)
        totals.ledger_entries_posted += len(drafts)

    def _record_failure(
        self,
        run: CycleRun,
        user_id: str,
        cycle_key: str,
        source: RunSource,
        key: Optional[str],
        error: Exception,
    ) -> None:
        self.db.rollback()
        reason = (str(error) or type(error).__name__)[: settings.failure_reason_max_length]

        self.runs.mark_failed(run, reason)
        self.audit.record(
            user_id,
            "monthly_cycle",
            cycle_key,
            "run_failed",
            {"source": source.value, "idempotency_key": key, "failure_reason": reason},
        )
        self.db.commit()

        record_cycle_run(source.value, "failed")
        log_cycle_run(user_id, cycle_key, source.value, "failed", idempotency_key=key, failure_reason=reason)
