"""Data access layer for liabilities, ledger, cycle runs and snapshots"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, selectinload

from finance_cycle.domain.ledger import REVERSAL_REFERENCE_TYPE, validate_entry
from finance_cycle.domain.models import (
    BillSnapshot,
    CardSnapshot,
    CashAccountSnapshot,
    IncomeSnapshot,
    LedgerEntryDraft,
    LoanSnapshot,
    RecurrenceDefinition,
    RunStatus,
)
from finance_cycle.infrastructure.database.models import (
    Bill,
    Card,
    CashAccount,
    CycleAuditLog,
    CycleRun,
    FinanceAuditEvent,
    Income,
    LedgerEntry,
    LedgerLine,
    Loan,
    MonthCloseSnapshot,
)


def _recurrence(row) -> RecurrenceDefinition:
    return RecurrenceDefinition(
        cadence=row.cadence,
        anchor=row.recurrence_anchor,
        custom_interval=row.custom_interval,
        custom_unit=row.custom_unit,
        day_of_month=row.day_of_month,
    )


def card_to_snapshot(card: Card) -> CardSnapshot:
    return CardSnapshot(
        name=card.name,
        balance=card.balance,
        statement_balance=card.statement_balance,
        pending_charges=card.pending_charges,
        credit_limit=card.credit_limit,
        interest_rate_apr=card.interest_rate_apr,
        minimum_payment=card.minimum_payment,
        minimum_payment_policy=card.minimum_payment_policy,
        minimum_payment_percent=card.minimum_payment_percent,
        extra_payment=card.extra_payment,
        spend_per_month=card.spend_per_month,
    )


def loan_to_snapshot(loan: Loan) -> LoanSnapshot:
    return LoanSnapshot(
        name=loan.name,
        balance=loan.balance,
        recurrence=_recurrence(loan),
        interest_rate_apr=loan.interest_rate_apr,
        minimum_payment=loan.minimum_payment,
        subscription_cost=loan.subscription_cost,
    )


class LiabilityRepository:
    """Repository for cards and loans"""

    def __init__(self, db: Session):
        self.db = db

    def list_cards(self, user_id: str) -> List[Card]:
        return self.db.query(Card).filter(Card.user_id == user_id).order_by(Card.created_at, Card.name).all()

    def list_loans(self, user_id: str) -> List[Loan]:
        return self.db.query(Loan).filter(Loan.user_id == user_id).order_by(Loan.created_at, Loan.name).all()

    def create_card(self, user_id: str, card: CardSnapshot, last_cycle_anchor: datetime) -> Card:
        db_card = Card(
            user_id=user_id,
            name=card.name.strip(),
            credit_limit=card.credit_limit,
            balance=card.balance,
            statement_balance=card.statement_balance,
            pending_charges=card.pending_charges,
            spend_per_month=card.spend_per_month,
            interest_rate_apr=card.interest_rate_apr,
            minimum_payment=card.minimum_payment,
            minimum_payment_policy=card.minimum_payment_policy.value,
            minimum_payment_percent=card.minimum_payment_percent,
            extra_payment=card.extra_payment,
            last_cycle_anchor=last_cycle_anchor,
            cycle_day=last_cycle_anchor.day,
        )
        self.db.add(db_card)
        self.db.flush()
        return db_card

    def create_loan(self, user_id: str, loan: LoanSnapshot, last_cycle_anchor: datetime) -> Loan:
        recurrence = loan.recurrence
        db_loan = Loan(
            user_id=user_id,
            name=loan.name.strip(),
            balance=loan.balance,
            interest_rate_apr=loan.interest_rate_apr,
            minimum_payment=loan.minimum_payment,
            subscription_cost=loan.subscription_cost,
            cadence=recurrence.cadence.value,
            custom_interval=recurrence.custom_interval,
            custom_unit=recurrence.custom_unit.value if recurrence.custom_unit else None,
            day_of_month=recurrence.day_of_month,
            recurrence_anchor=recurrence.anchor,
            last_cycle_anchor=last_cycle_anchor,
            cycle_day=last_cycle_anchor.day,
        )
        self.db.add(db_loan)
        self.db.flush()
        return db_loan

    def apply_cycle(self, liability, patch: Dict[str, float], last_cycle_anchor: datetime, cycle_day: int) -> None:
        """Write simulated balance fields, the advanced anchor and the cycle day it steps on"""
        for field_name, value in patch.items():
            setattr(liability, field_name, value)
        liability.last_cycle_anchor = last_cycle_anchor
        liability.cycle_day = cycle_day
        self.db.flush()


class RecordRepository:
    """Read access to incomes, bills and cash accounts"""

    def __init__(self, db: Session):
        self.db = db

    def list_incomes(self, user_id: str) -> List[IncomeSnapshot]:
        rows = self.db.query(Income).filter(Income.user_id == user_id).order_by(Income.created_at).all()
        return [IncomeSnapshot(name=r.source, amount=r.amount, recurrence=_recurrence(r)) for r in rows]

    def list_bills(self, user_id: str) -> List[BillSnapshot]:
        rows = self.db.query(Bill).filter(Bill.user_id == user_id).order_by(Bill.created_at).all()
        return [
            BillSnapshot(name=r.name, amount=r.amount, recurrence=_recurrence(r), autopay=r.autopay)
            for r in rows
        ]

    def list_accounts(self, user_id: str) -> List[CashAccountSnapshot]:
        rows = self.db.query(CashAccount).filter(CashAccount.user_id == user_id).order_by(CashAccount.created_at).all()
        return [
            CashAccountSnapshot(name=r.name, account_type=r.account_type, balance=r.balance, liquid=r.liquid)
            for r in rows
        ]


class LedgerRepository:
    """Repository for journal entries"""

    def __init__(self, db: Session):
        self.db = db

    def append(self, draft: LedgerEntryDraft) -> LedgerEntry:
        """
        Validate and stage an entry with all of its lines.

        Nothing is added to the session unless the entry balances, and header and
        lines share the caller's transaction.
        """
        lines = validate_entry(draft)

        db_entry = LedgerEntry(
            id=uuid.uuid4(),
            user_id=draft.user_id,
            entry_type=draft.entry_type,
            description=draft.description,
            occurred_at=draft.occurred_at,
            reference_type=draft.reference_type,
            reference_id=draft.reference_id,
            cycle_key=draft.cycle_key,
        )
        db_entry.lines = [
            LedgerLine(
                user_id=draft.user_id,
                position=position,
                line_type=line.line_type.value,
                account_code=line.account_code,
                amount=line.amount,
            )
            for position, line in enumerate(lines)
        ]
        self.db.add(db_entry)
        self.db.flush()
        return db_entry

    def get_entry(self, user_id: str, entry_id: uuid.UUID) -> Optional[LedgerEntry]:
        return (
            self.db.query(LedgerEntry)
            .options(selectinload(LedgerEntry.lines))
            .filter(LedgerEntry.id == entry_id, LedgerEntry.user_id == user_id)
            .first()
        )

    def find_reversal(self, user_id: str, entry_id: uuid.UUID) -> Optional[LedgerEntry]:
        return (
            self.db.query(LedgerEntry)
            .filter(
                LedgerEntry.user_id == user_id,
                LedgerEntry.reference_type == REVERSAL_REFERENCE_TYPE,
                LedgerEntry.reference_id == str(entry_id),
            )
            .first()
        )

    def list_entries(
        self,
        user_id: str,
        cycle_key: Optional[str] = None,
        limit: int = 100,
    ) -> List[LedgerEntry]:
        query = (
            self.db.query(LedgerEntry)
            .options(selectinload(LedgerEntry.lines))
            .filter(LedgerEntry.user_id == user_id)
        )
        if cycle_key:
            query = query.filter(LedgerEntry.cycle_key == cycle_key)
        return query.order_by(LedgerEntry.occurred_at.desc(), LedgerEntry.created_at.desc()).limit(limit).all()


class CycleRunRepository:
    """Repository for cycle runs and their audit rows"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_key(self, user_id: str, idempotency_key: str) -> Optional[CycleRun]:
        return (
            self.db.query(CycleRun)
            .filter(CycleRun.user_id == user_id, CycleRun.idempotency_key == idempotency_key)
            .first()
        )

    def create_running(
        self,
        user_id: str,
        cycle_key: str,
        source: str,
        idempotency_key: Optional[str],
        reference_instant: datetime,
        started_at: datetime,
    ) -> CycleRun:
        """Insert the Running row; flushing raises IntegrityError if the key is held"""
        run = CycleRun(
            id=uuid.uuid4(),
            user_id=user_id,
            cycle_key=cycle_key,
            source=source,
            status=RunStatus.RUNNING.value,
            idempotency_key=idempotency_key,
            requested_key=idempotency_key,
            reference_instant=reference_instant,
            started_at=started_at,
        )
        self.db.add(run)
        self.db.flush()
        return run

    def take_over(self, run: CycleRun, reference_instant: datetime, started_at: datetime) -> bool:
        """
        Restart a stale Running claim under the same key.

        The update only matches while the row is still Running with the
        started_at this caller read, so of several callers racing for the same
        stale claim exactly one gets rowcount 1.

        Returns:
            True if this caller now owns the claim
        """
        claimed = (
            self.db.query(CycleRun)
            .filter(
                CycleRun.id == run.id,
                CycleRun.status == RunStatus.RUNNING.value,
                CycleRun.started_at == run.started_at,
            )
            .update(
                {CycleRun.reference_instant: reference_instant, CycleRun.started_at: started_at},
                synchronize_session=False,
            )
        )
        if claimed != 1:
            return False
        self.db.refresh(run)
        return True

    def mark_completed(self, run: CycleRun, aggregates: Dict[str, Any], result: Dict[str, Any]) -> None:
        run.status = RunStatus.COMPLETED.value
        run.updated_card_count = aggregates["updated_cards"]
        run.updated_loan_count = aggregates["updated_loans"]
        run.aggregates = aggregates
        run.result = result
        self.db.flush()

    def mark_failed(self, run: CycleRun, failure_reason: str) -> None:
        run.status = RunStatus.FAILED.value
        run.idempotency_key = None  # release the key so a retry can run
        run.failure_reason = failure_reason
        self.db.flush()

    def add_audit_log(
        self,
        run: CycleRun,
        ran_at: datetime,
        aggregates: Dict[str, Any],
    ) -> CycleAuditLog:
        log = CycleAuditLog(
            id=uuid.uuid4(),
            user_id=run.user_id,
            cycle_run_id=run.id,
            source=run.source,
            cycle_key=run.cycle_key,
            idempotency_key=run.idempotency_key,
            ran_at=ran_at,
            aggregates=aggregates,
        )
        self.db.add(log)
        self.db.flush()
        return log

    def list_runs(self, user_id: str, limit: int = 20) -> List[CycleRun]:
        return (
            self.db.query(CycleRun)
            .filter(CycleRun.user_id == user_id)
            .order_by(CycleRun.started_at.desc(), CycleRun.created_at.desc())
            .limit(limit)
            .all()
        )

    def count_completed(self, user_id: str, idempotency_key: str) -> int:
        return (
            self.db.query(CycleRun)
            .filter(
                CycleRun.user_id == user_id,
                CycleRun.idempotency_key == idempotency_key,
                CycleRun.status == RunStatus.COMPLETED.value,
            )
            .count()
        )


class SnapshotRepository:
    """Repository for month-close snapshots"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: str, cycle_key: str) -> Optional[MonthCloseSnapshot]:
        return (
            self.db.query(MonthCloseSnapshot)
            .filter(MonthCloseSnapshot.user_id == user_id, MonthCloseSnapshot.cycle_key == cycle_key)
            .first()
        )

    def upsert(self, user_id: str, cycle_key: str, ran_at: datetime, summary: Dict[str, float]) -> MonthCloseSnapshot:
        snapshot = self.get(user_id, cycle_key)
        if snapshot is None:
            snapshot = MonthCloseSnapshot(user_id=user_id, cycle_key=cycle_key, ran_at=ran_at, summary=summary)
            self.db.add(snapshot)
        else:
            snapshot.ran_at = ran_at
            snapshot.summary = summary
        self.db.flush()
        return snapshot


class AuditRepository:
    """Repository for entity-level audit events"""

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        user_id: str,
        entity_type: str,
        entity_id: str,
        action: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> FinanceAuditEvent:
        event = FinanceAuditEvent(
            user_id=user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            event_metadata=metadata,
        )
        self.db.add(event)
        self.db.flush()
        return event

    def list_events(self, user_id: str, entity_type: Optional[str] = None) -> List[FinanceAuditEvent]:
        query = self.db.query(FinanceAuditEvent).filter(FinanceAuditEvent.user_id == user_id)
        if entity_type:
            query = query.filter(FinanceAuditEvent.entity_type == entity_type)
        return query.order_by(FinanceAuditEvent.created_at).all()
