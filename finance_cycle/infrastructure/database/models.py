"""SQLAlchemy ORM models for liabilities, ledger and cycle runs"""

import uuid
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    JSON,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class Card(Base):
    """Revolving credit card"""

    __tablename__ = "card"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    credit_limit = Column(Float, nullable=False)
    balance = Column(Float, nullable=False, default=0.0)
    statement_balance = Column(Float, nullable=False, default=0.0)
    pending_charges = Column(Float, nullable=False, default=0.0)
    spend_per_month = Column(Float, nullable=False, default=0.0)
    interest_rate_apr = Column(Float, nullable=False, default=0.0)
    minimum_payment = Column(Float, nullable=False, default=0.0)
    minimum_payment_policy = Column(Text, nullable=False, default="fixed")
    minimum_payment_percent = Column(Float, nullable=True)
    extra_payment = Column(Float, nullable=False, default=0.0)
    last_cycle_anchor = Column(DateTime(timezone=True), nullable=False)
    cycle_day = Column(Integer, nullable=True)  # day-of-month of the first anchor; stored anchors may be clamped
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Loan(Base):
    """Installment loan with its own payment cadence"""

    __tablename__ = "loan"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    balance = Column(Float, nullable=False, default=0.0)
    interest_rate_apr = Column(Float, nullable=False, default=0.0)
    minimum_payment = Column(Float, nullable=False, default=0.0)
    subscription_cost = Column(Float, nullable=False, default=0.0)
    cadence = Column(Text, nullable=False, default="monthly")
    custom_interval = Column(Integer, nullable=True)
    custom_unit = Column(Text, nullable=True)
    day_of_month = Column(Integer, nullable=True)
    recurrence_anchor = Column(DateTime(timezone=True), nullable=False)
    last_cycle_anchor = Column(DateTime(timezone=True), nullable=False)
    cycle_day = Column(Integer, nullable=True)  # day-of-month of the first anchor; stored anchors may be clamped
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Income(Base):
    """Recurring income, maintained by the records service"""

    __tablename__ = "income"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    source = Column(Text, nullable=False)
    amount = Column(Float, nullable=False)
    cadence = Column(Text, nullable=False, default="monthly")
    custom_interval = Column(Integer, nullable=True)
    custom_unit = Column(Text, nullable=True)
    day_of_month = Column(Integer, nullable=True)
    recurrence_anchor = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Bill(Base):
    """Recurring bill, maintained by the records service"""

    __tablename__ = "bill"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    amount = Column(Float, nullable=False)
    cadence = Column(Text, nullable=False, default="monthly")
    custom_interval = Column(Integer, nullable=True)
    custom_unit = Column(Text, nullable=True)
    day_of_month = Column(Integer, nullable=True)
    autopay = Column(Boolean, nullable=False, default=False)
    recurrence_anchor = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class CashAccount(Base):
    """Bank / cash account balance, maintained by the records service"""

    __tablename__ = "cash_account"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    account_type = Column(Text, nullable=False)
    balance = Column(Float, nullable=False, default=0.0)
    liquid = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class LedgerEntry(Base):
    """Append-only journal entry header"""

    __tablename__ = "ledger_entry"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    entry_type = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
    occurred_at = Column(DateTime(timezone=True), nullable=False)
    reference_type = Column(Text, nullable=True)
    reference_id = Column(Text, nullable=True)
    cycle_key = Column(Text, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    lines = relationship("LedgerLine", back_populates="entry", order_by="LedgerLine.position")


class LedgerLine(Base):
    """Single debit or credit posting"""

    __tablename__ = "ledger_line"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    entry_id = Column(UUID(as_uuid=True), ForeignKey("ledger_entry.id"), nullable=False, index=True)
    user_id = Column(Text, nullable=False, index=True)
    position = Column(Integer, nullable=False)
    line_type = Column(Text, nullable=False)
    account_code = Column(Text, nullable=False, index=True)
    amount = Column(Float, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    entry = relationship("LedgerEntry", back_populates="lines")


class CycleRun(Base):
    """
    One orchestrator invocation.

    The unique constraint is the idempotency guard: a Running or Completed row
    holds its key, a Failed row releases it (idempotency_key set to NULL, the
    requested key kept in requested_key).
    """

    __tablename__ = "cycle_run"
    __table_args__ = (UniqueConstraint("user_id", "idempotency_key", name="uq_cycle_run_user_idempotency_key"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    cycle_key = Column(Text, nullable=False)
    source = Column(Text, nullable=False)
    status = Column(Text, nullable=False)
    idempotency_key = Column(Text, nullable=True)
    requested_key = Column(Text, nullable=True)
    reference_instant = Column(DateTime(timezone=True), nullable=False)
    updated_card_count = Column(Integer, nullable=False, default=0)
    updated_loan_count = Column(Integer, nullable=False, default=0)
    aggregates = Column(JSON, nullable=True)
    result = Column(JSON, nullable=True)
    failure_reason = Column(Text, nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class CycleAuditLog(Base):
    """Readable trail of runs that were manual or changed something"""

    __tablename__ = "cycle_audit_log"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    cycle_run_id = Column(UUID(as_uuid=True), ForeignKey("cycle_run.id"), nullable=False)
    source = Column(Text, nullable=False)
    cycle_key = Column(Text, nullable=False)
    idempotency_key = Column(Text, nullable=True)
    ran_at = Column(DateTime(timezone=True), nullable=False)
    aggregates = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class MonthCloseSnapshot(Base):
    """Financial position per user and cycle, overwritten by each run"""

    __tablename__ = "month_close_snapshot"
    __table_args__ = (UniqueConstraint("user_id", "cycle_key", name="uq_month_close_snapshot_user_cycle"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    cycle_key = Column(Text, nullable=False)
    ran_at = Column(DateTime(timezone=True), nullable=False)
    summary = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class FinanceAuditEvent(Base):
    """Entity-level audit trail (liability advanced, run completed/failed)"""

    __tablename__ = "finance_audit_event"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    entity_type = Column(Text, nullable=False)
    entity_id = Column(Text, nullable=False)
    action = Column(Text, nullable=False)
    event_metadata = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
