"""Pydantic schemas for API request/response validation"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from finance_cycle.domain.models import (
    Cadence,
    CardSnapshot,
    CustomUnit,
    LineType,
    LoanSnapshot,
    MinimumPaymentPolicy,
    RecurrenceDefinition,
    RunSource,
)


class RecurrenceSchema(BaseModel):
    """Recurrence definition; anchor defaults to the request time"""

    cadence: Cadence = Cadence.MONTHLY
    anchor: Optional[datetime] = None
    custom_interval: Optional[int] = None
    custom_unit: Optional[CustomUnit] = None
    day_of_month: Optional[int] = None

    def to_domain(self, default_anchor: datetime) -> RecurrenceDefinition:
        return RecurrenceDefinition(
            cadence=self.cadence,
            anchor=self.anchor or default_anchor,
            custom_interval=self.custom_interval,
            custom_unit=self.custom_unit,
            day_of_month=self.day_of_month,
        )


class CardState(BaseModel):
    """Balance-bearing card fields, as stored or as previewed"""

    name: str = Field(..., description="Card name, also the ledger account token")
    credit_limit: float = Field(..., description="Credit limit")
    balance: float = Field(0.0, description="Current owed amount")
    statement_balance: Optional[float] = Field(None, description="Defaults to balance")
    pending_charges: Optional[float] = Field(None, description="Defaults to balance - statement balance")
    spend_per_month: float = 0.0
    interest_rate_apr: float = 0.0
    minimum_payment: float = 0.0
    minimum_payment_policy: MinimumPaymentPolicy = MinimumPaymentPolicy.FIXED
    minimum_payment_percent: Optional[float] = None
    extra_payment: float = 0.0

    def to_domain(self) -> CardSnapshot:
        statement_balance = self.balance if self.statement_balance is None else self.statement_balance
        pending_charges = (
            max(self.balance - statement_balance, 0.0) if self.pending_charges is None else self.pending_charges
        )
        return CardSnapshot(
            name=self.name,
            balance=self.balance,
            statement_balance=statement_balance,
            pending_charges=pending_charges,
            credit_limit=self.credit_limit,
            interest_rate_apr=self.interest_rate_apr,
            minimum_payment=self.minimum_payment,
            minimum_payment_policy=self.minimum_payment_policy,
            minimum_payment_percent=self.minimum_payment_percent,
            extra_payment=self.extra_payment,
            spend_per_month=self.spend_per_month,
        )


class LoanState(BaseModel):
    """Balance-bearing loan fields"""

    name: str
    balance: float = 0.0
    interest_rate_apr: float = 0.0
    minimum_payment: float = 0.0
    subscription_cost: float = 0.0
    recurrence: RecurrenceSchema = Field(default_factory=RecurrenceSchema)

    def to_domain(self, default_anchor: datetime) -> LoanSnapshot:
        return LoanSnapshot(
            name=self.name,
            balance=self.balance,
            recurrence=self.recurrence.to_domain(default_anchor),
            interest_rate_apr=self.interest_rate_apr,
            minimum_payment=self.minimum_payment,
            subscription_cost=self.subscription_cost,
        )


class CardCreateRequest(CardState):
    """Request body for POST /v1/cards"""

    last_cycle_anchor: Optional[datetime] = Field(None, description="Defaults to creation time")


class LoanCreateRequest(LoanState):
    """Request body for POST /v1/loans"""

    last_cycle_anchor: Optional[datetime] = Field(None, description="Defaults to creation time")


class LiabilityResponse(BaseModel):
    """Stored card or loan"""

    id: str
    kind: str
    name: str
    balance: float
    statement_balance: Optional[float] = None
    pending_charges: Optional[float] = None
    last_cycle_anchor: datetime


class CardSimulationRequest(BaseModel):
    """Request body for POST /v1/simulate/card"""

    card: CardState
    cycles: int = Field(..., ge=0, le=600, description="Monthly cycles to simulate")


class LoanSimulationRequest(BaseModel):
    """Request body for POST /v1/simulate/loan"""

    loan: LoanState
    cycles: int = Field(..., ge=0, le=600, description="Monthly cycles to simulate")


class CardCycleResponse(BaseModel):
    cycles: int
    balance: float
    statement_balance: float
    pending_charges: float
    due_balance: float
    minimum_due: float
    interest_accrued: float
    payments_applied: float
    spend_added: float


class LoanCycleResponse(BaseModel):
    cycles: int
    balance: float
    monthly_payment: float
    interest_accrued: float
    payments_applied: float


class LedgerLineSchema(BaseModel):
    """Single debit or credit posting"""

    line_type: LineType
    account_code: str = Field(..., min_length=1)
    amount: float


class LedgerEntryRequest(BaseModel):
    """Request body for POST /v1/ledger/entries"""

    entry_type: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    occurred_at: Optional[datetime] = None
    reference_type: Optional[str] = None
    reference_id: Optional[str] = None
    cycle_key: Optional[str] = Field(None, pattern=r"^\d{4}-\d{2}$")
    lines: List[LedgerLineSchema]


class LedgerEntryResponse(BaseModel):
    """Stored journal entry with its lines"""

    id: str
    entry_type: str
    description: str
    occurred_at: datetime
    reference_type: Optional[str] = None
    reference_id: Optional[str] = None
    cycle_key: Optional[str] = None
    lines: List[LedgerLineSchema]


class LedgerEntriesResponse(BaseModel):
    user_id: str
    entries: List[LedgerEntryResponse]


class CycleRunRequest(BaseModel):
    """Request body for POST /v1/cycles/run"""

    reference_instant: Optional[datetime] = Field(None, description="Defaults to now; set it to backfill")
    source: RunSource = RunSource.MANUAL
    idempotency_key: Optional[str] = Field(None, max_length=200)


class MonthCloseSummarySchema(BaseModel):
    monthly_income: float
    monthly_commitments: float
    total_assets: float
    total_liabilities: float
    liquid_reserves: float
    net_worth: float
    runway_months: float


class CycleRunResponse(BaseModel):
    """Response for POST /v1/cycles/run; replays return the stored payload"""

    cycle_run_id: str
    audit_log_id: Optional[str] = None
    status: str
    source: RunSource
    cycle_key: str
    idempotency_key: Optional[str] = None
    reference_instant: str
    updated_cards: int
    updated_loans: int
    cycles_applied: int
    card_cycles_applied: int
    loan_cycles_applied: int
    interest_accrued: float
    payments_applied: float
    spend_added: float
    card_interest_accrued: float
    card_payments_applied: float
    card_spend_added: float
    loan_interest_accrued: float
    loan_payments_applied: float
    ledger_entries_posted: int
    snapshot: MonthCloseSummarySchema


class CycleRunHistoryItem(BaseModel):
    """Single run in history"""

    cycle_run_id: str
    cycle_key: str
    source: str
    status: str
    idempotency_key: Optional[str] = None
    updated_card_count: int
    updated_loan_count: int
    failure_reason: Optional[str] = None
    started_at: str


class CycleRunHistoryResponse(BaseModel):
    user_id: str
    runs: List[CycleRunHistoryItem]


class SnapshotResponse(BaseModel):
    """Response for GET /v1/cycles/snapshots/{cycle_key}"""

    user_id: str
    cycle_key: str
    ran_at: str
    summary: MonthCloseSummarySchema


class UpcomingEventSchema(BaseModel):
    kind: str
    name: str
    due_date: date
    amount: float


class UpcomingEventsResponse(BaseModel):
    user_id: str
    reference_date: date
    events: List[UpcomingEventSchema]
