"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import ClassVar, Dict, List, Optional, Union


class Cadence(str, Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"
    CUSTOM = "custom"
    ONE_TIME = "one_time"


class CustomUnit(str, Enum):
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"
    YEARS = "years"


class MinimumPaymentPolicy(str, Enum):
    FIXED = "fixed"
    PERCENT_PLUS_INTEREST = "percent_plus_interest"


class LiabilityKind(str, Enum):
    CARD = "card"
    LOAN = "loan"


class LineType(str, Enum):
    DEBIT = "debit"
    CREDIT = "credit"


class RunSource(str, Enum):
    MANUAL = "manual"
    AUTOMATIC = "automatic"


class RunStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class RecurrenceDefinition:
    """When a financial event repeats"""

    cadence: Cadence
    anchor: Union[date, datetime]
    custom_interval: Optional[int] = None
    custom_unit: Optional[CustomUnit] = None
    day_of_month: Optional[int] = None

    def __post_init__(self) -> None:
        # Stored rows carry plain strings
        self.cadence = Cadence(self.cadence)
        if self.custom_unit is not None:
            self.custom_unit = CustomUnit(self.custom_unit)


@dataclass
class CardSnapshot:
    """Balance-bearing state of a revolving credit card"""

    kind: ClassVar[LiabilityKind] = LiabilityKind.CARD

    name: str
    balance: float
    statement_balance: float
    pending_charges: float = 0.0
    credit_limit: float = 0.0
    interest_rate_apr: float = 0.0
    minimum_payment: float = 0.0
    minimum_payment_policy: MinimumPaymentPolicy = MinimumPaymentPolicy.FIXED
    minimum_payment_percent: Optional[float] = None
    extra_payment: float = 0.0
    spend_per_month: float = 0.0

    def __post_init__(self) -> None:
        self.minimum_payment_policy = MinimumPaymentPolicy(self.minimum_payment_policy)


@dataclass
class LoanSnapshot:
    """Balance-bearing state of an installment loan"""

    kind: ClassVar[LiabilityKind] = LiabilityKind.LOAN

    name: str
    balance: float
    recurrence: RecurrenceDefinition
    interest_rate_apr: float = 0.0
    minimum_payment: float = 0.0
    subscription_cost: float = 0.0


@dataclass
class CardCycleResult:
    """Outcome of advancing a card through N statement cycles"""

    cycles: int
    balance: float
    statement_balance: float
    pending_charges: float
    due_balance: float
    minimum_due: float
    interest_accrued: float
    payments_applied: float
    spend_added: float

    def balance_patch(self) -> Dict[str, float]:
        return {
            "balance": self.balance,
            "statement_balance": self.statement_balance,
            "pending_charges": self.pending_charges,
        }


@dataclass
class LoanCycleResult:
    """Outcome of advancing a loan through N monthly cycles"""

    cycles: int
    balance: float
    monthly_payment: float
    interest_accrued: float
    payments_applied: float
    spend_added: float = 0.0

    def balance_patch(self) -> Dict[str, float]:
        return {"balance": self.balance}


AdvanceResult = Union[CardCycleResult, LoanCycleResult]
LiabilitySnapshot = Union[CardSnapshot, LoanSnapshot]


@dataclass
class LedgerLineDraft:
    line_type: LineType
    account_code: str
    amount: float


@dataclass
class LedgerEntryDraft:
    """Journal entry waiting to be validated and appended"""

    user_id: str
    entry_type: str
    description: str
    occurred_at: datetime
    lines: List[LedgerLineDraft] = field(default_factory=list)
    reference_type: Optional[str] = None
    reference_id: Optional[str] = None
    cycle_key: Optional[str] = None


@dataclass
class IncomeSnapshot:
    name: str
    amount: float
    recurrence: RecurrenceDefinition


@dataclass
class BillSnapshot:
    name: str
    amount: float
    recurrence: RecurrenceDefinition
    autopay: bool = False


@dataclass
class CashAccountSnapshot:
    name: str
    account_type: str  # checking | savings | investment | cash | debt
    balance: float
    liquid: bool = True


@dataclass
class MonthCloseSummary:
    """Point-in-time financial position captured at month close"""

    monthly_income: float
    monthly_commitments: float
    total_assets: float
    total_liabilities: float
    liquid_reserves: float
    net_worth: float
    runway_months: float


@dataclass
class CashEvent:
    """Projected money movement on a calendar date"""

    kind: str  # income | bill | loan
    name: str
    due_date: date
    amount: float
