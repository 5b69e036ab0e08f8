"""Domain models - pure Python dataclasses representing cards, records and statements"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional


class PaymentType(str, Enum):
    PAYMENT = "payment"
    REFUND = "refund"


class StatusLabel(str, Enum):
    OPEN = "open"
    PAID = "paid"
    CREDIT = "credit"
    OVERDUE = "overdue"


class Severity(str, Enum):
    """Urgency class used by callers to colour a status"""

    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    DANGER = "danger"
    NOTICE = "notice"
    MUTED = "muted"


class CyclePhase(str, Enum):
    CURRENT = "current"  # still accumulating charges
    CLOSED = "closed"  # past closing, not yet due
    FUTURE = "future"
    PAST = "past"


@dataclass
class Card:
    """Credit card configuration owned by a user+profile pair"""

    id: str
    name: str
    limit_cents: int
    closing_day: Optional[int]
    due_day: Optional[int]
    user_id: str = ""
    profile: str = ""
    is_archived: bool = False


@dataclass
class Expense:
    """Expense record; installments of one purchase share original_expense_id"""

    id: str
    amount_cents: int
    date: datetime
    payment_method: str
    card_id: Optional[str] = None
    description: str = ""
    main_category: Optional[str] = None
    subcategory: Optional[str] = None
    installments: int = 1
    current_installment: int = 1
    original_expense_id: Optional[str] = None
    user_id: str = ""
    profile: str = ""

    @property
    def is_installment(self) -> bool:
        return self.installments > 1 and self.original_expense_id is not None


@dataclass
class BillPayment:
    """Money applied against a card balance (payment) or returned to the holder (refund)"""

    id: str
    card_id: str
    amount_cents: int
    date: datetime
    type: PaymentType
    description: str = ""
    user_id: str = ""
    profile: str = ""


@dataclass
class CyclePeriod:
    """Date boundaries of one billing cycle"""

    year: int
    month: int
    cycle_start: datetime
    cycle_end: datetime
    due_date: datetime

    @property
    def closing_date(self) -> datetime:
        return self.cycle_end

    def contains(self, moment: datetime) -> bool:
        return self.cycle_start <= moment <= self.cycle_end


@dataclass
class StatementStatus:
    """Output of status classification"""

    label: StatusLabel
    severity: Severity
    phase: CyclePhase
    amount_cents: int = 0  # credit for CREDIT, remaining balance otherwise


@dataclass
class StatementTransaction:
    """One line of a statement"""

    id: str
    kind: str  # "expense" | "payment" | "refund"
    date: datetime
    amount_cents: int
    description: str = ""
    installments: int = 1
    current_installment: int = 1

    @property
    def can_anticipate(self) -> bool:
        return self.kind == "expense" and self.installments > 1


@dataclass
class Statement:
    """Derived, never persisted view of one (card, cycle) pair"""

    card_id: str
    period: CyclePeriod
    billed_total_cents: int
    refund_total_cents: int
    paid_total_cents: int
    net_total_cents: int
    outstanding_cents: int
    status: StatementStatus
    transactions: List[StatementTransaction] = field(default_factory=list)
    stale: bool = False

    @property
    def year(self) -> int:
        return self.period.year

    @property
    def month(self) -> int:
        return self.period.month

    @property
    def cycle_start(self) -> datetime:
        return self.period.cycle_start

    @property
    def cycle_end(self) -> datetime:
        return self.period.cycle_end

    @property
    def due_date(self) -> datetime:
        return self.period.due_date


@dataclass
class StatementSummary:
    """Statement-picker entry"""

    year: int
    month: int
    status: StatementStatus
    billed_total_cents: int
    balance_cents: int
    closing_date: date
    due_date: date


@dataclass
class AnticipationResult:
    """Outcome of collapsing installments into one expense"""

    applied: bool
    deleted_ids: List[str] = field(default_factory=list)
    new_expense: Optional[Expense] = None
    original_total_cents: int = 0
    discount_cents: int = 0
