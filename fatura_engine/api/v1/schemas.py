"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import List, Optional


class StatusSchema(BaseModel):
    """Classified statement status"""

    label: str  # open | paid | credit | overdue
    severity: str
    phase: str
    amount_cents: int


class TransactionSchema(BaseModel):
    """Single statement line"""

    id: str
    kind: str  # expense | payment | refund
    date: datetime
    amount_cents: int
    description: str
    installments: int = 1
    current_installment: int = 1
    can_anticipate: bool = False


class StatementResponse(BaseModel):
    """Response for GET /v1/cards/{card_id}/statements/{year}/{month}"""

    card_id: str
    year: int
    month: int
    cycle_start: datetime
    cycle_end: datetime
    due_date: date
    billed_total_cents: int
    refund_total_cents: int
    paid_total_cents: int
    net_total_cents: int
    outstanding_cents: int
    status: StatusSchema
    transactions: List[TransactionSchema]
    stale: bool = False


class StatementSummarySchema(BaseModel):
    """Single statement-picker entry"""

    year: int
    month: int
    status: StatusSchema
    billed_total_cents: int
    balance_cents: int
    closing_date: date
    due_date: date


class StatementListResponse(BaseModel):
    """Response for GET /v1/cards/{card_id}/statements"""

    card_id: str
    statements: List[StatementSummarySchema]


class CurrentStatementsResponse(BaseModel):
    """Response for GET /v1/cards/{card_id}/current-statements"""

    card_id: str
    statements: List[StatementResponse]


class AvailableCreditResponse(BaseModel):
    """Response for GET /v1/cards/{card_id}/available-credit"""

    card_id: str
    limit_cents: int
    available_credit_cents: int


class LinkExpensesResponse(BaseModel):
    """Response for POST /v1/cards/{card_id}/link-expenses"""

    card_id: str
    linked: int


class InstallmentSchema(BaseModel):
    """Future installment offered for anticipation"""

    id: str
    date: datetime
    amount_cents: int
    current_installment: int
    installments: int
    description: str


class FutureInstallmentsResponse(BaseModel):
    """Response for GET /v1/expenses/{expense_id}/future-installments"""

    expense_id: str
    installments: List[InstallmentSchema]


class AnticipationRequest(BaseModel):
    """Request body for POST /v1/expenses/{expense_id}/anticipation"""

    installment_ids: List[str] = Field(default_factory=list, description="Future installments to anticipate")
    new_total_cents: int = Field(..., gt=0, description="Amount of the single replacement expense")


class AnticipationResponse(BaseModel):
    """Response for POST /v1/expenses/{expense_id}/anticipation"""

    applied: bool
    deleted_ids: List[str]
    new_expense_id: Optional[str] = None
    new_expense_date: Optional[datetime] = None
    new_total_cents: Optional[int] = None
    original_total_cents: int
    discount_cents: int
