"""Pytest fixtures for testing"""

import uuid
import pytest
from datetime import date, datetime
from typing import Callable, Generator, List, Optional, Sequence, Tuple
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from fatura_engine.api.dependencies import get_clock
from fatura_engine.api.main import create_app
from fatura_engine.domain.exceptions import AnticipationCommitError
from fatura_engine.domain.models import BillPayment, Card, Expense, PaymentType
from fatura_engine.infrastructure.database.models import Base, CardRecord
from fatura_engine.infrastructure.database.repositories import LedgerRepository, to_card
from fatura_engine.infrastructure.database.session import get_db, get_session_factory


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

USER_ID = "user_1"
PROFILE = "personal"
TODAY = date(2024, 7, 15)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


class Clock:
    """Settable stand-in for date.today"""

    def __init__(self, today: date = TODAY):
        self.today = today

    def __call__(self) -> date:
        return self.today


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def client(db: Session, clock: Clock) -> TestClient:
    """Create FastAPI test client with test database and a settable today (2024-07-15)"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: TestingSessionLocal
    app.dependency_overrides[get_clock] = lambda: clock
    return TestClient(app)


@pytest.fixture
def ledger(db: Session) -> LedgerRepository:
    return LedgerRepository(db, USER_ID, PROFILE)


@pytest.fixture
def card(db: Session) -> Card:
    """Card closing on the 10th, due on the 20th, R$5000 limit"""
    record = CardRecord(
        user_id=USER_ID,
        profile=PROFILE,
        name="Nubank",
        limit_cents=500_000,
        closing_day=10,
        due_day=20,
    )
    db.add(record)
    db.commit()
    return to_card(record)


@pytest.fixture
def make_expense() -> Callable[..., Expense]:
    def factory(card: Card, amount_cents: int, when: datetime, **fields) -> Expense:
        return Expense(
            id=fields.pop("id", str(uuid.uuid4())),
            amount_cents=amount_cents,
            date=when,
            payment_method=f"Cartão: {card.name}",
            card_id=card.id,
            user_id=card.user_id or USER_ID,
            profile=card.profile or PROFILE,
            **fields,
        )

    return factory


@pytest.fixture
def make_payment() -> Callable[..., BillPayment]:
    def factory(card: Card, amount_cents: int, when: datetime, type: PaymentType = PaymentType.PAYMENT) -> BillPayment:
        return BillPayment(
            id=str(uuid.uuid4()),
            card_id=card.id,
            amount_cents=amount_cents,
            date=when,
            type=type,
            user_id=card.user_id or USER_ID,
            profile=card.profile or PROFILE,
        )

    return factory


class InMemoryLedger:
    """
    List-backed stand-in for LedgerRepository.

    Implements the statement query contract and the anticipation store,
    with an optional injected commit failure.
    """

    def __init__(self, expenses: Sequence[Expense] = (), payments: Sequence[BillPayment] = ()):
        self.expenses: List[Expense] = list(expenses)
        self.payments: List[BillPayment] = list(payments)
        self.fail_commit = False

    def _card_expenses(self, card: Card) -> List[Expense]:
        return [e for e in self.expenses if e.card_id == card.id]

    def _card_payments(self, card: Card, payment_type: PaymentType) -> List[BillPayment]:
        return [p for p in self.payments if p.card_id == card.id and p.type == payment_type]

    def expenses_between(self, card, start, end):
        return [e for e in self._card_expenses(card) if start <= e.date <= end]

    def refunds_between(self, card, start, end):
        return [p for p in self._card_payments(card, PaymentType.REFUND) if start <= p.date <= end]

    def payments_between(self, card, after, until):
        return [p for p in self._card_payments(card, PaymentType.PAYMENT) if after < p.date <= until]

    def expenses_after(self, card, moment):
        return [e for e in self._card_expenses(card) if e.date > moment]

    def expense_date_bounds(self, card) -> Optional[Tuple[datetime, datetime]]:
        dates = [e.date for e in self._card_expenses(card)]
        if not dates:
            return None
        return min(dates), max(dates)

    def future_installments(self, expense):
        return sorted(
            (
                e
                for e in self.expenses
                if e.original_expense_id == expense.original_expense_id and e.date > expense.date
            ),
            key=lambda e: e.date,
        )

    def replace_expenses(self, delete_ids, replacement):
        if self.fail_commit:
            raise AnticipationCommitError("simulated commit failure")
        self.expenses = [e for e in self.expenses if e.id not in set(delete_ids)]
        self.expenses.append(replacement)
        return replacement


@pytest.fixture
def memory_ledger() -> Callable[..., InMemoryLedger]:
    return InMemoryLedger


@pytest.fixture
def memory_card() -> Card:
    return Card(id="card_1", name="Nubank", limit_cents=500_000, closing_day=10, due_day=20)
