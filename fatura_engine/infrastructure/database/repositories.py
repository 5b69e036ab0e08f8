"""Data access layer for cards, expenses and bill payments"""

from datetime import datetime
from typing import List, Optional, Sequence, Tuple
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session
from fatura_engine.infrastructure.database.models import BillPaymentRecord, CardRecord, ExpenseRecord
from fatura_engine.domain.exceptions import AnticipationCommitError, RecordNotFoundError, StatementLoadError
from fatura_engine.domain.models import BillPayment, Card, Expense, PaymentType


def to_card(record: CardRecord) -> Card:
    return Card(
        id=record.id,
        name=record.name,
        limit_cents=record.limit_cents,
        closing_day=record.closing_day,
        due_day=record.due_day,
        user_id=record.user_id,
        profile=record.profile,
        is_archived=record.is_archived,
    )


def to_expense(record: ExpenseRecord) -> Expense:
    return Expense(
        id=record.id,
        amount_cents=record.amount_cents,
        date=record.date,
        payment_method=record.payment_method,
        card_id=record.card_id,
        description=record.description,
        main_category=record.main_category,
        subcategory=record.subcategory,
        installments=record.installments,
        current_installment=record.current_installment,
        original_expense_id=record.original_expense_id,
        user_id=record.user_id,
        profile=record.profile,
    )


def to_bill_payment(record: BillPaymentRecord) -> BillPayment:
    return BillPayment(
        id=record.id,
        card_id=record.card_id,
        amount_cents=record.amount_cents,
        date=record.date,
        type=PaymentType(record.type),
        description=record.description,
        user_id=record.user_id,
        profile=record.profile,
    )


def expense_record(expense: Expense) -> ExpenseRecord:
    return ExpenseRecord(
        id=expense.id,
        user_id=expense.user_id,
        profile=expense.profile,
        card_id=expense.card_id,
        amount_cents=expense.amount_cents,
        date=expense.date,
        description=expense.description,
        main_category=expense.main_category,
        subcategory=expense.subcategory,
        payment_method=expense.payment_method,
        installments=expense.installments,
        current_installment=expense.current_installment,
        original_expense_id=expense.original_expense_id,
    )


class LedgerRepository:
    """
    Card ledger queries for one user/profile.

    Never reads outside the user/profile scope; statement queries are further
    narrowed by card and date window. Read failures surface as
    StatementLoadError.
    """

    def __init__(self, db: Session, user_id: str, profile: str):
        self.db = db
        self.user_id = user_id
        self.profile = profile

    def _scoped(self, model) -> Query:
        return self.db.query(model).filter(model.user_id == self.user_id, model.profile == self.profile)

    def _card_expenses(self, card: Card) -> Query:
        return self._scoped(ExpenseRecord).filter(ExpenseRecord.card_id == card.id)

    def _card_bill_payments(self, card: Card, payment_type: PaymentType) -> Query:
        return self._scoped(BillPaymentRecord).filter(
            BillPaymentRecord.card_id == card.id,
            BillPaymentRecord.type == payment_type.value,
        )

    @staticmethod
    def _fetch(query: Query) -> list:
        try:
            return query.all()
        except SQLAlchemyError as e:
            raise StatementLoadError(f"Statement query failed: {e}") from e

    # Lookups

    def get_card(self, card_id: str) -> Card:
        record = self._scoped(CardRecord).filter(CardRecord.id == card_id).first()
        if record is None:
            raise RecordNotFoundError(f"Card {card_id} not found")
        return to_card(record)

    def get_expense(self, expense_id: str) -> Expense:
        record = self._scoped(ExpenseRecord).filter(ExpenseRecord.id == expense_id).first()
        if record is None:
            raise RecordNotFoundError(f"Expense {expense_id} not found")
        return to_expense(record)

    # Statement queries

    def expenses_between(self, card: Card, start: datetime, end: datetime) -> List[Expense]:
        query = (
            self._card_expenses(card)
            .filter(ExpenseRecord.date >= start, ExpenseRecord.date <= end)
            .order_by(ExpenseRecord.date.desc())
        )
        return [to_expense(r) for r in self._fetch(query)]

    def refunds_between(self, card: Card, start: datetime, end: datetime) -> List[BillPayment]:
        query = (
            self._card_bill_payments(card, PaymentType.REFUND)
            .filter(BillPaymentRecord.date >= start, BillPaymentRecord.date <= end)
            .order_by(BillPaymentRecord.date.desc())
        )
        return [to_bill_payment(r) for r in self._fetch(query)]

    def payments_between(self, card: Card, after: datetime, until: datetime) -> List[BillPayment]:
        query = (
            self._card_bill_payments(card, PaymentType.PAYMENT)
            .filter(BillPaymentRecord.date > after, BillPaymentRecord.date <= until)
            .order_by(BillPaymentRecord.date.desc())
        )
        return [to_bill_payment(r) for r in self._fetch(query)]

    def expenses_after(self, card: Card, moment: datetime) -> List[Expense]:
        query = self._card_expenses(card).filter(ExpenseRecord.date > moment).order_by(ExpenseRecord.date.asc())
        return [to_expense(r) for r in self._fetch(query)]

    def expense_date_bounds(self, card: Card) -> Optional[Tuple[datetime, datetime]]:
        query = self.db.query(func.min(ExpenseRecord.date), func.max(ExpenseRecord.date)).filter(
            ExpenseRecord.user_id == self.user_id,
            ExpenseRecord.profile == self.profile,
            ExpenseRecord.card_id == card.id,
        )
        earliest, latest = self._fetch(query)[0]
        if earliest is None:
            return None
        return earliest, latest

    def future_installments(self, expense: Expense) -> List[Expense]:
        """Siblings of an installment dated strictly after it, oldest first"""
        if expense.original_expense_id is None:
            return []
        query = (
            self._scoped(ExpenseRecord)
            .filter(
                ExpenseRecord.original_expense_id == expense.original_expense_id,
                ExpenseRecord.date > expense.date,
            )
            .order_by(ExpenseRecord.date.asc())
        )
        return [to_expense(r) for r in self._fetch(query)]

    # Writes

    def add_expenses(self, expenses: Sequence[Expense]) -> None:
        """Stage expenses; the caller commits"""
        for expense in expenses:
            self.db.add(expense_record(expense))
        self.db.flush()

    def add_bill_payment(self, payment: BillPayment) -> None:
        """Stage a payment or refund; the caller commits"""
        self.db.add(
            BillPaymentRecord(
                id=payment.id,
                user_id=payment.user_id,
                profile=payment.profile,
                card_id=payment.card_id,
                amount_cents=payment.amount_cents,
                date=payment.date,
                type=payment.type.value,
                description=payment.description,
            )
        )
        self.db.flush()

    def replace_expenses(self, delete_ids: Sequence[str], replacement: Expense) -> Expense:
        """
        Delete `delete_ids` and insert `replacement` in one transaction.

        Raises:
            AnticipationCommitError: rolled back, no record changed
        """
        try:
            for expense_id in delete_ids:
                record = self._scoped(ExpenseRecord).filter(ExpenseRecord.id == expense_id).first()
                if record is None:
                    raise AnticipationCommitError(f"Expense {expense_id} no longer exists")
                self.db.delete(record)

            self.db.add(expense_record(replacement))
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise AnticipationCommitError(f"Anticipation could not be committed: {e}") from e
        except AnticipationCommitError:
            self.db.rollback()
            raise

        return replacement

    def link_legacy_expenses(self, card: Card, payment_method: str) -> int:
        """
        Attach expenses recorded before card_id existed, matched by their
        payment-method label. Returns how many were linked; the caller commits.
        """
        records = (
            self._scoped(ExpenseRecord)
            .filter(ExpenseRecord.card_id.is_(None), ExpenseRecord.payment_method == payment_method)
            .all()
        )
        for record in records:
            record.card_id = card.id
        self.db.flush()
        return len(records)
