"""Statement computation - totals, status and transaction list for one cycle"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional, Protocol, Sequence, Tuple

from fatura_engine.domain.models import (
    BillPayment,
    Card,
    CyclePeriod,
    Expense,
    Statement,
    StatementTransaction,
)
from fatura_engine.domain.periods import card_cycle_period, current_cycle, is_future_cycle, previous_cycle_end
from fatura_engine.domain.status import classify_status


class StatementSource(Protocol):
    """
    One-shot query contract over the record store.

    Every method is scoped to the card's user/profile. Implementations wrap
    store failures in StatementLoadError.
    """

    def expenses_between(self, card: Card, start: datetime, end: datetime) -> List[Expense]:
        ...

    def refunds_between(self, card: Card, start: datetime, end: datetime) -> List[BillPayment]:
        ...

    def payments_between(self, card: Card, after: datetime, until: datetime) -> List[BillPayment]:
        """Payments with after < date <= until"""
        ...

    def expenses_after(self, card: Card, moment: datetime) -> List[Expense]:
        ...

    def expense_date_bounds(self, card: Card) -> Optional[Tuple[datetime, datetime]]:
        """(earliest, latest) expense date for the card, None when it has none"""
        ...


@dataclass
class StatementWindows:
    """Query windows feeding one cycle's statement"""

    period: CyclePeriod
    payments_after: datetime  # exclusive: previous cycle's closing

    @property
    def charges_start(self) -> datetime:
        return self.period.cycle_start

    @property
    def charges_end(self) -> datetime:
        return self.period.cycle_end

    @property
    def payments_until(self) -> datetime:
        return self.period.cycle_end


def statement_windows(card: Card, year: int, month: int) -> StatementWindows:
    """
    Expenses and refunds count inside [cycle_start, cycle_end]. Payments
    count from just after the previous closing up to this closing, so an
    advance payment made before the closing date still settles this cycle.
    """
    return StatementWindows(
        period=card_cycle_period(card, year, month),
        payments_after=previous_cycle_end(card, year, month),
    )


def _expense_line(expense: Expense) -> StatementTransaction:
    return StatementTransaction(
        id=expense.id,
        kind="expense",
        date=expense.date,
        amount_cents=expense.amount_cents,
        description=expense.description,
        installments=expense.installments,
        current_installment=expense.current_installment,
    )


def _payment_line(payment: BillPayment) -> StatementTransaction:
    return StatementTransaction(
        id=payment.id,
        kind=payment.type.value,
        date=payment.date,
        amount_cents=payment.amount_cents,
        description=payment.description,
    )


def build_statement(
    card: Card,
    period: CyclePeriod,
    expenses: Sequence[Expense],
    payments: Sequence[BillPayment],
    refunds: Sequence[BillPayment],
    today: Optional[date] = None,
    carried_credit_cents: int = 0,
) -> Statement:
    """
    Pure statement computation from one snapshot of each record stream.

    net = max(0, billed - refunds); outstanding = net - paid. Credit left
    over from an overpaid previous cycle counts as paid for the status only.
    """
    today = today or date.today()

    billed = sum(e.amount_cents for e in expenses)
    refunded = sum(r.amount_cents for r in refunds)
    paid = sum(p.amount_cents for p in payments)
    net = max(0, billed - refunded)

    current = current_cycle(today, card.closing_day)
    status = classify_status(
        net,
        paid + carried_credit_cents,
        period.due_date,
        period.closing_date,
        is_current_cycle=(period.year, period.month) == current,
        is_future_cycle=is_future_cycle(period.year, period.month, current),
        today=today,
    )

    lines = [_expense_line(e) for e in expenses]
    lines.extend(_payment_line(p) for p in payments)
    lines.extend(_payment_line(r) for r in refunds)
    lines.sort(key=lambda line: line.date, reverse=True)

    return Statement(
        card_id=card.id,
        period=period,
        billed_total_cents=billed,
        refund_total_cents=refunded,
        paid_total_cents=paid,
        net_total_cents=net,
        outstanding_cents=net - paid,
        status=status,
        transactions=lines,
    )


def load_statement(
    source: StatementSource,
    card: Card,
    year: int,
    month: int,
    today: Optional[date] = None,
    carried_credit_cents: int = 0,
) -> Statement:
    """One-shot statement for (card, year, month)"""
    windows = statement_windows(card, year, month)
    expenses = source.expenses_between(card, windows.charges_start, windows.charges_end)
    refunds = source.refunds_between(card, windows.charges_start, windows.charges_end)
    payments = source.payments_between(card, windows.payments_after, windows.payments_until)
    return build_statement(card, windows.period, expenses, payments, refunds, today, carried_credit_cents)
