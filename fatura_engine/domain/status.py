"""Statement status classification"""

from datetime import date, datetime
from typing import Optional, Union

from fatura_engine.domain.models import CyclePhase, Severity, StatementStatus, StatusLabel

DateLike = Union[date, datetime]


def _as_date(value: DateLike) -> date:
    return value.date() if isinstance(value, datetime) else value


def cycle_phase(
    today: date,
    due_date: DateLike,
    closing_date: Optional[DateLike] = None,
    is_current_cycle: bool = False,
    is_future_cycle: bool = False,
) -> CyclePhase:
    if is_future_cycle:
        return CyclePhase.FUTURE
    if is_current_cycle:
        return CyclePhase.CURRENT
    if closing_date is not None and today <= _as_date(closing_date):
        return CyclePhase.CURRENT
    if closing_date is not None and today <= _as_date(due_date):
        return CyclePhase.CLOSED
    return CyclePhase.PAST


def classify_status(
    billed_cents: int,
    paid_cents: int,
    due_date: DateLike,
    closing_date: Optional[DateLike] = None,
    is_current_cycle: bool = False,
    is_future_cycle: bool = False,
    today: Optional[date] = None,
) -> StatementStatus:
    """
    Classify a cycle by comparing billed and paid amounts against the due date.

    Rules, in order:
    - paid >= billed: PAID, or CREDIT carrying the overpaid amount
    - today <= due date: OPEN, carrying the remaining balance
    - otherwise: OVERDUE, carrying the outstanding amount

    A cycle past its closing date but not yet due stays OPEN; its phase
    (CLOSED) and severity (WARNING) tell it apart from the cycle still
    accumulating charges. Always returns a status.
    """
    today = today or date.today()
    phase = cycle_phase(today, due_date, closing_date, is_current_cycle, is_future_cycle)
    remaining = billed_cents - paid_cents

    if paid_cents >= billed_cents:
        if paid_cents > billed_cents:
            return StatementStatus(StatusLabel.CREDIT, Severity.SUCCESS, phase, paid_cents - billed_cents)
        # Nothing billed and nothing paid: an empty cycle
        severity = Severity.MUTED if billed_cents == 0 else Severity.SUCCESS
        return StatementStatus(StatusLabel.PAID, severity, phase, 0)

    if today <= _as_date(due_date):
        if phase == CyclePhase.CLOSED:
            severity = Severity.WARNING
        elif phase == CyclePhase.FUTURE:
            severity = Severity.NOTICE
        else:
            severity = Severity.INFO
        return StatementStatus(StatusLabel.OPEN, severity, phase, remaining)

    return StatementStatus(StatusLabel.OVERDUE, Severity.DANGER, phase, remaining)
