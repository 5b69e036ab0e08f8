"""Billing cycle boundaries derived from a card's closing and due days"""

from datetime import date, datetime, timedelta
from typing import Optional, Tuple

from fatura_engine.domain.exceptions import InvalidCardConfigurationError
from fatura_engine.domain.models import Card, CyclePeriod
from fatura_engine.utils.date_utils import clamp_day, end_of_day, shift_month, start_of_day


def _check_day(name: str, value: Optional[int]) -> int:
    if value is None or not 1 <= value <= 31:
        raise InvalidCardConfigurationError(f"{name} must be between 1 and 31, got {value!r}")
    return value


def compute_cycle_period(year: int, month: int, closing_day: int, due_day: int) -> CyclePeriod:
    """
    Compute the charge window and due date of the (year, month) cycle.

    The "July" cycle of a card closing on the 10th collects purchases from
    June 11 00:00 up to July 10 23:59:59.999999. Closing days beyond the
    month's length fall on its last day, so consecutive cycles never leave a
    gap: each starts the day after the previous closing date.

    Due date:
    - due_day > closing_day: same month as the closing date
    - otherwise: the month after the closing date

    Raises:
        InvalidCardConfigurationError: closing/due day missing or outside 1..31
    """
    closing_day = _check_day("closing_day", closing_day)
    due_day = _check_day("due_day", due_day)

    cycle_end = end_of_day(clamp_day(year, month, closing_day))

    prev_year, prev_month = shift_month(year, month, -1)
    previous_closing = clamp_day(prev_year, prev_month, closing_day)
    cycle_start = start_of_day(previous_closing + timedelta(days=1))

    if due_day > closing_day:
        due_date = clamp_day(year, month, due_day)
    else:
        due_year, due_month = shift_month(year, month, 1)
        due_date = clamp_day(due_year, due_month, due_day)

    return CyclePeriod(
        year=year,
        month=month,
        cycle_start=cycle_start,
        cycle_end=cycle_end,
        due_date=due_date,
    )


def card_cycle_period(card: Card, year: int, month: int) -> CyclePeriod:
    """compute_cycle_period for a stored card"""
    return compute_cycle_period(year, month, card.closing_day, card.due_day)


def previous_cycle_end(card: Card, year: int, month: int) -> datetime:
    prev_year, prev_month = shift_month(year, month, -1)
    return card_cycle_period(card, prev_year, prev_month).cycle_end


def cycle_for_date(moment: datetime, closing_day: int) -> Tuple[int, int]:
    """(year, month) of the cycle whose charge window contains `moment`"""
    closing_day = _check_day("closing_day", closing_day)
    closing = clamp_day(moment.year, moment.month, closing_day)
    if moment.date() > closing.date():
        return shift_month(moment.year, moment.month, 1)
    return moment.year, moment.month


def current_cycle(today: date, closing_day: int) -> Tuple[int, int]:
    """
    Cycle still open for purchases on `today`.

    Once today's day is past the closing day the month's cycle has closed and
    the open one is next month's.
    """
    moment = datetime(today.year, today.month, today.day)
    return cycle_for_date(moment, closing_day)


def is_future_cycle(year: int, month: int, current: Tuple[int, int]) -> bool:
    return (year, month) > current
