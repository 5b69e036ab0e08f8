"""Date manipulation utilities"""

from calendar import monthrange
from datetime import datetime, time
from typing import Tuple

from dateutil.relativedelta import relativedelta


def clamp_day(year: int, month: int, day: int) -> datetime:
    """Midnight of `day` in (year, month), clamped to the month's last day"""
    last_day = monthrange(year, month)[1]
    return datetime(year, month, min(day, last_day))


def shift_month(year: int, month: int, months: int) -> Tuple[int, int]:
    """Move a (year, month) pair by a number of months (negative goes back)"""
    shifted = datetime(year, month, 1) + relativedelta(months=months)
    return shifted.year, shifted.month


def add_months(moment: datetime, months: int) -> datetime:
    """Same day `months` later; days past the target month's end are clamped"""
    return moment + relativedelta(months=months)


def start_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), time.min)


def end_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), time.max)
