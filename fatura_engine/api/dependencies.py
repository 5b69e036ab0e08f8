"""Dependency injection for FastAPI endpoints"""

from datetime import date
from typing import Callable
from fastapi import Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from fatura_engine.domain.exceptions import RecordNotFoundError
from fatura_engine.domain.models import Card
from fatura_engine.infrastructure.database.repositories import LedgerRepository
from fatura_engine.infrastructure.database.session import get_db

# Cycles whose neighbours (previous closing, next due date) stay within datetime range
MIN_CYCLE_YEAR = 2
MAX_CYCLE_YEAR = 9998


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_clock() -> Callable[[], date]:
    """Source of "today"; long-lived consumers call it on every recomputation"""
    return date.today


def get_today(clock: Callable[[], date] = Depends(get_clock)) -> date:
    """Reference date for cycle and status decisions"""
    return clock()


def check_cycle(year: int, month: int) -> None:
    """
    Raises:
        HTTPException 422: month outside 1..12 or year outside the supported range
    """
    if not 1 <= month <= 12:
        raise HTTPException(status_code=422, detail="Month must be between 1 and 12")
    if not MIN_CYCLE_YEAR <= year <= MAX_CYCLE_YEAR:
        raise HTTPException(
            status_code=422, detail=f"Year must be between {MIN_CYCLE_YEAR} and {MAX_CYCLE_YEAR}"
        )


def get_ledger(
    user_id: str = Query(..., min_length=1, description="User identifier"),
    profile: str = Query(..., min_length=1, description="Active profile"),
    db: Session = Depends(get_db),
) -> LedgerRepository:
    """Ledger repository scoped to the requesting user/profile"""
    return LedgerRepository(db, user_id, profile)


def load_card(card_id: str, ledger: LedgerRepository) -> Card:
    """
    Fetch a card usable by the statement engine.

    Raises:
        HTTPException 404: unknown card
        HTTPException 409: card lacks closing or due day
    """
    try:
        card = ledger.get_card(card_id)
    except RecordNotFoundError:
        raise HTTPException(status_code=404, detail="Card not found")

    if card.closing_day is None or card.due_day is None:
        raise HTTPException(status_code=409, detail="Card has no closing or due day configured")
    return card

