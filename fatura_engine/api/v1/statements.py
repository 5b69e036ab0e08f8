"""Statement endpoints - single cycle, history, dashboard view and live feed"""

import asyncio
import contextlib
import logging
import time
from datetime import date
from typing import Callable

from fastapi import APIRouter, Depends, HTTPException, Query, Request, WebSocket, WebSocketDisconnect
from sqlalchemy.orm import Session

from fatura_engine.api.dependencies import check_cycle, get_clock, get_ledger, get_request_id, get_today, load_card
from fatura_engine.api.v1.schemas import (
    AvailableCreditResponse,
    CurrentStatementsResponse,
    LinkExpensesResponse,
    StatementListResponse,
    StatementResponse,
    StatementSummarySchema,
    StatusSchema,
    TransactionSchema,
)
from fatura_engine.config import settings
from fatura_engine.domain.exceptions import InvalidCardConfigurationError, RecordNotFoundError, StatementLoadError
from fatura_engine.domain.installments import card_payment_method
from fatura_engine.domain.models import Statement, StatementStatus
from fatura_engine.domain.scanner import available_credit, current_statements, scan_statements
from fatura_engine.domain.statements import load_statement
from fatura_engine.infrastructure.database.repositories import LedgerRepository
from fatura_engine.infrastructure.database.session import get_session_factory
from fatura_engine.infrastructure.observability.logging import log_statement
from fatura_engine.infrastructure.observability.metrics import (
    record_statement,
    statement_duration_histogram,
    statement_load_failures_counter,
)
from fatura_engine.infrastructure.streams import open_live_statement

router = APIRouter()


def status_schema(status: StatementStatus) -> StatusSchema:
    return StatusSchema(
        label=status.label.value,
        severity=status.severity.value,
        phase=status.phase.value,
        amount_cents=status.amount_cents,
    )


def statement_response(statement: Statement) -> StatementResponse:
    return StatementResponse(
        card_id=statement.card_id,
        year=statement.year,
        month=statement.month,
        cycle_start=statement.cycle_start,
        cycle_end=statement.cycle_end,
        due_date=statement.due_date.date(),
        billed_total_cents=statement.billed_total_cents,
        refund_total_cents=statement.refund_total_cents,
        paid_total_cents=statement.paid_total_cents,
        net_total_cents=statement.net_total_cents,
        outstanding_cents=statement.outstanding_cents,
        status=status_schema(statement.status),
        transactions=[
            TransactionSchema(
                id=tx.id,
                kind=tx.kind,
                date=tx.date,
                amount_cents=tx.amount_cents,
                description=tx.description,
                installments=tx.installments,
                current_installment=tx.current_installment,
                can_anticipate=tx.can_anticipate,
            )
            for tx in statement.transactions
        ],
        stale=statement.stale,
    )


def _engine_error(e: Exception, request_id: str) -> HTTPException:
    """Map engine failures to HTTP errors"""
    if isinstance(e, InvalidCardConfigurationError):
        logging.warning(f"Invalid card configuration: {e}", extra={"request_id": request_id})
        return HTTPException(status_code=409, detail=str(e))
    statement_load_failures_counter.inc()
    logging.error(f"Statement load failed: {e}", extra={"request_id": request_id})
    return HTTPException(status_code=503, detail="Could not load statement")


@router.get("/cards/{card_id}/statements/{year}/{month}", response_model=StatementResponse)
def get_statement(
    card_id: str,
    year: int,
    month: int,
    request: Request,
    ledger: LedgerRepository = Depends(get_ledger),
    today: date = Depends(get_today),
):
    """
    Compute the statement of one billing cycle.

    Months are 1-based; the July cycle of a card closing on the 10th covers
    June 11 to July 10.
    """
    check_cycle(year, month)

    start_time = time.time()
    request_id = get_request_id(request)
    card = load_card(card_id, ledger)

    try:
        with statement_duration_histogram.labels(view="statement").time():
            statement = load_statement(ledger, card, year, month, today=today)
    except (InvalidCardConfigurationError, StatementLoadError) as e:
        raise _engine_error(e, request_id)

    record_statement(statement)
    log_statement(request_id, statement, (time.time() - start_time) * 1000)

    return statement_response(statement)


@router.get("/cards/{card_id}/statements", response_model=StatementListResponse)
def list_statements(
    card_id: str,
    request: Request,
    include_future: bool = Query(False, description="Also list cycles holding future installments"),
    ledger: LedgerRepository = Depends(get_ledger),
    today: date = Depends(get_today),
):
    """
    Statement-picker list, most recent first.

    Returns:
        Cycles with charges, back to the card's first expense or the lookback limit
    """
    request_id = get_request_id(request)
    card = load_card(card_id, ledger)

    try:
        with statement_duration_histogram.labels(view="history").time():
            summaries = scan_statements(
                ledger,
                card,
                today=today,
                lookback=settings.statement_lookback_cycles,
                include_future=include_future,
            )
    except (InvalidCardConfigurationError, StatementLoadError) as e:
        raise _engine_error(e, request_id)

    return StatementListResponse(
        card_id=card.id,
        statements=[
            StatementSummarySchema(
                year=s.year,
                month=s.month,
                status=status_schema(s.status),
                billed_total_cents=s.billed_total_cents,
                balance_cents=s.balance_cents,
                closing_date=s.closing_date,
                due_date=s.due_date,
            )
            for s in summaries
        ],
    )


@router.get("/cards/{card_id}/current-statements", response_model=CurrentStatementsResponse)
def get_current_statements(
    card_id: str,
    request: Request,
    ledger: LedgerRepository = Depends(get_ledger),
    today: date = Depends(get_today),
):
    """Open cycle plus the previous one while it still has a balance"""
    request_id = get_request_id(request)
    card = load_card(card_id, ledger)

    try:
        with statement_duration_histogram.labels(view="current").time():
            statements = current_statements(ledger, card, today=today)
    except (InvalidCardConfigurationError, StatementLoadError) as e:
        raise _engine_error(e, request_id)

    return CurrentStatementsResponse(card_id=card.id, statements=[statement_response(s) for s in statements])


@router.get("/cards/{card_id}/available-credit", response_model=AvailableCreditResponse)
def get_available_credit(
    card_id: str,
    request: Request,
    ledger: LedgerRepository = Depends(get_ledger),
    today: date = Depends(get_today),
):
    """Limit left after the open cycle and not-yet-billed installments"""
    request_id = get_request_id(request)
    card = load_card(card_id, ledger)

    try:
        with statement_duration_histogram.labels(view="available_credit").time():
            available = available_credit(ledger, card, today=today)
    except (InvalidCardConfigurationError, StatementLoadError) as e:
        raise _engine_error(e, request_id)

    return AvailableCreditResponse(card_id=card.id, limit_cents=card.limit_cents, available_credit_cents=available)


@router.post("/cards/{card_id}/link-expenses", response_model=LinkExpensesResponse)
def link_expenses(
    card_id: str,
    request: Request,
    ledger: LedgerRepository = Depends(get_ledger),
):
    """
    Attach expenses recorded only with the card's payment-method label.

    Run after importing legacy records; later renames keep the link.
    """
    try:
        card = ledger.get_card(card_id)
    except RecordNotFoundError:
        raise HTTPException(status_code=404, detail="Card not found")

    linked = ledger.link_legacy_expenses(card, card_payment_method(card, settings.card_payment_method_prefix))
    ledger.db.commit()

    logging.info(
        "Legacy expenses linked",
        extra={"request_id": get_request_id(request), "card_id": card.id, "linked": linked},
    )
    return LinkExpensesResponse(card_id=card.id, linked=linked)


@router.websocket("/cards/{card_id}/statements/{year}/{month}/live")
async def live_statement(
    websocket: WebSocket,
    card_id: str,
    year: int,
    month: int,
    user_id: str,
    profile: str,
    session_factory: Callable[[], Session] = Depends(get_session_factory),
    clock: Callable[[], date] = Depends(get_clock),
):
    """
    Push the cycle's statement on every committed change.

    The three underlying subscriptions are released when the client
    disconnects.
    """
    try:
        check_cycle(year, month)
    except HTTPException:
        await websocket.close(code=4422)
        return

    with session_factory() as db:
        ledger = LedgerRepository(db, user_id, profile)
        try:
            card = load_card(card_id, ledger)
        except HTTPException as e:
            await websocket.close(code=4404 if e.status_code == 404 else 4409)
            return

    await websocket.accept()

    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def push(statement: Statement) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, statement_response(statement).model_dump(mode="json"))

    def push_error(error: Exception) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, {"error": "Could not load statement", "stale": True})

    try:
        aggregator = open_live_statement(session_factory, card, year, month, push, push_error, today=clock)
    except InvalidCardConfigurationError:
        await websocket.close(code=4409)
        return

    async def forward() -> None:
        while True:
            await websocket.send_json(await queue.get())

    sender = asyncio.create_task(forward())
    try:
        # Clients send nothing; receive only to notice the disconnect
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        aggregator.close()
        sender.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sender
