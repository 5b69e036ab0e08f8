"""Live statement aggregation over three independent record streams"""

import logging
import threading
from dataclasses import replace
from datetime import date
from functools import partial
from typing import Callable, Dict, List, Optional

from fatura_engine.domain.exceptions import StatementLoadError
from fatura_engine.domain.models import BillPayment, Card, Expense, Statement
from fatura_engine.domain.statements import build_statement, statement_windows
from fatura_engine.domain.streams import ErrorCallback, RecordStream, Subscription

logger = logging.getLogger(__name__)

EXPENSES = "expenses"
PAYMENTS = "payments"
REFUNDS = "refunds"


class StatementAggregator:
    """
    Keeps one (card, cycle) statement up to date.

    Subscribes to the expense, payment and refund streams of the cycle and
    emits a full Statement after every snapshot once all three streams have
    delivered one. Each emission is recomputed from the latest snapshot of
    every stream; nothing is carried between computations.

    Usage:
        with StatementAggregator(card, 2024, 7, expenses, payments, refunds, render).start():
            ...
    """

    def __init__(
        self,
        card: Card,
        year: int,
        month: int,
        expenses: RecordStream[Expense],
        payments: RecordStream[BillPayment],
        refunds: RecordStream[BillPayment],
        on_statement: Callable[[Statement], None],
        on_error: Optional[ErrorCallback] = None,
        today: Callable[[], date] = date.today,
    ):
        # Validates the card configuration before anything subscribes
        self.windows = statement_windows(card, year, month)
        self.card = card
        self._streams = {EXPENSES: expenses, PAYMENTS: payments, REFUNDS: refunds}
        self._on_statement = on_statement
        self._on_error = on_error
        self._today = today

        self._snapshots: Dict[str, Optional[List]] = {name: None for name in self._streams}
        self._subscriptions: List[Subscription] = []
        self._latest: Optional[Statement] = None
        self._closed = False
        # Store notifications can arrive from whichever thread committed
        self._lock = threading.RLock()

    @property
    def latest(self) -> Optional[Statement]:
        return self._latest

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> "StatementAggregator":
        for name, stream in self._streams.items():
            subscription = stream.subscribe(partial(self._on_snapshot, name), self._on_stream_error)
            with self._lock:
                if self._closed:
                    subscription.unsubscribe()
                    break
                self._subscriptions.append(subscription)
        return self

    def close(self) -> None:
        """Release every subscription; no callback fires afterwards"""
        with self._lock:
            self._closed = True
            subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            subscription.unsubscribe()

    def __enter__(self) -> "StatementAggregator":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _on_snapshot(self, name: str, records: List) -> None:
        with self._lock:
            if self._closed:
                return
            self._snapshots[name] = list(records)
            self._recompute()

    def _recompute(self) -> None:
        if any(snapshot is None for snapshot in self._snapshots.values()):
            return

        statement = build_statement(
            self.card,
            self.windows.period,
            self._snapshots[EXPENSES],
            self._snapshots[PAYMENTS],
            self._snapshots[REFUNDS],
            today=self._today(),
        )
        self._latest = statement
        self._on_statement(statement)

    def _on_stream_error(self, error: Exception) -> None:
        with self._lock:
            if self._closed:
                return

            logger.warning(
                "Statement stream failed",
                extra={
                    "card_id": self.card.id,
                    "year": self.windows.period.year,
                    "month": self.windows.period.month,
                    "error": str(error),
                },
            )

            if self._latest is not None and not self._latest.stale:
                self._latest = replace(self._latest, stale=True)
                self._on_statement(self._latest)

            if self._on_error is not None:
                if not isinstance(error, StatementLoadError):
                    error = StatementLoadError(f"Could not load statement: {error}")
                self._on_error(error)
