"""Live record streams backed by the database and the commit change feed"""

import threading
from datetime import date
from typing import Callable, Generic, List, Optional, TypeVar

from sqlalchemy.orm import Session

from fatura_engine.domain.aggregator import StatementAggregator
from fatura_engine.domain.exceptions import StatementLoadError
from fatura_engine.domain.models import Card, Statement
from fatura_engine.domain.statements import statement_windows
from fatura_engine.domain.streams import ErrorCallback, SnapshotCallback, Subscription
from fatura_engine.infrastructure.database.change_feed import ChangeFeed, change_feed
from fatura_engine.infrastructure.database.models import BillPaymentRecord, ExpenseRecord
from fatura_engine.infrastructure.database.repositories import LedgerRepository
from fatura_engine.infrastructure.observability.metrics import statement_load_failures_counter

T = TypeVar("T")


class QueryStream(Generic[T]):
    """
    Re-runs a query whenever its collection changes and pushes the result.

    The first snapshot is delivered from inside subscribe(). Refreshes of one
    subscription run one at a time, fetch and delivery together, so a slow
    query of older state can never be delivered after a newer snapshot.
    """

    def __init__(self, fetch: Callable[[], List[T]], collection: str, feed: ChangeFeed = change_feed):
        self._fetch = fetch
        self._collection = collection
        self._feed = feed

    def subscribe(self, on_next: SnapshotCallback, on_error: Optional[ErrorCallback] = None) -> Subscription:
        lock = threading.Lock()

        def refresh() -> None:
            with lock:
                try:
                    records = self._fetch()
                except StatementLoadError as e:
                    statement_load_failures_counter.inc()
                    if on_error is None:
                        raise
                    on_error(e)
                    return
                on_next(records)

        subscription = Subscription(self._feed.listen(self._collection, refresh))
        refresh()
        return subscription


def _scoped_fetch(
    session_factory: Callable[[], Session],
    card: Card,
    query: Callable[[LedgerRepository], List[T]],
) -> Callable[[], List[T]]:
    """One short-lived session per fetch; notifications may arrive on any thread"""

    def fetch() -> List[T]:
        with session_factory() as db:
            return query(LedgerRepository(db, card.user_id, card.profile))

    return fetch


def open_live_statement(
    session_factory: Callable[[], Session],
    card: Card,
    year: int,
    month: int,
    on_statement: Callable[[Statement], None],
    on_error: Optional[ErrorCallback] = None,
    feed: ChangeFeed = change_feed,
    today: Callable[[], date] = date.today,
) -> StatementAggregator:
    """
    Start a StatementAggregator over database-backed streams.

    The caller owns the returned aggregator and must close() it to release
    the three subscriptions.
    """
    windows = statement_windows(card, year, month)

    expenses = QueryStream(
        _scoped_fetch(session_factory, card, lambda repo: repo.expenses_between(card, windows.charges_start, windows.charges_end)),
        ExpenseRecord.__tablename__,
        feed,
    )
    payments = QueryStream(
        _scoped_fetch(session_factory, card, lambda repo: repo.payments_between(card, windows.payments_after, windows.payments_until)),
        BillPaymentRecord.__tablename__,
        feed,
    )
    refunds = QueryStream(
        _scoped_fetch(session_factory, card, lambda repo: repo.refunds_between(card, windows.charges_start, windows.charges_end)),
        BillPaymentRecord.__tablename__,
        feed,
    )

    aggregator = StatementAggregator(card, year, month, expenses, payments, refunds, on_statement, on_error, today)
    return aggregator.start()
