"""Commit notifications for live queries"""

import logging
import threading
from collections import defaultdict
from typing import Callable, DefaultDict, Iterable, List

from sqlalchemy import event
from sqlalchemy.orm import Session

_PENDING_KEY = "fatura_changed_tables"


class ChangeFeed:
    """Fan-out of "collection changed" events to registered listeners"""

    def __init__(self):
        self._listeners: DefaultDict[str, List[Callable[[], None]]] = defaultdict(list)
        self._lock = threading.Lock()

    def listen(self, collection: str, callback: Callable[[], None]) -> Callable[[], None]:
        """Register `callback` for `collection`; returns a function that removes it"""
        with self._lock:
            self._listeners[collection].append(callback)

        def remove() -> None:
            with self._lock:
                callbacks = self._listeners.get(collection, [])
                if callback in callbacks:
                    callbacks.remove(callback)

        return remove

    def listener_count(self, collection: str) -> int:
        with self._lock:
            return len(self._listeners.get(collection, []))

    def publish(self, collections: Iterable[str]) -> None:
        for collection in set(collections):
            with self._lock:
                callbacks = list(self._listeners.get(collection, []))
            for callback in callbacks:
                try:
                    callback()
                except Exception:
                    # Logged per listener; the remaining listeners still run
                    logging.exception("Change listener failed", extra={"collection": collection})


change_feed = ChangeFeed()


def _collect(session, flush_context):
    touched = session.info.setdefault(_PENDING_KEY, set())
    for obj in list(session.new) + list(session.dirty) + list(session.deleted):
        table = getattr(obj, "__tablename__", None)
        if table:
            touched.add(table)


def _publish(session):
    touched = session.info.pop(_PENDING_KEY, None)
    if touched:
        change_feed.publish(touched)


def _discard(session):
    session.info.pop(_PENDING_KEY, None)


def track_changes() -> None:
    """
    Publish the tables touched by any session once its transaction commits.

    Flushed inserts, updates and deletes are collected per session and
    dropped on rollback, so listeners only ever see committed state.
    """
    if event.contains(Session, "after_commit", _publish):
        return
    event.listen(Session, "after_flush", _collect)
    event.listen(Session, "after_commit", _publish)
    event.listen(Session, "after_rollback", _discard)
