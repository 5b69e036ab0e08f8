"""Observer contract for push-based record streams"""

from typing import Callable, List, Optional, Protocol, TypeVar

T = TypeVar("T")

SnapshotCallback = Callable[[List[T]], None]
ErrorCallback = Callable[[Exception], None]


class Subscription:
    """Handle returned by RecordStream.subscribe; unsubscribe is idempotent"""

    def __init__(self, release: Callable[[], None]):
        self._release: Optional[Callable[[], None]] = release

    @property
    def closed(self) -> bool:
        return self._release is None

    def unsubscribe(self) -> None:
        release, self._release = self._release, None
        if release is not None:
            release()


class RecordStream(Protocol[T]):
    """
    Stream of query snapshots.

    Each notification carries the full current result set of the query,
    never a delta. Errors go to on_error; the stream does not retry.
    """

    def subscribe(
        self,
        on_next: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        ...
