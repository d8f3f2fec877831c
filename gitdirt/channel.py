"""Discovery channel — hands repo roots from the walker thread to the workers."""

from __future__ import annotations

import queue
import threading
from typing import Generic, Iterator, TypeVar

from gitdirt.errors import GitdirtError

T = TypeVar("T")

_CLOSED = object()


class ChannelClosedError(GitdirtError):
    """Raised when putting into a channel that has already been closed."""


class DiscoveryChannel(Generic[T]):
    """Unbounded FIFO with a single producer and any number of consumers.

    Closing is idempotent. Once a consumer sees the close marker it puts it
    back, so every other consumer blocked on the queue also wakes up and stops.
    """

    def __init__(self) -> None:
        self._queue: queue.Queue = queue.Queue()
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def put(self, item: T) -> None:
        with self._lock:
            if self._closed:
                raise ChannelClosedError("put on closed channel")
            self._queue.put(item)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(_CLOSED)

    def __iter__(self) -> Iterator[T]:
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                self._queue.put(_CLOSED)
                return
            yield item
