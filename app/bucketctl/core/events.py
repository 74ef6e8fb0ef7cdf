"""Thread-safe event channel between sync workers and a consumer.

Producers call ``emit`` from any thread; one consumer iterates the bus
until it is closed. Every event is also kept in an append-only log.
"""

import queue
import threading
from collections.abc import Callable, Iterator

from bucketctl.models.event import Event


class EventBus:
    """Append-only, multi-producer event channel."""

    def __init__(self) -> None:
        # None marks the end of the stream
        self._queue: queue.Queue[Event | None] = queue.Queue()
        self._log: list[Event] = []
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        """Check if the bus no longer accepts events."""
        return self._closed

    def emit(self, event: Event) -> None:
        """Publish an event. Events emitted after close are dropped."""
        with self._lock:
            if self._closed:
                return
            self._log.append(event)
            self._queue.put(event)

    def close(self) -> None:
        """Close the bus, ending iteration once queued events are drained."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(None)

    def __iter__(self) -> Iterator[Event]:
        while True:
            item = self._queue.get()
            if item is None:
                return
            yield item

    def recorded(self) -> list[Event]:
        """Return a snapshot of every event emitted so far, in order."""
        with self._lock:
            return list(self._log)

    def pump(self, handler: Callable[[Event], None]) -> None:
        """Drain the bus into a handler until it is closed."""
        for event in self:
            handler(event)
