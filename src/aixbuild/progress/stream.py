"""
A closable, thread-safe channel of progress events.

The build runs synchronously on the caller's thread while reader threads
publish events; consumers on another thread iterate the stream, either with
a plain ``for`` loop or from asyncio code with ``async for``.
"""

import asyncio
import queue
import threading
from typing import AsyncIterator, Callable, Iterator, List, Optional

from .events import ProgressEvent

_CLOSED = object()


class ProgressStream:
    """
    Ordered event channel with a single end-of-stream marker.

    Events are delivered in publish order. Iteration ends after close(); a
    stream can be iterated to completion only once.
    """

    def __init__(self, on_event: Optional[Callable[[ProgressEvent], None]] = None):
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._closed = threading.Event()
        self._lock = threading.Lock()
        self._on_event = on_event
        self._published: List[ProgressEvent] = []

    def publish(self, event: ProgressEvent) -> None:
        """Append an event. Events published after close() are dropped."""
        with self._lock:
            if self._closed.is_set():
                return
            self._published.append(event)
            self._queue.put(event)
        if self._on_event is not None:
            self._on_event(event)

    def close(self) -> None:
        """Mark the end of the stream; idempotent."""
        with self._lock:
            if self._closed.is_set():
                return
            self._closed.set()
            self._queue.put(_CLOSED)

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def events(self) -> List[ProgressEvent]:
        """Snapshot of every event published so far."""
        with self._lock:
            return list(self._published)

    def get(self, timeout: Optional[float] = None) -> Optional[ProgressEvent]:
        """
        Block for the next event.

        Returns:
            The next event, or None once the stream is closed and drained

        Raises:
            queue.Empty: If no event arrives within ``timeout`` seconds
        """
        item = self._queue.get(timeout=timeout)
        if item is _CLOSED:
            # Leave the marker for any other consumer.
            self._queue.put(_CLOSED)
            return None
        return item

    def __iter__(self) -> Iterator[ProgressEvent]:
        while True:
            event = self.get()
            if event is None:
                return
            yield event

    async def __aiter__(self) -> AsyncIterator[ProgressEvent]:
        loop = asyncio.get_running_loop()
        while True:
            event = await loop.run_in_executor(None, self.get)
            if event is None:
                return
            yield event
