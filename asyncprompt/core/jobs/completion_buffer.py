from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from threading import Condition, Lock

from .types import CompletionEvent

logger = logging.getLogger(__name__)


class CompletionBuffer:
    """FIFO of undelivered completion events, ordered by arrival.

    ``take()`` stamps each event with ``more_pending``: whether anything is
    still queued after it was removed.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._ready = Condition(self._lock)
        self._queue: deque[CompletionEvent] = deque()
        self._listeners: list[Callable[[], None]] = []
        self._closed = False

    def add_listener(self, listener: Callable[[], None]) -> None:
        """Call *listener* (outside the lock) after every ``put``."""
        with self._lock:
            self._listeners.append(listener)

    def put(self, event: CompletionEvent) -> None:
        with self._lock:
            if self._closed:
                logger.debug("Buffer closed; dropping completion", extra={"job": event.name})
                return
            self._queue.append(event)
            self._ready.notify_all()
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener()
            except Exception:
                logger.exception("Completion listener failed", extra={"job": event.name})

    def take(self) -> CompletionEvent | None:
        with self._lock:
            if not self._queue:
                return None
            event = self._queue.popleft()
            return event.with_more_pending(bool(self._queue))

    def wait(self, timeout: float | None = None) -> bool:
        """Block until an event is queued or the buffer is closed. True if non-empty."""
        with self._lock:
            self._ready.wait_for(lambda: bool(self._queue) or self._closed, timeout=timeout)
            return bool(self._queue)

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._ready.notify_all()

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def __len__(self) -> int:
        with self._lock:
            return len(self._queue)
