"""Delivery of completion events to per-name handlers.

Delivery is single-threaded: either the dispatcher's own delivery thread
(``start()``) or a caller invoking ``drain()`` directly, never both at once.

Redraws are debounced on ``more_pending``: a batch of events draining
together produces one redraw, after the last event that reached a handler.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass

from asyncprompt.config import (
    DEFAULT_MAX_RESTARTS,
    DEFAULT_RESTART_BACKOFF_SEC,
    MAX_RESTART_BACKOFF_SEC,
)
from asyncprompt.core.errors import RegistrationError
from asyncprompt.core.events import EventBus, PoolRestarted, RedrawRequested
from asyncprompt.core.observability.timing import time_block
from asyncprompt.core.state import PromptStateStore

from .completion_buffer import CompletionBuffer
from .scheduler import JobScheduler
from .types import CompletionEvent

logger = logging.getLogger(__name__)

Handler = Callable[[CompletionEvent, PromptStateStore], None]
RedrawFn = Callable[[], None]


@dataclass(frozen=True, slots=True)
class RestartPolicy:
    """What to do when a pool reports a scheduling failure.

    The default restarts immediately and forever. ``max_restarts`` caps
    consecutive restarts; ``backoff_sec`` delays each one exponentially.
    """

    max_restarts: int | None = DEFAULT_MAX_RESTARTS
    backoff_sec: float = DEFAULT_RESTART_BACKOFF_SEC

    def delay_for(self, attempt: int) -> float:
        if self.backoff_sec <= 0:
            return 0.0
        return min(MAX_RESTART_BACKOFF_SEC, self.backoff_sec * (1.6 ** (attempt - 1)))

    def allows(self, attempt: int) -> bool:
        return self.max_restarts is None or attempt <= self.max_restarts


class CallbackDispatcher:
    def __init__(
        self,
        buffer: CompletionBuffer,
        store: PromptStateStore,
        scheduler: JobScheduler,
        request_redraw: RedrawFn,
        *,
        event_bus: EventBus | None = None,
        restart_policy: RestartPolicy | None = None,
    ) -> None:
        self._buffer = buffer
        self._store = store
        self._scheduler = scheduler
        self._request_redraw = request_redraw
        self._bus = event_bus
        self._policy = restart_policy or RestartPolicy()
        self._handlers: dict[str, Handler] = {}
        self._failures: dict[str, int] = {}
        self._handlers_lock = threading.Lock()
        self._delivery_lock = threading.Lock()
        self._redraw_owed = False
        self._thread: threading.Thread | None = None
        self._stop = threading.Event()

    # --- registration ---
    def register(self, name: str, handler: Handler) -> None:
        with self._handlers_lock:
            if name in self._handlers:
                raise RegistrationError(f"Handler already registered for job {name!r}")
            self._handlers[name] = handler

    def has_handler(self, name: str) -> bool:
        with self._handlers_lock:
            return name in self._handlers

    def _handler_for(self, name: str) -> Handler | None:
        with self._handlers_lock:
            return self._handlers.get(name)

    # --- delivery ---
    def drain(self) -> int:
        """Deliver everything currently buffered. Returns the number delivered."""
        delivered = 0
        with self._delivery_lock, time_block("drain", logger=logger):
            while True:
                event = self._buffer.take()
                if event is None:
                    break
                self._deliver(event)
                delivered += 1
        return delivered

    def _deliver(self, event: CompletionEvent) -> None:
        handled = self._dispatch(event)
        if handled and event.more_pending:
            self._redraw_owed = True
            return
        if event.more_pending:
            return
        if handled or self._redraw_owed:
            self._redraw_owed = False
            self._redraw(event.name)

    def _dispatch(self, event: CompletionEvent) -> bool:
        """Route one event. True when the handler ran and may have changed state."""
        handler = self._handler_for(event.name)
        if handler is None:
            logger.error(
                "No handler registered for job %r; dropping completion",
                event.name,
                extra={"job": event.name, "status": event.status},
            )
            return False

        if event.is_scheduling_failure:
            self._on_scheduling_failure(event)
            return False

        self._failures.pop(event.name, None)
        if event.is_status_unavailable:
            logger.error(
                "Job %r completed without a status; this is a scheduling bug",
                event.name,
                extra={"job": event.name, "status": event.status},
            )
        try:
            handler(event, self._store)
        except Exception:
            logger.exception("Completion handler failed", extra={"job": event.name})
        return True

    def _on_scheduling_failure(self, event: CompletionEvent) -> None:
        name = event.name
        attempt = self._failures.get(name, 0) + 1
        self._failures[name] = attempt
        if not self._policy.allows(attempt):
            logger.error(
                "Pool for %r failed %d times; giving up",
                name,
                attempt,
                extra={"job": name, "attempt": attempt},
            )
            self._scheduler.stop_pool(name)
            return
        delay = self._policy.delay_for(attempt)
        logger.info(
            "Pool for %r failed (%s); restarting",
            name,
            event.stderr.strip() or "no detail",
            extra={"job": name, "attempt": attempt, "status": event.status},
        )
        if self._bus is not None:
            self._bus.publish(PoolRestarted(name=name, attempt=attempt, delay_sec=delay))
        if delay > 0:
            timer = threading.Timer(delay, self._restart, args=(name,))
            timer.daemon = True
            timer.start()
        else:
            self._restart(name)

    def _restart(self, name: str) -> None:
        if self._scheduler.restart_pool(name):
            self._scheduler.resubmit_standard(name)

    def _redraw(self, trigger: str) -> None:
        try:
            self._request_redraw()
        except Exception:
            logger.exception("Redraw request failed", extra={"job": trigger})
            return
        if self._bus is not None:
            self._bus.publish(RedrawRequested(trigger=trigger))

    # --- delivery thread ---
    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="segment-dispatcher", daemon=True
        )
        self._thread.start()

    def _run(self) -> None:
        while not self._stop.is_set():
            if not self._buffer.wait(timeout=0.5):
                if self._buffer.closed:
                    break
                continue
            self.drain()

    def stop(self, timeout: float | None = 2.0) -> None:
        self._stop.set()
        self._buffer.close()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
        self._thread = None
