"""Composition root.

The front-end should not build core services itself. This container wires the
buffer, scheduler, dispatcher, state store and hooks together and owns their
lifetime.
"""

from __future__ import annotations

import logging
from threading import RLock

from asyncprompt.core.errors import RegistrationError
from asyncprompt.core.events import EventBus
from asyncprompt.core.jobs import (
    CallbackDispatcher,
    CompletionBuffer,
    Handler,
    JobScheduler,
    RestartPolicy,
)
from asyncprompt.core.jobs.scheduler import ExecutorFactory, default_executor_factory
from asyncprompt.core.state import PromptStateStore
from asyncprompt.features.segments_schema import PromptConfig

from .hooks import PromptHooks
from .ports import NullRedraw, RedrawPort
from .segments import PromptContext, SegmentDefinition, make_segment_handler

logger = logging.getLogger(__name__)


class Container:
    """Resolves coordinator services. Single place to swap implementations if needed."""

    def __init__(
        self,
        config: PromptConfig | None = None,
        *,
        executor_factory: ExecutorFactory = default_executor_factory,
    ) -> None:
        self.config = config or PromptConfig()
        self._executor_factory = executor_factory
        self._event_bus: EventBus | None = None
        self._store: PromptStateStore | None = None
        self._buffer: CompletionBuffer | None = None
        self._scheduler: JobScheduler | None = None
        self._dispatcher: CallbackDispatcher | None = None
        self._hooks: PromptHooks | None = None
        self._redraw: RedrawPort = NullRedraw()
        self._redraw_lock = RLock()
        self.segments: dict[str, SegmentDefinition] = {}
        self._config_loaded = False

    @property
    def event_bus(self) -> EventBus:
        if self._event_bus is None:
            self._event_bus = EventBus()
        return self._event_bus

    @property
    def store(self) -> PromptStateStore:
        if self._store is None:
            self._store = PromptStateStore()
        return self._store

    @property
    def buffer(self) -> CompletionBuffer:
        if self._buffer is None:
            self._buffer = CompletionBuffer()
        return self._buffer

    @property
    def scheduler(self) -> JobScheduler:
        if self._scheduler is None:
            self._scheduler = JobScheduler(
                self.buffer,
                event_bus=self.event_bus,
                executor_factory=self._executor_factory,
            )
        return self._scheduler

    @property
    def dispatcher(self) -> CallbackDispatcher:
        if self._dispatcher is None:
            restart = self.config.restart
            self._dispatcher = CallbackDispatcher(
                self.buffer,
                self.store,
                self.scheduler,
                self.request_redraw,
                event_bus=self.event_bus,
                restart_policy=RestartPolicy(
                    max_restarts=restart.max_restarts, backoff_sec=restart.backoff_sec
                ),
            )
        return self._dispatcher

    @property
    def hooks(self) -> PromptHooks:
        if self._hooks is None:
            self._hooks = PromptHooks(
                self.scheduler, self.store, self.segments, event_bus=self.event_bus
            )
        return self._hooks

    # --- rendering boundary ---
    def attach_redraw(self, port: RedrawPort) -> None:
        with self._redraw_lock:
            self._redraw = port

    def request_redraw(self) -> None:
        with self._redraw_lock:
            port = self._redraw
        port.request_redraw()

    # --- segments ---
    def register_segment(
        self, defn: SegmentDefinition, handler: Handler | None = None
    ) -> None:
        """Register handler first, then the computation; the pool starts in ``start``."""
        if defn.name in self.segments:
            raise RegistrationError(f"Segment {defn.name!r} already registered")
        self.dispatcher.register(defn.name, handler or make_segment_handler(defn))
        try:
            default_args = defn.resolve_args(PromptContext.from_environment())
        except (KeyError, ValueError, IndexError):
            default_args = defn.args_template
        self.scheduler.register(defn.name, defn.computation, default_args)
        self.segments[defn.name] = defn

    def register_configured_segments(self) -> None:
        if self._config_loaded:
            return
        self._config_loaded = True
        for cfg in self.config.enabled_segments():
            self.register_segment(SegmentDefinition.from_config(cfg))

    # --- lifetime ---
    def start(self) -> None:
        self.register_configured_segments()
        for name in list(self.segments):
            if not self.dispatcher.has_handler(name):
                raise RegistrationError(f"No handler registered for segment {name!r}")
            self.scheduler.start_pool(name)
        self.dispatcher.start()
        logger.info("Started %d segment pools", len(self.segments))

    def shutdown(self) -> None:
        if self._dispatcher is not None:
            self._dispatcher.stop()
        if self._scheduler is not None:
            self._scheduler.shutdown()
