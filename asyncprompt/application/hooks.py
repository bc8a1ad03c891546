"""Front-end lifecycle hooks consumed by the coordinator.

- ``before_render``: fire-and-forget submission of every segment job.
- ``context_changed``: synchronous invalidation of segments whose inputs
  changed, so a stale value is never rendered after e.g. ``cd``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from asyncprompt.core.events import EventBus, SegmentInvalidated
from asyncprompt.core.jobs import JobScheduler
from asyncprompt.core.state import PromptStateStore

from .segments import PromptContext, SegmentDefinition

logger = logging.getLogger(__name__)


class PromptHooks:
    def __init__(
        self,
        scheduler: JobScheduler,
        store: PromptStateStore,
        segments: Mapping[str, SegmentDefinition],
        *,
        event_bus: EventBus | None = None,
    ) -> None:
        self._scheduler = scheduler
        self._store = store
        self._segments = segments
        self._bus = event_bus

    def before_render(self, ctx: PromptContext) -> None:
        for defn in list(self._segments.values()):
            try:
                args = defn.resolve_args(ctx)
            except (KeyError, ValueError, IndexError) as e:
                logger.warning(
                    "Segment %s: cannot resolve arguments (%s); skipping",
                    defn.name,
                    e,
                    extra={"segment": defn.name},
                )
                continue
            self._scheduler.submit(defn.name, args)

    def context_changed(self, old: PromptContext, new: PromptContext) -> list[str]:
        """Invalidate segments that depend on a changed context key."""
        changed = old.changed_keys(new)
        if not changed:
            return []
        cleared: list[str] = []
        for defn in list(self._segments.values()):
            if not defn.invalidate_on & changed:
                continue
            self._store.invalidate(defn.name)
            cleared.append(defn.name)
            if self._bus is not None:
                self._bus.publish(
                    SegmentInvalidated(segment=defn.name, reason=",".join(sorted(changed)))
                )
        return cleared
