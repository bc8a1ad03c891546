from __future__ import annotations

import logging
from threading import RLock

logger = logging.getLogger(__name__)


class PromptStateStore:
    """Segment name -> last rendered value.

    Written by dispatcher callbacks and the invalidation hook, read by the
    render path. Absent means "render nothing for this segment".
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._values: dict[str, str] = {}

    def get(self, segment: str) -> str | None:
        with self._lock:
            return self._values.get(segment)

    def set(self, segment: str, value: str) -> None:
        with self._lock:
            self._values[segment] = value
        logger.debug("Segment %s updated", segment, extra={"segment": segment})

    def invalidate(self, segment: str) -> bool:
        """Clear *segment*. Returns True if a value was present."""
        with self._lock:
            removed = self._values.pop(segment, None) is not None
        if removed:
            logger.debug("Segment %s invalidated", segment, extra={"segment": segment})
        return removed

    def snapshot(self) -> dict[str, str]:
        with self._lock:
            return dict(self._values)

    def clear(self) -> None:
        with self._lock:
            self._values.clear()

    def __contains__(self, segment: object) -> bool:
        with self._lock:
            return segment in self._values
