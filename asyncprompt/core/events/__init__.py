"""Lightweight in-process event bus.

The coordinator publishes pool and redraw lifecycle events; diagnostics and
tests subscribe.
"""

from .event_bus import EventBus, Subscription
from .job_events import (
    JobDropped,
    JobSubmitted,
    PoolRestarted,
    PoolStarted,
    PoolStopped,
    RedrawRequested,
    SegmentInvalidated,
)

__all__ = [
    "EventBus",
    "Subscription",
    "JobDropped",
    "JobSubmitted",
    "PoolRestarted",
    "PoolStarted",
    "PoolStopped",
    "RedrawRequested",
    "SegmentInvalidated",
]
