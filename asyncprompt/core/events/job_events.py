"""Lifecycle events published on the EventBus.

Completion results do not travel over the bus; they go through the
CompletionBuffer so that delivery order and ``more_pending`` stay exact.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class PoolStarted:
    name: str


@dataclass(frozen=True, slots=True)
class PoolStopped:
    name: str


@dataclass(frozen=True, slots=True)
class PoolRestarted:
    """Emitted after a scheduling failure caused a pool restart."""

    name: str
    attempt: int  # 1-based, consecutive failures
    delay_sec: float = 0.0


@dataclass(frozen=True, slots=True)
class JobSubmitted:
    name: str
    args: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class JobDropped:
    """A submission was discarded because no pool is running for the name."""

    name: str
    reason: str


@dataclass(frozen=True, slots=True)
class RedrawRequested:
    trigger: str  # job name or "invalidate"


@dataclass(frozen=True, slots=True)
class SegmentInvalidated:
    segment: str
    reason: str
