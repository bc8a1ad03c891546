from __future__ import annotations

from dataclasses import dataclass, replace

from asyncprompt.config import SCHEDULING_FAILURE_STATUS, STATUS_UNAVAILABLE


@dataclass(frozen=True, slots=True)
class Job:
    name: str
    args: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class RunOutput:
    """Raw result of a computation; ``status`` is None when it could not be read."""

    status: int | None
    stdout: str = ""
    stderr: str = ""


@dataclass(frozen=True, slots=True)
class CompletionEvent:
    name: str
    status: int
    stdout: str = ""
    stderr: str = ""
    elapsed_sec: float = 0.0
    more_pending: bool = False

    @property
    def is_scheduling_failure(self) -> bool:
        return self.status == SCHEDULING_FAILURE_STATUS

    @property
    def is_status_unavailable(self) -> bool:
        return self.status == STATUS_UNAVAILABLE

    @property
    def ok(self) -> bool:
        return self.status == 0

    def with_more_pending(self, more_pending: bool) -> CompletionEvent:
        return replace(self, more_pending=more_pending)


def scheduling_failure(name: str, reason: str) -> CompletionEvent:
    return CompletionEvent(name=name, status=SCHEDULING_FAILURE_STATUS, stderr=reason)
