from __future__ import annotations

import logging
import time

from asyncprompt.config import STATUS_UNAVAILABLE
from asyncprompt.core.observability.timing import elapsed_since

from .computation import Computation
from .types import CompletionEvent, Job

logger = logging.getLogger(__name__)


class Worker:
    """Executes one job of a named computation and captures its result."""

    def __init__(self, name: str, computation: Computation) -> None:
        self.name = name
        self._computation = computation

    def execute(self, job: Job) -> CompletionEvent:
        start = time.monotonic()
        try:
            out = self._computation.run(job.args)
        except Exception as e:  # noqa: BLE001
            # Computations report failures through status; a raise is a bug in the computation.
            logger.exception("Computation raised", extra={"job": self.name})
            return CompletionEvent(
                name=self.name,
                status=1,
                stderr=repr(e),
                elapsed_sec=elapsed_since(start),
            )
        elapsed = elapsed_since(start)
        status = STATUS_UNAVAILABLE if out.status is None else int(out.status)
        logger.debug(
            "Job %s finished with status %s in %.3fs",
            self.name,
            status,
            elapsed,
            extra={"job": self.name, "status": status, "elapsed_sec": elapsed},
        )
        return CompletionEvent(
            name=self.name,
            status=status,
            stdout=out.stdout,
            stderr=out.stderr,
            elapsed_sec=elapsed,
        )
