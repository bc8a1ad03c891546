from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Iterable
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass
from threading import RLock

from asyncprompt.core.errors import RegistrationError, SchedulingError
from asyncprompt.core.events import EventBus, JobDropped, JobSubmitted, PoolStarted, PoolStopped

from .completion_buffer import CompletionBuffer
from .computation import Computation
from .types import Job, scheduling_failure
from .worker import Worker

logger = logging.getLogger(__name__)

ExecutorFactory = Callable[[str], Executor]


def default_executor_factory(name: str) -> Executor:
    # One thread per name: jobs of the same name are serialized.
    return ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"segment-{name}")


class PoolState(enum.Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass(slots=True)
class _Pool:
    worker: Worker
    default_args: tuple[str, ...]
    state: PoolState = PoolState.NOT_STARTED
    executor: Executor | None = None
    last_args: tuple[str, ...] | None = None


class JobScheduler:
    """Owns one single-worker pool per job name and feeds the completion buffer.

    Never blocks the caller: ``submit`` only enqueues onto the pool's executor.
    """

    def __init__(
        self,
        buffer: CompletionBuffer,
        *,
        event_bus: EventBus | None = None,
        executor_factory: ExecutorFactory = default_executor_factory,
    ) -> None:
        self._buffer = buffer
        self._bus = event_bus
        self._executor_factory = executor_factory
        self._pools: dict[str, _Pool] = {}
        self._lock = RLock()

    def _publish(self, event: object) -> None:
        if self._bus is not None:
            self._bus.publish(event)

    def register(
        self, name: str, computation: Computation, default_args: Iterable[str] = ()
    ) -> None:
        with self._lock:
            if name in self._pools:
                raise RegistrationError(f"Computation already registered for job {name!r}")
            self._pools[name] = _Pool(
                worker=Worker(name, computation),
                default_args=tuple(str(a) for a in default_args),
            )

    def names(self) -> list[str]:
        with self._lock:
            return list(self._pools)

    def state(self, name: str) -> PoolState:
        with self._lock:
            pool = self._pools.get(name)
            return PoolState.NOT_STARTED if pool is None else pool.state

    def is_running(self, name: str) -> bool:
        return self.state(name) is PoolState.RUNNING

    def start_pool(self, name: str) -> bool:
        """Start the pool for *name*. Idempotent while running.

        Returns False when nothing is registered for *name* or the pool could
        not be created; the latter is reported as a scheduling failure.
        """
        with self._lock:
            pool = self._pools.get(name)
            if pool is None:
                logger.error("No computation registered for job %r", name, extra={"job": name})
                return False
            if pool.state is PoolState.RUNNING:
                return True
            try:
                pool.executor = self._executor_factory(name)
            except Exception as e:  # noqa: BLE001
                err = SchedulingError(f"pool start failed for {name!r}", cause=e)
                logger.exception("Failed to start pool", extra={"job": name})
                failure = scheduling_failure(name, str(err))
            else:
                pool.state = PoolState.RUNNING
                failure = None
        if failure is not None:
            self._buffer.put(failure)
            return False
        logger.debug("Pool started for %s", name, extra={"job": name})
        self._publish(PoolStarted(name=name))
        return True

    def stop_pool(self, name: str) -> None:
        with self._lock:
            pool = self._pools.get(name)
            if pool is None or pool.state is not PoolState.RUNNING:
                return
            executor = pool.executor
            pool.executor = None
            pool.state = PoolState.STOPPED
        # A job already running completes and still reports; queued ones are dropped.
        if executor is not None:
            executor.shutdown(wait=False, cancel_futures=True)
        logger.debug("Pool stopped for %s", name, extra={"job": name})
        self._publish(PoolStopped(name=name))

    def restart_pool(self, name: str) -> bool:
        self.stop_pool(name)
        return self.start_pool(name)

    def submit(self, name: str, args: Iterable[str] = ()) -> None:
        """Queue a job for *name*. Logged no-op when no pool is running."""
        job = Job(name=name, args=tuple(str(a) for a in args))
        with self._lock:
            pool = self._pools.get(name)
            if pool is None or pool.state is not PoolState.RUNNING or pool.executor is None:
                reason = "not registered" if pool is None else pool.state.value
                stopped = pool is not None and pool.state is PoolState.STOPPED
                executor = None
            else:
                pool.last_args = job.args
                executor = pool.executor
                worker = pool.worker
        if executor is None:
            # Stopped pools drop on every render; the console shows WARNING and up.
            logger.log(
                logging.INFO if stopped else logging.WARNING,
                "Dropping job %r: pool %s",
                name,
                reason,
                extra={"job": name, "event": "drop"},
            )
            self._publish(JobDropped(name=name, reason=reason))
            return
        try:
            executor.submit(self._execute, worker, job)
        except RuntimeError as e:
            # Executor shut down underneath us or could not spawn its thread.
            err = SchedulingError(f"dispatch failed for {name!r}", cause=e)
            logger.error("Pool failed to dispatch job: %s", err, extra={"job": name})
            self._buffer.put(scheduling_failure(name, str(err)))
            return
        self._publish(JobSubmitted(name=name, args=job.args))

    def resubmit_standard(self, name: str) -> None:
        """Re-submit the last job seen for *name* (or its default args)."""
        with self._lock:
            pool = self._pools.get(name)
            if pool is None:
                args: tuple[str, ...] = ()
            else:
                args = pool.default_args if pool.last_args is None else pool.last_args
        self.submit(name, args)

    def _execute(self, worker: Worker, job: Job) -> None:
        try:
            event = worker.execute(job)
        except Exception as e:  # noqa: BLE001
            err = SchedulingError(f"worker failed for {job.name!r}", cause=e)
            logger.exception("Worker machinery failed", extra={"job": job.name})
            event = scheduling_failure(job.name, str(err))
        self._buffer.put(event)

    def shutdown(self) -> None:
        for name in self.names():
            self.stop_pool(name)
