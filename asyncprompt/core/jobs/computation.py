"""Segment computations.

A computation receives only the argument tuple captured at submission time.
Subprocess computations run with an explicit environment snapshot taken when
the computation is built, never the live parent environment.
"""

from __future__ import annotations

import io
import logging
import os
import subprocess
import sys
import traceback
from collections.abc import Callable, Mapping
from threading import RLock, get_ident
from typing import Protocol, cast

from .types import RunOutput

logger = logging.getLogger(__name__)

# Shell conventions for "command not found" / "not executable".
EXIT_NOT_FOUND = 127
EXIT_NOT_EXECUTABLE = 126

_BASE_ENV_KEYS = ("PATH", "HOME", "USER", "LANG", "LC_ALL", "TERM", "SYSTEMROOT")


class Computation(Protocol):
    def run(self, args: tuple[str, ...]) -> RunOutput:
        """Run to completion; never raise for ordinary failures."""


def base_environment(extra: Mapping[str, str] | None = None) -> dict[str, str]:
    """Minimal environment snapshot for subprocess computations."""
    env = {k: os.environ[k] for k in _BASE_ENV_KEYS if k in os.environ}
    if extra:
        env.update({str(k): str(v) for k, v in extra.items()})
    return env


class CommandComputation:
    """Runs ``argv + args`` as a subprocess and captures its streams."""

    def __init__(
        self,
        argv: tuple[str, ...] | list[str] = (),
        *,
        env: Mapping[str, str] | None = None,
        encoding: str = "utf-8",
    ) -> None:
        self._argv = tuple(argv)
        self._env = base_environment(env)
        self._encoding = encoding

    @property
    def argv(self) -> tuple[str, ...]:
        return self._argv

    def run(self, args: tuple[str, ...]) -> RunOutput:
        cmd = [*self._argv, *args]
        if not cmd:
            return RunOutput(status=EXIT_NOT_FOUND, stderr="empty command")
        try:
            proc = subprocess.run(
                cmd,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                env=dict(self._env),
                check=False,
            )
        except FileNotFoundError as e:
            return RunOutput(status=EXIT_NOT_FOUND, stderr=str(e))
        except PermissionError as e:
            return RunOutput(status=EXIT_NOT_EXECUTABLE, stderr=str(e))
        return RunOutput(
            status=proc.returncode,
            stdout=proc.stdout.decode(self._encoding, errors="replace"),
            stderr=proc.stderr.decode(self._encoding, errors="replace"),
        )


class _ThreadLocalTextRouter(io.TextIOBase):
    """Routes writes to a per-thread target, falling back to the original stream.

    Bindings live in a table shared by every router for the same stream, so a
    router installed after ``sys.stdout`` was swapped still sees them.
    """

    def __init__(self, fallback: io.TextIOBase, targets: dict[int, io.TextIOBase]) -> None:
        self._fallback = fallback
        self._targets = targets

    def bind_current(self, target: io.TextIOBase) -> int:
        tid = get_ident()
        with _ROUTER_LOCK:
            self._targets[tid] = target
        return tid

    def unbind(self, tid: int) -> None:
        with _ROUTER_LOCK:
            self._targets.pop(tid, None)

    def _target(self) -> io.TextIOBase:
        with _ROUTER_LOCK:
            return self._targets.get(get_ident(), self._fallback)

    def write(self, s: str) -> int:
        return self._target().write(s)

    def flush(self) -> None:
        self._target().flush()

    def fileno(self) -> int:
        return self._fallback.fileno()

    def isatty(self) -> bool:
        return self._fallback.isatty()


_STDOUT_TARGETS: dict[int, io.TextIOBase] = {}
_STDERR_TARGETS: dict[int, io.TextIOBase] = {}
_ROUTER_LOCK = RLock()


def _ensure_stdio_routers() -> tuple[_ThreadLocalTextRouter, _ThreadLocalTextRouter]:
    # sys.stdout/sys.stderr are never swapped back; anything that replaces
    # them later (pytest capture, patch_stdout) gets wrapped on the next run.
    with _ROUTER_LOCK:
        if not isinstance(sys.stdout, _ThreadLocalTextRouter):
            sys.stdout = _ThreadLocalTextRouter(cast(io.TextIOBase, sys.stdout), _STDOUT_TARGETS)
        if not isinstance(sys.stderr, _ThreadLocalTextRouter):
            sys.stderr = _ThreadLocalTextRouter(cast(io.TextIOBase, sys.stderr), _STDERR_TARGETS)
        return cast(_ThreadLocalTextRouter, sys.stdout), cast(_ThreadLocalTextRouter, sys.stderr)


SegmentFn = Callable[..., "str | None"]


class CallableComputation:
    """Runs a Python callable in the worker thread.

    ``fn(*args)`` may print and/or return text; both become stdout. An
    exception becomes status 1 with the traceback on stderr.
    """

    def __init__(self, fn: SegmentFn) -> None:
        self._fn = fn

    def run(self, args: tuple[str, ...]) -> RunOutput:
        stdout_router, stderr_router = _ensure_stdio_routers()
        out = io.StringIO()
        err = io.StringIO()
        out_tid = stdout_router.bind_current(out)
        err_tid = stderr_router.bind_current(err)
        status = 0
        try:
            result = self._fn(*args)
            if result is not None:
                out.write(str(result))
        except Exception:  # noqa: BLE001
            status = 1
            err.write(traceback.format_exc())
        finally:
            stdout_router.unbind(out_tid)
            stderr_router.unbind(err_tid)
        return RunOutput(status=status, stdout=out.getvalue(), stderr=err.getvalue())
