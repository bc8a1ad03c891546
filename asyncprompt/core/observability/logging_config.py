"""Central logging configuration.

Keep it lightweight: stdlib logging only. The prompt owns stdout, so the
console handler writes to stderr and defaults to WARNING.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path

from asyncprompt.core.paths import get_app_state_dir

_EXTRA_KEYS = ("event", "job", "status", "segment", "attempt", "elapsed_sec")


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        payload: dict[str, object] = {
            "ts": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),  # noqa: UP017
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        for key in _EXTRA_KEYS:
            if hasattr(record, key):
                payload[key] = getattr(record, key)
        return json.dumps(payload, ensure_ascii=False)


def setup_logging(
    *,
    level: str | int | None = None,
    json_logs: bool | None = None,
    log_to_file: bool | None = None,
    state_dir: Path | None = None,
) -> None:
    """Configure root logging.

    - level: "INFO"/"DEBUG" or logging level int. Defaults to env ASYNCPROMPT_LOG_LEVEL or WARNING.
    - json_logs: bool. Defaults to env ASYNCPROMPT_LOG_JSON ("1"/"true").
    - log_to_file: bool. Defaults to env ASYNCPROMPT_LOG_FILE ("1").
    """

    lvl = level if level is not None else os.getenv("ASYNCPROMPT_LOG_LEVEL", "WARNING")
    if isinstance(lvl, str):
        lvl = getattr(logging, lvl.upper(), logging.WARNING)

    if json_logs is None:
        json_logs = _env_flag("ASYNCPROMPT_LOG_JSON", "0")

    stream_handler = logging.StreamHandler(stream=sys.stderr)
    if json_logs:
        stream_handler.setFormatter(_JsonFormatter())
    else:
        stream_handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                datefmt="%H:%M:%S",
            )
        )

    if log_to_file is None:
        log_to_file = _env_flag("ASYNCPROMPT_LOG_FILE", "1")
    file_handler: logging.Handler | None = None
    if log_to_file:
        try:
            logs_dir = (state_dir or get_app_state_dir()) / "logs"
            logs_dir.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                logs_dir / "asyncprompt.log",
                maxBytes=1024 * 1024,
                backupCount=3,
                encoding="utf-8",
            )
            # File gets everything down to DEBUG; console stays at the requested level.
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(
                _JsonFormatter()
                if json_logs
                else logging.Formatter(
                    fmt="%(asctime)s | %(levelname)s | %(threadName)s | %(name)s | %(message)s",
                    datefmt="%Y-%m-%d %H:%M:%S",
                )
            )
        except OSError:
            file_handler = None

    stream_handler.setLevel(int(lvl))
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(stream_handler)
    if file_handler is not None:
        root.addHandler(file_handler)
    root.setLevel(logging.DEBUG if file_handler is not None else int(lvl))

    # prompt_toolkit logs asyncio internals at DEBUG.
    logging.getLogger("asyncio").setLevel(logging.WARNING)
