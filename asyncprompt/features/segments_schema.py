"""Typed schema + light validation for segments.yaml.

The raw YAML is normalized through dataclass models:

- missing keys are filled with defaults
- basic type coercion is applied (e.g. "3" -> 3, "git status" -> ["git", "status"])
- unknown keys are ignored (forward compatibility)
- segments without a name or command raise ValidationError and are skipped
"""

from __future__ import annotations

import logging
import shlex
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from typing import Any

from asyncprompt.config import (
    DEFAULT_FAILURE_INDICATOR,
    DEFAULT_MAX_RESTARTS,
    DEFAULT_PROMPT_TEMPLATE,
    DEFAULT_RESTART_BACKOFF_SEC,
)
from asyncprompt.core.errors import ValidationError

from .segments_migrations import LATEST_SCHEMA_VERSION

logger = logging.getLogger(__name__)

FAILURE_POLICIES = ("keep", "clear", "indicator")
CONTEXT_KEYS = ("cwd", "user", "home")


def _as_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        v = value.strip().lower()
        if v in {"true", "1", "yes", "y", "on"}:
            return True
        if v in {"false", "0", "no", "n", "off"}:
            return False
    if isinstance(value, (int, float)):
        return bool(value)
    return default


def _as_optional_int(value: Any, default: int | None) -> int | None:
    if value is None:
        return None
    try:
        if isinstance(value, bool):
            return default
        return max(0, int(value))
    except (TypeError, ValueError):
        return default


def _as_float(value: Any, default: float) -> float:
    try:
        if isinstance(value, bool):
            return default
        return max(0.0, float(value))
    except (TypeError, ValueError):
        return default


def _as_str(value: Any, default: str) -> str:
    if value is None:
        return default
    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        return str(value)
    return default


def _as_argv(value: Any) -> list[str]:
    if isinstance(value, str):
        try:
            return shlex.split(value)
        except ValueError:
            return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if v is not None]
    return []


def _as_env(value: Any) -> dict[str, str]:
    if not isinstance(value, Mapping):
        return {}
    return {str(k): str(v) for k, v in value.items() if v is not None}


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


@dataclass(slots=True)
class SegmentConfig:
    name: str
    command: list[str]
    env: dict[str, str] = field(default_factory=dict)
    on_failure: str = "keep"
    failure_indicator: str = DEFAULT_FAILURE_INDICATOR
    invalidate_on: list[str] = field(default_factory=lambda: ["cwd"])
    prefix: str = ""
    suffix: str = ""
    strip: bool = True
    enabled: bool = True

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SegmentConfig:
        m = _mapping(data)
        name = _as_str(m.get("name"), "").strip()
        command = _as_argv(m.get("command"))
        if not name:
            raise ValidationError(f"segment without a name: {dict(m)!r}")
        if not command:
            raise ValidationError(f"segment {name!r} has no command")
        on_failure = _as_str(m.get("on_failure"), "keep").strip().lower()
        if on_failure not in FAILURE_POLICIES:
            logger.warning("Segment %s: unknown on_failure %r, using 'keep'", name, on_failure)
            on_failure = "keep"
        raw_keys = m.get("invalidate_on", ["cwd"])
        if isinstance(raw_keys, str):
            raw_keys = [raw_keys]
        invalidate_on = [str(k) for k in raw_keys or [] if str(k) in CONTEXT_KEYS]
        return cls(
            name=name,
            command=command,
            env=_as_env(m.get("env")),
            on_failure=on_failure,
            failure_indicator=_as_str(m.get("failure_indicator"), DEFAULT_FAILURE_INDICATOR),
            invalidate_on=invalidate_on,
            prefix=_as_str(m.get("prefix"), ""),
            suffix=_as_str(m.get("suffix"), ""),
            strip=_as_bool(m.get("strip"), True),
            enabled=_as_bool(m.get("enabled"), True),
        )


@dataclass(slots=True)
class RestartConfig:
    max_restarts: int | None = DEFAULT_MAX_RESTARTS
    backoff_sec: float = DEFAULT_RESTART_BACKOFF_SEC

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RestartConfig:
        m = _mapping(data)
        return cls(
            max_restarts=_as_optional_int(m.get("max_restarts"), DEFAULT_MAX_RESTARTS),
            backoff_sec=_as_float(m.get("backoff_sec"), DEFAULT_RESTART_BACKOFF_SEC),
        )


def default_segments() -> list[SegmentConfig]:
    return [
        SegmentConfig(
            name="git_branch",
            command=["git", "-C", "{cwd}", "rev-parse", "--abbrev-ref", "HEAD"],
            on_failure="clear",
            prefix=" (",
            suffix=")",
        )
    ]


@dataclass(slots=True)
class PromptConfig:
    schema_version: int = LATEST_SCHEMA_VERSION
    prompt_template: str = DEFAULT_PROMPT_TEMPLATE
    restart: RestartConfig = field(default_factory=RestartConfig)
    segments: list[SegmentConfig] = field(default_factory=default_segments)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PromptConfig:
        m = _mapping(data)
        raw_segments = m.get("segments")
        if isinstance(raw_segments, list):
            segments: list[SegmentConfig] = []
            seen: set[str] = set()
            for raw in raw_segments:
                try:
                    seg = SegmentConfig.from_dict(raw)
                except ValidationError as e:
                    logger.warning("Ignoring segment: %s", e)
                    continue
                if seg.name in seen:
                    logger.warning("Duplicate segment %s ignored", seg.name)
                    continue
                seen.add(seg.name)
                segments.append(seg)
        else:
            segments = default_segments()
        return cls(
            schema_version=LATEST_SCHEMA_VERSION,
            prompt_template=_as_str(m.get("prompt_template"), DEFAULT_PROMPT_TEMPLATE),
            restart=RestartConfig.from_dict(_mapping(m.get("restart"))),
            segments=segments,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def enabled_segments(self) -> list[SegmentConfig]:
        return [s for s in self.segments if s.enabled]
