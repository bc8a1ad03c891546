from __future__ import annotations

import getpass
import logging
import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path

from asyncprompt.config import DEFAULT_FAILURE_INDICATOR
from asyncprompt.core.jobs import CommandComputation, CompletionEvent, Computation, Handler
from asyncprompt.core.state import PromptStateStore
from asyncprompt.features.segments_schema import SegmentConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PromptContext:
    """Values a segment's arguments may reference; captured once per render."""

    cwd: str
    user: str = ""
    home: str = ""

    @classmethod
    def from_environment(cls) -> PromptContext:
        try:
            user = getpass.getuser()
        except (KeyError, OSError):
            user = ""
        return cls(cwd=os.getcwd(), user=user, home=str(Path.home()))

    def with_cwd(self, cwd: str) -> PromptContext:
        return replace(self, cwd=cwd)

    def changed_keys(self, other: PromptContext) -> frozenset[str]:
        keys = set()
        for key in ("cwd", "user", "home"):
            if getattr(self, key) != getattr(other, key):
                keys.add(key)
        return frozenset(keys)

    @property
    def cwd_short(self) -> str:
        if self.home and (self.cwd == self.home or self.cwd.startswith(self.home + os.sep)):
            return "~" + self.cwd[len(self.home) :]
        return self.cwd

    def as_mapping(self) -> dict[str, str]:
        return {"cwd": self.cwd, "cwd_short": self.cwd_short, "user": self.user, "home": self.home}


@dataclass(frozen=True, slots=True)
class SegmentDefinition:
    name: str
    computation: Computation
    args_template: tuple[str, ...] = ()
    on_failure: str = "keep"
    failure_indicator: str = DEFAULT_FAILURE_INDICATOR
    invalidate_on: frozenset[str] = field(default_factory=lambda: frozenset({"cwd"}))
    prefix: str = ""
    suffix: str = ""
    strip: bool = True

    def resolve_args(self, ctx: PromptContext) -> tuple[str, ...]:
        values = ctx.as_mapping()
        return tuple(arg.format_map(values) for arg in self.args_template)

    def render(self, value: str | None) -> str:
        if value is None:
            return ""
        text = value.rstrip("\r\n") if self.strip else value
        if not text:
            return ""
        return f"{self.prefix}{text}{self.suffix}"

    @classmethod
    def from_config(cls, cfg: SegmentConfig) -> SegmentDefinition:
        return cls(
            name=cfg.name,
            computation=CommandComputation(env=cfg.env),
            args_template=tuple(cfg.command),
            on_failure=cfg.on_failure,
            failure_indicator=cfg.failure_indicator,
            invalidate_on=frozenset(cfg.invalidate_on),
            prefix=cfg.prefix,
            suffix=cfg.suffix,
            strip=cfg.strip,
        )


def make_segment_handler(defn: SegmentDefinition) -> Handler:
    """Default handler: store stdout on success, apply ``on_failure`` otherwise."""

    def _handle(event: CompletionEvent, store: PromptStateStore) -> None:
        if event.ok:
            store.set(defn.name, event.stdout)
            return
        logger.info(
            "Segment %s exited %s: %s",
            defn.name,
            event.status,
            event.stderr.strip()[-200:],
            extra={"segment": defn.name, "status": event.status},
        )
        if defn.on_failure == "clear":
            store.invalidate(defn.name)
        elif defn.on_failure == "indicator":
            store.set(defn.name, defn.failure_indicator)

    return _handle


class _BlankMissing(dict):
    def __missing__(self, key: str) -> str:
        return ""


def render_prompt(
    template: str,
    ctx: PromptContext,
    store: PromptStateStore,
    segments: Iterable[SegmentDefinition] | Mapping[str, SegmentDefinition],
) -> str:
    """Compose the prompt from context values and whatever the store holds now."""
    defs = segments.values() if isinstance(segments, Mapping) else segments
    values = _BlankMissing(ctx.as_mapping())
    snapshot = store.snapshot()
    for defn in defs:
        values[defn.name] = defn.render(snapshot.get(defn.name))
    try:
        return template.format_map(values)
    except (ValueError, IndexError, AttributeError) as e:
        logger.warning("Bad prompt template %r: %s", template, e)
        return f"{ctx.cwd_short} $ "
