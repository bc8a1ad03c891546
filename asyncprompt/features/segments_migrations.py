"""Versioned migrations for segments.yaml.

Older configs are upgraded step by step to the latest schema version.
Unknown keys are preserved (and ignored by the schema).
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

LATEST_SCHEMA_VERSION = 2


def _as_int(value: Any, default: int) -> int:
    try:
        if isinstance(value, bool):
            return default
        return int(value)
    except (TypeError, ValueError):
        return default


def migrate(raw: Mapping[str, Any] | None) -> dict[str, Any]:
    """Return a migrated copy of *raw*.

    If *raw* is not a mapping, returns an empty dict (schema will fill
    defaults).
    """
    if not isinstance(raw, Mapping):
        return {}

    data: dict[str, Any] = dict(raw)
    version = _as_int(data.get("schema_version"), 0)

    while version < LATEST_SCHEMA_VERSION:
        if version == 0:
            data = _migrate_v0_to_v1(data)
            version = 1
        elif version == 1:
            data = _migrate_v1_to_v2(data)
            version = 2
        else:
            break

    data["schema_version"] = LATEST_SCHEMA_VERSION
    return data


def _migrate_v0_to_v1(data: dict[str, Any]) -> dict[str, Any]:
    """Unversioned configs kept segments as a name -> command mapping."""
    out = dict(data)
    segments = out.get("segments")
    if isinstance(segments, Mapping):
        out["segments"] = [
            {"name": name, "command": command} for name, command in segments.items()
        ]
    return out


def _migrate_v1_to_v2(data: dict[str, Any]) -> dict[str, Any]:
    """Rename per-segment ``cmd`` to ``command``; add the restart section."""
    out = dict(data)
    segments = out.get("segments")
    if isinstance(segments, list):
        renamed = []
        for seg in segments:
            if isinstance(seg, Mapping) and "cmd" in seg and "command" not in seg:
                seg = {**{k: v for k, v in seg.items() if k != "cmd"}, "command": seg["cmd"]}
            renamed.append(seg)
        out["segments"] = renamed
    if "restart" not in out:
        out["restart"] = {}
    return out
