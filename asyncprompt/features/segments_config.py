"""Segments config (YAML).

Loaded through the typed schema in ``segments_schema`` after running
``segments_migrations``. A missing or unreadable file yields defaults so the
prompt always starts.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from asyncprompt.config import CONFIG_PATH_ENV, DEFAULT_SEGMENTS_CONFIG_PATH

from .segments_migrations import migrate
from .segments_schema import PromptConfig

logger = logging.getLogger(__name__)


def config_path() -> Path:
    override = os.environ.get(CONFIG_PATH_ENV)
    return Path(override).expanduser() if override else DEFAULT_SEGMENTS_CONFIG_PATH


def default_config() -> PromptConfig:
    return PromptConfig()


def parse_config(data: Mapping[str, Any] | None) -> PromptConfig:
    if not isinstance(data, Mapping):
        return default_config()
    return PromptConfig.from_dict(migrate(data))


def load_config(path: Path | None = None) -> PromptConfig:
    """Load segments config from YAML. Returns defaults if missing or invalid."""
    p = path or config_path()
    if not p.exists():
        return default_config()
    try:
        with open(p, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (yaml.YAMLError, OSError) as e:
        logger.warning("Could not read %s (%s); using defaults", p, e)
        return default_config()
    return parse_config(data)


def save_config(config: PromptConfig, path: Path | None = None) -> None:
    p = path or config_path()
    p.parent.mkdir(parents=True, exist_ok=True)
    with open(p, "w", encoding="utf-8") as f:
        yaml.safe_dump(config.to_dict(), f, sort_keys=False, allow_unicode=True)
