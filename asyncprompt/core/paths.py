from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

APP_DIR_NAME = "asyncprompt"


def get_app_state_dir() -> Path:
    """Return a writable directory for app state (logs).

    Preference order:
    1) $ASYNCPROMPT_STATE_DIR if set
    2) OS user state dir (~/.local/state/<app>, %LOCALAPPDATA%\\<app>, etc)
    """
    override = os.environ.get("ASYNCPROMPT_STATE_DIR")
    if override:
        return Path(override).expanduser().resolve()
    if sys.platform.startswith("win"):
        base = Path(os.environ.get("LOCALAPPDATA") or Path.home() / "AppData" / "Local")
        return (base / APP_DIR_NAME).resolve()
    if sys.platform == "darwin":
        return (Path.home() / "Library" / "Application Support" / APP_DIR_NAME).resolve()
    xdg = os.environ.get("XDG_STATE_HOME")
    base = Path(xdg) if xdg else (Path.home() / ".local" / "state")
    path = (base / APP_DIR_NAME).resolve()
    logging.getLogger(__name__).debug("Using state dir %s", path)
    return path
