"""Application constants and default paths."""

import os
from pathlib import Path

# Base paths
CONFIG_DIR = Path(os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config") / "asyncprompt"
DEFAULT_SEGMENTS_CONFIG_PATH = CONFIG_DIR / "segments.yaml"
CONFIG_PATH_ENV = "ASYNCPROMPT_CONFIG"

# Completion status sentinels.
# 2 collides with computations that legitimately exit 2; such exits are
# indistinguishable from a scheduling failure and trigger a pool restart.
SCHEDULING_FAILURE_STATUS = 2
STATUS_UNAVAILABLE = -1

# Restart policy: None = retry forever with no delay
DEFAULT_MAX_RESTARTS: int | None = None
DEFAULT_RESTART_BACKOFF_SEC = 0.0
MAX_RESTART_BACKOFF_SEC = 10.0

# Prompt
DEFAULT_PROMPT_TEMPLATE = "{cwd_short}{git_branch} $ "
DEFAULT_FAILURE_INDICATOR = "!"
