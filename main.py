"""
Entry point for the asyncprompt interactive shell.

Run: python main.py
Config: ~/.config/asyncprompt/segments.yaml (or $ASYNCPROMPT_CONFIG)
"""
from __future__ import annotations

import sys

from asyncprompt.application.container import Container
from asyncprompt.core.observability.logging_config import setup_logging
from asyncprompt.features.segments_config import load_config


def main() -> int:
    setup_logging()
    container = Container(load_config())
    container.start()
    try:
        from asyncprompt.ui.prompt_shell import PromptShell

        return PromptShell(container).run()
    finally:
        container.shutdown()


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        sys.exit(0)
