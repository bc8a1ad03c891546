"""Interactive shell front-end on prompt_toolkit.

The prompt message is a callable, so every redraw re-reads the state store.
Background deliveries reach the screen through ``Application.invalidate()``,
which schedules the redraw on the prompt's event loop and is safe to call from
the dispatcher thread.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import sys
from typing import TYPE_CHECKING

from prompt_toolkit import PromptSession
from prompt_toolkit.history import InMemoryHistory

from asyncprompt.application.segments import PromptContext, render_prompt

if TYPE_CHECKING:
    from prompt_toolkit.application import Application

    from asyncprompt.application.container import Container

logger = logging.getLogger(__name__)

EXIT_COMMANDS = frozenset({"exit", "quit"})


class PromptToolkitRedraw:
    """RedrawPort backed by a prompt_toolkit Application."""

    def __init__(self, app: Application | None = None) -> None:
        self._app = app

    def attach(self, app: Application) -> None:
        self._app = app

    def request_redraw(self) -> None:
        app = self._app
        if app is None or not app.is_running:
            return
        app.invalidate()


class PromptShell:
    def __init__(
        self,
        container: Container,
        *,
        session: PromptSession | None = None,
        context: PromptContext | None = None,
    ) -> None:
        self._container = container
        self._session: PromptSession = session or PromptSession(history=InMemoryHistory())
        self._redraw = PromptToolkitRedraw(self._session.app)
        self._container.attach_redraw(self._redraw)
        self.context = context or PromptContext.from_environment()

    def message(self) -> str:
        return render_prompt(
            self._container.config.prompt_template,
            self.context,
            self._container.store,
            self._container.segments,
        )

    def run(self) -> int:
        hooks = self._container.hooks
        while True:
            hooks.before_render(self.context)
            try:
                line = self._session.prompt(self.message)
            except KeyboardInterrupt:
                continue
            except EOFError:
                return 0
            if self.execute(line) is False:
                return 0

    def execute(self, line: str) -> bool:
        """Run one input line. Returns False when the shell should exit."""
        try:
            parts = shlex.split(line)
        except ValueError as e:
            print(f"asyncprompt: {e}", file=sys.stderr)
            return True
        if not parts:
            return True
        if parts[0] in EXIT_COMMANDS:
            return False
        if parts[0] == "cd":
            self.change_directory(parts[1] if len(parts) > 1 else self.context.home or "~")
            return True
        try:
            subprocess.run(line, shell=True, cwd=self.context.cwd, check=False)
        except OSError as e:
            print(f"asyncprompt: {e}", file=sys.stderr)
        return True

    def change_directory(self, target: str) -> None:
        path = os.path.abspath(os.path.join(self.context.cwd, os.path.expanduser(target)))
        try:
            os.chdir(path)
        except OSError as e:
            print(f"cd: {e.strerror}: {target}", file=sys.stderr)
            return
        old, new = self.context, self.context.with_cwd(os.getcwd())
        self.context = new
        cleared = self._container.hooks.context_changed(old, new)
        logger.debug("cd %s cleared %s", new.cwd, cleared)
