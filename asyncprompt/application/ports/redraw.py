"""Application port for the rendering boundary.

``request_redraw`` is the coordinator's only outbound call into the front-end.
It is invoked from the delivery thread, so implementations must be thread-safe
and must not block.
"""

from __future__ import annotations

from typing import Protocol


class RedrawPort(Protocol):
    def request_redraw(self) -> None:
        """Ask the front-end to re-render the prompt soon."""


class NullRedraw:
    """Used until a front-end attaches (and in headless runs)."""

    def request_redraw(self) -> None:
        return None
