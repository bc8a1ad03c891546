from __future__ import annotations

import sys
import time

import pytest

from asyncprompt.application.container import Container
from asyncprompt.application.segments import PromptContext, SegmentDefinition, render_prompt
from asyncprompt.core.errors import RegistrationError
from asyncprompt.core.jobs import CallableComputation
from asyncprompt.features.segments_schema import PromptConfig, SegmentConfig


class _CountingRedraw:
    def __init__(self) -> None:
        self.calls = 0

    def request_redraw(self) -> None:
        self.calls += 1


def _wait_until(pred, timeout: float = 3.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if pred():
            return True
        time.sleep(0.01)
    return pred()


def test_before_render_populates_store_and_requests_redraw() -> None:
    container = Container(PromptConfig(segments=[]))
    redraw = _CountingRedraw()
    container.attach_redraw(redraw)
    container.register_segment(
        SegmentDefinition(
            name="dir_name",
            computation=CallableComputation(lambda cwd: cwd.rsplit("/", 1)[-1]),
            args_template=("{cwd}",),
            prefix="[",
            suffix="]",
        )
    )
    container.start()
    try:
        ctx = PromptContext(cwd="/srv/project")
        assert render_prompt("{dir_name}$ ", ctx, container.store, container.segments) == "$ "

        container.hooks.before_render(ctx)

        assert _wait_until(lambda: container.store.get("dir_name") == "project")
        assert _wait_until(lambda: redraw.calls >= 1)
        rendered = render_prompt("{dir_name}$ ", ctx, container.store, container.segments)
        assert rendered == "[project]$ "
    finally:
        container.shutdown()


def test_configured_command_segment_runs_through_subprocess() -> None:
    script = "import sys; print(sys.argv[1].upper())"
    config = PromptConfig(
        segments=[
            SegmentConfig(name="shout", command=[sys.executable, "-c", script, "{user}"]),
        ]
    )
    container = Container(config)
    container.start()
    try:
        container.hooks.before_render(PromptContext(cwd="/", user="bob"))
        assert _wait_until(lambda: container.store.get("shout") == "BOB\n")
    finally:
        container.shutdown()


def test_duplicate_segment_registration_is_rejected() -> None:
    container = Container(PromptConfig(segments=[]))
    defn = SegmentDefinition(name="x", computation=CallableComputation(lambda: "x"))
    container.register_segment(defn)
    with pytest.raises(RegistrationError):
        container.register_segment(defn)


def test_disabled_segments_are_not_registered() -> None:
    config = PromptConfig(
        segments=[SegmentConfig(name="off", command=["true"], enabled=False)]
    )
    container = Container(config)
    container.register_configured_segments()
    assert container.segments == {}
    assert not container.dispatcher.has_handler("off")
