from __future__ import annotations

import logging

import pytest

from asyncprompt.config import STATUS_UNAVAILABLE
from asyncprompt.core.jobs import (
    CallbackDispatcher,
    CompletionBuffer,
    CompletionEvent,
    RestartPolicy,
)
from asyncprompt.core.observability.logging_config import setup_logging
from asyncprompt.core.state import PromptStateStore


class _Scheduler:
    def __init__(self) -> None:
        self.restarts: list[str] = []
        self.stopped: list[str] = []

    def restart_pool(self, name: str) -> bool:
        self.restarts.append(name)
        return True

    def resubmit_standard(self, name: str) -> None:
        pass

    def stop_pool(self, name: str) -> None:
        self.stopped.append(name)


def _store_stdout(event: CompletionEvent, store: PromptStateStore) -> None:
    store.set(event.name, event.stdout)


@pytest.fixture
def console_logging(capfd):
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    setup_logging(level="WARNING", json_logs=False, log_to_file=False)
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_unbounded_restarts_stay_off_the_console(console_logging, capfd) -> None:
    buf = CompletionBuffer()
    scheduler = _Scheduler()
    dispatcher = CallbackDispatcher(buf, PromptStateStore(), scheduler, lambda: None)  # type: ignore[arg-type]
    dispatcher.register("ctx", _store_stdout)

    for _ in range(3):
        buf.put(CompletionEvent(name="ctx", status=2, stderr="worker died"))
        dispatcher.drain()

    assert scheduler.restarts == ["ctx", "ctx", "ctx"]
    assert capfd.readouterr().err == ""


def test_bounded_give_up_is_reported_on_the_console(console_logging, capfd) -> None:
    buf = CompletionBuffer()
    scheduler = _Scheduler()
    dispatcher = CallbackDispatcher(
        buf,
        PromptStateStore(),
        scheduler,  # type: ignore[arg-type]
        lambda: None,
        restart_policy=RestartPolicy(max_restarts=1),
    )
    dispatcher.register("ctx", _store_stdout)

    for _ in range(2):
        buf.put(CompletionEvent(name="ctx", status=2))
        dispatcher.drain()

    err = capfd.readouterr().err
    assert "restarting" not in err
    assert "giving up" in err
    assert scheduler.stopped == ["ctx"]


def test_status_unavailable_is_logged_and_still_delivered(caplog) -> None:
    buf = CompletionBuffer()
    store = PromptStateStore()
    redraws: list[int] = []
    dispatcher = CallbackDispatcher(buf, store, _Scheduler(), lambda: redraws.append(1))  # type: ignore[arg-type]
    dispatcher.register("clock", _store_stdout)

    buf.put(CompletionEvent(name="clock", status=STATUS_UNAVAILABLE, stdout="12:00"))
    with caplog.at_level(logging.ERROR, logger="asyncprompt.core.jobs.dispatcher"):
        dispatcher.drain()

    assert store.get("clock") == "12:00"
    assert redraws == [1]
    assert any("without a status" in r.getMessage() for r in caplog.records)


def test_unregistered_name_is_logged_without_state_change_or_redraw(caplog) -> None:
    buf = CompletionBuffer()
    store = PromptStateStore()
    store.set("ghost", "before")
    redraws: list[int] = []
    dispatcher = CallbackDispatcher(buf, store, _Scheduler(), lambda: redraws.append(1))  # type: ignore[arg-type]

    buf.put(CompletionEvent(name="ghost", status=0, stdout="after"))
    with caplog.at_level(logging.ERROR, logger="asyncprompt.core.jobs.dispatcher"):
        assert dispatcher.drain() == 1

    assert store.get("ghost") == "before"
    assert redraws == []
    errors = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert len(errors) == 1
    assert "No handler registered" in errors[0].getMessage()
