from __future__ import annotations

from asyncprompt.core.events import EventBus, RedrawRequested
from asyncprompt.core.jobs import CallbackDispatcher, CompletionBuffer, CompletionEvent
from asyncprompt.core.state import PromptStateStore


class _Scheduler:
    def __init__(self) -> None:
        self.restarts: list[str] = []
        self.resubmits: list[str] = []
        self.stopped: list[str] = []

    def restart_pool(self, name: str) -> bool:
        self.restarts.append(name)
        return True

    def resubmit_standard(self, name: str) -> None:
        self.resubmits.append(name)

    def stop_pool(self, name: str) -> None:
        self.stopped.append(name)


def _store_stdout(event: CompletionEvent, store: PromptStateStore) -> None:
    store.set(event.name, event.stdout)


def _mk() -> tuple[CallbackDispatcher, CompletionBuffer, PromptStateStore, list[str]]:
    buf = CompletionBuffer()
    store = PromptStateStore()
    redraws: list[str] = []
    order: list[str] = []

    def redraw() -> None:
        redraws.append(",".join(order))

    dispatcher = CallbackDispatcher(buf, store, _Scheduler(), redraw)  # type: ignore[arg-type]

    def recording(event: CompletionEvent, st: PromptStateStore) -> None:
        order.append(event.stdout)
        st.set(event.name, event.stdout)

    for name in ("weather", "git", "clock"):
        dispatcher.register(name, recording)
    return dispatcher, buf, store, redraws


def test_weather_batch_ends_with_last_value_and_one_redraw() -> None:
    dispatcher, buf, store, redraws = _mk()
    buf.put(CompletionEvent(name="weather", status=0, stdout="Sunny"))
    buf.put(CompletionEvent(name="weather", status=0, stdout="Cloudy"))

    assert dispatcher.drain() == 2

    assert store.get("weather") == "Cloudy"
    # One redraw, issued after both events were applied.
    assert redraws == ["Sunny,Cloudy"]


def test_batch_of_n_mixed_names_yields_single_redraw_after_last() -> None:
    dispatcher, buf, store, redraws = _mk()
    names = ["weather", "git", "clock", "git", "weather"]
    for i, name in enumerate(names):
        buf.put(CompletionEvent(name=name, status=0, stdout=f"v{i}"))

    dispatcher.drain()

    assert redraws == ["v0,v1,v2,v3,v4"]
    assert store.snapshot() == {"weather": "v4", "git": "v3", "clock": "v2"}


def test_separate_batches_each_redraw_once() -> None:
    dispatcher, buf, _store, redraws = _mk()

    buf.put(CompletionEvent(name="git", status=0, stdout="main"))
    dispatcher.drain()
    buf.put(CompletionEvent(name="git", status=0, stdout="dev"))
    dispatcher.drain()

    assert redraws == ["main", "main,dev"]


def test_owed_redraw_is_issued_when_batch_ends_on_scheduling_failure() -> None:
    dispatcher, buf, store, redraws = _mk()
    buf.put(CompletionEvent(name="git", status=0, stdout="main"))
    buf.put(CompletionEvent(name="clock", status=2))

    dispatcher.drain()

    assert store.get("git") == "main"
    assert "clock" not in store
    assert len(redraws) == 1


def test_redraw_published_on_event_bus() -> None:
    buf = CompletionBuffer()
    bus = EventBus()
    seen: list[RedrawRequested] = []
    bus.subscribe(RedrawRequested, seen.append)
    dispatcher = CallbackDispatcher(
        buf, PromptStateStore(), _Scheduler(), lambda: None, event_bus=bus  # type: ignore[arg-type]
    )
    dispatcher.register("git", _store_stdout)

    buf.put(CompletionEvent(name="git", status=0, stdout="main"))
    dispatcher.drain()

    assert seen == [RedrawRequested(trigger="git")]


def test_failing_redraw_does_not_break_delivery() -> None:
    buf = CompletionBuffer()
    store = PromptStateStore()

    def broken_redraw() -> None:
        raise RuntimeError("terminal gone")

    dispatcher = CallbackDispatcher(buf, store, _Scheduler(), broken_redraw)  # type: ignore[arg-type]
    dispatcher.register("git", _store_stdout)

    buf.put(CompletionEvent(name="git", status=0, stdout="main"))
    buf.put(CompletionEvent(name="git", status=0, stdout="dev"))
    dispatcher.drain()
    buf.put(CompletionEvent(name="git", status=0, stdout="next"))
    dispatcher.drain()

    assert store.get("git") == "next"
