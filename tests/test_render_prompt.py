from __future__ import annotations

from asyncprompt.application.segments import (
    PromptContext,
    SegmentDefinition,
    make_segment_handler,
    render_prompt,
)
from asyncprompt.core.jobs import CallableComputation, CompletionEvent
from asyncprompt.core.state import PromptStateStore


def _git(**kw) -> SegmentDefinition:
    return SegmentDefinition(
        name="git_branch",
        computation=CallableComputation(lambda: "main"),
        prefix=" (",
        suffix=")",
        **kw,
    )


def test_absent_segment_renders_nothing() -> None:
    ctx = PromptContext(cwd="/home/me/src", home="/home/me")
    out = render_prompt("{cwd_short}{git_branch} $ ", ctx, PromptStateStore(), [_git()])
    assert out == "~/src $ "


def test_present_segment_is_wrapped_and_stripped() -> None:
    store = PromptStateStore()
    store.set("git_branch", "main\n")
    ctx = PromptContext(cwd="/srv", home="/home/me")
    out = render_prompt("{cwd_short}{git_branch} $ ", ctx, store, {"git_branch": _git()})
    assert out == "/srv (main) $ "


def test_unknown_placeholder_renders_empty_and_bad_template_falls_back() -> None:
    ctx = PromptContext(cwd="/srv")
    store = PromptStateStore()
    assert render_prompt("{unknown}> ", ctx, store, []) == "> "
    assert render_prompt("{cwd", ctx, store, []) == "/srv $ "


def test_default_handler_failure_policies() -> None:
    store = PromptStateStore()
    failed = CompletionEvent(name="git_branch", status=128, stderr="not a repo")

    keep = make_segment_handler(_git(on_failure="keep"))
    store.set("git_branch", "main")
    keep(failed, store)
    assert store.get("git_branch") == "main"

    make_segment_handler(_git(on_failure="clear"))(failed, store)
    assert store.get("git_branch") is None

    make_segment_handler(_git(on_failure="indicator", failure_indicator="?"))(failed, store)
    assert store.get("git_branch") == "?"

    keep(CompletionEvent(name="git_branch", status=0, stdout="dev\n"), store)
    assert store.get("git_branch") == "dev\n"


def test_resolve_args_captures_context_by_value() -> None:
    defn = SegmentDefinition(
        name="git_branch",
        computation=CallableComputation(lambda *a: ""),
        args_template=("git", "-C", "{cwd}", "status"),
    )
    ctx = PromptContext(cwd="/repo")
    args = defn.resolve_args(ctx)
    ctx = ctx.with_cwd("/other")
    assert args == ("git", "-C", "/repo", "status")
