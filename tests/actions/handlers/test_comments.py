from __future__ import annotations

from collections.abc import Callable

import anyio
import pytest

from sheetact.actions import ActionExecutor, ActionOutcome
from sheetact.errors import ActionError, ActionValidationError
from sheetact.host import RequestContext
from sheetact.host.state import CommentThread

RunAction = Callable[..., ActionOutcome]


def _threads(ctx: RequestContext, sheet: str = "Sheet") -> dict[str, CommentThread]:
    return ctx.state.for_sheet(ctx.book[sheet]).comments


def test_comment_thread_lifecycle(run_action: RunAction, ctx: RequestContext) -> None:
    run_action(
        {
            "type": "addComment",
            "target": "B2:C3",
            "data": {"content": "Check totals", "author": "Ann"},
        }
    )
    thread = _threads(ctx)["B2"]
    assert (thread.content, thread.author, thread.resolved) == ("Check totals", "Ann", False)

    assert run_action(
        {"type": "replyToComment", "target": "B2", "data": {"content": "Done"}}
    ).result == 1
    assert run_action(
        {"type": "replyToComment", "target": "B2", "data": {"content": "Really done"}}
    ).result == 2
    run_action({"type": "deleteComment", "target": "B2", "data": {"deleteThread": False}})
    assert [reply.content for reply in thread.replies] == ["Done"]
    assert thread.replies[0].author == "sheetact"

    run_action({"type": "editComment", "target": "B2", "data": {"content": "Recheck"}})
    run_action({"type": "resolveComment", "target": "B2"})
    assert (thread.content, thread.resolved) == ("Recheck", True)

    run_action({"type": "deleteComment", "target": "B2"})
    assert _threads(ctx) == {}


def test_comment_on_qualified_target(
    run_action: RunAction, ctx: RequestContext
) -> None:
    ctx.book.create_sheet("Other")
    run_action({"type": "addComment", "target": "Other!D4", "data": {"content": "x"}})
    assert list(_threads(ctx, "Other")) == ["D4"]
    assert _threads(ctx) == {}


def test_comment_errors(run_action: RunAction) -> None:
    with pytest.raises(ActionValidationError, match="addComment requires 'content'"):
        run_action({"type": "addComment", "target": "A1"})
    run_action({"type": "addComment", "target": "A1", "data": {"content": "first"}})
    with pytest.raises(ActionError) as duplicate:
        run_action({"type": "addComment", "target": "A1", "data": {"content": "again"}})
    assert "already has a comment thread" in (duplicate.value.detail.host_message or "")
    with pytest.raises(ActionError) as missing:
        run_action({"type": "editComment", "target": "A9", "data": {"content": "y"}})
    assert missing.value.detail.host_message == "No comment exists on cell A9."


def test_threaded_comments_need_host_support() -> None:
    ctx = RequestContext.new(capabilities=["charts"])
    worksheet = ctx.workbook.worksheets.get_active_worksheet()
    descriptor = {"type": "addComment", "target": "A1", "data": {"content": "x"}}
    with pytest.raises(ActionError) as info:
        anyio.run(ActionExecutor().execute, ctx, worksheet, descriptor)
    assert "not supported" in (info.value.detail.host_message or "")


def test_note_lifecycle(run_action: RunAction, ctx: RequestContext) -> None:
    run_action({"type": "addNote", "target": "A1", "data": {"content": "Remember"}})
    cell = ctx.book["Sheet"]["A1"]
    assert (cell.comment.text, cell.comment.author) == ("Remember", "sheetact")
    run_action({"type": "editNote", "target": "A1", "data": {"content": "Updated"}})
    assert cell.comment.text == "Updated"
    run_action({"type": "deleteNote", "target": "A1"})
    assert cell.comment is None
    with pytest.raises(ActionError):
        run_action({"type": "deleteNote", "target": "A1"})
