"""Threaded comment and legacy note handlers."""

from __future__ import annotations

import logging

from sheetact.host import CommentProxy, NoteProxy
from sheetact.shared.a1 import split_sheet_qualifier

from ..models import ActionPayload
from .base import HandlerContext, handler

logger = logging.getLogger(__name__)


class AddCommentPayload(ActionPayload):
    content: str | None = None
    author: str | None = None


class EditCommentPayload(ActionPayload):
    content: str | None = None


class DeleteCommentPayload(ActionPayload):
    delete_thread: bool = True


class ResolveCommentPayload(ActionPayload):
    resolved: bool = True


def anchor_cell(context: HandlerContext) -> str:
    """Top-left cell of the target without its sheet qualifier."""
    target = context.require_range()
    _, reference = split_sheet_qualifier(target.address)
    return reference.split(":")[0]


def _comment(context: HandlerContext) -> CommentProxy:
    return context.require_range().worksheet.comments.get_item_by_cell(
        anchor_cell(context)
    )


def _note(context: HandlerContext) -> NoteProxy:
    return context.require_range().worksheet.notes.get_item(anchor_cell(context))


@handler("addComment", payload=AddCommentPayload, required=("content",))
async def add_comment(context: HandlerContext, payload: AddCommentPayload) -> None:
    cell = anchor_cell(context)
    context.require_range().worksheet.comments.add(
        cell, payload.content or "", payload.author
    )
    await context.ctx.sync()
    context.info(f"Added comment on {cell}")


@handler("addNote", payload=AddCommentPayload, required=("content",))
async def add_note(context: HandlerContext, payload: AddCommentPayload) -> None:
    cell = anchor_cell(context)
    context.require_range().worksheet.notes.add(
        cell, payload.content or "", payload.author
    )
    await context.ctx.sync()
    context.info(f"Added note on {cell}")


@handler("editComment", payload=EditCommentPayload, required=("content",))
async def edit_comment(context: HandlerContext, payload: EditCommentPayload) -> None:
    _comment(context).content = payload.content
    await context.ctx.sync()
    context.info(f"Updated comment on {anchor_cell(context)}")


@handler("editNote", payload=EditCommentPayload, required=("content",))
async def edit_note(context: HandlerContext, payload: EditCommentPayload) -> None:
    _note(context).content = payload.content
    await context.ctx.sync()
    context.info(f"Updated note on {anchor_cell(context)}")


@handler("deleteComment", payload=DeleteCommentPayload)
async def delete_comment(
    context: HandlerContext, payload: DeleteCommentPayload
) -> None:
    comment = _comment(context)
    if payload.delete_thread:
        comment.delete()
        await context.ctx.sync()
        context.info(f"Deleted comment thread on {anchor_cell(context)}")
        return
    comment.delete_last_reply()
    await context.ctx.sync()
    context.info(f"Deleted the last reply on {anchor_cell(context)}")


@handler("deleteNote")
async def delete_note(context: HandlerContext, payload: ActionPayload) -> None:
    _note(context).delete()
    await context.ctx.sync()
    context.info(f"Deleted note on {anchor_cell(context)}")


@handler("replyToComment", payload=AddCommentPayload, required=("content",))
async def reply_to_comment(context: HandlerContext, payload: AddCommentPayload) -> int:
    comment = _comment(context)
    comment.add_reply(payload.content or "", payload.author)
    comment.load("replies")
    await context.ctx.sync()
    context.info(f"Replied to comment on {anchor_cell(context)}")
    return len(comment.replies)


@handler("resolveComment", payload=ResolveCommentPayload)
async def resolve_comment(
    context: HandlerContext, payload: ResolveCommentPayload
) -> None:
    _comment(context).resolved = payload.resolved
    await context.ctx.sync()
    state = "Resolved" if payload.resolved else "Reopened"
    context.info(f"{state} comment on {anchor_cell(context)}")


__all__ = ["anchor_cell"]
