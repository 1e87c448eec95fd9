"""Hyperlink handlers."""

from __future__ import annotations

import logging
import re

from sheetact.errors import ActionValidationError
from sheetact.host import RangeHyperlink

from ..models import ActionPayload
from .base import HandlerContext, handler

logger = logging.getLogger(__name__)

LINK_SCHEMES = ("http://", "https://", "mailto:", "ftp://", "file://")
_INTERNAL = re.compile(r"^#(?P<location>.+![A-Za-z$]+[$]?\d+(:[A-Za-z$]+[$]?\d+)?)$")


class HyperlinkPayload(ActionPayload):
    url: str | None = None
    display_text: str | None = None
    tooltip: str | None = None


class RemoveHyperlinkPayload(ActionPayload):
    preserve_value: bool = True


def build_link(
    url: str, display_text: str | None, tooltip: str | None
) -> RangeHyperlink:
    """Validate ``url`` and split internal ``#Sheet!A1`` links from external ones."""
    text = url.strip()
    internal = _INTERNAL.match(text)
    if internal is not None:
        return RangeHyperlink(
            document_reference=internal.group("location"),
            screen_tip=tooltip,
            text_to_display=display_text or text[1:],
        )
    if not text.lower().startswith(LINK_SCHEMES):
        raise ActionValidationError(
            f'Invalid hyperlink "{url}". Use http, https, mailto, ftp, file '
            "or an internal #Sheet!A1 reference."
        )
    return RangeHyperlink(
        address=text, screen_tip=tooltip, text_to_display=display_text or text
    )


@handler("addHyperlink", payload=HyperlinkPayload, required=("url",))
async def add_hyperlink(context: HandlerContext, payload: HyperlinkPayload) -> None:
    link = build_link(payload.url or "", payload.display_text, payload.tooltip)
    target = context.require_range()
    target.hyperlink = link
    await context.ctx.sync()
    context.info(
        f"Linked {target.address} to {link.address or '#' + str(link.document_reference)}"
    )


@handler("removeHyperlink", payload=RemoveHyperlinkPayload)
async def remove_hyperlink(
    context: HandlerContext, payload: RemoveHyperlinkPayload
) -> None:
    target = context.require_range()
    target.hyperlink = None
    if not payload.preserve_value:
        target.clear("Contents")
    await context.ctx.sync()
    context.info(
        f"Removed hyperlink from {target.address}"
        + ("" if payload.preserve_value else " and cleared its value")
    )


@handler("editHyperlink", payload=HyperlinkPayload)
async def edit_hyperlink(context: HandlerContext, payload: HyperlinkPayload) -> None:
    target = context.require_range()
    target.load("hyperlink")
    await context.ctx.sync()
    current = target.hyperlink
    if current is None:
        raise ActionValidationError(f"No hyperlink exists on {target.address}")
    if payload.url:
        link = build_link(
            payload.url,
            payload.display_text or current.text_to_display,
            payload.tooltip if payload.tooltip is not None else current.screen_tip,
        )
    else:
        updates = {
            "text_to_display": payload.display_text,
            "screen_tip": payload.tooltip,
        }
        link = current.model_copy(
            update={key: value for key, value in updates.items() if value is not None}
        )
    target.hyperlink = link
    await context.ctx.sync()
    context.info(f"Updated hyperlink on {target.address}")


__all__ = ["LINK_SCHEMES", "build_link"]
