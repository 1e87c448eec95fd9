"""Print setup handlers: page setup, margins, print area, headers and breaks."""

from __future__ import annotations

import logging

from pydantic import Field

from sheetact.errors import ActionValidationError
from sheetact.host.layout import PAPER_SIZES
from sheetact.shared.a1 import (
    column_letter_to_offset,
    is_range_address,
    normalize_range,
    split_sheet_qualifier,
)

from ..models import ActionPayload
from .base import HandlerContext, handler
from .sheets import view_sheet

logger = logging.getLogger(__name__)

_PAPER_SIZES = {name.casefold(): name for name in PAPER_SIZES}
_PRINT_FLAGS = (
    "print_gridlines",
    "print_headings",
    "center_horizontally",
    "center_vertically",
)


class PageSetupPayload(ActionPayload):
    orientation: str | None = None
    paper_size: str | None = None
    scale: int | None = None
    fit_to_width: int | None = None
    fit_to_height: int | None = None
    print_gridlines: bool | None = None
    print_headings: bool | None = None
    center_horizontally: bool | None = None
    center_vertically: bool | None = None


class MarginsPayload(ActionPayload):
    top: float | None = None
    bottom: float | None = None
    left: float | None = None
    right: float | None = None
    header: float | None = None
    footer: float | None = None


class OrientationPayload(ActionPayload):
    orientation: str | None = None


class PrintAreaPayload(ActionPayload):
    range: str | None = None
    ranges: list[str] = Field(default_factory=list)
    clear: bool = False


class HeaderFooterPayload(ActionPayload):
    left_header: str | None = None
    center_header: str | None = None
    right_header: str | None = None
    left_footer: str | None = None
    center_footer: str | None = None
    right_footer: str | None = None


class PageBreaksPayload(ActionPayload):
    horizontal_breaks: list[int] = Field(default_factory=list)
    vertical_breaks: list[int | str] = Field(default_factory=list)
    remove_breaks: list[int | str] = Field(default_factory=list)
    clear_all: bool = False


def page_orientation(value: str) -> str:
    orientation = value.strip().capitalize()
    if orientation not in {"Portrait", "Landscape"}:
        raise ActionValidationError(
            f'Invalid orientation "{value}". Use Portrait or Landscape.'
        )
    return orientation


def paper_size(value: str) -> str:
    resolved = _PAPER_SIZES.get(value.strip().casefold())
    if resolved is None:
        raise ActionValidationError(
            f'Unsupported paperSize "{value}". Use {", ".join(PAPER_SIZES)}.'
        )
    return resolved


def column_number(value: int | str) -> int:
    """1-based column number from ``3`` or ``"C"``."""
    if isinstance(value, int):
        return value
    text = value.strip()
    if text.isdigit():
        return int(text)
    if text.isalpha():
        return column_letter_to_offset(text) + 1
    raise ActionValidationError(f'Invalid column "{value}"')


@handler("setPageSetup", payload=PageSetupPayload)
async def set_page_setup(context: HandlerContext, payload: PageSetupPayload) -> None:
    if payload.scale is not None and not 10 <= payload.scale <= 400:
        raise ActionValidationError("scale must be between 10 and 400")
    sheet, _ = await view_sheet(context)
    layout = sheet.page_layout
    applied: list[str] = []
    if payload.orientation:
        layout.orientation = page_orientation(payload.orientation)
        applied.append("orientation")
    if payload.paper_size:
        layout.paper_size = paper_size(payload.paper_size)
        applied.append("paperSize")
    if payload.scale is not None:
        layout.zoom = payload.scale
        applied.append("scale")
    if payload.fit_to_width is not None:
        layout.fit_to_width = payload.fit_to_width
        applied.append("fitToWidth")
    if payload.fit_to_height is not None:
        layout.fit_to_height = payload.fit_to_height
        applied.append("fitToHeight")
    for flag in _PRINT_FLAGS:
        value = getattr(payload, flag)
        if value is not None:
            setattr(layout, flag, value)
            applied.append(flag)
    await context.ctx.sync()
    context.info(f"Updated page setup: {', '.join(applied) or 'nothing to change'}")


@handler("setPageMargins", payload=MarginsPayload)
async def set_page_margins(context: HandlerContext, payload: MarginsPayload) -> None:
    margins = payload.model_dump(exclude_none=True)
    negative = [side for side, value in margins.items() if value < 0]
    if negative:
        raise ActionValidationError(f"Margins must not be negative: {', '.join(negative)}")
    if not margins:
        context.info("No margins given")
        return
    sheet, _ = await view_sheet(context)
    sheet.page_layout.set_margins(**margins)
    await context.ctx.sync()
    context.info(
        "Set margins (inches): "
        + ", ".join(f"{side}={value}" for side, value in margins.items())
    )


@handler("setPageOrientation", payload=OrientationPayload, required=("orientation",))
async def set_page_orientation(
    context: HandlerContext, payload: OrientationPayload
) -> str:
    orientation = page_orientation(payload.orientation or "")
    sheet, _ = await view_sheet(context)
    sheet.page_layout.orientation = orientation
    await context.ctx.sync()
    context.info(f"Set page orientation to {orientation}")
    return orientation


@handler("setPrintArea", payload=PrintAreaPayload)
async def set_print_area(
    context: HandlerContext, payload: PrintAreaPayload
) -> list[str]:
    sheet, cell = await view_sheet(context)
    layout = sheet.page_layout
    if payload.clear:
        layout.print_area = None
        await context.ctx.sync()
        context.info("Cleared print area")
        return []
    requested = payload.ranges or ([payload.range] if payload.range else [])
    if not requested and cell:
        requested = [cell]
    if not requested:
        raise ActionValidationError("setPrintArea requires 'range', 'ranges' or a target")
    areas: list[str] = []
    for area in requested:
        _, reference = split_sheet_qualifier(area)
        reference = reference.replace("$", "")
        if not is_range_address(reference):
            raise ActionValidationError(f'Invalid print area "{area}"')
        areas.append(normalize_range(reference))
    layout.print_area = areas
    await context.ctx.sync()
    context.info(f"Set print area to {', '.join(areas)}")
    return areas


@handler("setHeaderFooter", payload=HeaderFooterPayload)
async def set_header_footer(
    context: HandlerContext, payload: HeaderFooterPayload
) -> None:
    texts = payload.model_dump(exclude_none=True)
    if not texts:
        context.info("No header or footer text given")
        return
    sheet, _ = await view_sheet(context)
    sheet.page_layout.set_header_footer(**texts)
    await context.ctx.sync()
    context.info(f"Set {', '.join(texts)}")


@handler("setPageBreaks", payload=PageBreaksPayload)
async def set_page_breaks(context: HandlerContext, payload: PageBreaksPayload) -> None:
    sheet, _ = await view_sheet(context)
    layout = sheet.page_layout
    if payload.clear_all:
        layout.clear_breaks()
    for row in payload.horizontal_breaks:
        layout.add_horizontal_break(row)
    for column in payload.vertical_breaks:
        layout.add_vertical_break(column_number(column))
    for entry in payload.remove_breaks:
        # Numbers name rows, letters name columns.
        if isinstance(entry, int) or entry.strip().isdigit():
            layout.remove_horizontal_break(int(entry))
        else:
            layout.remove_vertical_break(column_number(entry))
    await context.ctx.sync()
    context.info(
        f"Page breaks: {len(payload.horizontal_breaks)} horizontal and "
        f"{len(payload.vertical_breaks)} vertical added, "
        f"{len(payload.remove_breaks)} removed"
        + (" after clearing all" if payload.clear_all else "")
    )


__all__ = ["column_number", "page_orientation", "paper_size"]
