"""Worksheet management and window view handlers."""

from __future__ import annotations

import logging

from sheetact.errors import ActionValidationError
from sheetact.host import WorksheetProxy
from sheetact.host.worksheet import validate_sheet_name
from sheetact.shared.a1 import (
    column_letter_to_offset,
    column_offset_to_letter,
    is_range_address,
    split_a1,
    split_sheet_qualifier,
)

from ..models import ActionPayload
from .base import HandlerContext, handler

logger = logging.getLogger(__name__)


class RenameSheetPayload(ActionPayload):
    new_name: str | None = None


class MoveSheetPayload(ActionPayload):
    position: int = -1


class HideSheetPayload(ActionPayload):
    very_hidden: bool = False


class FreezePayload(ActionPayload):
    freeze_rows: int | None = None
    freeze_columns: int | None = None
    freeze_at: str | None = None


class ZoomPayload(ActionPayload):
    zoom: int | None = None


class SplitPayload(ActionPayload):
    split_at: str | None = None
    split_row: int = 0
    split_column: int = 0


class ViewPayload(ActionPayload):
    view_name: str | None = None
    show_gridlines: bool = True
    show_headings: bool = True


def cell_offsets(address: str) -> tuple[int, int]:
    """Rows above and columns left of a single cell (``C4`` -> ``(3, 2)``)."""
    try:
        column, row = split_a1(address.replace("$", "").strip().upper())
    except ValueError as exc:
        raise ActionValidationError(f'Invalid cell "{address}"') from exc
    return row - 1, column_letter_to_offset(column)


async def view_sheet(context: HandlerContext) -> tuple[WorksheetProxy, str | None]:
    """The sheet a view action applies to, plus the cell the target names.

    The target may be omitted (active sheet), a sheet name, or a cell
    address with an optional sheet qualifier.
    """
    if not context.target:
        return context.worksheet, None
    sheet_name, reference = split_sheet_qualifier(context.target)
    if is_range_address(reference.replace("$", "")):
        if sheet_name is None:
            return context.worksheet, reference
        located = await context.locate(sheet_name, "sheet")
        return located.obj, reference
    located = await context.locate(context.target, "sheet")
    return located.obj, None


async def _target_sheet(context: HandlerContext) -> WorksheetProxy:
    located = await context.locate()
    return located.obj


@handler("renameSheet", payload=RenameSheetPayload, required=("new_name",))
async def rename_sheet(context: HandlerContext, payload: RenameSheetPayload) -> str:
    new_name = payload.new_name or ""
    reason = validate_sheet_name(new_name)
    if reason is not None:
        raise ActionValidationError(reason)
    sheet = await _target_sheet(context)
    sheets = context.ctx.workbook.worksheets.load("names")
    sheet.load("name")
    await context.ctx.sync()
    taken = {
        name.casefold() for name in sheets.names if name.casefold() != sheet.name.casefold()
    }
    if new_name.casefold() in taken:
        raise ActionValidationError(f'A sheet named "{new_name}" already exists')
    old_name = sheet.name
    sheet.name = new_name
    await context.ctx.sync()
    context.info(f'Renamed sheet "{old_name}" to "{new_name}"')
    return new_name


@handler("moveSheet", payload=MoveSheetPayload)
async def move_sheet(context: HandlerContext, payload: MoveSheetPayload) -> int:
    sheet = await _target_sheet(context)
    sheet.position = payload.position
    sheet.load("position")
    await context.ctx.sync()
    context.info(f"Moved sheet {context.target} to position {sheet.position}")
    return sheet.position


@handler("hideSheet", payload=HideSheetPayload)
async def hide_sheet(context: HandlerContext, payload: HideSheetPayload) -> None:
    sheet = await _target_sheet(context)
    sheet.load("name")
    sheets = context.ctx.workbook.worksheets.load("items")
    await context.ctx.sync()
    for other in sheets.items:
        other.load("name, visibility")
    await context.ctx.sync()
    folded = sheet.name.casefold()
    visible = [other for other in sheets.items if other.visibility == "Visible"]
    if all(other.name.casefold() == folded for other in visible):
        raise ActionValidationError("Cannot hide the last visible sheet")
    sheet.visibility = "VeryHidden" if payload.very_hidden else "Hidden"
    await context.ctx.sync()
    context.info(
        f"Hid sheet {context.target}" + (" (very hidden)" if payload.very_hidden else "")
    )


@handler("unhideSheet")
async def unhide_sheet(context: HandlerContext, payload: ActionPayload) -> None:
    sheet = await _target_sheet(context)
    sheet.visibility = "Visible"
    await context.ctx.sync()
    context.info(f"Unhid sheet {context.target}")


@handler("freezePanes", payload=FreezePayload)
async def freeze_panes(context: HandlerContext, payload: FreezePayload) -> str | None:
    sheet, cell = await view_sheet(context)
    panes = sheet.freeze_panes
    at = payload.freeze_at or cell
    rows = payload.freeze_rows or 0
    columns = payload.freeze_columns or 0
    if at:
        rows, columns = cell_offsets(at)
        panes.freeze_at_cell(at.replace("$", ""))
    elif rows and columns:
        panes.freeze_at_cell(f"{column_offset_to_letter(columns)}{rows + 1}")
    elif rows:
        panes.freeze_rows(rows)
    elif columns:
        panes.freeze_columns(columns)
    else:
        raise ActionValidationError(
            "freezePanes requires 'freezeRows', 'freezeColumns' or 'freezeAt'"
        )
    panes.load("location")
    await context.ctx.sync()
    context.info(f"Froze {rows} row(s) and {columns} column(s)")
    return panes.location


@handler("unfreezePane")
async def unfreeze_pane(context: HandlerContext, payload: ActionPayload) -> None:
    sheet, _ = await view_sheet(context)
    sheet.freeze_panes.unfreeze()
    await context.ctx.sync()
    context.info("Removed frozen panes")


@handler("setZoom", payload=ZoomPayload, required=("zoom",))
async def set_zoom(context: HandlerContext, payload: ZoomPayload) -> int:
    zoom = payload.zoom or 0
    if not 10 <= zoom <= 400:
        raise ActionValidationError(f"Zoom must be between 10 and 400, got {zoom}")
    sheet, _ = await view_sheet(context)
    sheet.zoom = zoom
    await context.ctx.sync()
    context.info(f"Set zoom to {zoom}%")
    return zoom


@handler("splitPane", payload=SplitPayload)
async def split_pane(context: HandlerContext, payload: SplitPayload) -> None:
    sheet, cell = await view_sheet(context)
    at = payload.split_at or cell
    if at:
        rows, columns = cell_offsets(at)
    else:
        rows, columns = payload.split_row, payload.split_column
    if rows < 0 or columns < 0:
        raise ActionValidationError("splitRow and splitColumn must not be negative")
    sheet.split_panes(rows, columns)
    await context.ctx.sync()
    if (rows, columns) == (0, 0):
        context.info("Removed window split")
    else:
        context.info(f"Split window after {rows} row(s) and {columns} column(s)")


@handler("createView", payload=ViewPayload, required=("view_name",))
async def create_view(context: HandlerContext, payload: ViewPayload) -> str:
    sheet, _ = await view_sheet(context)
    name = payload.view_name or ""
    sheet.named_sheet_views.add(
        name,
        show_gridlines=payload.show_gridlines,
        show_headings=payload.show_headings,
    )
    await context.ctx.sync()
    context.info(f"Created sheet view {name}")
    return name


__all__ = ["cell_offsets", "view_sheet"]
