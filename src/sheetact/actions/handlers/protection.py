"""Worksheet, range and workbook protection handlers."""

from __future__ import annotations

import logging

from sheetact.errors import ActionValidationError
from sheetact.host import WorksheetProtectionOptions, WorksheetProxy
from sheetact.host.protection import SELECTION_MODES

from ..models import ActionPayload
from .base import HandlerContext, handler

logger = logging.getLogger(__name__)


class WorksheetProtectionPayload(ActionPayload):
    password: str | None = None
    allow_format_cells: bool = False
    allow_format_columns: bool = False
    allow_format_rows: bool = False
    allow_insert_columns: bool = False
    allow_insert_rows: bool = False
    allow_insert_hyperlinks: bool = False
    allow_delete_columns: bool = False
    allow_delete_rows: bool = False
    allow_sort: bool = False
    allow_auto_filter: bool = False
    allow_pivot_tables: bool = False
    allow_edit_objects: bool = False
    allow_edit_scenarios: bool = False
    selection_mode: str = "Normal"


class PasswordPayload(ActionPayload):
    password: str | None = None


class RangeProtectionPayload(ActionPayload):
    locked: bool | None = None
    formula_hidden: bool | None = None


class WorkbookProtectionPayload(ActionPayload):
    password: str | None = None
    protect_structure: bool = True
    protect_windows: bool = False


async def _sheet(context: HandlerContext) -> WorksheetProxy:
    """The sheet named by the target, or the active one."""
    if not context.target:
        return context.worksheet
    located = await context.locate(context.target, "sheet")
    return located.obj


@handler("protectWorksheet", payload=WorksheetProtectionPayload)
async def protect_worksheet(
    context: HandlerContext, payload: WorksheetProtectionPayload
) -> None:
    mode = payload.selection_mode.capitalize()
    if mode not in SELECTION_MODES:
        raise ActionValidationError(
            f'Invalid selectionMode "{payload.selection_mode}". '
            f"Use {', '.join(SELECTION_MODES)}."
        )
    options = WorksheetProtectionOptions.model_validate(
        {
            **payload.model_dump(exclude={"password", "selection_mode"}),
            "selection_mode": mode,
        }
    )
    sheet = await _sheet(context)
    sheet.protection.protect(options, payload.password)
    sheet.load("name")
    await context.ctx.sync()
    allowed = [name for name, value in options.model_dump().items() if value is True]
    context.info(
        f"Protected worksheet {sheet.name}"
        + (" with password" if payload.password else "")
        + (f"; allowed: {', '.join(allowed)}" if allowed else "")
    )


@handler("unprotectWorksheet", payload=PasswordPayload)
async def unprotect_worksheet(
    context: HandlerContext, payload: PasswordPayload
) -> None:
    sheet = await _sheet(context)
    sheet.protection.unprotect(payload.password)
    sheet.load("name")
    await context.ctx.sync()
    context.info(f"Unprotected worksheet {sheet.name}")


async def _range_protection(
    context: HandlerContext, payload: RangeProtectionPayload, locked: bool
) -> None:
    target = context.require_range()
    protection = target.format.protection
    locked = locked if payload.locked is None else payload.locked
    protection.locked = locked
    if payload.formula_hidden is not None:
        protection.formula_hidden = payload.formula_hidden
    sheet_protection = target.worksheet.protection.load("protected")
    await context.ctx.sync()
    state = "Locked" if locked else "Unlocked"
    context.info(f"{state} cells in {target.address}")
    if not sheet_protection.protected:
        context.info("Cell locking takes effect once the worksheet is protected")


@handler("protectRange", payload=RangeProtectionPayload)
async def protect_range(
    context: HandlerContext, payload: RangeProtectionPayload
) -> None:
    await _range_protection(context, payload, True)


@handler("unprotectRange", payload=RangeProtectionPayload)
async def unprotect_range(
    context: HandlerContext, payload: RangeProtectionPayload
) -> None:
    await _range_protection(context, payload, False)


@handler("protectWorkbook", payload=WorkbookProtectionPayload)
async def protect_workbook(
    context: HandlerContext, payload: WorkbookProtectionPayload
) -> None:
    context.ctx.workbook.protection.protect(
        payload.password,
        structure=payload.protect_structure,
        windows=payload.protect_windows,
    )
    await context.ctx.sync()
    parts = [
        label
        for label, enabled in (
            ("structure", payload.protect_structure),
            ("windows", payload.protect_windows),
        )
        if enabled
    ]
    context.info(f"Protected workbook {' and '.join(parts)}")


@handler("unprotectWorkbook", payload=PasswordPayload)
async def unprotect_workbook(context: HandlerContext, payload: PasswordPayload) -> None:
    context.ctx.workbook.protection.unprotect(payload.password)
    await context.ctx.sync()
    context.info("Unprotected workbook")


__all__ = ["RangeProtectionPayload", "WorksheetProtectionPayload"]
