"""Row/column band and sheet creation handlers."""

from __future__ import annotations

import logging
from typing import Any

from sheetact.errors import ActionValidationError
from sheetact.shared.a1 import (
    column_offset_to_letter,
    parse_column_band,
    parse_row_band,
)

from ..models import ActionPayload
from .base import HandlerContext, handler
from .cells import coerce_grid

logger = logging.getLogger(__name__)


class BandPayload(ActionPayload):
    count: Any = None


class SheetPayload(ActionPayload):
    name: str | None = None
    values: list[list[Any]] | None = None


def _row_band(target: str) -> tuple[int, int]:
    band = parse_row_band(target)
    if band is None:
        raise ActionValidationError(
            f'Invalid row range "{target}". Use format "5" or "5:7".'
        )
    return band


def _column_band(target: str) -> tuple[int, int]:
    band = parse_column_band(target)
    if band is None:
        raise ActionValidationError(
            f'Invalid column range "{target}". Use format "C" or "C:E".'
        )
    return band


def insert_count(context: HandlerContext, raw: Any, band_length: int) -> int:
    """Rows/columns to insert: ``count`` when valid, else the band length."""
    if raw is None:
        return band_length
    try:
        count = int(raw)
    except (TypeError, ValueError):
        count = 0
    if count < 1:
        context.warn(f"Invalid count {raw!r}; inserting 1")
        return 1
    return count


def _column_label(first: int, last: int) -> str:
    start = column_offset_to_letter(first - 1)
    end = column_offset_to_letter(last - 1)
    return start if first == last else f"{start}:{end}"


@handler("insertRows", payload=BandPayload)
async def insert_rows(context: HandlerContext, payload: BandPayload) -> int:
    first, last = _row_band(context.require_target())
    count = insert_count(context, payload.count, last - first + 1)
    context.worksheet.insert_rows(first, count)
    await context.ctx.sync()
    context.info(f"Inserted {count} row(s) at row {first}")
    return count


@handler("deleteRows", payload=BandPayload)
async def delete_rows(context: HandlerContext, payload: BandPayload) -> int:
    first, last = _row_band(context.require_target())
    count = last - first + 1
    context.worksheet.delete_rows(first, count)
    await context.ctx.sync()
    context.info(
        f"Deleted {count} row(s) starting at row {first}; "
        "formulas referencing them may be affected"
    )
    return count


@handler("insertColumns", payload=BandPayload)
async def insert_columns(context: HandlerContext, payload: BandPayload) -> int:
    first, last = _column_band(context.require_target())
    count = insert_count(context, payload.count, last - first + 1)
    context.worksheet.insert_columns(first, count)
    await context.ctx.sync()
    context.info(f"Inserted {count} column(s) at {column_offset_to_letter(first - 1)}")
    return count


@handler("deleteColumns", payload=BandPayload)
async def delete_columns(context: HandlerContext, payload: BandPayload) -> int:
    first, last = _column_band(context.require_target())
    count = last - first + 1
    context.worksheet.delete_columns(first, count)
    await context.ctx.sync()
    context.info(
        f"Deleted column(s) {_column_label(first, last)}; "
        "formulas referencing them may be affected"
    )
    return count


@handler("sheet", payload=SheetPayload)
async def create_sheet(context: HandlerContext, payload: SheetPayload) -> str:
    name = context.target or payload.name
    if not name:
        raise ActionValidationError("sheet requires a sheet name in 'target' or 'name'")
    sheet = context.ctx.workbook.worksheets.add(name)
    rows = payload.values
    if rows is None and isinstance(payload.raw, list):
        rows = coerce_grid(payload.raw, None)
    if rows:
        grid = coerce_grid(rows, None)
        sheet.get_range("A1").get_absolute_resized_range(
            len(grid), len(grid[0])
        ).values = grid
    await context.ctx.sync()
    context.info(
        f'Created sheet "{name}"' + (f" with {len(rows)} row(s)" if rows else "")
    )
    return name


__all__ = ["BandPayload", "SheetPayload", "insert_count"]
