"""Table handlers."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import Field

from sheetact.host import HostError, TableProxy
from sheetact.host.tables import DEFAULT_TABLE_STYLE, is_valid_table_style
from sheetact.shared.a1 import split_sheet_qualifier

from ..models import ActionPayload
from .base import HandlerContext, handler

logger = logging.getLogger(__name__)

TOTALS_FUNCTIONS: dict[str, str | None] = {
    "sum": "sum",
    "average": "average",
    "avg": "average",
    "count": "count",
    "countnumbers": "countNums",
    "max": "max",
    "min": "min",
    "stddev": "stdDev",
    "var": "var",
    "none": None,
}


class CreateTablePayload(ActionPayload):
    table_name: str | None = None
    style: str | None = None
    has_headers: bool = True
    show_totals: bool = False


class StyleTablePayload(ActionPayload):
    style: str | None = None
    highlight_first_column: bool | None = None
    highlight_last_column: bool | None = None
    show_banded_rows: bool | None = None
    show_banded_columns: bool | None = None


class TableRowPayload(ActionPayload):
    values: list[Any] = Field(default_factory=list)
    position: str | int = "end"


class TableColumnPayload(ActionPayload):
    column_name: str | None = None
    values: list[Any] | None = None
    position: str | int = "end"


class ResizeTablePayload(ActionPayload):
    new_range: str | None = None


class TotalsPayload(ActionPayload):
    show: bool | None = None
    totals: dict[str, str] = Field(default_factory=dict)


def insert_index(position: str | int) -> int | None:
    """``start`` -> 0, ``end`` -> append (``None``), digits -> that index."""
    if isinstance(position, int):
        return position
    text = position.strip().lower()
    if text == "start":
        return 0
    if text.isdigit():
        return int(text)
    return None


async def _table(context: HandlerContext) -> TableProxy:
    located = await context.locate()
    return located.obj


@handler("createTable", payload=CreateTablePayload)
async def create_table(context: HandlerContext, payload: CreateTablePayload) -> str:
    target = context.require_range()
    table = target.worksheet.tables.add(target, has_headers=payload.has_headers)
    if payload.table_name:
        table.name = payload.table_name
    style = payload.style or DEFAULT_TABLE_STYLE
    if not is_valid_table_style(style):
        context.warn(f"Invalid table style {style}; using {DEFAULT_TABLE_STYLE}")
        style = DEFAULT_TABLE_STYLE
    table.style = style
    if payload.show_totals:
        table.show_totals = True
    table.load("name, address")
    await context.ctx.sync()
    context.info(f"Created table {table.name} over {table.address} ({style})")
    return table.name


@handler("styleTable", payload=StyleTablePayload)
async def style_table(context: HandlerContext, payload: StyleTablePayload) -> None:
    table = await _table(context)
    if payload.style is not None:
        if is_valid_table_style(payload.style):
            table.style = payload.style
        else:
            context.warn(f"Invalid table style {payload.style}; style unchanged")
    if payload.highlight_first_column is not None:
        table.highlight_first_column = payload.highlight_first_column
    if payload.highlight_last_column is not None:
        table.highlight_last_column = payload.highlight_last_column
    if payload.show_banded_rows is not None:
        table.show_banded_rows = payload.show_banded_rows
    if payload.show_banded_columns is not None:
        table.show_banded_columns = payload.show_banded_columns
    await context.ctx.sync()
    context.info(f"Styled table {context.target}")


@handler("addTableRow", payload=TableRowPayload, required=("values",))
async def add_table_row(context: HandlerContext, payload: TableRowPayload) -> int:
    table = await _table(context)
    rows = (
        payload.values
        if all(isinstance(row, list) for row in payload.values)
        else [payload.values]
    )
    table.add_rows(rows, insert_index(payload.position))
    await context.ctx.sync()
    context.info(f"Added {len(rows)} row(s) to table {context.target}")
    return len(rows)


@handler("addTableColumn", payload=TableColumnPayload)
async def add_table_column(
    context: HandlerContext, payload: TableColumnPayload
) -> None:
    table = await _table(context)
    table.add_column(payload.column_name, payload.values, insert_index(payload.position))
    await context.ctx.sync()
    context.info(
        f"Added column {payload.column_name or '(default name)'} to table {context.target}"
    )


@handler("resizeTable", payload=ResizeTablePayload, required=("new_range",))
async def resize_table(context: HandlerContext, payload: ResizeTablePayload) -> str:
    table = await _table(context)
    _, address = split_sheet_qualifier(payload.new_range or "")
    table.resize(address)
    table.load("address")
    await context.ctx.sync()
    context.info(f"Resized table {context.target} to {table.address}")
    return table.address


@handler("convertToRange")
async def convert_to_range(context: HandlerContext, payload: ActionPayload) -> None:
    table = await _table(context)
    table.convert_to_range()
    await context.ctx.sync()
    context.info(f"Converted table {context.target} to a range")


@handler("toggleTableTotals", payload=TotalsPayload)
async def toggle_table_totals(context: HandlerContext, payload: TotalsPayload) -> bool:
    table = await _table(context)
    show = payload.show
    if show is None:
        table.load("show_totals")
        await context.ctx.sync()
        show = not table.show_totals
    table.show_totals = show
    await context.ctx.sync()
    context.info(f"{'Showed' if show else 'Hid'} totals row of table {context.target}")

    if not show:
        return show
    for column, function in payload.totals.items():
        key = function.replace(" ", "").lower()
        if key not in TOTALS_FUNCTIONS:
            context.warn(f"Skipped totals for {column}: unknown function {function}")
            continue
        table.set_totals_function(column, TOTALS_FUNCTIONS[key])
        try:
            await context.ctx.sync()
        except HostError as exc:
            context.warn(f"Skipped totals for {column}: {exc}")
            continue
        context.info(f"Set totals of {column} to {function}")
    return show


__all__ = ["TOTALS_FUNCTIONS", "CreateTablePayload", "insert_index"]
