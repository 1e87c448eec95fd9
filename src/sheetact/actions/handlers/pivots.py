"""Pivot table handlers."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import Field, field_validator

from sheetact.errors import ActionValidationError
from sheetact.host import HostError, PivotTableProxy, RangeProxy, TableProxy
from sheetact.shared.a1 import is_range_address, split_sheet_qualifier

from ..models import ActionPayload
from .base import HandlerContext, handler

logger = logging.getLogger(__name__)

PIVOT_FUNCTION_ALIASES: dict[str, str] = {
    "sum": "Sum",
    "count": "Count",
    "average": "Average",
    "avg": "Average",
    "max": "Max",
    "min": "Min",
    "countnumbers": "CountNumbers",
    "stddev": "StandardDeviation",
    "standarddeviation": "StandardDeviation",
    "var": "Variance",
    "variance": "Variance",
}
_AREAS = {
    "row": "row",
    "rows": "row",
    "column": "column",
    "columns": "column",
    "data": "data",
    "value": "data",
    "values": "data",
    "filter": "filter",
    "filters": "filter",
}
_LAYOUT_OPTIONS = (
    "show_row_grand_totals",
    "show_column_grand_totals",
    "show_row_headers",
    "show_column_headers",
    "repeat_item_labels",
    "show_empty_rows",
)


class PivotValue(ActionPayload):
    field: str
    function: str = "sum"
    name: str | None = None


class CreatePivotPayload(ActionPayload):
    name: str | None = None
    destination: str | None = None
    rows: list[str] = Field(default_factory=list)
    columns: list[str] = Field(default_factory=list)
    values: list[PivotValue] = Field(default_factory=list)
    filters: list[str] = Field(default_factory=list)
    layout: str | None = None

    @field_validator("values", mode="before")
    @classmethod
    def _plain_field_names(cls, value: object) -> object:
        if isinstance(value, list):
            return [{"field": item} if isinstance(item, str) else item for item in value]
        return value


class PivotFieldPayload(ActionPayload):
    field: str | None = None
    area: str = "row"
    function: str = "sum"
    name: str | None = None


class PivotLayoutPayload(ActionPayload):
    layout: str | None = None
    show_row_grand_totals: bool | None = None
    show_column_grand_totals: bool | None = None
    show_row_headers: bool | None = None
    show_column_headers: bool | None = None
    repeat_item_labels: bool | None = None
    show_empty_rows: bool | None = None


class RefreshPivotPayload(ActionPayload):
    refresh_all: bool = False


def pivot_function(context: HandlerContext, name: str | None) -> str:
    """Map an aggregate name to a host pivot function; unknown names sum."""
    if not name:
        return "Sum"
    resolved = PIVOT_FUNCTION_ALIASES.get(name.replace(" ", "").lower())
    if resolved is None:
        context.info(f"Unknown pivot function {name}; using Sum")
        return "Sum"
    return resolved


def pivot_layout(name: str) -> str:
    layout = name.strip().capitalize()
    if layout not in {"Compact", "Outline", "Tabular"}:
        raise ActionValidationError(
            f'Invalid pivot layout "{name}". Use compact, outline or tabular.'
        )
    return layout


def _queue_field(
    pivot: PivotTableProxy, area: str, field: str, function: str, name: str | None
) -> None:
    if area == "row":
        pivot.add_row(field)
    elif area == "column":
        pivot.add_column(field)
    elif area == "filter":
        pivot.add_filter(field)
    else:
        pivot.add_data(field, function, name)


async def _pivot(context: HandlerContext) -> PivotTableProxy:
    located = await context.locate()
    return located.obj


async def _pivot_source(
    context: HandlerContext, target: str
) -> RangeProxy | TableProxy:
    _, reference = split_sheet_qualifier(target)
    if is_range_address(reference):
        return await context.resolve(target)
    located = await context.locate(target, "table")
    return located.obj


@handler(
    "createPivotTable",
    payload=CreatePivotPayload,
    required=("name", "destination"),
    target="manual",
)
async def create_pivot_table(
    context: HandlerContext, payload: CreatePivotPayload
) -> dict[str, Any]:
    name = payload.name or ""
    source = await _pivot_source(context, context.require_target())

    sheet_name, anchor = split_sheet_qualifier(payload.destination or "")
    owner = context.worksheet
    if sheet_name is not None:
        owner = context.ctx.workbook.worksheets.get_item_or_null_object(sheet_name)
        owner.load("is_null_object")
        await context.ctx.sync()
        if owner.is_null_object:
            owner = context.ctx.workbook.worksheets.add(sheet_name)
            context.info(f'Created destination sheet "{sheet_name}"')

    pivot = owner.pivot_tables.add(name, source, owner.get_range(anchor))
    await context.ctx.sync()
    context.info(f"Created pivot table {name} at {payload.destination}")

    placements = (
        [("row", field, "Sum", None) for field in payload.rows]
        + [("column", field, "Sum", None) for field in payload.columns]
        + [("filter", field, "Sum", None) for field in payload.filters]
        + [
            ("data", value.field, pivot_function(context, value.function), value.name)
            for value in payload.values
        ]
    )
    for area, field, function, caption in placements:
        _queue_field(pivot, area, field, function, caption)
        try:
            await context.ctx.sync()
        except HostError as exc:
            context.warn(f"Skipped {area} field {field}: {exc}")
    if payload.layout:
        pivot.layout = pivot_layout(payload.layout)
        await context.ctx.sync()

    pivot.load("output_address")
    await context.ctx.sync()
    return {"name": name, "output": pivot.output_address}


@handler("addPivotField", payload=PivotFieldPayload, required=("field",))
async def add_pivot_field(context: HandlerContext, payload: PivotFieldPayload) -> None:
    area = _AREAS.get(payload.area.strip().lower())
    if area is None:
        raise ActionValidationError(
            f'Invalid pivot area "{payload.area}". Use row, column, data or filter.'
        )
    pivot = await _pivot(context)
    function = pivot_function(context, payload.function) if area == "data" else "Sum"
    _queue_field(pivot, area, payload.field or "", function, payload.name)
    await context.ctx.sync()
    context.info(f"Added {payload.field} to the {area} area of {context.target}")


@handler("configurePivotLayout", payload=PivotLayoutPayload)
async def configure_pivot_layout(
    context: HandlerContext, payload: PivotLayoutPayload
) -> None:
    pivot = await _pivot(context)
    if payload.layout:
        pivot.layout = pivot_layout(payload.layout)
    flags = {
        option: getattr(payload, option)
        for option in _LAYOUT_OPTIONS
        if getattr(payload, option) is not None
    }
    if flags:
        pivot.set_layout_options(**flags)
    await context.ctx.sync()
    context.info(f"Configured layout of pivot table {context.target}")


@handler("refreshPivotTable", payload=RefreshPivotPayload)
async def refresh_pivot_table(
    context: HandlerContext, payload: RefreshPivotPayload
) -> int:
    if payload.refresh_all or context.target == "*":
        result = context.ctx.workbook.refresh_all_pivots()
        await context.ctx.sync()
        context.info(f"Refreshed {result.value} pivot table(s)")
        return result.value
    pivot = await _pivot(context)
    pivot.refresh()
    await context.ctx.sync()
    context.info(f"Refreshed pivot table {context.target}")
    return 1


@handler("deletePivotTable")
async def delete_pivot_table(context: HandlerContext, payload: ActionPayload) -> None:
    pivot = await _pivot(context)
    pivot.delete()
    await context.ctx.sync()
    context.info(f"Deleted pivot table {context.target}")


__all__ = [
    "PIVOT_FUNCTION_ALIASES",
    "CreatePivotPayload",
    "pivot_function",
    "pivot_layout",
]
