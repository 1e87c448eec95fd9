"""Data manipulation handlers: sorting, filtering, copying and cleanup."""

from __future__ import annotations

import logging
import re
from typing import Any, Literal

from pydantic import field_validator

from sheetact.errors import ActionValidationError
from sheetact.host import FilterCriteria
from sheetact.shared.a1 import column_letter_to_offset

from ..models import ActionPayload
from .base import HandlerContext, handler

logger = logging.getLogger(__name__)

_COLUMN_LETTERS = re.compile(r"^[A-Za-z]{1,3}$")
_TEXT_OPTION = re.compile(r"(\w+)\s*[:=]\s*([^,;]+)")


class SortPayload(ActionPayload):
    column: int | str = 0
    ascending: bool = True
    has_headers: bool = True


class FilterPayload(ActionPayload):
    column: int | str | None = None
    values: list[Any] | None = None
    criteria: str | None = None
    criteria2: str | None = None
    operator: Literal["And", "Or"] = "And"

    @field_validator("operator", mode="before")
    @classmethod
    def _title_operator(cls, value: object) -> object:
        return value.capitalize() if isinstance(value, str) else value


class RemoveDuplicatesPayload(ActionPayload):
    columns: list[int] | None = None
    has_headers: bool = True


class FindReplacePayload(ActionPayload):
    find: str = ""
    replace: str = ""
    match_case: bool = False
    match_entire_cell: bool = False


class TextToColumnsPayload(ActionPayload):
    delimiter: str = ","
    destination: str | None = None
    force_overwrite: bool = False


class MergePayload(ActionPayload):
    across: bool = False


def column_offset(column: int | str, column_index: int) -> int:
    """Map a 0-based index or a sheet column letter to an offset in the range.

    Letters are absolute sheet columns, so ``C`` on a range starting at ``B``
    is offset 1.
    """
    if isinstance(column, int):
        return column
    text = column.strip()
    if text.lstrip("-").isdigit():
        return int(text)
    if _COLUMN_LETTERS.match(text):
        return column_letter_to_offset(text) - column_index
    raise ActionValidationError(f'Invalid column "{column}". Use an index or a letter.')


def parse_text_options(text: str) -> dict[str, str]:
    """Read ``column:1,ascending:false`` style option text."""
    return {key: value.strip() for key, value in _TEXT_OPTION.findall(text)}


def _text_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() not in {"false", "0", "no", "desc", "descending"}


@handler("sort", payload=SortPayload)
async def sort_range(context: HandlerContext, payload: SortPayload) -> None:
    target = context.require_range()
    column: int | str = payload.column
    ascending = payload.ascending
    has_headers = payload.has_headers
    if isinstance(payload.raw, str):
        options = parse_text_options(payload.raw)
        column = options.get("column", column)
        ascending = _text_bool(options.get("ascending"), ascending)
        has_headers = _text_bool(options.get("hasHeaders"), has_headers)

    offset = column_offset(column, target.column_index)
    if not 0 <= offset < target.column_count:
        raise ActionValidationError(
            f"Sort column {column} is outside the {target.column_count}-column range."
        )
    target.sort_apply(offset, ascending=ascending, has_headers=has_headers)
    await context.ctx.sync()
    direction = "ascending" if ascending else "descending"
    context.info(f"Sorted {target.address} by column {offset} {direction}")


@handler("filter", payload=FilterPayload)
async def apply_filter(context: HandlerContext, payload: FilterPayload) -> None:
    target = context.require_range()
    if isinstance(payload.raw, str):
        raise ActionValidationError(
            'Invalid filter data format. Use {"column": 0, "values": ["A"]}.'
        )
    auto_filter = target.worksheet.auto_filter
    auto_filter.clear()
    if payload.column is None or not (payload.values or payload.criteria):
        auto_filter.enable(target)
        await context.ctx.sync()
        context.info(f"Enabled AutoFilter on {target.address}")
        return

    offset = column_offset(payload.column, target.column_index)
    if payload.values:
        criteria = FilterCriteria(values=[str(value) for value in payload.values])
    else:
        criteria = FilterCriteria(
            criterion1=payload.criteria,
            criterion2=payload.criteria2,
            operator=payload.operator,
        )
    auto_filter.apply(target, offset, criteria)
    await context.ctx.sync()
    context.info(f"Applied filter on column {offset} of {target.address}")


@handler("clearFilter")
async def clear_filter(context: HandlerContext, payload: ActionPayload) -> None:
    context.require_range().worksheet.auto_filter.clear()
    await context.ctx.sync()
    context.info("Cleared worksheet filters")


@handler("autofill")
async def autofill_range(context: HandlerContext, payload: ActionPayload) -> None:
    target = context.require_range()
    if not context.source:
        raise ActionValidationError("autofill requires a source range")
    source = await context.resolve(context.source)
    source.autofill(target)
    await context.ctx.sync()
    context.info(f"Autofilled {target.address} from {context.source}")


async def _copy(context: HandlerContext, copy_type: str) -> None:
    target = context.require_range()
    if not context.source:
        raise ActionValidationError(f"{context.kind} requires a source range")
    source = await context.load_range(context.source, "row_count, column_count")
    destination = target.get_cell(0, 0).get_absolute_resized_range(
        source.row_count, source.column_count
    )
    destination.copy_from(source, copy_type)
    destination.load("address")
    await context.ctx.sync()
    context.info(f"Copied {context.source} to {destination.address} ({copy_type})")


@handler("copy")
async def copy_range(context: HandlerContext, payload: ActionPayload) -> None:
    await _copy(context, "All")


@handler("copyValues")
async def copy_values(context: HandlerContext, payload: ActionPayload) -> None:
    await _copy(context, "Values")


def unique_rows(
    rows: list[list[Any]], columns: list[int] | None, has_headers: bool
) -> tuple[list[list[Any]], int]:
    """Drop rows whose key repeats an earlier row; returns (kept, removed)."""
    header = rows[:1] if has_headers else []
    body = rows[1:] if has_headers else rows
    width = len(rows[0]) if rows else 0
    key_columns = [c for c in (columns or range(width)) if 0 <= c < width]
    if columns and not key_columns:
        raise ActionValidationError(
            f"removeDuplicates columns {columns} are outside the {width}-column range."
        )
    seen: set[str] = set()
    kept: list[list[Any]] = []
    for row in body:
        key = "|".join("" if row[c] is None else str(row[c]) for c in key_columns)
        if key in seen:
            continue
        seen.add(key)
        kept.append(row)
    return header + kept, len(body) - len(kept)


@handler("removeDuplicates", payload=RemoveDuplicatesPayload)
async def remove_duplicates(
    context: HandlerContext, payload: RemoveDuplicatesPayload
) -> dict[str, int]:
    target = context.require_range()
    target.load("values")
    await context.ctx.sync()
    rows = [list(row) for row in target.values]
    kept, removed = unique_rows(rows, payload.columns, payload.has_headers)
    if removed == 0:
        context.info("No duplicate rows found")
        return {"removed": 0, "remaining": len(kept)}

    context.info(f"Removing {removed} duplicate rows")
    width = target.column_count
    padding = [[""] * width for _ in range(len(rows) - len(kept))]
    target.clear("Contents")
    target.values = kept + padding
    await context.ctx.sync()
    return {"removed": removed, "remaining": len(kept)}


@handler("findReplace", payload=FindReplacePayload)
async def find_replace(context: HandlerContext, payload: FindReplacePayload) -> int:
    target = context.require_range()
    if not payload.find:
        raise ActionValidationError("Find string cannot be empty.")
    result = target.replace_all(
        payload.find,
        payload.replace,
        match_case=payload.match_case,
        match_entire_cell=payload.match_entire_cell,
    )
    await context.ctx.sync()
    context.info(f'Replaced "{payload.find}" in {result.value} cell(s)')
    return result.value


@handler("textToColumns", payload=TextToColumnsPayload)
async def text_to_columns(
    context: HandlerContext, payload: TextToColumnsPayload
) -> dict[str, Any]:
    target = context.require_range()
    if target.column_count != 1:
        raise ActionValidationError(
            "Text to columns requires a single-column range. "
            f"Got {target.column_count} columns."
        )
    delimiter = payload.delimiter or ","
    target.load("values")
    await context.ctx.sync()
    split = [
        ("" if row[0] is None else str(row[0])).split(delimiter) for row in target.values
    ]
    width = max((len(parts) for parts in split), default=1)
    grid = [[part.strip() for part in parts] + [""] * (width - len(parts)) for parts in split]

    if payload.destination:
        anchor = await context.resolve(payload.destination)
        destination = anchor.get_cell(0, 0).get_absolute_resized_range(len(grid), width)
    else:
        destination = target.get_offset_range(0, 1).get_resized_range(0, width - 1)
    destination.load("address, values")
    await context.ctx.sync()

    occupied = sum(
        1 for row in destination.values for value in row if value not in (None, "")
    )
    if occupied and not payload.force_overwrite:
        raise ActionValidationError(
            f"Destination range contains {occupied} non-empty cell(s). "
            'Set "forceOverwrite": true to overwrite them.'
        )
    if occupied:
        context.warn(f"Overwriting {occupied} non-empty cell(s) in {destination.address}")
    destination.values = grid
    await context.ctx.sync()
    context.info(f"Split {len(grid)} rows into {width} columns at {destination.address}")
    return {"destination": destination.address, "columns": width}


@handler("mergeCells", payload=MergePayload)
async def merge_cells(context: HandlerContext, payload: MergePayload) -> None:
    target = context.require_range()
    if target.row_count * target.column_count < 2:
        raise ActionValidationError(
            "Cannot merge a single cell. Range must contain at least 2 cells."
        )
    target.merge(payload.across)
    await context.ctx.sync()
    context.info(f"Merged {target.address}{' across rows' if payload.across else ''}")


@handler("unmergeCells")
async def unmerge_cells(context: HandlerContext, payload: ActionPayload) -> None:
    target = context.require_range()
    target.unmerge()
    await context.ctx.sync()
    context.info(f"Unmerged {target.address}")


__all__ = [
    "FilterPayload",
    "SortPayload",
    "column_offset",
    "parse_text_options",
    "unique_rows",
]
