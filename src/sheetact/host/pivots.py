"""Pivot tables of the reference host.

The definition lives in the side model; each refresh renders the summary as
plain cell values at the destination, replacing the previous output.
"""

from __future__ import annotations

import logging
import statistics
from typing import TYPE_CHECKING, Any, get_args

from openpyxl.cell.cell import MergedCell

from sheetact.shared.a1 import quote_sheet_name

from .client import ClientObject, HostError, HostProperty, RequestContext, find_key
from .range import Bounds, format_bounds, parse_address
from .state import PivotAggregation, PivotDataField, PivotLayout, PivotTableState
from .tables import TableProxy, find_table
from .worksheet import find_sheet

if TYPE_CHECKING:  # pragma: no cover - typing only
    from openpyxl.worksheet.worksheet import Worksheet

    from .range import RangeProxy
    from .worksheet import WorksheetProxy

logger = logging.getLogger(__name__)

PIVOT_FUNCTIONS: tuple[str, ...] = get_args(PivotAggregation)
PIVOT_LAYOUTS: tuple[str, ...] = get_args(PivotLayout)
_LAYOUT_FLAGS = (
    "show_row_grand_totals",
    "show_column_grand_totals",
    "show_row_headers",
    "show_column_headers",
    "repeat_item_labels",
    "show_empty_rows",
)


def iter_pivots(context: RequestContext) -> list[tuple[Worksheet, PivotTableState]]:
    """Return every pivot table in sheet order."""
    found: list[tuple[Worksheet, PivotTableState]] = []
    for sheet in context.book.worksheets:
        side = context.state.for_sheet(sheet)
        found.extend((sheet, pivot) for pivot in side.pivots.values())
    return found


def find_pivot(
    context: RequestContext, name: str
) -> tuple[Worksheet, PivotTableState] | None:
    folded = name.casefold()
    for sheet, pivot in iter_pivots(context):
        if pivot.name.casefold() == folded:
            return sheet, pivot
    return None


def read_source(context: RequestContext, pivot: PivotTableState) -> list[list[Any]]:
    """Read the current source grid (header row first) of a pivot table."""
    if pivot.source_table is not None:
        located = find_table(context, pivot.source_table)
        if located is None:
            raise HostError(
                f"The pivot source table '{pivot.source_table}' no longer exists.",
                code="InvalidReference",
            )
        sheet, table = located
        address = table.ref
    else:
        found = find_sheet(context, pivot.source_sheet)
        if found is None:
            raise HostError(
                f"The pivot source sheet '{pivot.source_sheet}' no longer exists.",
                code="InvalidReference",
            )
        sheet = found
        address = pivot.source_address
    min_row, min_col, max_row, max_col = parse_address(address)
    max_row = min(max_row, sheet.max_row)
    max_col = min(max_col, sheet.max_column)
    return [
        list(row)
        for row in sheet.iter_rows(
            min_row=min_row,
            max_row=max_row,
            min_col=min_col,
            max_col=max_col,
            values_only=True,
        )
    ]


def source_headers(context: RequestContext, pivot: PivotTableState) -> list[str]:
    grid = read_source(context, pivot)
    if not grid:
        return []
    return ["" if value is None else str(value) for value in grid[0]]


def aggregate(values: list[Any], function: str) -> float | int | None:
    """Aggregate a pivot value cell with an Excel-like summary function."""
    present = [value for value in values if value not in (None, "")]
    numbers = [
        float(value)
        for value in present
        if isinstance(value, (int, float)) and not isinstance(value, bool)
    ]
    if function == "Count":
        return len(present)
    if function == "CountNumbers":
        return len(numbers)
    if not numbers:
        return None
    if function == "Sum":
        return _tidy(sum(numbers))
    if function == "Average":
        return _tidy(statistics.fmean(numbers))
    if function == "Max":
        return _tidy(max(numbers))
    if function == "Min":
        return _tidy(min(numbers))
    if len(numbers) < 2:
        return None
    if function == "StandardDeviation":
        return statistics.stdev(numbers)
    if function == "Variance":
        return statistics.variance(numbers)
    raise HostError(f"Unsupported pivot function: {function}", code="InvalidArgument")


def render_pivot(
    context: RequestContext, sheet: Worksheet, pivot: PivotTableState
) -> None:
    """Recompute the pivot summary and write it at its destination."""
    grid = read_source(context, pivot)
    if not grid:
        raise HostError("The pivot source range is empty.", code="InvalidArgument")
    headers = ["" if value is None else str(value) for value in grid[0]]
    body = [row for row in grid[1:] if any(value not in (None, "") for value in row)]

    def column(field: str) -> int:
        key = find_key({header: None for header in headers}, field)
        if key is None:
            raise HostError(
                f"Field '{field}' is not in the pivot source.", code="InvalidArgument"
            )
        return headers.index(key)

    row_idx = [column(field) for field in pivot.rows]
    col_idx = [column(field) for field in pivot.columns]
    value_idx = [(column(data.field), data) for data in pivot.values]
    for field in pivot.filters:
        column(field)

    row_keys = _distinct_keys(body, row_idx)
    col_keys = _distinct_keys(body, col_idx) if col_idx else [()]

    label_width = 1 if pivot.layout == "Compact" or not row_idx else len(row_idx)
    output: list[list[Any]] = []
    for field in pivot.filters:
        output.append([field, "(All)"])
    if pivot.filters:
        output.append([])

    header: list[Any] = []
    if pivot.show_row_headers:
        if pivot.layout == "Compact" or not row_idx:
            header.append("Row Labels")
        else:
            header.extend(pivot.rows)
    else:
        header.extend([""] * label_width)
    for col_key in col_keys:
        for _, data in value_idx:
            header.append(_column_caption(col_key, data, len(value_idx)))
    if col_idx and pivot.show_row_grand_totals:
        for _, data in value_idx:
            header.append(
                "Grand Total" if len(value_idx) == 1 else f"Total {data.name}"
            )
    if pivot.show_column_headers or not col_idx:
        output.append(header)

    previous: tuple[Any, ...] | None = None
    for row_key in row_keys:
        matching = [row for row in body if _key(row, row_idx) == row_key]
        line: list[Any] = _row_labels(row_key, previous, pivot, label_width)
        previous = row_key
        for col_key in col_keys:
            cells = [row for row in matching if _key(row, col_idx) == col_key]
            for idx, data in value_idx:
                line.append(aggregate([row[idx] for row in cells], data.function))
        if col_idx and pivot.show_row_grand_totals:
            for idx, data in value_idx:
                line.append(aggregate([row[idx] for row in matching], data.function))
        output.append(line)

    if pivot.show_column_grand_totals and value_idx:
        line = ["Grand Total"] + [""] * (label_width - 1)
        for col_key in col_keys:
            cells = [row for row in body if _key(row, col_idx) == col_key]
            for idx, data in value_idx:
                line.append(aggregate([row[idx] for row in cells], data.function))
        if col_idx and pivot.show_row_grand_totals:
            for idx, data in value_idx:
                line.append(aggregate([row[idx] for row in body], data.function))
        output.append(line)

    clear_output(sheet, pivot)
    top, left, _, _ = parse_address(pivot.destination)
    width = max((len(line) for line in output), default=1)
    for r, line in enumerate(output):
        for c, value in enumerate(line):
            cell = sheet.cell(row=top + r, column=left + c)
            if not isinstance(cell, MergedCell):
                cell.value = None if value == "" else value
    bounds: Bounds = (top, left, top + max(len(output), 1) - 1, left + width - 1)
    pivot.output_address = format_bounds(bounds)
    logger.debug("Rendered pivot %s at %s", pivot.name, pivot.output_address)


def clear_output(sheet: Worksheet, pivot: PivotTableState) -> None:
    if pivot.output_address is None:
        return
    min_row, min_col, max_row, max_col = parse_address(pivot.output_address)
    for row in sheet.iter_rows(
        min_row=min_row, max_row=max_row, min_col=min_col, max_col=max_col
    ):
        for cell in row:
            if not isinstance(cell, MergedCell):
                cell.value = None
    pivot.output_address = None


class PivotTableCollection(ClientObject):
    """Pivot tables whose output lives on one worksheet."""

    names = HostProperty()
    count = HostProperty()

    def __init__(self, worksheet: WorksheetProxy) -> None:
        super().__init__(worksheet.context)
        self.worksheet = worksheet

    def _read_names(self) -> list[str]:
        side = self.context.state.for_sheet(self.worksheet._sheet())
        return [pivot.name for pivot in side.pivots.values()]

    def _read_count(self) -> int:
        return len(self.context.state.for_sheet(self.worksheet._sheet()).pivots)

    def get_item(self, name: str) -> PivotTableProxy:
        return PivotTableProxy(self.worksheet, name)

    def get_item_or_null_object(self, name: str) -> PivotTableProxy:
        return PivotTableProxy(self.worksheet, name)

    def add(
        self,
        name: str,
        source: RangeProxy | TableProxy,
        destination: RangeProxy,
    ) -> PivotTableProxy:
        """Queue a pivot table over ``source`` rendered at ``destination``."""
        proxy = PivotTableProxy(self.worksheet, name)

        def _add() -> None:
            if "pivot_tables" not in self.context.capabilities:
                raise HostError(
                    "Pivot tables are not supported by this host.", code="ApiNotFound"
                )
            if not name.strip():
                raise HostError(
                    "Pivot table name must not be blank.", code="InvalidArgument"
                )
            if find_pivot(self.context, name) is not None:
                raise HostError(
                    f"A pivot table named '{name}' already exists.",
                    code="ItemAlreadyExists",
                )
            source_table: str | None = None
            if isinstance(source, TableProxy):
                table_sheet, table = source._resolve()
                source_sheet, source_address = table_sheet.title, table.ref
                source_table = table.displayName
            else:
                source_sheet = source._sheet().title
                source_address = format_bounds(source._bounds())
            min_row, _, max_row, _ = parse_address(source_address)
            if max_row <= min_row:
                raise HostError(
                    "The pivot source must contain a header row and data.",
                    code="InvalidArgument",
                )
            dest_sheet = destination._sheet()
            top, left, _, _ = destination._bounds()
            pivot = PivotTableState(
                name=name,
                source_sheet=source_sheet,
                source_address=source_address,
                source_table=source_table,
                destination=format_bounds((top, left, top, left)),
            )
            render_pivot(self.context, dest_sheet, pivot)
            self.context.state.for_sheet(dest_sheet).pivots[name] = pivot
            proxy.worksheet = destination.worksheet

        self._queue(_add)
        return proxy


class PivotTableProxy(ClientObject):
    """One pivot table, addressed by name on its owning sheet."""

    name = HostProperty()
    layout = HostProperty(writable=True)
    rows = HostProperty()
    columns = HostProperty()
    values = HostProperty()
    filters = HostProperty()
    field_names = HostProperty()
    source_address = HostProperty()
    destination = HostProperty()
    output_address = HostProperty()

    def __init__(self, worksheet: WorksheetProxy, name: str) -> None:
        super().__init__(worksheet.context)
        self.worksheet = worksheet
        self._name = name

    def _resolve(self) -> PivotTableState:
        side = self.context.state.for_sheet(self.worksheet._sheet())
        key = find_key(side.pivots, self._name)
        if key is None:
            raise HostError(
                f"The requested pivot table '{self._name}' doesn't exist.",
                code="ItemNotFound",
            )
        return side.pivots[key]

    def _exists(self) -> bool:
        if not self.worksheet._exists():
            return False
        side = self.context.state.for_sheet(self.worksheet._sheet())
        return find_key(side.pivots, self._name) is not None

    def _rerender(self) -> None:
        render_pivot(self.context, self.worksheet._sheet(), self._resolve())

    def _read_name(self) -> str:
        return self._resolve().name

    def _read_layout(self) -> str:
        return self._resolve().layout

    def _write_layout(self, value: str) -> None:
        if value not in PIVOT_LAYOUTS:
            raise HostError(f"Invalid pivot layout: {value}", code="InvalidArgument")
        self._resolve().layout = value  # type: ignore[assignment]
        self._rerender()

    def _read_rows(self) -> list[str]:
        return list(self._resolve().rows)

    def _read_columns(self) -> list[str]:
        return list(self._resolve().columns)

    def _read_values(self) -> list[PivotDataField]:
        return [data.model_copy() for data in self._resolve().values]

    def _read_filters(self) -> list[str]:
        return list(self._resolve().filters)

    def _read_field_names(self) -> list[str]:
        return source_headers(self.context, self._resolve())

    def _read_source_address(self) -> str:
        pivot = self._resolve()
        return f"{quote_sheet_name(pivot.source_sheet)}!{pivot.source_address}"

    def _read_destination(self) -> str:
        return f"{quote_sheet_name(self.worksheet._sheet().title)}!{self._resolve().destination}"

    def _read_output_address(self) -> str | None:
        return self._resolve().output_address

    def _add_hierarchy(self, area: str, field: str) -> None:
        pivot = self._resolve()
        headers = source_headers(self.context, pivot)
        key = find_key({header: None for header in headers}, field)
        if key is None:
            raise HostError(
                f"Field '{field}' is not in the pivot source.", code="InvalidArgument"
            )
        placed: list[str] = getattr(pivot, area)
        for other in ("rows", "columns", "filters"):
            if other != area and key in getattr(pivot, other):
                raise HostError(
                    f"Field '{key}' is already used as a {other[:-1]} field.",
                    code="InvalidOperation",
                )
        if key not in placed:
            placed.append(key)
        self._rerender()

    def add_row(self, field: str) -> None:
        self._queue(lambda: self._add_hierarchy("rows", field))

    def add_column(self, field: str) -> None:
        self._queue(lambda: self._add_hierarchy("columns", field))

    def add_filter(self, field: str) -> None:
        self._queue(lambda: self._add_hierarchy("filters", field))

    def add_data(
        self, field: str, function: str = "Sum", name: str | None = None
    ) -> None:
        def _add() -> None:
            if function not in PIVOT_FUNCTIONS:
                raise HostError(
                    f"Invalid pivot function: {function}", code="InvalidArgument"
                )
            pivot = self._resolve()
            headers = source_headers(self.context, pivot)
            key = find_key({header: None for header in headers}, field)
            if key is None:
                raise HostError(
                    f"Field '{field}' is not in the pivot source.",
                    code="InvalidArgument",
                )
            caption = name or f"{_caption_prefix(function)} of {key}"
            pivot.values.append(
                PivotDataField(field=key, name=caption, function=function)  # type: ignore[arg-type]
            )
            self._rerender()

        self._queue(_add)

    def set_layout_options(self, **flags: bool) -> None:
        """Update grand-total/header/label flags and re-render."""

        def _set() -> None:
            pivot = self._resolve()
            for key, value in flags.items():
                if key not in _LAYOUT_FLAGS:
                    raise HostError(
                        f"Unknown layout option: {key}", code="InvalidArgument"
                    )
                setattr(pivot, key, bool(value))
            self._rerender()

        self._queue(_set)

    def refresh(self) -> None:
        self._queue(self._rerender)

    def delete(self) -> None:
        def _delete() -> None:
            sheet = self.worksheet._sheet()
            pivot = self._resolve()
            clear_output(sheet, pivot)
            side = self.context.state.for_sheet(sheet)
            del side.pivots[pivot.name]
            for other in self.context.state.all_sheets():
                for slicer in list(other.slicers.values()):
                    if slicer.source_kind == "pivot" and slicer.source_name == pivot.name:
                        del other.slicers[slicer.name]

        self._queue(_delete)


def refresh_all(context: RequestContext) -> int:
    """Re-render every pivot table; returns the number refreshed."""
    pivots = iter_pivots(context)
    for sheet, pivot in pivots:
        render_pivot(context, sheet, pivot)
    return len(pivots)


def _key(row: list[Any], indexes: list[int]) -> tuple[Any, ...]:
    return tuple("" if row[i] is None else row[i] for i in indexes)


def _distinct_keys(body: list[list[Any]], indexes: list[int]) -> list[tuple[Any, ...]]:
    seen: dict[tuple[Any, ...], None] = {}
    for row in body:
        seen.setdefault(_key(row, indexes), None)
    return sorted(seen, key=_order)


def _order(key: tuple[Any, ...]) -> tuple[tuple[int, Any], ...]:
    ordered: list[tuple[int, Any]] = []
    for part in key:
        if isinstance(part, (int, float)) and not isinstance(part, bool):
            ordered.append((0, part))
        elif part == "":
            ordered.append((2, ""))
        else:
            ordered.append((1, str(part).casefold()))
    return tuple(ordered)


def _row_labels(
    key: tuple[Any, ...],
    previous: tuple[Any, ...] | None,
    pivot: PivotTableState,
    width: int,
) -> list[Any]:
    if not key:
        return ["Total"]
    if width == 1:
        return [" / ".join(str(part) if part != "" else "(blank)" for part in key)]
    labels: list[Any] = []
    for position, part in enumerate(key):
        same_prefix = previous is not None and previous[: position + 1] == key[: position + 1]
        if same_prefix and not pivot.repeat_item_labels:
            labels.append("")
        else:
            labels.append(part if part != "" else "(blank)")
    return labels


def _column_caption(key: tuple[Any, ...], data: PivotDataField, count: int) -> str:
    if not key:
        return data.name
    label = " / ".join(str(part) if part != "" else "(blank)" for part in key)
    return label if count == 1 else f"{label} - {data.name}"


def _caption_prefix(function: str) -> str:
    return {
        "CountNumbers": "Count",
        "StandardDeviation": "StdDev",
        "Variance": "Var",
    }.get(function, function)


def _tidy(value: float) -> float | int:
    return int(value) if value.is_integer() else value


__all__ = [
    "PIVOT_FUNCTIONS",
    "PIVOT_LAYOUTS",
    "PivotTableCollection",
    "PivotTableProxy",
    "aggregate",
    "find_pivot",
    "iter_pivots",
    "read_source",
    "refresh_all",
    "render_pivot",
    "source_headers",
]
