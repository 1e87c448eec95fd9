from __future__ import annotations

from collections.abc import Callable, Iterator
from copy import copy
import logging
import re
from typing import TYPE_CHECKING, Any

from openpyxl.cell.cell import MergedCell
from openpyxl.formatting.formatting import ConditionalFormatting
from openpyxl.formula.translate import Translator
from openpyxl.styles import Alignment, Border, Font, PatternFill, Protection, Side
from openpyxl.worksheet.hyperlink import Hyperlink
from pydantic import BaseModel

from sheetact.shared.a1 import (
    column_index_to_label,
    parse_column_band,
    parse_row_band,
    quote_sheet_name,
    range_bounds,
    ranges_overlap,
)
from sheetact.shared.colors import from_argb, to_argb

from .client import ClientObject, ClientResult, HostError, HostProperty
from .formats import (
    CompiledRule,
    ValidationSpec,
    build_openpyxl_rule,
    build_openpyxl_validation,
)
from .state import LinkedDataType

if TYPE_CHECKING:  # pragma: no cover - typing only
    from openpyxl.cell.cell import Cell
    from openpyxl.worksheet.worksheet import Worksheet

    from .worksheet import WorksheetProxy

logger = logging.getLogger(__name__)

Bounds = tuple[int, int, int, int]
"""1-based (min_row, min_col, max_row, max_col)."""

MAX_ROWS = 1_048_576
MAX_COLUMNS = 16_384
DEFAULT_COLUMN_CHARS = 8.43
DEFAULT_ROW_POINTS = 15.0

_HORIZONTAL = {
    "general": "general",
    "left": "left",
    "center": "center",
    "right": "right",
    "fill": "fill",
    "justify": "justify",
    "centeracrossselection": "centerContinuous",
    "distributed": "distributed",
}
_VERTICAL = {
    "top": "top",
    "center": "center",
    "bottom": "bottom",
    "justify": "justify",
    "distributed": "distributed",
}
_BORDER_STYLES: dict[tuple[str, str], str | None] = {
    ("continuous", "hairline"): "hair",
    ("continuous", "thin"): "thin",
    ("continuous", "medium"): "medium",
    ("continuous", "thick"): "thick",
    ("dash", "thin"): "dashed",
    ("dash", "medium"): "mediumDashed",
    ("dashdot", "thin"): "dashDot",
    ("dashdot", "medium"): "mediumDashDot",
    ("dashdotdot", "thin"): "dashDotDot",
    ("dashdotdot", "medium"): "mediumDashDotDot",
    ("dot", "thin"): "dotted",
    ("double", "thin"): "double",
    ("slantdashdot", "medium"): "slantDashDot",
}
BORDER_EDGES = (
    "EdgeTop",
    "EdgeBottom",
    "EdgeLeft",
    "EdgeRight",
    "InsideHorizontal",
    "InsideVertical",
)


class RangeHyperlink(BaseModel):
    """Hyperlink attached to the top-left cell of a range."""

    address: str | None = None
    document_reference: str | None = None
    screen_tip: str | None = None
    text_to_display: str | None = None


def parse_address(address: str) -> Bounds:
    """Parse ``A1``, ``A1:B2``, ``5:7`` or ``C:E`` into 1-based bounds."""
    text = address.strip().replace("$", "")
    rows = parse_row_band(text)
    if rows is not None:
        return rows[0], 1, rows[1], MAX_COLUMNS
    columns = parse_column_band(text)
    if columns is not None and ":" in text:
        return 1, columns[0], MAX_ROWS, columns[1]
    try:
        min_row, min_col, max_row, max_col = range_bounds(text)
    except ValueError as exc:
        raise HostError(str(exc), code="InvalidArgument") from exc
    return min_row, min_col, max_row, max_col


def format_bounds(bounds: Bounds) -> str:
    """Format 1-based bounds as a local A1 address."""
    min_row, min_col, max_row, max_col = bounds
    start = f"{column_index_to_label(min_col)}{min_row}"
    if (min_row, min_col) == (max_row, max_col):
        return start
    return f"{start}:{column_index_to_label(max_col)}{max_row}"


class RangeProxy(ClientObject):
    """Rectangular range on a worksheet.

    Bounds may be computed lazily (used range, offsets of a used range), so
    every operation re-evaluates them when the batch is flushed.
    """

    address = HostProperty()
    address_local = HostProperty()
    row_index = HostProperty()
    column_index = HostProperty()
    row_count = HostProperty()
    column_count = HostProperty()
    values = HostProperty(writable=True)
    formulas = HostProperty(writable=True)
    number_format = HostProperty(writable=True)
    hyperlink = HostProperty(writable=True)
    data_type = HostProperty(writable=True)
    merged_areas = HostProperty()
    left = HostProperty()
    top = HostProperty()

    def __init__(self, worksheet: WorksheetProxy, bounds: Callable[[], Bounds]) -> None:
        super().__init__(worksheet.context)
        self.worksheet = worksheet
        self._bounds = bounds
        self._format: RangeFormat | None = None

    # ----------------------------------------------------------------- helpers

    def _sheet(self) -> Worksheet:
        return self.worksheet._sheet()

    def _cells(self) -> Iterator[Cell]:
        min_row, min_col, max_row, max_col = self._bounds()
        sheet = self._sheet()
        for row in sheet.iter_rows(
            min_row=min_row, max_row=max_row, min_col=min_col, max_col=max_col
        ):
            yield from row

    def _grid(self) -> list[list[Cell]]:
        min_row, min_col, max_row, max_col = self._bounds()
        sheet = self._sheet()
        return [
            list(row)
            for row in sheet.iter_rows(
                min_row=min_row, max_row=max_row, min_col=min_col, max_col=max_col
            )
        ]

    def _coerce_grid(self, value: object) -> list[list[object]]:
        min_row, min_col, max_row, max_col = self._bounds()
        rows = max_row - min_row + 1
        cols = max_col - min_col + 1
        if not isinstance(value, list):
            return [[value] * cols for _ in range(rows)]
        grid = value
        if len(grid) != rows or any(
            not isinstance(row, list) or len(row) != cols for row in grid
        ):
            raise HostError(
                "The number of rows or columns in the input array doesn't match "
                f"the size or dimensions of the range ({rows}x{cols}).",
                code="InvalidArgument",
            )
        return grid

    def _write_grid(self, value: object) -> None:
        grid = self._coerce_grid(value)
        for cells, row_values in zip(self._grid(), grid, strict=True):
            for cell, item in zip(cells, row_values, strict=True):
                if isinstance(cell, MergedCell):
                    continue
                cell.value = None if item == "" else item

    # -------------------------------------------------------------- properties

    def _read_address(self) -> str:
        return f"{quote_sheet_name(self._sheet().title)}!{self._read_address_local()}"

    def _read_address_local(self) -> str:
        return format_bounds(self._bounds())

    def _read_row_index(self) -> int:
        return self._bounds()[0] - 1

    def _read_column_index(self) -> int:
        return self._bounds()[1] - 1

    def _read_row_count(self) -> int:
        min_row, _, max_row, _ = self._bounds()
        return max_row - min_row + 1

    def _read_column_count(self) -> int:
        _, min_col, _, max_col = self._bounds()
        return max_col - min_col + 1

    def _read_values(self) -> list[list[object]]:
        return [
            ["" if cell.value is None else cell.value for cell in row]
            for row in self._grid()
        ]

    def _write_values(self, value: object) -> None:
        self._write_grid(value)

    def _read_formulas(self) -> list[list[object]]:
        return self._read_values()

    def _write_formulas(self, value: object) -> None:
        self._write_grid(value)

    def _read_number_format(self) -> list[list[str]]:
        return [[cell.number_format for cell in row] for row in self._grid()]

    def _write_number_format(self, value: object) -> None:
        grid = self._coerce_grid(value)
        for cells, row_values in zip(self._grid(), grid, strict=True):
            for cell, item in zip(cells, row_values, strict=True):
                cell.number_format = str(item)

    def _read_hyperlink(self) -> RangeHyperlink | None:
        min_row, min_col, _, _ = self._bounds()
        cell = self._sheet().cell(row=min_row, column=min_col)
        link = cell.hyperlink
        if link is None:
            return None
        return RangeHyperlink(
            address=link.target,
            document_reference=link.location,
            screen_tip=link.tooltip,
            text_to_display=link.display,
        )

    def _write_hyperlink(self, value: RangeHyperlink | None) -> None:
        for cell in self._cells():
            if isinstance(cell, MergedCell):
                continue
            if value is None:
                cell.hyperlink = None
                continue
            cell.hyperlink = Hyperlink(
                ref=cell.coordinate,
                target=value.address,
                location=value.document_reference,
                tooltip=value.screen_tip,
                display=value.text_to_display,
            )
            if value.text_to_display is not None:
                cell.value = value.text_to_display

    def _read_data_type(self) -> LinkedDataType | None:
        self._require_data_types()
        min_row, min_col, _, _ = self._bounds()
        key = f"{column_index_to_label(min_col)}{min_row}"
        side = self.context.state.for_sheet(self._sheet())
        return side.data_types.get(key)

    def _write_data_type(self, value: LinkedDataType | None) -> None:
        self._require_data_types()
        side = self.context.state.for_sheet(self._sheet())
        for cell in self._cells():
            if isinstance(cell, MergedCell):
                continue
            if value is None:
                side.data_types.pop(cell.coordinate, None)
                continue
            side.data_types[cell.coordinate] = value.model_copy(deep=True)
            cell.value = value.display_text

    def _require_data_types(self) -> None:
        if "linked_data_types" not in self.context.capabilities:
            raise HostError(
                "Linked data types are not supported by this host.",
                code="ApiNotFound",
            )

    def _read_merged_areas(self) -> list[str]:
        target = format_bounds(self._bounds())
        return [
            str(merged)
            for merged in self._sheet().merged_cells.ranges
            if ranges_overlap(str(merged), target)
        ]

    def _read_left(self) -> float:
        """Distance in points from the sheet edge to the left of the range."""
        sheet = self._sheet()
        total = 0.0
        for col in range(1, self._bounds()[1]):
            dimension = sheet.column_dimensions.get(column_index_to_label(col))
            custom = dimension is not None and dimension.customWidth
            total += _column_points(dimension.width if custom else None)
        return total

    def _read_top(self) -> float:
        sheet = self._sheet()
        total = 0.0
        for row in range(1, self._bounds()[0]):
            dimension = sheet.row_dimensions.get(row)
            height = dimension.ht if dimension is not None else None
            total += height or DEFAULT_ROW_POINTS
        return total

    # -------------------------------------------------------------- navigation

    @property
    def format(self) -> RangeFormat:
        if self._format is None:
            self._format = RangeFormat(self)
        return self._format

    @property
    def conditional_formats(self) -> ConditionalFormatCollection:
        return ConditionalFormatCollection(self)

    @property
    def data_validation(self) -> DataValidationProxy:
        return DataValidationProxy(self)

    def get_cell(self, row: int, column: int) -> RangeProxy:
        """Return the cell at 0-based offsets from the top-left cell."""

        def _bounds() -> Bounds:
            min_row, min_col, _, _ = self._bounds()
            return min_row + row, min_col + column, min_row + row, min_col + column

        return RangeProxy(self.worksheet, _bounds)

    def get_offset_range(self, row_offset: int, column_offset: int) -> RangeProxy:
        def _bounds() -> Bounds:
            min_row, min_col, max_row, max_col = self._bounds()
            shifted = (
                min_row + row_offset,
                min_col + column_offset,
                max_row + row_offset,
                max_col + column_offset,
            )
            _check_bounds(shifted)
            return shifted

        return RangeProxy(self.worksheet, _bounds)

    def get_resized_range(self, delta_rows: int, delta_columns: int) -> RangeProxy:
        def _bounds() -> Bounds:
            min_row, min_col, max_row, max_col = self._bounds()
            resized = (min_row, min_col, max_row + delta_rows, max_col + delta_columns)
            _check_bounds(resized)
            return resized

        return RangeProxy(self.worksheet, _bounds)

    def get_absolute_resized_range(self, rows: int, columns: int) -> RangeProxy:
        def _bounds() -> Bounds:
            min_row, min_col, _, _ = self._bounds()
            resized = (min_row, min_col, min_row + rows - 1, min_col + columns - 1)
            _check_bounds(resized)
            return resized

        return RangeProxy(self.worksheet, _bounds)

    # ---------------------------------------------------------------- methods

    def autofill(
        self, destination: RangeProxy | str, fill_type: str = "FillDefault"
    ) -> None:
        """Fill ``destination`` (which must contain this range) by example."""
        target = (
            self.worksheet.get_range(destination)
            if isinstance(destination, str)
            else destination
        )

        def _fill() -> None:
            if "autofill" not in self.context.capabilities:
                raise HostError(
                    "Range.autoFill is not supported by this host.", code="ApiNotFound"
                )
            if fill_type not in {"FillDefault", "FillCopy", "FillFormats", "FillValues"}:
                raise HostError(
                    f"Unsupported fill type: {fill_type}", code="InvalidArgument"
                )
            _fill_by_example(self._sheet(), self._bounds(), target._bounds(), fill_type)

        self._queue(_fill)

    def copy_from(
        self,
        source: RangeProxy | str,
        copy_type: str = "All",
        *,
        skip_blanks: bool = False,
    ) -> None:
        """Copy ``source`` into this range anchored at its top-left cell."""
        origin = self.worksheet.get_range(source) if isinstance(source, str) else source

        def _copy() -> None:
            src_sheet = origin._sheet()
            dst_sheet = self._sheet()
            s_min_row, s_min_col, s_max_row, s_max_col = origin._bounds()
            d_min_row, d_min_col, _, _ = self._bounds()
            snapshot = [
                [
                    (cell.value, cell.coordinate, copy(cell._style), cell.number_format)
                    for cell in row
                ]
                for row in src_sheet.iter_rows(
                    min_row=s_min_row, max_row=s_max_row, min_col=s_min_col, max_col=s_max_col
                )
            ]
            for r, row in enumerate(snapshot):
                for c, (value, coordinate, style, number_format) in enumerate(row):
                    cell = dst_sheet.cell(row=d_min_row + r, column=d_min_col + c)
                    if isinstance(cell, MergedCell):
                        continue
                    if skip_blanks and value in (None, ""):
                        continue
                    if copy_type in {"All", "Formulas"}:
                        if isinstance(value, str) and value.startswith("="):
                            value = Translator(value, origin=coordinate).translate_formula(
                                cell.coordinate
                            )
                        cell.value = value
                    elif copy_type == "Values":
                        cell.value = value
                        cell.number_format = number_format
                    if copy_type in {"All", "Formats"}:
                        cell._style = copy(style)

        self._queue(_copy)

    def clear(self, apply_to: str = "All") -> None:
        def _clear() -> None:
            for cell in self._cells():
                if isinstance(cell, MergedCell):
                    continue
                if apply_to in {"All", "Contents"}:
                    cell.value = None
                    cell.hyperlink = None
                if apply_to in {"All", "Formats"}:
                    cell.font = Font()
                    cell.fill = PatternFill()
                    cell.border = Border()
                    cell.alignment = Alignment()
                    cell.protection = Protection()
                    cell.number_format = "General"

        self._queue(_clear)

    def merge(self, across: bool = False) -> None:
        def _merge() -> None:
            min_row, min_col, max_row, max_col = self._bounds()
            sheet = self._sheet()
            if across:
                if min_col == max_col:
                    return
                for row in range(min_row, max_row + 1):
                    sheet.merge_cells(
                        start_row=row, start_column=min_col, end_row=row, end_column=max_col
                    )
                return
            sheet.merge_cells(
                start_row=min_row, start_column=min_col, end_row=max_row, end_column=max_col
            )

        self._queue(_merge)

    def unmerge(self) -> None:
        def _unmerge() -> None:
            sheet = self._sheet()
            target = format_bounds(self._bounds())
            for merged in list(sheet.merged_cells.ranges):
                if ranges_overlap(str(merged), target):
                    sheet.unmerge_cells(str(merged))

        self._queue(_unmerge)

    def sort_apply(
        self, key: int, *, ascending: bool = True, has_headers: bool = False
    ) -> None:
        """Sort rows of the range by the 0-based column ``key``."""

        def _sort() -> None:
            grid = self._grid()
            if key < 0 or (grid and key >= len(grid[0])):
                raise HostError(
                    f"Sort key {key} is outside the range.", code="InvalidArgument"
                )
            body = grid[1:] if has_headers else grid
            rows = [[cell.value for cell in row] for row in body]
            filled = [row for row in rows if row[key] not in (None, "")]
            blanks = [row for row in rows if row[key] in (None, "")]
            filled.sort(key=lambda row: _sort_key(row[key]), reverse=not ascending)
            for cells, values in zip(body, filled + blanks, strict=True):
                for cell, value in zip(cells, values, strict=True):
                    if not isinstance(cell, MergedCell):
                        cell.value = value

        self._queue(_sort)

    def replace_all(
        self,
        find: str,
        replace: str,
        *,
        match_case: bool = False,
        match_entire_cell: bool = False,
    ) -> ClientResult[int]:
        """Replace text in non-formula cells; result is the replaced cell count."""
        flags = 0 if match_case else re.IGNORECASE
        body = re.escape(find)
        pattern = re.compile(f"^{body}$" if match_entire_cell else body, flags)

        def _replace() -> int:
            count = 0
            for cell in self._cells():
                value = cell.value
                if isinstance(cell, MergedCell) or value is None:
                    continue
                if isinstance(value, str) and value.startswith("="):
                    continue
                text = str(value)
                if not pattern.search(text):
                    continue
                cell.value = pattern.sub(lambda _: replace, text)
                count += 1
            return count

        return self._queue_result(_replace)


class RangeFormat(ClientObject):
    """Cell formatting of a range."""

    horizontal_alignment = HostProperty(writable=True)
    vertical_alignment = HostProperty(writable=True)
    wrap_text = HostProperty(writable=True)
    text_orientation = HostProperty(writable=True)
    indent_level = HostProperty(writable=True)
    column_width = HostProperty(writable=True)
    row_height = HostProperty(writable=True)

    def __init__(self, owner: RangeProxy) -> None:
        super().__init__(owner.context)
        self.range = owner
        self.font = RangeFont(owner)
        self.fill = RangeFill(owner)
        self.borders = RangeBorders(owner)
        self.protection = RangeProtection(owner)

    def _set_alignment(self, **changes: Any) -> None:
        _restyle(self.range, "alignment", **changes)

    def _read_horizontal_alignment(self) -> str | None:
        return self.range._grid()[0][0].alignment.horizontal

    def _write_horizontal_alignment(self, value: str) -> None:
        mapped = _HORIZONTAL.get(str(value).replace(" ", "").lower())
        if mapped is None:
            raise HostError(
                f"Invalid horizontal alignment: {value}", code="InvalidArgument"
            )
        self._set_alignment(horizontal=mapped)

    def _read_vertical_alignment(self) -> str | None:
        return self.range._grid()[0][0].alignment.vertical

    def _write_vertical_alignment(self, value: str) -> None:
        mapped = _VERTICAL.get(str(value).lower())
        if mapped is None:
            raise HostError(
                f"Invalid vertical alignment: {value}", code="InvalidArgument"
            )
        self._set_alignment(vertical=mapped)

    def _read_wrap_text(self) -> bool:
        return bool(self.range._grid()[0][0].alignment.wrap_text)

    def _write_wrap_text(self, value: bool) -> None:
        self._set_alignment(wrap_text=bool(value))

    def _read_text_orientation(self) -> int:
        return int(self.range._grid()[0][0].alignment.textRotation or 0)

    def _write_text_orientation(self, value: int) -> None:
        # openpyxl stores upward angles as 0..90 and downward as 91..180
        if value == 255:
            rotation = 255
        elif -90 <= value < 0:
            rotation = 90 - value
        elif 0 <= value <= 90:
            rotation = value
        else:
            raise HostError(
                f"Invalid text orientation: {value}", code="InvalidArgument"
            )
        self._set_alignment(textRotation=rotation)

    def _read_indent_level(self) -> int:
        return int(self.range._grid()[0][0].alignment.indent or 0)

    def _write_indent_level(self, value: int) -> None:
        if not 0 <= value <= 250:
            raise HostError(f"Invalid indent level: {value}", code="InvalidArgument")
        self._set_alignment(indent=value)

    def _read_column_width(self) -> float | None:
        _, min_col, _, _ = self.range._bounds()
        sheet = self.range._sheet()
        return sheet.column_dimensions[column_index_to_label(min_col)].width

    def _write_column_width(self, value: float) -> None:
        _, min_col, _, max_col = self.range._bounds()
        sheet = self.range._sheet()
        for col in range(min_col, max_col + 1):
            sheet.column_dimensions[column_index_to_label(col)].width = value

    def _read_row_height(self) -> float | None:
        min_row, _, _, _ = self.range._bounds()
        return self.range._sheet().row_dimensions[min_row].height

    def _write_row_height(self, value: float) -> None:
        min_row, _, max_row, _ = self.range._bounds()
        sheet = self.range._sheet()
        for row in range(min_row, max_row + 1):
            sheet.row_dimensions[row].height = value

    def autofit_columns(self) -> None:
        def _autofit() -> None:
            widths: dict[int, int] = {}
            for cell in self.range._cells():
                if cell.value is None:
                    continue
                text = str(cell.value)
                length = max(len(line) for line in text.splitlines() or [text])
                widths[cell.column] = max(widths.get(cell.column, 0), length)
            sheet = self.range._sheet()
            for col, length in widths.items():
                sheet.column_dimensions[column_index_to_label(col)].width = min(
                    max(length + 2, 8), 255
                )

        self._queue(_autofit)


class RangeFont(ClientObject):
    bold = HostProperty(writable=True)
    italic = HostProperty(writable=True)
    underline = HostProperty(writable=True)
    strikethrough = HostProperty(writable=True)
    name = HostProperty(writable=True)
    size = HostProperty(writable=True)
    color = HostProperty(writable=True)

    def __init__(self, owner: RangeProxy) -> None:
        super().__init__(owner.context)
        self.range = owner

    def _first(self) -> Font:
        return self.range._grid()[0][0].font

    def _read_bold(self) -> bool:
        return bool(self._first().bold)

    def _write_bold(self, value: bool) -> None:
        _restyle(self.range, "font", bold=bool(value))

    def _read_italic(self) -> bool:
        return bool(self._first().italic)

    def _write_italic(self, value: bool) -> None:
        _restyle(self.range, "font", italic=bool(value))

    def _read_underline(self) -> str:
        return {"single": "Single", "double": "Double"}.get(
            self._first().underline or "", "None"
        )

    def _write_underline(self, value: bool | str) -> None:
        if isinstance(value, bool):
            style = "single" if value else None
        else:
            style = {"single": "single", "double": "double", "none": None}.get(
                value.lower(), "single"
            )
        _restyle(self.range, "font", underline=style)

    def _read_strikethrough(self) -> bool:
        return bool(self._first().strike)

    def _write_strikethrough(self, value: bool) -> None:
        _restyle(self.range, "font", strike=bool(value))

    def _read_name(self) -> str | None:
        return self._first().name

    def _write_name(self, value: str) -> None:
        _restyle(self.range, "font", name=value)

    def _read_size(self) -> float | None:
        return self._first().size

    def _write_size(self, value: float) -> None:
        if not 1 <= float(value) <= 409:
            raise HostError(f"Invalid font size: {value}", code="InvalidArgument")
        _restyle(self.range, "font", size=float(value))

    def _read_color(self) -> str | None:
        color = self._first().color
        return from_argb(getattr(color, "rgb", None))

    def _write_color(self, value: str) -> None:
        _restyle(self.range, "font", color=_argb_or_error(value))


class RangeFill(ClientObject):
    color = HostProperty(writable=True)

    def __init__(self, owner: RangeProxy) -> None:
        super().__init__(owner.context)
        self.range = owner

    def _read_color(self) -> str | None:
        fill = self.range._grid()[0][0].fill
        if fill.fill_type is None:
            return None
        return from_argb(getattr(fill.start_color, "rgb", None))

    def _write_color(self, value: str) -> None:
        argb = _argb_or_error(value)
        for cell in self.range._cells():
            cell.fill = PatternFill(fill_type="solid", start_color=argb, end_color=argb)

    def clear(self) -> None:
        def _clear() -> None:
            for cell in self.range._cells():
                cell.fill = PatternFill()

        self._queue(_clear)


class RangeBorders(ClientObject):
    def __init__(self, owner: RangeProxy) -> None:
        super().__init__(owner.context)
        self.range = owner

    def get_item(self, edge: str) -> RangeBorder:
        return RangeBorder(self.range, edge)


class RangeBorder(ClientObject):
    style = HostProperty()
    color = HostProperty()

    def __init__(self, owner: RangeProxy, edge: str) -> None:
        super().__init__(owner.context)
        self.range = owner
        self.edge = edge

    def _read_style(self) -> str | None:
        side = self._sides()[0][1]
        return side.style if side is not None else None

    def _read_color(self) -> str | None:
        side = self._sides()[0][1]
        if side is None or side.color is None:
            return None
        return from_argb(getattr(side.color, "rgb", None))

    def _sides(self) -> list[tuple[Cell, Side | None]]:
        return [(cell, getattr(cell.border, attr)) for cell, attr in self._targets()]

    def _targets(self) -> list[tuple[Cell, str]]:
        grid = self.range._grid()
        last_row = len(grid) - 1
        last_col = len(grid[0]) - 1
        edge = self.edge
        pairs: list[tuple[Cell, str]] = []
        for r, row in enumerate(grid):
            for c, cell in enumerate(row):
                if edge == "EdgeTop" and r == 0:
                    pairs.append((cell, "top"))
                elif edge == "EdgeBottom" and r == last_row:
                    pairs.append((cell, "bottom"))
                elif edge == "EdgeLeft" and c == 0:
                    pairs.append((cell, "left"))
                elif edge == "EdgeRight" and c == last_col:
                    pairs.append((cell, "right"))
                elif edge == "InsideHorizontal" and r < last_row:
                    pairs.append((cell, "bottom"))
                    pairs.append((grid[r + 1][c], "top"))
                elif edge == "InsideVertical" and c < last_col:
                    pairs.append((cell, "right"))
                    pairs.append((row[c + 1], "left"))
        return pairs

    def apply(
        self,
        *,
        style: str = "Continuous",
        weight: str = "Thin",
        color: str | None = None,
    ) -> None:
        """Queue a border line on this edge (``style="None"`` removes it)."""
        if self.edge not in BORDER_EDGES:
            raise HostError(f"Invalid border edge: {self.edge}", code="InvalidArgument")

        def _apply() -> None:
            if style.lower() == "none":
                side = Side()
            else:
                key = (style.lower(), weight.lower())
                resolved = _BORDER_STYLES.get(key) or _BORDER_STYLES.get((key[0], "thin"))
                if resolved is None:
                    raise HostError(
                        f"Invalid border style: {style}", code="InvalidArgument"
                    )
                side = Side(style=resolved, color=to_argb(color) if color else "FF000000")
            for cell, attr in self._targets():
                border = copy(cell.border)
                setattr(border, attr, side)
                cell.border = border

        self._queue(_apply)


class RangeProtection(ClientObject):
    locked = HostProperty(writable=True)
    formula_hidden = HostProperty(writable=True)

    def __init__(self, owner: RangeProxy) -> None:
        super().__init__(owner.context)
        self.range = owner

    def _read_locked(self) -> bool:
        return bool(self.range._grid()[0][0].protection.locked)

    def _write_locked(self, value: bool) -> None:
        _restyle(self.range, "protection", locked=bool(value))

    def _read_formula_hidden(self) -> bool:
        return bool(self.range._grid()[0][0].protection.hidden)

    def _write_formula_hidden(self, value: bool) -> None:
        _restyle(self.range, "protection", hidden=bool(value))


class ConditionalFormatCollection(ClientObject):
    """Conditional formats intersecting a range."""

    count = HostProperty()

    def __init__(self, owner: RangeProxy) -> None:
        super().__init__(owner.context)
        self.range = owner

    def _overlapping(self) -> list[tuple[ConditionalFormatting, list[Any]]]:
        target = format_bounds(self.range._bounds())
        formatting = self.range._sheet().conditional_formatting
        return [
            (cf, rules)
            for cf, rules in formatting._cf_rules.items()
            if any(ranges_overlap(cell_range.coord, target) for cell_range in cf.sqref.ranges)
        ]

    def _read_count(self) -> int:
        return sum(len(rules) for _, rules in self._overlapping())

    def clear_all(self) -> None:
        """Remove every conditional format whose range intersects this range."""

        def _clear() -> None:
            target = format_bounds(self.range._bounds())
            formatting = self.range._sheet().conditional_formatting
            for cf, rules in self._overlapping():
                del formatting._cf_rules[cf]
                kept = [
                    cell_range.coord
                    for cell_range in cf.sqref.ranges
                    if not ranges_overlap(cell_range.coord, target)
                ]
                if kept:
                    formatting._cf_rules[ConditionalFormatting(sqref=" ".join(kept))] = rules

        self._queue(_clear)

    def add(self, rule: CompiledRule) -> None:
        def _add() -> None:
            bounds = self.range._bounds()
            first_cell = f"{column_index_to_label(bounds[1])}{bounds[0]}"
            self.range._sheet().conditional_formatting.add(
                format_bounds(bounds), build_openpyxl_rule(rule, first_cell)
            )

        self._queue(_add)


class DataValidationProxy(ClientObject):
    """Data validation of a range."""

    rule_type = HostProperty()

    def __init__(self, owner: RangeProxy) -> None:
        super().__init__(owner.context)
        self.range = owner

    def _read_rule_type(self) -> str | None:
        target = format_bounds(self.range._bounds())
        for validation in self.range._sheet().data_validations.dataValidation:
            if any(ranges_overlap(r.coord, target) for r in validation.sqref.ranges):
                return validation.type
        return None

    def clear(self) -> None:
        def _clear() -> None:
            target = format_bounds(self.range._bounds())
            container = self.range._sheet().data_validations
            container.dataValidation = [
                validation
                for validation in container.dataValidation
                if not any(ranges_overlap(r.coord, target) for r in validation.sqref.ranges)
            ]

        self._queue(_clear)

    def apply(self, spec: ValidationSpec) -> None:
        def _apply() -> None:
            validation = build_openpyxl_validation(spec)
            validation.add(format_bounds(self.range._bounds()))
            self.range._sheet().add_data_validation(validation)

        self._queue(_apply)


def _restyle(owner: RangeProxy, attr: str, **changes: Any) -> None:
    for cell in owner._cells():
        style = copy(getattr(cell, attr))
        for key, value in changes.items():
            setattr(style, key, value)
        setattr(cell, attr, style)


def _argb_or_error(value: str) -> str:
    try:
        return to_argb(value)
    except ValueError as exc:
        raise HostError(str(exc), code="InvalidArgument") from exc


def _column_points(width: float | None) -> float:
    """Column width in characters to points (7px per character plus padding)."""
    chars = DEFAULT_COLUMN_CHARS if width is None else width
    return round((chars * 7 + 5) * 0.75, 2)


def _check_bounds(bounds: Bounds) -> None:
    min_row, min_col, max_row, max_col = bounds
    if min_row < 1 or min_col < 1 or max_row > MAX_ROWS or max_col > MAX_COLUMNS:
        raise HostError(
            "The range is outside the worksheet grid.", code="InvalidArgument"
        )
    if max_row < min_row or max_col < min_col:
        raise HostError("The range size must be positive.", code="InvalidArgument")


def _sort_key(value: object) -> tuple[int, Any]:
    if isinstance(value, bool):
        return 2, value
    if isinstance(value, (int, float)):
        return 0, value
    return 1, str(value).casefold()


def _fill_by_example(
    sheet: Worksheet, source: Bounds, target: Bounds, fill_type: str
) -> None:
    s_min_row, s_min_col, s_max_row, s_max_col = source
    t_min_row, t_min_col, t_max_row, t_max_col = target
    contains = (
        t_min_row <= s_min_row
        and t_min_col <= s_min_col
        and t_max_row >= s_max_row
        and t_max_col >= s_max_col
    )
    same_columns = (t_min_col, t_max_col) == (s_min_col, s_max_col)
    same_rows = (t_min_row, t_max_row) == (s_min_row, s_max_row)
    if not contains or not (same_columns or same_rows):
        raise HostError(
            "The destination range must extend the source range in one direction.",
            code="InvalidArgument",
        )
    src_rows = s_max_row - s_min_row + 1
    src_cols = s_max_col - s_min_col + 1
    for row in range(t_min_row, t_max_row + 1):
        for col in range(t_min_col, t_max_col + 1):
            if s_min_row <= row <= s_max_row and s_min_col <= col <= s_max_col:
                continue
            origin = sheet.cell(
                row=s_min_row + (row - s_min_row) % src_rows,
                column=s_min_col + (col - s_min_col) % src_cols,
            )
            cell = sheet.cell(row=row, column=col)
            if isinstance(cell, MergedCell):
                continue
            if fill_type != "FillFormats":
                value = origin.value
                is_formula = isinstance(value, str) and value.startswith("=")
                if is_formula and fill_type != "FillValues":
                    value = Translator(value, origin=origin.coordinate).translate_formula(
                        cell.coordinate
                    )
                cell.value = value
            if fill_type in {"FillDefault", "FillCopy", "FillFormats"}:
                cell._style = copy(origin._style)


__all__ = [
    "BORDER_EDGES",
    "Bounds",
    "ConditionalFormatCollection",
    "DataValidationProxy",
    "RangeBorder",
    "RangeBorders",
    "RangeFill",
    "RangeFont",
    "RangeFormat",
    "RangeHyperlink",
    "RangeProtection",
    "RangeProxy",
    "format_bounds",
    "parse_address",
]
