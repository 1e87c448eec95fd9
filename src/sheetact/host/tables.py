from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from openpyxl.worksheet.filters import AutoFilter
from openpyxl.worksheet.table import Table, TableColumn, TableStyleInfo

from sheetact.shared.a1 import (
    column_index_to_label,
    looks_like_cell_reference,
    range_bounds,
    ranges_overlap,
    split_sheet_qualifier,
)

from .client import ClientObject, HostError, HostProperty
from .range import Bounds, RangeProxy, format_bounds, parse_address

if TYPE_CHECKING:  # pragma: no cover - typing only
    from openpyxl.worksheet.worksheet import Worksheet

    from .client import RequestContext
    from .worksheet import WorksheetProxy

logger = logging.getLogger(__name__)

DEFAULT_TABLE_STYLE = "TableStyleMedium2"
_TABLE_STYLE_PATTERN = re.compile(r"^TableStyle(Light|Medium|Dark)(\d+)$")
_TABLE_STYLE_LIMITS = {"Light": 21, "Medium": 28, "Dark": 11}
_TABLE_NAME_PATTERN = re.compile(r"^[A-Za-z_\\][A-Za-z0-9_.]*$")

TOTALS_SUBTOTAL_CODES: dict[str, int] = {
    "average": 101,
    "countNums": 102,
    "count": 103,
    "max": 104,
    "min": 105,
    "stdDev": 107,
    "sum": 109,
    "var": 110,
}


def is_valid_table_style(name: str) -> bool:
    """Return True for a built-in table style name (``TableStyleMedium2``)."""
    match = _TABLE_STYLE_PATTERN.match(name)
    if match is None:
        return False
    number = int(match.group(2))
    return 1 <= number <= _TABLE_STYLE_LIMITS[match.group(1)]


def iter_tables(context: RequestContext) -> list[tuple[Worksheet, Table]]:
    """Return every (worksheet, table) pair in document order."""
    return [
        (sheet, table)
        for sheet in context.book.worksheets
        for table in sheet.tables.values()
    ]


def find_table(context: RequestContext, name: str) -> tuple[Worksheet, Table] | None:
    folded = name.casefold()
    for sheet, table in iter_tables(context):
        if table.displayName.casefold() == folded:
            return sheet, table
    return None


class TableCollection(ClientObject):
    """Tables of one worksheet."""

    names = HostProperty()
    count = HostProperty()

    def __init__(self, worksheet: WorksheetProxy) -> None:
        super().__init__(worksheet.context)
        self.worksheet = worksheet

    def _read_names(self) -> list[str]:
        return [table.displayName for table in self.worksheet._sheet().tables.values()]

    def _read_count(self) -> int:
        return len(self.worksheet._sheet().tables)

    def get_item(self, name: str) -> TableProxy:
        return TableProxy(self.worksheet, name)

    def get_item_or_null_object(self, name: str) -> TableProxy:
        return TableProxy(self.worksheet, name)

    def add(self, source: RangeProxy | str, *, has_headers: bool = True) -> TableProxy:
        """Queue creation of a table over ``source`` with a generated name.

        ``source`` is a range proxy or an address on this worksheet; a sheet
        qualifier on the address is ignored.
        """
        proxy = TableProxy(self.worksheet, None)

        def _add() -> None:
            sheet = self.worksheet._sheet()
            if isinstance(source, RangeProxy):
                min_row, min_col, max_row, max_col = source._bounds()
            else:
                _, reference = split_sheet_qualifier(source)
                min_row, min_col, max_row, max_col = parse_address(reference)
            ref = format_bounds((min_row, min_col, max_row, max_col))
            if ":" not in ref:
                ref = f"{ref}:{ref}"
            for other in sheet.tables.values():
                if ranges_overlap(other.ref, ref):
                    raise HostError(
                        f"The range {ref} overlaps an existing table "
                        f"'{other.displayName}'.",
                        code="InvalidOperation",
                    )
            if not has_headers:
                _shift_down(sheet, min_row, min_col, max_col, 1)
                max_row += 1
                for index, col in enumerate(range(min_col, max_col + 1), start=1):
                    sheet.cell(row=min_row, column=col).value = f"Column{index}"
                ref = format_bounds((min_row, min_col, max_row, max_col))
            _normalize_headers(sheet, min_row, min_col, max_col)
            name = _next_table_name(self.context)
            table = Table(displayName=name, ref=ref)
            table.tableStyleInfo = TableStyleInfo(
                name=DEFAULT_TABLE_STYLE,
                showFirstColumn=False,
                showLastColumn=False,
                showRowStripes=True,
                showColumnStripes=False,
            )
            sheet.add_table(table)
            _sync_columns(sheet, table)
            proxy._table = table

        self._queue(_add)
        return proxy


class TableProxy(ClientObject):
    """One table; resolved by object identity once created, else by name."""

    name = HostProperty(writable=True)
    style = HostProperty(writable=True)
    show_totals = HostProperty(writable=True)
    show_headers = HostProperty()
    show_banded_rows = HostProperty(writable=True)
    show_banded_columns = HostProperty(writable=True)
    highlight_first_column = HostProperty(writable=True)
    highlight_last_column = HostProperty(writable=True)
    address = HostProperty()
    header_names = HostProperty()
    totals_functions = HostProperty()
    sheet_name = HostProperty()

    def __init__(self, worksheet: WorksheetProxy, name: str | None) -> None:
        super().__init__(worksheet.context)
        self.worksheet = worksheet
        self._name = name
        self._table: Table | None = None

    def _resolve(self) -> tuple[Worksheet, Table]:
        if self._table is not None:
            for sheet, table in iter_tables(self.context):
                if table is self._table:
                    return sheet, table
        if self._name is not None:
            sheet = self.worksheet._sheet()
            for table in sheet.tables.values():
                if table.displayName.casefold() == self._name.casefold():
                    self._table = table
                    return sheet, table
        raise HostError(
            f"The requested table '{self._name}' doesn't exist.", code="ItemNotFound"
        )

    def _exists(self) -> bool:
        try:
            self._resolve()
        except HostError:
            return False
        return True

    def _bounds(self) -> Bounds:
        _, table = self._resolve()
        min_row, min_col, max_row, max_col = range_bounds(table.ref)
        return min_row, min_col, max_row, max_col

    def _style_info(self) -> TableStyleInfo:
        _, table = self._resolve()
        if table.tableStyleInfo is None:
            table.tableStyleInfo = TableStyleInfo(name=DEFAULT_TABLE_STYLE)
        return table.tableStyleInfo

    # -------------------------------------------------------------- properties

    def _read_name(self) -> str:
        return self._resolve()[1].displayName

    def _write_name(self, value: str) -> None:
        sheet, table = self._resolve()
        if not _TABLE_NAME_PATTERN.match(value) or looks_like_cell_reference(value):
            raise HostError(f"Invalid table name: {value}", code="InvalidArgument")
        existing = find_table(self.context, value)
        if existing is not None and existing[1] is not table:
            raise HostError(
                f"A table named '{value}' already exists.", code="ItemAlreadyExists"
            )
        del sheet.tables[table.name]
        table.displayName = value
        table.name = value
        sheet.tables[value] = table
        self._name = value

    def _read_style(self) -> str | None:
        return self._style_info().name

    def _write_style(self, value: str) -> None:
        if not is_valid_table_style(value):
            raise HostError(f"Invalid table style: {value}", code="InvalidArgument")
        self._style_info().name = value

    def _read_show_headers(self) -> bool:
        return bool(self._resolve()[1].headerRowCount)

    def _read_show_banded_rows(self) -> bool:
        return bool(self._style_info().showRowStripes)

    def _write_show_banded_rows(self, value: bool) -> None:
        self._style_info().showRowStripes = bool(value)

    def _read_show_banded_columns(self) -> bool:
        return bool(self._style_info().showColumnStripes)

    def _write_show_banded_columns(self, value: bool) -> None:
        self._style_info().showColumnStripes = bool(value)

    def _read_highlight_first_column(self) -> bool:
        return bool(self._style_info().showFirstColumn)

    def _write_highlight_first_column(self, value: bool) -> None:
        self._style_info().showFirstColumn = bool(value)

    def _read_highlight_last_column(self) -> bool:
        return bool(self._style_info().showLastColumn)

    def _write_highlight_last_column(self, value: bool) -> None:
        self._style_info().showLastColumn = bool(value)

    def _read_address(self) -> str:
        return self._resolve()[1].ref

    def _read_header_names(self) -> list[str]:
        sheet, _ = self._resolve()
        min_row, min_col, _, max_col = self._bounds()
        return [
            str(sheet.cell(row=min_row, column=col).value or "")
            for col in range(min_col, max_col + 1)
        ]

    def _read_totals_functions(self) -> dict[str, str]:
        _, table = self._resolve()
        return {
            column.name: column.totalsRowFunction
            for column in table.tableColumns
            if column.totalsRowFunction
        }

    def _read_sheet_name(self) -> str:
        return self._resolve()[0].title

    def _read_show_totals(self) -> bool:
        return bool(self._resolve()[1].totalsRowCount)

    def _write_show_totals(self, value: bool) -> None:
        sheet, table = self._resolve()
        min_row, min_col, max_row, max_col = self._bounds()
        shown = bool(table.totalsRowCount)
        if value and not shown:
            _shift_down(sheet, max_row + 1, min_col, max_col, 1)
            max_row += 1
            table.ref = format_bounds((min_row, min_col, max_row, max_col))
            table.totalsRowCount = 1
            _sync_columns(sheet, table)
            _write_totals_row(sheet, table)
        elif not value and shown:
            for col in range(min_col, max_col + 1):
                sheet.cell(row=max_row, column=col).value = None
            table.ref = format_bounds((min_row, min_col, max_row - 1, max_col))
            table.totalsRowCount = None
            _sync_columns(sheet, table)

    # ----------------------------------------------------------------- ranges

    def get_range(self) -> RangeProxy:
        return RangeProxy(self.worksheet, self._bounds)

    def get_header_row_range(self) -> RangeProxy:
        def _bounds() -> Bounds:
            min_row, min_col, _, max_col = self._bounds()
            return min_row, min_col, min_row, max_col

        return RangeProxy(self.worksheet, _bounds)

    def get_data_body_range(self) -> RangeProxy:
        def _bounds() -> Bounds:
            _, table = self._resolve()
            min_row, min_col, max_row, max_col = self._bounds()
            first = min_row + (1 if table.headerRowCount else 0)
            last = max_row - (1 if table.totalsRowCount else 0)
            return first, min_col, max(first, last), max_col

        return RangeProxy(self.worksheet, _bounds)

    # ---------------------------------------------------------------- methods

    def add_rows(self, values: list[list[object]], index: int | None = None) -> None:
        """Insert data rows at a 0-based body index (``None`` appends)."""

        def _add() -> None:
            sheet, table = self._resolve()
            min_row, min_col, max_row, max_col = self._bounds()
            width = max_col - min_col + 1
            if not values or any(len(row) != width for row in values):
                raise HostError(
                    f"Each row must contain exactly {width} values.",
                    code="InvalidArgument",
                )
            body_first = min_row + 1
            body_end = max_row - (1 if table.totalsRowCount else 0) + 1
            insert_at = body_end if index is None else body_first + index
            if not body_first <= insert_at <= body_end:
                raise HostError(
                    f"Row index {index} is outside the table.", code="InvalidArgument"
                )
            _shift_down(sheet, insert_at, min_col, max_col, len(values))
            for offset, row_values in enumerate(values):
                for col_offset, value in enumerate(row_values):
                    sheet.cell(row=insert_at + offset, column=min_col + col_offset).value = value
            table.ref = format_bounds((min_row, min_col, max_row + len(values), max_col))
            _sync_columns(sheet, table)
            if table.totalsRowCount:
                _write_totals_row(sheet, table)

        self._queue(_add)

    def add_column(
        self,
        name: str | None = None,
        values: list[object] | None = None,
        index: int | None = None,
    ) -> None:
        """Insert a column at a 0-based index (``None`` appends)."""

        def _add() -> None:
            sheet, table = self._resolve()
            min_row, min_col, max_row, max_col = self._bounds()
            body_rows = max_row - min_row - (1 if table.totalsRowCount else 0)
            if values is not None and values and len(values) != body_rows:
                raise HostError(
                    f"Column values must contain exactly {body_rows} items.",
                    code="InvalidArgument",
                )
            insert_col = max_col + 1 if index is None else min_col + index
            if not min_col <= insert_col <= max_col + 1:
                raise HostError(
                    f"Column index {index} is outside the table.",
                    code="InvalidArgument",
                )
            _shift_right(sheet, insert_col, min_row, max_row, 1)
            header = name or f"Column{max_col - min_col + 2}"
            sheet.cell(row=min_row, column=insert_col).value = header
            for offset, value in enumerate(values or []):
                sheet.cell(row=min_row + 1 + offset, column=insert_col).value = value
            table.ref = format_bounds((min_row, min_col, max_row, max_col + 1))
            _normalize_headers(sheet, min_row, min_col, max_col + 1)
            _sync_columns(sheet, table)

        self._queue(_add)

    def resize(self, address: str) -> None:
        def _resize() -> None:
            sheet, table = self._resolve()
            old = self._bounds()
            new = parse_address(address)
            if new[0] != old[0]:
                raise HostError(
                    "The header row must remain in the same row.",
                    code="InvalidArgument",
                )
            new_ref = format_bounds(new)
            if ":" not in new_ref or not ranges_overlap(new_ref, table.ref):
                raise HostError(
                    "The new range must overlap the original table.",
                    code="InvalidArgument",
                )
            for other in sheet.tables.values():
                if other is not table and ranges_overlap(other.ref, new_ref):
                    raise HostError(
                        f"The range {new_ref} overlaps an existing table "
                        f"'{other.displayName}'.",
                        code="InvalidOperation",
                    )
            table.ref = new_ref
            _normalize_headers(sheet, new[0], new[1], new[3])
            _sync_columns(sheet, table)

        self._queue(_resize)

    def set_totals_function(self, column_name: str, function: str | None) -> None:
        def _set() -> None:
            sheet, table = self._resolve()
            if function is not None and function not in TOTALS_SUBTOTAL_CODES:
                raise HostError(
                    f"Invalid totals function: {function}", code="InvalidArgument"
                )
            _sync_columns(sheet, table)
            for column in table.tableColumns:
                if column.name.casefold() == column_name.casefold():
                    column.totalsRowFunction = function
                    break
            else:
                raise HostError(
                    f"The table has no column named '{column_name}'.",
                    code="ItemNotFound",
                )
            if table.totalsRowCount:
                _write_totals_row(sheet, table)

        self._queue(_set)

    def convert_to_range(self) -> None:
        def _convert() -> None:
            sheet, table = self._resolve()
            del sheet.tables[table.name]

        self._queue(_convert)

    def delete(self) -> None:
        def _delete() -> None:
            sheet, table = self._resolve()
            min_row, min_col, max_row, max_col = self._bounds()
            del sheet.tables[table.name]
            for row in sheet.iter_rows(
                min_row=min_row, max_row=max_row, min_col=min_col, max_col=max_col
            ):
                for cell in row:
                    cell.value = None

        self._queue(_delete)


def _next_table_name(context: RequestContext) -> str:
    existing = {table.displayName.casefold() for _, table in iter_tables(context)}
    for index in range(1, 10_000):
        candidate = f"Table{index}"
        if candidate.casefold() not in existing:
            return candidate
    raise HostError("Failed to generate a unique table name.")


def _normalize_headers(sheet: Worksheet, row: int, min_col: int, max_col: int) -> None:
    """Make header cells non-empty unique strings, as the table model requires."""
    seen: set[str] = set()
    for index, col in enumerate(range(min_col, max_col + 1), start=1):
        cell = sheet.cell(row=row, column=col)
        text = "" if cell.value is None else str(cell.value).strip()
        if not text:
            text = f"Column{index}"
        candidate = text
        suffix = 2
        while candidate.casefold() in seen:
            candidate = f"{text}{suffix}"
            suffix += 1
        seen.add(candidate.casefold())
        cell.value = candidate


def _sync_columns(sheet: Worksheet, table: Table) -> None:
    min_row, min_col, max_row, max_col = range_bounds(table.ref)
    previous = {column.name.casefold(): column for column in table.tableColumns}
    columns: list[TableColumn] = []
    for index, col in enumerate(range(min_col, max_col + 1), start=1):
        name = str(sheet.cell(row=min_row, column=col).value or f"Column{index}")
        old = previous.get(name.casefold())
        columns.append(
            TableColumn(
                id=index,
                name=name,
                totalsRowFunction=old.totalsRowFunction if old is not None else None,
                totalsRowLabel=old.totalsRowLabel if old is not None else None,
            )
        )
    table.tableColumns = columns
    last_body = max_row - (1 if table.totalsRowCount else 0)
    if table.headerRowCount is None or table.headerRowCount:
        table.autoFilter = AutoFilter(
            ref=format_bounds((min_row, min_col, max(last_body, min_row), max_col))
        )


def _write_totals_row(sheet: Worksheet, table: Table) -> None:
    _, min_col, max_row, _ = range_bounds(table.ref)
    for offset, column in enumerate(table.tableColumns):
        cell = sheet.cell(row=max_row, column=min_col + offset)
        function = column.totalsRowFunction
        if function in TOTALS_SUBTOTAL_CODES:
            code = TOTALS_SUBTOTAL_CODES[function]
            cell.value = f"=SUBTOTAL({code},{table.displayName}[{column.name}])"
        elif offset == 0:
            column.totalsRowLabel = "Total"
            cell.value = "Total"
        else:
            cell.value = None


def _shift_down(
    sheet: Worksheet, row: int, min_col: int, max_col: int, count: int
) -> None:
    """Shift cells in columns min_col..max_col from ``row`` downwards."""
    if row > sheet.max_row:
        return
    block = (
        f"{column_index_to_label(min_col)}{row}:"
        f"{column_index_to_label(max_col)}{sheet.max_row}"
    )
    sheet.move_range(block, rows=count, translate=True)


def _shift_right(
    sheet: Worksheet, col: int, min_row: int, max_row: int, count: int
) -> None:
    """Shift cells in rows min_row..max_row from ``col`` rightwards."""
    if col > sheet.max_column:
        return
    block = (
        f"{column_index_to_label(col)}{min_row}:"
        f"{column_index_to_label(sheet.max_column)}{max_row}"
    )
    sheet.move_range(block, cols=count, translate=True)


__all__ = [
    "DEFAULT_TABLE_STYLE",
    "TOTALS_SUBTOTAL_CODES",
    "TableCollection",
    "TableProxy",
    "find_table",
    "is_valid_table_style",
    "iter_tables",
]
