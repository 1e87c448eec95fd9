from __future__ import annotations

from fnmatch import fnmatchcase
import logging
import re
from typing import TYPE_CHECKING, Literal

from openpyxl.worksheet.filters import (
    AutoFilter,
    CustomFilter,
    CustomFilters,
    FilterColumn,
    Filters,
)
from pydantic import BaseModel, Field

from .client import ClientObject, HostError, HostProperty
from .range import format_bounds, parse_address

if TYPE_CHECKING:  # pragma: no cover - typing only
    from openpyxl.worksheet.worksheet import Worksheet

    from .range import RangeProxy
    from .worksheet import WorksheetProxy

logger = logging.getLogger(__name__)

_CRITERION_PATTERN = re.compile(r"^(>=|<=|<>|=|>|<)?(.*)$", re.DOTALL)
_OPERATORS = {
    ">=": "greaterThanOrEqual",
    "<=": "lessThanOrEqual",
    "<>": "notEqual",
    "=": "equal",
    ">": "greaterThan",
    "<": "lessThan",
}


class FilterCriteria(BaseModel):
    """AutoFilter criteria for one column."""

    values: list[str] | None = None
    criterion1: str | None = None
    criterion2: str | None = None
    operator: Literal["And", "Or"] = "And"
    blanks: bool = Field(default=False, description="Keep blank cells in a values filter.")


def parse_criterion(text: str) -> tuple[str, str]:
    """Split ``">=10"`` style criteria into an openpyxl operator and operand."""
    match = _CRITERION_PATTERN.match(text.strip())
    if match is None:
        return "equal", text.strip()
    symbol, operand = match.group(1), match.group(2).strip()
    return _OPERATORS.get(symbol or "=", "equal"), operand


def matches(value: object, criteria: FilterCriteria) -> bool:
    """Return True when a cell value passes the column criteria."""
    text = "" if value is None else str(value)
    if criteria.values is not None:
        if text == "":
            return criteria.blanks
        return text.casefold() in {item.casefold() for item in criteria.values}
    results = [
        _compare(value, *parse_criterion(criterion))
        for criterion in (criteria.criterion1, criteria.criterion2)
        if criterion is not None
    ]
    if not results:
        return True
    return all(results) if criteria.operator == "And" else any(results)


class AutoFilterProxy(ClientObject):
    """The single AutoFilter of a worksheet."""

    enabled = HostProperty()
    address = HostProperty()
    hidden_rows = HostProperty()

    def __init__(self, worksheet: WorksheetProxy) -> None:
        super().__init__(worksheet.context)
        self.worksheet = worksheet

    def _read_enabled(self) -> bool:
        return bool(self.worksheet._sheet().auto_filter.ref)

    def _read_address(self) -> str | None:
        return self.worksheet._sheet().auto_filter.ref or None

    def _read_hidden_rows(self) -> list[int]:
        sheet = self.worksheet._sheet()
        return sorted(
            row for row, dimension in sheet.row_dimensions.items() if dimension.hidden
        )

    def apply(
        self,
        target: RangeProxy,
        column_index: int,
        criteria: FilterCriteria,
    ) -> None:
        """Filter ``target`` (header row first) on a 0-based column offset."""

        def _apply() -> None:
            sheet = self.worksheet._sheet()
            min_row, min_col, max_row, max_col = target._bounds()
            max_row = min(max_row, max(sheet.max_row, min_row))
            if not 0 <= column_index <= max_col - min_col:
                raise HostError(
                    f"Filter column {column_index} is outside the range.",
                    code="InvalidArgument",
                )
            address = format_bounds((min_row, min_col, max_row, max_col))
            current = sheet.auto_filter.ref
            if current and current != address:
                _unhide(sheet, current)
                sheet.auto_filter = AutoFilter()
            sheet.auto_filter.ref = address
            columns = [
                column
                for column in sheet.auto_filter.filterColumn
                if column.colId != column_index
            ]
            columns.append(_filter_column(column_index, criteria))
            sheet.auto_filter.filterColumn = columns
            _apply_visibility(sheet, sheet.auto_filter, address)

        self._queue(_apply)

    def enable(self, target: RangeProxy) -> None:
        """Put dropdowns on ``target`` without filtering anything."""

        def _enable() -> None:
            sheet = self.worksheet._sheet()
            if sheet.auto_filter.ref:
                _unhide(sheet, sheet.auto_filter.ref)
            sheet.auto_filter = AutoFilter(ref=format_bounds(target._bounds()))

        self._queue(_enable)

    def clear(self) -> None:
        def _clear() -> None:
            sheet = self.worksheet._sheet()
            if sheet.auto_filter.ref:
                _unhide(sheet, sheet.auto_filter.ref)
            sheet.auto_filter = AutoFilter()

        self._queue(_clear)


def _filter_column(column_index: int, criteria: FilterCriteria) -> FilterColumn:
    if criteria.values is not None:
        return FilterColumn(
            colId=column_index,
            filters=Filters(filter=list(criteria.values), blank=criteria.blanks or None),
        )
    custom = [
        CustomFilter(*parse_criterion(criterion))
        for criterion in (criteria.criterion1, criteria.criterion2)
        if criterion is not None
    ]
    if not custom:
        raise HostError("Filter criteria are empty.", code="InvalidArgument")
    return FilterColumn(
        colId=column_index,
        customFilters=CustomFilters(
            _and=criteria.operator == "And" and len(custom) > 1,
            customFilter=custom,
        ),
    )


def _criteria_of(column: FilterColumn) -> FilterCriteria:
    if column.filters is not None:
        return FilterCriteria(
            values=list(column.filters.filter), blanks=bool(column.filters.blank)
        )
    custom = list(column.customFilters.customFilter) if column.customFilters else []
    symbols = {name: symbol for symbol, name in _OPERATORS.items()}
    texts = [f"{symbols.get(item.operator or 'equal', '=')}{item.val}" for item in custom]
    return FilterCriteria(
        criterion1=texts[0] if texts else None,
        criterion2=texts[1] if len(texts) > 1 else None,
        operator="And" if column.customFilters and column.customFilters._and else "Or",
    )


def _apply_visibility(sheet: Worksheet, auto_filter: AutoFilter, address: str) -> None:
    min_row, min_col, max_row, _ = parse_address(address)
    rules = [(column.colId, _criteria_of(column)) for column in auto_filter.filterColumn]
    for row in range(min_row + 1, max_row + 1):
        visible = all(
            matches(sheet.cell(row=row, column=min_col + col_id).value, criteria)
            for col_id, criteria in rules
        )
        sheet.row_dimensions[row].hidden = not visible


def _unhide(sheet: Worksheet, address: str) -> None:
    min_row, _, max_row, _ = parse_address(address)
    for row in range(min_row + 1, max_row + 1):
        if row in sheet.row_dimensions:
            sheet.row_dimensions[row].hidden = False


def _compare(value: object, operator: str, operand: str) -> bool:
    number = _as_number(value)
    target = _as_number(operand)
    if number is not None and target is not None:
        left: object = number
        right: object = target
    else:
        left = "" if value is None else str(value).casefold()
        right = operand.casefold()
        if operator in {"equal", "notEqual"} and any(ch in operand for ch in "*?"):
            hit = fnmatchcase(str(left), str(right))
            return hit if operator == "equal" else not hit
    if operator == "equal":
        return left == right
    if operator == "notEqual":
        return left != right
    try:
        if operator == "greaterThan":
            return left > right  # type: ignore[operator]
        if operator == "greaterThanOrEqual":
            return left >= right  # type: ignore[operator]
        if operator == "lessThan":
            return left < right  # type: ignore[operator]
        return left <= right  # type: ignore[operator]
    except TypeError:
        return False


def _as_number(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


__all__ = ["AutoFilterProxy", "FilterCriteria", "matches", "parse_criterion"]
