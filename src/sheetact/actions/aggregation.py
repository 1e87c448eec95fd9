"""Pre-chart aggregation of raw tabular data.

Long, repetitive tables chart poorly verbatim. ``plan_aggregation`` decides
whether a table has a category column worth grouping by and, optionally, a
numeric column worth summing; the grouped result is written to a staging
range below the source and charted instead.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from pydantic import BaseModel, Field

from sheetact.errors import ActionValidationError

from .types import AggregateFunction

logger = logging.getLogger(__name__)

MIN_AGGREGATION_ROWS = 11
CATEGORY_SAMPLE_ROWS = 5
VALUE_SAMPLE_ROWS = 9
_ID_HINTS = ("id", "no", "number")
_LEADING_NUMBER = re.compile(r"^\s*[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")
_FUNCTION_ALIASES: dict[str, AggregateFunction] = {
    "sum": "sum",
    "count": "count",
    "average": "average",
    "avg": "average",
    "max": "max",
    "min": "min",
}


def to_number(value: Any) -> float | None:
    """Coerce a cell value to a number the lenient way (``"12 kg"`` -> 12)."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        return None
    match = _LEADING_NUMBER.match(value)
    if match is None:
        return None
    return float(match.group(0))


class AggregationPlan(BaseModel):
    """Grouping decision for one chart source grid."""

    aggregate: bool = False
    category_column: int | None = None
    value_column: int | None = None
    category_header: str | None = None
    value_header: str | None = None
    groups: list[tuple[str, float]] = Field(default_factory=list)

    def staging_values(self) -> list[list[Any]]:
        """Header row plus groups sorted by value, descending and stable."""
        header = [
            self.category_header or "Category",
            self.value_header if self.value_column is not None else "Count",
        ]
        ordered = sorted(self.groups, key=lambda item: item[1], reverse=True)
        return [header, *[[key, _tidy(value)] for key, value in ordered]]


def find_category_column(values: list[list[Any]]) -> int | None:
    """First column whose leading rows hold text with a repeated value."""
    headers = values[0]
    sample_rows = values[1 : 1 + CATEGORY_SAMPLE_ROWS]
    for col in range(len(headers)):
        sample = [row[col] if col < len(row) else "" for row in sample_rows]
        has_text = any(isinstance(item, str) and item != "" for item in sample)
        has_repeats = len({_hashable(item) for item in sample}) < len(sample)
        if has_text and has_repeats:
            return col
    return None


def find_value_column(values: list[list[Any]], skip: int | None) -> int | None:
    """First numeric column that does not look like an identifier."""
    headers = values[0]
    sample_rows = values[1 : 1 + VALUE_SAMPLE_ROWS]
    for col in range(len(headers)):
        if col == skip:
            continue
        sample = [row[col] if col < len(row) else "" for row in sample_rows]
        numbers = [to_number(item) for item in sample]
        if any(number is None for number in numbers):
            continue
        header = str(headers[col] or "").lower()
        if any(hint in header for hint in _ID_HINTS):
            continue
        numeric = [number for number in numbers if number is not None]
        increasing = len(numeric) > 3 and all(
            later > earlier for earlier, later in zip(numeric, numeric[1:])
        )
        unique = len(set(numeric)) == len(numeric)
        if increasing and unique:
            continue
        return col
    return None


def plan_aggregation(values: list[list[Any]]) -> AggregationPlan:
    """Decide whether ``values`` (header row first) should be grouped.

    Tables of ten rows or fewer, or with a single column, chart verbatim.
    Grouping needs a category column; the value column is optional and
    without it each group counts its rows.
    """
    if len(values) < MIN_AGGREGATION_ROWS or not values or len(values[0]) < 2:
        return AggregationPlan()
    category = find_category_column(values)
    if category is None:
        return AggregationPlan()
    value = find_value_column(values, category)
    headers = values[0]
    groups: dict[str, list[float]] = {}
    for row in values[1:]:
        key = _key(row[category] if category < len(row) else None)
        if not key:
            continue
        counter = groups.setdefault(key, [0.0, 0.0])
        counter[0] += 1
        if value is not None:
            number = to_number(row[value] if value < len(row) else None)
            if number is not None:
                counter[1] += number
    totals = [
        (key, counter[1] if value is not None else counter[0])
        for key, counter in groups.items()
    ]
    return AggregationPlan(
        aggregate=True,
        category_column=category,
        value_column=value,
        category_header=_header(headers[category]),
        value_header=_header(headers[value]) if value is not None else None,
        groups=totals,
    )


def staging_origin(
    row_index: int, row_count: int, column_index: int
) -> tuple[int, int]:
    """0-based origin of the staging range, two rows below the source."""
    return row_index + row_count + 2, column_index


def find_header(headers: list[Any], term: str | None) -> int | None:
    """Case-insensitive header match: exact, contains, or contained-in."""
    if term is None:
        return None
    search = str(term).strip().lower()
    for index, header in enumerate(headers):
        text = str(header if header is not None else "").strip().lower()
        if text == search or search in text or (text and text in search):
            return index
    return None


def aggregate_by_columns(
    values: list[list[Any]],
    group_by: str,
    aggregate: str | None = None,
    function: str = "sum",
) -> list[list[Any]]:
    """Group ``values`` by a named column for a pivot chart.

    Args:
        values: Source grid, header row first.
        group_by: Header text of the grouping column.
        aggregate: Header text of the numeric column; ``None`` counts rows.
        function: ``sum``, ``count``, ``average``/``avg``, ``max`` or ``min``.
            Groups without numeric values fall back to their row count.

    Returns:
        Staging grid: header row, then groups sorted by value descending.

    Raises:
        ActionValidationError: If the grouping column does not exist.
    """
    headers = values[0] if values else []
    group_index = find_header(headers, group_by)
    if group_index is None:
        available = ", ".join(str(header) for header in headers)
        raise ActionValidationError(
            f'Column "{group_by}" not found. Available: {available}'
        )
    value_index = find_header(headers, aggregate) if aggregate else None
    resolved = _FUNCTION_ALIASES.get(function.strip().lower(), "sum")
    counts: dict[str, int] = {}
    numbers: dict[str, list[float]] = {}
    for row in values[1:]:
        key = _key(row[group_index] if group_index < len(row) else None)
        if not key or key in {"null", "undefined"}:
            continue
        counts[key] = counts.get(key, 0) + 1
        bucket = numbers.setdefault(key, [])
        if value_index is not None:
            number = to_number(row[value_index] if value_index < len(row) else None)
            if number is not None:
                bucket.append(number)
    rows = [
        [key, _tidy(_apply(resolved, numbers[key], count))]
        for key, count in counts.items()
    ]
    rows.sort(key=lambda item: item[1], reverse=True)
    return [[group_by or "Category", aggregate or "Value"], *rows]


def _apply(function: AggregateFunction, numbers: list[float], count: int) -> float:
    if function == "count" or not numbers:
        return float(count)
    if function == "average":
        return sum(numbers) / len(numbers)
    if function == "max":
        return max(numbers)
    if function == "min":
        return min(numbers)
    return sum(numbers)


def _key(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _header(value: Any) -> str | None:
    text = "" if value is None else str(value)
    return text or None


def _hashable(value: Any) -> Any:
    return value if isinstance(value, (str, int, float, bool)) else repr(value)


def _tidy(value: float) -> float | int:
    return int(value) if float(value).is_integer() else value


__all__ = [
    "AggregationPlan",
    "aggregate_by_columns",
    "find_category_column",
    "find_header",
    "find_value_column",
    "plan_aggregation",
    "staging_origin",
    "to_number",
]
