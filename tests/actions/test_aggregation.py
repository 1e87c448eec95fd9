from __future__ import annotations

from typing import Any

import pytest

from sheetact.actions.aggregation import (
    aggregate_by_columns,
    find_header,
    plan_aggregation,
    staging_origin,
    to_number,
)
from sheetact.errors import ActionValidationError


def _orders(count: int) -> list[list[Any]]:
    regions = ["East", "West", "East", "North", "West"]
    rows: list[list[Any]] = [["Order ID", "Region", "Amount"]]
    for index in range(count):
        rows.append([1000 + index, regions[index % len(regions)], 10 * (index % 3 + 1)])
    return rows


def test_to_number_is_lenient() -> None:
    assert to_number(3) == 3.0
    assert to_number("12 kg") == 12.0
    assert to_number(" -1.5e2x") == -150.0
    assert to_number("n/a") is None
    assert to_number(True) is None
    assert to_number(None) is None


def test_plan_aggregation_skips_short_tables() -> None:
    plan = plan_aggregation(_orders(9))
    assert plan.aggregate is False


def test_plan_aggregation_row_boundary() -> None:
    assert len(_orders(9)) == 10
    assert plan_aggregation(_orders(9)).aggregate is False
    assert len(_orders(10)) == 11
    assert plan_aggregation(_orders(10)).aggregate is True


def test_plan_aggregation_skips_sequential_column_without_id_header() -> None:
    regions = ["East", "West", "East", "North", "West"]
    rows: list[list[Any]] = [["Sequence", "Region", "Amount"]]
    rows.extend(
        [[index + 1, regions[index % 5], 7 * (index % 4 + 1)] for index in range(12)]
    )
    plan = plan_aggregation(rows)
    assert plan.aggregate is True
    assert plan.category_column == 1
    assert plan.value_column == 2
    assert plan.value_header == "Amount"


def test_plan_aggregation_counts_when_only_numbers_are_sequential() -> None:
    rows: list[list[Any]] = [["Step", "Team"]]
    teams = ["Red", "Blue", "Red", "Green"]
    rows.extend([[index * 5, teams[index % 4]] for index in range(11)])
    plan = plan_aggregation(rows)
    assert plan.aggregate is True
    assert plan.value_column is None
    assert plan.staging_values()[1] == ["Red", 6]


def test_plan_aggregation_groups_by_category_and_sums_values() -> None:
    plan = plan_aggregation(_orders(12))
    assert plan.aggregate is True
    assert plan.category_column == 1
    assert plan.value_column == 2
    assert plan.category_header == "Region"
    assert plan.value_header == "Amount"
    totals = dict(plan.groups)
    assert set(totals) == {"East", "West", "North"}
    assert sum(totals.values()) == sum(row[2] for row in _orders(12)[1:])


def test_plan_aggregation_counts_rows_without_value_column() -> None:
    rows: list[list[Any]] = [["Name", "Team"]]
    teams = ["Red", "Blue", "Red", "Red", "Blue", "Green"]
    rows.extend([[f"person {index}", teams[index % 6]] for index in range(12)])
    plan = plan_aggregation(rows)
    assert plan.aggregate is True
    assert plan.category_column == 1
    assert plan.value_column is None
    staging = plan.staging_values()
    assert staging[0] == ["Team", "Count"]
    assert staging[1] == ["Red", 6]


def test_plan_aggregation_needs_a_repeating_text_column() -> None:
    rows: list[list[Any]] = [["Label", "Value"]]
    rows.extend([[f"item {index}", index * 3 % 7] for index in range(12)])
    assert plan_aggregation(rows).aggregate is False


def test_staging_values_sort_descending() -> None:
    plan = plan_aggregation(_orders(15))
    staging = plan.staging_values()
    values = [row[1] for row in staging[1:]]
    assert values == sorted(values, reverse=True)
    assert all(isinstance(value, int) for value in values)


def test_staging_origin_leaves_a_gap_row() -> None:
    assert staging_origin(0, 12, 1) == (14, 1)


def test_find_header_matches_loosely() -> None:
    headers = ["Region", "Total Sales", "Qty"]
    assert find_header(headers, "region") == 0
    assert find_header(headers, "sales") == 1
    assert find_header(headers, "Qty sold") == 2
    assert find_header(headers, "missing") is None
    assert find_header(headers, None) is None


def test_aggregate_by_columns_sums_and_sorts() -> None:
    values = [
        ["Region", "Sales"],
        ["East", 10],
        ["West", 30],
        ["East", 25],
        [None, 99],
    ]
    assert aggregate_by_columns(values, "Region", "Sales") == [
        ["Region", "Sales"],
        ["East", 35],
        ["West", 30],
    ]


def test_aggregate_by_columns_functions() -> None:
    values = [["Team", "Score"], ["A", 4], ["A", 8], ["B", 5]]
    assert aggregate_by_columns(values, "Team", "Score", "avg")[1] == ["A", 6]
    assert aggregate_by_columns(values, "Team", "Score", "max")[1] == ["A", 8]
    assert aggregate_by_columns(values, "Team", "Score", "min")[1:] == [
        ["B", 5],
        ["A", 4],
    ]
    assert aggregate_by_columns(values, "Team", "Score", "count")[1] == ["A", 2]


def test_aggregate_by_columns_counts_without_aggregate_column() -> None:
    values = [["Team"], ["A"], ["B"], ["A"]]
    assert aggregate_by_columns(values, "Team") == [
        ["Team", "Value"],
        ["A", 2],
        ["B", 1],
    ]


def test_aggregate_by_columns_reports_available_headers() -> None:
    with pytest.raises(ActionValidationError, match='Column "Zone" not found'):
        aggregate_by_columns([["Region", "Sales"]], "Zone", "Sales")
