from __future__ import annotations

from collections.abc import Callable

import pytest

from sheetact.actions import ActionOutcome
from sheetact.errors import ActionValidationError
from sheetact.host import RequestContext
from sheetact.host.state import ChartRecord

RunAction = Callable[..., ActionOutcome]

_SALES = [12, 7, 3, 9, 4, 6, 10, 2, 5, 8, 11]
_REGIONS = ["East", "West", "North"]


def _charts(ctx: RequestContext, sheet: str = "Sheet") -> list[ChartRecord]:
    return ctx.state.for_sheet(ctx.book[sheet]).charts


def _long_table() -> list[list[object]]:
    rows: list[list[object]] = [["Region", "Product", "Sales"]]
    for index, sales in enumerate(_SALES):
        rows.append([_REGIONS[index % 3], f"P{index}", sales])
    return rows


def test_small_range_charts_verbatim(
    run_action: RunAction,
    ctx: RequestContext,
    fill: Callable[..., None],
    sales_rows: list[list[object]],
) -> None:
    fill(sales_rows)
    outcome = run_action(
        {"type": "chart", "target": "A1:C5", "data": {"title": "Sales"}}
    )
    assert outcome.result == {"name": "Chart 1", "aggregated": False}
    (record,) = _charts(ctx)
    assert record.source_address == "Sheet!A1:C5"
    assert (record.top_left, record.bottom_right) == ("H2", "P17")
    assert record.chart.legend.position == "b"
    assert len(ctx.book["Sheet"]._charts) == 1


def test_long_table_is_aggregated_below_source(
    run_action: RunAction, ctx: RequestContext, fill: Callable[..., None]
) -> None:
    fill(_long_table())
    outcome = run_action({"type": "chart", "target": "A1:C12"})
    assert outcome.result == {"name": "Chart 1", "aggregated": True}
    sheet = ctx.book["Sheet"]
    staged = [[sheet.cell(row, col).value for col in (1, 2)] for row in range(15, 19)]
    assert staged == [["Region", "Sales"], ["East", 39], ["West", 24], ["North", 14]]
    assert _charts(ctx)[0].source_address == "Sheet!A15:B18"


def test_pie_chart_at_custom_position(
    run_action: RunAction,
    ctx: RequestContext,
    fill: Callable[..., None],
    sales_rows: list[list[object]],
) -> None:
    fill(sales_rows)
    run_action(
        {
            "type": "chart",
            "target": "A1:C5",
            "data": {"chartType": "donut", "position": "b20"},
        }
    )
    (record,) = _charts(ctx)
    assert record.chart_type == "doughnut"
    assert (record.top_left, record.bottom_right) == ("B20", "J35")
    assert record.chart.legend.position == "r"


def test_rejected_option_only_warns(
    run_action: RunAction,
    ctx: RequestContext,
    fill: Callable[..., None],
    sales_rows: list[list[object]],
) -> None:
    fill(sales_rows)
    outcome = run_action(
        {
            "type": "chart",
            "target": "A1:C5",
            "data": {"trendline": {"type": "Wavy"}, "legend": {"visible": False}},
        }
    )
    assert outcome.result["name"] == "Chart 1"
    assert len(outcome.warnings) == 1
    assert outcome.warnings[0].startswith("Chart trendline not applied:")
    assert "Wavy" in outcome.warnings[0]
    assert _charts(ctx)[0].chart.legend is None


def test_pivot_chart_groups_by_named_column(
    run_action: RunAction,
    ctx: RequestContext,
    fill: Callable[..., None],
    sales_rows: list[list[object]],
) -> None:
    fill(sales_rows)
    outcome = run_action(
        {
            "type": "pivotChart",
            "target": "A1:C5",
            "data": {"groupBy": "region", "aggregate": "Sales"},
        }
    )
    assert outcome.result == {"name": "Chart 1", "staging": "Sheet!A8:B11"}
    sheet = ctx.book["Sheet"]
    staged = [[sheet.cell(row, col).value for col in (1, 2)] for row in range(8, 12)]
    assert staged == [["region", "Sales"], ["East", 165], ["West", 80], ["North", 60]]


def test_pivot_chart_requires_group_by(run_action: RunAction) -> None:
    with pytest.raises(ActionValidationError, match="pivotChart requires 'groupBy'"):
        run_action({"type": "pivotChart", "target": "A1:C5", "data": {}})


def test_pivot_chart_unknown_column(
    run_action: RunAction, fill: Callable[..., None], sales_rows: list[list[object]]
) -> None:
    fill(sales_rows)
    with pytest.raises(ActionValidationError, match='Column "Month" not found'):
        run_action(
            {"type": "pivotChart", "target": "A1:C5", "data": {"groupBy": "Month"}}
        )


def test_aggregation_starts_above_ten_rows(
    run_action: RunAction, ctx: RequestContext, fill: Callable[..., None]
) -> None:
    fill(_long_table())
    verbatim = run_action({"type": "chart", "target": "A1:C10"})
    assert verbatim.result["aggregated"] is False
    assert _charts(ctx)[0].source_address == "Sheet!A1:C10"
    grouped = run_action({"type": "chart", "target": "A1:C11"})
    assert grouped.result["aggregated"] is True
    assert _charts(ctx)[1].source_address == "Sheet!A14:B17"


def test_chart_on_another_sheet_stages_and_draws_there(
    run_action: RunAction, ctx: RequestContext, fill: Callable[..., None]
) -> None:
    ctx.book["Sheet"]["A15"] = "keep me"
    ctx.book.create_sheet("Data")
    fill(_long_table(), "Data")
    outcome = run_action({"type": "chart", "target": "Data!A1:C12"})
    assert outcome.result == {"name": "Chart 1", "aggregated": True}
    data = ctx.book["Data"]
    staged = [[data.cell(row, col).value for col in (1, 2)] for row in range(15, 19)]
    assert staged == [["Region", "Sales"], ["East", 39], ["West", 24], ["North", 14]]
    assert ctx.book["Sheet"]["A15"].value == "keep me"
    assert _charts(ctx) == []
    (record,) = _charts(ctx, "Data")
    assert record.source_address == "Data!A15:B18"
    assert len(data._charts) == 1
    assert len(ctx.book["Sheet"]._charts) == 0
