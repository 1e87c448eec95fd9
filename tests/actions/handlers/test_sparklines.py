from __future__ import annotations

from collections.abc import Callable

import pytest

from sheetact.actions import ActionOutcome
from sheetact.actions.handlers.sparklines import sparkline_type
from sheetact.errors import ActionError, ActionValidationError
from sheetact.host import RequestContext
from sheetact.host.state import SparklineGroup

RunAction = Callable[..., ActionOutcome]


def _groups(ctx: RequestContext) -> list[SparklineGroup]:
    return ctx.state.for_sheet(ctx.book["Sheet"]).sparklines


def test_sparkline_type_aliases() -> None:
    assert sparkline_type("win loss") == "WinLoss"
    assert sparkline_type("COLUMN") == "Column"
    with pytest.raises(ActionValidationError, match='Invalid sparklineType "pie"'):
        sparkline_type("pie")


def test_create_sparkline_group(run_action: RunAction, ctx: RequestContext) -> None:
    run_action(
        {
            "type": "createSparkline",
            "target": "D2:D5",
            "data": {"sourceRange": "A2:C5", "sparklineType": "win-loss", "color": "#00ff00"},
        }
    )
    (group,) = _groups(ctx)
    assert group.location == ["D2", "D3", "D4", "D5"]
    assert (group.source, group.sparkline_type, group.color) == ("A2:C5", "WinLoss", "#00FF00")


def test_create_sparkline_from_descriptor_source(
    run_action: RunAction, ctx: RequestContext
) -> None:
    run_action({"type": "createSparkline", "target": "E1", "source": "A1:C1"})
    assert _groups(ctx)[0].sparkline_type == "Line"


def test_create_sparkline_validation(run_action: RunAction) -> None:
    with pytest.raises(ActionValidationError, match="createSparkline requires 'sourceRange'"):
        run_action({"type": "createSparkline", "target": "D2"})
    with pytest.raises(ActionError) as info:
        run_action(
            {"type": "createSparkline", "target": "D2:D5", "data": {"sourceRange": "A2:C3"}}
        )
    assert "one series per location cell" in (info.value.detail.host_message or "")


def test_configure_sparkline_options(
    run_action: RunAction, ctx: RequestContext
) -> None:
    run_action({"type": "createSparkline", "target": "D2:D5", "source": "A2:C5"})
    outcome = run_action(
        {
            "type": "configureSparkline",
            "target": "D3",
            "data": {
                "showHighPoint": True,
                "minAxisType": "group",
                "lineWeight": 1.5,
                "sparklineType": "column",
            },
        }
    )
    assert outcome.result == ["show_high_point", "min_axis_type", "line_weight"]
    group = _groups(ctx)[0]
    assert group.sparkline_type == "Column"
    assert group.options == {
        "show_high_point": True,
        "min_axis_type": "Group",
        "line_weight": 1.5,
    }


def test_configure_sparkline_rejects_bad_color(run_action: RunAction) -> None:
    run_action({"type": "createSparkline", "target": "D2:D5", "source": "A2:C5"})
    with pytest.raises(ActionError):
        run_action(
            {"type": "configureSparkline", "target": "D2", "data": {"markerColor": "teal"}}
        )


def test_delete_sparklines(run_action: RunAction, ctx: RequestContext) -> None:
    run_action({"type": "createSparkline", "target": "D2:D5", "source": "A2:C5"})
    run_action({"type": "deleteSparkline", "target": "D2:D3"})
    assert _groups(ctx)[0].location == ["D4", "D5"]
    run_action({"type": "deleteSparkline", "target": "D5", "data": {"deleteGroup": True}})
    assert _groups(ctx) == []
