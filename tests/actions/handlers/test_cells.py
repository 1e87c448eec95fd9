from __future__ import annotations

from collections.abc import Callable

import pytest

from sheetact.actions import ActionOutcome
from sheetact.actions.handlers.cells import coerce_grid
from sheetact.errors import ActionValidationError
from sheetact.host import RequestContext

RunAction = Callable[..., ActionOutcome]


def test_coerce_grid_shapes() -> None:
    assert coerce_grid([[1, 2], [3]], None) == [[1, 2], [3, ""]]
    assert coerce_grid([1, None, 3], None) == [[1, "", 3]]
    assert coerce_grid(7, "7") == [[7]]
    assert coerce_grid(None, "plain text") == [["plain text"]]
    with pytest.raises(ActionValidationError):
        coerce_grid([[]], None)


def test_values_resize_to_grid(run_action: RunAction, ctx: RequestContext) -> None:
    outcome = run_action(
        {"type": "values", "target": "B2:D4", "data": [["a", "b"], ["c", "d"]]}
    )
    assert outcome.result == {"rows": 2, "columns": 2}
    sheet = ctx.book["Sheet"]
    assert [sheet["B2"].value, sheet["C3"].value] == ["a", "d"]
    assert sheet["D4"].value is None


def test_format_applies_font_fill_and_number_format(
    run_action: RunAction, ctx: RequestContext
) -> None:
    outcome = run_action(
        {
            "type": "format",
            "target": "A1:B2",
            "data": {
                "bold": True,
                "fill": "#FF0000",
                "numberFormatPreset": "percentage",
                "horizontalAlignment": "Center",
            },
        }
    )
    assert outcome.result == ["bold", "fill", "numberFormat", "horizontalAlignment"]
    cell = ctx.book["Sheet"]["B2"]
    assert cell.font.b is True
    assert cell.fill.start_color.rgb == "FFFF0000"
    assert cell.number_format == "0.00%"
    assert cell.alignment.horizontal == "center"


def test_format_skips_invalid_fields_with_warnings(
    run_action: RunAction, ctx: RequestContext
) -> None:
    outcome = run_action(
        {
            "type": "format",
            "target": "A1",
            "data": {"fontColor": "blue", "fontSize": -3, "italic": True},
        }
    )
    assert outcome.result == ["italic"]
    assert outcome.warnings == [
        "Skipped invalid fontSize -3.0",
        "Skipped invalid fontColor color 'blue'",
    ]
    assert ctx.book["Sheet"]["A1"].font.i is True


def test_format_borders(run_action: RunAction, ctx: RequestContext) -> None:
    outcome = run_action(
        {
            "type": "format",
            "target": "A1:B2",
            "data": {"borders": {"bottom": {"style": "Continuous", "weight": "Thick"}}},
        }
    )
    assert outcome.result == ["borders.bottom"]
    assert ctx.book["Sheet"]["A2"].border.bottom.style == "thick"


def test_conditional_format_reports_skipped_rules(
    run_action: RunAction, ctx: RequestContext
) -> None:
    outcome = run_action(
        {
            "type": "conditionalFormat",
            "target": "A1:A10",
            "data": [
                {"type": "cellValue", "operator": "GreaterThan", "formula1": 5},
                {"type": "unknown"},
            ],
        }
    )
    assert outcome.result == {"applied": 1, "skipped": 1}
    rules = [
        rule
        for cf in ctx.book["Sheet"].conditional_formatting
        for rule in cf.rules
    ]
    assert len(rules) == 1
    run_action({"type": "clearFormat", "target": "A1:A10"})
    assert list(ctx.book["Sheet"].conditional_formatting) == []


def test_validation_ignores_unknown_error_style(
    run_action: RunAction, ctx: RequestContext
) -> None:
    outcome = run_action(
        {
            "type": "validation",
            "target": "A1:A4",
            "data": {"type": "list", "source": "Yes,No", "errorStyle": "critical"},
        }
    )
    assert outcome.result == {"type": "list", "options": ["Yes", "No"]}
    assert len(outcome.warnings) == 1
    assert outcome.warnings[0].startswith("Ignored invalid errorStyle:")
    validation = ctx.book["Sheet"].data_validations.dataValidation[0]
    assert validation.errorStyle == "stop"


def test_validation_error_style_is_case_insensitive(
    run_action: RunAction, ctx: RequestContext
) -> None:
    run_action(
        {
            "type": "validation",
            "target": "A1",
            "data": {"type": "list", "source": ["a", "b"], "errorStyle": "Warning"},
        }
    )
    validation = ctx.book["Sheet"].data_validations.dataValidation[0]
    assert validation.errorStyle == "warning"


def test_format_ignores_non_numeric_font_size(
    run_action: RunAction, ctx: RequestContext
) -> None:
    outcome = run_action(
        {
            "type": "format",
            "target": "A1:B1",
            "data": {"fontSize": "large", "italic": True, "fill": "#00FF00"},
        }
    )
    assert outcome.result == ["italic", "fill"]
    assert outcome.warnings[0].startswith("Ignored invalid fontSize:")
    cell = ctx.book["Sheet"]["B1"]
    assert cell.font.i is True
    assert cell.fill.start_color.rgb == "FF00FF00"


def test_conditional_format_icon_set_mismatch_keeps_other_rules(
    run_action: RunAction, ctx: RequestContext
) -> None:
    outcome = run_action(
        {
            "type": "conditionalFormat",
            "target": "B1:B10",
            "data": [
                {"type": "cellValue", "operator": "LessThan", "formula1": 0},
                {
                    "type": "iconSet",
                    "style": "threeArrows",
                    "criteria": [{"type": "percent", "formula": "50"}],
                },
                {"type": "colorScale"},
            ],
        }
    )
    assert outcome.result == {"applied": 2, "skipped": 1}
    rules = [
        rule
        for cf in ctx.book["Sheet"].conditional_formatting
        for rule in cf.rules
    ]
    assert [rule.type for rule in rules] == ["cellIs", "colorScale"]


def test_list_validation_from_range(
    run_action: RunAction, ctx: RequestContext, fill: Callable[..., None]
) -> None:
    fill([["Red"], ["Blue"], ["Red"], [None], ["Green"]])
    outcome = run_action({"type": "validation", "target": "C1:C5", "source": "A1:A5"})
    assert outcome.result == {"type": "list", "options": ["Red", "Blue", "Green"]}
    validation = ctx.book["Sheet"].data_validations.dataValidation[0]
    assert validation.formula1 == '"Red,Blue,Green"'


def test_whole_number_validation_requires_formula2_for_between(
    run_action: RunAction,
) -> None:
    with pytest.raises(ActionValidationError, match="requires 'formula2'"):
        run_action(
            {
                "type": "validation",
                "target": "A1",
                "data": {"type": "wholeNumber", "operator": "Between", "formula1": 1},
            }
        )


def test_decimal_validation(run_action: RunAction, ctx: RequestContext) -> None:
    outcome = run_action(
        {
            "type": "validation",
            "target": "B1:B3",
            "data": {"type": "decimal", "operator": "greaterThan", "formula1": 0},
        }
    )
    assert outcome.result == {"type": "decimal"}
    validation = ctx.book["Sheet"].data_validations.dataValidation[0]
    assert validation.type == "decimal"
    assert validation.operator == "greaterThan"


def test_formula_requires_text(run_action: RunAction) -> None:
    with pytest.raises(ActionValidationError, match="formula requires a formula"):
        run_action({"type": "formula", "target": "A1", "data": "  "})
