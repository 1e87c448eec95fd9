from __future__ import annotations

import base64
from collections.abc import Callable

import pytest

from sheetact.actions import ActionOutcome
from sheetact.errors import ActionError, ActionValidationError
from sheetact.host import RequestContext
from sheetact.host.state import ShapeState

RunAction = Callable[..., ActionOutcome]

_PIXEL = base64.b64encode(b"\x89PNG\r\n\x1a\nfake-image-bytes").decode("ascii")


def _shapes(ctx: RequestContext) -> dict[str, ShapeState]:
    return {shape.name: shape for shape in ctx.state.for_sheet(ctx.book["Sheet"]).shapes}


def _order(ctx: RequestContext) -> list[str]:
    return [shape.name for shape in ctx.state.for_sheet(ctx.book["Sheet"]).shapes]


@pytest.fixture
def two_shapes(run_action: RunAction) -> list[str]:
    return [
        run_action(
            {
                "type": "insertShape",
                "data": {"name": name, "left": left, "top": 10, "width": 50},
            }
        ).result
        for name, left in (("Box", 0), ("Circle", 100))
    ]


def test_insert_shape_with_defaults(run_action: RunAction, ctx: RequestContext) -> None:
    outcome = run_action(
        {
            "type": "insertShape",
            "data": {"shapeType": "ellipse", "name": "Badge", "fillColor": "ff0000", "text": "Hi"},
        }
    )
    assert outcome.result == "Badge"
    shape = _shapes(ctx)["Badge"]
    assert shape.shape_type == "Ellipse"
    assert (shape.width, shape.height) == (150.0, 100.0)
    assert shape.fill_color == "#FF0000"
    assert shape.text == "Hi"


def test_insert_shape_anchored_to_cell(
    run_action: RunAction, ctx: RequestContext
) -> None:
    name = run_action({"type": "insertShape", "target": "C3"}).result
    assert name.startswith("Rectangle ")
    shape = _shapes(ctx)[name]
    assert shape.left > 0
    assert shape.top > 0


def test_insert_shape_rejects_unknown_type(run_action: RunAction) -> None:
    with pytest.raises(ActionValidationError, match='Invalid shapeType "blob"'):
        run_action({"type": "insertShape", "data": {"shapeType": "blob"}})


def test_insert_image(run_action: RunAction, ctx: RequestContext) -> None:
    name = run_action(
        {
            "type": "insertImage",
            "data": {"base64": f"data:image/png;base64,{_PIXEL}", "altText": "Logo"},
        }
    ).result
    shape = _shapes(ctx)[name]
    assert name.startswith("Picture ")
    assert shape.image_base64 == _PIXEL
    assert shape.alt_text == "Logo"


def test_insert_image_validation(run_action: RunAction) -> None:
    with pytest.raises(ActionValidationError, match="insertImage requires 'base64'"):
        run_action({"type": "insertImage", "data": {}})
    with pytest.raises(ActionValidationError, match="not valid base64"):
        run_action({"type": "insertImage", "data": {"base64": "@@@"}})


def test_insert_text_box(run_action: RunAction, ctx: RequestContext) -> None:
    name = run_action(
        {
            "type": "insertTextBox",
            "data": {"text": "Note", "horizontalAlignment": "center", "fontSize": 14},
        }
    ).result
    shape = _shapes(ctx)[name]
    assert (shape.width, shape.height) == (200.0, 50.0)
    assert (shape.horizontal_alignment, shape.font_size) == ("Center", 14.0)


def test_format_shape(
    two_shapes: list[str], run_action: RunAction, ctx: RequestContext
) -> None:
    run_action(
        {
            "type": "formatShape",
            "target": "box",
            "data": {"lineStyle": "dash", "rotation": 370, "transparency": 0.5},
        }
    )
    shape = _shapes(ctx)["Box"]
    assert shape.line_dash_style == "Dash"
    assert shape.rotation == 10.0
    assert shape.fill_transparency == 0.5


def test_format_shape_validation(two_shapes: list[str], run_action: RunAction) -> None:
    with pytest.raises(ActionValidationError, match="transparency must be between 0 and 1"):
        run_action({"type": "formatShape", "target": "Box", "data": {"transparency": 2}})
    with pytest.raises(ActionError) as info:
        run_action({"type": "formatShape", "target": "Box", "data": {"fillColor": "teal"}})
    assert "Invalid fill_color format" in (info.value.detail.host_message or "")


def test_group_and_ungroup(
    two_shapes: list[str], run_action: RunAction, ctx: RequestContext
) -> None:
    group = run_action(
        {"type": "groupShapes", "target": "Box, Circle", "data": {"groupName": "Pair"}}
    ).result
    assert group == "Pair"
    shapes = _shapes(ctx)
    assert shapes["Pair"].members == ["Box", "Circle"]
    assert (shapes["Pair"].left, shapes["Pair"].width) == (0.0, 150.0)
    assert shapes["Circle"].parent_group == "Pair"
    run_action({"type": "ungroupShapes", "target": "Pair"})
    assert "Pair" not in _shapes(ctx)
    assert _shapes(ctx)["Circle"].parent_group is None


def test_group_needs_two_shapes(two_shapes: list[str], run_action: RunAction) -> None:
    with pytest.raises(ActionValidationError, match="at least two"):
        run_action({"type": "groupShapes", "target": "Box"})


def test_arrange_and_delete(
    two_shapes: list[str], run_action: RunAction, ctx: RequestContext
) -> None:
    run_action({"type": "arrangeShapes", "target": "Circle", "data": {"zOrder": "sendtoback"}})
    assert _order(ctx) == ["Circle", "Box"]
    outcome = run_action(
        {"type": "deleteShape", "target": "Box", "data": {"shapeNames": ["Box", "Circle"]}}
    )
    assert outcome.result == 2
    assert _order(ctx) == []
