from __future__ import annotations

from collections.abc import Callable

import pytest

from sheetact.actions import ActionOutcome
from sheetact.actions.handlers.page_layout import (
    column_number,
    page_orientation,
    paper_size,
)
from sheetact.errors import ActionError, ActionValidationError
from sheetact.host import RequestContext

RunAction = Callable[..., ActionOutcome]


def test_value_parsers() -> None:
    assert page_orientation(" landscape ") == "Landscape"
    assert paper_size("a4") == "A4"
    assert column_number("c") == 3
    assert column_number("12") == 12
    with pytest.raises(ActionValidationError, match='Invalid orientation "sideways"'):
        page_orientation("sideways")
    with pytest.raises(ActionValidationError, match='Unsupported paperSize "A0"'):
        paper_size("A0")
    with pytest.raises(ActionValidationError, match='Invalid column "C3"'):
        column_number("C3")


def test_page_setup(run_action: RunAction, ctx: RequestContext) -> None:
    run_action(
        {
            "type": "setPageSetup",
            "data": {
                "orientation": "landscape",
                "paperSize": "A4",
                "fitToWidth": 1,
                "printGridlines": True,
            },
        }
    )
    sheet = ctx.book["Sheet"]
    assert sheet.page_setup.orientation == "landscape"
    assert int(sheet.page_setup.paperSize) == 9
    assert int(sheet.page_setup.fitToWidth) == 1
    assert sheet.sheet_properties.pageSetUpPr.fitToPage is True
    assert sheet.print_options.gridLines is True


def test_page_setup_scale_range(run_action: RunAction) -> None:
    with pytest.raises(ActionValidationError, match="scale must be between 10 and 400"):
        run_action({"type": "setPageSetup", "data": {"scale": 500}})


def test_margins_and_orientation(run_action: RunAction, ctx: RequestContext) -> None:
    run_action({"type": "setPageMargins", "data": {"top": 1.5, "left": 0.25}})
    run_action({"type": "setPageOrientation", "data": {"orientation": "portrait"}})
    sheet = ctx.book["Sheet"]
    assert (sheet.page_margins.top, sheet.page_margins.left) == (1.5, 0.25)
    assert sheet.page_setup.orientation == "portrait"
    with pytest.raises(ActionValidationError, match="must not be negative: bottom"):
        run_action({"type": "setPageMargins", "data": {"bottom": -1}})


def test_print_area(run_action: RunAction, ctx: RequestContext) -> None:
    outcome = run_action(
        {"type": "setPrintArea", "data": {"ranges": ["$A$1:$C$10", "Sheet!E1"]}}
    )
    assert outcome.result == ["A1:C10", "E1:E1"]
    assert ctx.book["Sheet"].print_area
    assert run_action({"type": "setPrintArea", "target": "B2:D4"}).result == ["B2:D4"]
    run_action({"type": "setPrintArea", "data": {"clear": True}})
    assert not ctx.book["Sheet"].print_area
    with pytest.raises(ActionValidationError, match='Invalid print area "Totals"'):
        run_action({"type": "setPrintArea", "data": {"range": "Totals"}})


def test_header_footer(run_action: RunAction, ctx: RequestContext) -> None:
    run_action(
        {
            "type": "setHeaderFooter",
            "data": {"centerHeader": "Report", "rightFooter": "Page &P"},
        }
    )
    sheet = ctx.book["Sheet"]
    assert sheet.oddHeader.center.text == "Report"
    assert sheet.oddFooter.right.text == "Page &P"


def test_page_breaks(run_action: RunAction, ctx: RequestContext) -> None:
    run_action(
        {
            "type": "setPageBreaks",
            "data": {"horizontalBreaks": [10, 20], "verticalBreaks": ["C"]},
        }
    )
    sheet = ctx.book["Sheet"]
    assert sorted(brk.id for brk in sheet.row_breaks.brk) == [9, 19]
    assert [brk.id for brk in sheet.col_breaks.brk] == [2]
    run_action({"type": "setPageBreaks", "data": {"removeBreaks": ["10", "C"]}})
    assert [brk.id for brk in sheet.row_breaks.brk] == [19]
    assert list(sheet.col_breaks.brk) == []
    with pytest.raises(ActionError):
        run_action({"type": "setPageBreaks", "data": {"removeBreaks": [5]}})
    run_action({"type": "setPageBreaks", "data": {"clearAll": True}})
    assert list(sheet.row_breaks.brk) == []
