from __future__ import annotations

from collections.abc import Callable

import pytest

from sheetact.actions import ActionOutcome
from sheetact.actions.handlers.names import (
    absolute_reference,
    build_reference,
    constant_reference,
    filter_names,
)
from sheetact.errors import ActionError, ActionValidationError, NotFoundError
from sheetact.host import NamedItemInfo, RequestContext

RunAction = Callable[..., ActionOutcome]


def _info(name: str, visible: bool = True) -> NamedItemInfo:
    return NamedItemInfo(
        name=name,
        formula="=Sheet!$A$1",
        comment=None,
        visible=visible,
        scope="Workbook",
        type="Range",
    )


def test_reference_builders() -> None:
    assert absolute_reference("A1:B2", "Data") == "=Data!$A$1:$B$2"
    assert absolute_reference("'My Sheet'!c3", "Data") == "='My Sheet'!$C$3"
    assert build_reference("$A$1:$A$5", "Data") == "=Data!$A$1:$A$5"
    assert build_reference("=SUM(Data!A:A)", "Data") == "=SUM(Data!A:A)"
    assert build_reference("hello", "Data") == '="hello"'
    assert constant_reference(True) == "=TRUE"
    assert constant_reference(0.25) == "=0.25"
    assert constant_reference('say "hi"') == '="say ""hi"""'


def test_filter_names() -> None:
    items = [_info("TaxRate"), _info("Region"), _info("_Hidden", visible=False)]
    assert [item.name for item in filter_names(items, "tax|_h", False)] == ["TaxRate"]
    assert len(filter_names(items, None, True)) == 3
    with pytest.raises(ActionValidationError, match="Invalid pattern"):
        filter_names(items, "(", False)


def test_create_named_range_from_source(
    run_action: RunAction, ctx: RequestContext
) -> None:
    outcome = run_action(
        {"type": "createNamedRange", "target": "Block", "source": "A1:B3"}
    )
    assert outcome.result == "=Sheet!$A$1:$B$3"
    assert ctx.book.defined_names["Block"].attr_text == "Sheet!$A$1:$B$3"


def test_create_constant_and_sheet_scoped_names(
    run_action: RunAction, ctx: RequestContext
) -> None:
    run_action(
        {
            "type": "createNamedRange",
            "target": "TaxRate",
            "data": {"isConstant": True, "value": 0.2, "comment": "VAT"},
        }
    )
    run_action(
        {
            "type": "createNamedRange",
            "target": "Local",
            "data": {"reference": "C1", "scope": "Worksheet"},
        }
    )
    tax = ctx.book.defined_names["TaxRate"]
    assert (tax.attr_text, tax.comment) == ("0.2", "VAT")
    assert ctx.book["Sheet"].defined_names["Local"].attr_text == "Sheet!$C$1"


def test_create_named_range_validation(run_action: RunAction) -> None:
    with pytest.raises(ActionValidationError, match='Invalid name "my name"'):
        run_action({"type": "createNamedRange", "target": "my name", "source": "A1"})
    run_action({"type": "createNamedRange", "target": "Twice", "source": "A1"})
    with pytest.raises(ActionError) as info:
        run_action({"type": "createNamedRange", "target": "twice", "source": "A2"})
    assert "already exists" in (info.value.detail.host_message or "")


def test_update_named_range(run_action: RunAction, ctx: RequestContext) -> None:
    run_action({"type": "createNamedRange", "target": "Block", "source": "A1:B3"})
    run_action(
        {
            "type": "updateNamedRange",
            "target": "block",
            "data": {"newReference": "C1:C4", "newName": "Area"},
        }
    )
    assert "Block" not in ctx.book.defined_names
    assert ctx.book.defined_names["Area"].attr_text == "Sheet!$C$1:$C$4"


def test_update_named_range_needs_a_change(run_action: RunAction) -> None:
    with pytest.raises(ActionValidationError, match="updateNamedRange requires"):
        run_action({"type": "updateNamedRange", "target": "Block", "data": {}})


def test_delete_named_ranges(run_action: RunAction, ctx: RequestContext) -> None:
    for name in ("One", "Two", "Three"):
        run_action({"type": "createNamedRange", "target": name, "source": "A1"})
    assert run_action({"type": "deleteNamedRange", "target": "two"}).result == 1
    outcome = run_action(
        {"type": "deleteNamedRange", "target": "*", "data": {"deleteAll": True}}
    )
    assert outcome.result == 2
    assert len(ctx.book.defined_names) == 0
    with pytest.raises(NotFoundError):
        run_action({"type": "deleteNamedRange", "target": "One"})


def test_list_named_ranges(run_action: RunAction, diagnostics: list[str]) -> None:
    run_action({"type": "createNamedRange", "target": "Sales", "source": "A1:A5"})
    run_action(
        {
            "type": "createNamedRange",
            "target": "Local",
            "data": {"reference": "B1", "scope": "Worksheet"},
        }
    )
    outcome = run_action({"type": "listNamedRanges"})
    assert [(item["name"], item["scope"]) for item in outcome.result] == [
        ("Sales", "Workbook"),
        ("Local", "Sheet"),
    ]
    assert "Found 2 named range(s)" in diagnostics
    only = run_action({"type": "listNamedRanges", "data": {"scope": "Workbook"}})
    assert [item["name"] for item in only.result] == ["Sales"]
