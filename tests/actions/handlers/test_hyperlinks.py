from __future__ import annotations

from collections.abc import Callable

import pytest

from sheetact.actions import ActionOutcome
from sheetact.actions.handlers.hyperlinks import build_link
from sheetact.errors import ActionValidationError
from sheetact.host import RequestContext

RunAction = Callable[..., ActionOutcome]


def test_build_link_splits_internal_and_external() -> None:
    internal = build_link("#'My Sheet'!B2", None, None)
    assert internal.address is None
    assert internal.document_reference == "'My Sheet'!B2"
    assert internal.text_to_display == "'My Sheet'!B2"
    external = build_link(" mailto:team@example.com ", "Mail us", "Write")
    assert external.address == "mailto:team@example.com"
    assert (external.text_to_display, external.screen_tip) == ("Mail us", "Write")
    with pytest.raises(ActionValidationError, match='Invalid hyperlink "www.example.com"'):
        build_link("www.example.com", None, None)


def test_add_edit_and_remove_hyperlink(
    run_action: RunAction, ctx: RequestContext
) -> None:
    run_action(
        {
            "type": "addHyperlink",
            "target": "A1",
            "data": {"url": "https://example.com", "displayText": "Site"},
        }
    )
    cell = ctx.book["Sheet"]["A1"]
    assert cell.value == "Site"
    assert cell.hyperlink.target == "https://example.com"

    run_action({"type": "editHyperlink", "target": "A1", "data": {"tooltip": "Open"}})
    assert cell.hyperlink.tooltip == "Open"
    assert cell.hyperlink.display == "Site"

    run_action(
        {"type": "editHyperlink", "target": "A1", "data": {"url": "https://example.org"}}
    )
    assert cell.hyperlink.target == "https://example.org"
    assert cell.hyperlink.tooltip == "Open"

    run_action(
        {"type": "removeHyperlink", "target": "A1", "data": {"preserveValue": False}}
    )
    assert cell.hyperlink is None
    assert cell.value is None


def test_internal_link_uses_location(
    run_action: RunAction, ctx: RequestContext
) -> None:
    ctx.book.create_sheet("Data")
    run_action({"type": "addHyperlink", "target": "B3", "data": {"url": "#Data!A1"}})
    link = ctx.book["Sheet"]["B3"].hyperlink
    assert (link.target, link.location) == (None, "Data!A1")


def test_edit_without_link_fails(run_action: RunAction) -> None:
    with pytest.raises(ActionValidationError, match="No hyperlink exists on Sheet!B1"):
        run_action({"type": "editHyperlink", "target": "B1", "data": {"tooltip": "x"}})


def test_add_hyperlink_requires_url(run_action: RunAction) -> None:
    with pytest.raises(ActionValidationError, match="addHyperlink requires 'url'"):
        run_action({"type": "addHyperlink", "target": "A1"})
