from __future__ import annotations

from pathlib import Path

import anyio
import pytest

from sheetact.host import (
    HostError,
    PropertyNotLoadedError,
    RequestContext,
    WorksheetProxy,
)
from sheetact.host.client import find_key


def test_writes_apply_only_at_sync(
    ctx: RequestContext, worksheet: WorksheetProxy
) -> None:
    cell = worksheet.get_range("A1")
    cell.values = [["queued"]]
    assert ctx.book["Sheet"]["A1"].value is None
    assert ctx.pending_count == 1
    anyio.run(ctx.sync)
    assert ctx.book["Sheet"]["A1"].value == "queued"
    assert (ctx.pending_count, ctx.sync_count) == (0, 1)


def test_properties_need_load_and_sync(worksheet: WorksheetProxy) -> None:
    target = worksheet.get_range("B2:C3").load("address, row_count")
    with pytest.raises(PropertyNotLoadedError, match="call load"):
        _ = target.address
    anyio.run(target.context.sync)
    assert (target.address, target.row_count) == ("Sheet!B2:C3", 2)
    with pytest.raises(PropertyNotLoadedError):
        _ = target.column_count


def test_read_only_property_rejects_assignment(worksheet: WorksheetProxy) -> None:
    with pytest.raises(AttributeError, match="read-only"):
        worksheet.get_range("A1").address = "B2"


def test_failure_discards_rest_of_batch(
    ctx: RequestContext, worksheet: WorksheetProxy
) -> None:
    worksheet.get_range("A1").values = [["first"]]
    worksheet.get_range("A2:B2").values = [["too", "many", "values"]]
    worksheet.get_range("A3").values = [["never"]]
    with pytest.raises(HostError) as info:
        anyio.run(ctx.sync)
    assert info.value.code == "InvalidArgument"
    sheet = ctx.book["Sheet"]
    assert (sheet["A1"].value, sheet["A3"].value) == ("first", None)
    assert ctx.pending_count == 0


def test_unknown_property_is_an_invalid_argument(
    ctx: RequestContext, worksheet: WorksheetProxy
) -> None:
    worksheet.get_range("A1").load("colour")
    with pytest.raises(HostError, match="Unknown property 'colour'"):
        anyio.run(ctx.sync)


def test_value_errors_become_host_errors(
    ctx: RequestContext, worksheet: WorksheetProxy
) -> None:
    worksheet.get_range("not-an-address").load("values")
    with pytest.raises(HostError) as info:
        anyio.run(ctx.sync)
    assert info.value.code == "InvalidArgument"


def test_client_result_resolves_after_sync(ctx: RequestContext) -> None:
    result = ctx.workbook.refresh_all_pivots()
    with pytest.raises(PropertyNotLoadedError):
        _ = result.value
    anyio.run(ctx.sync)
    assert result.value == 0


def test_null_object_reports_missing_sheet(ctx: RequestContext) -> None:
    ghost = ctx.workbook.worksheets.get_item_or_null_object("Ghost").load(
        "is_null_object"
    )
    present = ctx.workbook.worksheets.get_item_or_null_object("sheet").load(
        "is_null_object"
    )
    anyio.run(ctx.sync)
    assert ghost.is_null_object is True
    assert present.is_null_object is False


def test_missing_capability_is_api_not_found() -> None:
    ctx = RequestContext.new(capabilities=["charts"])
    sheet = ctx.workbook.worksheets.get_active_worksheet()
    sheet.get_range("A1:A2").autofill("A1:A5")
    with pytest.raises(HostError) as info:
        anyio.run(ctx.sync)
    assert info.value.code == "ApiNotFound"


def test_from_path_rejects_legacy_workbooks(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match=".xls"):
        RequestContext.from_path(tmp_path / "old.xls")


def test_save_round_trips(tmp_path: Path, ctx: RequestContext) -> None:
    ctx.book["Sheet"]["A1"] = 5
    path = tmp_path / "out.xlsx"
    ctx.save(path)
    reopened = RequestContext.from_path(path)
    try:
        assert reopened.book["Sheet"]["A1"].value == 5
    finally:
        reopened.close()


def test_find_key_is_case_insensitive() -> None:
    mapping = {"Sales": 1, "Costs": 2}
    assert find_key(mapping, "Sales") == "Sales"
    assert find_key(mapping, "COSTS") == "Costs"
    assert find_key(mapping, "Profit") is None
