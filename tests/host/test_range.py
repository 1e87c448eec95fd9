from __future__ import annotations

import anyio
import pytest

from sheetact.host import HostError, RequestContext, WorksheetProxy
from sheetact.host.range import format_bounds, parse_address


def _sync(ctx: RequestContext) -> None:
    anyio.run(ctx.sync)


def test_parse_address_forms() -> None:
    assert parse_address("$B$2:c4") == (2, 2, 4, 3)
    assert parse_address("A1") == (1, 1, 1, 1)
    assert parse_address("5:7")[:3] == (5, 1, 7)
    assert parse_address("C:E")[1::2] == (3, 5)
    with pytest.raises(HostError):
        parse_address("Totals")


def test_format_bounds() -> None:
    assert format_bounds((1, 1, 1, 1)) == "A1"
    assert format_bounds((2, 3, 10, 28)) == "C2:AB10"


def test_offset_and_resize(ctx: RequestContext, worksheet: WorksheetProxy) -> None:
    base = worksheet.get_range("B2:C3")
    moved = base.get_offset_range(1, 2).load("address_local")
    grown = base.get_resized_range(2, 0).load("address_local")
    sized = base.get_absolute_resized_range(1, 4).load("address_local")
    cell = base.get_cell(1, 1).load("address_local")
    _sync(ctx)
    assert moved.address_local == "D3:E4"
    assert grown.address_local == "B2:C5"
    assert sized.address_local == "B2:E2"
    assert cell.address_local == "C3"


def test_offset_outside_grid_fails(
    ctx: RequestContext, worksheet: WorksheetProxy
) -> None:
    worksheet.get_range("A1").get_offset_range(-1, 0).load("address")
    with pytest.raises(HostError, match="outside the worksheet grid"):
        _sync(ctx)


def test_scalar_write_fills_range(
    ctx: RequestContext, worksheet: WorksheetProxy
) -> None:
    worksheet.get_range("A1:B2").values = 0
    target = worksheet.get_range("A1:B2").load("values")
    _sync(ctx)
    assert target.values == [[0, 0], [0, 0]]


def test_copy_translates_formulas(
    ctx: RequestContext, worksheet: WorksheetProxy
) -> None:
    sheet = ctx.book["Sheet"]
    sheet["A1"] = 2
    sheet["B1"] = "=A1*2"
    worksheet.get_range("B2").copy_from("B1")
    worksheet.get_range("C3").copy_from("A1:B1", "Values")
    _sync(ctx)
    assert sheet["B2"].value == "=A2*2"
    assert (sheet["C3"].value, sheet["D3"].value) == (2, "=A1*2")


def test_sort_keeps_header_and_blanks_last(
    ctx: RequestContext, worksheet: WorksheetProxy
) -> None:
    sheet = ctx.book["Sheet"]
    for row in [["Name", "Score"], ["b", 3], ["a", None], ["c", 9]]:
        sheet.append(row)
    worksheet.get_range("A1:B4").sort_apply(1, ascending=False, has_headers=True)
    _sync(ctx)
    assert [sheet.cell(row=r, column=1).value for r in range(1, 5)] == [
        "Name",
        "c",
        "b",
        "a",
    ]


def test_replace_all_skips_formulas(
    ctx: RequestContext, worksheet: WorksheetProxy
) -> None:
    sheet = ctx.book["Sheet"]
    sheet["A1"] = "Draft report"
    sheet["A2"] = '="draft"'
    sheet["A3"] = "draft"
    partial = worksheet.get_range("A1:A3").replace_all("draft", "Final")
    _sync(ctx)
    assert partial.value == 2
    assert [sheet["A1"].value, sheet["A2"].value, sheet["A3"].value] == [
        "Final report",
        '="draft"',
        "Final",
    ]
    exact = worksheet.get_range("A1:A3").replace_all(
        "final", "Done", match_case=True, match_entire_cell=True
    )
    _sync(ctx)
    assert exact.value == 0


def test_merge_and_unmerge(ctx: RequestContext, worksheet: WorksheetProxy) -> None:
    worksheet.get_range("A1:C2").merge(across=True)
    areas = worksheet.get_range("A1:C3").load("merged_areas")
    _sync(ctx)
    assert sorted(areas.merged_areas) == ["A1:C1", "A2:C2"]
    worksheet.get_range("B2").unmerge()
    areas.load("merged_areas")
    _sync(ctx)
    assert areas.merged_areas == ["A1:C1"]


def test_used_range_follows_content(
    ctx: RequestContext, worksheet: WorksheetProxy
) -> None:
    ctx.book["Sheet"]["A1"] = "header"
    ctx.book["Sheet"]["C4"] = "x"
    used = worksheet.get_used_range().load("address")
    _sync(ctx)
    assert used.address == "Sheet!A1:C4"
