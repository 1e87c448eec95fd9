from __future__ import annotations

from collections.abc import Callable

import anyio
import pytest

from sheetact.actions.locator import Located, ObjectIndex, locate, resolve_range
from sheetact.errors import NotFoundError
from sheetact.host import RequestContext, WorksheetProxy


def _with_tables(ctx: RequestContext, fill: Callable[..., None]) -> None:
    """Table1 on Sheet, Table2 on Second."""

    async def _setup() -> None:
        ctx.workbook.worksheets.add("Second")
        await ctx.sync()
        fill([["Name", "Score"], ["a", 1], ["b", 2]])
        fill([["Item", "Qty"], ["x", 3]], sheet="Second")
        ctx.workbook.worksheets.get_item("Sheet").tables.add("A1:B3")
        await ctx.sync()
        ctx.workbook.worksheets.get_item("Second").tables.add("A1:B2")
        await ctx.sync()

    anyio.run(_setup)


def test_resolve_range_uses_sheet_qualifier(
    ctx: RequestContext, worksheet: WorksheetProxy
) -> None:
    async def _run() -> str:
        ctx.workbook.worksheets.add("Other Sheet")
        await ctx.sync()
        target = await resolve_range(ctx, worksheet, "'Other Sheet'!B2:C3")
        target.load("address")
        await ctx.sync()
        return target.address

    assert anyio.run(_run) == "'Other Sheet'!B2:C3"


def test_resolve_range_missing_sheet(
    ctx: RequestContext, worksheet: WorksheetProxy
) -> None:
    with pytest.raises(NotFoundError, match='Worksheet "Ghost" not found'):
        anyio.run(resolve_range, ctx, worksheet, "Ghost!A1")


def test_locate_table_on_any_sheet_in_two_barriers(
    ctx: RequestContext, fill: Callable[..., None]
) -> None:
    _with_tables(ctx, fill)
    before = ctx.sync_count
    located = anyio.run(locate, ctx, "table", "Table2")
    assert ctx.sync_count - before == 2
    assert isinstance(located, Located)
    assert located.worksheet is not None

    async def _sheet_name() -> str:
        assert located.worksheet is not None
        located.worksheet.load("name")
        await ctx.sync()
        return located.worksheet.name

    assert anyio.run(_sheet_name) == "Second"


def test_locate_missing_table(ctx: RequestContext) -> None:
    with pytest.raises(NotFoundError, match='Table "Sales" not found'):
        anyio.run(locate, ctx, "table", "Sales")


def test_locate_sheet(ctx: RequestContext) -> None:
    located = anyio.run(locate, ctx, "sheet", "Sheet")
    assert located.obj is located.worksheet
    with pytest.raises(NotFoundError):
        anyio.run(locate, ctx, "sheet", "Missing")


def test_locate_prefers_workbook_scoped_names(ctx: RequestContext) -> None:
    async def _run() -> Located:
        ctx.workbook.names.add("Rate", "=Sheet!$A$1")
        await ctx.sync()
        return await locate(ctx, "named_range", "Rate")

    located = anyio.run(_run)
    assert located.worksheet is None


def test_object_index_is_case_insensitive(
    ctx: RequestContext, fill: Callable[..., None]
) -> None:
    _with_tables(ctx, fill)
    index = anyio.run(ObjectIndex.build, ctx, "table")
    assert len(index) == 2
    assert "table1" in index
    assert index.names() == ["Table1", "Table2"]
    with pytest.raises(NotFoundError):
        index.sheet_for("Table9")


def test_object_index_for_sheets(ctx: RequestContext) -> None:
    index = anyio.run(ObjectIndex.build, ctx, "sheet")
    located = index.get(ctx, "sheet")
    assert located.obj is located.worksheet
