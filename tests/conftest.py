from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import anyio
from openpyxl import Workbook
import pytest

from sheetact.actions import ActionExecutor, ActionOutcome
from sheetact.host import RequestContext, WorksheetProxy


@pytest.fixture
def ctx() -> RequestContext:
    """Request context over a fresh workbook with one sheet named ``Sheet``."""
    return RequestContext.new()


@pytest.fixture
def worksheet(ctx: RequestContext) -> WorksheetProxy:
    return ctx.workbook.worksheets.get_active_worksheet()


@pytest.fixture
def diagnostics() -> list[str]:
    return []


@pytest.fixture
def executor(diagnostics: list[str]) -> ActionExecutor:
    return ActionExecutor(diagnostic_logger=diagnostics.append)


@pytest.fixture
def run_action(
    ctx: RequestContext, worksheet: WorksheetProxy, executor: ActionExecutor
) -> Callable[..., ActionOutcome]:
    """Execute one descriptor synchronously against the shared context."""

    def _run(descriptor: dict[str, Any] | str) -> ActionOutcome:
        return anyio.run(executor.execute, ctx, worksheet, descriptor)

    return _run


@pytest.fixture
def fill(ctx: RequestContext) -> Callable[..., None]:
    """Write rows into a sheet of the shared context starting at A1."""

    def _fill(rows: list[list[object]], sheet: str = "Sheet") -> None:
        target = ctx.book[sheet]
        for row in rows:
            target.append(row)

    return _fill


@pytest.fixture
def sales_rows() -> list[list[object]]:
    return [
        ["Region", "Product", "Sales"],
        ["East", "Apples", 120],
        ["West", "Pears", 80],
        ["East", "Pears", 45],
        ["North", "Apples", 60],
    ]


@pytest.fixture
def workbook_path(tmp_path: Path, sales_rows: list[list[object]]) -> Path:
    """A saved two-sheet workbook for runner and server tests."""
    book = Workbook()
    sheet = book.active
    sheet.title = "Data"
    for row in sales_rows:
        sheet.append(row)
    book.create_sheet("Notes")
    path = tmp_path / "book.xlsx"
    book.save(path)
    return path
