from __future__ import annotations

import anyio
import pytest

from sheetact.actions.capabilities import HostCapabilities
from sheetact.actions.diagnostics import DiagnosticSink
from sheetact.actions.formula import adjust_formula, apply_formula, build_formula_grid
from sheetact.actions.models import AppliedFormula
from sheetact.host import RequestContext, WorksheetProxy


def test_adjust_formula_shifts_relative_references() -> None:
    assert adjust_formula("=A1+B2", 2, 1) == "=B3+C4"


def test_adjust_formula_keeps_anchored_parts() -> None:
    assert adjust_formula("=$A$1*B1", 3, 2) == "=$A$1*D4"
    assert adjust_formula("=$A1+A$1", 1, 1) == "=$A2+B$1"


def test_adjust_formula_ignores_zero_and_negative_offsets() -> None:
    assert adjust_formula("=SUM(A1:A5)", 0, 0) == "=SUM(A1:A5)"
    assert adjust_formula("=C3", -1, -1) == "=C3"


def test_adjust_formula_rolls_columns_past_z() -> None:
    assert adjust_formula("=Z1", 0, 1) == "=AA1"


def test_build_formula_grid_matches_fill_handle() -> None:
    assert build_formula_grid("=A1*2", 2, 2) == [
        ["=A1*2", "=B1*2"],
        ["=A2*2", "=B2*2"],
    ]


def _apply(
    ctx: RequestContext,
    worksheet: WorksheetProxy,
    address: str,
    formula: str,
    capabilities: HostCapabilities,
    sink: DiagnosticSink,
) -> AppliedFormula:
    target = worksheet.get_range(address)
    return anyio.run(apply_formula, ctx, target, formula, capabilities, sink)


def test_apply_formula_single_cell_is_direct(
    ctx: RequestContext, worksheet: WorksheetProxy
) -> None:
    applied = _apply(
        ctx, worksheet, "C1", "=A1+B1", HostCapabilities(), DiagnosticSink()
    )
    assert applied.path == "direct"
    assert ctx.book["Sheet"]["C1"].value == "=A1+B1"


def test_apply_formula_column_uses_native_autofill(
    ctx: RequestContext, worksheet: WorksheetProxy
) -> None:
    applied = _apply(
        ctx, worksheet, "C1:C3", "=A1*2", HostCapabilities(), DiagnosticSink()
    )
    assert applied.path == "autofill"
    assert applied.rows == 3
    assert ctx.book["Sheet"]["C3"].value == "=A3*2"


def test_apply_formula_falls_back_without_autofill() -> None:
    ctx = RequestContext.new(capabilities=[])
    worksheet = ctx.workbook.worksheets.get_active_worksheet()
    sink = DiagnosticSink()
    applied = _apply(
        ctx, worksheet, "A2:C2", "=A1", HostCapabilities.none(), sink
    )
    assert applied.path == "manual"
    assert applied.fallback_reason == "native autofill unavailable"
    assert ctx.book["Sheet"]["C2"].value == "=C1"
    assert any("fallback" in message for message in sink.messages())


def test_apply_formula_recovers_when_host_rejects_autofill() -> None:
    ctx = RequestContext.new(capabilities=[])
    worksheet = ctx.workbook.worksheets.get_active_worksheet()
    applied = _apply(
        ctx, worksheet, "B1:B4", "=A1+1", HostCapabilities(), DiagnosticSink()
    )
    assert applied.path == "manual"
    assert applied.fallback_reason is not None
    assert "autofill" in applied.fallback_reason
    assert ctx.book["Sheet"]["B4"].value == "=A4+1"


def test_apply_formula_grid_writes_adjusted_formulas(
    ctx: RequestContext, worksheet: WorksheetProxy
) -> None:
    applied = _apply(
        ctx, worksheet, "D1:E2", "=$A$1+A1", HostCapabilities(), DiagnosticSink()
    )
    assert applied.path == "manual"
    assert applied.fallback_reason is None
    assert ctx.book["Sheet"]["E2"].value == "=$A$1+B2"


@pytest.mark.parametrize(
    "capabilities, path",
    [(HostCapabilities(), "autofill"), (HostCapabilities.none(), "manual")],
)
def test_apply_formula_fills_column_like_the_fill_handle(
    ctx: RequestContext,
    worksheet: WorksheetProxy,
    capabilities: HostCapabilities,
    path: str,
) -> None:
    applied = _apply(ctx, worksheet, "B2:B5", "=A1*2", capabilities, DiagnosticSink())
    assert applied.path == path
    sheet = ctx.book["Sheet"]
    assert [sheet[f"B{row}"].value for row in range(2, 6)] == [
        "=A1*2",
        "=A2*2",
        "=A3*2",
        "=A4*2",
    ]
