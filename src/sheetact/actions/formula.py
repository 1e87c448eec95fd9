"""Fill-handle style formula broadcasting.

``adjust_formula`` shifts relative A1 references the way dragging the fill
handle does. It is a single regex pass, not a formula parser: references in
string literals and 3-D references are shifted like any other token.
"""

from __future__ import annotations

import logging
import re

from sheetact.host import HostError, PropertyNotLoadedError, RangeProxy, RequestContext
from sheetact.shared.a1 import column_letter_to_offset, column_offset_to_letter

from .capabilities import HostCapabilities
from .diagnostics import DiagnosticSink
from .models import AppliedFormula

logger = logging.getLogger(__name__)

_REFERENCE_PATTERN = re.compile(r"(\$?)([A-Z]+)(\$?)(\d+)")


def adjust_formula(formula: str, row_offset: int, col_offset: int) -> str:
    """Shift relative references by non-negative offsets.

    A column is shifted only when it is not ``$``-anchored and
    ``col_offset > 0``; rows follow the same rule with ``row_offset``.
    """

    def _shift(match: re.Match[str]) -> str:
        col_abs, column, row_abs, row = match.groups()
        if not col_abs and col_offset > 0:
            column = column_offset_to_letter(column_letter_to_offset(column) + col_offset)
        if not row_abs and row_offset > 0:
            row = str(int(row) + row_offset)
        return f"{col_abs}{column}{row_abs}{row}"

    return _REFERENCE_PATTERN.sub(_shift, formula)


def build_formula_grid(formula: str, rows: int, cols: int) -> list[list[str]]:
    """Return the ``rows`` x ``cols`` grid of adjusted formulas."""
    return [[adjust_formula(formula, r, c) for c in range(cols)] for r in range(rows)]


async def apply_formula(
    ctx: RequestContext,
    target: RangeProxy,
    formula: str,
    capabilities: HostCapabilities,
    sink: DiagnosticSink,
) -> AppliedFormula:
    """Write ``formula`` into ``target`` with fill-handle adjustment.

    A single cell gets the formula verbatim. A single row or column tries
    the host's native fill-by-example first and falls back to writing the
    adjusted grid. Two-dimensional targets always get the adjusted grid.
    """
    rows, cols = await _dimensions(ctx, target)
    if rows == 1 and cols == 1:
        target.formulas = [[formula]]
        await ctx.sync()
        return AppliedFormula(path="direct", rows=1, columns=1)

    reason: str | None = None
    if rows == 1 or cols == 1:
        if capabilities.native_autofill:
            target.get_cell(0, 0).formulas = [[formula]]
            target.get_cell(0, 0).autofill(target, "FillDefault")
            try:
                await ctx.sync()
            except HostError as exc:
                reason = f"native autofill rejected ({exc})"
            else:
                return AppliedFormula(path="autofill", rows=rows, columns=cols)
        else:
            reason = "native autofill unavailable"
        sink.info(f"Formula autofill fallback on {rows}x{cols} range: {reason}")

    target.formulas = build_formula_grid(formula, rows, cols)
    await ctx.sync()
    return AppliedFormula(path="manual", rows=rows, columns=cols, fallback_reason=reason)


async def _dimensions(ctx: RequestContext, target: RangeProxy) -> tuple[int, int]:
    try:
        return int(target.row_count), int(target.column_count)
    except PropertyNotLoadedError:
        target.load("row_count, column_count")
        await ctx.sync()
        return int(target.row_count), int(target.column_count)


__all__ = ["adjust_formula", "apply_formula", "build_formula_grid"]
