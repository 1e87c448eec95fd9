from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any, Literal

import anyio
from pydantic import BaseModel, Field

from sheetact.actions import ActionExecutor, ActionOutcome
from sheetact.actions.executor import DescriptorInput
from sheetact.errors import ActionError, ActionErrorDetail
from sheetact.host import RequestContext, WorksheetProxy
from sheetact.host.worksheet import find_sheet
from sheetact.io import PathPolicy, resolve_workbook
from sheetact.shared.output_path import OnConflictPolicy, plan_output

ActionStatus = Literal["applied", "failed"]


class ActionRunRequest(BaseModel):
    """Input model for running a batch of actions against a workbook file."""

    xlsx_path: Path
    actions: list[dict[str, Any] | str] = Field(
        ..., description="Action descriptors (objects or JSON strings), in order."
    )
    sheet: str | None = Field(
        default=None, description="Worksheet that unqualified targets refer to."
    )
    out_dir: Path | None = None
    out_name: str | None = None
    on_conflict: OnConflictPolicy = "rename"
    dry_run: bool = Field(default=False, description="Run without saving.")
    capabilities: list[str] | None = Field(
        default=None, description="Host capability names; defaults to all."
    )


class ActionResultItem(BaseModel):
    """Outcome of one descriptor in a run."""

    index: int
    kind: str
    target: str | None = None
    status: ActionStatus
    message: str
    warnings: list[str] = Field(default_factory=list)
    result: Any = None
    error: ActionErrorDetail | None = None


class ActionRunResult(BaseModel):
    """Output model for an action run."""

    out_path: str | None = None
    results: list[ActionResultItem] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    diagnostics: list[str] = Field(default_factory=list)

    @property
    def applied(self) -> int:
        return sum(1 for item in self.results if item.status == "applied")

    @property
    def failed(self) -> int:
        return sum(1 for item in self.results if item.status == "failed")


def run_actions(
    request: ActionRunRequest, *, policy: PathPolicy | None = None
) -> ActionRunResult:
    """Open a workbook, run every descriptor in order and save the result.

    A failing descriptor is reported and the run continues with the next
    one; actions applied before it stay applied.

    Args:
        request: Run request payload.
        policy: Optional path policy for access control.

    Returns:
        Run result with one item per descriptor.

    Raises:
        FileNotFoundError: If the input file does not exist.
        ValueError: If the path violates policy, the extension is not
            supported or the requested sheet does not exist.
    """
    resolved_input = _resolve_input_path(request.xlsx_path, policy=policy)
    warnings: list[str] = []
    output_path: Path | None = None
    if not request.dry_run:
        plan = plan_output(
            resolved_input,
            out_dir=request.out_dir,
            out_name=request.out_name,
            on_conflict=request.on_conflict,
            policy=policy,
        )
        if plan.warning:
            warnings.append(plan.warning)
        if plan.skip:
            return ActionRunResult(out_path=str(plan.path), warnings=warnings)
        output_path = plan.path

    diagnostics: list[str] = []
    executor = ActionExecutor(diagnostic_logger=diagnostics.append)
    ctx = RequestContext.from_path(resolved_input, capabilities=request.capabilities)
    try:
        worksheet = _select_worksheet(ctx, request.sheet)
        results = anyio.run(_execute_all, executor, ctx, worksheet, request.actions)
        if output_path is not None:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            ctx.save(output_path)
    finally:
        ctx.close()

    if request.dry_run:
        warnings.append("Dry run; workbook not saved.")
    return ActionRunResult(
        out_path=str(output_path) if output_path is not None else None,
        results=results,
        warnings=warnings,
        diagnostics=diagnostics,
    )


async def run_actions_in_context(
    ctx: RequestContext,
    worksheet: WorksheetProxy,
    actions: Sequence[DescriptorInput],
    *,
    executor: ActionExecutor | None = None,
) -> list[ActionResultItem]:
    """Run descriptors against an already open request context."""
    return await _execute_all(executor or ActionExecutor(), ctx, worksheet, actions)


async def _execute_all(
    executor: ActionExecutor,
    ctx: RequestContext,
    worksheet: WorksheetProxy,
    actions: Sequence[DescriptorInput],
) -> list[ActionResultItem]:
    items: list[ActionResultItem] = []
    for index, descriptor in enumerate(actions):
        try:
            outcome = await executor.execute(ctx, worksheet, descriptor)
        except ActionError as exc:
            items.append(_failed_item(index, exc))
            continue
        items.append(_applied_item(index, outcome))
    return items


def _applied_item(index: int, outcome: ActionOutcome) -> ActionResultItem:
    return ActionResultItem(
        index=index,
        kind=outcome.kind,
        target=outcome.target,
        status="applied",
        message=outcome.message or "",
        warnings=outcome.warnings,
        result=outcome.result,
    )


def _failed_item(index: int, exc: ActionError) -> ActionResultItem:
    return ActionResultItem(
        index=index,
        kind=exc.detail.kind or "unknown",
        target=exc.detail.target,
        status="failed",
        message=str(exc),
        error=exc.detail,
    )


def _resolve_input_path(path: Path, *, policy: PathPolicy | None) -> Path:
    if policy is None:
        return resolve_workbook(path)
    return policy.ensure_workbook(path)


def _select_worksheet(ctx: RequestContext, name: str | None) -> WorksheetProxy:
    if name is None:
        return ctx.workbook.worksheets.get_active_worksheet()
    sheet = find_sheet(ctx, name)
    if sheet is None:
        raise ValueError(f"Sheet not found: {name}")
    return ctx.workbook.worksheets.get_item(sheet.title)


__all__ = [
    "ActionResultItem",
    "ActionRunRequest",
    "ActionRunResult",
    "run_actions",
    "run_actions_in_context",
]
