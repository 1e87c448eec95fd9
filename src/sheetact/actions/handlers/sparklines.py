"""Sparkline handlers."""

from __future__ import annotations

import logging

from sheetact.errors import ActionValidationError
from sheetact.host import SparklineGroupCollection
from sheetact.host.sparklines import SPARKLINE_OPTIONS, SPARKLINE_TYPES
from sheetact.shared.a1 import column_offset_to_letter

from ..models import ActionPayload
from .base import HandlerContext, handler
from .comments import anchor_cell

logger = logging.getLogger(__name__)

_TYPES = {name.casefold(): name for name in SPARKLINE_TYPES}


class CreateSparklinePayload(ActionPayload):
    source_range: str | None = None
    sparkline_type: str = "Line"
    color: str | None = None


class ConfigureSparklinePayload(ActionPayload):
    sparkline_type: str | None = None
    color: str | None = None
    show_high_point: bool | None = None
    show_low_point: bool | None = None
    show_first_point: bool | None = None
    show_last_point: bool | None = None
    show_negative_point: bool | None = None
    show_markers: bool | None = None
    min_axis_type: str | None = None
    max_axis_type: str | None = None
    min_axis_value: float | None = None
    max_axis_value: float | None = None
    line_color: str | None = None
    marker_color: str | None = None
    negative_color: str | None = None
    line_weight: float | None = None
    date_axis: bool | None = None
    date_range: str | None = None


class DeleteSparklinePayload(ActionPayload):
    delete_group: bool = False


def sparkline_type(value: str) -> str:
    resolved = _TYPES.get(value.replace(" ", "").replace("-", "").casefold())
    if resolved is None:
        raise ActionValidationError(
            f'Invalid sparklineType "{value}". Use {", ".join(SPARKLINE_TYPES)}.'
        )
    return resolved


def _groups(context: HandlerContext) -> SparklineGroupCollection:
    return context.require_range().worksheet.sparkline_groups


@handler("createSparkline", payload=CreateSparklinePayload)
async def create_sparkline(
    context: HandlerContext, payload: CreateSparklinePayload
) -> None:
    source = payload.source_range or context.source
    if not source:
        raise ActionValidationError("createSparkline requires 'sourceRange'")
    kind = sparkline_type(payload.sparkline_type)
    group = _groups(context).add(context.require_range(), source, kind)
    if payload.color:
        group.color = payload.color
    await context.ctx.sync()
    context.info(f"Created {kind.lower()} sparklines in {context.target} from {source}")


@handler("configureSparkline", payload=ConfigureSparklinePayload)
async def configure_sparkline(
    context: HandlerContext, payload: ConfigureSparklinePayload
) -> list[str]:
    group = _groups(context).get_item_at(anchor_cell(context))
    if payload.sparkline_type:
        group.sparkline_type = sparkline_type(payload.sparkline_type)
    if payload.color:
        group.color = payload.color
    changed: list[str] = []
    for option in SPARKLINE_OPTIONS:
        value = getattr(payload, option)
        if value is None:
            continue
        if option.endswith("_axis_type"):
            value = str(value).capitalize()
        group.set_option(option, value)
        changed.append(option)
    await context.ctx.sync()
    context.info(
        f"Configured sparklines at {context.target}"
        + (f": {', '.join(changed)}" if changed else "")
    )
    return changed


@handler("deleteSparkline", payload=DeleteSparklinePayload)
async def delete_sparkline(
    context: HandlerContext, payload: DeleteSparklinePayload
) -> None:
    collection = _groups(context)
    if payload.delete_group:
        collection.get_item_at(anchor_cell(context)).delete()
        await context.ctx.sync()
        context.info(f"Deleted sparkline group at {context.target}")
        return
    target = context.require_range()
    cells = [
        f"{column_offset_to_letter(column)}{row + 1}"
        for row in range(target.row_index, target.row_index + target.row_count)
        for column in range(
            target.column_index, target.column_index + target.column_count
        )
    ]
    for cell in cells:
        collection.get_item_at(cell).delete_at(cell)
    await context.ctx.sync()
    context.info(f"Deleted {len(cells)} sparkline(s) in {context.target}")


__all__ = ["sparkline_type"]
