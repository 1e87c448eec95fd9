"""Slicer handlers.

Reconnecting a slicer recreates it on the new source's sheet. The new
source and field are checked before the original slicer is deleted, so a
failed reconnection leaves the workbook unchanged.
"""

from __future__ import annotations

import logging
from typing import Literal

from sheetact.errors import ActionValidationError, NotFoundError
from sheetact.host import SlicerProxy, WorksheetProxy
from sheetact.host.slicers import SLICER_SORT_ORDERS, is_valid_slicer_style

from ..locator import Located
from ..models import ActionPayload
from .base import HandlerContext, handler

logger = logging.getLogger(__name__)

DEFAULT_SLICER_STYLE = "SlicerStyleLight1"
_GEOMETRY = ("left", "top", "width", "height")


class SlicerOptions(ActionPayload):
    caption: str | None = None
    style: str | None = None
    left: float | None = None
    top: float | None = None
    width: float | None = None
    height: float | None = None
    selected_items: list[str] | None = None
    multi_select: bool | None = None


class CreateSlicerPayload(SlicerOptions):
    source_type: Literal["table", "pivot"] | None = None
    field: str | None = None
    slicer_name: str | None = None
    left: float | None = 100.0
    top: float | None = 100.0
    width: float | None = 200.0
    height: float | None = 200.0


class ConfigureSlicerPayload(SlicerOptions):
    sort_by: str | None = None
    clear_filters: bool = False


class ConnectTablePayload(ActionPayload):
    table_name: str | None = None
    field: str | None = None


class ConnectPivotPayload(ActionPayload):
    pivot_name: str | None = None
    field: str | None = None


def apply_options(
    context: HandlerContext, slicer: SlicerProxy, options: SlicerOptions
) -> None:
    """Queue caption, style, geometry and selection settings."""
    if options.caption is not None:
        slicer.caption = options.caption
    if options.style is not None:
        style = options.style
        if not is_valid_slicer_style(style):
            context.warn(f"Invalid slicer style {style}; using {DEFAULT_SLICER_STYLE}")
            style = DEFAULT_SLICER_STYLE
        slicer.style = style
    for attr in _GEOMETRY:
        value = getattr(options, attr)
        if value is not None:
            setattr(slicer, attr, value)
    if options.multi_select is not None:
        slicer.multi_select = options.multi_select
    if options.selected_items:
        slicer.select_items(options.selected_items)


async def _source(
    context: HandlerContext, name: str, source_type: str | None
) -> tuple[str, Located]:
    if source_type == "table":
        return "table", await context.locate(name, "table")
    if source_type == "pivot":
        return "pivot", await context.locate(name, "pivot_table")
    try:
        return "table", await context.locate(name, "table")
    except NotFoundError:
        logger.debug("No table named %s; trying pivot tables", name)
    try:
        return "pivot", await context.locate(name, "pivot_table")
    except NotFoundError as exc:
        raise ActionValidationError(
            f'No table or pivot table named "{name}" found.'
        ) from exc


@handler("createSlicer", payload=CreateSlicerPayload, required=("field",))
async def create_slicer(context: HandlerContext, payload: CreateSlicerPayload) -> str:
    source_kind, located = await _source(
        context, context.require_target(), payload.source_type
    )
    owner: WorksheetProxy = located.worksheet or context.worksheet
    located.obj.load("name")
    await context.ctx.sync()
    slicer = owner.slicers.add(
        source_kind, located.obj.name, payload.field or "", payload.slicer_name
    )
    await context.ctx.sync()

    apply_options(context, slicer, payload)
    slicer.load("name")
    await context.ctx.sync()
    context.info(
        f"Created slicer {slicer.name} on {payload.field} of {source_kind} "
        f"{located.obj.name}"
    )
    return slicer.name


@handler("configureSlicer", payload=ConfigureSlicerPayload)
async def configure_slicer(
    context: HandlerContext, payload: ConfigureSlicerPayload
) -> None:
    located = await context.locate()
    slicer: SlicerProxy = located.obj
    if payload.sort_by is not None:
        if payload.sort_by not in SLICER_SORT_ORDERS:
            raise ActionValidationError(
                f'Invalid sortBy "{payload.sort_by}". '
                f"Use {', '.join(SLICER_SORT_ORDERS)}."
            )
        slicer.sort_by = payload.sort_by
    if payload.clear_filters:
        slicer.clear_filters()
    apply_options(context, slicer, payload)
    await context.ctx.sync()
    context.info(f"Configured slicer {context.target}")


async def reconnect(
    context: HandlerContext,
    source_kind: Literal["table", "pivot"],
    source_name: str | None,
    field: str | None,
) -> str:
    """Recreate the target slicer over another source, keeping its look."""
    if not source_name:
        label = "tableName" if source_kind == "table" else "pivotName"
        raise ActionValidationError(f"{context.kind} requires '{label}'")
    located = await context.locate()
    old: SlicerProxy = located.obj
    old.load("name, caption, style, left, top, width, height, multi_select, field")

    namespace = "table" if source_kind == "table" else "pivot_table"
    source = await context.locate(source_name, namespace)
    if source_kind == "table":
        source.obj.load("name, header_names")
    else:
        source.obj.load("name, field_names")
    await context.ctx.sync()

    new_field = field or old.field
    available = (
        source.obj.header_names if source_kind == "table" else source.obj.field_names
    )
    if new_field.casefold() not in {str(name).casefold() for name in available}:
        raise ActionValidationError(
            f'Field "{new_field}" not found in {source_kind} {source.obj.name}. '
            f"Available: {', '.join(str(name) for name in available)}"
        )

    owner = source.worksheet or context.worksheet
    old.delete()
    slicer = owner.slicers.add(source_kind, source.obj.name, new_field, old.name)
    slicer.caption = old.caption
    slicer.style = old.style
    for attr in _GEOMETRY:
        setattr(slicer, attr, getattr(old, attr))
    slicer.multi_select = old.multi_select
    await context.ctx.sync()
    context.info(
        f"Connected slicer {old.name} to {source_kind} {source.obj.name} ({new_field})"
    )
    return old.name


@handler("connectSlicerToTable", payload=ConnectTablePayload)
async def connect_slicer_to_table(
    context: HandlerContext, payload: ConnectTablePayload
) -> str:
    return await reconnect(context, "table", payload.table_name, payload.field)


@handler("connectSlicerToPivot", payload=ConnectPivotPayload)
async def connect_slicer_to_pivot(
    context: HandlerContext, payload: ConnectPivotPayload
) -> str:
    return await reconnect(context, "pivot", payload.pivot_name, payload.field)


@handler("deleteSlicer")
async def delete_slicer(context: HandlerContext, payload: ActionPayload) -> None:
    located = await context.locate()
    located.obj.delete()
    await context.ctx.sync()
    context.info(f"Deleted slicer {context.target}")


__all__ = [
    "DEFAULT_SLICER_STYLE",
    "CreateSlicerPayload",
    "apply_options",
    "reconnect",
]
