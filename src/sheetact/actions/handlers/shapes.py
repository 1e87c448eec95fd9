"""Floating shape, image and text box handlers."""

from __future__ import annotations

import logging

from pydantic import Field

from sheetact.errors import ActionValidationError
from sheetact.host import HostError, ShapeProxy, WorksheetProxy
from sheetact.host.shapes import (
    GEOMETRIC_SHAPE_TYPES,
    LINE_DASH_STYLES,
    Z_ORDER_POSITIONS,
    decode_image,
)

from ..models import ActionPayload
from .base import HandlerContext, handler

logger = logging.getLogger(__name__)

_SHAPE_TYPES = {name.casefold(): name for name in GEOMETRIC_SHAPE_TYPES}
_DASH_STYLES = {name.casefold(): name for name in LINE_DASH_STYLES}
_Z_ORDERS = {name.casefold(): name for name in Z_ORDER_POSITIONS}


class ShapeGeometry(ActionPayload):
    name: str | None = None
    left: float | None = None
    top: float | None = None
    width: float | None = None
    height: float | None = None


class InsertShapePayload(ShapeGeometry):
    shape_type: str = "Rectangle"
    width: float | None = 150.0
    height: float | None = 100.0
    fill_color: str | None = None
    line_color: str | None = None
    text: str | None = None


class InsertImagePayload(ShapeGeometry):
    base64: str | None = None
    alt_text: str | None = None


class InsertTextBoxPayload(ShapeGeometry):
    text: str | None = None
    width: float | None = 200.0
    height: float | None = 50.0
    font_name: str | None = None
    font_size: float | None = None
    font_color: str | None = None
    fill_color: str | None = None
    horizontal_alignment: str | None = None


class FormatShapePayload(ShapeGeometry):
    fill_color: str | None = None
    line_color: str | None = None
    line_width: float | None = None
    line_style: str | None = None
    text: str | None = None
    font_color: str | None = None
    font_size: float | None = None
    rotation: float | None = None
    transparency: float | None = None


class ShapeNamesPayload(ActionPayload):
    shape_names: list[str] = Field(default_factory=list)


class GroupShapesPayload(ShapeNamesPayload):
    group_name: str | None = None


class ArrangePayload(ActionPayload):
    z_order: str = "BringToFront"


def _choice(table: dict[str, str], value: str, label: str) -> str:
    resolved = table.get(value.strip().casefold())
    if resolved is None:
        raise ActionValidationError(
            f'Invalid {label} "{value}". Use {", ".join(table.values())}.'
        )
    return resolved


async def _anchor(
    context: HandlerContext, geometry: ShapeGeometry
) -> tuple[WorksheetProxy, float | None, float | None]:
    """The sheet to draw on and the left/top, taken from a target cell if any."""
    if not context.target:
        return context.worksheet, geometry.left, geometry.top
    cell = (await context.resolve(context.target)).get_cell(0, 0)
    cell.load("left, top")
    await context.ctx.sync()
    left = geometry.left if geometry.left is not None else cell.left
    top = geometry.top if geometry.top is not None else cell.top
    return cell.worksheet, left, top


def _place(
    shape: ShapeProxy,
    geometry: ShapeGeometry,
    left: float | None,
    top: float | None,
) -> None:
    if geometry.name:
        shape.name = geometry.name
    if left is not None:
        shape.left = left
    if top is not None:
        shape.top = top
    if geometry.width is not None:
        shape.width = geometry.width
    if geometry.height is not None:
        shape.height = geometry.height


async def _finish(context: HandlerContext, shape: ShapeProxy, label: str) -> str:
    shape.load("name, left, top")
    await context.ctx.sync()
    context.info(f"Inserted {label} {shape.name} at ({shape.left}, {shape.top})")
    return shape.name


@handler("insertShape", payload=InsertShapePayload)
async def insert_shape(context: HandlerContext, payload: InsertShapePayload) -> str:
    shape_type = _choice(_SHAPE_TYPES, payload.shape_type, "shapeType")
    sheet, left, top = await _anchor(context, payload)
    shape = sheet.shapes.add_geometric_shape(shape_type)
    _place(shape, payload, left, top)
    if payload.fill_color:
        shape.fill_color = payload.fill_color
    if payload.line_color:
        shape.line_color = payload.line_color
    if payload.text is not None:
        shape.text = payload.text
    return await _finish(context, shape, shape_type.lower())


@handler("insertImage", payload=InsertImagePayload, required=("base64",))
async def insert_image(context: HandlerContext, payload: InsertImagePayload) -> str:
    try:
        decode_image(payload.base64 or "")
    except HostError as exc:
        raise ActionValidationError(str(exc)) from exc
    sheet, left, top = await _anchor(context, payload)
    shape = sheet.shapes.add_image(payload.base64 or "")
    _place(shape, payload, left, top)
    if payload.alt_text:
        shape.alt_text = payload.alt_text
    return await _finish(context, shape, "image")


@handler("insertTextBox", payload=InsertTextBoxPayload, required=("text",))
async def insert_text_box(
    context: HandlerContext, payload: InsertTextBoxPayload
) -> str:
    sheet, left, top = await _anchor(context, payload)
    shape = sheet.shapes.add_text_box(payload.text or "")
    _place(shape, payload, left, top)
    for attr in ("font_name", "font_size", "font_color", "fill_color"):
        value = getattr(payload, attr)
        if value is not None:
            setattr(shape, attr, value)
    if payload.horizontal_alignment:
        shape.horizontal_alignment = payload.horizontal_alignment.strip().capitalize()
    return await _finish(context, shape, "text box")


@handler("formatShape", payload=FormatShapePayload)
async def format_shape(context: HandlerContext, payload: FormatShapePayload) -> None:
    if payload.transparency is not None and not 0 <= payload.transparency <= 1:
        raise ActionValidationError("transparency must be between 0 and 1")
    dash_style = None
    if payload.line_style:
        dash_style = _choice(_DASH_STYLES, payload.line_style, "lineStyle")

    located = await context.locate()
    shape: ShapeProxy = located.obj
    _place(shape, payload, payload.left, payload.top)
    updates = {
        "fill_color": payload.fill_color,
        "line_color": payload.line_color,
        "line_weight": payload.line_width,
        "line_dash_style": dash_style,
        "text": payload.text,
        "font_color": payload.font_color,
        "font_size": payload.font_size,
        "rotation": payload.rotation,
        "fill_transparency": payload.transparency,
    }
    for attr, value in updates.items():
        if value is not None:
            setattr(shape, attr, value)
    await context.ctx.sync()
    context.info(f"Formatted shape {context.target}")


@handler("deleteShape", payload=ShapeNamesPayload)
async def delete_shape(context: HandlerContext, payload: ShapeNamesPayload) -> int:
    names = payload.shape_names or [context.require_target()]
    for name in names:
        located = await context.locate(name)
        located.obj.delete()
    await context.ctx.sync()
    context.info(f"Deleted {len(names)} shape(s): {', '.join(names)}")
    return len(names)


@handler("groupShapes", payload=GroupShapesPayload)
async def group_shapes(context: HandlerContext, payload: GroupShapesPayload) -> str:
    names = payload.shape_names or [
        part.strip() for part in context.require_target().split(",") if part.strip()
    ]
    if len(names) < 2:
        raise ActionValidationError("groupShapes requires at least two shapeNames")
    first = await context.locate(names[0])
    owner: WorksheetProxy = first.worksheet or context.worksheet
    group = owner.shapes.add_group(names)
    if payload.group_name:
        group.name = payload.group_name
    group.load("name")
    await context.ctx.sync()
    context.info(f"Grouped {', '.join(names)} as {group.name}")
    return group.name


@handler("ungroupShapes")
async def ungroup_shapes(context: HandlerContext, payload: ActionPayload) -> None:
    located = await context.locate()
    located.obj.ungroup()
    await context.ctx.sync()
    context.info(f"Ungrouped {context.target}")


@handler("arrangeShapes", payload=ArrangePayload)
async def arrange_shapes(context: HandlerContext, payload: ArrangePayload) -> None:
    position = _choice(_Z_ORDERS, payload.z_order, "zOrder")
    located = await context.locate()
    located.obj.set_z_order(position)
    await context.ctx.sync()
    context.info(f"Applied {position} to shape {context.target}")


__all__ = ["InsertShapePayload", "FormatShapePayload"]
