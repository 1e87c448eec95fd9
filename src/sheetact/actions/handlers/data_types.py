"""Linked data type (entity value) handlers."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import Field

from sheetact.errors import ActionValidationError
from sheetact.host import LinkedDataType

from ..models import ActionPayload
from .base import HandlerContext, handler

logger = logging.getLogger(__name__)


class InsertDataTypePayload(ActionPayload):
    display_text: str | None = None
    properties: dict[str, Any] = Field(default_factory=dict)
    basic_value: Any = None


class RefreshDataTypePayload(ActionPayload):
    properties: dict[str, Any] = Field(default_factory=dict)
    merge_properties: bool = True


@handler("insertDataType", payload=InsertDataTypePayload, required=("display_text",))
async def insert_data_type(
    context: HandlerContext, payload: InsertDataTypePayload
) -> None:
    target = context.require_range()
    target.data_type = LinkedDataType(
        display_text=payload.display_text or "",
        basic_value=payload.basic_value,
        properties=payload.properties,
    )
    await context.ctx.sync()
    context.info(
        f'Inserted data type "{payload.display_text}" with '
        f"{len(payload.properties)} propert(ies) in {target.address}"
    )


@handler("refreshDataType", payload=RefreshDataTypePayload)
async def refresh_data_type(
    context: HandlerContext, payload: RefreshDataTypePayload
) -> dict[str, Any]:
    target = context.require_range()
    target.load("data_type")
    await context.ctx.sync()
    current = target.data_type
    if current is None:
        raise ActionValidationError(f"No data type exists in {target.address}")
    if payload.merge_properties:
        properties = {**current.properties, **payload.properties}
    else:
        properties = dict(payload.properties)
    target.data_type = current.model_copy(update={"properties": properties})
    await context.ctx.sync()
    context.info(f"Refreshed data type in {target.address}")
    return properties


__all__ = ["InsertDataTypePayload", "RefreshDataTypePayload"]
