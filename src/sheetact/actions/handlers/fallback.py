from __future__ import annotations

import json
import logging
from typing import Any

from ..models import ActionPayload
from .base import HandlerContext

logger = logging.getLogger(__name__)


async def assign_raw_data(context: HandlerContext, payload: ActionPayload) -> None:
    """Best-effort handling of an unknown kind: write ``data`` into the target."""
    target = context.require_range()
    value: Any = payload.data_text if payload.data_text is not None else payload.raw
    if value is None:
        context.info(f"No data for {context.kind}; nothing applied")
        return
    if not isinstance(value, (str, int, float, bool)):
        value = json.dumps(value, ensure_ascii=False)
    target.get_cell(0, 0).values = [[value]]
    await context.ctx.sync()
    context.info("Applied default action with data")


__all__ = ["assign_raw_data"]
