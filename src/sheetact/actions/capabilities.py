from __future__ import annotations

import logging

from pydantic import BaseModel

from sheetact.host import RequestContext

logger = logging.getLogger(__name__)


class HostCapabilities(BaseModel):
    """Optional host features the handlers choose their paths by."""

    native_autofill: bool = True
    charts: bool = True
    pivot_tables: bool = True
    slicers: bool = True
    shapes: bool = True
    threaded_comments: bool = True
    sparklines: bool = True
    linked_data_types: bool = True
    named_sheet_views: bool = True

    @classmethod
    def none(cls) -> HostCapabilities:
        """Capabilities of a host with no optional features."""
        return cls.model_validate({name: False for name in cls.model_fields})


_HOST_FEATURES = {
    "native_autofill": "autofill",
    "charts": "charts",
    "pivot_tables": "pivot_tables",
    "slicers": "slicers",
    "shapes": "shapes",
    "threaded_comments": "threaded_comments",
    "sparklines": "sparklines",
    "linked_data_types": "linked_data_types",
    "named_sheet_views": "named_sheet_views",
}


def detect_capabilities(ctx: RequestContext) -> HostCapabilities:
    """Probe the host once for the optional features it exposes."""
    available = ctx.capabilities
    detected = HostCapabilities.model_validate(
        {field: feature in available for field, feature in _HOST_FEATURES.items()}
    )
    missing = [field for field, value in detected.model_dump().items() if not value]
    if missing:
        logger.info("Host lacks optional features: %s", ", ".join(missing))
    return detected


__all__ = ["HostCapabilities", "detect_capabilities"]
