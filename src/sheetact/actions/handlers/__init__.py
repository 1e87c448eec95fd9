"""Built-in action handlers.

Importing this package registers every handler module on
``DEFAULT_REGISTRY``.
"""

from __future__ import annotations

from . import (  # noqa: F401
    cells,
    charts,
    comments,
    data,
    data_types,
    fallback,
    hyperlinks,
    names,
    page_layout,
    pivots,
    protection,
    shapes,
    sheets,
    slicers,
    sparklines,
    structure,
    tables,
)
from .base import (
    DEFAULT_REGISTRY,
    ActionHandler,
    FunctionHandler,
    HandlerContext,
    HandlerRegistry,
    handler,
)

__all__ = [
    "DEFAULT_REGISTRY",
    "ActionHandler",
    "FunctionHandler",
    "HandlerContext",
    "HandlerRegistry",
    "handler",
]
