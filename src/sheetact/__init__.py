"""Apply structured spreadsheet actions through a batched workbook host."""

from __future__ import annotations

from .actions import ActionExecutor, ActionOutcome, execute
from .errors import (
    ActionError,
    ActionErrorDetail,
    ActionValidationError,
    NotFoundError,
    UnsupportedActionError,
)
from .host import HostError, RequestContext
from .runner import ActionResultItem, ActionRunRequest, ActionRunResult, run_actions

__all__ = [
    "ActionError",
    "ActionErrorDetail",
    "ActionExecutor",
    "ActionOutcome",
    "ActionResultItem",
    "ActionRunRequest",
    "ActionRunResult",
    "ActionValidationError",
    "HostError",
    "NotFoundError",
    "RequestContext",
    "UnsupportedActionError",
    "execute",
    "run_actions",
]
