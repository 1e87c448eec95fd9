from __future__ import annotations

import logging

from .client import ClientObject, ClientResult, RequestContext
from .names import NamedItemCollection
from .pivots import refresh_all
from .protection import WorkbookProtectionProxy
from .worksheet import WorksheetCollection, WorksheetProxy

logger = logging.getLogger(__name__)


class WorkbookProxy(ClientObject):
    """Root object of a request context."""

    def __init__(self, context: RequestContext) -> None:
        super().__init__(context)
        self.worksheets = WorksheetCollection(context)
        self.names = NamedItemCollection(context)
        self.protection = WorkbookProtectionProxy(context)

    def get_active_worksheet(self) -> WorksheetProxy:
        return self.worksheets.get_active_worksheet()

    def refresh_all_pivots(self) -> ClientResult[int]:
        """Re-render every pivot table; the result is how many were refreshed."""
        return self._queue_result(lambda: refresh_all(self.context))


__all__ = ["WorkbookProxy"]
