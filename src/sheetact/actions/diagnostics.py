"""Diagnostic trace lines for executed actions.

The sink forwards every line to an injected callback (the caller's console,
a UI panel, a test list) and mirrors it to the ``sheetact.actions`` logger.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable
from datetime import datetime, timezone
import logging

from pydantic import BaseModel, Field

from .types import DiagnosticLevel

logger = logging.getLogger("sheetact.actions")

DiagnosticCallback = Callable[[str], None]
MAX_ENTRIES = 100

_LOG_LEVELS: dict[DiagnosticLevel, int] = {
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class DiagnosticEntry(BaseModel):
    """One recorded trace line."""

    level: DiagnosticLevel
    message: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class DiagnosticSink:
    """Receives free-text trace lines and keeps the most recent ones."""

    def __init__(
        self,
        callback: DiagnosticCallback | None = None,
        *,
        max_entries: int = MAX_ENTRIES,
    ) -> None:
        self._callback = callback
        self._entries: deque[DiagnosticEntry] = deque(maxlen=max_entries)

    @property
    def callback(self) -> DiagnosticCallback | None:
        return self._callback

    def set_callback(self, callback: DiagnosticCallback | None) -> None:
        self._callback = callback

    def emit(self, message: str, level: DiagnosticLevel = "info") -> None:
        """Record ``message``; a failing callback never breaks the caller."""
        self._entries.append(DiagnosticEntry(level=level, message=message))
        logger.log(_LOG_LEVELS[level], message)
        if self._callback is None:
            return
        try:
            self._callback(message)
        except Exception as exc:  # noqa: BLE001 - the callback is caller code
            logger.warning("Diagnostic callback failed: %s", exc)

    def info(self, message: str) -> None:
        self.emit(message, "info")

    def warning(self, message: str) -> None:
        self.emit(message, "warning")

    def error(self, message: str) -> None:
        self.emit(message, "error")

    def snapshot(self) -> list[DiagnosticEntry]:
        """Return the recorded entries, oldest first."""
        return list(self._entries)

    def messages(self) -> list[str]:
        return [entry.message for entry in self._entries]

    def clear(self) -> None:
        self._entries.clear()


__all__ = [
    "MAX_ENTRIES",
    "DiagnosticCallback",
    "DiagnosticEntry",
    "DiagnosticSink",
]
