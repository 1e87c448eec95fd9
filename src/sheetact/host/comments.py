"""Threaded comments (side model) and legacy notes (openpyxl comments)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from openpyxl.comments import Comment

from .client import ClientObject, HostError, HostProperty
from .range import format_bounds, parse_address
from .state import CommentReply, CommentThread

if TYPE_CHECKING:  # pragma: no cover - typing only
    from openpyxl.cell.cell import Cell

    from .worksheet import WorksheetProxy

logger = logging.getLogger(__name__)

DEFAULT_AUTHOR = "sheetact"


def _cell_key(address: str) -> str:
    min_row, min_col, _, _ = parse_address(address)
    return format_bounds((min_row, min_col, min_row, min_col))


class CommentCollection(ClientObject):
    """Threaded comments of one worksheet, keyed by anchor cell."""

    count = HostProperty()
    cells = HostProperty()

    def __init__(self, worksheet: WorksheetProxy) -> None:
        super().__init__(worksheet.context)
        self.worksheet = worksheet

    def _threads(self) -> dict[str, CommentThread]:
        if "threaded_comments" not in self.context.capabilities:
            raise HostError(
                "Threaded comments are not supported by this host.", code="ApiNotFound"
            )
        return self.context.state.for_sheet(self.worksheet._sheet()).comments

    def _read_count(self) -> int:
        return len(self._threads())

    def _read_cells(self) -> list[str]:
        return list(self._threads())

    def add(self, cell: str, content: str, author: str | None = None) -> CommentProxy:
        proxy = CommentProxy(self, cell)

        def _add() -> None:
            threads = self._threads()
            key = _cell_key(cell)
            if key in threads:
                raise HostError(
                    f"Cell {key} already has a comment thread.",
                    code="ItemAlreadyExists",
                )
            if not content.strip():
                raise HostError(
                    "Comment content must not be empty.", code="InvalidArgument"
                )
            threads[key] = CommentThread(
                cell=key, content=content, author=author or DEFAULT_AUTHOR
            )

        self._queue(_add)
        return proxy

    def get_item_by_cell(self, cell: str) -> CommentProxy:
        return CommentProxy(self, cell)

    def get_item_by_cell_or_null_object(self, cell: str) -> CommentProxy:
        return CommentProxy(self, cell)


class CommentProxy(ClientObject):
    """Comment thread anchored on one cell."""

    content = HostProperty(writable=True)
    resolved = HostProperty(writable=True)
    author = HostProperty()
    replies = HostProperty()
    cell = HostProperty()

    def __init__(self, collection: CommentCollection, cell: str) -> None:
        super().__init__(collection.context)
        self.collection = collection
        self._cell = cell

    def _resolve(self) -> CommentThread:
        key = _cell_key(self._cell)
        thread = self.collection._threads().get(key)
        if thread is None:
            raise HostError(f"No comment exists on cell {key}.", code="ItemNotFound")
        return thread

    def _exists(self) -> bool:
        if not self.collection.worksheet._exists():
            return False
        return _cell_key(self._cell) in self.collection._threads()

    def _read_content(self) -> str:
        return self._resolve().content

    def _write_content(self, value: str) -> None:
        if not value.strip():
            raise HostError(
                "Comment content must not be empty.", code="InvalidArgument"
            )
        self._resolve().content = value

    def _read_resolved(self) -> bool:
        return self._resolve().resolved

    def _write_resolved(self, value: bool) -> None:
        self._resolve().resolved = bool(value)

    def _read_author(self) -> str:
        return self._resolve().author

    def _read_replies(self) -> list[CommentReply]:
        return [reply.model_copy() for reply in self._resolve().replies]

    def _read_cell(self) -> str:
        return self._resolve().cell

    def add_reply(self, content: str, author: str | None = None) -> None:
        def _reply() -> None:
            thread = self._resolve()
            if not content.strip():
                raise HostError(
                    "Reply content must not be empty.", code="InvalidArgument"
                )
            thread.replies.append(
                CommentReply(content=content, author=author or DEFAULT_AUTHOR)
            )

        self._queue(_reply)

    def delete_last_reply(self) -> None:
        def _delete() -> None:
            thread = self._resolve()
            if not thread.replies:
                raise HostError(
                    f"The comment on {thread.cell} has no replies.",
                    code="InvalidOperation",
                )
            thread.replies.pop()

        self._queue(_delete)

    def delete(self) -> None:
        def _delete() -> None:
            thread = self._resolve()
            del self.collection._threads()[thread.cell]

        self._queue(_delete)


class NoteCollection(ClientObject):
    """Legacy cell notes stored as openpyxl comments."""

    def __init__(self, worksheet: WorksheetProxy) -> None:
        super().__init__(worksheet.context)
        self.worksheet = worksheet

    def add(self, cell: str, content: str, author: str | None = None) -> NoteProxy:
        proxy = NoteProxy(self.worksheet, cell)

        def _add() -> None:
            target = proxy._cell()
            if target.comment is not None:
                raise HostError(
                    f"Cell {target.coordinate} already has a note.",
                    code="ItemAlreadyExists",
                )
            if not content.strip():
                raise HostError(
                    "Note content must not be empty.", code="InvalidArgument"
                )
            target.comment = Comment(content, author or DEFAULT_AUTHOR)

        self._queue(_add)
        return proxy

    def get_item(self, cell: str) -> NoteProxy:
        return NoteProxy(self.worksheet, cell)


class NoteProxy(ClientObject):
    content = HostProperty(writable=True)
    author = HostProperty()

    def __init__(self, worksheet: WorksheetProxy, cell: str) -> None:
        super().__init__(worksheet.context)
        self.worksheet = worksheet
        self._address = cell

    def _cell(self) -> Cell:
        min_row, min_col, _, _ = parse_address(self._address)
        return self.worksheet._sheet().cell(row=min_row, column=min_col)

    def _note(self) -> Comment:
        note = self._cell().comment
        if note is None:
            raise HostError(
                f"No note exists on cell {_cell_key(self._address)}.",
                code="ItemNotFound",
            )
        return note

    def _exists(self) -> bool:
        return self.worksheet._exists() and self._cell().comment is not None

    def _read_content(self) -> str:
        return self._note().text

    def _write_content(self, value: str) -> None:
        note = self._note()
        self._cell().comment = Comment(value, note.author)

    def _read_author(self) -> str:
        return self._note().author

    def delete(self) -> None:
        def _delete() -> None:
            self._note()
            self._cell().comment = None

        self._queue(_delete)


__all__ = [
    "DEFAULT_AUTHOR",
    "CommentCollection",
    "CommentProxy",
    "NoteCollection",
    "NoteProxy",
]
