from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from sheetact.shared.a1 import column_index_to_label, column_label_to_index, split_a1

from .client import ClientObject, HostError, HostProperty, RequestContext
from .range import Bounds, RangeProxy, parse_address
from .state import NamedSheetView

if TYPE_CHECKING:  # pragma: no cover - typing only
    from openpyxl.worksheet.worksheet import Worksheet

    from .charts import ChartCollection
    from .comments import CommentCollection, NoteCollection
    from .filters import AutoFilterProxy
    from .layout import PageLayoutProxy
    from .names import NamedItemCollection
    from .pivots import PivotTableCollection
    from .protection import WorksheetProtectionProxy
    from .shapes import ShapeCollection
    from .slicers import SlicerCollection
    from .sparklines import SparklineGroupCollection
    from .tables import TableCollection

logger = logging.getLogger(__name__)

_INVALID_SHEET_CHARS = re.compile(r"[\\/?*\[\]:]")
_VISIBILITY_TO_STATE = {
    "visible": "visible",
    "hidden": "hidden",
    "veryhidden": "veryHidden",
}
_STATE_TO_VISIBILITY = {
    "visible": "Visible",
    "hidden": "Hidden",
    "veryHidden": "VeryHidden",
}


def validate_sheet_name(name: str) -> str | None:
    """Return a reason when ``name`` is not a legal worksheet name."""
    if not name or not name.strip():
        return "Worksheet name must not be blank."
    if len(name) > 31:
        return "Worksheet name must be 31 characters or fewer."
    match = _INVALID_SHEET_CHARS.search(name)
    if match is not None:
        return f"Worksheet name contains an invalid character: {match.group(0)}"
    if name.startswith("'") or name.endswith("'"):
        return "Worksheet name must not start or end with an apostrophe."
    return None


def find_sheet(context: RequestContext, name: str) -> Worksheet | None:
    """Return the openpyxl worksheet named ``name`` (case-insensitive)."""
    folded = name.casefold()
    for sheet in context.book.worksheets:
        if sheet.title.casefold() == folded:
            return sheet
    return None


class WorksheetProxy(ClientObject):
    """Worksheet handle; the underlying sheet is looked up when a batch runs."""

    name = HostProperty(writable=True)
    position = HostProperty(writable=True)
    visibility = HostProperty(writable=True)
    zoom = HostProperty(writable=True)
    show_gridlines = HostProperty(writable=True)
    show_headings = HostProperty(writable=True)
    split = HostProperty()

    def __init__(
        self,
        context: RequestContext,
        name: str,
        sheet: Worksheet | None = None,
    ) -> None:
        super().__init__(context)
        self._name = name
        self._cached = sheet

    def __repr__(self) -> str:
        return f"WorksheetProxy({self._name!r})"

    def _sheet(self) -> Worksheet:
        cached = self._cached
        if cached is not None and cached in self.context.book.worksheets:
            return cached
        sheet = find_sheet(self.context, self._name)
        if sheet is None:
            raise HostError(
                f"The requested worksheet '{self._name}' doesn't exist.",
                code="ItemNotFound",
            )
        self._cached = sheet
        return sheet

    def _exists(self) -> bool:
        cached = self._cached
        if cached is not None and cached in self.context.book.worksheets:
            return True
        return find_sheet(self.context, self._name) is not None

    # -------------------------------------------------------------- properties

    def _read_name(self) -> str:
        return self._sheet().title

    def _write_name(self, value: str) -> None:
        sheet = self._sheet()
        reason = validate_sheet_name(value)
        if reason is not None:
            raise HostError(reason, code="InvalidArgument")
        existing = find_sheet(self.context, value)
        if existing is not None and existing is not sheet:
            raise HostError(
                f"A worksheet named '{value}' already exists.", code="ItemAlreadyExists"
            )
        old = sheet.title
        if old != value and old.casefold() == value.casefold():
            # openpyxl dedupes titles case-insensitively, the sheet included
            sheet.title = _next_sheet_name(self.context.book.sheetnames, "rename")
        sheet.title = value
        self._name = value
        self.context.state.rename_sheet(old, value)

    def _read_position(self) -> int:
        return self.context.book.worksheets.index(self._sheet())

    def _write_position(self, value: int) -> None:
        book = self.context.book
        sheet = self._sheet()
        last = len(book.worksheets) - 1
        target = last if value == -1 else value
        if not 0 <= target <= last:
            raise HostError(
                f"Invalid worksheet position: {value}", code="InvalidArgument"
            )
        current = book.worksheets.index(sheet)
        book.move_sheet(sheet, offset=target - current)

    def _read_visibility(self) -> str:
        return _STATE_TO_VISIBILITY.get(self._sheet().sheet_state, "Visible")

    def _write_visibility(self, value: str) -> None:
        state = _VISIBILITY_TO_STATE.get(str(value).lower())
        if state is None:
            raise HostError(f"Invalid visibility: {value}", code="InvalidArgument")
        sheet = self._sheet()
        book = self.context.book
        if state != "visible":
            others = [
                other
                for other in book.worksheets
                if other is not sheet and other.sheet_state == "visible"
            ]
            if not others:
                raise HostError(
                    "A workbook must contain at least one visible worksheet.",
                    code="InvalidOperation",
                )
            if book.active is sheet:
                book.active = others[0]
        sheet.sheet_state = state

    def _read_zoom(self) -> int:
        return int(self._sheet().sheet_view.zoomScale or 100)

    def _write_zoom(self, value: int) -> None:
        if not 10 <= int(value) <= 400:
            raise HostError("Zoom must be between 10 and 400.", code="InvalidArgument")
        self._sheet().sheet_view.zoomScale = int(value)

    def _read_show_gridlines(self) -> bool:
        return self._sheet().sheet_view.showGridLines is not False

    def _write_show_gridlines(self, value: bool) -> None:
        self._sheet().sheet_view.showGridLines = bool(value)

    def _read_show_headings(self) -> bool:
        return self._sheet().sheet_view.showRowColHeaders is not False

    def _write_show_headings(self, value: bool) -> None:
        self._sheet().sheet_view.showRowColHeaders = bool(value)

    def _read_split(self) -> tuple[int, int] | None:
        return self.context.state.for_sheet(self._sheet()).split

    # ----------------------------------------------------------------- ranges

    def get_range(self, address: str) -> RangeProxy:
        return RangeProxy(self, lambda: parse_address(address))

    def get_range_by_indexes(
        self, row: int, column: int, row_count: int, column_count: int
    ) -> RangeProxy:
        """Return a range from a 0-based origin and a size."""
        bounds = (row + 1, column + 1, row + row_count, column + column_count)
        return RangeProxy(self, lambda: bounds)

    def get_used_range(self) -> RangeProxy:
        def _bounds() -> Bounds:
            sheet = self._sheet()
            return sheet.min_row, sheet.min_column, sheet.max_row, sheet.max_column

        return RangeProxy(self, _bounds)

    # --------------------------------------------------------------- children

    @property
    def tables(self) -> TableCollection:
        from .tables import TableCollection

        return TableCollection(self)

    @property
    def charts(self) -> ChartCollection:
        from .charts import ChartCollection

        return ChartCollection(self)

    @property
    def pivot_tables(self) -> PivotTableCollection:
        from .pivots import PivotTableCollection

        return PivotTableCollection(self)

    @property
    def slicers(self) -> SlicerCollection:
        from .slicers import SlicerCollection

        return SlicerCollection(self)

    @property
    def shapes(self) -> ShapeCollection:
        from .shapes import ShapeCollection

        return ShapeCollection(self)

    @property
    def comments(self) -> CommentCollection:
        from .comments import CommentCollection

        return CommentCollection(self)

    @property
    def notes(self) -> NoteCollection:
        from .comments import NoteCollection

        return NoteCollection(self)

    @property
    def sparkline_groups(self) -> SparklineGroupCollection:
        from .sparklines import SparklineGroupCollection

        return SparklineGroupCollection(self)

    @property
    def names(self) -> NamedItemCollection:
        from .names import NamedItemCollection

        return NamedItemCollection(self.context, worksheet=self)

    @property
    def protection(self) -> WorksheetProtectionProxy:
        from .protection import WorksheetProtectionProxy

        return WorksheetProtectionProxy(self)

    @property
    def page_layout(self) -> PageLayoutProxy:
        from .layout import PageLayoutProxy

        return PageLayoutProxy(self)

    @property
    def auto_filter(self) -> AutoFilterProxy:
        from .filters import AutoFilterProxy

        return AutoFilterProxy(self)

    @property
    def freeze_panes(self) -> FreezePanesProxy:
        return FreezePanesProxy(self)

    @property
    def named_sheet_views(self) -> NamedSheetViewCollection:
        return NamedSheetViewCollection(self)

    # ---------------------------------------------------------------- methods

    def insert_rows(self, first: int, count: int = 1) -> None:
        """Insert ``count`` rows before 1-based row ``first``."""
        self._queue(lambda: self._sheet().insert_rows(first, count))

    def delete_rows(self, first: int, count: int = 1) -> None:
        self._queue(lambda: self._sheet().delete_rows(first, count))

    def insert_columns(self, first: int, count: int = 1) -> None:
        """Insert ``count`` columns before 1-based column ``first``."""
        self._queue(lambda: self._sheet().insert_cols(first, count))

    def delete_columns(self, first: int, count: int = 1) -> None:
        self._queue(lambda: self._sheet().delete_cols(first, count))

    def activate(self) -> None:
        def _activate() -> None:
            sheet = self._sheet()
            if sheet.sheet_state != "visible":
                raise HostError(
                    "A hidden worksheet cannot be activated.", code="InvalidOperation"
                )
            self.context.book.active = sheet

        self._queue(_activate)

    def delete(self) -> None:
        def _delete() -> None:
            sheet = self._sheet()
            book = self.context.book
            visible = [other for other in book.worksheets if other.sheet_state == "visible"]
            if len(book.worksheets) == 1 or visible == [sheet]:
                raise HostError(
                    "A workbook must contain at least one visible worksheet.",
                    code="InvalidOperation",
                )
            book.remove(sheet)
            book.active = book.worksheets.index(
                next(other for other in book.worksheets if other.sheet_state == "visible")
            )
            self.context.state.drop_sheet(sheet)

        self._queue(_delete)

    def split_panes(self, row: int, column: int) -> None:
        """Split the window at 0-based (row, column); (0, 0) removes the split."""

        def _split() -> None:
            if row < 0 or column < 0:
                raise HostError(
                    "Split position must not be negative.", code="InvalidArgument"
                )
            side = self.context.state.for_sheet(self._sheet())
            side.split = None if (row, column) == (0, 0) else (row, column)

        self._queue(_split)


class WorksheetCollection(ClientObject):
    """Worksheets of the workbook, in document order."""

    names = HostProperty()
    items = HostProperty()
    count = HostProperty()

    def _read_names(self) -> list[str]:
        return [sheet.title for sheet in self.context.book.worksheets]

    def _read_items(self) -> list[WorksheetProxy]:
        return [
            WorksheetProxy(self.context, sheet.title, sheet)
            for sheet in self.context.book.worksheets
        ]

    def _read_count(self) -> int:
        return len(self.context.book.worksheets)

    def get_item(self, name: str) -> WorksheetProxy:
        return WorksheetProxy(self.context, name)

    def get_item_or_null_object(self, name: str) -> WorksheetProxy:
        return WorksheetProxy(self.context, name)

    def get_active_worksheet(self) -> WorksheetProxy:
        active = self.context.book.active
        title = active.title if active is not None else self.context.book.worksheets[0].title
        return WorksheetProxy(self.context, title)

    def add(self, name: str | None = None) -> WorksheetProxy:
        """Queue creation of a worksheet (``SheetN`` when no name is given)."""
        book = self.context.book
        title = name or _next_sheet_name([sheet.title for sheet in book.worksheets])
        proxy = WorksheetProxy(self.context, title)

        def _add() -> None:
            reason = validate_sheet_name(title)
            if reason is not None:
                raise HostError(reason, code="InvalidArgument")
            if find_sheet(self.context, title) is not None:
                raise HostError(
                    f"A worksheet named '{title}' already exists.",
                    code="ItemAlreadyExists",
                )
            proxy._cached = book.create_sheet(title)

        self._queue(_add)
        return proxy


class FreezePanesProxy(ClientObject):
    """Frozen panes of a worksheet view."""

    location = HostProperty()

    def __init__(self, worksheet: WorksheetProxy) -> None:
        super().__init__(worksheet.context)
        self.worksheet = worksheet

    def _read_location(self) -> str | None:
        return self.worksheet._sheet().freeze_panes

    def _set(self, rows: int, columns: int) -> None:
        if rows < 0 or columns < 0:
            raise HostError(
                "Freeze counts must not be negative.", code="InvalidArgument"
            )
        sheet = self.worksheet._sheet()
        if rows == 0 and columns == 0:
            sheet.freeze_panes = None
            return
        sheet.freeze_panes = f"{column_index_to_label(columns + 1)}{rows + 1}"

    def freeze_rows(self, count: int) -> None:
        self._queue(lambda: self._set(count, 0))

    def freeze_columns(self, count: int) -> None:
        self._queue(lambda: self._set(0, count))

    def freeze_at_cell(self, address: str) -> None:
        """Freeze rows above and columns left of ``address``."""

        def _freeze() -> None:
            try:
                column, row = split_a1(address.strip())
            except ValueError as exc:
                raise HostError(str(exc), code="InvalidArgument") from exc
            self._set(row - 1, column_label_to_index(column) - 1)

        self._queue(_freeze)

    def unfreeze(self) -> None:
        self._queue(lambda: self._set(0, 0))


class NamedSheetViewCollection(ClientObject):
    """Named sheet views kept in the side model."""

    names = HostProperty()

    def __init__(self, worksheet: WorksheetProxy) -> None:
        super().__init__(worksheet.context)
        self.worksheet = worksheet

    def _read_names(self) -> list[str]:
        side = self.context.state.for_sheet(self.worksheet._sheet())
        return [view.name for view in side.views]

    def add(
        self, name: str, *, show_gridlines: bool = True, show_headings: bool = True
    ) -> None:
        def _add() -> None:
            if "named_sheet_views" not in self.context.capabilities:
                raise HostError(
                    "Named sheet views are not supported by this host.",
                    code="ApiNotFound",
                )
            side = self.context.state.for_sheet(self.worksheet._sheet())
            if any(view.name.casefold() == name.casefold() for view in side.views):
                raise HostError(
                    f"A sheet view named '{name}' already exists.",
                    code="ItemAlreadyExists",
                )
            side.views.append(
                NamedSheetView(
                    name=name, show_gridlines=show_gridlines, show_headings=show_headings
                )
            )

        self._queue(_add)


def _next_sheet_name(existing: list[str], prefix: str = "Sheet") -> str:
    folded = {name.casefold() for name in existing}
    index = len(existing) + 1
    while f"{prefix}{index}".casefold() in folded:
        index += 1
    return f"{prefix}{index}"


__all__ = [
    "FreezePanesProxy",
    "NamedSheetViewCollection",
    "WorksheetCollection",
    "WorksheetProxy",
    "find_sheet",
    "validate_sheet_name",
]
