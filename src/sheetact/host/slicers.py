from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Literal

from .client import ClientObject, HostError, HostProperty, RequestContext, find_key
from .pivots import find_pivot, read_source
from .range import parse_address
from .state import SlicerState
from .tables import find_table

if TYPE_CHECKING:  # pragma: no cover - typing only
    from openpyxl.worksheet.worksheet import Worksheet

    from .worksheet import WorksheetProxy

logger = logging.getLogger(__name__)

SlicerSourceKind = Literal["table", "pivot"]
SLICER_SORT_ORDERS = ("DataSourceOrder", "Ascending", "Descending")
_STYLE_PATTERN = re.compile(r"^SlicerStyle(Light[1-6]|Dark[1-6]|Other[12])$")


def is_valid_slicer_style(name: str) -> bool:
    return bool(_STYLE_PATTERN.match(name))


def iter_slicers(context: RequestContext) -> list[tuple[Worksheet, SlicerState]]:
    found: list[tuple[Worksheet, SlicerState]] = []
    for sheet in context.book.worksheets:
        side = context.state.for_sheet(sheet)
        found.extend((sheet, slicer) for slicer in side.slicers.values())
    return found


def source_field_values(
    context: RequestContext, kind: SlicerSourceKind, source_name: str, field: str
) -> tuple[str, list[str]]:
    """Return the canonical field name and its distinct item captions."""
    if kind == "table":
        located = find_table(context, source_name)
        if located is None:
            raise HostError(
                f"The requested table '{source_name}' doesn't exist.",
                code="ItemNotFound",
            )
        sheet, table = located
        min_row, min_col, max_row, max_col = parse_address(table.ref)
        grid = [
            list(row)
            for row in sheet.iter_rows(
                min_row=min_row,
                max_row=max_row,
                min_col=min_col,
                max_col=max_col,
                values_only=True,
            )
        ]
    else:
        found = find_pivot(context, source_name)
        if found is None:
            raise HostError(
                f"The requested pivot table '{source_name}' doesn't exist.",
                code="ItemNotFound",
            )
        grid = read_source(context, found[1])
    headers = ["" if value is None else str(value) for value in grid[0]] if grid else []
    key = find_key({header: None for header in headers}, field)
    if key is None:
        raise HostError(
            f"Field '{field}' was not found in {kind} '{source_name}'. "
            f"Available fields: {', '.join(headers)}",
            code="InvalidArgument",
        )
    index = headers.index(key)
    items: dict[str, None] = {}
    for row in grid[1:]:
        value = row[index]
        if value not in (None, ""):
            items.setdefault(str(value), None)
    return key, list(items)


class SlicerCollection(ClientObject):
    """Slicers placed on one worksheet."""

    names = HostProperty()
    count = HostProperty()

    def __init__(self, worksheet: WorksheetProxy) -> None:
        super().__init__(worksheet.context)
        self.worksheet = worksheet

    def _read_names(self) -> list[str]:
        side = self.context.state.for_sheet(self.worksheet._sheet())
        return list(side.slicers)

    def _read_count(self) -> int:
        return len(self.context.state.for_sheet(self.worksheet._sheet()).slicers)

    def get_item(self, name: str) -> SlicerProxy:
        return SlicerProxy(self.worksheet, name)

    def get_item_or_null_object(self, name: str) -> SlicerProxy:
        return SlicerProxy(self.worksheet, name)

    def add(
        self,
        source_kind: SlicerSourceKind,
        source_name: str,
        field: str,
        name: str | None = None,
    ) -> SlicerProxy:
        """Queue a slicer over ``field`` of a table or pivot table."""
        proxy = SlicerProxy(self.worksheet, name or "")

        def _add() -> None:
            if "slicers" not in self.context.capabilities:
                raise HostError(
                    "Slicers are not supported by this host.", code="ApiNotFound"
                )
            key, items = source_field_values(self.context, source_kind, source_name, field)
            taken = {slicer.name.casefold() for _, slicer in iter_slicers(self.context)}
            stem = re.sub(r"\W+", "_", key)
            slicer_name = name or f"Slicer_{stem}"
            if name and name.casefold() in taken:
                raise HostError(
                    f"A slicer named '{name}' already exists.", code="ItemAlreadyExists"
                )
            base, index = slicer_name, 1
            while slicer_name.casefold() in taken:
                index += 1
                slicer_name = f"{base}{index}"
            slicer = SlicerState(
                name=slicer_name,
                source_kind=source_kind,
                source_name=source_name,
                field=key,
                caption=key,
                items=items,
            )
            side = self.context.state.for_sheet(self.worksheet._sheet())
            side.slicers[slicer_name] = slicer
            proxy._name = slicer_name

        self._queue(_add)
        return proxy


class SlicerProxy(ClientObject):
    """One slicer, addressed by name on its owning sheet."""

    name = HostProperty()
    caption = HostProperty(writable=True)
    style = HostProperty(writable=True)
    left = HostProperty(writable=True)
    top = HostProperty(writable=True)
    width = HostProperty(writable=True)
    height = HostProperty(writable=True)
    sort_by = HostProperty(writable=True)
    multi_select = HostProperty(writable=True)
    source_kind = HostProperty()
    source_name = HostProperty()
    field = HostProperty()
    items = HostProperty()
    selected_items = HostProperty()

    def __init__(self, worksheet: WorksheetProxy, name: str) -> None:
        super().__init__(worksheet.context)
        self.worksheet = worksheet
        self._name = name

    def _resolve(self) -> SlicerState:
        side = self.context.state.for_sheet(self.worksheet._sheet())
        key = find_key(side.slicers, self._name)
        if key is None:
            raise HostError(
                f"The requested slicer '{self._name}' doesn't exist.",
                code="ItemNotFound",
            )
        return side.slicers[key]

    def _exists(self) -> bool:
        if not self.worksheet._exists():
            return False
        side = self.context.state.for_sheet(self.worksheet._sheet())
        return find_key(side.slicers, self._name) is not None

    def _read_name(self) -> str:
        return self._resolve().name

    def _read_caption(self) -> str:
        return self._resolve().caption

    def _write_caption(self, value: str) -> None:
        self._resolve().caption = value

    def _read_style(self) -> str:
        return self._resolve().style

    def _write_style(self, value: str) -> None:
        if not is_valid_slicer_style(value):
            raise HostError(f"Invalid slicer style: {value}", code="InvalidArgument")
        self._resolve().style = value

    def _read_left(self) -> float:
        return self._resolve().left

    def _write_left(self, value: float) -> None:
        self._resolve().left = _non_negative("left", value)

    def _read_top(self) -> float:
        return self._resolve().top

    def _write_top(self, value: float) -> None:
        self._resolve().top = _non_negative("top", value)

    def _read_width(self) -> float:
        return self._resolve().width

    def _write_width(self, value: float) -> None:
        self._resolve().width = _positive("width", value)

    def _read_height(self) -> float:
        return self._resolve().height

    def _write_height(self, value: float) -> None:
        self._resolve().height = _positive("height", value)

    def _read_sort_by(self) -> str:
        return self._resolve().sort_by

    def _write_sort_by(self, value: str) -> None:
        if value not in SLICER_SORT_ORDERS:
            raise HostError(
                f"Invalid slicer sort order: {value}", code="InvalidArgument"
            )
        self._resolve().sort_by = value  # type: ignore[assignment]

    def _read_multi_select(self) -> bool:
        return self._resolve().multi_select

    def _write_multi_select(self, value: bool) -> None:
        self._resolve().multi_select = bool(value)

    def _read_source_kind(self) -> str:
        return self._resolve().source_kind

    def _read_source_name(self) -> str:
        return self._resolve().source_name

    def _read_field(self) -> str:
        return self._resolve().field

    def _read_items(self) -> list[str]:
        slicer = self._resolve()
        if slicer.sort_by == "Ascending":
            return sorted(slicer.items, key=str.casefold)
        if slicer.sort_by == "Descending":
            return sorted(slicer.items, key=str.casefold, reverse=True)
        return list(slicer.items)

    def _read_selected_items(self) -> list[str]:
        return list(self._resolve().selected_items)

    def select_items(self, items: list[str]) -> None:
        def _select() -> None:
            slicer = self._resolve()
            known = {item.casefold(): item for item in slicer.items}
            missing = [item for item in items if item.casefold() not in known]
            if missing:
                raise HostError(
                    f"Slicer '{slicer.name}' has no item(s): {', '.join(missing)}",
                    code="InvalidArgument",
                )
            chosen = [known[item.casefold()] for item in items]
            if not slicer.multi_select and len(chosen) > 1:
                raise HostError(
                    f"Slicer '{slicer.name}' allows a single selection.",
                    code="InvalidArgument",
                )
            slicer.selected_items = chosen

        self._queue(_select)

    def clear_filters(self) -> None:
        def _clear() -> None:
            self._resolve().selected_items = []

        self._queue(_clear)

    def delete(self) -> None:
        def _delete() -> None:
            slicer = self._resolve()
            side = self.context.state.for_sheet(self.worksheet._sheet())
            del side.slicers[slicer.name]

        self._queue(_delete)


def _non_negative(label: str, value: float) -> float:
    if value < 0:
        raise HostError(f"Slicer {label} must not be negative.", code="InvalidArgument")
    return float(value)


def _positive(label: str, value: float) -> float:
    if value <= 0:
        raise HostError(f"Slicer {label} must be positive.", code="InvalidArgument")
    return float(value)


__all__ = [
    "SLICER_SORT_ORDERS",
    "SlicerCollection",
    "SlicerProxy",
    "SlicerSourceKind",
    "is_valid_slicer_style",
    "iter_slicers",
    "source_field_values",
]
