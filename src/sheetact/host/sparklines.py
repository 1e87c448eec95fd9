from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sheetact.shared.a1 import split_sheet_qualifier
from sheetact.shared.colors import normalize_hex_input

from .client import ClientObject, HostError, HostProperty
from .range import format_bounds, parse_address
from .state import SparklineGroup
from .worksheet import find_sheet

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .range import RangeProxy
    from .worksheet import WorksheetProxy

logger = logging.getLogger(__name__)

SPARKLINE_TYPES = ("Line", "Column", "WinLoss")
SPARKLINE_OPTIONS: dict[str, type | tuple[type, ...]] = {
    "show_high_point": bool,
    "show_low_point": bool,
    "show_first_point": bool,
    "show_last_point": bool,
    "show_negative_point": bool,
    "show_markers": bool,
    "min_axis_type": str,
    "max_axis_type": str,
    "min_axis_value": (int, float),
    "max_axis_value": (int, float),
    "line_color": str,
    "marker_color": str,
    "negative_color": str,
    "line_weight": (int, float),
    "date_axis": bool,
    "date_range": str,
}
_AXIS_TYPES = ("Individual", "Group", "Custom")


class SparklineGroupCollection(ClientObject):
    """Sparkline groups whose locations are on one worksheet."""

    count = HostProperty()

    def __init__(self, worksheet: WorksheetProxy) -> None:
        super().__init__(worksheet.context)
        self.worksheet = worksheet

    def _groups(self) -> list[SparklineGroup]:
        if "sparklines" not in self.context.capabilities:
            raise HostError(
                "Sparklines are not supported by this host.", code="ApiNotFound"
            )
        return self.context.state.for_sheet(self.worksheet._sheet()).sparklines

    def _read_count(self) -> int:
        return len(self._groups())

    def add(
        self,
        location: RangeProxy,
        source: str,
        sparkline_type: str = "Line",
    ) -> SparklineGroupProxy:
        """Queue one sparkline per location cell over rows/columns of ``source``."""
        proxy = SparklineGroupProxy(self, None)

        def _add() -> None:
            groups = self._groups()
            if sparkline_type not in SPARKLINE_TYPES:
                raise HostError(
                    f"Invalid sparkline type: {sparkline_type}", code="InvalidArgument"
                )
            min_row, min_col, max_row, max_col = location._bounds()
            if min_row != max_row and min_col != max_col:
                raise HostError(
                    "Sparkline location must be a single row or column.",
                    code="InvalidArgument",
                )
            sheet_name, local = split_sheet_qualifier(source)
            if sheet_name is not None and find_sheet(self.context, sheet_name) is None:
                raise HostError(
                    f"The requested worksheet '{sheet_name}' doesn't exist.",
                    code="ItemNotFound",
                )
            s_min_row, s_min_col, s_max_row, s_max_col = parse_address(local)
            cells = [
                format_bounds((row, col, row, col))
                for row in range(min_row, max_row + 1)
                for col in range(min_col, max_col + 1)
            ]
            source_rows = s_max_row - s_min_row + 1
            source_cols = s_max_col - s_min_col + 1
            if len(cells) not in {source_rows, source_cols}:
                raise HostError(
                    f"Source {source} does not provide one series per location cell "
                    f"({len(cells)} cell(s)).",
                    code="InvalidArgument",
                )
            occupied = {cell for group in groups for cell in group.location}
            clash = [cell for cell in cells if cell in occupied]
            if clash:
                raise HostError(
                    f"Cell {clash[0]} already contains a sparkline.",
                    code="ItemAlreadyExists",
                )
            group = SparklineGroup(
                group_id=self.context.state.next_id(),
                location=cells,
                source=source,
                sparkline_type=sparkline_type,  # type: ignore[arg-type]
            )
            groups.append(group)
            proxy._group_id = group.group_id

        self._queue(_add)
        return proxy

    def get_item_at(self, cell: str) -> SparklineGroupProxy:
        return SparklineGroupProxy(self, cell)

    def get_item_at_or_null_object(self, cell: str) -> SparklineGroupProxy:
        return SparklineGroupProxy(self, cell)


class SparklineGroupProxy(ClientObject):
    """Sparkline group found by id, or by a cell in its location."""

    sparkline_type = HostProperty(writable=True)
    color = HostProperty(writable=True)
    location = HostProperty()
    source = HostProperty()
    options = HostProperty()

    def __init__(self, collection: SparklineGroupCollection, cell: str | None) -> None:
        super().__init__(collection.context)
        self.collection = collection
        self._cell = cell
        self._group_id: int | None = None

    def _resolve(self) -> SparklineGroup:
        groups = self.collection._groups()
        if self._group_id is not None:
            for group in groups:
                if group.group_id == self._group_id:
                    return group
        if self._cell is not None:
            key = _cell_key(self._cell)
            for group in groups:
                if key in group.location:
                    self._group_id = group.group_id
                    return group
        raise HostError(f"No sparkline exists at {self._cell}.", code="ItemNotFound")

    def _exists(self) -> bool:
        try:
            self._resolve()
        except HostError:
            return False
        return True

    def _read_sparkline_type(self) -> str:
        return self._resolve().sparkline_type

    def _write_sparkline_type(self, value: str) -> None:
        if value not in SPARKLINE_TYPES:
            raise HostError(f"Invalid sparkline type: {value}", code="InvalidArgument")
        self._resolve().sparkline_type = value  # type: ignore[assignment]

    def _read_color(self) -> str:
        return self._resolve().color

    def _write_color(self, value: str) -> None:
        self._resolve().color = _color(value, "color")

    def _read_location(self) -> list[str]:
        return list(self._resolve().location)

    def _read_source(self) -> str:
        return self._resolve().source

    def _read_options(self) -> dict[str, Any]:
        return dict(self._resolve().options)

    def set_option(self, name: str, value: Any) -> None:
        def _set() -> None:
            expected = SPARKLINE_OPTIONS.get(name)
            if expected is None:
                raise HostError(
                    f"Unknown sparkline option: {name}", code="InvalidArgument"
                )
            if not isinstance(value, expected) or (
                expected is not bool and isinstance(value, bool)
            ):
                raise HostError(
                    f"Invalid value for sparkline option {name}: {value!r}",
                    code="InvalidArgument",
                )
            stored = value
            if name.endswith("_axis_type") and value not in _AXIS_TYPES:
                raise HostError(f"Invalid axis type: {value}", code="InvalidArgument")
            if name.endswith("_color"):
                stored = _color(value, name)
            if name == "line_weight" and value <= 0:
                raise HostError("Line weight must be positive.", code="InvalidArgument")
            self._resolve().options[name] = stored

        self._queue(_set)

    def delete(self) -> None:
        def _delete() -> None:
            group = self._resolve()
            self.collection._groups().remove(group)

        self._queue(_delete)

    def delete_at(self, cell: str) -> None:
        """Remove the sparkline at ``cell``; an emptied group is removed."""

        def _delete() -> None:
            group = self._resolve()
            key = _cell_key(cell)
            if key not in group.location:
                raise HostError(f"No sparkline exists at {key}.", code="ItemNotFound")
            group.location.remove(key)
            if not group.location:
                self.collection._groups().remove(group)

        self._queue(_delete)


def _cell_key(address: str) -> str:
    min_row, min_col, _, _ = parse_address(address)
    return format_bounds((min_row, min_col, min_row, min_col))


def _color(value: str, field: str) -> str:
    try:
        return normalize_hex_input(value, field_name=field)
    except ValueError as exc:
        raise HostError(str(exc), code="InvalidArgument") from exc


__all__ = [
    "SPARKLINE_OPTIONS",
    "SPARKLINE_TYPES",
    "SparklineGroupCollection",
    "SparklineGroupProxy",
]
