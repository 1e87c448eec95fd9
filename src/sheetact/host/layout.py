from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from openpyxl.worksheet.pagebreak import Break, ColBreak, RowBreak

from .client import ClientObject, HostError, HostProperty
from .range import parse_address

if TYPE_CHECKING:  # pragma: no cover - typing only
    from openpyxl.worksheet.worksheet import Worksheet

    from .worksheet import WorksheetProxy

logger = logging.getLogger(__name__)

PAPER_SIZES: dict[str, int] = {
    "Letter": 1,
    "Tabloid": 3,
    "Legal": 5,
    "Executive": 7,
    "A3": 8,
    "A4": 9,
    "A5": 11,
    "B4": 12,
    "B5": 13,
}
HEADER_FOOTER_SLOTS = (
    "left_header",
    "center_header",
    "right_header",
    "left_footer",
    "center_footer",
    "right_footer",
)
MARGIN_SIDES = ("top", "bottom", "left", "right", "header", "footer")


class PageLayoutProxy(ClientObject):
    """Print setup of one worksheet."""

    orientation = HostProperty(writable=True)
    paper_size = HostProperty(writable=True)
    zoom = HostProperty(writable=True)
    fit_to_width = HostProperty(writable=True)
    fit_to_height = HostProperty(writable=True)
    print_gridlines = HostProperty(writable=True)
    print_headings = HostProperty(writable=True)
    center_horizontally = HostProperty(writable=True)
    center_vertically = HostProperty(writable=True)
    print_area = HostProperty(writable=True)
    margins = HostProperty()
    headers_footers = HostProperty()
    horizontal_breaks = HostProperty()
    vertical_breaks = HostProperty()

    def __init__(self, worksheet: WorksheetProxy) -> None:
        super().__init__(worksheet.context)
        self.worksheet = worksheet

    def _sheet(self) -> Worksheet:
        return self.worksheet._sheet()

    def _read_orientation(self) -> str:
        value = self._sheet().page_setup.orientation
        return "Landscape" if value == "landscape" else "Portrait"

    def _write_orientation(self, value: str) -> None:
        if value not in {"Portrait", "Landscape"}:
            raise HostError(f"Invalid orientation: {value}", code="InvalidArgument")
        self._sheet().page_setup.orientation = value.lower()

    def _read_paper_size(self) -> str | None:
        code = self._sheet().page_setup.paperSize
        for name, value in PAPER_SIZES.items():
            if code is not None and int(code) == value:
                return name
        return None

    def _write_paper_size(self, value: str) -> None:
        if value not in PAPER_SIZES:
            raise HostError(f"Unsupported paper size: {value}", code="InvalidArgument")
        self._sheet().page_setup.paperSize = PAPER_SIZES[value]

    def _read_zoom(self) -> int | None:
        return self._sheet().page_setup.scale

    def _write_zoom(self, value: int) -> None:
        if not 10 <= int(value) <= 400:
            raise HostError(
                "Print scale must be between 10 and 400.", code="InvalidArgument"
            )
        sheet = self._sheet()
        sheet.page_setup.scale = int(value)
        sheet.sheet_properties.pageSetUpPr.fitToPage = False

    def _read_fit_to_width(self) -> int | None:
        return self._sheet().page_setup.fitToWidth

    def _write_fit_to_width(self, value: int) -> None:
        self._fit("fitToWidth", value)

    def _read_fit_to_height(self) -> int | None:
        return self._sheet().page_setup.fitToHeight

    def _write_fit_to_height(self, value: int) -> None:
        self._fit("fitToHeight", value)

    def _fit(self, attr: str, value: int) -> None:
        if int(value) < 0:
            raise HostError(
                "Fit-to page counts must not be negative.", code="InvalidArgument"
            )
        sheet = self._sheet()
        setattr(sheet.page_setup, attr, int(value))
        sheet.sheet_properties.pageSetUpPr.fitToPage = True

    def _read_print_gridlines(self) -> bool:
        return bool(self._sheet().print_options.gridLines)

    def _write_print_gridlines(self, value: bool) -> None:
        self._sheet().print_options.gridLines = bool(value)

    def _read_print_headings(self) -> bool:
        return bool(self._sheet().print_options.headings)

    def _write_print_headings(self, value: bool) -> None:
        self._sheet().print_options.headings = bool(value)

    def _read_center_horizontally(self) -> bool:
        return bool(self._sheet().print_options.horizontalCentered)

    def _write_center_horizontally(self, value: bool) -> None:
        self._sheet().print_options.horizontalCentered = bool(value)

    def _read_center_vertically(self) -> bool:
        return bool(self._sheet().print_options.verticalCentered)

    def _write_center_vertically(self, value: bool) -> None:
        self._sheet().print_options.verticalCentered = bool(value)

    def _read_print_area(self) -> str | None:
        return self._sheet().print_area or None

    def _write_print_area(self, value: str | list[str] | None) -> None:
        areas = [value] if isinstance(value, str) else list(value or [])
        for area in areas:
            parse_address(area)
        self._sheet().print_area = areas or None

    def _read_margins(self) -> dict[str, float]:
        margins = self._sheet().page_margins
        return {side: float(getattr(margins, side)) for side in MARGIN_SIDES}

    def _read_headers_footers(self) -> dict[str, str | None]:
        sheet = self._sheet()
        texts: dict[str, str | None] = {}
        for slot in HEADER_FOOTER_SLOTS:
            texts[slot] = _header_part(sheet, slot).text
        return texts

    def _read_horizontal_breaks(self) -> list[int]:
        return sorted(brk.id for brk in self._sheet().row_breaks.brk)

    def _read_vertical_breaks(self) -> list[int]:
        return sorted(brk.id for brk in self._sheet().col_breaks.brk)

    def set_margins(self, **inches: float) -> None:
        """Set page margins in inches (top, bottom, left, right, header, footer)."""

        def _set() -> None:
            margins = self._sheet().page_margins
            for side, value in inches.items():
                if side not in MARGIN_SIDES:
                    raise HostError(f"Unknown margin: {side}", code="InvalidArgument")
                if value < 0:
                    raise HostError(
                        f"Margin {side} must not be negative.", code="InvalidArgument"
                    )
                setattr(margins, side, float(value))

        self._queue(_set)

    def set_header_footer(self, **texts: str | None) -> None:
        def _set() -> None:
            sheet = self._sheet()
            for slot, text in texts.items():
                if slot not in HEADER_FOOTER_SLOTS:
                    raise HostError(
                        f"Unknown header/footer slot: {slot}", code="InvalidArgument"
                    )
                _header_part(sheet, slot).text = text or None

        self._queue(_set)

    def add_horizontal_break(self, row: int) -> None:
        """Break the page above 1-based ``row``."""
        self._queue(lambda: _add_break(self._sheet().row_breaks, row - 1))

    def add_vertical_break(self, column: int) -> None:
        """Break the page left of 1-based ``column``."""
        self._queue(lambda: _add_break(self._sheet().col_breaks, column - 1))

    def remove_horizontal_break(self, row: int) -> None:
        self._queue(lambda: _remove_break(self._sheet().row_breaks, row - 1))

    def remove_vertical_break(self, column: int) -> None:
        self._queue(lambda: _remove_break(self._sheet().col_breaks, column - 1))

    def clear_breaks(self) -> None:
        def _clear() -> None:
            sheet = self._sheet()
            sheet.row_breaks = RowBreak()
            sheet.col_breaks = ColBreak()

        self._queue(_clear)


def _header_part(sheet: Worksheet, slot: str) -> Any:
    position, kind = slot.split("_")
    container = sheet.oddHeader if kind == "header" else sheet.oddFooter
    return getattr(container, position)


def _add_break(breaks: RowBreak | ColBreak, index: int) -> None:
    if index < 1:
        raise HostError(
            "A page break needs at least one row or column before it.",
            code="InvalidArgument",
        )
    if any(brk.id == index for brk in breaks.brk):
        return
    breaks.append(Break(id=index))


def _remove_break(breaks: RowBreak | ColBreak, index: int) -> None:
    remaining = [brk for brk in breaks.brk if brk.id != index]
    if len(remaining) == len(breaks.brk):
        raise HostError(f"No page break exists at {index + 1}.", code="ItemNotFound")
    breaks.brk = remaining


__all__ = [
    "HEADER_FOOTER_SLOTS",
    "MARGIN_SIDES",
    "PAPER_SIZES",
    "PageLayoutProxy",
]
