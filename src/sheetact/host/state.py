"""In-memory side model for document features openpyxl cannot represent.

Pivot tables, slicers, shapes, threaded comments, sparklines, linked data
types, named sheet views and split panes live here, keyed by the owning
openpyxl worksheet so renames and moves keep them attached.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

PivotLayout = Literal["Compact", "Outline", "Tabular"]
PivotAggregation = Literal[
    "Sum",
    "Count",
    "Average",
    "Max",
    "Min",
    "CountNumbers",
    "StandardDeviation",
    "Variance",
]


class PivotDataField(BaseModel):
    """Value field of a pivot table."""

    field: str
    name: str
    function: PivotAggregation = "Sum"


class PivotTableState(BaseModel):
    """Pivot table definition and its last rendered output."""

    name: str
    source_sheet: str
    source_address: str
    source_table: str | None = None
    destination: str
    rows: list[str] = Field(default_factory=list)
    columns: list[str] = Field(default_factory=list)
    values: list[PivotDataField] = Field(default_factory=list)
    filters: list[str] = Field(default_factory=list)
    layout: PivotLayout = "Compact"
    show_row_grand_totals: bool = True
    show_column_grand_totals: bool = True
    show_row_headers: bool = True
    show_column_headers: bool = True
    repeat_item_labels: bool = False
    show_empty_rows: bool = False
    output_address: str | None = None


class SlicerState(BaseModel):
    """Slicer bound to one field of a table or pivot table."""

    name: str
    source_kind: Literal["table", "pivot"]
    source_name: str
    field: str
    caption: str
    style: str = "SlicerStyleLight1"
    left: float = 100.0
    top: float = 100.0
    width: float = 200.0
    height: float = 200.0
    sort_by: Literal["DataSourceOrder", "Ascending", "Descending"] = "DataSourceOrder"
    items: list[str] = Field(default_factory=list)
    selected_items: list[str] = Field(default_factory=list)
    multi_select: bool = True


class ShapeState(BaseModel):
    """Floating drawing object (geometric shape, image, text box or group)."""

    name: str
    shape_type: str
    left: float = 0.0
    top: float = 0.0
    width: float = 100.0
    height: float = 100.0
    rotation: float = 0.0
    fill_color: str | None = None
    fill_transparency: float = 0.0
    line_color: str | None = None
    line_weight: float | None = None
    line_dash_style: str | None = None
    text: str | None = None
    font_name: str | None = None
    font_size: float | None = None
    font_color: str | None = None
    horizontal_alignment: str | None = None
    image_base64: str | None = None
    alt_text: str | None = None
    parent_group: str | None = None
    members: list[str] = Field(default_factory=list)


class CommentReply(BaseModel):
    """Reply in a threaded comment."""

    content: str
    author: str


class CommentThread(BaseModel):
    """Threaded (modern) comment anchored on a cell."""

    cell: str
    content: str
    author: str
    resolved: bool = False
    replies: list[CommentReply] = Field(default_factory=list)


class SparklineGroup(BaseModel):
    """Group of sparklines sharing one style."""

    group_id: int
    location: list[str]
    source: str
    sparkline_type: Literal["Line", "Column", "WinLoss"] = "Line"
    color: str = "#376092"
    options: dict[str, Any] = Field(default_factory=dict)


class LinkedDataType(BaseModel):
    """Entity value stored in a cell (display text + typed properties)."""

    display_text: str
    basic_value: Any = None
    properties: dict[str, Any] = Field(default_factory=dict)


class NamedSheetView(BaseModel):
    """Named sheet view with its display flags."""

    name: str
    show_gridlines: bool = True
    show_headings: bool = True


class ChartRecord(BaseModel):
    """Chart added to a sheet together with its openpyxl object."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    chart_type: str
    source_address: str
    top_left: str
    bottom_right: str
    series_names: list[str] = Field(default_factory=list)
    chart: Any = None


class SheetSideState(BaseModel):
    """Side-model collections owned by one worksheet."""

    pivots: dict[str, PivotTableState] = Field(default_factory=dict)
    slicers: dict[str, SlicerState] = Field(default_factory=dict)
    shapes: list[ShapeState] = Field(default_factory=list)
    comments: dict[str, CommentThread] = Field(default_factory=dict)
    sparklines: list[SparklineGroup] = Field(default_factory=list)
    data_types: dict[str, LinkedDataType] = Field(default_factory=dict)
    views: list[NamedSheetView] = Field(default_factory=list)
    charts: list[ChartRecord] = Field(default_factory=list)
    split: tuple[int, int] | None = None


class WorkbookState:
    """Side-model registry keyed by openpyxl worksheet identity."""

    def __init__(self) -> None:
        self._sheets: dict[int, SheetSideState] = {}
        self._next_id = 1

    def for_sheet(self, worksheet: object) -> SheetSideState:
        return self._sheets.setdefault(id(worksheet), SheetSideState())

    def drop_sheet(self, worksheet: object) -> None:
        self._sheets.pop(id(worksheet), None)

    def rename_sheet(self, old: str, new: str) -> None:
        """Repoint pivot sources after a worksheet rename."""
        for side in self._sheets.values():
            for pivot in side.pivots.values():
                if pivot.source_sheet == old:
                    pivot.source_sheet = new

    def all_sheets(self) -> list[SheetSideState]:
        return list(self._sheets.values())

    def next_id(self) -> int:
        value = self._next_id
        self._next_id += 1
        return value


__all__ = [
    "ChartRecord",
    "CommentReply",
    "CommentThread",
    "LinkedDataType",
    "NamedSheetView",
    "PivotAggregation",
    "PivotDataField",
    "PivotLayout",
    "PivotTableState",
    "SheetSideState",
    "ShapeState",
    "SlicerState",
    "SparklineGroup",
    "WorkbookState",
]
