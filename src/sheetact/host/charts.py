from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from openpyxl.chart import (
    AreaChart,
    BarChart,
    DoughnutChart,
    LineChart,
    PieChart,
    RadarChart,
    Reference,
    ScatterChart,
    Series,
)
from openpyxl.chart.axis import NumericAxis
from openpyxl.chart.label import DataLabelList
from openpyxl.chart.legend import Legend
from openpyxl.chart.shapes import GraphicalProperties
from openpyxl.chart.trendline import Trendline
from openpyxl.utils.cell import coordinate_from_string, column_index_from_string

from sheetact.shared.a1 import column_index_to_label
from sheetact.shared.colors import to_argb

from .client import ClientObject, HostError, HostProperty
from .state import ChartRecord

if TYPE_CHECKING:  # pragma: no cover - typing only
    from openpyxl.chart._chart import ChartBase

    from .range import RangeProxy
    from .worksheet import WorksheetProxy

logger = logging.getLogger(__name__)

CHART_TYPES = (
    "columnClustered",
    "columnStacked",
    "barClustered",
    "barStacked",
    "line",
    "lineStacked",
    "pie",
    "doughnut",
    "area",
    "areaStacked",
    "xyScatter",
    "radar",
)
_TRENDLINE_TYPES = {
    "linear": "linear",
    "exponential": "exp",
    "logarithmic": "log",
    "polynomial": "poly",
    "power": "power",
    "movingaverage": "movingAvg",
}
_LABEL_POSITIONS = {
    "center": "ctr",
    "insideend": "inEnd",
    "insidebase": "inBase",
    "outsideend": "outEnd",
    "bestfit": "bestFit",
    "left": "l",
    "right": "r",
    "top": "t",
    "bottom": "b",
}
_LEGEND_POSITIONS = {
    "right": "r",
    "left": "l",
    "top": "t",
    "bottom": "b",
    "corner": "tr",
}
# Approximate default cell size in centimetres, used to size charts by cells.
_CELL_WIDTH_CM = 1.69
_CELL_HEIGHT_CM = 0.53


def build_chart(chart_type: str) -> ChartBase:
    """Create an empty openpyxl chart for a host chart type."""
    if chart_type in {"columnClustered", "columnStacked", "barClustered", "barStacked"}:
        chart: Any = BarChart()
        chart.type = "col" if chart_type.startswith("column") else "bar"
        if chart_type.endswith("Stacked"):
            chart.grouping = "stacked"
            chart.overlap = 100
        return chart
    if chart_type in {"line", "lineStacked"}:
        chart = LineChart()
        if chart_type == "lineStacked":
            chart.grouping = "stacked"
        return chart
    if chart_type in {"area", "areaStacked"}:
        chart = AreaChart()
        if chart_type == "areaStacked":
            chart.grouping = "stacked"
        return chart
    if chart_type == "pie":
        return PieChart()
    if chart_type == "doughnut":
        return DoughnutChart()
    if chart_type == "xyScatter":
        chart = ScatterChart()
        chart.style = 13
        return chart
    if chart_type == "radar":
        return RadarChart()
    raise HostError(f"Unsupported chart type: {chart_type}", code="InvalidArgument")


class ChartCollection(ClientObject):
    """Charts of one worksheet."""

    names = HostProperty()
    count = HostProperty()

    def __init__(self, worksheet: WorksheetProxy) -> None:
        super().__init__(worksheet.context)
        self.worksheet = worksheet

    def _side_charts(self) -> list[ChartRecord]:
        return self.context.state.for_sheet(self.worksheet._sheet()).charts

    def _read_names(self) -> list[str]:
        return [record.name for record in self._side_charts()]

    def _read_count(self) -> int:
        return len(self._side_charts())

    def get_item(self, name: str) -> ChartProxy:
        return ChartProxy(self.worksheet, name)

    def add(self, chart_type: str, source: RangeProxy) -> ChartProxy:
        """Queue a chart over ``source`` (header row, first column categories)."""
        proxy = ChartProxy(self.worksheet, None)

        def _add() -> None:
            if "charts" not in self.context.capabilities:
                raise HostError(
                    "Charts are not supported by this host.", code="ApiNotFound"
                )
            if chart_type not in CHART_TYPES:
                raise HostError(
                    f"Unsupported chart type: {chart_type}", code="InvalidArgument"
                )
            data_sheet = source._sheet()
            min_row, min_col, max_row, max_col = source._bounds()
            chart = build_chart(chart_type)
            series_names = _populate_series(
                chart, chart_type, data_sheet, (min_row, min_col, max_row, max_col)
            )
            records = self._side_charts()
            index = len(records) + 1
            taken = {record.name for record in records}
            while f"Chart {index}" in taken:
                index += 1
            record = ChartRecord(
                name=f"Chart {index}",
                chart_type=chart_type,
                source_address=source._read_address(),
                top_left="H2",
                bottom_right="P17",
                series_names=series_names,
                chart=chart,
            )
            _place(chart, record.top_left, record.bottom_right)
            self.worksheet._sheet().add_chart(chart, record.top_left)
            records.append(record)
            proxy._record = record

        self._queue(_add)
        return proxy


class ChartProxy(ClientObject):
    """One chart; resolved by record identity once created, else by name."""

    name = HostProperty(writable=True)
    title = HostProperty(writable=True)
    chart_type = HostProperty()
    series_names = HostProperty()
    top_left = HostProperty()
    bottom_right = HostProperty()

    def __init__(self, worksheet: WorksheetProxy, name: str | None) -> None:
        super().__init__(worksheet.context)
        self.worksheet = worksheet
        self._name = name
        self._record: ChartRecord | None = None

    def _resolve(self) -> ChartRecord:
        records = self.context.state.for_sheet(self.worksheet._sheet()).charts
        if self._record is not None and any(r is self._record for r in records):
            return self._record
        for record in records:
            if self._name is not None and record.name.casefold() == self._name.casefold():
                self._record = record
                return record
        raise HostError(
            f"The requested chart '{self._name}' doesn't exist.", code="ItemNotFound"
        )

    def _exists(self) -> bool:
        try:
            self._resolve()
        except HostError:
            return False
        return True

    def _chart(self) -> Any:
        return self._resolve().chart

    def _read_name(self) -> str:
        return self._resolve().name

    def _write_name(self, value: str) -> None:
        self._resolve().name = value

    def _read_title(self) -> str | None:
        chart = self._chart()
        title = chart.title
        if title is None or isinstance(title, str):
            return title
        runs = [
            run.t
            for paragraph in title.tx.rich.p
            for run in (paragraph.r or [])
        ]
        return "".join(runs)

    def _write_title(self, value: str) -> None:
        self._chart().title = value

    def _read_chart_type(self) -> str:
        return self._resolve().chart_type

    def _read_series_names(self) -> list[str]:
        return list(self._resolve().series_names)

    def _read_top_left(self) -> str:
        return self._resolve().top_left

    def _read_bottom_right(self) -> str:
        return self._resolve().bottom_right

    def set_position(self, start_cell: str, end_cell: str) -> None:
        def _set() -> None:
            record = self._resolve()
            record.top_left = start_cell.upper()
            record.bottom_right = end_cell.upper()
            _place(record.chart, record.top_left, record.bottom_right)
            record.chart.anchor = record.top_left

        self._queue(_set)

    def set_legend(self, *, visible: bool = True, position: str = "Right") -> None:
        def _set() -> None:
            chart = self._chart()
            if not visible:
                chart.legend = None
                return
            pos = _LEGEND_POSITIONS.get(position.lower())
            if pos is None:
                raise HostError(
                    f"Invalid legend position: {position}", code="InvalidArgument"
                )
            if chart.legend is None:
                chart.legend = Legend()
            chart.legend.position = pos

        self._queue(_set)

    def add_trendline(
        self,
        *,
        series_index: int = 0,
        trendline_type: str = "Linear",
        order: int | None = None,
        period: int | None = None,
        forward: float | None = None,
        backward: float | None = None,
        display_equation: bool = False,
        display_r_squared: bool = False,
    ) -> None:
        def _add() -> None:
            record = self._resolve()
            if record.chart_type in {"pie", "doughnut", "radar"}:
                raise HostError(
                    f"Trendlines are not available on {record.chart_type} charts.",
                    code="InvalidArgument",
                )
            kind = _TRENDLINE_TYPES.get(trendline_type.replace(" ", "").lower())
            if kind is None:
                raise HostError(
                    f"Invalid trendline type: {trendline_type}", code="InvalidArgument"
                )
            series = _series_at(record.chart, series_index)
            series.trendline = Trendline(
                trendlineType=kind,
                order=order if kind == "poly" else None,
                period=period if kind == "movingAvg" else None,
                forward=forward,
                backward=backward,
                dispEq=display_equation,
                dispRSqr=display_r_squared,
            )

        self._queue(_add)

    def set_data_labels(
        self,
        *,
        show_value: bool = True,
        show_category_name: bool = False,
        show_series_name: bool = False,
        show_percentage: bool = False,
        position: str | None = None,
        number_format: str | None = None,
    ) -> None:
        def _set() -> None:
            chart = self._chart()
            pos = None
            if position is not None:
                pos = _LABEL_POSITIONS.get(position.replace(" ", "").lower())
                if pos is None:
                    raise HostError(
                        f"Invalid data label position: {position}",
                        code="InvalidArgument",
                    )
            chart.dataLabels = DataLabelList(
                showVal=show_value,
                showCatName=show_category_name,
                showSerName=show_series_name,
                showPercent=show_percentage,
                dLblPos=pos,
                numFmt=number_format,
            )

        self._queue(_set)

    def format_axis(
        self,
        which: str,
        *,
        title: str | None = None,
        visible: bool | None = None,
        minimum: float | None = None,
        maximum: float | None = None,
        major_unit: float | None = None,
        number_format: str | None = None,
    ) -> None:
        """Format the ``category`` or ``value`` axis."""

        def _format() -> None:
            record = self._resolve()
            if record.chart_type in {"pie", "doughnut"}:
                raise HostError(
                    f"{record.chart_type} charts have no axes.", code="InvalidArgument"
                )
            axis = record.chart.x_axis if which == "category" else record.chart.y_axis
            if title is not None:
                axis.title = title
            if visible is not None:
                axis.delete = not visible
            if minimum is not None:
                axis.scaling.min = minimum
            if maximum is not None:
                axis.scaling.max = maximum
            if major_unit is not None:
                if not isinstance(axis, NumericAxis):
                    raise HostError(
                        "Major unit is only available on value axes.",
                        code="InvalidArgument",
                    )
                axis.majorUnit = major_unit
            if number_format is not None:
                axis.number_format = number_format

        self._queue(_format)

    def set_style(
        self,
        *,
        plot_area_color: str | None = None,
        chart_area_color: str | None = None,
        style: int | None = None,
    ) -> None:
        def _set() -> None:
            chart = self._chart()
            if style is not None:
                if not 1 <= style <= 48:
                    raise HostError(
                        "Chart style must be 1..48.", code="InvalidArgument"
                    )
                chart.style = style
            if plot_area_color is not None:
                chart.plot_area.graphicalProperties = GraphicalProperties(
                    solidFill=_rgb(plot_area_color)
                )
            if chart_area_color is not None:
                chart.graphical_properties = GraphicalProperties(
                    solidFill=_rgb(chart_area_color)
                )

        self._queue(_set)

    def set_series_type(
        self, series_name: str, chart_type: str, *, secondary: bool = False
    ) -> None:
        """Move one series into an overlay chart (combo / secondary axis)."""

        def _set() -> None:
            record = self._resolve()
            main = record.chart
            if record.chart_type in {"pie", "doughnut", "xyScatter"}:
                raise HostError(
                    f"{record.chart_type} charts cannot be combined.",
                    code="InvalidArgument",
                )
            if chart_type not in CHART_TYPES or chart_type in {"pie", "doughnut", "xyScatter"}:
                raise HostError(
                    f"Unsupported combo series type: {chart_type}",
                    code="InvalidArgument",
                )
            folded = [name.casefold() for name in record.series_names]
            if series_name.casefold() not in folded:
                raise HostError(
                    f"Series '{series_name}' not found.", code="ItemNotFound"
                )
            position = folded.index(series_name.casefold())
            series = main.series[position]
            overlay = build_chart(chart_type)
            overlay.series.append(series)
            main.series = [s for i, s in enumerate(main.series) if i != position]
            record.series_names.pop(position)
            if secondary:
                overlay.y_axis.axId = 200
                overlay.y_axis.crosses = "max"
            main += overlay

        self._queue(_set)

    def delete(self) -> None:
        def _delete() -> None:
            record = self._resolve()
            sheet = self.worksheet._sheet()
            sheet._charts = [chart for chart in sheet._charts if chart is not record.chart]
            records = self.context.state.for_sheet(sheet).charts
            records.remove(record)

        self._queue(_delete)


def _populate_series(
    chart: Any,
    chart_type: str,
    sheet: Any,
    bounds: tuple[int, int, int, int],
) -> list[str]:
    min_row, min_col, max_row, max_col = bounds
    headers = [
        str(sheet.cell(row=min_row, column=col).value or f"Series{col - min_col + 1}")
        for col in range(min_col, max_col + 1)
    ]
    if max_row <= min_row:
        raise HostError("A chart needs at least one data row.", code="InvalidArgument")
    has_categories = max_col > min_col
    first_data_col = min_col + 1 if has_categories else min_col
    if chart_type == "xyScatter":
        x_values = Reference(sheet, min_col=min_col, min_row=min_row + 1, max_row=max_row)
        for col in range(first_data_col, max_col + 1):
            values = Reference(sheet, min_col=col, min_row=min_row, max_row=max_row)
            chart.series.append(Series(values, x_values, title_from_data=True))
        return headers[first_data_col - min_col :]
    last_col = first_data_col if chart_type in {"pie", "doughnut"} else max_col
    data = Reference(
        sheet, min_col=first_data_col, min_row=min_row, max_col=last_col, max_row=max_row
    )
    chart.add_data(data, titles_from_data=True)
    if has_categories:
        categories = Reference(sheet, min_col=min_col, min_row=min_row + 1, max_row=max_row)
        chart.set_categories(categories)
    return headers[first_data_col - min_col : last_col - min_col + 1]


def _place(chart: Any, top_left: str, bottom_right: str) -> None:
    start_col, start_row = coordinate_from_string(top_left)
    end_col, end_row = coordinate_from_string(bottom_right)
    cols = max(column_index_from_string(end_col) - column_index_from_string(start_col), 1)
    rows = max(end_row - start_row, 1)
    chart.width = round(cols * _CELL_WIDTH_CM, 2)
    chart.height = round(rows * _CELL_HEIGHT_CM, 2)


def _series_at(chart: Any, index: int) -> Any:
    try:
        return chart.series[index]
    except IndexError:
        raise HostError(
            f"Series index {index} is out of range.", code="InvalidArgument"
        ) from None


def _rgb(value: str) -> str:
    try:
        return to_argb(value)[2:]
    except ValueError as exc:
        raise HostError(str(exc), code="InvalidArgument") from exc


def chart_end_cell(start_cell: str, columns: int = 8, rows: int = 15) -> str:
    """Return the cell ``columns`` right and ``rows`` down from ``start_cell``."""
    column, row = coordinate_from_string(start_cell.upper())
    end_column = column_index_from_string(column) + columns
    return f"{column_index_to_label(end_column)}{row + rows}"


__all__ = [
    "CHART_TYPES",
    "ChartCollection",
    "ChartProxy",
    "build_chart",
    "chart_end_cell",
]
