"""Chart and pivot chart handlers."""

from __future__ import annotations

import logging
from typing import Any, Literal

from pydantic import Field

from sheetact.host import ChartProxy, HostError, RangeProxy
from sheetact.host.charts import chart_end_cell

from ..aggregation import aggregate_by_columns, plan_aggregation, staging_origin
from ..chart_types import (
    CHART_SPAN_COLUMNS,
    CHART_SPAN_ROWS,
    DEFAULT_CHART_POSITION,
    DEFAULT_CHART_TITLE,
    legend_position_for,
    resolve_chart_type,
)
from ..models import ActionPayload
from .base import HandlerContext, handler

logger = logging.getLogger(__name__)


class TrendlineOptions(ActionPayload):
    type: str = "Linear"  # noqa: A003
    series_index: int = 0
    order: int | None = None
    period: int | None = None
    forward: float | None = None
    backward: float | None = None
    display_equation: bool = False
    display_r_squared: bool = False


class DataLabelOptions(ActionPayload):
    show_value: bool = True
    show_category_name: bool = False
    show_series_name: bool = False
    show_percentage: bool = False
    position: str | None = None
    number_format: str | None = None


class AxisOptions(ActionPayload):
    title: str | None = None
    visible: bool | None = None
    minimum: float | None = None
    maximum: float | None = None
    major_unit: float | None = None
    number_format: str | None = None


class AxesOptions(ActionPayload):
    category_axis: AxisOptions | None = None
    value_axis: AxisOptions | None = None


class LegendOptions(ActionPayload):
    visible: bool = True
    position: str | None = None


class ChartStyleOptions(ActionPayload):
    plot_area_color: str | None = None
    chart_area_color: str | None = None
    style: int | None = None


class ComboSeries(ActionPayload):
    name: str
    chart_type: str = "line"
    axis: Literal["Primary", "Secondary"] = "Primary"


class ChartPayload(ActionPayload):
    chart_type: str | None = None
    title: str | None = None
    position: str | None = None
    trendline: TrendlineOptions | None = None
    data_labels: DataLabelOptions | None = None
    axes: AxesOptions | None = None
    legend: LegendOptions | None = None
    chart_style: ChartStyleOptions | None = None
    combo: bool = False
    series: list[ComboSeries] = Field(default_factory=list)


class PivotChartPayload(ChartPayload):
    group_by: str | None = None
    aggregate: str | None = None
    aggregate_func: str = "sum"


async def stage(
    context: HandlerContext, target: RangeProxy, values: list[list[Any]]
) -> RangeProxy:
    """Write ``values`` two rows below ``target`` on its own sheet."""
    row, column = staging_origin(
        target.row_index, target.row_count, target.column_index
    )
    staging = target.worksheet.get_range_by_indexes(
        row, column, len(values), len(values[0])
    )
    staging.values = values
    staging.load("address")
    await context.ctx.sync()
    return staging


async def create_chart(
    context: HandlerContext, source: RangeProxy, payload: ChartPayload
) -> ChartProxy:
    """Insert a titled, placed chart with a legend on the sheet of ``source``."""
    chart_type = resolve_chart_type(payload.chart_type)
    position = (payload.position or DEFAULT_CHART_POSITION).upper()
    chart = source.worksheet.charts.add(chart_type, source)
    chart.title = payload.title or DEFAULT_CHART_TITLE
    chart.set_position(
        position, chart_end_cell(position, CHART_SPAN_COLUMNS, CHART_SPAN_ROWS)
    )
    chart.set_legend(position=legend_position_for(chart_type))
    chart.load("name")
    await context.ctx.sync()
    context.info(f"Created {chart_type} chart {chart.name} at {position}")
    return chart


async def _guarded(context: HandlerContext, label: str) -> None:
    try:
        await context.ctx.sync()
    except HostError as exc:
        context.warn(f"Chart {label} not applied: {exc}")
        return
    context.info(f"Applied chart {label}")


async def apply_chart_options(
    context: HandlerContext, chart: ChartProxy, payload: ChartPayload
) -> None:
    """Apply each advanced option in its own batch; failures only warn."""
    if payload.trendline is not None:
        trend = payload.trendline
        chart.add_trendline(
            series_index=trend.series_index,
            trendline_type=trend.type,
            order=trend.order,
            period=trend.period,
            forward=trend.forward,
            backward=trend.backward,
            display_equation=trend.display_equation,
            display_r_squared=trend.display_r_squared,
        )
        await _guarded(context, "trendline")
    if payload.data_labels is not None:
        labels = payload.data_labels
        chart.set_data_labels(
            show_value=labels.show_value,
            show_category_name=labels.show_category_name,
            show_series_name=labels.show_series_name,
            show_percentage=labels.show_percentage,
            position=labels.position,
            number_format=labels.number_format,
        )
        await _guarded(context, "data labels")
    if payload.axes is not None:
        for which, axis in (
            ("category", payload.axes.category_axis),
            ("value", payload.axes.value_axis),
        ):
            if axis is None:
                continue
            chart.format_axis(
                which,
                title=axis.title,
                visible=axis.visible,
                minimum=axis.minimum,
                maximum=axis.maximum,
                major_unit=axis.major_unit,
                number_format=axis.number_format,
            )
            await _guarded(context, f"{which} axis")
    if payload.legend is not None:
        chart.set_legend(
            visible=payload.legend.visible,
            position=payload.legend.position or "Bottom",
        )
        await _guarded(context, "legend")
    if payload.chart_style is not None:
        style = payload.chart_style
        chart.set_style(
            plot_area_color=style.plot_area_color,
            chart_area_color=style.chart_area_color,
            style=style.style,
        )
        await _guarded(context, "style")
    if payload.combo:
        for series in payload.series:
            chart.set_series_type(
                series.name,
                resolve_chart_type(series.chart_type),
                secondary=series.axis == "Secondary",
            )
            await _guarded(context, f"combo series {series.name}")


@handler("chart", payload=ChartPayload)
async def insert_chart(
    context: HandlerContext, payload: ChartPayload
) -> dict[str, Any]:
    target = context.require_range()
    target.load("values")
    await context.ctx.sync()
    values = [list(row) for row in target.values]

    source = target
    plan = plan_aggregation(values)
    if plan.aggregate:
        staging = await stage(context, target, plan.staging_values())
        context.info(
            f"Aggregated {len(plan.groups)} categories into staging range "
            f"{staging.address}"
        )
        source = staging

    chart = await create_chart(context, source, payload)
    await apply_chart_options(context, chart, payload)
    return {"name": chart.name, "aggregated": plan.aggregate}


@handler("pivotChart", payload=PivotChartPayload, required=("group_by",))
async def insert_pivot_chart(
    context: HandlerContext, payload: PivotChartPayload
) -> dict[str, Any]:
    target = context.require_range()
    target.load("values")
    await context.ctx.sync()
    grid = aggregate_by_columns(
        [list(row) for row in target.values],
        payload.group_by or "",
        payload.aggregate,
        payload.aggregate_func,
    )
    staging = await stage(context, target, grid)
    context.info(
        f"Grouped {len(grid) - 1} categories by {payload.group_by} into "
        f"{staging.address}"
    )
    chart = await create_chart(context, staging, payload)
    await apply_chart_options(context, chart, payload)
    return {"name": chart.name, "staging": staging.address}


__all__ = [
    "ChartPayload",
    "PivotChartPayload",
    "apply_chart_options",
    "create_chart",
    "stage",
]
