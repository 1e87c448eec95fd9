"""Compiled conditional-format and data-validation specs for the reference host.

The action layer produces these typed specs; the host turns them into
openpyxl rule objects when a batch is flushed.
"""

from __future__ import annotations

from typing import Annotated, Literal

from openpyxl.formatting.rule import (
    ColorScale,
    DataBar,
    FormatObject,
    IconSet,
    Rule,
)
from openpyxl.styles import Font, PatternFill
from openpyxl.styles.colors import Color
from openpyxl.styles.differential import DifferentialStyle
from openpyxl.worksheet.datavalidation import DataValidation
from pydantic import BaseModel, Field

from sheetact.shared.colors import to_argb

ThresholdKind = Literal["min", "max", "num", "percent", "percentile", "formula"]
CellOperator = Literal[
    "between",
    "notBetween",
    "equal",
    "notEqual",
    "greaterThan",
    "lessThan",
    "greaterThanOrEqual",
    "lessThanOrEqual",
]
TextOperator = Literal["contains", "notContains", "beginsWith", "endsWith"]
PresetCriterion = Literal[
    "duplicateValues",
    "uniqueValues",
    "blanks",
    "nonBlanks",
    "errors",
    "nonErrors",
    "yesterday",
    "today",
    "tomorrow",
    "last7Days",
    "lastWeek",
    "thisWeek",
    "nextWeek",
    "lastMonth",
    "thisMonth",
    "nextMonth",
    "aboveAverage",
    "belowAverage",
    "equalOrAboveAverage",
    "equalOrBelowAverage",
]

ICON_SET_GLYPHS: dict[str, int] = {
    "3Arrows": 3,
    "3ArrowsGray": 3,
    "3Flags": 3,
    "3TrafficLights1": 3,
    "3TrafficLights2": 3,
    "3Signs": 3,
    "3Symbols": 3,
    "3Symbols2": 3,
    "4Arrows": 4,
    "4ArrowsGray": 4,
    "4RedToBlack": 4,
    "4Rating": 4,
    "4TrafficLights": 4,
    "5Arrows": 5,
    "5ArrowsGray": 5,
    "5Rating": 5,
    "5Quarters": 5,
}


class RuleFormat(BaseModel):
    """Differential style applied when a highlight rule matches."""

    fill_color: str | None = None
    font_color: str | None = None
    bold: bool | None = None
    italic: bool | None = None


class _CompiledBase(BaseModel):
    priority: int | None = None
    stop_if_true: bool = False


class CellValueSpec(_CompiledBase):
    family: Literal["cellValue"] = "cellValue"
    operator: CellOperator
    formula1: str
    formula2: str | None = None
    format: RuleFormat = Field(default_factory=RuleFormat)


class Threshold(BaseModel):
    """Conditional-format value object (cfvo)."""

    kind: ThresholdKind
    value: str | None = None
    gte: bool = True


class ColorScaleSpec(_CompiledBase):
    family: Literal["colorScale"] = "colorScale"
    points: list[Threshold]
    colors: list[str]


class DataBarSpec(_CompiledBase):
    family: Literal["dataBar"] = "dataBar"
    color: str = "#638EC6"
    border_color: str | None = None
    gradient: bool = True
    direction: Literal["context", "leftToRight", "rightToLeft"] = "context"
    show_value: bool = True
    axis_position: Literal["automatic", "middle", "none"] = "automatic"
    negative_color: str | None = None
    negative_border_color: str | None = None
    lower: Threshold = Field(default_factory=lambda: Threshold(kind="min"))
    upper: Threshold = Field(default_factory=lambda: Threshold(kind="max"))


class IconSetSpec(_CompiledBase):
    family: Literal["iconSet"] = "iconSet"
    style: str
    thresholds: list[Threshold]
    reverse: bool = False
    show_icon_only: bool = False


class TopBottomSpec(_CompiledBase):
    family: Literal["topBottom"] = "topBottom"
    rank: int
    bottom: bool = False
    percent: bool = False
    format: RuleFormat = Field(default_factory=RuleFormat)


class PresetSpec(_CompiledBase):
    family: Literal["preset"] = "preset"
    criterion: PresetCriterion
    format: RuleFormat = Field(default_factory=RuleFormat)


class TextComparisonSpec(_CompiledBase):
    family: Literal["textComparison"] = "textComparison"
    operator: TextOperator
    text: str
    format: RuleFormat = Field(default_factory=RuleFormat)


class CustomSpec(_CompiledBase):
    family: Literal["custom"] = "custom"
    formula: str
    format: RuleFormat = Field(default_factory=RuleFormat)


CompiledRule = Annotated[
    CellValueSpec
    | ColorScaleSpec
    | DataBarSpec
    | IconSetSpec
    | TopBottomSpec
    | PresetSpec
    | TextComparisonSpec
    | CustomSpec,
    Field(discriminator="family"),
]


class ValidationSpec(BaseModel):
    """Data-validation rule applied to a range."""

    type: Literal[
        "list", "whole", "decimal", "date", "time", "textLength", "custom"
    ] = "list"
    operator: CellOperator | None = None
    formula1: str | None = None
    formula2: str | None = None
    allow_blank: bool = True
    show_input_message: bool = False
    input_title: str | None = None
    input_message: str | None = None
    show_error_alert: bool = True
    error_title: str | None = None
    error_message: str | None = None
    error_style: Literal["stop", "warning", "information"] = "stop"


_TIME_PERIOD_FORMULAS: dict[str, str] = {
    "yesterday": "FLOOR({cell},1)=TODAY()-1",
    "today": "FLOOR({cell},1)=TODAY()",
    "tomorrow": "FLOOR({cell},1)=TODAY()+1",
    "last7Days": "AND(TODAY()-FLOOR({cell},1)<=6,FLOOR({cell},1)<=TODAY())",
    "lastWeek": (
        "AND(TODAY()-ROUNDDOWN({cell},0)>=(WEEKDAY(TODAY())),"
        "TODAY()-ROUNDDOWN({cell},0)<(WEEKDAY(TODAY())+7))"
    ),
    "thisWeek": (
        "AND(TODAY()-ROUNDDOWN({cell},0)<=WEEKDAY(TODAY())-1,"
        "ROUNDDOWN({cell},0)-TODAY()<=7-WEEKDAY(TODAY()))"
    ),
    "nextWeek": (
        "AND(ROUNDDOWN({cell},0)-TODAY()>(7-WEEKDAY(TODAY())),"
        "ROUNDDOWN({cell},0)-TODAY()<(15-WEEKDAY(TODAY())))"
    ),
    "lastMonth": (
        "AND(MONTH({cell})=MONTH(EDATE(TODAY(),0-1)),"
        "YEAR({cell})=YEAR(EDATE(TODAY(),0-1)))"
    ),
    "thisMonth": "AND(MONTH({cell})=MONTH(TODAY()),YEAR({cell})=YEAR(TODAY()))",
    "nextMonth": (
        "AND(MONTH({cell})=MONTH(EDATE(TODAY(),0+1)),"
        "YEAR({cell})=YEAR(EDATE(TODAY(),0+1)))"
    ),
}


def build_openpyxl_rule(spec: CompiledRule, first_cell: str) -> Rule:
    """Translate a compiled spec into an openpyxl ``Rule``.

    Args:
        spec: Compiled conditional-format rule.
        first_cell: Top-left cell of the target range, used by the formulas
            that back text, blank, error and date-period rules.

    Returns:
        Rule ready to be added to ``worksheet.conditional_formatting``.
    """
    rule = _build_rule(spec, first_cell)
    if spec.priority is not None:
        rule.priority = spec.priority
    rule.stopIfTrue = spec.stop_if_true or None
    return rule


def _build_rule(spec: CompiledRule, cell: str) -> Rule:
    if isinstance(spec, CellValueSpec):
        formulas = [spec.formula1]
        if spec.formula2 is not None:
            formulas.append(spec.formula2)
        return Rule(
            type="cellIs",
            operator=spec.operator,
            formula=formulas,
            dxf=_build_dxf(spec.format),
        )
    if isinstance(spec, ColorScaleSpec):
        scale = ColorScale(
            cfvo=[_build_cfvo(point) for point in spec.points],
            color=[Color(rgb=to_argb(color)) for color in spec.colors],
        )
        return Rule(type="colorScale", colorScale=scale)
    if isinstance(spec, DataBarSpec):
        bar = DataBar(
            cfvo=[_build_cfvo(spec.lower), _build_cfvo(spec.upper)],
            color=Color(rgb=to_argb(spec.color)),
            showValue=spec.show_value,
        )
        return Rule(type="dataBar", dataBar=bar)
    if isinstance(spec, IconSetSpec):
        icons = IconSet(
            iconSet=spec.style,
            cfvo=[_build_cfvo(point) for point in spec.thresholds],
            showValue=not spec.show_icon_only,
            reverse=spec.reverse,
        )
        return Rule(type="iconSet", iconSet=icons)
    if isinstance(spec, TopBottomSpec):
        return Rule(
            type="top10",
            rank=spec.rank,
            bottom=spec.bottom or None,
            percent=spec.percent or None,
            dxf=_build_dxf(spec.format),
        )
    if isinstance(spec, PresetSpec):
        return _build_preset_rule(spec, cell)
    if isinstance(spec, TextComparisonSpec):
        return _build_text_rule(spec, cell)
    formula = spec.formula[1:] if spec.formula.startswith("=") else spec.formula
    return Rule(type="expression", formula=[formula], dxf=_build_dxf(spec.format))


def _build_preset_rule(spec: PresetSpec, cell: str) -> Rule:
    dxf = _build_dxf(spec.format)
    criterion = spec.criterion
    if criterion == "duplicateValues":
        return Rule(type="duplicateValues", dxf=dxf)
    if criterion == "uniqueValues":
        return Rule(type="uniqueValues", dxf=dxf)
    if criterion == "blanks":
        return Rule(
            type="containsBlanks", formula=[f"LEN(TRIM({cell}))=0"], dxf=dxf
        )
    if criterion == "nonBlanks":
        return Rule(
            type="notContainsBlanks", formula=[f"LEN(TRIM({cell}))>0"], dxf=dxf
        )
    if criterion == "errors":
        return Rule(type="containsErrors", formula=[f"ISERROR({cell})"], dxf=dxf)
    if criterion == "nonErrors":
        return Rule(
            type="notContainsErrors", formula=[f"NOT(ISERROR({cell}))"], dxf=dxf
        )
    if criterion in _TIME_PERIOD_FORMULAS:
        return Rule(
            type="timePeriod",
            timePeriod=criterion,
            formula=[_TIME_PERIOD_FORMULAS[criterion].format(cell=cell)],
            dxf=dxf,
        )
    above = criterion in {"aboveAverage", "equalOrAboveAverage"}
    equal = criterion.startswith("equalOr")
    return Rule(
        type="aboveAverage",
        aboveAverage=None if above else False,
        equalAverage=True if equal else None,
        dxf=dxf,
    )


def _build_text_rule(spec: TextComparisonSpec, cell: str) -> Rule:
    text = spec.text.replace('"', '""')
    dxf = _build_dxf(spec.format)
    if spec.operator == "contains":
        return Rule(
            type="containsText",
            operator="containsText",
            text=spec.text,
            formula=[f'NOT(ISERROR(SEARCH("{text}",{cell})))'],
            dxf=dxf,
        )
    if spec.operator == "notContains":
        return Rule(
            type="notContainsText",
            operator="notContains",
            text=spec.text,
            formula=[f'ISERROR(SEARCH("{text}",{cell}))'],
            dxf=dxf,
        )
    if spec.operator == "beginsWith":
        return Rule(
            type="beginsWith",
            operator="beginsWith",
            text=spec.text,
            formula=[f'LEFT({cell},LEN("{text}"))="{text}"'],
            dxf=dxf,
        )
    return Rule(
        type="endsWith",
        operator="endsWith",
        text=spec.text,
        formula=[f'RIGHT({cell},LEN("{text}"))="{text}"'],
        dxf=dxf,
    )


def _build_cfvo(point: Threshold) -> FormatObject:
    value = point.value
    if value is not None and value.startswith("="):
        value = value[1:]
    return FormatObject(type=point.kind, val=value, gte=None if point.gte else False)


def _build_dxf(fmt: RuleFormat) -> DifferentialStyle:
    font = None
    if (
        fmt.font_color is not None
        or fmt.bold is not None
        or fmt.italic is not None
    ):
        font = Font(
            color=to_argb(fmt.font_color) if fmt.font_color else None,
            bold=fmt.bold,
            italic=fmt.italic,
        )
    fill = None
    if fmt.fill_color is not None:
        argb = to_argb(fmt.fill_color)
        fill = PatternFill(
            fill_type="solid", start_color=argb, end_color=argb, bgColor=argb
        )
    return DifferentialStyle(font=font, fill=fill)


def build_openpyxl_validation(spec: ValidationSpec) -> DataValidation:
    """Translate a validation spec into an openpyxl ``DataValidation``."""
    return DataValidation(
        type=spec.type,
        operator=spec.operator,
        formula1=_strip_equals(spec.formula1),
        formula2=_strip_equals(spec.formula2),
        allow_blank=spec.allow_blank,
        showInputMessage=spec.show_input_message,
        promptTitle=spec.input_title,
        prompt=spec.input_message,
        showErrorMessage=spec.show_error_alert,
        errorTitle=spec.error_title,
        error=spec.error_message,
        errorStyle=spec.error_style,
    )


def _strip_equals(formula: str | None) -> str | None:
    if formula is None:
        return None
    return formula[1:] if formula.startswith("=") else formula


__all__ = [
    "ICON_SET_GLYPHS",
    "CellOperator",
    "CellValueSpec",
    "ColorScaleSpec",
    "CompiledRule",
    "CustomSpec",
    "DataBarSpec",
    "IconSetSpec",
    "PresetCriterion",
    "PresetSpec",
    "RuleFormat",
    "TextComparisonSpec",
    "TextOperator",
    "Threshold",
    "ThresholdKind",
    "TopBottomSpec",
    "ValidationSpec",
    "build_openpyxl_rule",
    "build_openpyxl_validation",
]
