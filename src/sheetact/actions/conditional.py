"""Declarative conditional-format rules compiled to typed host specs.

Rules arrive as loosely shaped JSON objects tagged by ``type``. Each family
has its own compiler. A rule with a fatal problem (unknown family, missing
required field, invalid enumeration) is skipped on its own; a bad optional
sub-field such as a color falls back to a default and the rule is kept.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
import logging
from typing import Any

from sheetact.host.formats import (
    ICON_SET_GLYPHS,
    CellValueSpec,
    ColorScaleSpec,
    CompiledRule,
    CustomSpec,
    DataBarSpec,
    IconSetSpec,
    PresetSpec,
    RuleFormat,
    TextComparisonSpec,
    Threshold,
    ThresholdKind,
    TopBottomSpec,
)
from sheetact.shared.colors import is_hex_rgb

from .diagnostics import DiagnosticSink
from .types import RuleFamily

logger = logging.getLogger(__name__)

DEFAULT_FILL_COLOR = "#FFFF00"
DEFAULT_FONT_COLOR = "#000000"
DEFAULT_BAR_COLOR = "#638EC6"
DEFAULT_NEGATIVE_BAR_COLOR = "#FF0000"
DEFAULT_SCALE_COLORS = ("#FFFFFF", "#63BE7B")
DEFAULT_THREE_SCALE_COLORS = ("#F8696B", "#FFEB84", "#63BE7B")

_FAMILIES: dict[str, RuleFamily] = {
    "cellvalue": "cellValue",
    "colorscale": "colorScale",
    "databar": "dataBar",
    "iconset": "iconSet",
    "topbottom": "topBottom",
    "preset": "preset",
    "textcomparison": "textComparison",
    "custom": "custom",
}

_CELL_OPERATORS = {
    "between": "between",
    "notbetween": "notBetween",
    "equalto": "equal",
    "equal": "equal",
    "notequalto": "notEqual",
    "notequal": "notEqual",
    "greaterthan": "greaterThan",
    "lessthan": "lessThan",
    "greaterthanorequal": "greaterThanOrEqual",
    "lessthanorequal": "lessThanOrEqual",
}

_SCALE_POINT_KINDS: dict[str, ThresholdKind] = {
    "lowestvalue": "min",
    "highestvalue": "max",
    "number": "num",
    "percent": "percent",
    "percentile": "percentile",
    "formula": "formula",
}

_ICON_POINT_KINDS: dict[str, ThresholdKind] = {
    "number": "num",
    "percent": "percent",
    "percentile": "percentile",
    "formula": "formula",
}

_ICON_STYLE_WORDS = {"three": "3", "four": "4", "five": "5"}

_BAR_DIRECTIONS = {
    "context": "context",
    "lefttoright": "leftToRight",
    "righttoleft": "rightToLeft",
}

_AXIS_POSITIONS = {
    "automatic": "automatic",
    "cellmidpoint": "middle",
    "none": "none",
}

_TOP_BOTTOM = {
    "topitems": (False, False),
    "toppercent": (False, True),
    "bottomitems": (True, False),
    "bottompercent": (True, True),
}

_PRESETS = {
    "duplicatevalues": "duplicateValues",
    "uniquevalues": "uniqueValues",
    "blanks": "blanks",
    "nonblanks": "nonBlanks",
    "errors": "errors",
    "nonerrors": "nonErrors",
    "yesterday": "yesterday",
    "today": "today",
    "tomorrow": "tomorrow",
    "lastsevendays": "last7Days",
    "lastweek": "lastWeek",
    "thisweek": "thisWeek",
    "nextweek": "nextWeek",
    "lastmonth": "lastMonth",
    "thismonth": "thisMonth",
    "nextmonth": "nextMonth",
    "aboveaverage": "aboveAverage",
    "belowaverage": "belowAverage",
    "equaloraboveaverage": "equalOrAboveAverage",
    "equalorbelowaverage": "equalOrBelowAverage",
}

_TEXT_OPERATORS = {
    "contains": "contains",
    "notcontains": "notContains",
    "beginswith": "beginsWith",
    "endswith": "endsWith",
}


class RuleError(ValueError):
    """A rule that cannot be compiled and must be skipped."""


def rule_list(raw: Any) -> list[Any]:
    """Normalize one rule or a list of rules into a list."""
    if raw is None:
        return []
    if isinstance(raw, list):
        return raw
    return [raw]


def compile_rules(raw: Any, sink: DiagnosticSink) -> list[CompiledRule]:
    """Compile one rule object or a list of them.

    Args:
        raw: Parsed rule payload.
        sink: Receives one line per skipped rule or defaulted sub-field.

    Returns:
        Compiled rules in input order; skipped rules are left out.
    """
    compiled: list[CompiledRule] = []
    for index, rule in enumerate(rule_list(raw), start=1):
        try:
            compiled.append(compile_rule(rule, sink))
        except RuleError as exc:
            sink.warning(f"Skipped conditional format rule {index}: {exc}")
    return compiled


def compile_rule(rule: Any, sink: DiagnosticSink) -> CompiledRule:
    """Compile a single rule or raise ``RuleError``."""
    if not isinstance(rule, Mapping):
        raise RuleError("rule must be an object")
    family = _FAMILIES.get(_token(rule.get("type")))
    if family is None:
        raise RuleError(f"unknown rule type {rule.get('type')!r}")
    notes = _Notes(sink, family)
    spec = _COMPILERS[family](rule, notes)
    return spec.model_copy(update=_common_options(rule, notes))


class _Notes:
    """Soft-error reporter bound to one rule family."""

    def __init__(self, sink: DiagnosticSink, family: str) -> None:
        self.sink = sink
        self.family = family

    def fallback(self, field: str, value: Any, default: Any) -> None:
        self.sink.info(
            f"{self.family}: invalid {field} {value!r}, using {default!r}"
        )

    def color(self, value: Any, default: str | None, field: str) -> str | None:
        if value is None or value == "":
            return default
        if is_hex_rgb(value):
            return str(value).strip().upper()
        self.fallback(field, value, default)
        return default


def _token(value: Any) -> str:
    return str(value or "").replace(" ", "").replace("_", "").lower()


def _require(mapping: Mapping[str, Any], key: str, family: str) -> Any:
    value = mapping.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise RuleError(f"{family} rule requires '{key}'")
    return value


def _formula_text(value: Any) -> str:
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _common_options(rule: Mapping[str, Any], notes: _Notes) -> dict[str, Any]:
    update: dict[str, Any] = {}
    priority = rule.get("priority")
    if priority is not None:
        if isinstance(priority, int) and not isinstance(priority, bool) and priority >= 0:
            update["priority"] = priority
        else:
            notes.fallback("priority", priority, None)
    stop = rule.get("stopIfTrue")
    if stop is not None:
        update["stop_if_true"] = bool(stop)
    return update


def _rule_format(rule: Mapping[str, Any], notes: _Notes) -> RuleFormat:
    """Read ``format`` (nested) or top-level ``fill``/``fontColor`` (flat).

    The fill defaults to yellow when no fill is given.
    """
    source = rule.get("format")
    if not isinstance(source, Mapping):
        source = rule
    fill = source.get("fill")
    if isinstance(fill, Mapping):
        fill = fill.get("color")
    font = source.get("font") if isinstance(source.get("font"), Mapping) else {}
    font_color = source.get("fontColor", font.get("color"))
    bold = source.get("bold", font.get("bold"))
    italic = source.get("italic", font.get("italic"))
    if font_color in (None, ""):
        font_color = None
    else:
        font_color = notes.color(font_color, DEFAULT_FONT_COLOR, "fontColor")
    return RuleFormat(
        fill_color=notes.color(fill, DEFAULT_FILL_COLOR, "fill"),
        font_color=font_color,
        bold=None if bold is None else bool(bold),
        italic=None if italic is None else bool(italic),
    )


def _nested_rule(rule: Mapping[str, Any]) -> Mapping[str, Any]:
    nested = rule.get("rule")
    return nested if isinstance(nested, Mapping) else rule


def cell_operator(value: Any) -> str | None:
    """Map ``GreaterThan``-style operator names to host comparison operators."""
    return _CELL_OPERATORS.get(_token(value))


def _compile_cell_value(rule: Mapping[str, Any], notes: _Notes) -> CompiledRule:
    body = _nested_rule(rule)
    raw_operator = _require(body, "operator", "cellValue")
    operator = _CELL_OPERATORS.get(_token(raw_operator))
    if operator is None:
        raise RuleError(f"invalid cellValue operator {raw_operator!r}")
    formula1 = body.get("formula1", body.get("value"))
    if formula1 is None or formula1 == "":
        raise RuleError("cellValue rule requires 'formula1'")
    formula2 = body.get("formula2", body.get("value2"))
    if operator in {"between", "notBetween"} and (formula2 is None or formula2 == ""):
        raise RuleError(f"{raw_operator} requires 'formula2'")
    return CellValueSpec(
        operator=operator,
        formula1=_formula_text(formula1),
        formula2=None if formula2 in (None, "") else _formula_text(formula2),
        format=_rule_format(rule, notes),
    )


def _scale_points(rule: Mapping[str, Any]) -> list[Any]:
    criteria = rule.get("criteria")
    if isinstance(criteria, list) and criteria:
        return criteria
    nested = rule.get("colorScale")
    if isinstance(nested, Mapping):
        points = [
            {**defaults, **nested[key]}
            for key, defaults in (
                ("minimum", {"type": "LowestValue"}),
                ("midpoint", {"type": "Percentile", "value": 50}),
                ("maximum", {"type": "HighestValue"}),
            )
            if isinstance(nested.get(key), Mapping)
        ]
        if points:
            return points
    return [
        {"type": "LowestValue", "color": DEFAULT_SCALE_COLORS[0]},
        {"type": "HighestValue", "color": DEFAULT_SCALE_COLORS[1]},
    ]


def _compile_color_scale(rule: Mapping[str, Any], notes: _Notes) -> CompiledRule:
    points = _scale_points(rule)
    if len(points) not in (2, 3):
        raise RuleError(f"colorScale needs 2 or 3 criteria, got {len(points)}")
    defaults = DEFAULT_SCALE_COLORS if len(points) == 2 else DEFAULT_THREE_SCALE_COLORS
    thresholds: list[Threshold] = []
    colors: list[str] = []
    for index, point in enumerate(points):
        if not isinstance(point, Mapping):
            raise RuleError(f"colorScale criterion {index + 1} must be an object")
        kind = _SCALE_POINT_KINDS.get(_token(point.get("type")))
        if kind is None:
            raise RuleError(f"invalid colorScale criterion type {point.get('type')!r}")
        value = point.get("value", point.get("formula"))
        if kind not in {"min", "max"} and value is None:
            raise RuleError(f"colorScale criterion {index + 1} requires a value")
        thresholds.append(
            Threshold(kind=kind, value=None if value is None else _formula_text(value))
        )
        colors.append(
            notes.color(point.get("color"), defaults[index], f"color {index + 1}")
            or defaults[index]
        )
    return ColorScaleSpec(points=thresholds, colors=colors)


def _bound(value: Any, fallback: ThresholdKind, notes: _Notes, field: str) -> Threshold:
    if not isinstance(value, Mapping):
        return Threshold(kind=fallback)
    token = _token(value.get("type"))
    kind = _SCALE_POINT_KINDS.get(token)
    if token == "automatic" or kind is None:
        if token not in ("", "automatic"):
            notes.fallback(field, value.get("type"), fallback)
        return Threshold(kind=fallback)
    formula = value.get("formula", value.get("value"))
    if kind not in {"min", "max"} and formula is None:
        notes.fallback(field, value, fallback)
        return Threshold(kind=fallback)
    return Threshold(kind=kind, value=None if formula is None else _formula_text(formula))


def _compile_data_bar(rule: Mapping[str, Any], notes: _Notes) -> CompiledRule:
    positive = rule.get("positiveFormat")
    positive = positive if isinstance(positive, Mapping) else {}
    negative = rule.get("negativeFormat")
    negative = negative if isinstance(negative, Mapping) else {}

    raw_direction = rule.get("barDirection")
    direction = _BAR_DIRECTIONS.get(_token(raw_direction) or "context")
    if direction is None:
        notes.fallback("barDirection", raw_direction, "Context")
        direction = "context"
    raw_axis = rule.get("axisPosition")
    axis = _AXIS_POSITIONS.get(_token(raw_axis) or "automatic")
    if axis is None:
        notes.fallback("axisPosition", raw_axis, "Automatic")
        axis = "automatic"
    return DataBarSpec(
        color=notes.color(
            positive.get("fillColor", rule.get("color")), DEFAULT_BAR_COLOR, "fillColor"
        )
        or DEFAULT_BAR_COLOR,
        border_color=notes.color(positive.get("borderColor"), None, "borderColor"),
        gradient=bool(positive.get("gradientFill", True)),
        direction=direction,
        show_value=not bool(rule.get("showDataBarOnly", False)),
        axis_position=axis,
        negative_color=notes.color(
            negative.get("fillColor"), DEFAULT_NEGATIVE_BAR_COLOR, "negative fillColor"
        ),
        negative_border_color=notes.color(
            negative.get("borderColor"), None, "negative borderColor"
        ),
        lower=_bound(rule.get("lowerBound"), "min", notes, "lowerBound"),
        upper=_bound(rule.get("upperBound"), "max", notes, "upperBound"),
    )


def icon_style(value: Any) -> str | None:
    """Map ``ThreeArrows``-style names (or ``3Arrows``) to host icon-set names."""
    text = str(value or "").strip()
    for word, digit in _ICON_STYLE_WORDS.items():
        if text.lower().startswith(word):
            text = digit + text[len(word) :]
            break
    for name in ICON_SET_GLYPHS:
        if name.lower() == text.lower():
            return name
    return None


def _compile_icon_set(rule: Mapping[str, Any], notes: _Notes) -> CompiledRule:
    raw_style = rule.get("style", "ThreeArrows")
    style = icon_style(raw_style)
    if style is None:
        raise RuleError(f"invalid icon set style {raw_style!r}")
    glyphs = ICON_SET_GLYPHS[style]
    criteria = rule.get("criteria")
    if not criteria:
        thresholds = [
            Threshold(kind="percent", value=str(round(100 * index / glyphs)))
            for index in range(glyphs)
        ]
    else:
        if not isinstance(criteria, list) or len(criteria) != glyphs:
            count = len(criteria) if isinstance(criteria, list) else 1
            raise RuleError(
                f"{raw_style} needs {glyphs} criteria, got {count}"
            )
        thresholds = [_icon_threshold(index, item) for index, item in enumerate(criteria)]
    return IconSetSpec(
        style=style,
        thresholds=thresholds,
        reverse=bool(rule.get("reverseIconOrder", False)),
        show_icon_only=bool(rule.get("showIconOnly", False)),
    )


def _icon_threshold(index: int, item: Any) -> Threshold:
    if index == 0 and (item is None or item == {}):
        return Threshold(kind="percent", value="0")
    if not isinstance(item, Mapping):
        raise RuleError(f"icon criterion {index + 1} must be an object")
    kind = _ICON_POINT_KINDS.get(_token(item.get("type") or "percent"))
    if kind is None:
        raise RuleError(f"invalid icon criterion type {item.get('type')!r}")
    operator = _token(item.get("operator") or "greaterthanorequal")
    if operator not in {"greaterthan", "greaterthanorequal"}:
        raise RuleError(f"invalid icon criterion operator {item.get('operator')!r}")
    value = item.get("formula", item.get("value"))
    if value is None:
        if index != 0:
            raise RuleError(f"icon criterion {index + 1} requires a formula")
        value = 0
    return Threshold(
        kind=kind,
        value=_formula_text(value),
        gte=operator == "greaterthanorequal",
    )


def _compile_top_bottom(rule: Mapping[str, Any], notes: _Notes) -> CompiledRule:
    body = _nested_rule(rule)
    raw_type = body.get("type") if body is not rule else body.get("ruleType")
    flags = _TOP_BOTTOM.get(_token(raw_type or "TopItems"))
    if flags is None:
        raise RuleError(f"invalid topBottom type {raw_type!r}")
    rank = body.get("rank", 10)
    if isinstance(rank, bool) or not isinstance(rank, int) or not 1 <= rank <= 1000:
        raise RuleError(f"topBottom rank must be 1..1000, got {rank!r}")
    bottom, percent = flags
    return TopBottomSpec(
        rank=rank, bottom=bottom, percent=percent, format=_rule_format(rule, notes)
    )


def _compile_preset(rule: Mapping[str, Any], notes: _Notes) -> CompiledRule:
    body = _nested_rule(rule)
    raw = _require(body, "criterion", "preset")
    criterion = _PRESETS.get(_token(raw))
    if criterion is None:
        raise RuleError(f"invalid preset criterion {raw!r}")
    return PresetSpec(criterion=criterion, format=_rule_format(rule, notes))


def _compile_text(rule: Mapping[str, Any], notes: _Notes) -> CompiledRule:
    body = _nested_rule(rule)
    raw_operator = _require(body, "operator", "textComparison")
    operator = _TEXT_OPERATORS.get(_token(raw_operator))
    if operator is None:
        raise RuleError(f"invalid textComparison operator {raw_operator!r}")
    text = _require(body, "text", "textComparison")
    return TextComparisonSpec(
        operator=operator, text=str(text), format=_rule_format(rule, notes)
    )


def _compile_custom(rule: Mapping[str, Any], notes: _Notes) -> CompiledRule:
    body = _nested_rule(rule)
    formula = str(_require(body, "formula", "custom")).strip()
    if not formula.startswith("="):
        raise RuleError("custom rule formula must start with '='")
    return CustomSpec(formula=formula, format=_rule_format(rule, notes))


_COMPILERS: dict[RuleFamily, Callable[[Mapping[str, Any], _Notes], CompiledRule]] = {
    "cellValue": _compile_cell_value,
    "colorScale": _compile_color_scale,
    "dataBar": _compile_data_bar,
    "iconSet": _compile_icon_set,
    "topBottom": _compile_top_bottom,
    "preset": _compile_preset,
    "textComparison": _compile_text,
    "custom": _compile_custom,
}


__all__ = [
    "DEFAULT_BAR_COLOR",
    "DEFAULT_FILL_COLOR",
    "DEFAULT_FONT_COLOR",
    "RuleError",
    "cell_operator",
    "compile_rule",
    "compile_rules",
    "icon_style",
    "rule_list",
]
