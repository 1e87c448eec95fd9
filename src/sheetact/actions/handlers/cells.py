"""Cell content and formatting handlers."""

from __future__ import annotations

import logging
from typing import Any, Literal

from pydantic import Field, field_validator

from sheetact.errors import ActionValidationError
from sheetact.host.formats import ValidationSpec
from sheetact.host.range import BORDER_EDGES
from sheetact.shared.a1 import is_range_address, split_sheet_qualifier
from sheetact.shared.colors import is_hex_rgb

from ..conditional import cell_operator, compile_rules, rule_list
from ..formula import apply_formula
from ..models import ActionPayload, RawPayload
from .base import HandlerContext, handler

logger = logging.getLogger(__name__)

NUMBER_FORMAT_PRESETS: dict[str, str] = {
    "currency": "$#,##0.00",
    "accounting": '_($* #,##0.00_);_($* (#,##0.00);_($* "-"??_);_(@_)',
    "percentage": "0.00%",
    "date": "yyyy-mm-dd",
    "time": "h:mm:ss AM/PM",
    "scientific": "0.00E+00",
    "text": "@",
    "number": "#,##0.00",
    "fraction": "# ?/?",
}

_BORDER_KEYS = {
    "top": "EdgeTop",
    "bottom": "EdgeBottom",
    "left": "EdgeLeft",
    "right": "EdgeRight",
    "insideHorizontal": "InsideHorizontal",
    "insideVertical": "InsideVertical",
}

_VALIDATION_TYPES = {
    "list": "list",
    "wholenumber": "whole",
    "whole": "whole",
    "decimal": "decimal",
    "date": "date",
    "time": "time",
    "textlength": "textLength",
    "custom": "custom",
}


class BorderSpec(ActionPayload):
    style: str = "Continuous"
    color: str | None = None
    weight: str = "Thin"


class FormatPayload(ActionPayload):
    bold: bool | None = None
    italic: bool | None = None
    underline: bool | str | None = None
    strikethrough: bool | None = None
    font_name: str | None = None
    font_size: float | None = None
    font_color: str | None = None
    fill: str | None = None
    number_format: str | None = None
    number_format_preset: str | None = None
    horizontal_alignment: str | None = None
    vertical_alignment: str | None = None
    wrap_text: bool | None = None
    text_orientation: int | None = None
    indent_level: int | None = None
    border: bool | None = None
    borders: dict[str, BorderSpec] = Field(default_factory=dict)


class ValidationPayload(ActionPayload):
    type: str = "list"  # noqa: A003
    operator: str | None = None
    formula1: Any = None
    formula2: Any = None
    source: str | list[Any] | None = None
    allow_blank: bool = True
    show_input_message: bool | None = None
    input_title: str | None = None
    input_message: str | None = None
    show_error_alert: bool = True
    error_title: str | None = None
    error_message: str | None = None
    error_style: Literal["stop", "warning", "information"] = "stop"

    @field_validator("error_style", mode="before")
    @classmethod
    def _lower_style(cls, value: object) -> object:
        return value.lower() if isinstance(value, str) else value


@handler("formula")
async def apply_formula_action(context: HandlerContext, payload: RawPayload) -> Any:
    target = context.require_range()
    formula = payload.data_text if payload.data_text is not None else payload.raw
    if formula is None or not str(formula).strip():
        raise ActionValidationError("formula requires a formula in 'data'")
    applied = await apply_formula(
        context.ctx, target, str(formula).strip(), context.capabilities, context.sink
    )
    context.path = applied.path
    context.info(
        f"Applied formula to {applied.rows}x{applied.columns} range via {applied.path}"
    )
    return applied.model_dump()


def coerce_grid(raw: Any, text: str | None) -> list[list[Any]]:
    """Normalize ``values`` data into a rectangular 2D grid.

    A 2D array is kept, a 1D array becomes one row, a scalar one cell, and
    text that is not JSON is written verbatim. Ragged rows are padded.
    """
    if isinstance(raw, list):
        rows = raw if raw and all(isinstance(row, list) for row in raw) else [raw]
    elif raw is None:
        rows = [[text if text is not None else ""]]
    elif isinstance(raw, dict):
        rows = [[text if text is not None else str(raw)]]
    else:
        rows = [[raw]]
    width = max((len(row) for row in rows), default=0)
    if width == 0:
        raise ActionValidationError("values requires a non-empty array")
    return [[_cell(value) for value in row] + [""] * (width - len(row)) for row in rows]


def _cell(value: Any) -> Any:
    return "" if value is None else value


@handler("values")
async def apply_values(context: HandlerContext, payload: RawPayload) -> dict[str, int]:
    target = context.require_range()
    grid = coerce_grid(payload.raw, payload.data_text)
    rows, cols = len(grid), len(grid[0])
    if (rows, cols) != (target.row_count, target.column_count):
        if (target.row_count, target.column_count) != (1, 1):
            context.info(
                f"Resizing {target.address} to the {rows}x{cols} value grid"
            )
        target = target.get_absolute_resized_range(rows, cols)
    target.values = grid
    await context.ctx.sync()
    context.info(f"Applied values to {rows}x{cols} range")
    return {"rows": rows, "columns": cols}


@handler("format", payload=FormatPayload)
async def apply_format(context: HandlerContext, payload: FormatPayload) -> list[str]:
    target = context.require_range()
    fmt = target.format
    applied: list[str] = []
    if payload.bold is not None:
        fmt.font.bold = payload.bold
        applied.append("bold")
    if payload.italic is not None:
        fmt.font.italic = payload.italic
        applied.append("italic")
    if payload.underline is not None:
        fmt.font.underline = payload.underline
        applied.append("underline")
    if payload.strikethrough is not None:
        fmt.font.strikethrough = payload.strikethrough
        applied.append("strikethrough")
    if payload.font_name:
        fmt.font.name = payload.font_name
        applied.append("fontName")
    if payload.font_size is not None:
        if payload.font_size > 0:
            fmt.font.size = payload.font_size
            applied.append("fontSize")
        else:
            context.warn(f"Skipped invalid fontSize {payload.font_size}")
    if payload.font_color is not None:
        if _valid_color(context, "fontColor", payload.font_color):
            fmt.font.color = payload.font_color
            applied.append("fontColor")
    if payload.fill is not None:
        if _valid_color(context, "fill", payload.fill):
            fmt.fill.color = payload.fill
            applied.append("fill")

    number_format = payload.number_format
    if payload.number_format_preset:
        preset = NUMBER_FORMAT_PRESETS.get(payload.number_format_preset.lower())
        if preset is None:
            context.warn(f"Unknown numberFormatPreset {payload.number_format_preset}")
        else:
            number_format = preset
    if number_format:
        target.number_format = [
            [number_format] * target.column_count for _ in range(target.row_count)
        ]
        applied.append("numberFormat")

    if payload.horizontal_alignment:
        fmt.horizontal_alignment = payload.horizontal_alignment
        applied.append("horizontalAlignment")
    if payload.vertical_alignment:
        fmt.vertical_alignment = payload.vertical_alignment
        applied.append("verticalAlignment")
    if payload.wrap_text is not None:
        fmt.wrap_text = payload.wrap_text
        applied.append("wrapText")
    if payload.text_orientation is not None:
        orientation = payload.text_orientation
        if orientation == 255 or -90 <= orientation <= 90:
            fmt.text_orientation = orientation
            applied.append("textOrientation")
        else:
            context.warn(f"Skipped invalid textOrientation {orientation}")
    if payload.indent_level is not None:
        if 0 <= payload.indent_level <= 250:
            fmt.indent_level = payload.indent_level
            applied.append("indentLevel")
        else:
            context.warn(f"Skipped invalid indentLevel {payload.indent_level}")

    if payload.border:
        for edge in BORDER_EDGES[:4]:
            fmt.borders.get_item(edge).apply(style="Continuous", weight="Thin")
        applied.append("border")
    for key, spec in payload.borders.items():
        edge = _BORDER_KEYS.get(key)
        if edge is None:
            context.warn(f"Skipped unknown border edge {key}")
            continue
        color = spec.color
        if color is not None and not _valid_color(context, f"borders.{key}.color", color):
            color = None
        fmt.borders.get_item(edge).apply(style=spec.style, weight=spec.weight, color=color)
        applied.append(f"borders.{key}")

    await context.ctx.sync()
    context.info(f"Applied formatting: {', '.join(applied) or 'nothing'}")
    return applied


def _valid_color(context: HandlerContext, field: str, value: str) -> bool:
    if is_hex_rgb(value):
        return True
    context.warn(f"Skipped invalid {field} color {value!r}")
    return False


@handler("conditionalFormat")
async def apply_conditional_format(
    context: HandlerContext, payload: RawPayload
) -> dict[str, int]:
    target = context.require_range()
    rules = rule_list(payload.raw)
    compiled = compile_rules(rules, context.sink)
    skipped = len(rules) - len(compiled)
    target.conditional_formats.clear_all()
    for rule in compiled:
        target.conditional_formats.add(rule)
    await context.ctx.sync()
    context.info(
        f"Applied {len(compiled)} conditional format rule(s), skipped {skipped}"
    )
    return {"applied": len(compiled), "skipped": skipped}


@handler("clearFormat")
async def clear_conditional_format(
    context: HandlerContext, payload: RawPayload
) -> None:
    context.require_range().conditional_formats.clear_all()
    await context.ctx.sync()
    context.info("Cleared conditional formatting")


@handler("validation", payload=ValidationPayload)
async def apply_validation(
    context: HandlerContext, payload: ValidationPayload
) -> dict[str, Any]:
    target = context.require_range()
    is_list = payload.type.lower() == "list"
    list_source = context.source or (payload.source if is_list else None)
    if list_source is not None:
        options = await _list_options(context, list_source)
        if not options:
            raise ActionValidationError("validation source has no values")
        spec = ValidationSpec(
            type="list",
            formula1='"' + ",".join(options) + '"',
            allow_blank=payload.allow_blank,
            show_input_message=bool(payload.show_input_message),
            input_title=payload.input_title,
            input_message=payload.input_message,
            show_error_alert=payload.show_error_alert,
            error_title=payload.error_title,
            error_message=payload.error_message,
            error_style=payload.error_style,
        )
        target.data_validation.clear()
        target.data_validation.apply(spec)
        await context.ctx.sync()
        context.info(f"Applied validation with {len(options)} options")
        return {"type": "list", "options": options}

    rule_type = _VALIDATION_TYPES.get(payload.type.replace(" ", "").lower())
    if rule_type is None:
        raise ActionValidationError(f"Unsupported validation type: {payload.type}")
    if payload.formula1 is None or payload.formula1 == "":
        raise ActionValidationError(f"{payload.type} validation requires 'formula1'")
    operator = None
    if rule_type not in {"list", "custom"}:
        operator = cell_operator(payload.operator or "Between")
        if operator is None:
            raise ActionValidationError(f"Invalid validation operator: {payload.operator}")
        if operator in {"between", "notBetween"} and payload.formula2 in (None, ""):
            raise ActionValidationError(f"{payload.operator or 'Between'} requires 'formula2'")
    formula1 = str(payload.formula1).strip()
    if rule_type == "list" and not formula1.startswith(("=", '"')):
        formula1 = f'"{formula1}"'
    spec = ValidationSpec.model_validate(
        {
            "type": rule_type,
            "operator": operator,
            "formula1": formula1,
            "formula2": None if payload.formula2 in (None, "") else str(payload.formula2),
            "allow_blank": payload.allow_blank,
            "show_input_message": bool(payload.show_input_message or payload.input_message),
            "input_title": payload.input_title,
            "input_message": payload.input_message,
            "show_error_alert": payload.show_error_alert,
            "error_title": payload.error_title,
            "error_message": payload.error_message,
            "error_style": payload.error_style,
        }
    )
    target.data_validation.clear()
    target.data_validation.apply(spec)
    await context.ctx.sync()
    context.info(f"Applied {rule_type} validation")
    return {"type": rule_type}


async def _list_options(context: HandlerContext, source: str | list[Any]) -> list[str]:
    if isinstance(source, list):
        return _unique(source)
    _, reference = split_sheet_qualifier(source)
    if not is_range_address(reference):
        return _unique(source.split(","))
    source_range = await context.load_range(source, "values")
    return _unique(row[0] for row in source_range.values if row)


def _unique(values: Any) -> list[str]:
    seen: set[str] = set()
    options: list[str] = []
    for value in values:
        if value is None:
            continue
        text = str(value).strip()
        if text and text not in seen:
            seen.add(text)
            options.append(text)
    return options


__all__ = [
    "NUMBER_FORMAT_PRESETS",
    "FormatPayload",
    "ValidationPayload",
    "coerce_grid",
]
