from __future__ import annotations

from typing import Literal

ActionState = Literal[
    "received",
    "validated",
    "resolved",
    "applied",
    "reported",
    "failed",
]
TargetMode = Literal["range", "symbolic", "band", "none"]
Namespace = Literal[
    "table",
    "pivot_table",
    "slicer",
    "shape",
    "named_range",
    "sheet",
]
FormulaPath = Literal["direct", "autofill", "manual"]
DiagnosticLevel = Literal["info", "warning", "error"]
AggregateFunction = Literal["sum", "count", "average", "max", "min"]
RuleFamily = Literal[
    "cellValue",
    "colorScale",
    "dataBar",
    "iconSet",
    "topBottom",
    "preset",
    "textComparison",
    "custom",
]
NumberFormatPreset = Literal[
    "currency",
    "accounting",
    "percentage",
    "date",
    "time",
    "scientific",
    "text",
    "number",
    "fraction",
]
