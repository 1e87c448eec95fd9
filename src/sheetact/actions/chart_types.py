from __future__ import annotations

from typing import Final

DEFAULT_CHART_TYPE: Final[str] = "columnClustered"
DEFAULT_CHART_TITLE: Final[str] = "Chart"
DEFAULT_CHART_POSITION: Final[str] = "H2"
CHART_SPAN_COLUMNS: Final[int] = 8
CHART_SPAN_ROWS: Final[int] = 15

# Ordered (keywords, chart type) pairs; the first keyword hit wins.
_CHART_TYPE_KEYWORDS: Final[tuple[tuple[tuple[str, ...], str], ...]] = (
    (("line",), "line"),
    (("pie",), "pie"),
    (("doughnut", "donut"), "doughnut"),
    (("bar",), "barClustered"),
    (("area",), "area"),
    (("scatter", "xy"), "xyScatter"),
    (("radar", "spider"), "radar"),
)

# "stacked" modifies the base type instead of naming a type of its own.
_STACKED_VARIANTS: Final[dict[str, str]] = {
    "barClustered": "barStacked",
    "columnClustered": "columnStacked",
    "area": "areaStacked",
    "line": "lineStacked",
}

_ROUND_CHART_TYPES: Final[frozenset[str]] = frozenset({"pie", "doughnut"})


def resolve_chart_type(hint: str | None) -> str:
    """Map a free-text chart hint to a host chart type.

    Args:
        hint: Chart type text from the descriptor (``"stacked bar"``,
            ``"Donut"``, ``"xy"``...). ``None`` selects the default.

    Returns:
        Host chart type name; ``columnClustered`` when nothing matches.
    """
    text = (hint or "").strip().lower()
    resolved = DEFAULT_CHART_TYPE
    for keywords, chart_type in _CHART_TYPE_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            resolved = chart_type
            break
    if "stacked" in text:
        return _STACKED_VARIANTS.get(resolved, resolved)
    return resolved


def legend_position_for(chart_type: str) -> str:
    """Pie and doughnut legends sit on the right, everything else below."""
    return "Right" if chart_type in _ROUND_CHART_TYPES else "Bottom"


def is_round_chart(chart_type: str) -> bool:
    return chart_type in _ROUND_CHART_TYPES


__all__ = [
    "CHART_SPAN_COLUMNS",
    "CHART_SPAN_ROWS",
    "DEFAULT_CHART_POSITION",
    "DEFAULT_CHART_TITLE",
    "DEFAULT_CHART_TYPE",
    "is_round_chart",
    "legend_position_for",
    "resolve_chart_type",
]
