from __future__ import annotations

from .a1 import (
    build_range_address,
    column_index_to_label,
    column_label_to_index,
    column_letter_to_offset,
    column_offset_to_letter,
    normalize_range,
    parse_range_geometry,
    range_cell_count,
    split_a1,
    split_sheet_qualifier,
)
from .colors import is_hex_rgb, normalize_hex_input, to_argb
from .output_path import OutputPlan, plan_output

__all__ = [
    "OutputPlan",
    "build_range_address",
    "column_index_to_label",
    "column_label_to_index",
    "column_letter_to_offset",
    "column_offset_to_letter",
    "is_hex_rgb",
    "normalize_hex_input",
    "normalize_range",
    "parse_range_geometry",
    "plan_output",
    "range_cell_count",
    "split_a1",
    "split_sheet_qualifier",
    "to_argb",
]
