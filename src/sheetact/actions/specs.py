from __future__ import annotations

from typing import Final

from pydantic import BaseModel, Field

from .types import Namespace, TargetMode


class ActionSpec(BaseModel):
    """Target-resolution metadata for one action kind."""

    kind: str
    mode: TargetMode
    namespace: Namespace | None = Field(
        default=None, description="Namespace searched for symbolic targets."
    )


def _spec(
    kind: str, mode: TargetMode, namespace: Namespace | None = None
) -> ActionSpec:
    return ActionSpec(kind=kind, mode=mode, namespace=namespace)


_RANGE_KINDS: Final[tuple[str, ...]] = (
    "formula",
    "values",
    "format",
    "conditionalFormat",
    "clearFormat",
    "validation",
    "sort",
    "filter",
    "clearFilter",
    "autofill",
    "copy",
    "copyValues",
    "removeDuplicates",
    "findReplace",
    "textToColumns",
    "mergeCells",
    "unmergeCells",
    "chart",
    "pivotChart",
    "createTable",
    "createPivotTable",
    "protectRange",
    "unprotectRange",
    "addComment",
    "addNote",
    "editComment",
    "editNote",
    "deleteComment",
    "deleteNote",
    "replyToComment",
    "resolveComment",
    "createSparkline",
    "configureSparkline",
    "deleteSparkline",
    "addHyperlink",
    "removeHyperlink",
    "editHyperlink",
    "insertDataType",
    "refreshDataType",
)
_BAND_KINDS: Final[tuple[str, ...]] = (
    "insertRows",
    "deleteRows",
    "insertColumns",
    "deleteColumns",
)
_SYMBOLIC_KINDS: Final[tuple[tuple[str, Namespace | None], ...]] = (
    ("styleTable", "table"),
    ("addTableRow", "table"),
    ("addTableColumn", "table"),
    ("resizeTable", "table"),
    ("convertToRange", "table"),
    ("toggleTableTotals", "table"),
    ("addPivotField", "pivot_table"),
    ("configurePivotLayout", "pivot_table"),
    ("refreshPivotTable", "pivot_table"),
    ("deletePivotTable", "pivot_table"),
    # createSlicer targets either a table or a pivot table.
    ("createSlicer", None),
    ("configureSlicer", "slicer"),
    ("connectSlicerToTable", "slicer"),
    ("connectSlicerToPivot", "slicer"),
    ("deleteSlicer", "slicer"),
    ("createNamedRange", "named_range"),
    ("deleteNamedRange", "named_range"),
    ("updateNamedRange", "named_range"),
    ("formatShape", "shape"),
    ("deleteShape", "shape"),
    ("groupShapes", "shape"),
    ("ungroupShapes", "shape"),
    ("arrangeShapes", "shape"),
    ("renameSheet", "sheet"),
    ("moveSheet", "sheet"),
    ("hideSheet", "sheet"),
    ("unhideSheet", "sheet"),
)
_TARGET_OPTIONAL_KINDS: Final[tuple[str, ...]] = (
    "sheet",
    "listNamedRanges",
    "protectWorksheet",
    "unprotectWorksheet",
    "protectWorkbook",
    "unprotectWorkbook",
    "insertShape",
    "insertImage",
    "insertTextBox",
    "freezePanes",
    "unfreezePane",
    "setZoom",
    "splitPane",
    "createView",
    "setPageSetup",
    "setPageMargins",
    "setPageOrientation",
    "setPrintArea",
    "setHeaderFooter",
    "setPageBreaks",
)

ACTION_SPECS: Final[dict[str, ActionSpec]] = {
    **{kind: _spec(kind, "range") for kind in _RANGE_KINDS},
    **{kind: _spec(kind, "band") for kind in _BAND_KINDS},
    **{kind: _spec(kind, "symbolic", namespace) for kind, namespace in _SYMBOLIC_KINDS},
    **{kind: _spec(kind, "none") for kind in _TARGET_OPTIONAL_KINDS},
}

SYMBOLIC_TARGET_KINDS: Final[frozenset[str]] = frozenset(
    kind for kind, _ in _SYMBOLIC_KINDS
)
TARGET_OPTIONAL_KINDS: Final[frozenset[str]] = frozenset(_TARGET_OPTIONAL_KINDS)
BAND_KINDS: Final[frozenset[str]] = frozenset(_BAND_KINDS)
KNOWN_KINDS: Final[frozenset[str]] = frozenset(ACTION_SPECS)


def get_action_spec(kind: str) -> ActionSpec | None:
    """Return the spec registered for ``kind`` (``None`` for unknown kinds)."""
    return ACTION_SPECS.get(kind)


def target_mode_for(kind: str) -> TargetMode:
    """Return how the target of ``kind`` is resolved; unknown kinds use ranges."""
    spec = ACTION_SPECS.get(kind)
    return spec.mode if spec is not None else "range"


__all__ = [
    "ACTION_SPECS",
    "BAND_KINDS",
    "KNOWN_KINDS",
    "SYMBOLIC_TARGET_KINDS",
    "TARGET_OPTIONAL_KINDS",
    "ActionSpec",
    "get_action_spec",
    "target_mode_for",
]
