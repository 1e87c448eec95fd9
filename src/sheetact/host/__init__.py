"""Reference host: a batched proxy API over an openpyxl workbook."""

from __future__ import annotations

from .charts import CHART_TYPES, ChartCollection, ChartProxy
from .client import (
    DEFAULT_CAPABILITIES,
    ClientObject,
    ClientResult,
    HostError,
    HostProperty,
    PropertyNotLoadedError,
    RequestContext,
)
from .comments import CommentCollection, CommentProxy, NoteCollection, NoteProxy
from .filters import AutoFilterProxy, FilterCriteria
from .formats import (
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
    TopBottomSpec,
    ValidationSpec,
)
from .layout import PageLayoutProxy
from .names import NamedItemCollection, NamedItemInfo, NamedItemProxy
from .pivots import PivotTableCollection, PivotTableProxy
from .protection import (
    WorkbookProtectionProxy,
    WorksheetProtectionOptions,
    WorksheetProtectionProxy,
)
from .range import RangeHyperlink, RangeProxy
from .shapes import ShapeCollection, ShapeProxy
from .slicers import SlicerCollection, SlicerProxy
from .sparklines import SparklineGroupCollection, SparklineGroupProxy
from .state import LinkedDataType
from .tables import TableCollection, TableProxy
from .workbook import WorkbookProxy
from .worksheet import WorksheetCollection, WorksheetProxy

__all__ = [
    "CHART_TYPES",
    "DEFAULT_CAPABILITIES",
    "AutoFilterProxy",
    "CellValueSpec",
    "ChartCollection",
    "ChartProxy",
    "ClientObject",
    "ClientResult",
    "ColorScaleSpec",
    "CommentCollection",
    "CommentProxy",
    "CompiledRule",
    "CustomSpec",
    "DataBarSpec",
    "FilterCriteria",
    "HostError",
    "HostProperty",
    "IconSetSpec",
    "LinkedDataType",
    "NamedItemCollection",
    "NamedItemInfo",
    "NamedItemProxy",
    "NoteCollection",
    "NoteProxy",
    "PageLayoutProxy",
    "PivotTableCollection",
    "PivotTableProxy",
    "PresetSpec",
    "PropertyNotLoadedError",
    "RangeHyperlink",
    "RangeProxy",
    "RequestContext",
    "RuleFormat",
    "ShapeCollection",
    "ShapeProxy",
    "SlicerCollection",
    "SlicerProxy",
    "SparklineGroupCollection",
    "SparklineGroupProxy",
    "TableCollection",
    "TableProxy",
    "TextComparisonSpec",
    "Threshold",
    "TopBottomSpec",
    "ValidationSpec",
    "WorkbookProtectionProxy",
    "WorkbookProxy",
    "WorksheetCollection",
    "WorksheetProtectionOptions",
    "WorksheetProtectionProxy",
    "WorksheetProxy",
]
