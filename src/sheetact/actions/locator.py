"""Resolution of textual targets into host handles.

Range addresses may carry a sheet qualifier. Symbolic names (tables, pivot
tables, slicers, shapes, named ranges, sheets) can live on any worksheet and
are searched in document order; the first match wins.
"""

from __future__ import annotations

from collections.abc import Callable
import logging
from typing import Any

from sheetact.errors import NotFoundError
from sheetact.host import ClientObject, RangeProxy, RequestContext, WorksheetProxy
from sheetact.shared.a1 import split_sheet_qualifier

from .types import Namespace

logger = logging.getLogger(__name__)

_ITEM_PROBES: dict[str, Callable[[WorksheetProxy, str], ClientObject]] = {
    "table": lambda ws, name: ws.tables.get_item_or_null_object(name),
    "pivot_table": lambda ws, name: ws.pivot_tables.get_item_or_null_object(name),
    "slicer": lambda ws, name: ws.slicers.get_item_or_null_object(name),
    "shape": lambda ws, name: ws.shapes.get_item_or_null_object(name),
    "named_range": lambda ws, name: ws.names.get_item_or_null_object(name),
}

_NAME_LISTS: dict[str, Callable[[WorksheetProxy], ClientObject]] = {
    "table": lambda ws: ws.tables,
    "pivot_table": lambda ws: ws.pivot_tables,
    "slicer": lambda ws: ws.slicers,
    "shape": lambda ws: ws.shapes,
}


class Located:
    """A named object together with the worksheet that owns it.

    ``worksheet`` is ``None`` for workbook-scoped named ranges.
    """

    def __init__(self, obj: Any, worksheet: WorksheetProxy | None) -> None:
        self.obj = obj
        self.worksheet = worksheet

    def __repr__(self) -> str:
        return f"Located({self.obj!r}, {self.worksheet!r})"


async def resolve_range(
    ctx: RequestContext, worksheet: WorksheetProxy, address: str
) -> RangeProxy:
    """Return a range proxy for ``address`` on ``worksheet`` or its named sheet.

    Raises:
        NotFoundError: If the address names a sheet that does not exist.
    """
    sheet_name, reference = split_sheet_qualifier(address)
    if sheet_name is None:
        return worksheet.get_range(reference)
    owner = ctx.workbook.worksheets.get_item_or_null_object(sheet_name)
    owner.load("is_null_object")
    await ctx.sync()
    if owner.is_null_object:
        raise NotFoundError("sheet", sheet_name)
    return owner.get_range(reference)


async def locate(ctx: RequestContext, namespace: Namespace, name: str) -> Located:
    """Find ``name`` in ``namespace`` without mutating anything.

    One barrier loads the sheet list, a second loads every sheet's
    null-object probe, so the cost does not grow with the sheet count.

    Raises:
        NotFoundError: If no sheet (or the workbook scope) holds the name.
    """
    if namespace == "sheet":
        sheet = ctx.workbook.worksheets.get_item_or_null_object(name)
        sheet.load("is_null_object")
        await ctx.sync()
        if sheet.is_null_object:
            raise NotFoundError("sheet", name)
        return Located(sheet, sheet)

    sheets = ctx.workbook.worksheets.load("items")
    await ctx.sync()

    workbook_probe = None
    if namespace == "named_range":
        workbook_probe = ctx.workbook.names.get_item_or_null_object(name)
        workbook_probe.load("is_null_object")
    probes: list[tuple[WorksheetProxy, ClientObject]] = []
    for ws in sheets.items:
        probe = _ITEM_PROBES[namespace](ws, name)
        probe.load("is_null_object")
        probes.append((ws, probe))
    await ctx.sync()

    if workbook_probe is not None and not workbook_probe.is_null_object:
        return Located(workbook_probe, None)
    for ws, probe in probes:
        if not probe.is_null_object:
            logger.debug("Located %s %r on %r", namespace, name, ws)
            return Located(probe, ws)
    raise NotFoundError(namespace, name)


class ObjectIndex:
    """Name -> owning sheet map for one namespace, built in two barriers.

    Lookups are case-insensitive; when two sheets hold the same name the
    one earlier in document order is kept.
    """

    def __init__(self, namespace: Namespace) -> None:
        self.namespace = namespace
        self._owners: dict[str, WorksheetProxy | None] = {}
        self._names: dict[str, str] = {}

    @classmethod
    async def build(cls, ctx: RequestContext, namespace: Namespace) -> ObjectIndex:
        index = cls(namespace)
        sheets = ctx.workbook.worksheets.load("items, names")
        await ctx.sync()
        if namespace == "sheet":
            for sheet_name, ws in zip(sheets.names, sheets.items):
                index._add(sheet_name, ws)
            return index

        workbook_names = None
        if namespace == "named_range":
            workbook_names = ctx.workbook.names.load("items")
        listings: list[tuple[WorksheetProxy, Any]] = []
        for ws in sheets.items:
            if namespace == "named_range":
                listing = ws.names.load("items")
            else:
                listing = _NAME_LISTS[namespace](ws).load("names")
            listings.append((ws, listing))
        await ctx.sync()

        if workbook_names is not None:
            for info in workbook_names.items:
                index._add(info.name, None)
        for ws, listing in listings:
            if namespace == "named_range":
                for info in listing.items:
                    index._add(info.name, ws)
            else:
                for item_name in listing.names:
                    index._add(item_name, ws)
        return index

    def _add(self, name: str, owner: WorksheetProxy | None) -> None:
        key = name.casefold()
        if key not in self._owners:
            self._owners[key] = owner
            self._names[key] = name

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.casefold() in self._owners

    def __len__(self) -> int:
        return len(self._owners)

    def names(self) -> list[str]:
        return list(self._names.values())

    def sheet_for(self, name: str) -> WorksheetProxy | None:
        """Owning sheet of ``name`` (``None`` for the workbook scope).

        Raises:
            NotFoundError: If the name is not indexed.
        """
        key = name.casefold()
        if key not in self._owners:
            raise NotFoundError(self.namespace, name)
        return self._owners[key]

    def get(self, ctx: RequestContext, name: str) -> Located:
        """Return a handle for ``name`` without another barrier."""
        owner = self.sheet_for(name)
        actual = self._names[name.casefold()]
        if self.namespace == "sheet" and owner is not None:
            return Located(owner, owner)
        if owner is None:
            return Located(ctx.workbook.names.get_item(actual), None)
        return Located(_ITEM_PROBES[self.namespace](owner, actual), owner)


__all__ = ["Located", "ObjectIndex", "locate", "resolve_range"]
