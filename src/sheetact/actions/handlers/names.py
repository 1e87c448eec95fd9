"""Named range handlers."""

from __future__ import annotations

import logging
import re
from typing import Any, Literal

from sheetact.errors import ActionValidationError
from sheetact.host import NamedItemCollection, NamedItemInfo, WorksheetProxy
from sheetact.host.names import is_valid_defined_name
from sheetact.shared.a1 import (
    is_range_address,
    normalize_range,
    quote_sheet_name,
    split_sheet_qualifier,
)

from ..models import ActionPayload
from .base import HandlerContext, handler

logger = logging.getLogger(__name__)

NameScope = Literal["Workbook", "Worksheet"]


class CreateNamePayload(ActionPayload):
    name: str | None = None
    reference: str | None = None
    scope: NameScope = "Workbook"
    comment: str | None = None
    is_constant: bool = False
    is_formula: bool = False
    value: Any = None
    formula: str | None = None


class DeleteNamePayload(ActionPayload):
    delete_all: bool = False
    scope: NameScope = "Workbook"


class UpdateNamePayload(ActionPayload):
    new_reference: str | None = None
    new_name: str | None = None
    comment: str | None = None


class ListNamesPayload(ActionPayload):
    scope: Literal["Workbook", "Worksheet", "All"] = "All"
    pattern: str | None = None
    include_hidden: bool = False


def absolute_reference(address: str, sheet_name: str) -> str:
    """``A1:B2`` on ``Data`` -> ``=Data!$A$1:$B$2``."""
    owner, reference = split_sheet_qualifier(address)
    start, end = normalize_range(reference).split(":")
    cells = [re.sub(r"^([A-Z]+)(\d+)$", r"$\1$\2", cell) for cell in (start, end)]
    body = cells[0] if start == end else f"{cells[0]}:{cells[1]}"
    return f"={quote_sheet_name(owner or sheet_name)}!{body}"


def constant_reference(value: Any) -> str:
    if isinstance(value, bool):
        return "=TRUE" if value else "=FALSE"
    if isinstance(value, (int, float)):
        return f"={value}"
    text = str(value)
    if text.startswith("="):
        return text
    escaped = text.replace('"', '""')
    return f'="{escaped}"'


def build_reference(text: str, sheet_name: str) -> str:
    """Normalize a range address, formula or constant into name formula text."""
    candidate = text.strip()
    _, reference = split_sheet_qualifier(candidate)
    if is_range_address(reference.replace("$", "")):
        return absolute_reference(candidate.replace("$", ""), sheet_name)
    if candidate.startswith("="):
        return candidate
    return constant_reference(candidate)


def _collection(context: HandlerContext, scope: str) -> NamedItemCollection:
    if scope == "Worksheet":
        return context.worksheet.names
    return context.ctx.workbook.names


@handler("createNamedRange", payload=CreateNamePayload)
async def create_named_range(
    context: HandlerContext, payload: CreateNamePayload
) -> str:
    name = payload.name or context.target
    if not name:
        raise ActionValidationError("createNamedRange requires 'name'")
    if not is_valid_defined_name(name):
        raise ActionValidationError(
            f'Invalid name "{name}". Names must start with a letter or underscore, '
            "contain no spaces and must not look like a cell reference."
        )
    context.worksheet.load("name")
    await context.ctx.sync()

    if payload.is_constant and payload.value is not None:
        reference = constant_reference(payload.value)
    elif payload.is_formula and payload.formula:
        formula = payload.formula.strip()
        reference = formula if formula.startswith("=") else f"={formula}"
    else:
        text = payload.reference or context.source
        if text is None and payload.name and context.target:
            text = context.target
        if not text:
            raise ActionValidationError(
                "createNamedRange requires 'reference' or a source range"
            )
        reference = build_reference(text, context.worksheet.name)

    _collection(context, payload.scope).add(name, reference, payload.comment)
    await context.ctx.sync()
    context.info(f"Created {payload.scope.lower()} name {name} -> {reference}")
    return reference


@handler("deleteNamedRange", payload=DeleteNamePayload)
async def delete_named_range(
    context: HandlerContext, payload: DeleteNamePayload
) -> int:
    if payload.delete_all:
        collection = _collection(context, payload.scope).load("items")
        await context.ctx.sync()
        for info in collection.items:
            collection.get_item(info.name).delete()
        await context.ctx.sync()
        context.info(f"Deleted {len(collection.items)} {payload.scope.lower()} name(s)")
        return len(collection.items)
    located = await context.locate()
    located.obj.delete()
    await context.ctx.sync()
    context.info(f"Deleted name {context.target}")
    return 1


@handler("updateNamedRange", payload=UpdateNamePayload)
async def update_named_range(
    context: HandlerContext, payload: UpdateNamePayload
) -> None:
    if not (payload.new_reference or payload.new_name or payload.comment is not None):
        raise ActionValidationError(
            "updateNamedRange requires 'newReference', 'newName' or 'comment'"
        )
    located = await context.locate()
    item = located.obj
    if payload.new_reference:
        owner: WorksheetProxy = located.worksheet or context.worksheet
        owner.load("name")
        await context.ctx.sync()
        item.formula = build_reference(payload.new_reference, owner.name)
    if payload.comment is not None:
        item.comment = payload.comment
    if payload.new_name:
        item.rename(payload.new_name)
    await context.ctx.sync()
    context.info(f"Updated name {context.target}")


def filter_names(
    items: list[NamedItemInfo], pattern: str | None, include_hidden: bool
) -> list[NamedItemInfo]:
    """Apply the visibility and regex filters of ``listNamedRanges``."""
    matcher = None
    if pattern:
        try:
            matcher = re.compile(pattern, re.IGNORECASE)
        except re.error as exc:
            raise ActionValidationError(f'Invalid pattern "{pattern}": {exc}') from exc
    return [
        item
        for item in items
        if (include_hidden or item.visible)
        and (matcher is None or matcher.search(item.name))
    ]


@handler("listNamedRanges", payload=ListNamesPayload)
async def list_named_ranges(
    context: HandlerContext, payload: ListNamesPayload
) -> list[dict[str, Any]]:
    collections: list[NamedItemCollection] = []
    if payload.scope in {"Workbook", "All"}:
        collections.append(context.ctx.workbook.names.load("items"))
    if payload.scope in {"Worksheet", "All"}:
        sheets = context.ctx.workbook.worksheets.load("items")
        await context.ctx.sync()
        collections.extend(ws.names.load("items") for ws in sheets.items)
    await context.ctx.sync()

    items = [info for collection in collections for info in collection.items]
    found = filter_names(items, payload.pattern, payload.include_hidden)
    for info in found:
        context.info(f"{info.name} ({info.scope}): {info.formula}")
    context.info(f"Found {len(found)} named range(s)")
    return [info.model_dump() for info in found]


__all__ = [
    "absolute_reference",
    "build_reference",
    "constant_reference",
    "filter_names",
]
