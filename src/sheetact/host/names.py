from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Literal

from openpyxl.workbook.defined_name import DefinedName, DefinedNameDict
from pydantic import BaseModel

from sheetact.shared.a1 import looks_like_cell_reference

from .client import ClientObject, HostError, HostProperty, RequestContext, find_key

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .worksheet import WorksheetProxy

logger = logging.getLogger(__name__)

NamedItemType = Literal["Range", "Formula", "String", "Double", "Boolean", "Error"]

_NAME_PATTERN = re.compile(r"^[A-Za-z_\\][A-Za-z0-9_.\\]*$")
_AREA = (
    r"(?:'(?:[^']|'')+'|[A-Za-z0-9_.]+)!"
    r"\$?[A-Za-z]{1,3}\$?\d+(?::\$?[A-Za-z]{1,3}\$?\d+)?"
)
_REFERENCE_PATTERN = re.compile(rf"^{_AREA}(?:,{_AREA})*$")


def is_valid_defined_name(name: str) -> bool:
    """Identifier-like, at most 255 characters and not readable as a cell."""
    return (
        0 < len(name) <= 255
        and bool(_NAME_PATTERN.match(name))
        and not looks_like_cell_reference(name)
    )


def classify_reference(text: str) -> NamedItemType:
    body = text.strip()
    if _REFERENCE_PATTERN.match(body):
        return "Range"
    if body.startswith('"') and body.endswith('"'):
        return "String"
    if body.upper() in {"TRUE", "FALSE"}:
        return "Boolean"
    if body.startswith("#"):
        return "Error"
    try:
        float(body)
    except ValueError:
        return "Formula"
    return "Double"


class NamedItemInfo(BaseModel):
    """Snapshot of one defined name."""

    name: str
    formula: str
    comment: str | None = None
    visible: bool = True
    scope: str = "Workbook"
    type: NamedItemType = "Range"


class NamedItemCollection(ClientObject):
    """Defined names of the workbook, or of one worksheet when ``worksheet`` is set."""

    items = HostProperty()
    count = HostProperty()

    def __init__(
        self, context: RequestContext, worksheet: WorksheetProxy | None = None
    ) -> None:
        super().__init__(context)
        self.worksheet = worksheet

    def _names(self) -> DefinedNameDict:
        if self.worksheet is None:
            return self.context.book.defined_names
        return self.worksheet._sheet().defined_names

    def _scope(self) -> str:
        return "Workbook" if self.worksheet is None else self.worksheet._sheet().title

    def _read_items(self) -> list[NamedItemInfo]:
        scope = self._scope()
        return [_info(defined, scope) for defined in self._names().values()]

    def _read_count(self) -> int:
        return len(self._names())

    def get_item(self, name: str) -> NamedItemProxy:
        return NamedItemProxy(self, name)

    def get_item_or_null_object(self, name: str) -> NamedItemProxy:
        return NamedItemProxy(self, name)

    def add(
        self, name: str, reference: str, comment: str | None = None
    ) -> NamedItemProxy:
        proxy = NamedItemProxy(self, name)

        def _add() -> None:
            if not is_valid_defined_name(name):
                raise HostError(
                    f"'{name}' is not a valid name.", code="InvalidArgument"
                )
            names = self._names()
            if find_key(names, name) is not None:
                raise HostError(
                    f"The name '{name}' already exists in scope {self._scope()}.",
                    code="ItemAlreadyExists",
                )
            text = reference.strip()
            text = text[1:] if text.startswith("=") else text
            if not text:
                raise HostError(
                    "A name needs a reference or value.", code="InvalidArgument"
                )
            names.add(DefinedName(name, attr_text=text, comment=comment or None))

        self._queue(_add)
        return proxy


class NamedItemProxy(ClientObject):
    name = HostProperty()
    formula = HostProperty(writable=True)
    comment = HostProperty(writable=True)
    visible = HostProperty(writable=True)
    type = HostProperty()
    scope = HostProperty()

    def __init__(self, collection: NamedItemCollection, name: str) -> None:
        super().__init__(collection.context)
        self.collection = collection
        self._name = name

    def _resolve(self) -> DefinedName:
        names = self.collection._names()
        key = find_key(names, self._name)
        if key is None:
            raise HostError(
                f"The name '{self._name}' doesn't exist.", code="ItemNotFound"
            )
        return names[key]

    def _exists(self) -> bool:
        if self.collection.worksheet is not None and not self.collection.worksheet._exists():
            return False
        return find_key(self.collection._names(), self._name) is not None

    def _read_name(self) -> str:
        return self._resolve().name

    def _read_formula(self) -> str:
        return f"={self._resolve().attr_text}"

    def _write_formula(self, value: str) -> None:
        text = value.strip()
        text = text[1:] if text.startswith("=") else text
        if not text:
            raise HostError(
                "A name needs a reference or value.", code="InvalidArgument"
            )
        self._resolve().attr_text = text

    def _read_comment(self) -> str | None:
        return self._resolve().comment

    def _write_comment(self, value: str | None) -> None:
        self._resolve().comment = value or None

    def _read_visible(self) -> bool:
        return not self._resolve().hidden

    def _write_visible(self, value: bool) -> None:
        self._resolve().hidden = None if value else True

    def _read_type(self) -> str:
        return classify_reference(self._resolve().attr_text)

    def _read_scope(self) -> str:
        return self.collection._scope()

    def rename(self, new_name: str) -> None:
        def _rename() -> None:
            if not is_valid_defined_name(new_name):
                raise HostError(
                    f"'{new_name}' is not a valid name.", code="InvalidArgument"
                )
            names = self.collection._names()
            defined = self._resolve()
            clash = find_key(names, new_name)
            if clash is not None and clash != defined.name:
                raise HostError(
                    f"The name '{new_name}' already exists.", code="ItemAlreadyExists"
                )
            del names[defined.name]
            defined.name = new_name
            names.add(defined)
            self._name = new_name

        self._queue(_rename)

    def delete(self) -> None:
        def _delete() -> None:
            defined = self._resolve()
            del self.collection._names()[defined.name]

        self._queue(_delete)


def _info(defined: DefinedName, scope: str) -> NamedItemInfo:
    return NamedItemInfo(
        name=defined.name,
        formula=f"={defined.attr_text}",
        comment=defined.comment,
        visible=not defined.hidden,
        scope=scope,
        type=classify_reference(defined.attr_text or ""),
    )


__all__ = [
    "NamedItemCollection",
    "NamedItemInfo",
    "NamedItemProxy",
    "NamedItemType",
    "classify_reference",
    "is_valid_defined_name",
]
