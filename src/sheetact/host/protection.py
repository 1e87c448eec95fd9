from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from openpyxl.utils.protection import hash_password
from openpyxl.workbook.protection import WorkbookProtection
from openpyxl.worksheet.protection import SheetProtection
from pydantic import BaseModel

from .client import ClientObject, HostError, HostProperty

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .worksheet import WorksheetProxy

logger = logging.getLogger(__name__)

SELECTION_MODES = ("Normal", "Unlocked", "None")


class WorksheetProtectionOptions(BaseModel):
    """What users may still do on a protected worksheet."""

    allow_format_cells: bool = False
    allow_format_columns: bool = False
    allow_format_rows: bool = False
    allow_insert_columns: bool = False
    allow_insert_rows: bool = False
    allow_insert_hyperlinks: bool = False
    allow_delete_columns: bool = False
    allow_delete_rows: bool = False
    allow_sort: bool = False
    allow_auto_filter: bool = False
    allow_pivot_tables: bool = False
    allow_edit_objects: bool = False
    allow_edit_scenarios: bool = False
    selection_mode: str = "Normal"


# openpyxl flags are "protected" switches, the inverse of the allow_* options.
_SHEET_FLAGS = {
    "allow_format_cells": "formatCells",
    "allow_format_columns": "formatColumns",
    "allow_format_rows": "formatRows",
    "allow_insert_columns": "insertColumns",
    "allow_insert_rows": "insertRows",
    "allow_insert_hyperlinks": "insertHyperlinks",
    "allow_delete_columns": "deleteColumns",
    "allow_delete_rows": "deleteRows",
    "allow_sort": "sort",
    "allow_auto_filter": "autoFilter",
    "allow_pivot_tables": "pivotTables",
    "allow_edit_objects": "objects",
    "allow_edit_scenarios": "scenarios",
}


class WorksheetProtectionProxy(ClientObject):
    protected = HostProperty()
    options = HostProperty()

    def __init__(self, worksheet: WorksheetProxy) -> None:
        super().__init__(worksheet.context)
        self.worksheet = worksheet

    def _read_protected(self) -> bool:
        return bool(self.worksheet._sheet().protection.sheet)

    def _read_options(self) -> WorksheetProtectionOptions:
        protection = self.worksheet._sheet().protection
        values: dict[str, object] = {
            option: not bool(getattr(protection, flag))
            for option, flag in _SHEET_FLAGS.items()
        }
        if protection.selectUnlockedCells:
            values["selection_mode"] = "None"
        elif protection.selectLockedCells:
            values["selection_mode"] = "Unlocked"
        return WorksheetProtectionOptions.model_validate(values)

    def protect(
        self,
        options: WorksheetProtectionOptions | None = None,
        password: str | None = None,
    ) -> None:
        chosen = options or WorksheetProtectionOptions()

        def _protect() -> None:
            sheet = self.worksheet._sheet()
            if sheet.protection.sheet:
                raise HostError(
                    "The worksheet is already protected.", code="InvalidOperation"
                )
            if chosen.selection_mode not in SELECTION_MODES:
                raise HostError(
                    f"Invalid selection mode: {chosen.selection_mode}",
                    code="InvalidArgument",
                )
            protection = SheetProtection(sheet=True)
            for option, flag in _SHEET_FLAGS.items():
                setattr(protection, flag, not getattr(chosen, option))
            protection.selectLockedCells = chosen.selection_mode in {"Unlocked", "None"}
            protection.selectUnlockedCells = chosen.selection_mode == "None"
            if password:
                protection.password = password
            sheet.protection = protection

        self._queue(_protect)

    def unprotect(self, password: str | None = None) -> None:
        def _unprotect() -> None:
            protection = self.worksheet._sheet().protection
            if not protection.sheet:
                return
            stored = protection.password
            if stored and (not password or hash_password(password) != stored):
                raise HostError(
                    "The password you supplied is not correct.", code="AccessDenied"
                )
            self.worksheet._sheet().protection = SheetProtection()

        self._queue(_unprotect)


class WorkbookProtectionProxy(ClientObject):
    protected = HostProperty()
    structure = HostProperty()
    windows = HostProperty()

    def _security(self) -> WorkbookProtection | None:
        return self.context.book.security

    def _read_protected(self) -> bool:
        security = self._security()
        return bool(security and (security.lockStructure or security.lockWindows))

    def _read_structure(self) -> bool:
        security = self._security()
        return bool(security and security.lockStructure)

    def _read_windows(self) -> bool:
        security = self._security()
        return bool(security and security.lockWindows)

    def protect(
        self,
        password: str | None = None,
        *,
        structure: bool = True,
        windows: bool = False,
    ) -> None:
        def _protect() -> None:
            if self._read_protected():
                raise HostError(
                    "The workbook is already protected.", code="InvalidOperation"
                )
            if not structure and not windows:
                raise HostError(
                    "Protect at least the structure or the windows.",
                    code="InvalidArgument",
                )
            security = WorkbookProtection(lockStructure=structure, lockWindows=windows)
            if password:
                security.workbookPassword = password
            self.context.book.security = security

        self._queue(_protect)

    def unprotect(self, password: str | None = None) -> None:
        def _unprotect() -> None:
            security = self._security()
            if security is None:
                return
            stored = security.workbookPassword
            if stored and (not password or hash_password(password) != stored):
                raise HostError(
                    "The password you supplied is not correct.", code="AccessDenied"
                )
            self.context.book.security = WorkbookProtection()

        self._queue(_unprotect)


__all__ = [
    "SELECTION_MODES",
    "WorkbookProtectionProxy",
    "WorksheetProtectionOptions",
    "WorksheetProtectionProxy",
]
