"""Where an action run saves its edited workbook."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel

from sheetact.io import PathPolicy

OnConflictPolicy = Literal["overwrite", "skip", "rename"]

EDITED_SUFFIX = "_edited"
MAX_RENAME_ATTEMPTS = 9_999


class OutputPlan(BaseModel):
    """Resolved save location of one run."""

    path: Path
    skip: bool = False
    warning: str | None = None


def plan_output(
    workbook: Path,
    *,
    out_dir: Path | None = None,
    out_name: str | None = None,
    on_conflict: OnConflictPolicy = "rename",
    policy: PathPolicy | None = None,
) -> OutputPlan:
    """Choose where the edited copy of ``workbook`` is saved.

    The copy sits next to the workbook unless ``out_dir`` is given and keeps
    its extension, so a macro-enabled book stays ``.xlsm``. An existing file
    is overwritten, left alone (``skip``) or avoided with a numeric suffix
    (``rename``).

    Raises:
        ValueError: If the folder or the file falls outside ``policy``.
        FileExistsError: If no free numbered name is left.
    """
    folder = out_dir or workbook.parent
    folder = policy.ensure_allowed(folder) if policy else folder.resolve()
    path = (folder / edited_name(workbook, out_name)).resolve()
    if policy is not None:
        path = policy.ensure_allowed(path)
    if on_conflict == "overwrite" or not path.exists():
        return OutputPlan(path=path)
    if on_conflict == "skip":
        return OutputPlan(
            path=path, skip=True, warning=f"Output exists; skipping write: {path.name}"
        )
    renamed = free_path(path)
    return OutputPlan(
        path=renamed, warning=f"Output exists; renamed to: {renamed.name}"
    )


def edited_name(workbook: Path, out_name: str | None) -> str:
    """File name of the edited copy; an explicit name may carry its own suffix."""
    suffix = workbook.suffix or ".xlsx"
    if out_name:
        name = Path(out_name).name
        return name if Path(name).suffix else f"{name}{suffix}"
    stem = workbook.stem
    if not stem.casefold().endswith(EDITED_SUFFIX):
        stem += EDITED_SUFFIX
    return f"{stem}{suffix}"


def free_path(path: Path) -> Path:
    """First of ``<stem>_1``, ``<stem>_2``... that is not on disk."""
    for index in range(1, MAX_RENAME_ATTEMPTS + 1):
        candidate = path.with_name(f"{path.stem}_{index}{path.suffix}")
        if not candidate.exists():
            return candidate
    raise FileExistsError(f"No free output name next to {path}")


__all__ = [
    "OnConflictPolicy",
    "OutputPlan",
    "edited_name",
    "free_path",
    "plan_output",
]
