from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

WORKBOOK_SUFFIXES = (".xlsx", ".xlsm")


class PathPolicy(BaseModel):
    """Which workbook files an action run may read and write.

    Relative paths are taken from ``root``. Anything that resolves outside
    ``root`` or matches one of ``deny_globs`` is refused.
    """

    root: Path = Field(..., description="Directory that bounds file access.")
    deny_globs: list[str] = Field(
        default_factory=list, description="Glob patterns that are never touched."
    )
    workbook_suffixes: tuple[str, ...] = Field(
        default=WORKBOOK_SUFFIXES, description="Extensions accepted as workbooks."
    )

    def normalize_root(self) -> Path:
        return self.root.resolve()

    def ensure_allowed(self, path: Path) -> Path:
        """Resolve ``path`` against the root and check it is permitted.

        Raises:
            ValueError: If the path escapes the root or a deny glob matches.
        """
        root = self.normalize_root()
        resolved = (path if path.is_absolute() else root / path).resolve()
        if resolved != root and root not in resolved.parents:
            raise ValueError(
                f"Path is outside root. resolved={resolved}, root={root}, "
                "example_relative='books/report.xlsx'."
            )
        pattern = self.denied_by(resolved)
        if pattern is not None:
            logger.info("Refused %s (deny glob %s)", resolved, pattern)
            raise ValueError(f"Path is denied by policy: {resolved}")
        return resolved

    def denied_by(self, path: Path) -> str | None:
        """The first deny glob matching ``path``, relative to root or absolute."""
        root = self.normalize_root()
        relative = path.relative_to(root) if root in path.parents else path
        for pattern in self.deny_globs:
            if relative.match(pattern) or path.match(pattern):
                return pattern
        return None

    def ensure_workbook(self, path: Path) -> Path:
        """Resolve an input workbook and check that it can be opened."""
        return resolve_workbook(self.ensure_allowed(path), self.workbook_suffixes)


def resolve_workbook(
    path: Path, suffixes: tuple[str, ...] = WORKBOOK_SUFFIXES
) -> Path:
    """Return the resolved path of an existing workbook file.

    Raises:
        FileNotFoundError: If nothing exists at ``path``.
        ValueError: If ``path`` is not a file or has an unsupported extension.
    """
    resolved = path.resolve()
    if not resolved.exists():
        raise FileNotFoundError(f"Input file not found: {resolved}")
    if not resolved.is_file():
        raise ValueError(f"Input path is not a file: {resolved}")
    if resolved.suffix.lower() not in suffixes:
        raise ValueError(f"Unsupported file extension: {resolved.suffix}")
    return resolved


__all__ = ["PathPolicy", "WORKBOOK_SUFFIXES", "resolve_workbook"]
