from __future__ import annotations

from pathlib import Path

import pytest

from sheetact.io import PathPolicy, resolve_workbook


def test_ensure_allowed_resolves_relative_paths(tmp_path: Path) -> None:
    policy = PathPolicy(root=tmp_path)
    assert policy.ensure_allowed(Path("books/a.xlsx")) == (
        tmp_path / "books" / "a.xlsx"
    ).resolve()


def test_ensure_allowed_rejects_outside_root(tmp_path: Path) -> None:
    policy = PathPolicy(root=tmp_path / "root")
    with pytest.raises(ValueError, match="outside root"):
        policy.ensure_allowed(tmp_path / "other.xlsx")


def test_ensure_allowed_applies_deny_globs(tmp_path: Path) -> None:
    policy = PathPolicy(root=tmp_path, deny_globs=["**/*.secret.xlsx"])
    with pytest.raises(ValueError, match="denied"):
        policy.ensure_allowed(tmp_path / "vault" / "pay.secret.xlsx")


def test_denied_by_reports_matching_glob(tmp_path: Path) -> None:
    policy = PathPolicy(root=tmp_path, deny_globs=["*.bak", "private/*"])
    assert policy.denied_by(tmp_path / "private" / "plan.xlsx") == "private/*"
    assert policy.denied_by(tmp_path / "plan.xlsx") is None


def test_ensure_workbook_checks_file_and_extension(tmp_path: Path) -> None:
    policy = PathPolicy(root=tmp_path)
    with pytest.raises(FileNotFoundError, match="Input file not found"):
        policy.ensure_workbook(Path("missing.xlsx"))
    (tmp_path / "notes.txt").write_text("x", encoding="utf-8")
    with pytest.raises(ValueError, match="Unsupported file extension: .txt"):
        policy.ensure_workbook(Path("notes.txt"))
    (tmp_path / "folder.xlsx").mkdir()
    with pytest.raises(ValueError, match="not a file"):
        policy.ensure_workbook(Path("folder.xlsx"))


def test_resolve_workbook_accepts_macro_workbooks(tmp_path: Path) -> None:
    path = tmp_path / "Macros.XLSM"
    path.write_bytes(b"")
    assert resolve_workbook(path) == path.resolve()
