from __future__ import annotations

from pathlib import Path

import anyio
from openpyxl import load_workbook
import pytest

from sheetact.host import RequestContext
from sheetact.io import PathPolicy
from sheetact.runner import ActionRunRequest, run_actions, run_actions_in_context


def test_run_actions_saves_edited_copy(workbook_path: Path) -> None:
    result = run_actions(
        ActionRunRequest(
            xlsx_path=workbook_path,
            actions=[
                {"type": "values", "target": "E1", "data": [["Checked"]]},
                '{"type": "values", "target": "Notes!A1", "data": "hello"}',
            ],
        )
    )
    assert result.out_path == str(workbook_path.with_name("book_edited.xlsx").resolve())
    assert (result.applied, result.failed) == (2, 0)
    assert any("Completed values" in line for line in result.diagnostics)
    book = load_workbook(result.out_path)
    try:
        assert book["Data"]["E1"].value == "Checked"
        assert book["Notes"]["A1"].value == "hello"
    finally:
        book.close()


def test_failed_action_does_not_stop_the_run(workbook_path: Path) -> None:
    result = run_actions(
        ActionRunRequest(
            xlsx_path=workbook_path,
            sheet="Data",
            actions=[
                {"type": "values", "target": "F1", "data": "before"},
                {"type": "renameSheet", "target": "Ghost", "data": {"newName": "X"}},
                {"type": "values", "target": "F2", "data": "after"},
            ],
        )
    )
    assert [item.status for item in result.results] == ["applied", "failed", "applied"]
    failed = result.results[1]
    assert (failed.index, failed.kind, failed.target) == (1, "renameSheet", "Ghost")
    assert failed.error is not None
    assert failed.error.error_code == "not_found"
    book = load_workbook(result.out_path)
    try:
        assert [book["Data"]["F1"].value, book["Data"]["F2"].value] == [
            "before",
            "after",
        ]
    finally:
        book.close()


def test_dry_run_does_not_write(workbook_path: Path) -> None:
    result = run_actions(
        ActionRunRequest(
            xlsx_path=workbook_path,
            actions=[{"type": "values", "target": "A1", "data": "x"}],
            dry_run=True,
        )
    )
    assert result.out_path is None
    assert result.warnings == ["Dry run; workbook not saved."]
    assert result.applied == 1
    assert not workbook_path.with_name("book_edited.xlsx").exists()


def test_unknown_sheet_is_rejected(workbook_path: Path) -> None:
    with pytest.raises(ValueError, match="Sheet not found: Summary"):
        run_actions(
            ActionRunRequest(xlsx_path=workbook_path, actions=[], sheet="Summary")
        )


def test_existing_output_is_renamed(workbook_path: Path) -> None:
    request = ActionRunRequest(xlsx_path=workbook_path, actions=[])
    first = run_actions(request)
    second = run_actions(request)
    assert first.out_path is not None and first.out_path.endswith("book_edited.xlsx")
    assert second.out_path is not None
    assert second.out_path.endswith("book_edited_1.xlsx")
    assert second.warnings == ["Output exists; renamed to: book_edited_1.xlsx"]


def test_skip_conflict_returns_without_running(workbook_path: Path) -> None:
    run_actions(ActionRunRequest(xlsx_path=workbook_path, actions=[]))
    result = run_actions(
        ActionRunRequest(
            xlsx_path=workbook_path,
            actions=[{"type": "values", "target": "A1", "data": "x"}],
            on_conflict="skip",
        )
    )
    assert result.results == []
    assert result.warnings == ["Output exists; skipping write: book_edited.xlsx"]


def test_policy_confines_input_and_output(tmp_path: Path, workbook_path: Path) -> None:
    policy = PathPolicy(root=workbook_path.parent)
    result = run_actions(
        ActionRunRequest(
            xlsx_path=Path(workbook_path.name), actions=[], out_name="final"
        ),
        policy=policy,
    )
    assert result.out_path == str((workbook_path.parent / "final.xlsx").resolve())
    with pytest.raises(ValueError, match="outside root"):
        run_actions(
            ActionRunRequest(
                xlsx_path=workbook_path, actions=[], out_dir=tmp_path.parent
            ),
            policy=policy,
        )


def test_run_actions_in_context() -> None:
    ctx = RequestContext.new()
    worksheet = ctx.workbook.worksheets.get_active_worksheet()
    items = anyio.run(
        run_actions_in_context,
        ctx,
        worksheet,
        [{"type": "values", "target": "A1:B1", "data": [[1, 2]]}, "not json"],
    )
    assert [item.status for item in items] == ["applied", "failed"]
    assert ctx.book["Sheet"]["B1"].value == 2
