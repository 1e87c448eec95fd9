from __future__ import annotations

from collections.abc import Awaitable, Callable
import importlib
from pathlib import Path
from typing import Any, cast

import anyio
import pytest

from sheetact import server
from sheetact.io import PathPolicy
from sheetact.runner import ActionRunRequest, ActionRunResult

ToolFunc = Callable[..., object] | Callable[..., Awaitable[object]]


class DummyApp:
    def __init__(self) -> None:
        self.tools: dict[str, ToolFunc] = {}

    def tool(self, *, name: str) -> Callable[[ToolFunc], ToolFunc]:
        def decorator(func: ToolFunc) -> ToolFunc:
            self.tools[name] = func
            return func

        return decorator


async def _call_async(
    func: Callable[..., Awaitable[object]],
    kwargs: dict[str, object],
) -> object:
    return await func(**kwargs)


def test_parse_args_defaults(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv(server.LOG_LEVEL_ENV, raising=False)
    config = server._parse_args(["--root", str(tmp_path)])
    assert config.root == tmp_path
    assert config.deny_globs == []
    assert config.log_level == "INFO"
    assert config.log_file is None
    assert config.on_conflict == "rename"


def test_parse_args_with_options(tmp_path: Path) -> None:
    log_file = tmp_path / "log.txt"
    config = server._parse_args(
        [
            "--root",
            str(tmp_path),
            "--deny-glob",
            "**/*.tmp",
            "--deny-glob",
            "**/secret/*",
            "--log-level",
            "DEBUG",
            "--log-file",
            str(log_file),
            "--on-conflict",
            "overwrite",
        ]
    )
    assert config.deny_globs == ["**/*.tmp", "**/secret/*"]
    assert config.log_level == "DEBUG"
    assert config.log_file == log_file
    assert config.on_conflict == "overwrite"


def test_log_level_defaults_to_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv(server.LOG_LEVEL_ENV, "WARNING")
    config = server._parse_args(["--root", str(tmp_path)])
    assert config.log_level == "WARNING"


def test_import_mcp_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    def _raise(_: str) -> None:
        raise ModuleNotFoundError("mcp")

    monkeypatch.setattr(importlib, "import_module", _raise)
    with pytest.raises(RuntimeError, match="MCP SDK is not installed"):
        server._import_mcp()


def test_register_tools_builds_run_request(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    calls: dict[str, Any] = {}

    def fake_run_actions(
        request: ActionRunRequest, *, policy: PathPolicy | None = None
    ) -> ActionRunResult:
        calls["request"] = request
        calls["policy"] = policy
        return ActionRunResult(out_path=str(tmp_path / "book_edited.xlsx"))

    async def fake_run_sync(func: Callable[[], object]) -> object:
        return func()

    monkeypatch.setattr(server, "run_actions", fake_run_actions)
    monkeypatch.setattr(anyio.to_thread, "run_sync", fake_run_sync)
    app = DummyApp()
    policy = PathPolicy(root=tmp_path)
    server._register_tools(app, policy, default_on_conflict="skip")

    tool = cast(Callable[..., Awaitable[object]], app.tools["sheetact_run_actions"])
    result = anyio.run(
        _call_async,
        tool,
        {
            "xlsx_path": "book.xlsx",
            "actions": [{"type": "values", "target": "A1", "data": 1}],
            "out_dir": "out",
        },
    )
    assert isinstance(result, ActionRunResult)
    request = calls["request"]
    assert request.xlsx_path == Path("book.xlsx")
    assert request.out_dir == Path("out")
    assert request.on_conflict == "skip"
    assert request.dry_run is False
    assert calls["policy"] is policy

    anyio.run(
        _call_async,
        tool,
        {"xlsx_path": "book.xlsx", "actions": [], "on_conflict": "overwrite"},
    )
    assert calls["request"].on_conflict == "overwrite"
    assert calls["request"].out_dir is None


def test_tool_runs_actions_end_to_end(workbook_path: Path) -> None:
    app = DummyApp()
    policy = PathPolicy(root=workbook_path.parent)
    server._register_tools(app, policy, default_on_conflict="rename")
    tool = cast(Callable[..., Awaitable[object]], app.tools["sheetact_run_actions"])
    result = cast(
        ActionRunResult,
        anyio.run(
            _call_async,
            tool,
            {
                "xlsx_path": workbook_path.name,
                "actions": ['{"type": "values", "target": "A1", "data": "x"}'],
                "dry_run": True,
            },
        ),
    )
    assert result.out_path is None
    assert result.applied == 1
