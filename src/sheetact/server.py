from __future__ import annotations

import argparse
import functools
import importlib
import logging
import os
from pathlib import Path
from types import ModuleType
from typing import TYPE_CHECKING, Any, cast

import anyio
from pydantic import BaseModel, Field

from .io import PathPolicy
from .runner import ActionRunRequest, ActionRunResult, run_actions
from .shared.output_path import OnConflictPolicy

if TYPE_CHECKING:  # pragma: no cover - typing only
    from mcp.server.fastmcp import FastMCP

logger = logging.getLogger(__name__)

LOG_LEVEL_ENV = "SHEETACT_LOG_LEVEL"


class ServerConfig(BaseModel):
    """Configuration for the MCP server process."""

    root: Path = Field(..., description="Root directory for file access.")
    deny_globs: list[str] = Field(default_factory=list, description="Denied glob list.")
    log_level: str = Field(default="INFO", description="Logging level.")
    log_file: Path | None = Field(default=None, description="Optional log file path.")
    on_conflict: OnConflictPolicy = Field(
        default="rename", description="Output conflict policy."
    )


def main(argv: list[str] | None = None) -> int:
    """Run the MCP server entrypoint.

    Args:
        argv: Optional CLI arguments for testing.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    config = _parse_args(argv)
    _configure_logging(config)
    try:
        run_server(config)
    except Exception as exc:  # pragma: no cover - surface runtime errors
        logger.error("MCP server failed: %s", exc)
        return 1
    return 0


def run_server(config: ServerConfig) -> None:
    """Start the MCP server over stdio."""
    _import_mcp()
    policy = PathPolicy(root=config.root, deny_globs=config.deny_globs)
    logger.info("MCP root: %s", policy.normalize_root())
    app = _create_app(policy, on_conflict=config.on_conflict)
    app.run()


def _parse_args(argv: list[str] | None) -> ServerConfig:
    """Parse CLI arguments into server config.

    ``--log-level`` defaults to ``$SHEETACT_LOG_LEVEL`` when it is set.
    """
    parser = argparse.ArgumentParser(description="sheetact MCP server (stdio).")
    parser.add_argument("--root", type=Path, required=True, help="Workspace root.")
    parser.add_argument(
        "--deny-glob",
        action="append",
        default=[],
        help="Glob pattern to deny (can be specified multiple times).",
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get(LOG_LEVEL_ENV, "INFO"),
        help="Logging level (DEBUG, INFO, WARNING, ERROR).",
    )
    parser.add_argument("--log-file", type=Path, help="Optional log file path.")
    parser.add_argument(
        "--on-conflict",
        choices=["overwrite", "skip", "rename"],
        default="rename",
        help="Output conflict policy (overwrite/skip/rename).",
    )
    args = parser.parse_args(argv)
    return ServerConfig(
        root=args.root,
        deny_globs=list(args.deny_glob),
        log_level=args.log_level,
        log_file=args.log_file,
        on_conflict=args.on_conflict,
    )


def _configure_logging(config: ServerConfig) -> None:
    """Configure logging for the server process."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.log_file is not None:
        handlers.append(logging.FileHandler(config.log_file))
    logging.basicConfig(
        level=config.log_level.upper(),
        handlers=handlers,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _import_mcp() -> ModuleType:
    """Import the MCP SDK module or raise a helpful error."""
    try:
        return importlib.import_module("mcp")
    except ModuleNotFoundError as exc:
        raise RuntimeError(
            "MCP SDK is not installed. Install with `pip install sheetact`."
        ) from exc


def _create_app(policy: PathPolicy, *, on_conflict: OnConflictPolicy) -> FastMCP:
    """Create the FastMCP application with the action tool registered."""
    from mcp.server.fastmcp import FastMCP

    app = FastMCP("sheetact MCP", json_response=True)
    _register_tools(app, policy, default_on_conflict=on_conflict)
    return app


def _register_tools(
    app: FastMCP, policy: PathPolicy, *, default_on_conflict: OnConflictPolicy
) -> None:
    """Register MCP tools for the server."""

    async def _run_actions_tool(
        xlsx_path: str,
        actions: list[dict[str, Any] | str],
        sheet: str | None = None,
        out_dir: str | None = None,
        out_name: str | None = None,
        on_conflict: OnConflictPolicy | None = None,
        dry_run: bool = False,
    ) -> ActionRunResult:
        """Apply spreadsheet actions to a workbook, in order.

        Each action is an object with 'type' (the action kind, for example
        'values', 'formula', 'format', 'chart', 'createTable', 'insertRows'),
        'target' (a range like 'A1:C10', 'Sheet2!B2', a row/column band like
        '5:7' or 'C:E', or the name of a table, pivot table, slicer, shape,
        named range or sheet) and optional 'data' and 'source'. Failed actions
        are reported and the remaining actions still run.

        Args:
            xlsx_path: Path to the workbook to edit.
            actions: Action descriptors to run in order.
            sheet: Worksheet that unqualified targets refer to. Defaults to
                the active sheet.
            out_dir: Output directory. Defaults to the input directory.
            out_name: Output filename. Defaults to '{stem}_edited{ext}'.
            on_conflict: Conflict policy when the output file exists:
                'overwrite', 'skip' or 'rename'. Defaults to the server
                --on-conflict setting.
            dry_run: When true, run the actions without saving.

        Returns:
            Output path, one result per action, warnings and trace lines.
        """
        request = ActionRunRequest(
            xlsx_path=Path(xlsx_path),
            actions=actions,
            sheet=sheet,
            out_dir=Path(out_dir) if out_dir else None,
            out_name=out_name,
            on_conflict=on_conflict or default_on_conflict,
            dry_run=dry_run,
        )
        work = functools.partial(run_actions, request, policy=policy)
        result = cast(ActionRunResult, await anyio.to_thread.run_sync(work))
        return result

    tool = app.tool(name="sheetact_run_actions")
    tool(_run_actions_tool)


__all__ = ["ServerConfig", "main", "run_server"]
