from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv

from .catalog import (
    CatalogError,
    default_catalog_path,
    load_registry,
    write_default_catalog,
)
from .core import STRUCTURAL_FAILURE, TaskExecutor, TaskRegistry
from .logging import add_log_file, apply_env_level, get_logger
from .utils import truthy


app = typer.Typer(
    add_completion=False,
    help="Run tasks defined in tasks.json or tasks.yaml files",
    no_args_is_help=True,
)
log = get_logger("taskrunner.cli")

SUBCOMMANDS = {"list", "run", "init"}

FILE_HELP = "Path to the tasks file (tasks.json or tasks.yaml)"
CONCURRENT_HELP = "Run dependencies of tasks marked allowConcurrent in parallel"


def _default_concurrent() -> bool:
    return truthy(os.getenv("TASKRUN_CONCURRENT"))


def _resolve_file(ctx: typer.Context, file: Optional[Path]) -> Path:
    if file is not None:
        return file
    obj = ctx.obj or {}
    return obj.get("file") or default_catalog_path()


def _load(path: Path) -> TaskRegistry:
    try:
        return load_registry(path)
    except CatalogError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=STRUCTURAL_FAILURE)


def exit_status(code: int) -> int:
    """Shell-style status for a task result; signal deaths (-N) become 128+N."""
    return 128 - code if code < 0 else code


def execute(registry: TaskRegistry, name: str, concurrent: bool) -> int:
    executor = TaskExecutor(registry, concurrent=concurrent)
    return exit_status(asyncio.run(executor.execute_task(name)))


@app.callback()
def root(
    ctx: typer.Context,
    file: Optional[Path] = typer.Option(None, "--file", "-f", help=FILE_HELP),
    concurrent: bool = typer.Option(
        False, "--concurrent", "-c", help=CONCURRENT_HELP
    ),
):
    """Run tasks defined in tasks.json or tasks.yaml files."""
    log_file = os.getenv("TASKRUN_LOG_FILE")
    if log_file:
        add_log_file(Path(log_file))
    ctx.obj = {"file": file, "concurrent": concurrent or _default_concurrent()}


@app.command("list")
def list_tasks(
    ctx: typer.Context,
    file: Optional[Path] = typer.Option(None, "--file", "-f", help=FILE_HELP),
):
    """List all available tasks."""
    registry = _load(_resolve_file(ctx, file))
    typer.echo("Available tasks:")
    for name, label in registry.list_all():
        group = registry[name].group
        suffix = f" [{group}]" if group else ""
        typer.echo(f"  {name}: {label}{suffix}")


@app.command("run")
def run_task(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Name of the task to run"),
    file: Optional[Path] = typer.Option(None, "--file", "-f", help=FILE_HELP),
    concurrent: bool = typer.Option(
        False, "--concurrent", "-c", help=CONCURRENT_HELP
    ),
):
    """Run a specific task."""
    registry = _load(_resolve_file(ctx, file))
    obj = ctx.obj or {}
    code = execute(registry, name, concurrent or obj.get("concurrent", False))
    raise typer.Exit(code=code)


@app.command("init")
def init(
    fmt: str = typer.Option("json", "--format", help="File format (json or yaml)"),
):
    """Initialize a new tasks file in the current directory."""
    try:
        path = write_default_catalog(Path.cwd(), fmt)
    except FileExistsError as e:
        typer.echo(str(e))
        raise typer.Exit(code=STRUCTURAL_FAILURE)
    except (CatalogError, OSError) as e:
        typer.echo(f"Error creating tasks file: {e}", err=True)
        raise typer.Exit(code=STRUCTURAL_FAILURE)
    typer.echo(f"Created {path.name} with default tasks.")


def _shortcut_options(args: list[str]) -> tuple[Path, bool]:
    file = default_catalog_path()
    concurrent = _default_concurrent()
    i = 0
    while i < len(args):
        if args[i] in ("--file", "-f") and i + 1 < len(args):
            file = Path(args[i + 1])
            i += 1
        elif args[i] in ("--concurrent", "-c"):
            concurrent = True
        i += 1
    return file, concurrent


def try_shortcut(argv: list[str]) -> int | None:
    """Run `argv[0]` as a task name if the catalog has it.

    Returns None when the arguments should go through normal parsing.
    """
    if not argv:
        return None
    first = argv[0]
    if first in SUBCOMMANDS or first.startswith("-"):
        return None
    file, concurrent = _shortcut_options(argv[1:])
    try:
        registry = load_registry(file)
    except (CatalogError, OSError) as e:
        log.debug("Shortcut skipped, could not load %s: %s", file, e)
        return None
    if first not in registry:
        return None
    return execute(registry, first, concurrent)


def main():  # pragma: no cover
    load_dotenv(Path.cwd() / ".env")
    apply_env_level()
    code = try_shortcut(sys.argv[1:])
    if code is not None:
        sys.exit(code)
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
