from __future__ import annotations

import asyncio
import contextlib
import os
from typing import Callable

import typer

from .core import STRUCTURAL_FAILURE, TaskDefinition, TaskKind
from .logging import get_logger
from .utils import default_shell, shell_flag


LineWriter = Callable[[str], None]

STREAM_LIMIT = 1024 * 1024


def _stdout(line: str) -> None:
    typer.echo(line)


def _stderr(line: str) -> None:
    typer.echo(line, err=True)


def build_command(definition: TaskDefinition) -> list[str] | None:
    """Argument vector for the child process, or None for an unknown kind."""
    kind = definition.kind
    if not isinstance(kind, TaskKind):
        return None
    # Explicit args bypass the shell even for shell tasks
    if kind is TaskKind.PROCESS or definition.args:
        return [definition.command, *definition.args]
    shell = definition.shell or default_shell()
    return [shell, shell_flag(shell), definition.command]


def build_env(definition: TaskDefinition) -> dict[str, str]:
    env = dict(os.environ)
    env.update({str(k): str(v) for k, v in definition.env.items()})
    return env


class ProcessInvoker:
    """Spawns one child per task and streams its output line by line."""

    def __init__(
        self,
        stdout: LineWriter | None = None,
        stderr: LineWriter | None = None,
    ):
        self.stdout = stdout or _stdout
        self.stderr = stderr or _stderr
        self.logger = get_logger("taskrunner.process")

    async def run(self, definition: TaskDefinition) -> int:
        argv = build_command(definition)
        if argv is None:
            self.logger.error(
                "Unsupported task type: %s (task '%s')", definition.kind, definition.name
            )
            return STRUCTURAL_FAILURE

        self.logger.debug("Spawning %s for task '%s'", argv, definition.name)
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                stdin=asyncio.subprocess.DEVNULL,
                limit=STREAM_LIMIT,
                cwd=definition.cwd or None,
                env=build_env(definition),
            )
        except OSError as e:
            self.logger.error(
                "Failed to start task '%s' (%s): %s", definition.name, argv[0], e
            )
            return STRUCTURAL_FAILURE

        prefix = f"[{definition.display_label}] "
        echo = definition.echo
        try:
            await asyncio.gather(
                self._pump(proc.stdout, self.stdout if echo else None, prefix),
                self._pump(proc.stderr, self.stderr if echo else None, prefix),
            )
        except BaseException:
            if proc.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    proc.kill()
            raise
        finally:
            # The child is reaped on every path
            code = await proc.wait()
        return code

    async def _pump(
        self,
        stream: asyncio.StreamReader | None,
        write: LineWriter | None,
        prefix: str,
    ) -> None:
        if stream is None:
            return
        # Always drained, echo or not
        while True:
            raw = await _read_line(stream)
            if not raw:
                break
            if write is not None:
                line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
                write(prefix + line)


async def _read_line(stream: asyncio.StreamReader) -> bytes:
    """Next line, or the buffered chunk when a line outgrows STREAM_LIMIT."""
    try:
        return await stream.readuntil(b"\n")
    except asyncio.IncompleteReadError as e:
        return e.partial
    except asyncio.LimitOverrunError as e:
        return await stream.read(e.consumed)
