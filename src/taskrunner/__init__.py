"""Declarative task runner.

Loads tasks from a tasks.json / tasks.yaml catalog, runs a task after its
dependencies (optionally in parallel), and streams each child process's output
back with a per-task label. Exposes a Typer CLI.
"""

from .core import TaskDefinition, TaskExecutor, TaskKind, TaskRegistry  # re-export for convenience
from .process import ProcessInvoker

__all__ = ["TaskDefinition", "TaskExecutor", "TaskKind", "TaskRegistry", "ProcessInvoker"]
