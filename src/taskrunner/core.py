from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Iterator, Protocol, Union

from .logging import get_logger


# Exit code for failures the engine detects itself (unknown task, cycle, ...)
STRUCTURAL_FAILURE = 1


class TaskKind(str, Enum):
    SHELL = "shell"
    PROCESS = "process"

    @classmethod
    def parse(cls, value: str | None) -> Union["TaskKind", str]:
        """Map a catalog `type` onto a kind.

        Empty means shell. Unknown values come back as the raw string so the
        invoker can refuse them when the task is actually run.
        """
        text = (value or "").strip().lower()
        if not text:
            return cls.SHELL
        try:
            return cls(text)
        except ValueError:
            return value


@dataclass(frozen=True)
class TaskDefinition:
    name: str
    command: str = ""
    label: str = ""
    kind: Union[TaskKind, str] = TaskKind.SHELL
    args: tuple[str, ...] = ()
    cwd: str = ""
    env: Mapping[str, str] = field(default_factory=dict)
    shell: str = ""
    depends_on: tuple[str, ...] = ()
    allow_concurrent: bool = False
    echo: bool = True
    group: str = ""

    def __post_init__(self):
        if not isinstance(self.kind, TaskKind):
            object.__setattr__(self, "kind", TaskKind.parse(self.kind))

    @property
    def display_label(self) -> str:
        return self.label or self.name


class TaskRegistry(Mapping):
    """Read-only name -> TaskDefinition mapping, in catalog order."""

    def __init__(self, tasks: Mapping[str, TaskDefinition] | None = None):
        self._tasks = MappingProxyType(dict(tasks or {}))

    @classmethod
    def from_definitions(cls, definitions) -> "TaskRegistry":
        tasks: dict[str, TaskDefinition] = {}
        for d in definitions:
            if d.name in tasks:
                raise ValueError(f"Duplicate task name: {d.name}")
            tasks[d.name] = d
        return cls(tasks)

    def __getitem__(self, name: str) -> TaskDefinition:
        return self._tasks[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._tasks)

    def __len__(self) -> int:
        return len(self._tasks)

    def lookup(self, name: str) -> TaskDefinition | None:
        return self._tasks.get(name)

    def list_all(self) -> list[tuple[str, str]]:
        return [(name, d.display_label) for name, d in self._tasks.items()]


class Invoker(Protocol):
    async def run(self, definition: TaskDefinition) -> int: ...


class TaskExecutor:
    """Runs a task after its dependencies, one run per instance.

    Tasks currently being resolved are tracked in an in-flight set guarded by
    a single lock. Meeting a name that is already in flight means the
    dependency graph loops back on itself, or that two concurrently running
    siblings share a dependency; both are refused with exit code 1.
    """

    def __init__(
        self,
        registry: TaskRegistry,
        invoker: Invoker | None = None,
        concurrent: bool = False,
        reuse_results: bool = False,
    ):
        if invoker is None:
            from .process import ProcessInvoker

            invoker = ProcessInvoker()
        self.registry = registry
        self.invoker = invoker
        self.concurrent = concurrent
        self.reuse_results = reuse_results
        self.logger = get_logger("taskrunner.executor")
        self._in_flight: set[str] = set()
        self._lock = asyncio.Lock()
        self._finished: dict[str, int] = {}

    @property
    def in_flight(self) -> frozenset[str]:
        return frozenset(self._in_flight)

    async def execute_task(self, name: str) -> int:
        task = self.registry.lookup(name)
        if task is None:
            self.logger.error("Task '%s' not found.", name)
            return STRUCTURAL_FAILURE

        if self.reuse_results and name in self._finished:
            self.logger.info("Reusing result of '%s': %d", name, self._finished[name])
            return self._finished[name]

        async with self._lock:
            if name in self._in_flight:
                self.logger.error(
                    "Task '%s' is already in flight: circular dependency, "
                    "or requested again by a concurrently running sibling.",
                    name,
                )
                return STRUCTURAL_FAILURE
            self._in_flight.add(name)

        try:
            code = await self._resolve_dependencies(task)
            if code != 0:
                return code

            self.logger.info("Executing task: %s", task.display_label)
            code = await self.invoker.run(task)
            if code == 0:
                self.logger.info("Task '%s' completed successfully.", name)
            else:
                self.logger.error("Task '%s' failed with exit code %d.", name, code)
            if self.reuse_results:
                self._finished[name] = code
            return code
        finally:
            async with self._lock:
                self._in_flight.discard(name)

    async def _resolve_dependencies(self, task: TaskDefinition) -> int:
        if not task.depends_on:
            return 0

        if self.concurrent and task.allow_concurrent:
            # Every sibling runs to completion before anything is reported
            results = await asyncio.gather(
                *(self.execute_task(dep) for dep in task.depends_on),
                return_exceptions=True,
            )
            # Declaration order decides which failure is reported
            for dep, code in zip(task.depends_on, results):
                if isinstance(code, BaseException):
                    raise code
                if code != 0:
                    self.logger.error(
                        "One or more dependencies failed for task '%s' (first: '%s', exit code %d).",
                        task.name,
                        dep,
                        code,
                    )
                    return code
            return 0

        for dep in task.depends_on:
            code = await self.execute_task(dep)
            if code != 0:
                self.logger.error(
                    "Dependency '%s' failed for task '%s'.", dep, task.name
                )
                return code
        return 0
