# tests/fakes.py

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from taskrunner.core import TaskDefinition, TaskRegistry


@dataclass
class FakeInvoker:
    """
    Stands in for ProcessInvoker in executor tests.

    - `codes`: exit code per task name (default 0)
    - `delays`: seconds to sleep before "exiting"
    - `errors`: task names that raise instead of returning
    Records start/finish order and peak parallelism.
    """

    codes: dict[str, int] = field(default_factory=dict)
    delays: dict[str, float] = field(default_factory=dict)
    errors: set[str] = field(default_factory=set)
    started: list[str] = field(default_factory=list)
    finished: list[str] = field(default_factory=list)
    active: int = 0
    max_active: int = 0

    async def run(self, definition: TaskDefinition) -> int:
        name = definition.name
        self.started.append(name)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delays.get(name, 0))
            if name in self.errors:
                raise RuntimeError(f"boom: {name}")
            return self.codes.get(name, 0)
        finally:
            self.active -= 1
            self.finished.append(name)


def make_registry(graph: dict[str, list[str]], **overrides) -> TaskRegistry:
    """Registry of no-op tasks from a name -> dependencies mapping.

    Extra keyword arguments are applied to every definition.
    """
    return TaskRegistry.from_definitions(
        TaskDefinition(name=name, command=f"echo {name}", depends_on=tuple(deps), **overrides)
        for name, deps in graph.items()
    )
