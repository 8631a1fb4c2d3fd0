# tests/conftest.py

from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

from .fakes import FakeInvoker


@pytest.fixture()
def invoker() -> FakeInvoker:
    return FakeInvoker()


@pytest.fixture()
def python_task():
    """
    Build a catalog entry that runs a Python snippet with this interpreter.

    Using `type: process` keeps tests independent of the platform shell.
    """

    def _make(code: str, **extra) -> dict:
        entry = {"type": "process", "command": sys.executable, "args": ["-c", code]}
        entry.update(extra)
        return entry

    return _make


@pytest.fixture()
def write_catalog(tmp_path: Path):
    def _write(tasks: dict, name: str = "tasks.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps({"version": "2.0.0", "tasks": tasks}), encoding="utf-8")
        return path

    return _write
