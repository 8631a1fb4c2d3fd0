# tests/test_logging.py

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from taskrunner.logging import add_log_file, env_level, get_logger


@pytest.mark.parametrize(
    "value, expected",
    [("debug", logging.DEBUG), ("WARNING", logging.WARNING), ("bogus", logging.INFO), ("", logging.INFO)],
)
def test_env_level(monkeypatch: pytest.MonkeyPatch, value: str, expected: int) -> None:
    monkeypatch.setenv("TASKRUN_LOG_LEVEL", value)
    assert env_level() == expected


def test_log_file_receives_child_logger_records(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "taskrunner.log"
    parent = logging.getLogger("taskrunner.filetest")
    handler = add_log_file(log_file, "taskrunner.filetest")
    try:
        assert add_log_file(log_file, "taskrunner.filetest") is handler
        child = get_logger("taskrunner.filetest.executor")
        child.setLevel(logging.INFO)
        child.info("Task '%s' completed successfully.", "build")
        handler.flush()

        text = log_file.read_text(encoding="utf-8")
        assert "taskrunner.filetest.executor | INFO | Task 'build' completed successfully." in text
    finally:
        parent.removeHandler(handler)
        handler.close()
