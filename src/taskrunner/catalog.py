"""Task catalog documents: loading them into a registry and scaffolding one.

A catalog is a JSON or YAML document with a `version` and a `tasks` mapping.
Field names are matched case-insensitively. Per-task `cwd`, `env` and `shell`
may live under `options` or at the task's top level, and `echo` under
`presentation` or at the top level.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from .core import TaskDefinition, TaskKind, TaskRegistry
from .logging import get_logger
from .utils import _get, lower_keys


log = get_logger("taskrunner.catalog")

DEFAULT_VERSION = "2.0.0"
CATALOG_FILES = {"json": "tasks.json", "yaml": "tasks.yaml", "yml": "tasks.yaml"}

DEFAULT_CATALOG: dict = {
    "version": DEFAULT_VERSION,
    "tasks": {
        "build": {
            "label": "Build the project",
            "type": "shell",
            "command": "python -m compileall -q src",
            "group": "build",
            "presentation": {"echo": True},
        },
        "test": {
            "label": "Run tests",
            "type": "shell",
            "command": "python -m pytest",
            "group": "test",
            "dependsOn": ["build"],
            "presentation": {"echo": True},
        },
        "clean": {
            "label": "Clean build artifacts",
            "type": "shell",
            "command": "python -c \"import shutil; shutil.rmtree('build', ignore_errors=True)\"",
            "group": "build",
        },
        "install": {
            "label": "Install the project",
            "type": "shell",
            "command": "python -m pip install -e .",
        },
    },
}


class CatalogError(ValueError):
    """The catalog file is missing or does not describe valid tasks."""


def default_catalog_path(directory: str | Path = ".") -> Path:
    d = Path(directory)
    yaml_path = d / "tasks.yaml"
    return yaml_path if yaml_path.exists() else d / "tasks.json"


def read_document(path: str | Path) -> dict:
    p = Path(path)
    if not p.exists():
        raise CatalogError(f"Tasks file not found: {p}")
    try:
        with open(p, "r", encoding="utf-8") as f:
            if p.suffix.lower() == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise CatalogError(f"Could not parse {p}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise CatalogError(f"{p}: top level must be a mapping")
    return data


def load_registry(path: str | Path) -> TaskRegistry:
    return parse_catalog(read_document(path))


def parse_catalog(data: dict) -> TaskRegistry:
    tasks = _get(data, "tasks", default={})
    if not isinstance(tasks, dict):
        raise CatalogError("'tasks' must be a mapping of task name to definition")
    definitions = []
    for name, raw in tasks.items():
        definitions.append(parse_task(str(name), raw or {}))
    log.debug("Loaded %d task(s), catalog version %s", len(definitions), _get(data, "version"))
    return TaskRegistry.from_definitions(definitions)


def parse_task(name: str, raw: Any) -> TaskDefinition:
    if not isinstance(raw, dict):
        raise CatalogError(f"Task '{name}': definition must be a mapping")
    fields = lower_keys(raw)

    def option(key: str, section: str):
        nested = _get(fields, section, key)
        return nested if nested is not None else fields.get(key)

    env = option("env", "options") or {}
    if not isinstance(env, dict):
        raise CatalogError(f"Task '{name}': 'env' must be a mapping")
    echo = option("echo", "presentation")

    return TaskDefinition(
        name=name,
        label=_string(name, "label", fields.get("label")),
        kind=TaskKind.parse(_string(name, "type", fields.get("type"))),
        command=_string(name, "command", fields.get("command")),
        args=_strings(name, "args", fields.get("args")),
        cwd=_string(name, "cwd", option("cwd", "options")),
        env={str(k): _env_value(v) for k, v in env.items()},
        shell=_string(name, "shell", option("shell", "options")),
        depends_on=_strings(name, "dependsOn", fields.get("dependson")),
        allow_concurrent=_flag(name, "allowConcurrent", fields.get("allowconcurrent"), False),
        echo=_flag(name, "echo", echo, True),
        group=_group(name, fields.get("group")),
    )


def _string(task: str, key: str, value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise CatalogError(f"Task '{task}': '{key}' must be a string")
    return value


def _strings(task: str, key: str, value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if not isinstance(value, list):
        raise CatalogError(f"Task '{task}': '{key}' must be a list of strings")
    return tuple(str(v) for v in value)


def _flag(task: str, key: str, value: Any, default: bool) -> bool:
    if value is None:
        return default
    if not isinstance(value, bool):
        raise CatalogError(f"Task '{task}': '{key}' must be true or false")
    return value


def _group(task: str, value: Any) -> str:
    # VS Code style {"kind": "build", "isDefault": true}
    if isinstance(value, dict):
        value = _get(value, "kind")
    return _string(task, "group", value)


def _env_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return "" if value is None else str(value)


def render_default_catalog(fmt: str = "json") -> tuple[str, str]:
    """Return (file name, document text) for the scaffolded catalog."""
    fmt = fmt.lower()
    if fmt not in CATALOG_FILES:
        raise CatalogError(f"Unknown catalog format: {fmt}")
    if fmt == "json":
        return CATALOG_FILES[fmt], json.dumps(DEFAULT_CATALOG, indent=2) + "\n"
    text = yaml.safe_dump(DEFAULT_CATALOG, sort_keys=False, default_flow_style=False)
    return CATALOG_FILES[fmt], text


def write_default_catalog(directory: str | Path = ".", fmt: str = "json") -> Path:
    file_name, content = render_default_catalog(fmt)
    path = Path(directory) / file_name
    if path.exists():
        raise FileExistsError(f"{file_name} already exists in {Path(directory).resolve()}.")
    path.write_text(content, encoding="utf-8")
    return path
