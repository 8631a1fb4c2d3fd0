from __future__ import annotations

"""Small helpers for reading catalog entries and picking a shell."""

import os
import sys
from pathlib import Path
from typing import Dict


def lower_keys(d: Dict) -> Dict:
    """Copy of `d` with string keys folded to lower case."""
    return {(k.lower() if isinstance(k, str) else k): v for k, v in d.items()}


def _get(d: Dict, *keys, default=None):
    """Walk nested mappings, matching keys case-insensitively."""
    cur = d
    for k in keys:
        if not isinstance(cur, dict):
            return default
        cur = lower_keys(cur).get(k.lower())
        if cur is None:
            return default
    return cur


def is_windows() -> bool:
    return sys.platform.startswith("win")


def default_shell() -> str:
    if is_windows():
        return os.environ.get("COMSPEC") or "cmd.exe"
    return "/bin/sh"


def shell_flag(shell: str) -> str:
    """Flag that makes `shell` run the following string as a command."""
    name = Path(shell.replace("\\", "/")).name.lower()
    if name.endswith(".exe"):
        name = name[: -len(".exe")]
    if name == "cmd":
        return "/c"
    if name in ("powershell", "pwsh"):
        return "-Command"
    return "-c"


def truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")
