"""Per-OS locations for callrelay's config file and data (journal) directory."""

from __future__ import annotations

import os
import sys
from pathlib import Path

APP_NAME = "callrelay"

# kind -> (override env var, XDG env var, XDG fallback, Windows env var)
_DIRS = {
    "config": ("CALLRELAY_CONFIG_DIR", "XDG_CONFIG_HOME", Path(".config"), "APPDATA"),
    "data": ("CALLRELAY_DATA_DIR", "XDG_DATA_HOME", Path(".local") / "share", "LOCALAPPDATA"),
}


def get_platform() -> str:
    if sys.platform == "win32":
        return "windows"
    if sys.platform == "darwin":
        return "macos"
    return "linux"


def _app_dir(kind: str) -> Path:
    override, xdg_var, xdg_default, windows_var = _DIRS[kind]
    env = os.environ.get(override)
    if env:
        return Path(env)

    platform = get_platform()
    if platform == "windows":
        fallback = "Roaming" if kind == "config" else "Local"
        base = Path(os.environ.get(windows_var, Path.home() / "AppData" / fallback))
        return base / APP_NAME
    if platform == "macos":
        return Path.home() / "Library" / "Application Support" / APP_NAME
    return Path(os.environ.get(xdg_var, Path.home() / xdg_default)) / APP_NAME


def get_config_dir() -> Path:
    """Directory searched for ``config.yaml`` when no --config is given."""
    return _app_dir("config")


def get_data_dir() -> Path:
    """Default parent of the per-call webhook journal (``<data>/logs``)."""
    return _app_dir("data")
