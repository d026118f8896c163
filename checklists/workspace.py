"""Workspace root and path helpers for the checklists data layer."""

from __future__ import annotations

import os
import platform
from pathlib import Path

APP_NAME = "Checklists"
APP_SLUG = "checklists"


def default_data_dir() -> Path:
    """Per-installation data directory for the current platform."""
    system = platform.system()
    if system == "Windows":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / APP_NAME
        return Path.home() / "AppData" / "Roaming" / APP_NAME
    if system == "Darwin":
        return Path.home() / "Library" / "Application Support" / APP_NAME
    xdg = os.environ.get("XDG_DATA_HOME")
    if xdg:
        return Path(xdg) / APP_SLUG
    return Path.home() / ".local" / "share" / APP_SLUG


def workspace_root() -> Path:
    """Get the workspace root directory (holds the store and preference files)."""
    return Path(
        os.environ.get("CHECKLISTS_ROOT", str(default_data_dir()))
    ).expanduser().resolve()


# ── Path helpers ──────────────────────────────────────────────

def store_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "checklists.json"


def preferences_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "preferences.yaml"


def reminders_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "reminders.json"


def settings_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "settings.yaml"


def hooks_config_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "hooks.yaml"
