"""Settings, clock and logging setup for the checklists data layer.

Settings come from an optional ``settings.yaml`` in the workspace root.
Unknown keys are ignored; missing keys use defaults.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from checklists.fileio import read_yaml
from checklists.workspace import settings_path

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class Settings:
    timezone: str = "UTC"
    default_checklist_name: str = "List"
    new_checklist_icon: str = "Folder"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Settings:
        if not d or not isinstance(d, dict):
            return cls()
        return cls(
            timezone=str(d.get("timezone", "UTC")),
            default_checklist_name=str(d.get("default_checklist_name", "List")),
            new_checklist_icon=str(d.get("new_checklist_icon", "Folder")),
            log_level=str(d.get("log_level", "INFO")).upper(),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "timezone": self.timezone,
            "default_checklist_name": self.default_checklist_name,
            "new_checklist_icon": self.new_checklist_icon,
            "log_level": self.log_level,
        }

    def zone(self) -> tzinfo:
        """Configured timezone, falling back to UTC when the name is unknown."""
        if self.timezone.upper() == "UTC":
            return timezone.utc
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown timezone %r in settings, using UTC", self.timezone)
            return timezone.utc


def load_settings(root: Path | None = None) -> Settings:
    """Load settings.yaml into a Settings model."""
    return Settings.from_dict(read_yaml(settings_path(root)))


def now_local(settings: Settings | None = None) -> datetime:
    """Get current datetime in the configured timezone."""
    if settings is None:
        settings = Settings()
    return datetime.now(settings.zone())


def configure_logging(level: str | int = "INFO") -> None:
    """Install a basic stderr handler for application entry points."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
