"""Scalar preference area, kept apart from the store file.

A small YAML key-value file. Every key has a declared default which is
returned while the key is unset. Writes go straight to disk.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any

import yaml

from checklists.errors import CorruptDataError, StorageError
from checklists.fileio import read_text, write_yaml_atomic
from checklists.workspace import preferences_path

logger = logging.getLogger(__name__)

SELECTED_INDEX = "ChecklistIndex"
FIRST_TIME = "FirstTime"
ITEM_ID_COUNTER = "ChecklistItemID"

DEFAULTS: dict[str, Any] = {
    SELECTED_INDEX: -1,
    FIRST_TIME: True,
    ITEM_ID_COUNTER: 0,
}


class Preferences:
    """Typed access to ``preferences.yaml``."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path if path is not None else preferences_path()
        # Held across read-modify-write sequences (see IdentityAllocator).
        self.lock = threading.RLock()

    def _read_all(self) -> dict[str, Any]:
        try:
            data = yaml.safe_load(read_text(self.path))
        except yaml.YAMLError as e:
            raise CorruptDataError(f"{self.path}: not valid YAML: {e}") from e
        except UnicodeDecodeError as e:
            raise CorruptDataError(f"{self.path}: not UTF-8 text") from e
        except OSError as e:
            raise StorageError(f"Could not read preferences {self.path}: {e}") from e
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise CorruptDataError(
                f"{self.path}: expected a mapping, got {type(data).__name__}"
            )
        return data

    def _get(self, key: str, kind: type) -> Any:
        data = self._read_all()
        if key not in data or data[key] is None:
            return DEFAULTS[key]
        value = data[key]
        if kind is int and isinstance(value, bool):
            raise CorruptDataError(f"{self.path}: {key} must be int, got bool")
        if not isinstance(value, kind):
            raise CorruptDataError(
                f"{self.path}: {key} must be {kind.__name__}, got {type(value).__name__}"
            )
        return value

    def get_int(self, key: str) -> int:
        return self._get(key, int)

    def get_bool(self, key: str) -> bool:
        return self._get(key, bool)

    def set(self, key: str, value: Any) -> None:
        if key not in DEFAULTS:
            raise KeyError(f"Unknown preference: {key}")
        with self.lock:
            data = self._read_all()
            data[key] = value
            try:
                write_yaml_atomic(self.path, data)
            except OSError as e:
                logger.error("Failed to write preferences %s: %s", self.path, e)
                raise StorageError(f"Could not write preferences {self.path}: {e}") from e
        logger.debug("Preference %s = %r", key, value)

    # ── Named accessors ───────────────────────────────────────

    @property
    def selected_index(self) -> int:
        return self.get_int(SELECTED_INDEX)

    @selected_index.setter
    def selected_index(self, value: int) -> None:
        self.set(SELECTED_INDEX, int(value))

    @property
    def first_time(self) -> bool:
        return self.get_bool(FIRST_TIME)

    @first_time.setter
    def first_time(self, value: bool) -> None:
        self.set(FIRST_TIME, bool(value))

    @property
    def item_id_counter(self) -> int:
        return self.get_int(ITEM_ID_COUNTER)

    @item_id_counter.setter
    def item_id_counter(self, value: int) -> None:
        self.set(ITEM_ID_COUNTER, int(value))
