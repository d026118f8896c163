"""Whole-graph persistence of the checklist store.

The store is written as one JSON document::

    {"Version": 1, "Checklists": [{"Name", "IconName", "Items": [...]}, ...]}

Writes go to a temp file that is renamed over the old one, so a failed save
never damages what was there before.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable

from checklists.errors import CorruptDataError, StorageError
from checklists.fileio import read_json, write_json_atomic
from checklists.models import Checklist, Record, Store
from checklists.workspace import store_path

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


def encode_records(records: Iterable[Record]) -> list[dict[str, Any]]:
    return [r.to_dict() for r in records]


def encode_store(store: Store) -> dict[str, Any]:
    return {"Version": FORMAT_VERSION, "Checklists": encode_records(store.lists)}


def decode_store(data: Any, source: str = "store") -> Store:
    """Rebuild a Store from a decoded JSON document. Raises CorruptDataError."""
    if data is None:
        return Store()
    if not isinstance(data, dict):
        raise CorruptDataError(f"{source}: expected a mapping at top level, got {type(data).__name__}")
    version = data.get("Version", FORMAT_VERSION)
    if isinstance(version, bool) or version != FORMAT_VERSION:
        raise CorruptDataError(f"{source}: unsupported format version {version!r}")
    raw = data.get("Checklists")
    if not isinstance(raw, list):
        raise CorruptDataError(f"{source}: 'Checklists' must be a list")
    lists = [Checklist.from_dict(d, f"Checklists[{i}]") for i, d in enumerate(raw)]
    _check_unique_ids(lists)
    return Store(lists=lists)


def _check_unique_ids(lists: list[Checklist]) -> None:
    seen: set[int] = set()
    for cl in lists:
        for item in cl.items:
            if item.item_id in seen:
                raise CorruptDataError(f"Duplicate ItemID {item.item_id}")
            seen.add(item.item_id)


class PersistenceEngine:
    """Loads and saves the store file."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path if path is not None else store_path()

    def load(self) -> Store:
        """Load the store; a missing file yields an empty Store.

        A file that exists but holds nothing is treated as truncated.
        """
        if not self.path.exists():
            logger.info("No store file at %s, starting empty", self.path)
            return Store()
        try:
            data = read_json(self.path)
        except json.JSONDecodeError as e:
            logger.error("Store file %s is not valid JSON: %s", self.path, e)
            raise CorruptDataError(f"{self.path}: not valid JSON: {e}") from e
        except UnicodeDecodeError as e:
            logger.error("Store file %s is not UTF-8: %s", self.path, e)
            raise CorruptDataError(f"{self.path}: not UTF-8 text") from e
        except OSError as e:
            logger.error("Could not read store file %s: %s", self.path, e)
            raise StorageError(f"Could not read {self.path}: {e}") from e
        if data is None:
            logger.error("Store file %s is empty", self.path)
            raise CorruptDataError(f"{self.path}: file is empty or truncated")
        try:
            store = decode_store(data, str(self.path))
        except CorruptDataError as e:
            logger.error("Store file %s is corrupt: %s", self.path, e)
            raise
        logger.info(
            "Loaded %d checklists (%d items) from %s",
            len(store.lists),
            len(store.all_item_ids()),
            self.path,
        )
        return store

    def save(self, store: Store) -> None:
        """Write the whole store atomically. Raises StorageError on failure."""
        data = encode_store(store)
        try:
            write_json_atomic(self.path, data)
        except OSError as e:
            logger.error("Could not save store to %s: %s", self.path, e)
            raise StorageError(f"Could not write {self.path}: {e}") from e
        logger.info("Saved %d checklists to %s", len(store.lists), self.path)
