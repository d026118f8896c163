"""Shared test fixtures for checklists tests."""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path

import pytest

from checklists.config import Settings
from checklists.errors import StorageError
from checklists.reminders import InMemoryReminderRegistry
from checklists.store import ChecklistStore

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


class FailingCancelRegistry(InMemoryReminderRegistry):
    """In-memory registry whose cancels fail once ``cancels_left`` runs out."""

    def __init__(self, cancels_left: int) -> None:
        super().__init__()
        self.cancels_left = cancels_left

    def cancel_reminder(self, handle_or_item_id):
        if self.cancels_left <= 0:
            raise StorageError("registry unavailable")
        self.cancels_left -= 1
        super().cancel_reminder(handle_or_item_id)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create a temporary, empty workspace and point CHECKLISTS_ROOT at it."""
    root = tmp_path / "workspace"
    root.mkdir(parents=True)
    os.environ["CHECKLISTS_ROOT"] = str(root)
    yield root
    # Cleanup
    if "CHECKLISTS_ROOT" in os.environ:
        del os.environ["CHECKLISTS_ROOT"]


@pytest.fixture
def seeded_workspace(workspace: Path) -> Path:
    """Workspace with an existing store file and preferences past first run."""
    store = {
        "Version": 1,
        "Checklists": [
            {
                "Name": "Groceries",
                "IconName": "Groceries",
                "Items": [
                    {"Text": "Milk", "Checked": False, "DueDate": "2026-10-20T09:00:00+00:00", "ShouldRemind": True, "ItemID": 0},
                    {"Text": "Eggs", "Checked": True, "DueDate": "2026-10-18T09:00:00+00:00", "ShouldRemind": False, "ItemID": 1},
                ],
            },
            {
                "Name": "birthdays",
                "IconName": "Birthdays",
                "Items": [
                    {"Text": "Call Sam", "Checked": False, "DueDate": "2026-11-02T18:30:00+00:00", "ShouldRemind": False, "ItemID": 2},
                ],
            },
        ],
    }
    (workspace / "checklists.json").write_text(json.dumps(store, indent=2), encoding="utf-8")
    (workspace / "preferences.yaml").write_text(
        "ChecklistIndex: 1\nFirstTime: false\nChecklistItemID: 3\n", encoding="utf-8"
    )
    return workspace


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def registry() -> InMemoryReminderRegistry:
    return InMemoryReminderRegistry()


@pytest.fixture
def store(workspace: Path, registry: InMemoryReminderRegistry, clock) -> ChecklistStore:
    """An initialized facade over an empty workspace (first run applied)."""
    s = ChecklistStore(workspace, registry=registry, clock=clock, settings=Settings())
    s.initialize()
    return s
