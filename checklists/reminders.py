"""Keeps item reminders in step with the scheduled-notification registry.

The registry belongs to the host (an OS notification centre, a cron table,
or one of the implementations below). Each entry carries the ``item_id`` of
the item it reminds about; the reconciler guarantees at most one live entry
per item ID.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterable, Protocol

from checklists.errors import CorruptDataError, StorageError
from checklists.fileio import read_json, write_json_atomic
from checklists.models import Item, parse_timestamp
from checklists.workspace import reminders_path

logger = logging.getLogger(__name__)


@dataclass
class Reminder:
    handle: str
    item_id: int
    fire_at: datetime
    message: str = ""

    @classmethod
    def from_dict(cls, d: Any, where: str = "Reminder") -> Reminder:
        if not isinstance(d, dict):
            raise CorruptDataError(f"{where}: expected a mapping")
        try:
            handle = str(d["handle"])
            item_id = d["itemId"]
            fire_at = d["fireAt"]
        except KeyError as e:
            raise CorruptDataError(f"{where}: missing {e.args[0]}") from e
        if isinstance(item_id, bool) or not isinstance(item_id, int):
            raise CorruptDataError(f"{where}.itemId: expected int")
        if not isinstance(fire_at, str):
            raise CorruptDataError(f"{where}.fireAt: expected str")
        return cls(
            handle=handle,
            item_id=item_id,
            fire_at=parse_timestamp(fire_at, f"{where}.fireAt"),
            message=str(d.get("message", "")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "handle": self.handle,
            "itemId": self.item_id,
            "fireAt": self.fire_at.isoformat(),
            "message": self.message,
        }


class ReminderRegistry(Protocol):
    """The external registry of scheduled reminders."""

    def register_reminder(self, item_id: int, fire_at: datetime, message: str) -> str: ...

    def cancel_reminder(self, handle_or_item_id: str | int) -> None: ...

    def list_scheduled_reminders(self) -> list[Reminder]: ...


def _matches(reminder: Reminder, handle_or_item_id: str | int) -> bool:
    if isinstance(handle_or_item_id, str):
        return reminder.handle == handle_or_item_id
    return reminder.item_id == handle_or_item_id


class InMemoryReminderRegistry:
    """Process-local registry."""

    def __init__(self) -> None:
        self._entries: list[Reminder] = []

    def register_reminder(self, item_id: int, fire_at: datetime, message: str) -> str:
        reminder = Reminder(uuid.uuid4().hex, item_id, fire_at, message)
        self._entries.append(reminder)
        return reminder.handle

    def cancel_reminder(self, handle_or_item_id: str | int) -> None:
        self._entries = [r for r in self._entries if not _matches(r, handle_or_item_id)]

    def list_scheduled_reminders(self) -> list[Reminder]:
        return list(self._entries)


class FileReminderRegistry:
    """Registry persisted to ``reminders.json`` so entries outlive the process."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path if path is not None else reminders_path()

    def _load(self) -> list[Reminder]:
        try:
            data = read_json(self.path)
        except ValueError as e:
            raise CorruptDataError(f"{self.path}: not valid JSON: {e}") from e
        except OSError as e:
            raise StorageError(f"Could not read {self.path}: {e}") from e
        if data is None:
            return []
        if not isinstance(data, dict) or not isinstance(data.get("reminders"), list):
            raise CorruptDataError(f"{self.path}: expected {{'reminders': [...]}}")
        return [
            Reminder.from_dict(d, f"reminders[{i}]") for i, d in enumerate(data["reminders"])
        ]

    def _save(self, reminders: list[Reminder]) -> None:
        try:
            write_json_atomic(self.path, {"reminders": [r.to_dict() for r in reminders]})
        except OSError as e:
            logger.error("Could not write reminder registry %s: %s", self.path, e)
            raise StorageError(f"Could not write {self.path}: {e}") from e

    def register_reminder(self, item_id: int, fire_at: datetime, message: str) -> str:
        reminders = self._load()
        reminder = Reminder(uuid.uuid4().hex, item_id, fire_at, message)
        reminders.append(reminder)
        self._save(reminders)
        return reminder.handle

    def cancel_reminder(self, handle_or_item_id: str | int) -> None:
        reminders = self._load()
        remaining = [r for r in reminders if not _matches(r, handle_or_item_id)]
        if len(remaining) != len(reminders):
            self._save(remaining)

    def list_scheduled_reminders(self) -> list[Reminder]:
        return self._load()


class ReminderReconciler:
    """Schedules, cancels and looks up the reminder for an item."""

    def __init__(self, registry: ReminderRegistry, clock: Callable[[], datetime]) -> None:
        self.registry = registry
        self.clock = clock

    def find_for(self, item: Item) -> Reminder | None:
        for reminder in self.registry.list_scheduled_reminders():
            if reminder.item_id == item.item_id:
                return reminder
        return None

    def cancel(self, item: Item) -> int:
        """Remove every registry entry for the item. Returns how many were removed."""
        cancelled: set[str] = set()
        reminder = self.find_for(item)
        while reminder is not None and reminder.handle not in cancelled:
            logger.debug("Cancelling reminder %s for item %d", reminder.handle, item.item_id)
            self.registry.cancel_reminder(reminder.handle)
            cancelled.add(reminder.handle)
            reminder = self.find_for(item)
        return len(cancelled)

    def cancel_all(self, items: Iterable[Item]) -> list[Reminder]:
        """Cancel the reminders of every item, or of none of them.

        If the registry fails partway, the reminders already cancelled are
        registered again before the error propagates.
        """
        removed: list[Reminder] = []
        try:
            for item in items:
                reminder = self.find_for(item)
                if reminder is not None and self.cancel(item):
                    removed.append(reminder)
        except StorageError:
            logger.error("Cancelling reminders failed, restoring %d already cancelled", len(removed))
            for reminder in removed:
                self.registry.register_reminder(reminder.item_id, reminder.fire_at, reminder.message)
            raise
        return removed

    def schedule(self, item: Item) -> Reminder | None:
        """Bring the registry in line with the item's reminder fields.

        Any existing entry is cancelled first. A new one is registered only
        when the item wants a reminder and its due date is not in the past.
        """
        self.cancel(item)
        if not item.should_remind:
            return None
        if item.due_date < self.clock():
            logger.debug("Item %d is past due, no reminder scheduled", item.item_id)
            return None
        handle = self.registry.register_reminder(item.item_id, item.due_date, item.text)
        logger.info("Scheduled reminder %s for item %d at %s", handle, item.item_id, item.due_date.isoformat())
        return Reminder(handle, item.item_id, item.due_date, item.text)

    def collect_due(self, now: datetime | None = None) -> list[Reminder]:
        """Remove and return every entry whose fire time has arrived."""
        if now is None:
            now = self.clock()
        due = [r for r in self.registry.list_scheduled_reminders() if r.fire_at <= now]
        for reminder in due:
            self.registry.cancel_reminder(reminder.handle)
        due.sort(key=lambda r: r.fire_at)
        return due
