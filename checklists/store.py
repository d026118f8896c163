"""Store facade: the one entry point the presentation layer talks to.

Loads the store on start, seeds the first list on first run, applies CRUD
to checklists and items, keeps reminders reconciled and saves on request.
Every mutation returns the entity it touched and fires a completion event.
"""

from __future__ import annotations

import dataclasses
import functools
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, TypeVar

from checklists.config import Settings, load_settings, now_local
from checklists.errors import NotFoundError, ValidationError
from checklists.events import (
    CHECKLIST_ADDED,
    CHECKLIST_EDITED,
    CHECKLIST_REMOVED,
    EDIT_CANCELLED,
    ITEM_ADDED,
    ITEM_EDITED,
    ITEM_REMOVED,
    REMINDER_FIRED,
    EventBus,
)
from checklists.identity import IdentityAllocator
from checklists.models import ICON_CATALOGUE, Checklist, Item, Store
from checklists.persistence import PersistenceEngine
from checklists.preferences import Preferences
from checklists.reminders import (
    FileReminderRegistry,
    Reminder,
    ReminderReconciler,
    ReminderRegistry,
)
from checklists.sorting import sort_checklists
from checklists.workspace import (
    preferences_path,
    reminders_path,
    store_path,
    workspace_root,
)

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def _locked(method: F) -> F:
    """Run a facade method while holding the store lock."""

    @functools.wraps(method)
    def wrapper(self: ChecklistStore, *args: Any, **kwargs: Any) -> Any:
        with self.lock:
            return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


def _clean_name(name: str, what: str) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError(f"{what} must not be empty")
    return name


def _check_icon(icon_name: str) -> str:
    if icon_name not in ICON_CATALOGUE:
        raise ValidationError(f"Unknown icon: {icon_name!r}")
    return icon_name


class ChecklistStore:
    def __init__(
        self,
        root: Path | None = None,
        registry: ReminderRegistry | None = None,
        clock: Callable[[], datetime] | None = None,
        settings: Settings | None = None,
        bus: EventBus | None = None,
    ) -> None:
        if root is None:
            root = workspace_root()
        self.root = root
        self.settings = settings if settings is not None else load_settings(root)
        self.clock = clock if clock is not None else (lambda: now_local(self.settings))
        self.bus = bus if bus is not None else EventBus()
        self.preferences = Preferences(preferences_path(root))
        self.allocator = IdentityAllocator(self.preferences)
        self.engine = PersistenceEngine(store_path(root))
        if registry is None:
            registry = FileReminderRegistry(reminders_path(root))
        self.reminders = ReminderReconciler(registry, self.clock)
        self.store = Store()
        # Held by every public facade method.
        self.lock = threading.RLock()

    def _aware(self, moment: datetime) -> datetime:
        """Naive datetimes are taken to be in the configured timezone."""
        if moment.tzinfo is None:
            return moment.replace(tzinfo=self.settings.zone())
        return moment

    # ── Lifecycle ─────────────────────────────────────────────

    @_locked
    def initialize(self) -> Store:
        """Load the store, seed it on first run and sort it.

        The ID counter is moved past any ID already in the store.

        Load errors (StorageError, CorruptDataError) propagate; the caller
        decides whether to start empty or stop.
        """
        store = self.engine.load()
        self.allocator.ensure_above(store.all_item_ids())
        store.selected_index = self.preferences.selected_index
        if self.preferences.first_time:
            store.lists.append(Checklist(name=self.settings.default_checklist_name))
            store.selected_index = 0
            self.preferences.selected_index = 0
            self.preferences.first_time = False
            logger.info("First run: created checklist %r", self.settings.default_checklist_name)
        store.lists = sort_checklists(store.lists)
        self.store = store
        return store

    @_locked
    def persist(self) -> None:
        self.engine.save(self.store)

    # ── Queries ───────────────────────────────────────────────

    @_locked
    def checklists(self) -> list[Checklist]:
        return list(self.store.lists)

    @_locked
    def checklist(self, index: int) -> Checklist:
        if not 0 <= index < len(self.store.lists):
            raise NotFoundError(f"No checklist at index {index}")
        return self.store.lists[index]

    @_locked
    def items(self, index: int) -> list[Item]:
        return list(self.checklist(index).items)

    @_locked
    def item(self, index: int, item_id: int) -> Item:
        item = self.checklist(index).find_item(item_id)
        if item is None:
            raise NotFoundError(f"No item {item_id} in checklist {index}")
        return item

    @property
    def selected_index(self) -> int:
        return self.store.selected_index

    @selected_index.setter
    @_locked
    def selected_index(self, value: int) -> None:
        if value != -1 and not 0 <= value < len(self.store.lists):
            raise NotFoundError(f"No checklist at index {value}")
        self.preferences.selected_index = value
        self.store.selected_index = value

    @_locked
    def selected_checklist(self) -> Checklist | None:
        """Selected checklist, or None when nothing (valid) is selected."""
        index = self.store.selected_index
        if 0 <= index < len(self.store.lists):
            return self.store.lists[index]
        return None

    # ── Checklists ────────────────────────────────────────────

    @_locked
    def add_checklist(self, name: str, icon_name: str | None = None) -> Checklist:
        _clean_name(name, "Checklist name")
        if icon_name is None:
            icon_name = self.settings.new_checklist_icon
        checklist = Checklist(name=name, icon_name=_check_icon(icon_name))
        self.store.lists = sort_checklists([*self.store.lists, checklist])
        logger.info("Added checklist %r", name)
        self.bus.emit(CHECKLIST_ADDED, checklist=checklist)
        return checklist

    @_locked
    def edit_checklist(
        self, index: int, name: str | None = None, icon_name: str | None = None
    ) -> Checklist:
        checklist = self.checklist(index)
        if name is not None:
            _clean_name(name, "Checklist name")
        if icon_name is not None:
            _check_icon(icon_name)
        if name is not None:
            checklist.name = name
        if icon_name is not None:
            checklist.icon_name = icon_name
        self.store.lists = sort_checklists(self.store.lists)
        self.bus.emit(CHECKLIST_EDITED, checklist=checklist)
        return checklist

    @_locked
    def remove_checklist(self, index: int) -> Checklist:
        """Remove a checklist, cancelling the reminders of all its items.

        If the registry fails, the checklist and its reminders stay as they
        were. The selection cursor is left as is and may now be out of range.
        """
        checklist = self.checklist(index)
        self.reminders.cancel_all(checklist.items)
        del self.store.lists[index]
        logger.info("Removed checklist %r (%d items)", checklist.name, len(checklist.items))
        self.bus.emit(CHECKLIST_REMOVED, checklist=checklist)
        return checklist

    # ── Items ─────────────────────────────────────────────────

    @_locked
    def add_item(
        self,
        index: int,
        text: str,
        due_date: datetime | None = None,
        should_remind: bool = False,
    ) -> Item:
        checklist = self.checklist(index)
        _clean_name(text, "Item text")
        item = Item(
            item_id=self.allocator.next_id(),
            text=text,
            checked=False,
            due_date=self._aware(due_date) if due_date is not None else self.clock(),
            should_remind=should_remind,
        )
        self.reminders.schedule(item)
        checklist.items.append(item)
        logger.debug("Added item %d to %r", item.item_id, checklist.name)
        self.bus.emit(ITEM_ADDED, checklist=checklist, item=item)
        return item

    @_locked
    def edit_item(
        self,
        index: int,
        item_id: int,
        text: str | None = None,
        due_date: datetime | None = None,
        should_remind: bool | None = None,
    ) -> Item:
        checklist = self.checklist(index)
        item = self.item(index, item_id)
        if text is not None:
            _clean_name(text, "Item text")
        if due_date is not None:
            due_date = self._aware(due_date)
        changes = {
            k: v
            for k, v in (("text", text), ("due_date", due_date), ("should_remind", should_remind))
            if v is not None
        }
        self.reminders.schedule(dataclasses.replace(item, **changes))
        for field_name, value in changes.items():
            setattr(item, field_name, value)
        self.bus.emit(ITEM_EDITED, checklist=checklist, item=item)
        return item

    @_locked
    def toggle_item(self, index: int, item_id: int) -> Item:
        checklist = self.checklist(index)
        item = self.item(index, item_id)
        item.toggle_checked()
        self.bus.emit(ITEM_EDITED, checklist=checklist, item=item)
        return item

    @_locked
    def remove_item(self, index: int, item_id: int) -> Item:
        """Cancel the item's reminder, then drop it from its checklist."""
        checklist = self.checklist(index)
        position = checklist.index_of(item_id)
        if position is None:
            raise NotFoundError(f"No item {item_id} in checklist {index}")
        item = checklist.items[position]
        self.reminders.cancel(item)
        del checklist.items[position]
        logger.debug("Removed item %d from %r", item_id, checklist.name)
        self.bus.emit(ITEM_REMOVED, checklist=checklist, item=item)
        return item

    def cancel_edit(self) -> None:
        self.bus.emit(EDIT_CANCELLED)

    # ── Reminders ─────────────────────────────────────────────

    @_locked
    def deliver_due_reminders(self) -> list[Reminder]:
        """Take every reminder whose time has come out of the registry."""
        due = self.reminders.collect_due()
        for reminder in due:
            logger.info("Reminder due for item %d: %s", reminder.item_id, reminder.message)
            self.bus.emit(REMINDER_FIRED, reminder=reminder)
        return due
