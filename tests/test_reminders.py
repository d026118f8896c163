"""Tests for checklists/reminders.py: registry reconciliation."""

from datetime import timedelta

import pytest

from checklists.errors import CorruptDataError, StorageError
from checklists.models import Item
from checklists.reminders import FileReminderRegistry, InMemoryReminderRegistry, ReminderReconciler

from conftest import NOW, FailingCancelRegistry


def _entries_for(registry, item_id):
    return [r for r in registry.list_scheduled_reminders() if r.item_id == item_id]


@pytest.fixture
def reconciler(registry, clock):
    return ReminderReconciler(registry, clock)


def test_schedule_future_item(reconciler, registry):
    item = Item(item_id=3, text="Dentist", due_date=NOW + timedelta(days=1), should_remind=True)
    reminder = reconciler.schedule(item)
    assert reminder is not None
    entries = registry.list_scheduled_reminders()
    assert len(entries) == 1
    assert entries[0].item_id == 3
    assert entries[0].fire_at == item.due_date
    assert entries[0].message == "Dentist"


def test_schedule_twice_leaves_one_entry(reconciler, registry):
    item = Item(item_id=3, text="Dentist", due_date=NOW + timedelta(days=1), should_remind=True)
    reconciler.schedule(item)
    item.text = "Dentist (moved)"
    item.due_date = NOW + timedelta(days=2)
    reconciler.schedule(item)
    entries = _entries_for(registry, 3)
    assert len(entries) == 1
    assert entries[0].message == "Dentist (moved)"
    reconciler.cancel(item)
    assert _entries_for(registry, 3) == []


def test_past_due_not_scheduled(reconciler, registry):
    item = Item(item_id=4, due_date=NOW - timedelta(minutes=1), should_remind=True)
    assert reconciler.schedule(item) is None
    assert registry.list_scheduled_reminders() == []


def test_due_exactly_now_is_scheduled(reconciler, registry):
    item = Item(item_id=4, due_date=NOW, should_remind=True)
    assert reconciler.schedule(item) is not None
    assert len(_entries_for(registry, 4)) == 1


def test_turning_reminder_off_cancels(reconciler, registry):
    item = Item(item_id=5, due_date=NOW + timedelta(hours=1), should_remind=True)
    reconciler.schedule(item)
    item.should_remind = False
    assert reconciler.schedule(item) is None
    assert _entries_for(registry, 5) == []


def test_moving_due_date_into_past_cancels(reconciler, registry):
    item = Item(item_id=5, due_date=NOW + timedelta(hours=1), should_remind=True)
    reconciler.schedule(item)
    item.due_date = NOW - timedelta(hours=1)
    reconciler.schedule(item)
    assert _entries_for(registry, 5) == []


def test_cancel_without_entry_is_noop(reconciler):
    assert reconciler.cancel(Item(item_id=99)) == 0


def test_cancel_removes_stray_duplicates(reconciler, registry):
    registry.register_reminder(6, NOW + timedelta(hours=1), "a")
    registry.register_reminder(6, NOW + timedelta(hours=2), "b")
    assert reconciler.cancel(Item(item_id=6)) == 2
    assert registry.list_scheduled_reminders() == []


def test_cancel_leaves_other_items(reconciler, registry):
    a = Item(item_id=1, due_date=NOW + timedelta(hours=1), should_remind=True)
    b = Item(item_id=2, due_date=NOW + timedelta(hours=1), should_remind=True)
    reconciler.schedule(a)
    reconciler.schedule(b)
    reconciler.cancel(a)
    assert [r.item_id for r in registry.list_scheduled_reminders()] == [2]


def test_find_for(reconciler):
    item = Item(item_id=8, due_date=NOW + timedelta(hours=1), should_remind=True)
    assert reconciler.find_for(item) is None
    reconciler.schedule(item)
    assert reconciler.find_for(item).item_id == 8


def test_collect_due(reconciler, registry):
    registry.register_reminder(1, NOW - timedelta(minutes=5), "late")
    registry.register_reminder(2, NOW, "now")
    registry.register_reminder(3, NOW + timedelta(minutes=5), "later")
    due = reconciler.collect_due()
    assert [r.item_id for r in due] == [1, 2]
    assert [r.item_id for r in registry.list_scheduled_reminders()] == [3]


def test_in_memory_cancel_by_item_id():
    registry = InMemoryReminderRegistry()
    handle = registry.register_reminder(1, NOW, "x")
    registry.register_reminder(2, NOW, "y")
    registry.cancel_reminder(1)
    assert [r.item_id for r in registry.list_scheduled_reminders()] == [2]
    registry.cancel_reminder(handle)
    assert len(registry.list_scheduled_reminders()) == 1


def test_file_registry_persists(workspace, clock):
    path = workspace / "reminders.json"
    reconciler = ReminderReconciler(FileReminderRegistry(path), clock)
    item = Item(item_id=11, text="Pay rent", due_date=NOW + timedelta(days=3), should_remind=True)
    reconciler.schedule(item)
    reconciler.schedule(item)

    reopened = FileReminderRegistry(path)
    entries = reopened.list_scheduled_reminders()
    assert len(entries) == 1
    assert entries[0].item_id == 11
    assert entries[0].fire_at == item.due_date

    ReminderReconciler(reopened, clock).cancel(item)
    assert FileReminderRegistry(path).list_scheduled_reminders() == []


def test_file_registry_corrupt(workspace):
    path = workspace / "reminders.json"
    path.write_text('{"reminders": [{"handle": "h"}]}', encoding="utf-8")
    with pytest.raises(CorruptDataError):
        FileReminderRegistry(path).list_scheduled_reminders()


def test_cancel_all_removes_every_item(reconciler, registry):
    items = [
        Item(item_id=n, text=f"t{n}", due_date=NOW + timedelta(hours=1), should_remind=True)
        for n in range(3)
    ]
    for item in items:
        reconciler.schedule(item)
    items.append(Item(item_id=9, text="no reminder"))
    removed = reconciler.cancel_all(items)
    assert sorted(r.item_id for r in removed) == [0, 1, 2]
    assert registry.list_scheduled_reminders() == []


def test_cancel_all_restores_on_registry_failure(clock):
    registry = FailingCancelRegistry(cancels_left=2)
    reconciler = ReminderReconciler(registry, clock)
    items = [
        Item(item_id=n, text=f"t{n}", due_date=NOW + timedelta(hours=n + 1), should_remind=True)
        for n in range(3)
    ]
    for item in items:
        reconciler.schedule(item)
    with pytest.raises(StorageError):
        reconciler.cancel_all(items)
    entries = sorted(registry.list_scheduled_reminders(), key=lambda r: r.item_id)
    assert [(r.item_id, r.fire_at, r.message) for r in entries] == [
        (n, NOW + timedelta(hours=n + 1), f"t{n}") for n in range(3)
    ]
