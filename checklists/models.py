"""Typed dataclasses for the checklists data model.

Entities implement the ``Record`` protocol: ``to_dict`` produces the
on-disk record and ``from_dict`` rebuilds the entity from one. Record keys
are CapitalCase on disk and snake_case in Python. Decoding is strict:
a missing key or a value of the wrong type raises ``CorruptDataError``
naming where in the document it was found.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol, TypeVar

from checklists.errors import CorruptDataError

ICON_CATALOGUE = (
    "No Icon",
    "Appointments",
    "Birthdays",
    "Chores",
    "Drinks",
    "Folder",
    "Groceries",
    "Inbox",
    "Photos",
    "Trips",
)

DEFAULT_ICON = "No Icon"

R = TypeVar("R", bound="Record")


class Record(Protocol):
    """Anything the persistence layer can write to and read from a record."""

    def to_dict(self) -> dict[str, Any]: ...

    @classmethod
    def from_dict(cls: type[R], d: Any, where: str = ...) -> R: ...


# ── Decoding helpers ──────────────────────────────────────────


def _require(d: Any, key: str, kind: type | tuple[type, ...], where: str) -> Any:
    if not isinstance(d, dict):
        raise CorruptDataError(f"{where}: expected a mapping, got {type(d).__name__}")
    if key not in d:
        raise CorruptDataError(f"{where}.{key}: missing")
    value = d[key]
    # bool is an int subclass; keep the two apart
    if isinstance(value, bool) and bool not in (kind if isinstance(kind, tuple) else (kind,)):
        raise CorruptDataError(f"{where}.{key}: expected {_kind_name(kind)}, got bool")
    if not isinstance(value, kind):
        raise CorruptDataError(
            f"{where}.{key}: expected {_kind_name(kind)}, got {type(value).__name__}"
        )
    return value


def _kind_name(kind: type | tuple[type, ...]) -> str:
    if isinstance(kind, tuple):
        return " or ".join(k.__name__ for k in kind)
    return kind.__name__


def parse_timestamp(value: str, where: str) -> datetime:
    """Parse an ISO 8601 timestamp; naive values are taken as UTC."""
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as e:
        raise CorruptDataError(f"{where}: invalid timestamp {value!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Entities ──────────────────────────────────────────────────


@dataclass
class Item:
    """One checkable line of a checklist."""

    item_id: int
    text: str = ""
    checked: bool = False
    due_date: datetime = field(default_factory=_utcnow)
    should_remind: bool = False

    def toggle_checked(self) -> None:
        self.checked = not self.checked

    @classmethod
    def from_dict(cls, d: Any, where: str = "Item") -> Item:
        item_id = _require(d, "ItemID", int, where)
        if item_id < 0:
            raise CorruptDataError(f"{where}.ItemID: negative value {item_id}")
        return cls(
            item_id=item_id,
            text=_require(d, "Text", str, where),
            checked=_require(d, "Checked", bool, where),
            due_date=parse_timestamp(_require(d, "DueDate", str, where), f"{where}.DueDate"),
            should_remind=_require(d, "ShouldRemind", bool, where),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "Text": self.text,
            "Checked": self.checked,
            "DueDate": self.due_date.isoformat(),
            "ShouldRemind": self.should_remind,
            "ItemID": self.item_id,
        }


@dataclass
class Checklist:
    """A named, ordered collection of items."""

    name: str = ""
    icon_name: str = DEFAULT_ICON
    items: list[Item] = field(default_factory=list)

    def count_unchecked_items(self) -> int:
        return sum(1 for item in self.items if not item.checked)

    def index_of(self, item_id: int) -> int | None:
        for i, item in enumerate(self.items):
            if item.item_id == item_id:
                return i
        return None

    def find_item(self, item_id: int) -> Item | None:
        i = self.index_of(item_id)
        return None if i is None else self.items[i]

    @classmethod
    def from_dict(cls, d: Any, where: str = "Checklist") -> Checklist:
        raw_items = _require(d, "Items", list, where)
        return cls(
            name=_require(d, "Name", str, where),
            icon_name=_require(d, "IconName", str, where),
            items=[Item.from_dict(x, f"{where}.Items[{i}]") for i, x in enumerate(raw_items)],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "Name": self.name,
            "IconName": self.icon_name,
            "Items": [item.to_dict() for item in self.items],
        }


@dataclass
class Store:
    """Root of ownership for every checklist, plus the selection cursor.

    ``selected_index`` is -1 for "no selection". It is not repaired when
    lists are removed; readers must bounds-check it.
    """

    lists: list[Checklist] = field(default_factory=list)
    selected_index: int = -1

    def all_item_ids(self) -> list[int]:
        return [item.item_id for cl in self.lists for item in cl.items]
