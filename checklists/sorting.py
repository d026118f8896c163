"""Ordering rule for checklists."""

from __future__ import annotations

import re
import unicodedata
from typing import Iterable

from checklists.models import Checklist

_DIGITS = re.compile(r"(\d+)")


def name_sort_key(name: str) -> tuple[tuple[int, int | str], ...]:
    """Case-insensitive natural key: 'list 2' sorts before 'List 10'."""
    folded = unicodedata.normalize("NFKC", name).casefold()
    key: list[tuple[int, int | str]] = []
    for i, part in enumerate(_DIGITS.split(folded)):
        if not part:
            continue
        # odd chunks from split() are the captured digit runs
        if i % 2:
            key.append((0, int(part)))
        else:
            key.append((1, part))
    return tuple(key)


def sort_checklists(lists: Iterable[Checklist]) -> list[Checklist]:
    """Return checklists ordered by name, ascending.

    Equal names keep their prior relative order.
    """
    return sorted(lists, key=lambda cl: name_sort_key(cl.name))
