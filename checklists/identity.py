"""Persistent item identity allocation."""

from __future__ import annotations

import logging
from typing import Iterable

from checklists.errors import AllocatorExhausted
from checklists.preferences import Preferences

logger = logging.getLogger(__name__)

# Largest ID handed out; matches a signed 64-bit integer.
MAX_ITEM_ID = 2**63 - 1


class IdentityAllocator:
    """Hands out unique, strictly increasing item IDs.

    The counter lives in the preference area so IDs keep increasing across
    restarts. Each call reads the counter, persists ``counter + 1`` and then
    returns the value it read. When the counter has passed ``MAX_ITEM_ID``
    the call fails and the counter is left as is.
    """

    def __init__(self, preferences: Preferences, max_id: int = MAX_ITEM_ID) -> None:
        self.preferences = preferences
        self.max_id = max_id

    def next_id(self) -> int:
        with self.preferences.lock:
            item_id = self.preferences.item_id_counter
            if item_id > self.max_id:
                raise AllocatorExhausted(f"Item ID counter exhausted at {item_id}")
            self.preferences.item_id_counter = item_id + 1
        logger.debug("Allocated item ID %d", item_id)
        return item_id

    def peek(self) -> int:
        """Next ID that would be handed out, without consuming it."""
        return self.preferences.item_id_counter

    def ensure_above(self, item_ids: Iterable[int]) -> int:
        """Move the counter past every ID in ``item_ids``.

        A counter behind IDs already on disk (preferences lost or restored
        from an older copy) would hand those IDs out again. Returns the
        counter after the check.
        """
        with self.preferences.lock:
            counter = self.peek()
            highest = max(item_ids, default=-1)
            if highest >= counter:
                logger.warning(
                    "Item ID counter %d is behind stored ID %d, moving it to %d",
                    counter,
                    highest,
                    highest + 1,
                )
                counter = highest + 1
                self.preferences.item_id_counter = counter
        return counter
