from __future__ import annotations
from typing import Iterable
import logging

from .models import UNPINNED, Note
from .store import VaultStore

log = logging.getLogger("notevault.ordering")

SORT_ORDERS = ("modified", "opened", "title")


def _tier(n: Note) -> tuple[int, int]:
    # pinned first, then pin_order among pinned
    return (0, n.pin_order) if n.is_pinned else (1, 0)


def sort_notes(notes: Iterable[Note], order: str = "modified") -> list[Note]:
    """
    Stable sort: pinned before unpinned, pinned by ascending pin_order, then
    - modified: updated_at, newest first
    - opened: last_opened_at (or updated_at), newest first
    - title: case-insensitive title, A to Z
    Unknown orders fall back to "modified".
    """
    if order == "title":
        return sorted(notes, key=lambda n: (*_tier(n), n.title.casefold()))
    if order == "opened":
        return sorted(notes, key=lambda n: (*_tier(n), -(n.last_opened_at or n.updated_at).timestamp()))
    return sorted(notes, key=lambda n: (*_tier(n), -n.updated_at.timestamp()))


def next_pin_order(notes: Iterable[Note]) -> int:
    return max((n.pin_order for n in notes if n.is_pinned), default=-1) + 1


async def toggle_pin(store: VaultStore, note_id: str) -> Note:
    """Pin at the end of the pinned group, or unpin. Writes the header."""
    note = store.cached(note_id)
    if note.is_pinned:
        updated = note.model_copy(update={"is_pinned": False, "pin_order": UNPINNED})
    else:
        order = next_pin_order(store.notes())
        updated = note.model_copy(update={"is_pinned": True, "pin_order": order})
    saved = await store.save_metadata(updated)
    log.debug("Note %s pinned=%s order=%s", note_id, saved.is_pinned, saved.pin_order)
    return saved
