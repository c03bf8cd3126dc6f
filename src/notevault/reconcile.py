"""
Pick up edits made to vault files by someone else (a second instance, a sync
client, a text editor) while this process was not looking.

There is no file locking; the caller polls, typically when the window
regains focus, after flushing its own pending writes.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union
import logging

from . import header
from .errors import MalformedRecord
from .store import NOTE_SUFFIX, VaultStore

log = logging.getLogger("notevault.reconcile")


@dataclass(frozen=True)
class ChangedFile:
    filename: str
    content: bytes
    mtime: float


@dataclass
class ReconcileResult:
    changed_ids: list[str] = field(default_factory=list)
    active_changed: bool = False
    # active note's file is gone from the live directory (deleted or trashed elsewhere)
    active_missing: bool = False


def _as_epoch(since: Union[datetime, float, int]) -> float:
    return since.timestamp() if isinstance(since, datetime) else float(since)


async def changes_since(store: VaultStore, since: Union[datetime, float, int]) -> list[ChangedFile]:
    """Live note files modified strictly after `since`, with their raw bytes."""
    cutoff = _as_epoch(since)
    changed = []
    for entry in sorted(await store.fs.list_directory(store.root), key=lambda e: e.name):
        if entry.is_dir or not entry.name.endswith(NOTE_SUFFIX) or entry.mtime <= cutoff:
            continue
        try:
            content = await store.fs.read_file(store.live_path(entry.name))
        except FileNotFoundError:
            continue
        changed.append(ChangedFile(entry.name, content, entry.mtime))
    return changed


async def absorb_changes(
    store: VaultStore,
    since: Union[datetime, float, int],
    active_id: Optional[str] = None,
) -> ReconcileResult:
    """
    Rebuild the index and say whether the open note is affected. Always
    re-lists, so files removed from outside drop out of the index too.
    """
    result = ReconcileResult()
    for change in await changes_since(store, since):
        try:
            meta, _ = header.decode(change.content.decode("utf-8"), change.filename)
        except (MalformedRecord, UnicodeDecodeError):
            log.warning("Changed file %s is not a valid record", change.filename)
            continue
        if meta.id:
            result.changed_ids.append(meta.id)

    await store.list()
    if active_id is not None:
        result.active_changed = active_id in result.changed_ids
        result.active_missing = store.filename_for(active_id) is None
    if result.changed_ids:
        log.info("Absorbed outside changes to %d notes", len(result.changed_ids))
    return result
