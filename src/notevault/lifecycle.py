from __future__ import annotations
from datetime import UTC, datetime, timedelta
from typing import Optional
import logging

from .errors import NoteNotFound
from .models import DeletedNote, Note, utcnow
from .store import VaultStore

log = logging.getLogger("notevault.lifecycle")

RETENTION = timedelta(days=30)


async def delete_note(store: VaultStore, note_id: str) -> DeletedNote:
    """Soft delete: move the file into the trash unchanged."""
    filename = store.filename_for(note_id)
    if filename is None:
        raise NoteNotFound(note_id)
    note = store.cached(note_id)

    await store.fs.move_file(store.live_path(filename), store.trash_path(filename))
    try:
        # retention runs from the deletion, not from the last edit
        await store.fs.touch(store.trash_path(filename))
    except OSError:
        log.warning("Could not stamp deletion time on %s", filename, exc_info=True)

    deleted = DeletedNote(id=note_id, deleted_at=utcnow(), original_created_at=note.created_at)
    store.index.live.pop(note_id, None)
    store.index.notes.pop(note_id, None)
    store.index.trash[note_id] = filename
    store.index.deleted[note_id] = deleted
    log.info("Moved %s to trash", filename)
    return deleted


async def restore_note(store: VaultStore, note_id: str) -> Note:
    """Move a trashed file back under its original filename. updated_at is left alone."""
    filename = store.index.trash.get(note_id)
    if filename is None:
        raise NoteNotFound(note_id)

    await store.fs.move_file(store.trash_path(filename), store.live_path(filename))
    store.index.trash.pop(note_id, None)
    store.index.deleted.pop(note_id, None)

    meta, body = await store.load_record(store.live_path(filename))
    note = Note.from_metadata(meta, body)
    store.index.live[note_id] = filename
    store.index.notes[note_id] = note
    log.info("Restored %s", filename)
    return note


def list_deleted(store: VaultStore) -> list[DeletedNote]:
    return sorted(store.index.deleted.values(), key=lambda d: d.deleted_at, reverse=True)


async def purge_trash(
    store: VaultStore,
    now: Optional[datetime] = None,
    retention: timedelta = RETENTION,
) -> list[str]:
    """
    Permanently remove trash files older than `retention` (by mtime).

    Best effort: failures are logged and skipped. Attachments are left in
    place since they are shared by content hash without reference counts.
    Returns the purged filenames.
    """
    cutoff = ((now or datetime.now(UTC)) - retention).timestamp()
    try:
        entries = await store.fs.list_directory(store.trash_dir)
    except OSError:
        log.warning("Could not list trash for purge", exc_info=True)
        return []

    purged = []
    for entry in entries:
        if entry.is_dir or entry.mtime >= cutoff:
            continue
        try:
            await store.fs.delete_file(store.trash_path(entry.name))
        except OSError:
            log.warning("Could not purge %s", entry.name, exc_info=True)
            continue
        purged.append(entry.name)

    gone = set(purged)
    for note_id, filename in list(store.index.trash.items()):
        if filename in gone:
            del store.index.trash[note_id]
            store.index.deleted.pop(note_id, None)
    if purged:
        log.info("Purged %d trashed notes", len(purged))
    return purged
