from datetime import UTC, datetime, timedelta

import pytest

from notevault.errors import NoteNotFound
from notevault.fs import MemoryFileSystem
from notevault.lifecycle import delete_note, list_deleted, purge_trash, restore_note
from notevault.store import VaultStore


async def test_delete_then_restore_keeps_id_and_filename(store, fs):
    note = await store.create("# Trip\n")
    filename = store.filename_for(note.id)

    deleted = await delete_note(store, note.id)
    assert deleted.original_created_at == note.created_at
    assert note.id not in [n.id for n in await store.list()]
    assert fs.exists(f"/vault/_deleted/{filename}")
    assert [d.id for d in list_deleted(store)] == [note.id]

    restored = await restore_note(store, note.id)
    assert restored.id == note.id
    assert restored.updated_at == note.updated_at
    assert store.filename_for(note.id) == filename
    assert fs.exists(f"/vault/{filename}")
    assert [n.id for n in await store.list()] == [note.id]
    assert list_deleted(store) == []


async def test_restore_after_restart_uses_trash_scan(store, fs):
    note = await store.create("# Old\n")
    await delete_note(store, note.id)

    reopened = VaultStore(fs, "/vault")
    await reopened.list()
    assert (await restore_note(reopened, note.id)).body == "# Old\n"


async def test_unknown_ids_are_not_found(store):
    with pytest.raises(NoteNotFound):
        await delete_note(store, "missing")
    with pytest.raises(NoteNotFound):
        await restore_note(store, "missing")


async def test_purge_honours_thirty_day_window(store, fs):
    now = datetime.now(UTC)
    young = await store.create("# Young\n")
    old = await store.create("# Old\n")
    for n in (young, old):
        await delete_note(store, n.id)
    fs.set_mtime(store.trash_path(store.index.trash[young.id]), (now - timedelta(days=29)).timestamp())
    fs.set_mtime(store.trash_path(store.index.trash[old.id]), (now - timedelta(days=31)).timestamp())

    purged = await purge_trash(store, now=now)
    assert purged == [f"old-{old.id8}.md"]
    assert [d.id for d in list_deleted(store)] == [young.id]
    assert not fs.exists(f"/vault/_deleted/old-{old.id8}.md")


async def test_deleting_an_old_note_starts_the_retention_clock():
    t0 = datetime(2024, 1, 1, tzinfo=UTC)
    clock = {"now": t0.timestamp()}
    fs = MemoryFileSystem(clock=lambda: clock["now"])
    store = VaultStore(fs, "/vault")
    await store.ensure_layout()
    note = await store.create("# Untouched for weeks\n")

    clock["now"] = (t0 + timedelta(days=40)).timestamp()
    await delete_note(store, note.id)

    assert await purge_trash(store, now=t0 + timedelta(days=40, seconds=1)) == []
    assert [d.id for d in list_deleted(store)] == [note.id]
    assert await purge_trash(store, now=t0 + timedelta(days=71)) == [f"untouched-for-weeks-{note.id8}.md"]
