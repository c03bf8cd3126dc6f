from datetime import UTC, datetime

from notevault import header
from notevault.fs import MemoryFileSystem
from notevault.reconcile import absorb_changes, changes_since
from notevault.store import VaultStore


class Clock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


async def _vault():
    clock = Clock()
    fs = MemoryFileSystem(clock=clock)
    store = VaultStore(fs, "/vault")
    await store.ensure_layout()
    return clock, fs, store


async def test_changes_since_is_strictly_after():
    clock, fs, store = await _vault()
    note = await store.create("# One\n")
    assert await changes_since(store, 1000.0) == []

    clock.now = 2000.0
    await store.write(note.id, "# One, edited\n")
    changed = await changes_since(store, datetime.fromtimestamp(1500.0, UTC))
    assert [c.filename for c in changed] == [store.filename_for(note.id)]
    assert changed[0].mtime == 2000.0
    assert b"# One, edited" in changed[0].content


async def test_absorb_picks_up_outside_edit_of_active_note():
    clock, fs, store = await _vault()
    note = await store.create("# Mine\n")
    filename = store.filename_for(note.id)

    clock.now = 3000.0
    meta = note.to_metadata()
    await fs.write_file(f"/vault/{filename}", header.encode(meta, "# Mine\n\nedited elsewhere\n").encode())

    result = await absorb_changes(store, 2000.0, active_id=note.id)
    assert result.changed_ids == [note.id]
    assert result.active_changed is True
    assert result.active_missing is False
    assert store.cached(note.id).body == "# Mine\n\nedited elsewhere\n"


async def test_absorb_notices_outside_delete():
    clock, fs, store = await _vault()
    note = await store.create("# Gone soon\n")
    other = await store.create("# Stays\n")
    await fs.delete_file(f"/vault/{store.filename_for(note.id)}")

    result = await absorb_changes(store, 5000.0, active_id=note.id)
    assert result.changed_ids == []
    assert result.active_missing is True
    assert [n.id for n in store.notes()] == [other.id]
