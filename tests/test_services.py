from datetime import timedelta

import pytest

from notevault.config import get_settings
from notevault.errors import NoteNotFound
from notevault.services import NoteVault


@pytest.fixture
def vault(store):
    return NoteVault(store, autosave_delay=60)


async def test_list_flushes_pending_edit(vault):
    note = await vault.create_note("# Draft\n")
    vault.edit(note.id, "# Final\n")
    listed = await vault.list_notes()
    assert [n.title for n in listed] == ["Final"]


async def test_switching_flushes_and_marks_opened(vault):
    a = await vault.create_note("# A\n")
    b = await vault.create_note("# B\n")
    vault.edit(a.id, "# A edited\n")

    opened = await vault.switch_to(b.id)
    assert opened.last_opened_at is not None
    assert vault.store.cached(a.id).body == "# A edited\n"
    assert vault.store.cached(b.id).last_opened_at == opened.last_opened_at


async def test_delete_flushes_then_trashes(vault, fs):
    note = await vault.create_note("# Bin me\n")
    vault.edit(note.id, "# Bin me, edited\n")
    await vault.delete_note(note.id)
    assert await vault.list_notes() == []
    trashed = fs.files[f"/vault/_deleted/bin-me-{note.id8}.md"][0]
    assert b"# Bin me, edited" in trashed

    restored = await vault.restore_note(note.id)
    assert restored.body == "# Bin me, edited\n"


async def test_edit_unknown_note_fails_fast(vault):
    with pytest.raises(NoteNotFound):
        vault.edit("missing", "body")


async def test_search_and_tag_filters(vault):
    a = await vault.create_note("# Groceries\n\neggs\n", tags=["home"])
    await vault.create_note("# Work log\n")
    assert [n.id for n in await vault.list_notes(search="eggs")] == [a.id]
    assert [n.id for n in await vault.list_notes(tag="home")] == [a.id]


def test_from_settings_uses_configured_paths(vault_env):
    v = NoteVault.from_settings()
    assert v.store.root.as_posix() == (vault_env / "vault").as_posix()
    assert v.store.trash_dir.name == "_deleted"
    assert v.retention == timedelta(days=get_settings().retention_days)
