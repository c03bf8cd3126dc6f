from __future__ import annotations
from datetime import datetime, timedelta
from typing import Iterable, Optional, Union
import asyncio
import logging

from . import export, lifecycle, ordering, reconcile
from .autosave import AutosaveQueue
from .config import Settings, get_settings
from .fs import LocalFileSystem, PathLike
from .migration import KeyValueStore, MigrationReport, migrate_once
from .models import DeletedNote, Note
from .store import VaultStore

log = logging.getLogger("notevault.services")


class NoteVault:
    """
    What the CLI and the HTTP app talk to. Pending autosaves are flushed
    before listing, switching notes and trashing.
    """

    def __init__(
        self,
        store: VaultStore,
        autosave_delay: float = 0.5,
        retention: timedelta = lifecycle.RETENTION,
        kv: Optional[KeyValueStore] = None,
    ):
        self.store = store
        self.retention = retention
        self.autosave = AutosaveQueue(store, autosave_delay)
        self._kv = kv

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "NoteVault":
        settings = settings or get_settings()
        store = VaultStore(LocalFileSystem(), settings.vault_dir, settings.trash_dirname)
        return cls(
            store,
            autosave_delay=settings.autosave_delay,
            retention=timedelta(days=settings.retention_days),
        )

    async def legacy_kv(self) -> KeyValueStore:
        if self._kv is None:
            from .db import SqlKeyValueStore

            # creating the table touches SQLite; keep it off the loop
            self._kv = await asyncio.to_thread(SqlKeyValueStore, get_settings().legacy_db_path)
        return self._kv

    async def open(self, purge: bool = True) -> list[Note]:
        """Create the layout if needed, load the index and sweep old trash."""
        await self.store.ensure_layout()
        notes = await self.store.list()
        if purge:
            await lifecycle.purge_trash(self.store, retention=self.retention)
        return notes

    async def close(self) -> None:
        await self.autosave.close()

    # ---------- notes ----------

    async def list_notes(
        self,
        order: str = "modified",
        search: Optional[str] = None,
        tag: Optional[str] = None,
    ) -> list[Note]:
        await self.autosave.flush()
        await self.store.list()
        notes = self.store.search(search, tag) if (search or tag) else self.store.notes()
        return ordering.sort_notes(notes, order)

    async def create_note(self, body: str = "", tags: Optional[Iterable[str]] = None) -> Note:
        return await self.store.create(body, tags)

    async def get_note(self, note_id: str) -> Note:
        return await self.store.read(note_id)

    async def switch_to(self, note_id: str) -> Note:
        """Open a note in the editor: flush, stamp last_opened_at, read with images inlined."""
        await self.autosave.flush()
        await self.store.mark_opened(note_id)
        return await self.store.read(note_id)

    def edit(self, note_id: str, body: str) -> None:
        # raises NoteNotFound now rather than from the timer
        self.store.cached(note_id)
        self.autosave.schedule(note_id, body)

    async def save_note(self, note_id: str, body: str) -> Note:
        self.autosave.discard(note_id)
        return await self.store.write(note_id, body)

    async def set_tags(self, note_id: str, tags: Iterable[str]) -> Note:
        return await self.store.set_tags(note_id, tags)

    async def toggle_pin(self, note_id: str) -> Note:
        return await ordering.toggle_pin(self.store, note_id)

    async def duplicate(self, note_id: str) -> Note:
        await self.autosave.flush(note_id)
        return await self.store.duplicate(note_id)

    # ---------- trash ----------

    async def delete_note(self, note_id: str) -> DeletedNote:
        await self.autosave.flush(note_id)
        return await lifecycle.delete_note(self.store, note_id)

    async def restore_note(self, note_id: str) -> Note:
        return await lifecycle.restore_note(self.store, note_id)

    def list_deleted(self) -> list[DeletedNote]:
        return lifecycle.list_deleted(self.store)

    async def purge_trash(self, now: Optional[datetime] = None) -> list[str]:
        return await lifecycle.purge_trash(self.store, now=now, retention=self.retention)

    # ---------- outside changes ----------

    async def changes_since(self, since: Union[datetime, float]) -> list[reconcile.ChangedFile]:
        return await reconcile.changes_since(self.store, since)

    async def absorb_changes(
        self,
        since: Union[datetime, float],
        active_id: Optional[str] = None,
    ) -> reconcile.ReconcileResult:
        await self.autosave.flush()
        return await reconcile.absorb_changes(self.store, since, active_id)

    # ---------- export ----------

    async def export_all(self, dest: PathLike) -> export.ExportReport:
        await self.autosave.flush()
        return await export.export_all(self.store, dest)

    # ---------- legacy ----------

    async def migrate(self) -> MigrationReport:
        report = await migrate_once(self.store, await self.legacy_kv())
        if report.migrated:
            await self.store.list()
        return report
