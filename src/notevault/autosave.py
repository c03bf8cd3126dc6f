"""
Debounced body writes, one pending body per note.

schedule() is called on every editor change; the body is written once the
note has been quiet for `delay` seconds. flush() writes now and is called
before switching notes, listing, or trashing so no read races an unsaved
edit. A failed timed write is logged and stays pending for the next try.
Writes for one note are serialised, so a flush that lands while a timed
write is in flight waits for it instead of racing it.
"""
from __future__ import annotations
from typing import Callable, Optional
import asyncio
import logging

from .models import Note
from .store import VaultStore

log = logging.getLogger("notevault.autosave")


class AutosaveQueue:
    def __init__(
        self,
        store: VaultStore,
        delay: float = 0.5,
        on_error: Optional[Callable[[str, Exception], None]] = None,
    ):
        self.store = store
        self.delay = delay
        self.on_error = on_error
        self._pending: dict[str, str] = {}
        self._timers: dict[str, asyncio.Task] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def pending(self) -> dict[str, str]:
        return dict(self._pending)

    def schedule(self, note_id: str, body: str) -> None:
        self._pending[note_id] = body
        timer = self._timers.pop(note_id, None)
        if timer is not None:
            timer.cancel()
        self._timers[note_id] = asyncio.get_running_loop().create_task(self._fire(note_id))

    async def _fire(self, note_id: str) -> None:
        await asyncio.sleep(self.delay)
        self._timers.pop(note_id, None)
        try:
            await self._write(note_id)
        except Exception as e:
            log.exception("Autosave failed for note %s", note_id)
            if self.on_error:
                self.on_error(note_id, e)

    async def _write(self, note_id: str) -> Optional[Note]:
        async with self._locks.setdefault(note_id, asyncio.Lock()):
            body = self._pending.get(note_id)
            if body is None:
                return None
            saved = await self.store.write(note_id, body)
            # a newer edit may have arrived while the write was in flight
            if self._pending.get(note_id) == body:
                del self._pending[note_id]
            return saved

    async def flush(self, note_id: Optional[str] = None) -> list[Note]:
        """Write pending bodies now (one note, or all). Write errors propagate."""
        ids = [note_id] if note_id is not None else list(self._pending)
        saved = []
        for nid in ids:
            timer = self._timers.pop(nid, None)
            if timer is not None:
                timer.cancel()
            note = await self._write(nid)
            if note is not None:
                saved.append(note)
        return saved

    def discard(self, note_id: str) -> None:
        """Forget a pending body, e.g. when its note is trashed."""
        self._pending.pop(note_id, None)
        timer = self._timers.pop(note_id, None)
        if timer is not None:
            timer.cancel()

    async def close(self) -> None:
        await self.flush()
