from __future__ import annotations
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import PurePath
from typing import Iterable, Optional
import logging
import re
import uuid

from . import attachments, header
from .errors import MalformedRecord, NoteNotFound
from .fs import FileSystem, PathLike
from .models import DeletedNote, Note, UNPINNED, VaultMetadata, extract_title, normal_tags, utcnow

log = logging.getLogger("notevault.store")

NOTE_SUFFIX = ".md"
UNTITLED_STEM = "untitled"
SLUG_MAX = 50

_SLUG_JUNK_RE = re.compile(r"[^a-z0-9]+")


def slugify(body: str) -> str:
    title = extract_title(body) if body and body.strip() else ""
    slug = _SLUG_JUNK_RE.sub("-", title.lower()).strip("-")[:SLUG_MAX].strip("-")
    return slug or UNTITLED_STEM


def note_filename(body: str, note_id: str) -> str:
    return f"{slugify(body)}-{note_id[:8]}{NOTE_SUFFIX}"


def new_id() -> str:
    return str(uuid.uuid4())


def _extract(body: str, prefix: str) -> tuple[str, list[attachments.Attachment]]:
    # leading blank lines do not survive a decode, so do not cache them either
    cleaned, files = attachments.extract(body, prefix)
    return cleaned.lstrip("\n"), files


@dataclass
class VaultIndex:
    """id -> filename maps plus cached records, owned by one VaultStore."""

    live: dict[str, str] = field(default_factory=dict)
    notes: dict[str, Note] = field(default_factory=dict)
    trash: dict[str, str] = field(default_factory=dict)
    deleted: dict[str, DeletedNote] = field(default_factory=dict)


class VaultStore:
    """
    One markup file per live note under `root`, a trash directory beside it
    and a shared attachments directory.

    list() is the authority for what is live: it rebuilds the index from the
    directory every time. The store does no locking; callers keep at most one
    write in flight per note id.
    """

    def __init__(
        self,
        fs: FileSystem,
        root: PathLike,
        trash_dirname: str = "_deleted",
    ):
        self.fs = fs
        self.root = PurePath(root)
        self.trash_dir = self.root / trash_dirname
        # links inside bodies are always attachments/<name>
        self.attachments_dir = self.root / attachments.ATTACHMENTS_DIR
        self.index = VaultIndex()
        self._attachment_names: Optional[set[str]] = None

    # ---------- layout ----------

    async def ensure_layout(self) -> None:
        for path in (self.root, self.trash_dir, self.attachments_dir):
            await self.fs.create_directory(path)

    def live_path(self, filename: str) -> PurePath:
        return self.root / filename

    def trash_path(self, filename: str) -> PurePath:
        return self.trash_dir / filename

    def resolve(self, relative: str) -> PurePath:
        return self.root / relative

    # ---------- decoding ----------

    async def load_record(self, path: PurePath) -> tuple[VaultMetadata, str]:
        raw = await self.fs.read_file(path)
        try:
            file_text = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedRecord(path.name, "not UTF-8 text") from e
        meta, body = header.decode(file_text, path.name)
        if not meta.id:
            raise MalformedRecord(path.name, "header has no id")
        return meta, body

    async def _scan(self, directory: PurePath) -> list[tuple[str, float, VaultMetadata, str]]:
        records = []
        entries = sorted(await self.fs.list_directory(directory), key=lambda e: e.name)
        for entry in entries:
            if entry.is_dir or not entry.name.endswith(NOTE_SUFFIX):
                continue
            try:
                meta, body = await self.load_record(directory / entry.name)
            except MalformedRecord as e:
                log.warning("Skipping malformed vault file %s", e)
                continue
            except FileNotFoundError:
                log.info("Vault file vanished during scan: %s", entry.name)
                continue
            records.append((entry.name, entry.mtime, meta, body))
        return records

    # ---------- queries ----------

    async def list(self) -> list[Note]:
        """Rebuild the index from disk and return the live notes (unsorted)."""
        fresh = VaultIndex()
        for filename, _, meta, body in await self._scan(self.root):
            if meta.id in fresh.live:
                log.warning(
                    "Note %s found in both %s and %s; keeping the first",
                    meta.id, fresh.live[meta.id], filename,
                )
                continue
            fresh.live[meta.id] = filename
            fresh.notes[meta.id] = Note.from_metadata(meta, body)

        for filename, mtime, meta, _ in await self._scan(self.trash_dir):
            fresh.trash[meta.id] = filename
            fresh.deleted[meta.id] = DeletedNote(
                id=meta.id,
                deleted_at=datetime.fromtimestamp(mtime, UTC) if mtime > 0 else utcnow(),
                original_created_at=meta.created_at,
            )

        self.index = fresh
        self._attachment_names = None
        return list(fresh.notes.values())

    def cached(self, note_id: str) -> Note:
        note = self.index.notes.get(note_id)
        if note is None:
            raise NoteNotFound(note_id)
        return note

    def filename_for(self, note_id: str) -> Optional[str]:
        return self.index.live.get(note_id)

    def notes(self) -> list[Note]:
        return list(self.index.notes.values())

    def search(self, query: Optional[str] = None, tag: Optional[str] = None) -> list[Note]:
        """Substring match over body and title of cached live notes."""
        found = self.notes()
        if tag:
            tag = tag.strip().lower()
            found = [n for n in found if tag in n.tags]
        q = (query or "").strip().lower()
        if q:
            found = [n for n in found if q in n.body.lower() or q in n.title.lower()]
        return found

    async def read(self, note_id: str) -> Note:
        """The note with attachment links inlined as data URLs, for the editor."""
        filename = self.index.live.get(note_id)
        if filename is None:
            raise NoteNotFound(note_id)
        meta, body = await self.load_record(self.live_path(filename))
        if meta.id != note_id:
            raise MalformedRecord(filename, f"expected id {note_id}, found {meta.id}")
        return Note.from_metadata(meta, await self._inline(body))

    async def _inline(self, body: str) -> str:
        blobs: dict[str, bytes] = {}
        for rel in attachments.referenced_paths(body):
            try:
                blobs[rel] = await self.fs.read_file(self.resolve(rel))
            except FileNotFoundError:
                log.info("Attachment %s is missing; leaving the link", rel)
        return attachments.inline(body, blobs.get)

    # ---------- writes ----------

    async def write_record(
        self,
        filename: str,
        note: Note,
        files: Iterable[attachments.Attachment] = (),
    ) -> None:
        """Low-level write of attachments then header+body. Does not touch the index."""
        files = list(files)
        if files:
            # re-list so an attachment removed behind our back is written again
            self._attachment_names = None
        for item in files:
            await self._write_attachment(item)
        data = header.encode(note.to_metadata(), note.body).encode("utf-8")
        await self.fs.write_file(self.live_path(filename), data)

    async def _write_attachment(self, item: attachments.Attachment) -> None:
        names = await self._known_attachments()
        name = PurePath(item.path).name
        if name in names:
            return  # same hash, same bytes
        await self.fs.write_file(self.resolve(item.path), item.data)
        names.add(name)

    async def _known_attachments(self) -> set[str]:
        if self._attachment_names is None:
            try:
                entries = await self.fs.list_directory(self.attachments_dir)
            except FileNotFoundError:
                await self.fs.create_directory(self.attachments_dir)
                entries = []
            self._attachment_names = {e.name for e in entries if not e.is_dir}
        return self._attachment_names

    def _remember(self, note: Note, filename: str) -> Note:
        self.index.live[note.id] = filename
        self.index.notes[note.id] = note
        return note

    async def create(self, body: str = "", tags: Optional[Iterable[str]] = None) -> Note:
        note_id = new_id()
        now = utcnow()
        cleaned, files = _extract(body, note_id[:8])
        note = Note(id=note_id, body=cleaned, created_at=now, updated_at=now, tags=normal_tags(tags))
        filename = note_filename(cleaned, note_id)
        await self.write_record(filename, note, files)
        log.debug("Created note %s as %s", note_id, filename)
        return self._remember(note, filename)

    async def write(self, note_id: str, body: str) -> Note:
        """
        Persist a new body. Attachments are extracted under the id prefix and
        updated_at moves to now. The filename is kept even if the title changed.
        """
        note = self.cached(note_id)
        filename = self.index.live[note_id]
        cleaned, files = _extract(body, note.id8)
        updated = note.model_copy(update={"body": cleaned, "updated_at": utcnow()})
        await self.write_record(filename, updated, files)
        return self._remember(updated, filename)

    async def save_metadata(self, note: Note) -> Note:
        """Rewrite the header of a cached note; body comes from the cache."""
        current = self.cached(note.id)
        filename = self.index.live[note.id]
        updated = note.model_copy(update={"body": current.body})
        await self.write_record(filename, updated)
        return self._remember(updated, filename)

    async def set_tags(self, note_id: str, tags: Iterable[str]) -> Note:
        note = self.cached(note_id)
        return await self.save_metadata(note.model_copy(update={"tags": normal_tags(tags)}))

    async def mark_opened(self, note_id: str) -> Note:
        note = self.cached(note_id)
        return await self.save_metadata(note.model_copy(update={"last_opened_at": utcnow()}))

    async def duplicate(self, note_id: str) -> Note:
        """Copy a note under a new id; its filename follows the copied body."""
        original = await self.read(note_id)
        dup_id = new_id()
        now = utcnow()
        cleaned, files = _extract(original.body, dup_id[:8])
        dup = Note(
            id=dup_id,
            body=cleaned,
            created_at=now,
            updated_at=now,
            is_pinned=False,
            pin_order=UNPINNED,
            tags=list(original.tags),
        )
        filename = note_filename(cleaned, dup_id)
        await self.write_record(filename, dup, files)
        return self._remember(dup, filename)
