"""
One-shot import of the legacy key-value blob into vault files.

The blob is JSON: {"notes": [{id, content, created_at, updated_at,
last_opened_at, is_pinned, pin_order, tags}, ...]}. `content` is either an
editor JSON tree or markup text already.

Embedded images are NOT extracted here; they move out to attachments on the
note's next edit. The legacy blob itself is left untouched.
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Protocol, Union
import asyncio
import json
import logging

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .converter import Node, to_text
from .header import parse_timestamp
from .models import UNPINNED, Note, normal_tags, utcnow
from .store import VaultStore, note_filename

log = logging.getLogger("notevault.migration")

STORAGE_KEY = "notevault.data.v1"
MIGRATION_KEY = "notevault.migrated.v1"


class KeyValueStore(Protocol):
    def read_blob(self, key: str) -> Optional[str]: ...

    def write_blob(self, key: str, value: str) -> None: ...


class LegacyNote(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    content: Optional[str] = None
    created_at: Optional[Union[datetime, str]] = None
    updated_at: Optional[Union[datetime, str]] = None
    last_opened_at: Optional[Union[datetime, str]] = None
    is_pinned: Union[bool, int] = 0
    pin_order: int = UNPINNED
    tags: list[str] = Field(default_factory=list)


@dataclass
class MigrationReport:
    ran: bool = False
    migrated: int = 0
    skipped: int = 0


def _when(value: Optional[Union[datetime, str]], default: Optional[datetime]) -> Optional[datetime]:
    if value is None or value == "":
        return default
    if isinstance(value, datetime):
        return parse_timestamp(value.isoformat())
    return parse_timestamp(value)


def legacy_body(content: Optional[str]) -> str:
    """Editor JSON -> markup; anything else is taken as markup already."""
    if not content:
        return ""
    if content.lstrip().startswith("{"):
        try:
            return to_text(Node.model_validate_json(content))
        except ValidationError:
            return content
    return content


def legacy_to_note(raw: Any) -> Optional[Note]:
    item = LegacyNote.model_validate(raw)
    if not item.id:
        return None
    now = utcnow()
    pinned = bool(item.is_pinned)
    return Note(
        id=item.id,
        body=legacy_body(item.content),
        created_at=_when(item.created_at, now),
        updated_at=_when(item.updated_at, now),
        last_opened_at=_when(item.last_opened_at, None),
        is_pinned=pinned,
        pin_order=item.pin_order if pinned else UNPINNED,
        tags=normal_tags(item.tags),
    )


async def migrate_once(store: VaultStore, kv: KeyValueStore) -> MigrationReport:
    """
    Run the legacy import unless the one-shot flag is set.

    A note that fails is logged and skipped. If the blob cannot be parsed at
    all the flag stays unset so the next launch retries. The key-value store
    is synchronous, so its calls run in a worker thread.
    """
    report = MigrationReport()
    if await asyncio.to_thread(kv.read_blob, MIGRATION_KEY):
        return report

    raw = await asyncio.to_thread(kv.read_blob, STORAGE_KEY)
    if not raw:
        await asyncio.to_thread(kv.write_blob, MIGRATION_KEY, "1")
        return report

    try:
        parsed = json.loads(raw)
        notes = parsed.get("notes") if isinstance(parsed, dict) else None
    except json.JSONDecodeError:
        log.exception("Legacy blob is not valid JSON; migration will retry next launch")
        return report

    report.ran = True
    if not isinstance(notes, list) or not notes:
        await asyncio.to_thread(kv.write_blob, MIGRATION_KEY, "1")
        return report

    log.info("Migrating %d legacy notes to the vault", len(notes))
    await store.ensure_layout()
    for item in notes:
        try:
            note = legacy_to_note(item)
            if note is None:
                report.skipped += 1
                continue
            await store.write_record(note_filename(note.body, note.id), note)
        except Exception:
            log.warning("Skipped legacy note during migration", exc_info=True)
            report.skipped += 1
            continue
        report.migrated += 1

    await asyncio.to_thread(kv.write_blob, MIGRATION_KEY, "1")
    log.info("Migration complete: %d migrated, %d skipped", report.migrated, report.skipped)
    return report
