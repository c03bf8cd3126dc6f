from __future__ import annotations
from datetime import UTC, datetime
from typing import Iterable, Optional
import re

from pydantic import BaseModel, Field

UNTITLED = "Untitled"
UNPINNED = -1

_HEADING_PREFIX_RE = re.compile(r"^#+\s+")
_TAG_JUNK_RE = re.compile(r"[,\[\]]")


def utcnow() -> datetime:
    # header timestamps carry milliseconds; keep memory and disk identical
    now = datetime.now(UTC)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def normal_tags(tags: Optional[Iterable[str]]) -> list[str]:
    if not tags:
        return []
    cleaned = (_TAG_JUNK_RE.sub("", t).strip().lower() for t in tags if t)
    return sorted({t for t in cleaned if t})


def extract_title(body: str) -> str:
    """First non-empty line of the body, heading markers stripped."""
    for line in (body or "").splitlines():
        cleaned = _HEADING_PREFIX_RE.sub("", line).strip()
        if cleaned:
            return cleaned
    return UNTITLED


class VaultMetadata(BaseModel):
    """Typed header of a vault file. `id` is None when the header lacks it."""

    id: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    last_opened_at: Optional[datetime] = None
    tags: list[str] = Field(default_factory=list)
    pinned: bool = False
    pin_order: int = UNPINNED


class Note(BaseModel):
    id: str
    # markup text; attachment links stay relative unless read() inlined them
    body: str = ""
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    last_opened_at: Optional[datetime] = None
    is_pinned: bool = False
    pin_order: int = UNPINNED
    tags: list[str] = Field(default_factory=list)

    @property
    def title(self) -> str:
        return extract_title(self.body)

    @property
    def id8(self) -> str:
        return self.id[:8]

    def to_metadata(self) -> VaultMetadata:
        return VaultMetadata(
            id=self.id,
            created_at=self.created_at,
            updated_at=self.updated_at,
            last_opened_at=self.last_opened_at,
            tags=list(self.tags),
            pinned=self.is_pinned,
            pin_order=self.pin_order if self.is_pinned else UNPINNED,
        )

    @classmethod
    def from_metadata(cls, meta: VaultMetadata, body: str) -> "Note":
        return cls(
            id=meta.id,
            body=body,
            created_at=meta.created_at,
            updated_at=meta.updated_at,
            last_opened_at=meta.last_opened_at,
            is_pinned=meta.pinned,
            pin_order=meta.pin_order if meta.pinned else UNPINNED,
            tags=list(meta.tags),
        )


class DeletedNote(BaseModel):
    id: str
    deleted_at: datetime
    original_created_at: datetime
