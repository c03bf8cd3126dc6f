"""Header block codec for vault files.

    ---
    id: 6f1c...
    created_at: 2026-01-02T10:00:00.000Z
    updated_at: 2026-01-02T10:05:00.000Z
    tags: [ideas, work]
    pinned: true
    pin_order: 0
    ---

    body...
"""
from __future__ import annotations
from datetime import UTC, datetime
from typing import Optional

from .errors import MalformedRecord
from .models import VaultMetadata, normal_tags

MARKER = "---"


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.strip())
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def encode(meta: VaultMetadata, body: str) -> str:
    if not meta.id:
        raise ValueError("cannot encode a header without an id")
    lines = [
        MARKER,
        f"id: {meta.id}",
        f"created_at: {format_timestamp(meta.created_at)}",
        f"updated_at: {format_timestamp(meta.updated_at)}",
    ]
    if meta.last_opened_at:
        lines.append(f"last_opened_at: {format_timestamp(meta.last_opened_at)}")
    if meta.tags:
        lines.append(f"tags: [{', '.join(meta.tags)}]")
    if meta.pinned:
        lines.append("pinned: true")
        if meta.pin_order >= 0:
            lines.append(f"pin_order: {meta.pin_order}")
    lines += [MARKER, "", ""]
    return "\n".join(lines) + body


def decode(file_text: str, filename: str = "<memory>") -> tuple[VaultMetadata, str]:
    """
    Split a vault file into (metadata, body).

    - no header, or no closing marker: whole text is the body, fresh timestamps
    - unknown keys and lines without a colon are ignored
    - bad timestamp / pin_order values raise MalformedRecord
    - a missing id is reported as meta.id None; the caller decides
    """
    text = file_text.replace("\r\n", "\n")
    lines = text.split("\n")
    if not lines or lines[0].rstrip() != MARKER:
        return VaultMetadata(), file_text

    end = _closing_marker(lines)
    if end is None:
        return VaultMetadata(), file_text

    meta = VaultMetadata()
    for line in lines[1:end]:
        key, sep, value = line.partition(":")
        if not sep:
            continue
        key, value = key.strip(), value.strip()
        try:
            _apply(meta, key, value)
        except ValueError as e:
            raise MalformedRecord(filename, f"bad value for '{key}': {value!r}") from e

    body = "\n".join(lines[end + 1:]).lstrip("\n")
    return meta, body


def _closing_marker(lines: list[str]) -> Optional[int]:
    for i in range(1, len(lines)):
        if lines[i].rstrip() == MARKER:
            return i
    return None


def _apply(meta: VaultMetadata, key: str, value: str) -> None:
    if key == "id":
        meta.id = value or None
    elif key == "created_at":
        meta.created_at = parse_timestamp(value)
    elif key == "updated_at":
        meta.updated_at = parse_timestamp(value)
    elif key == "last_opened_at":
        meta.last_opened_at = parse_timestamp(value) if value else None
    elif key == "tags":
        if value.startswith("[") and value.endswith("]"):
            meta.tags = normal_tags(value[1:-1].split(","))
        else:
            meta.tags = []
    elif key == "pinned":
        meta.pinned = value == "true"
    elif key == "pin_order":
        meta.pin_order = int(value)
    # anything else: unknown key, ignored
