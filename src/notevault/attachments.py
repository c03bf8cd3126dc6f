"""
Move embedded images out of note text into attachment files, and back.

Pure text transforms: the caller supplies bytes on the way in and receives
(path, bytes) pairs on the way out. No file I/O happens here.
"""
from __future__ import annotations
from typing import Callable, NamedTuple, Optional
import base64
import binascii
import hashlib
import re

ATTACHMENTS_DIR = "attachments"
HASH_LEN = 12

# media subtype -> file extension
_EXT_FOR_SUBTYPE = {"jpeg": "jpg", "svg+xml": "svg", "x-icon": "ico"}
_SUBTYPE_FOR_EXT = {ext: sub for sub, ext in _EXT_FOR_SUBTYPE.items()}

_DATA_SRC = r"data:image/([A-Za-z0-9.+-]+);base64,([A-Za-z0-9+/=\s]+)"
_MD_DATA_RE = re.compile(r"(!\[[^\]]*\]\()" + _DATA_SRC + r"(\))")
_HTML_DATA_RE = re.compile(r'(<img\s+src=")' + _DATA_SRC + r'(")')

_REL_PATH = ATTACHMENTS_DIR + r"/[A-Za-z0-9_-]+\.[A-Za-z0-9]+"
_MD_REF_RE = re.compile(r"(!\[[^\]]*\]\()(" + _REL_PATH + r")(\))")
_HTML_REF_RE = re.compile(r'(<img\s+src=")(' + _REL_PATH + r')(")')


class Attachment(NamedTuple):
    path: str  # relative to the vault root
    data: bytes


def extension_for(subtype: str) -> str:
    subtype = subtype.lower()
    return _EXT_FOR_SUBTYPE.get(subtype, subtype)


def subtype_for(ext: str) -> str:
    ext = ext.lower()
    return _SUBTYPE_FOR_EXT.get(ext, ext)


def content_hash(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()[:HASH_LEN]


def attachment_path(id_prefix: str, data: bytes, subtype: str) -> str:
    return f"{ATTACHMENTS_DIR}/{id_prefix}-{content_hash(data)}.{extension_for(subtype)}"


def extract(text: str, id_prefix: str) -> tuple[str, list[Attachment]]:
    """Replace inline data images with attachments/<id8>-<hash>.<ext> links."""
    found: dict[str, Attachment] = {}

    def _swap(m: re.Match) -> str:
        head, subtype, payload, tail = m.groups()
        try:
            data = base64.b64decode("".join(payload.split()), validate=True)
        except (binascii.Error, ValueError):
            return m.group(0)
        path = attachment_path(id_prefix, data, subtype)
        found.setdefault(path, Attachment(path, data))
        return f"{head}{path}{tail}"

    cleaned = _MD_DATA_RE.sub(_swap, text)
    cleaned = _HTML_DATA_RE.sub(_swap, cleaned)
    return cleaned, list(found.values())


def referenced_paths(text: str) -> list[str]:
    """Attachment paths linked from `text`, first occurrence order."""
    seen: dict[str, None] = {}
    for rx in (_MD_REF_RE, _HTML_REF_RE):
        for m in rx.finditer(text):
            seen.setdefault(m.group(2), None)
    return list(seen)


def inline(text: str, resolve: Callable[[str], Optional[bytes]]) -> str:
    """Replace attachment links with base64 data URLs; unresolved links stay as they are."""

    def _swap(m: re.Match) -> str:
        head, path, tail = m.groups()
        data = resolve(path)
        if data is None:
            return m.group(0)
        subtype = subtype_for(path.rsplit(".", 1)[-1])
        encoded = base64.b64encode(data).decode("ascii")
        return f"{head}data:image/{subtype};base64,{encoded}{tail}"

    resolved = _MD_REF_RE.sub(_swap, text)
    return _HTML_REF_RE.sub(_swap, resolved)
