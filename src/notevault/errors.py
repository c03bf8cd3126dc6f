from __future__ import annotations


class VaultError(Exception):
    """Base class for vault errors raised by notevault itself."""


class NoteNotFound(VaultError, LookupError):
    def __init__(self, note_id: str):
        super().__init__(f"Note '{note_id}' not found")
        self.note_id = note_id


class MalformedRecord(VaultError, ValueError):
    """A vault file could not be decoded into a usable record."""

    def __init__(self, filename: str, reason: str):
        super().__init__(f"{filename}: {reason}")
        self.filename = filename
        self.reason = reason
