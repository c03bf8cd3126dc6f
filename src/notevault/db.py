"""Legacy flat key-value store (SQLite via SQLModel).

Older installs kept every note in one JSON blob under a single key. The
migration reads that blob once and records a one-shot flag in the same table.
"""
from contextlib import contextmanager
from pathlib import Path
from typing import Optional
import os

from sqlmodel import Field, Session, SQLModel, create_engine

from .config import get_settings

_ENGINE = None
_ENGINE_URL = None  # track current engine's URL so we can switch when settings change


class LegacyEntry(SQLModel, table=True):
    __tablename__ = "legacy_kv"

    key: str = Field(primary_key=True)
    value: str = ""


def _compute_url(db_path: Optional[Path] = None) -> str:
    path = Path(db_path or get_settings().legacy_db_path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{path}"


def get_engine(db_path: Optional[Path] = None):
    global _ENGINE, _ENGINE_URL
    url = _compute_url(db_path)
    if _ENGINE is None or _ENGINE_URL != url:
        # swap engine if URL changed (common in tests)
        if _ENGINE is not None:
            _ENGINE.dispose()
        # migration calls arrive from worker threads
        _ENGINE = create_engine(url, echo=False, connect_args={"check_same_thread": False})
        _ENGINE_URL = url
    return _ENGINE


def reset_engine():
    """For tests: drop the cached engine so a new legacy_db_path is picked up."""
    global _ENGINE, _ENGINE_URL
    if _ENGINE is not None:
        _ENGINE.dispose()
    _ENGINE = None
    _ENGINE_URL = None


def init_db(db_path: Optional[Path] = None):
    SQLModel.metadata.create_all(get_engine(db_path))


@contextmanager
def session_scope(db_path: Optional[Path] = None):
    # keep objects alive after commit so returned models retain values
    session = Session(get_engine(db_path), expire_on_commit=False)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


class SqlKeyValueStore:
    """read_blob/write_blob over the legacy_kv table."""

    def __init__(self, db_path: Optional[os.PathLike] = None):
        self.db_path = Path(db_path) if db_path else None
        init_db(self.db_path)

    def read_blob(self, key: str) -> Optional[str]:
        with session_scope(self.db_path) as s:
            entry = s.get(LegacyEntry, key)
            return entry.value if entry else None

    def write_blob(self, key: str, value: str) -> None:
        with session_scope(self.db_path) as s:
            entry = s.get(LegacyEntry, key) or LegacyEntry(key=key)
            entry.value = value
            s.add(entry)
