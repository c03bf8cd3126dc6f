import pytest

from notevault.config import reset_settings
from notevault.db import reset_engine
from notevault.fs import MemoryFileSystem
from notevault.store import VaultStore


class FlakyFileSystem(MemoryFileSystem):
    """MemoryFileSystem whose writes fail while `failing` is set."""

    def __init__(self, *a, **kw):
        super().__init__(*a, **kw)
        self.failing = False

    async def write_file(self, path, data):
        if self.failing:
            raise OSError("disk full")
        await super().write_file(path, data)


@pytest.fixture
def fs():
    return FlakyFileSystem()


@pytest.fixture
async def store(fs):
    s = VaultStore(fs, "/vault")
    await s.ensure_layout()
    return s


@pytest.fixture
def vault_env(tmp_path, monkeypatch):
    """Point settings and the legacy engine at tmp_path."""
    monkeypatch.setenv("NOTEVAULT_VAULT_DIR", str(tmp_path / "vault"))
    monkeypatch.setenv("NOTEVAULT_LEGACY_DB_PATH", str(tmp_path / "legacy.sqlite"))
    monkeypatch.setenv("NOTEVAULT_LOG_LEVEL", "WARNING")
    reset_settings()
    reset_engine()
    yield tmp_path
    reset_settings()
    reset_engine()
