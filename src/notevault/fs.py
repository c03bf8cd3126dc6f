"""
File-system collaborators used by the vault.

All calls are coroutines and may raise OSError (FileNotFoundError for a
missing path). LocalFileSystem hits the disk through aiofiles;
MemoryFileSystem keeps everything in a dict for tests and dry runs.
"""
from __future__ import annotations
from dataclasses import dataclass
from pathlib import PurePath
from typing import Callable, Optional, Protocol, Union
import os
import stat
import time
import uuid

import aiofiles
import aiofiles.os
from aiofiles.ospath import wrap

PathLike = Union[str, os.PathLike]

_utime = wrap(os.utime)


@dataclass(frozen=True)
class DirEntry:
    name: str
    mtime: float  # seconds since the epoch
    is_dir: bool = False


class FileSystem(Protocol):
    async def list_directory(self, path: PathLike) -> list[DirEntry]: ...

    async def read_file(self, path: PathLike) -> bytes: ...

    async def write_file(self, path: PathLike, data: bytes) -> None: ...

    async def move_file(self, src: PathLike, dst: PathLike) -> None: ...

    async def touch(self, path: PathLike) -> None: ...

    async def delete_file(self, path: PathLike) -> None: ...

    async def create_directory(self, path: PathLike) -> None: ...


class LocalFileSystem:
    async def list_directory(self, path: PathLike) -> list[DirEntry]:
        entries = []
        for name in await aiofiles.os.listdir(path):
            try:
                st = await aiofiles.os.stat(os.path.join(path, name))
            except FileNotFoundError:
                continue  # removed between listdir and stat
            entries.append(DirEntry(name, st.st_mtime, stat.S_ISDIR(st.st_mode)))
        return entries

    async def read_file(self, path: PathLike) -> bytes:
        async with aiofiles.open(path, "rb") as f:
            return await f.read()

    async def write_file(self, path: PathLike, data: bytes) -> None:
        # write-then-rename so a reader never sees half a note
        tmp = f"{os.fspath(path)}.{uuid.uuid4().hex[:8]}.tmp"
        try:
            async with aiofiles.open(tmp, "wb") as f:
                await f.write(data)
            await aiofiles.os.replace(tmp, path)
        except OSError:
            if await aiofiles.os.path.exists(tmp):
                await aiofiles.os.remove(tmp)
            raise

    async def move_file(self, src: PathLike, dst: PathLike) -> None:
        await aiofiles.os.replace(src, dst)

    async def touch(self, path: PathLike) -> None:
        await _utime(path, None)

    async def delete_file(self, path: PathLike) -> None:
        await aiofiles.os.remove(path)

    async def create_directory(self, path: PathLike) -> None:
        await aiofiles.os.makedirs(path, exist_ok=True)


class MemoryFileSystem:
    """Dict-backed FileSystem. `clock` supplies mtimes; set_mtime() overrides one."""

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self.clock = clock or time.time
        self.files: dict[str, tuple[bytes, float]] = {}
        self.dirs: set[str] = set()

    @staticmethod
    def _key(path: PathLike) -> str:
        return PurePath(os.fspath(path)).as_posix()

    def _parent(self, key: str) -> str:
        return PurePath(key).parent.as_posix()

    def _require_dir(self, key: str) -> None:
        if key not in self.dirs:
            raise FileNotFoundError(f"No such directory: {key}")

    def set_mtime(self, path: PathLike, mtime: float) -> None:
        key = self._key(path)
        data, _ = self.files[key]
        self.files[key] = (data, mtime)

    def exists(self, path: PathLike) -> bool:
        key = self._key(path)
        return key in self.files or key in self.dirs

    async def list_directory(self, path: PathLike) -> list[DirEntry]:
        key = self._key(path)
        self._require_dir(key)
        entries = [
            DirEntry(PurePath(k).name, mtime)
            for k, (_, mtime) in self.files.items()
            if self._parent(k) == key
        ]
        entries += [
            DirEntry(PurePath(d).name, self.clock(), is_dir=True)
            for d in self.dirs
            if d != key and self._parent(d) == key
        ]
        return entries

    async def read_file(self, path: PathLike) -> bytes:
        key = self._key(path)
        if key not in self.files:
            raise FileNotFoundError(f"No such file: {key}")
        return self.files[key][0]

    async def write_file(self, path: PathLike, data: bytes) -> None:
        key = self._key(path)
        self._require_dir(self._parent(key))
        self.files[key] = (bytes(data), self.clock())

    async def move_file(self, src: PathLike, dst: PathLike) -> None:
        s, d = self._key(src), self._key(dst)
        if s not in self.files:
            raise FileNotFoundError(f"No such file: {s}")
        self._require_dir(self._parent(d))
        # a move keeps the modification time, like rename(2)
        self.files[d] = self.files.pop(s)

    async def touch(self, path: PathLike) -> None:
        key = self._key(path)
        if key not in self.files:
            raise FileNotFoundError(f"No such file: {key}")
        self.set_mtime(key, self.clock())

    async def delete_file(self, path: PathLike) -> None:
        key = self._key(path)
        if key not in self.files:
            raise FileNotFoundError(f"No such file: {key}")
        del self.files[key]

    async def create_directory(self, path: PathLike) -> None:
        p = PurePath(self._key(path))
        for part in [p, *p.parents]:
            if part.as_posix() in (".", "/"):
                continue
            self.dirs.add(part.as_posix())
