"""
Copy every live note into a plain folder that other tools can open.

Each note lands as <slug>-<id8>.md with its header, named from its current
title, and every attachment it links is copied under attachments/ so the
relative links keep working.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Optional
import logging

from . import attachments, header
from .fs import FileSystem, PathLike
from .store import VaultStore, note_filename

log = logging.getLogger("notevault.export")


@dataclass
class ExportReport:
    notes: list[str] = field(default_factory=list)
    attachments: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)


async def export_all(store: VaultStore, dest: PathLike, fs: Optional[FileSystem] = None) -> ExportReport:
    """
    Write the cached live notes under `dest` (on `fs`, default the vault's).

    A linked attachment that is gone from the vault is reported in
    `missing` and its link is left as it is. Write errors propagate.
    """
    out = fs or store.fs
    root = PurePath(dest)
    report = ExportReport()
    await out.create_directory(root / attachments.ATTACHMENTS_DIR)

    copied: set[str] = set()
    for note in sorted(store.notes(), key=lambda n: n.id):
        filename = note_filename(note.body, note.id)
        data = header.encode(note.to_metadata(), note.body).encode("utf-8")
        await out.write_file(root / filename, data)
        report.notes.append(filename)

        for rel in attachments.referenced_paths(note.body):
            if rel in copied:
                continue
            copied.add(rel)
            try:
                blob = await store.fs.read_file(store.resolve(rel))
            except FileNotFoundError:
                log.info("Attachment %s is missing; not exported", rel)
                report.missing.append(rel)
                continue
            await out.write_file(root / rel, blob)
            report.attachments.append(rel)

    log.info("Exported %d notes and %d attachments to %s", len(report.notes), len(report.attachments), root)
    return report
