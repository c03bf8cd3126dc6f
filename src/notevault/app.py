from __future__ import annotations
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .config import get_settings
from .errors import MalformedRecord, NoteNotFound
from .logging import setup_logging
from .models import DeletedNote, Note
from .ordering import SORT_ORDERS
from .services import NoteVault

_VAULT: Optional[NoteVault] = None


async def get_vault() -> NoteVault:
    global _VAULT
    if _VAULT is None:
        _VAULT = NoteVault.from_settings()
        await _VAULT.open()
    return _VAULT


def reset_vault() -> None:
    """For tests: drop the cached vault so a new vault_dir is picked up."""
    global _VAULT
    _VAULT = None


@asynccontextmanager
async def lifespan(_: FastAPI):
    setup_logging(get_settings().log_level)
    vault = await get_vault()
    yield
    await vault.close()
    reset_vault()


app = FastAPI(title="NoteVault API", lifespan=lifespan)


@app.exception_handler(NoteNotFound)
async def _not_found(_: Request, exc: NoteNotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(MalformedRecord)
async def _malformed(_: Request, exc: MalformedRecord):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


# ---------- Schemas ----------
class NoteCreate(BaseModel):
    content: str = ""
    tags: list[str] = Field(default_factory=list)


class BodyIn(BaseModel):
    content: str


class TagsIn(BaseModel):
    tags: list[str]


class NoteOut(BaseModel):
    id: str
    title: str
    content: str
    tags: list[str]
    pinned: bool
    pin_order: int
    created_at: datetime
    updated_at: datetime
    last_opened_at: Optional[datetime] = None


class DeletedOut(BaseModel):
    id: str
    deleted_at: datetime
    original_created_at: datetime


class ChangeOut(BaseModel):
    filename: str
    mtime: float


def _to_out(n: Note) -> NoteOut:
    return NoteOut(
        id=n.id, title=n.title, content=n.body, tags=list(n.tags),
        pinned=n.is_pinned, pin_order=n.pin_order,
        created_at=n.created_at, updated_at=n.updated_at, last_opened_at=n.last_opened_at,
    )


def _deleted_out(d: DeletedNote) -> DeletedOut:
    return DeletedOut(id=d.id, deleted_at=d.deleted_at, original_created_at=d.original_created_at)


# ---------- Notes ----------
@app.get("/api/notes", response_model=list[NoteOut])
async def api_list_notes(
    sort: str = Query("modified", pattern=f"^({'|'.join(SORT_ORDERS)})$"),
    search: Optional[str] = None,
    tag: Optional[str] = None,
    vault: NoteVault = Depends(get_vault),
):
    notes = await vault.list_notes(order=sort, search=search, tag=tag)
    return [_to_out(n) for n in notes]


@app.post("/api/notes", response_model=NoteOut, status_code=201)
async def api_create_note(payload: NoteCreate, vault: NoteVault = Depends(get_vault)):
    return _to_out(await vault.create_note(payload.content, payload.tags))


@app.get("/api/notes/{note_id}", response_model=NoteOut)
async def api_get_note(note_id: str, vault: NoteVault = Depends(get_vault)):
    return _to_out(await vault.get_note(note_id))


@app.post("/api/notes/{note_id}/open", response_model=NoteOut)
async def api_open_note(note_id: str, vault: NoteVault = Depends(get_vault)):
    return _to_out(await vault.switch_to(note_id))


@app.put("/api/notes/{note_id}/body", response_model=NoteOut)
async def api_write_body(note_id: str, payload: BodyIn, vault: NoteVault = Depends(get_vault)):
    return _to_out(await vault.save_note(note_id, payload.content))


@app.put("/api/notes/{note_id}/tags", response_model=NoteOut)
async def api_set_tags(note_id: str, payload: TagsIn, vault: NoteVault = Depends(get_vault)):
    return _to_out(await vault.set_tags(note_id, payload.tags))


@app.post("/api/notes/{note_id}/pin", response_model=NoteOut)
async def api_toggle_pin(note_id: str, vault: NoteVault = Depends(get_vault)):
    return _to_out(await vault.toggle_pin(note_id))


@app.post("/api/notes/{note_id}/duplicate", response_model=NoteOut, status_code=201)
async def api_duplicate(note_id: str, vault: NoteVault = Depends(get_vault)):
    return _to_out(await vault.duplicate(note_id))


@app.delete("/api/notes/{note_id}", response_model=DeletedOut)
async def api_delete_note(note_id: str, vault: NoteVault = Depends(get_vault)):
    return _deleted_out(await vault.delete_note(note_id))


# ---------- Trash ----------
@app.get("/api/trash", response_model=list[DeletedOut])
async def api_list_trash(vault: NoteVault = Depends(get_vault)):
    return [_deleted_out(d) for d in vault.list_deleted()]


@app.post("/api/trash/{note_id}/restore", response_model=NoteOut)
async def api_restore(note_id: str, vault: NoteVault = Depends(get_vault)):
    return _to_out(await vault.restore_note(note_id))


@app.post("/api/trash/purge")
async def api_purge(vault: NoteVault = Depends(get_vault)):
    return {"purged": await vault.purge_trash()}


# ---------- Outside changes / legacy ----------
@app.get("/api/changes", response_model=list[ChangeOut])
async def api_changes(since: datetime, vault: NoteVault = Depends(get_vault)):
    return [ChangeOut(filename=c.filename, mtime=c.mtime) for c in await vault.changes_since(since)]


@app.post("/api/migrate")
async def api_migrate(vault: NoteVault = Depends(get_vault)):
    report = await vault.migrate()
    return {"ran": report.ran, "migrated": report.migrated, "skipped": report.skipped}
