from __future__ import annotations
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable, Optional, TypeVar
import asyncio

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from .config import get_settings
from .errors import VaultError
from .header import parse_timestamp
from .logging import setup_logging
from .ordering import SORT_ORDERS
from .services import NoteVault

T = TypeVar("T")

app = typer.Typer(help="NoteVault: notes as plain files")
console = Console()


@app.callback()
def _boot():
    setup_logging(get_settings().log_level)


def _run(action: Callable[[NoteVault], Awaitable[T]]) -> T:
    """Open the vault, run one action, flush. Vault errors exit with status 1."""

    async def go():
        vault = NoteVault.from_settings()
        await vault.open(purge=False)
        try:
            return await action(vault)
        finally:
            await vault.close()

    try:
        return asyncio.run(go())
    except VaultError as e:
        console.print(f"[red]{e}[/]")
        raise typer.Exit(1)


def _split_tags(tags: Optional[str]) -> list[str]:
    return [t for t in (tags or "").split(",") if t.strip()]


def _when(ts: Optional[datetime]) -> str:
    return ts.isoformat(timespec="minutes") if ts else ""


@app.command()
def new(
    content: str = typer.Option("", "--content", "-c"),
    tags: Optional[str] = typer.Option(None, "--tags", "-g", help="comma separated"),
):
    n = _run(lambda v: v.create_note(content, _split_tags(tags)))
    console.print(f"[green]Created[/] {n.id}: {n.title}")


@app.command("list")
def _list(
    sort: str = typer.Option("modified", "--sort", help="|".join(SORT_ORDERS)),
    search: Optional[str] = typer.Option(None, "--search"),
    tag: Optional[str] = typer.Option(None, "--tag"),
):
    notes = _run(lambda v: v.list_notes(order=sort, search=search, tag=tag))
    table = Table(title="NoteVault")
    table.add_column("ID", style="cyan")
    table.add_column("Title", style="bold")
    table.add_column("Tags", style="magenta")
    table.add_column("Pinned")
    table.add_column("Updated")
    table.add_column("Opened")
    for n in notes:
        table.add_row(
            n.id8, n.title, ", ".join(n.tags),
            "✓" if n.is_pinned else "",
            _when(n.updated_at), _when(n.last_opened_at),
        )
    console.print(table)


@app.command()
def show(note_id: str):
    n = _run(lambda v: v.switch_to(note_id))
    console.rule(f"{n.id8} {n.title}")
    if n.tags:
        console.print(f"[dim]tags:[/] {', '.join(n.tags)}")
    console.print(Markdown(n.body or "_<empty>_"))


@app.command()
def edit(
    note_id: str,
    content: Optional[str] = typer.Option(None, "--content", "-c"),
    file: Optional[Path] = typer.Option(None, "--file", "-f", exists=True, dir_okay=False),
):
    if content is None and file is None:
        console.print("[red]Nothing to write[/]: pass --content or --file")
        raise typer.Exit(1)
    body = file.read_text(encoding="utf-8") if file else content
    n = _run(lambda v: v.save_note(note_id, body))
    console.print(f"[green]Updated[/] {n.id8}: {n.title}")


@app.command()
def pin(note_id: str):
    n = _run(lambda v: v.toggle_pin(note_id))
    if n.is_pinned:
        console.print(f"[green]Pinned[/] {n.id8}: {n.title}")
    else:
        console.print(f"[yellow]Unpinned[/] {n.id8}: {n.title}")


@app.command()
def tag(note_id: str, tags: str = typer.Argument("", help="comma separated")):
    n = _run(lambda v: v.set_tags(note_id, _split_tags(tags)))
    console.print(f"[green]Tagged[/] {n.id8}: {', '.join(n.tags) or '-'}")


@app.command()
def duplicate(note_id: str):
    n = _run(lambda v: v.duplicate(note_id))
    console.print(f"[green]Duplicated[/] as {n.id}: {n.title}")


@app.command()
def delete(note_id: str):
    _run(lambda v: v.delete_note(note_id))
    console.print(f"[yellow]Moved to trash[/]: {note_id}")


@app.command()
def restore(note_id: str):
    n = _run(lambda v: v.restore_note(note_id))
    console.print(f"[green]Restored[/] {n.id8}: {n.title}")


async def _deleted(vault: NoteVault):
    return vault.list_deleted()


@app.command()
def trash():
    table = Table(title="Trash")
    table.add_column("ID", style="cyan")
    table.add_column("Deleted")
    table.add_column("Created")
    for d in _run(_deleted):
        table.add_row(d.id, _when(d.deleted_at), _when(d.original_created_at))
    console.print(table)


@app.command()
def purge():
    purged = _run(lambda v: v.purge_trash())
    console.print(f"[red]Purged[/] {len(purged)} notes")


@app.command()
def changes(since: str = typer.Option(..., "--since", help="ISO timestamp")):
    try:
        cutoff = parse_timestamp(since)
    except ValueError:
        console.print(f"[red]Not a timestamp[/]: {since}")
        raise typer.Exit(1)
    for change in _run(lambda v: v.changes_since(cutoff)):
        console.print(change.filename)


@app.command("export")
def export_all(to: Path = typer.Option(..., "--to", help="destination folder")):
    try:
        report = _run(lambda v: v.export_all(to))
    except OSError as e:
        console.print(f"[red]Export failed[/]: {e}")
        raise typer.Exit(1)
    console.print(f"[green]Exported[/] {len(report.notes)} notes and {len(report.attachments)} attachments to {to}")
    for rel in report.missing:
        console.print(f"[yellow]Missing attachment[/]: {rel}")


@app.command()
def migrate():
    report = _run(lambda v: v.migrate())
    if not report.ran:
        console.print("[dim]Nothing to migrate[/]")
        return
    console.print(f"[green]Migrated[/] {report.migrated} notes, skipped {report.skipped}")


def main():
    app()


if __name__ == "__main__":
    main()
