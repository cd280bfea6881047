# ABOUTME: The `zenpub cache` command group for inspecting and clearing the local cache.
# ABOUTME: Shows the current project and editor state, lists file history, or empties every store.

import sqlite3
from datetime import datetime
from pathlib import Path
from typing import NoReturn

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from zenpub.cli.options import db_option
from zenpub.db.cache import ProjectCache
from zenpub.db.connection import CacheError, open_cache

console = Console()


def _format_time(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d %H:%M")


def _fail(exc: Exception) -> NoReturn:
    console.print(f"[red]Error:[/red] {exc}")
    raise SystemExit(1) from exc


def _open(db_path: Path | None) -> sqlite3.Connection:
    try:
        return open_cache(db_path)
    except CacheError as exc:
        _fail(exc)


@click.group()
def cache() -> None:
    """Inspect or clear the local project cache."""


@cache.command("show")
@db_option
def show(db_path: Path | None) -> None:
    """Show the cached current project and editor state."""
    conn = _open(db_path)
    try:
        store = ProjectCache(conn)
        project = store.get_project()
        state = store.get_user_state()
    except CacheError as exc:
        _fail(exc)
    finally:
        conn.close()

    if project is None:
        console.print("[dim]No cached project.[/dim]")
        return

    table = Table(title="Current project", show_header=False, pad_edge=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Title", project.metadata.title)
    table.add_row("Author", project.metadata.author)
    table.add_row("Chapters", str(len(project.chapters)))
    table.add_row("Modified", _format_time(project.last_modified))
    if state is not None:
        table.add_row("View mode", state.view_mode)
        table.add_row("Theme", state.theme)
    console.print(table)


@cache.command("history")
@db_option
def history(db_path: Path | None) -> None:
    """List recently opened files, newest first."""
    conn = _open(db_path)
    try:
        entries = ProjectCache(conn).get_file_history()
    except CacheError as exc:
        _fail(exc)
    finally:
        conn.close()

    if not entries:
        console.print("[dim]No file history.[/dim]")
        return

    for entry in entries:
        console.print(
            f"[dim]{_format_time(entry.timestamp)}[/dim]  {escape(entry.file_path)}",
            soft_wrap=True,
        )


@cache.command("clear")
@db_option
@click.confirmation_option(prompt="Clear the cached project, editor state, and history?")
def clear(db_path: Path | None) -> None:
    """Empty the cache."""
    conn = _open(db_path)
    try:
        ProjectCache(conn).clear()
    except CacheError as exc:
        _fail(exc)
    finally:
        conn.close()
    console.print("[green]Cache cleared.[/green]")
