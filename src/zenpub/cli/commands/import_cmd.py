# ABOUTME: The `zenpub import` command for turning an EPUB into an editable project.
# ABOUTME: Stores the result as the cached current project and records the file in history.

import time
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from zenpub.cli.options import db_option
from zenpub.core.project import ProjectData, ProjectFileError, save_project
from zenpub.db.cache import ProjectCache
from zenpub.db.connection import CacheError, open_cache
from zenpub.formats.epub import read_epub
from zenpub.formats.errors import FormatError

console = Console()


def _store(project: ProjectData, path: Path, db_path: Path | None) -> None:
    """Cache the project as current and record the source file in history."""
    conn = open_cache(db_path)
    try:
        cache = ProjectCache(conn)
        cache.save_project(project)
        cache.add_file_to_history(str(path.resolve()), time.time())
        cache.cleanup_old_history()
    finally:
        conn.close()


@click.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@db_option
@click.option(
    "--save",
    "save_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also write the imported project to this JSON file.",
)
def import_epub(path: Path, db_path: Path | None, save_path: Path | None) -> None:
    """Import an EPUB as the current project."""
    try:
        book = read_epub(path.read_bytes())
    except (FormatError, OSError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise SystemExit(1) from exc

    project = ProjectData(metadata=book.metadata, chapters=book.chapters)

    try:
        _store(project, path, db_path)
        if save_path is not None:
            save_project(save_path, project)
    except (CacheError, ProjectFileError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise SystemExit(1) from exc

    table = Table(title=book.metadata.title)
    table.add_column("#", style="dim", width=4)
    table.add_column("Chapter", style="bold")
    for position, chapter in enumerate(book.chapters, start=1):
        table.add_row(str(position), chapter.title)
    console.print(table)

    console.print(
        f"[green]Imported {len(book.chapters)} chapter(s)[/green] by {book.metadata.author}"
    )
    for skipped in book.skipped:
        console.print(
            f"  [yellow]Skipped[/yellow] {skipped.idref}: {skipped.reason}"
        )
    if save_path is not None:
        console.print(f"Saved project to {save_path}")
