# ABOUTME: The `zenpub inspect` command for viewing an EPUB's metadata and chapters.
# ABOUTME: Read-only; nothing is written to the cache.

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from zenpub.formats.epub import read_epub
from zenpub.formats.errors import FormatError

console = Console()


@click.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def inspect(path: Path) -> None:
    """Show metadata and chapter titles read from an EPUB file."""
    try:
        book = read_epub(path.read_bytes())
    except (FormatError, OSError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise SystemExit(1) from exc

    meta = book.metadata
    table = Table(title=str(path.name), show_header=False, pad_edge=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("Title", meta.title)
    table.add_row("Author", meta.author)
    table.add_row("Language", meta.language)
    table.add_row("Publisher", meta.publisher or "[dim]unknown[/dim]")
    table.add_row("ISBN", meta.isbn or "[dim]none[/dim]")
    table.add_row("Description", meta.description or "[dim]none[/dim]")
    if meta.tags:
        table.add_row("Tags", ", ".join(meta.tags))
    table.add_row("Cover", meta.cover.mime_type if meta.has_cover else "no")
    table.add_row("Chapters", str(len(book.chapters)))
    console.print(table)

    for position, chapter in enumerate(book.chapters, start=1):
        console.print(f"  {position:>3}. {chapter.title}")
    if book.skipped:
        console.print(f"[yellow]{len(book.skipped)} spine entry(ies) skipped[/yellow]")
