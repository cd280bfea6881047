# ABOUTME: The `zenpub export` command group for publishing a project as EPUB, Markdown, or PDF.
# ABOUTME: Reads a project JSON file, or the cached current project, and writes the export file.

from collections.abc import Callable
from pathlib import Path

import click
from rich.console import Console

from zenpub.cli.options import db_option, output_dir_option
from zenpub.core.project import ProjectData, ProjectFileError, load_project
from zenpub.db.cache import ProjectCache
from zenpub.db.connection import CacheError, open_cache
from zenpub.formats.epub import write_epub
from zenpub.formats.errors import ExportError
from zenpub.formats.filenames import epub_filename, markdown_bundle_filename, pdf_filename
from zenpub.formats.markdown_bundle import export_markdown_bundle
from zenpub.formats.pdf import export_pdf
from zenpub.metadata.types import BookMetadata, Chapter

console = Console()

Exporter = Callable[[BookMetadata, list[Chapter]], bytes]

project_argument = click.argument(
    "project_path",
    metavar="[PROJECT]",
    required=False,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)


def _load_source(project_path: Path | None, db_path: Path | None) -> ProjectData:
    """Load the project file, or the cached current project when none is given."""
    if project_path is not None:
        return load_project(project_path)

    conn = open_cache(db_path)
    try:
        project = ProjectCache(conn).get_project()
    finally:
        conn.close()
    if project is None:
        raise ProjectFileError("No project given and no cached project found")
    return project


def _run_export(
    exporter: Exporter,
    filename_fn: Callable[[str], str],
    project_path: Path | None,
    output_dir: Path,
    db_path: Path | None,
) -> None:
    try:
        project = _load_source(project_path, db_path)
        data = exporter(project.metadata, project.chapters)
        output_dir.mkdir(parents=True, exist_ok=True)
        target = output_dir / filename_fn(project.metadata.title)
        target.write_bytes(data)
    except (ProjectFileError, CacheError, ExportError, OSError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise SystemExit(1) from exc

    console.print(
        f"[green]Exported[/green] {project.metadata.title} "
        f"({len(project.chapters)} chapter(s)) to {target}"
    )


@click.group()
def export() -> None:
    """Export a project to EPUB, Markdown, or PDF."""


@export.command("epub")
@project_argument
@output_dir_option
@db_option
def export_epub(project_path: Path | None, output_dir: Path, db_path: Path | None) -> None:
    """Export an EPUB 3 book."""
    _run_export(write_epub, epub_filename, project_path, output_dir, db_path)


@export.command("markdown")
@project_argument
@output_dir_option
@db_option
def export_markdown(project_path: Path | None, output_dir: Path, db_path: Path | None) -> None:
    """Export a ZIP of Markdown chapters, full_book.md, and metadata.json."""
    _run_export(
        export_markdown_bundle, markdown_bundle_filename, project_path, output_dir, db_path
    )


@export.command("pdf")
@project_argument
@output_dir_option
@db_option
def export_pdf_cmd(project_path: Path | None, output_dir: Path, db_path: Path | None) -> None:
    """Export an A4 PDF with a title page."""
    _run_export(export_pdf, pdf_filename, project_path, output_dir, db_path)
