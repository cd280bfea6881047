# ABOUTME: Plain-text export: one Markdown file per chapter plus a combined book and metadata.json.
# ABOUTME: Bundles everything into a ZIP archive; chapter memos are never exported.

import json

from zenpub.formats.archive import ArchiveWriter
from zenpub.formats.errors import ExportError
from zenpub.formats.filenames import chapter_markdown_filename
from zenpub.formats.transcode import ensure_markdown_title
from zenpub.metadata.mapping import metadata_to_dict
from zenpub.metadata.types import BookMetadata, Chapter

_SEPARATOR = "\n\n---\n\n"


def book_header(metadata: BookMetadata) -> str:
    """Front matter of ``full_book.md``: title, author line, description."""
    return (
        f"# {metadata.title}\n\nAuthor: {metadata.author}\n\n"
        f"{metadata.description or ''}{_SEPARATOR}"
    )


def export_markdown_bundle(metadata: BookMetadata, chapters: list[Chapter]) -> bytes:
    """Build the Markdown export archive.

    Contents: ``metadata.json``, ``chapter_<NN>_<title>.md`` per chapter, and
    ``full_book.md`` concatenating every chapter.

    Raises:
        ExportError: If the archive cannot be serialized.
    """
    archive = ArchiveWriter()
    try:
        archive.add(
            "metadata.json",
            json.dumps(metadata_to_dict(metadata), ensure_ascii=False, indent=2),
        )

        combined = [book_header(metadata)]
        for position, chapter in enumerate(chapters):
            content = ensure_markdown_title(chapter.title, chapter.content)
            archive.add(chapter_markdown_filename(position, chapter.title), content)
            combined.append(f"{content}{_SEPARATOR}")

        archive.add("full_book.md", "".join(combined))
        return archive.getvalue()
    except (OSError, ValueError) as exc:
        archive.close()
        raise ExportError(f"Failed to build Markdown bundle: {exc}") from exc
