# ABOUTME: Shared pytest fixtures for ZenPub tests.
# ABOUTME: Provides sample book models, written EPUBs, third-party EPUBs built with ebooklib, and bad inputs.

import io
import zipfile
from pathlib import Path

import pytest
from ebooklib import epub

from zenpub.core.project import ProjectData, save_project
from zenpub.formats.epub import write_epub
from zenpub.metadata.types import BookMetadata, Chapter, CoverImage

# Smallest valid PNG: 1x1 transparent pixel.
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c6360000002000154a24f5d00000000"
    "49454e44ae426082"
)


@pytest.fixture
def sample_metadata() -> BookMetadata:
    """Metadata with every optional field populated except the cover."""
    return BookMetadata(
        title="The Quiet Garden",
        author="Lin Mei",
        publisher="Lantern Press",
        description="Essays on slow mornings.",
        language="en",
        isbn="978-0-306-40615-7",
        tags=["essays", "nature"],
    )


@pytest.fixture
def sample_chapters() -> list[Chapter]:
    """Three chapters: one opening with its own title heading, one with a memo."""
    return [
        Chapter(id="c1", title="Intro", content="# Intro\n\nWhere it begins.", order=0),
        Chapter(
            id="c2",
            title="Morning",
            content="The kettle *sings*.\n\n- tea\n- toast",
            memo="SECRET-EDITOR-NOTE",
            order=1,
        ),
        Chapter(id="c3", title="Evening", content="Lights out.", order=2),
    ]


@pytest.fixture
def cover() -> CoverImage:
    return CoverImage(data=PNG_BYTES, mime_type="image/png")


@pytest.fixture
def sample_epub_bytes(sample_metadata: BookMetadata, sample_chapters: list[Chapter]) -> bytes:
    """An EPUB written by ZenPub from the sample book."""
    return write_epub(sample_metadata, sample_chapters)


@pytest.fixture
def sample_epub(tmp_path: Path, sample_epub_bytes: bytes) -> Path:
    filepath = tmp_path / "quiet_garden.epub"
    filepath.write_bytes(sample_epub_bytes)
    return filepath


def _damage_member(data: bytes, name: str) -> bytes:
    """Flip the first byte of a member's compressed data, leaving the directory intact."""
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        offset = zf.getinfo(name).header_offset
    name_len = int.from_bytes(data[offset + 26 : offset + 28], "little")
    extra_len = int.from_bytes(data[offset + 28 : offset + 30], "little")
    start = offset + 30 + name_len + extra_len
    damaged = bytearray(data)
    damaged[start] ^= 0xFF
    return bytes(damaged)


@pytest.fixture
def damaged_chapter_epub_bytes(sample_epub_bytes: bytes) -> bytes:
    """The sample EPUB with the first chapter's deflated data corrupted."""
    return _damage_member(sample_epub_bytes, "OEBPS/chapter_1.xhtml")


@pytest.fixture
def damaged_container_epub_bytes(sample_epub_bytes: bytes) -> bytes:
    return _damage_member(sample_epub_bytes, "META-INF/container.xml")


@pytest.fixture
def project_file(
    tmp_path: Path, sample_metadata: BookMetadata, sample_chapters: list[Chapter]
) -> Path:
    """A project JSON file holding the sample book."""
    filepath = tmp_path / "project.json"
    save_project(
        filepath,
        ProjectData(metadata=sample_metadata, chapters=sample_chapters, last_modified=1700000000.0),
    )
    return filepath


@pytest.fixture
def foreign_epub(tmp_path: Path) -> Path:
    """An EPUB produced by another tool (ebooklib), with a nav document and nested paths."""
    book = epub.EpubBook()

    book.set_identifier("urn:uuid:0b6e3c7e-1111-4a4a-9c9c-123456789abc")
    book.set_title("The Name of the Rose")
    book.set_language("en")
    book.add_author("Umberto Eco")

    book.add_metadata("DC", "publisher", "Harcourt")
    book.add_metadata("DC", "description", "A mystery set in a medieval monastery.")

    chapter1 = epub.EpubHtml(title="First Day", file_name="text/chap01.xhtml", lang="en")
    chapter1.content = (
        "<html><body><h1>First Day</h1><p>A <em>fine</em> morning.</p></body></html>"
    )
    chapter2 = epub.EpubHtml(title="Second Day", file_name="text/chap02.xhtml", lang="en")
    chapter2.content = "<html><body><p>No heading here.</p></body></html>"
    book.add_item(chapter1)
    book.add_item(chapter2)

    book.toc = [
        epub.Link("text/chap01.xhtml", "First Day", "chap01"),
        epub.Link("text/chap02.xhtml", "Second Day", "chap02"),
    ]
    book.add_item(epub.EpubNcx())
    book.add_item(epub.EpubNav())
    book.spine = [chapter1, chapter2]

    filepath = tmp_path / "name_of_the_rose.epub"
    epub.write_epub(str(filepath), book)
    return filepath


@pytest.fixture
def corrupt_epub(tmp_path: Path) -> Path:
    """A file that is not a ZIP archive at all."""
    filepath = tmp_path / "corrupt.epub"
    filepath.write_text("this is not a valid epub file")
    return filepath
