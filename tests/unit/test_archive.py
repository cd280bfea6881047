# ABOUTME: Unit tests for the in-memory ZIP archive reader and writer.
# ABOUTME: Checks entry order, stored vs deflated entries, and path-addressed lookup.

import io
import zipfile

import pytest

from zenpub.formats.archive import ArchiveReader, ArchiveWriter
from zenpub.formats.errors import FormatError


class TestArchiveWriter:
    """Tests for ArchiveWriter."""

    def test_entries_written_in_call_order(self) -> None:
        writer = ArchiveWriter()
        writer.add_stored("mimetype", "application/epub+zip")
        writer.add("b.txt", "b")
        writer.add("a.txt", b"a")
        data = writer.getvalue()

        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            assert zf.namelist() == ["mimetype", "b.txt", "a.txt"]

    def test_stored_entry_is_uncompressed(self) -> None:
        writer = ArchiveWriter()
        writer.add_stored("mimetype", "application/epub+zip")
        writer.add("big.txt", "x" * 1000)
        data = writer.getvalue()

        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            assert zf.getinfo("mimetype").compress_type == zipfile.ZIP_STORED
            assert zf.getinfo("big.txt").compress_type == zipfile.ZIP_DEFLATED

    def test_text_is_utf8(self) -> None:
        writer = ArchiveWriter()
        writer.add("note.txt", "禅")
        data = writer.getvalue()

        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            assert zf.read("note.txt") == "禅".encode("utf-8")


class TestArchiveReader:
    """Tests for ArchiveReader."""

    def _archive(self) -> bytes:
        writer = ArchiveWriter()
        writer.add_stored("mimetype", "application/epub+zip")
        writer.add("OEBPS/content.opf", "<package/>")
        return writer.getvalue()

    def test_reads_entries_by_path(self) -> None:
        with ArchiveReader(self._archive()) as archive:
            assert archive.read_text("OEBPS/content.opf") == "<package/>"
            assert archive.read_bytes("mimetype") == b"application/epub+zip"

    def test_leading_slash_is_ignored(self) -> None:
        with ArchiveReader(self._archive()) as archive:
            assert archive.has("/OEBPS/content.opf")

    def test_missing_entry_returns_none(self) -> None:
        with ArchiveReader(self._archive()) as archive:
            assert archive.read_bytes("nope") is None
            assert archive.read_text("nope") is None
            assert not archive.has("nope")

    def test_names_in_archive_order(self) -> None:
        with ArchiveReader(self._archive()) as archive:
            assert archive.names() == ["mimetype", "OEBPS/content.opf"]

    def test_bom_is_stripped(self) -> None:
        writer = ArchiveWriter()
        writer.add("a.xhtml", b"\xef\xbb\xbf<html/>")
        with ArchiveReader(writer.getvalue()) as archive:
            assert archive.read_text("a.xhtml") == "<html/>"

    def test_non_zip_raises_format_error(self) -> None:
        with pytest.raises(FormatError, match="Not a ZIP"):
            ArchiveReader(b"definitely not a zip")

    def test_corrupt_entry_raises_format_error(self, damaged_chapter_epub_bytes: bytes) -> None:
        with ArchiveReader(damaged_chapter_epub_bytes) as archive:
            assert archive.has("OEBPS/chapter_1.xhtml")
            with pytest.raises(FormatError, match="Unreadable archive entry OEBPS/chapter_1.xhtml"):
                archive.read_bytes("OEBPS/chapter_1.xhtml")
            assert archive.read_text("OEBPS/chapter_2.xhtml") is not None
