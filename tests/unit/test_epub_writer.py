# ABOUTME: Unit tests for EPUB 3 writing.
# ABOUTME: Checks archive layout, OPF/NCX content, escaping, title dedup, covers, and memo isolation.

import io
import re
import zipfile

from lxml import etree

from zenpub.formats.epub import build_ncx, chapter_file, write_epub
from zenpub.metadata.types import BookMetadata, Chapter, CoverImage

OPF_NS = {"opf": "http://www.idpf.org/2007/opf", "dc": "http://purl.org/dc/elements/1.1/"}
NCX_NS = {"ncx": "http://www.daisy.org/z3986/2005/ncx/"}
XHTML_NS = {"x": "http://www.w3.org/1999/xhtml"}


def _open(data: bytes) -> zipfile.ZipFile:
    return zipfile.ZipFile(io.BytesIO(data))


def _opf(data: bytes) -> etree._Element:
    with _open(data) as zf:
        return etree.fromstring(zf.read("OEBPS/content.opf"))


def _chapter_doc(data: bytes, n: int) -> etree._Element:
    with _open(data) as zf:
        return etree.fromstring(zf.read(f"OEBPS/chapter_{n}.xhtml"))


class TestArchiveLayout:
    """Tests for the OCF container structure."""

    def test_mimetype_is_first_stored_and_exact(self, sample_epub_bytes: bytes) -> None:
        with _open(sample_epub_bytes) as zf:
            first = zf.infolist()[0]
            assert first.filename == "mimetype"
            assert first.compress_type == zipfile.ZIP_STORED
            assert zf.read("mimetype") == b"application/epub+zip"

    def test_entry_order(self, sample_epub_bytes: bytes) -> None:
        with _open(sample_epub_bytes) as zf:
            assert zf.namelist() == [
                "mimetype",
                "META-INF/container.xml",
                "OEBPS/chapter_1.xhtml",
                "OEBPS/chapter_2.xhtml",
                "OEBPS/chapter_3.xhtml",
                "OEBPS/style.css",
                "OEBPS/content.opf",
                "OEBPS/toc.ncx",
            ]

    def test_container_points_at_opf(self, sample_epub_bytes: bytes) -> None:
        with _open(sample_epub_bytes) as zf:
            container = etree.fromstring(zf.read("META-INF/container.xml"))
        rootfile = container.find(".//{*}rootfile")
        assert rootfile.get("full-path") == "OEBPS/content.opf"

    def test_every_xml_entry_is_well_formed(self, sample_epub_bytes: bytes) -> None:
        with _open(sample_epub_bytes) as zf:
            for name in zf.namelist():
                if name.endswith((".xml", ".opf", ".ncx", ".xhtml")):
                    etree.fromstring(zf.read(name))


class TestPackageDocument:
    """Tests for the generated OPF."""

    def test_metadata_fields(self, sample_epub_bytes: bytes) -> None:
        opf = _opf(sample_epub_bytes)
        assert opf.findtext(".//dc:title", namespaces=OPF_NS) == "The Quiet Garden"
        creator = opf.find(".//dc:creator", namespaces=OPF_NS)
        assert creator.text == "Lin Mei"
        assert creator.get("{http://www.idpf.org/2007/opf}role") == "aut"
        assert opf.findtext(".//dc:publisher", namespaces=OPF_NS) == "Lantern Press"
        assert opf.findtext(".//dc:language", namespaces=OPF_NS) == "en"

    def test_book_id_is_random_uuid(self, sample_metadata: BookMetadata) -> None:
        first = _opf(write_epub(sample_metadata, []))
        second = _opf(write_epub(sample_metadata, []))
        first_id = first.findtext(".//dc:identifier[@id='BookId']", namespaces=OPF_NS)
        second_id = second.findtext(".//dc:identifier[@id='BookId']", namespaces=OPF_NS)
        assert first_id.startswith("urn:uuid:")
        assert first_id != second_id

    def test_modified_timestamp_format(self, sample_epub_bytes: bytes) -> None:
        opf = _opf(sample_epub_bytes)
        modified = opf.findtext(".//opf:meta[@property='dcterms:modified']", namespaces=OPF_NS)
        assert re.fullmatch(r"\d{4}-\d\d-\d\dT\d\d:\d\d:\d\dZ", modified)

    def test_isbn_and_tags(self, sample_epub_bytes: bytes) -> None:
        opf = _opf(sample_epub_bytes)
        isbn = opf.findtext(".//dc:identifier[@id='isbn']", namespaces=OPF_NS)
        assert isbn == "urn:isbn:978-0-306-40615-7"
        subjects = [el.text for el in opf.findall(".//dc:subject", namespaces=OPF_NS)]
        assert subjects == ["essays", "nature"]

    def test_optional_blocks_omitted(self) -> None:
        data = write_epub(BookMetadata(title="T", author="A"), [])
        with _open(data) as zf:
            opf_text = zf.read("OEBPS/content.opf").decode("utf-8")
        assert 'id="isbn"' not in opf_text
        assert "dc:subject" not in opf_text
        assert 'name="cover"' not in opf_text

    def test_defaults_for_absent_fields(self) -> None:
        opf = _opf(write_epub(BookMetadata(title="T", author="A"), []))
        assert opf.findtext(".//dc:publisher", namespaces=OPF_NS) == "ZenPub"
        assert opf.findtext(".//dc:language", namespaces=OPF_NS) == "zh-CN"
        description = opf.find(".//dc:description", namespaces=OPF_NS)
        assert description is not None
        assert not description.text

    def test_manifest_and_spine_follow_list_order(self) -> None:
        chapters = [
            Chapter(id="z", title="Second by order", order=5),
            Chapter(id="a", title="First by order", order=0),
        ]
        opf = _opf(write_epub(BookMetadata(title="T", author="A"), chapters))
        idrefs = [el.get("idref") for el in opf.findall(".//opf:itemref", namespaces=OPF_NS)]
        assert idrefs == ["chap1", "chap2"]
        spine = opf.find(".//opf:spine", namespaces=OPF_NS)
        assert spine.get("toc") == "ncx"
        item = opf.find(".//opf:item[@id='chap1']", namespaces=OPF_NS)
        assert item.get("href") == "chapter_1.xhtml"
        assert item.get("media-type") == "application/xhtml+xml"

    def test_metadata_is_escaped(self) -> None:
        title = "Tom & Jerry <3 'x' \"y\""
        data = write_epub(BookMetadata(title=title, author="O'Brien & Co"), [])
        with _open(data) as zf:
            opf_text = zf.read("OEBPS/content.opf").decode("utf-8")
            ncx_text = zf.read("OEBPS/toc.ncx").decode("utf-8")
        assert "Tom &amp; Jerry &lt;3 &apos;x&apos; &quot;y&quot;" in opf_text
        assert title not in opf_text
        assert title not in ncx_text
        assert _opf(data).findtext(".//dc:title", namespaces=OPF_NS) == title


class TestCover:
    """Tests for cover image packaging."""

    def test_png_cover(self, cover: CoverImage) -> None:
        data = write_epub(BookMetadata(title="T", author="A", cover=cover), [])
        with _open(data) as zf:
            assert zf.read("OEBPS/images/cover.png") == cover.data
        opf = _opf(data)
        item = opf.find(".//opf:item[@id='cover-image']", namespaces=OPF_NS)
        assert item.get("href") == "images/cover.png"
        assert item.get("media-type") == "image/png"
        assert item.get("properties") == "cover-image"
        meta = opf.find(".//opf:meta[@name='cover']", namespaces=OPF_NS)
        assert meta.get("content") == "cover-image"

    def test_mime_without_subtype_falls_back_to_jpg(self) -> None:
        cover = CoverImage(data=b"\xff\xd8\xff", mime_type="image")
        data = write_epub(BookMetadata(title="T", author="A", cover=cover), [])
        with _open(data) as zf:
            assert "OEBPS/images/cover.jpg" in zf.namelist()

    def test_empty_cover_data_is_not_packaged(self) -> None:
        cover = CoverImage(data=b"", mime_type="image/png")
        data = write_epub(BookMetadata(title="T", author="A", cover=cover), [])
        with _open(data) as zf:
            assert not any(name.startswith("OEBPS/images/") for name in zf.namelist())


class TestChapterDocuments:
    """Tests for chapter XHTML rendering."""

    def test_title_heading_not_duplicated(self) -> None:
        chapters = [Chapter(id="c", title="Intro", content="# Intro\n\nBody")]
        data = write_epub(BookMetadata(title="T", author="A"), chapters)
        doc = _chapter_doc(data, 1)
        assert len(doc.findall(".//x:h1", namespaces=XHTML_NS)) == 1

    def test_title_heading_added_when_missing(self, sample_epub_bytes: bytes) -> None:
        doc = _chapter_doc(sample_epub_bytes, 2)
        headings = doc.findall(".//x:h1", namespaces=XHTML_NS)
        assert [h.text for h in headings] == ["Morning"]

    def test_language_and_title(self, sample_epub_bytes: bytes) -> None:
        doc = _chapter_doc(sample_epub_bytes, 3)
        assert doc.get("{http://www.w3.org/XML/1998/namespace}lang") == "en"
        assert doc.findtext(".//x:title", namespaces=XHTML_NS) == "Evening"

    def test_void_tags_and_entities_are_xml_safe(self) -> None:
        content = "Line one  \nline two\n\n---\n\nA&nbsp;B ![pic](pic.png)"
        data = write_epub(BookMetadata(title="T", author="A"), [Chapter(id="c", title="X", content=content)])
        doc = _chapter_doc(data, 1)
        assert doc.find(".//x:hr", namespaces=XHTML_NS) is not None
        assert doc.find(".//x:br", namespaces=XHTML_NS) is not None
        assert doc.find(".//x:img", namespaces=XHTML_NS) is not None
        assert "A\u00a0B" in "".join(doc.itertext())

    def test_raw_html_and_control_characters_stay_well_formed(self) -> None:
        content = (
            "<p>open para\n\n<div>no close\n\n<input type=checkbox checked>\n\n"
            "Pasted\x0btext with a form feed\x0c here."
        )
        data = write_epub(BookMetadata(title="T\x0b", author="A"), [Chapter(id="c", title="X", content=content)])
        strict = etree.XMLParser(resolve_entities=False)
        with _open(data) as zf:
            for name in ("OEBPS/chapter_1.xhtml", "OEBPS/content.opf", "OEBPS/toc.ncx"):
                etree.fromstring(zf.read(name), strict)
        text = "".join(_chapter_doc(data, 1).itertext())
        assert "open para" in text
        assert "Pasted" in text
        assert "\x0b" not in text
        assert "\x0c" not in text

    def test_memo_is_never_written(self, sample_epub_bytes: bytes) -> None:
        with _open(sample_epub_bytes) as zf:
            for name in zf.namelist():
                assert b"SECRET-EDITOR-NOTE" not in zf.read(name)


class TestNcx:
    """Tests for the NCX table of contents."""

    def test_uid_matches_package_identifier(self, sample_epub_bytes: bytes) -> None:
        opf = _opf(sample_epub_bytes)
        book_id = opf.findtext(".//dc:identifier[@id='BookId']", namespaces=OPF_NS)
        with _open(sample_epub_bytes) as zf:
            ncx = etree.fromstring(zf.read("OEBPS/toc.ncx"))
        uid = ncx.find(".//ncx:meta[@name='dtb:uid']", namespaces=NCX_NS)
        assert uid.get("content") == book_id

    def test_nav_points(self) -> None:
        files = [chapter_file(0, "One & Only"), chapter_file(1, "Two")]
        ncx = etree.fromstring(build_ncx("Book", files, book_id="urn:uuid:x").encode("utf-8"))
        points = ncx.findall(".//ncx:navPoint", namespaces=NCX_NS)
        assert [p.get("playOrder") for p in points] == ["1", "2"]
        assert points[0].findtext(".//ncx:text", namespaces=NCX_NS) == "One & Only"
        assert points[1].find("ncx:content", namespaces=NCX_NS).get("src") == "chapter_2.xhtml"


class TestEmptyBook:
    """Tests for books without chapters."""

    def test_empty_spine(self) -> None:
        data = write_epub(BookMetadata(title="Empty", author="Nobody"), [])
        opf = _opf(data)
        assert opf.findall(".//opf:itemref", namespaces=OPF_NS) == []
        with _open(data) as zf:
            assert not any(name.startswith("OEBPS/chapter_") for name in zf.namelist())
