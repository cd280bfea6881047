# ABOUTME: EPUB 3 writer and reader for the ZenPub book model.
# ABOUTME: Serializes metadata + Markdown chapters to an OCF archive and parses EPUBs back.

import html
import logging
import mimetypes
import posixpath
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from urllib.parse import unquote

import lxml.html
from lxml import etree

from zenpub.formats.archive import ArchiveReader, ArchiveWriter
from zenpub.formats.errors import FormatError
from zenpub.formats.transcode import html_to_markdown, markdown_to_html, with_title_heading
from zenpub.formats.xhtml import (
    escape_xml,
    make_xhtml_compatible,
    well_formed_fragment,
    xhtml_document,
)
from zenpub.metadata.types import (
    DEFAULT_LANGUAGE,
    DEFAULT_PUBLISHER,
    BookMetadata,
    Chapter,
    CoverImage,
    new_chapter_id,
)

logger = logging.getLogger(__name__)

MIMETYPE = "application/epub+zip"
CONTAINER_PATH = "META-INF/container.xml"
PACKAGE_DIR = "OEBPS"
PACKAGE_PATH = f"{PACKAGE_DIR}/content.opf"
STYLESHEET_HREF = "style.css"
NCX_HREF = "toc.ncx"
COVER_ID = "cover-image"

_CONTAINER_XML = f"""<?xml version="1.0"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
   <rootfiles>
      <rootfile full-path="{PACKAGE_PATH}" media-type="application/oebps-package+xml"/>
   </rootfiles>
</container>
"""

STYLESHEET = """@font-face {
  font-family: "Source Han Serif SC";
  src: local("Source Han Serif SC"), local("Songti SC"), local("SimSun");
}
body {
  font-family: "Source Han Serif SC", "Songti SC", "SimSun", serif;
  line-height: 1.8;
  margin: 0;
  padding: 1em;
  text-align: justify;
  color: #333;
  background-color: #fff;
}
h1, h2, h3, h4, h5, h6 {
  font-family: "PingFang SC", "Helvetica Neue", "Microsoft YaHei", sans-serif;
  font-weight: bold;
  color: #1a1a1a;
  margin-top: 1.5em;
  margin-bottom: 0.8em;
  line-height: 1.4;
}
h1 { font-size: 1.6em; text-align: center; margin-bottom: 1.5em; border-bottom: 1px solid #eee; padding-bottom: 0.5em; }
p { margin-bottom: 1em; text-indent: 2em; }
code { font-family: monospace; background: #f5f5f7; padding: 2px 4px; border-radius: 3px; font-size: 0.9em; }
img { max-width: 100%; height: auto; display: block; margin: 1em auto; }
hr { border: 0; border-top: 1px solid #eee; margin: 2em 0; }
"""

_XML_DECLARATION_RE = re.compile(r"^\s*<\?xml[^>]*\?>")
_ISBN_PREFIX = "urn:isbn:"


# --- Writing ---


@dataclass(frozen=True)
class ChapterFile:
    """Manifest entry generated for one chapter during a single export."""

    id: str
    href: str
    title: str


def chapter_file(position: int, title: str) -> ChapterFile:
    """File mapping for the chapter at 0-based ``position``."""
    number = position + 1
    return ChapterFile(id=f"chap{number}", href=f"chapter_{number}.xhtml", title=title)


def render_chapter(chapter: Chapter, language: str = DEFAULT_LANGUAGE) -> str:
    """Render one chapter's Markdown as a complete XHTML 1.1 document."""
    body = well_formed_fragment(make_xhtml_compatible(markdown_to_html(chapter.content)))
    body = with_title_heading(chapter.title, body)
    return xhtml_document(chapter.title, body, language=language, stylesheet=STYLESHEET_HREF)


def build_opf(
    metadata: BookMetadata,
    chapter_files: list[ChapterFile],
    *,
    book_id: str,
    modified: str,
    cover_href: str | None = None,
) -> str:
    """Build the OPF 3.0 package document."""
    manifest = [
        f'<item id="style" href="{STYLESHEET_HREF}" media-type="text/css"/>',
        f'<item id="ncx" href="{NCX_HREF}" media-type="application/x-dtbncx+xml"/>',
    ]
    optional_meta = []

    if metadata.isbn:
        optional_meta.append(
            f'<dc:identifier id="isbn">{_ISBN_PREFIX}{escape_xml(metadata.isbn)}</dc:identifier>'
        )
    optional_meta.extend(
        f"<dc:subject>{escape_xml(tag)}</dc:subject>" for tag in metadata.tags if tag
    )
    if cover_href and metadata.cover is not None:
        manifest.append(
            f'<item id="{COVER_ID}" href="{escape_xml(cover_href)}" '
            f'media-type="{escape_xml(metadata.cover.mime_type)}" properties="cover-image"/>'
        )
        # EPUB 2 readers only look at this meta for the thumbnail.
        optional_meta.append(f'<meta name="cover" content="{COVER_ID}"/>')

    manifest.extend(
        f'<item id="{c.id}" href="{c.href}" media-type="application/xhtml+xml"/>'
        for c in chapter_files
    )
    spine = [f'<itemref idref="{c.id}"/>' for c in chapter_files]

    indent = "\n        "
    meta_block = "".join(indent + m for m in optional_meta)
    manifest_block = "".join(indent + m for m in manifest)
    spine_block = "".join(indent + s for s in spine)
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<package xmlns="http://www.idpf.org/2007/opf" unique-identifier="BookId" version="3.0">
    <metadata xmlns:dc="http://purl.org/dc/elements/1.1/" xmlns:opf="http://www.idpf.org/2007/opf">
        <dc:title>{escape_xml(metadata.title)}</dc:title>
        <dc:creator opf:role="aut">{escape_xml(metadata.author)}</dc:creator>
        <dc:publisher>{escape_xml(metadata.publisher or DEFAULT_PUBLISHER)}</dc:publisher>
        <dc:description>{escape_xml(metadata.description)}</dc:description>
        <dc:language>{escape_xml(metadata.language or DEFAULT_LANGUAGE)}</dc:language>
        <dc:identifier id="BookId">{escape_xml(book_id)}</dc:identifier>
        <meta property="dcterms:modified">{modified}</meta>{meta_block}
    </metadata>
    <manifest>{manifest_block}
    </manifest>
    <spine toc="ncx">{spine_block}
    </spine>
</package>
"""


def build_ncx(title: str, chapter_files: list[ChapterFile], *, book_id: str) -> str:
    """Build the NCX 2005-1 table of contents."""
    nav_points = "".join(
        f"""
        <navPoint id="navPoint-{number}" playOrder="{number}">
            <navLabel><text>{escape_xml(c.title)}</text></navLabel>
            <content src="{c.href}"/>
        </navPoint>"""
        for number, c in enumerate(chapter_files, start=1)
    )
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE ncx PUBLIC "-//NISO//DTD NCX 2005-1//EN" "http://www.daisy.org/z3986/2005/ncx-2005-1.dtd">
<ncx xmlns="http://www.daisy.org/z3986/2005/ncx/" version="2005-1">
    <head>
        <meta name="dtb:uid" content="{escape_xml(book_id)}"/>
        <meta name="dtb:depth" content="1"/>
        <meta name="dtb:totalPageCount" content="0"/>
        <meta name="dtb:maxPageNumber" content="0"/>
    </head>
    <docTitle><text>{escape_xml(title)}</text></docTitle>
    <navMap>{nav_points}
    </navMap>
</ncx>
"""


def _modified_timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def write_epub(metadata: BookMetadata, chapters: list[Chapter]) -> bytes:
    """Serialize a book to EPUB 3 archive bytes.

    Chapters are emitted in list order as ``chapter_<n>.xhtml``. The first
    archive entry is the uncompressed ``mimetype`` file required by OCF.
    A fresh ``urn:uuid`` identifier and modification timestamp are generated
    on every call.

    Args:
        metadata: Book metadata; title and author are expected to be set.
        chapters: Chapters in reading order. May be empty.

    Returns:
        The EPUB archive as bytes.
    """
    book_id = f"urn:uuid:{uuid.uuid4()}"
    language = metadata.language or DEFAULT_LANGUAGE

    archive = ArchiveWriter()
    try:
        archive.add_stored("mimetype", MIMETYPE)
        archive.add(CONTAINER_PATH, _CONTAINER_XML)

        cover_href = None
        if metadata.has_cover and metadata.cover is not None:
            cover_href = f"images/cover.{metadata.cover.extension}"
            archive.add(f"{PACKAGE_DIR}/{cover_href}", metadata.cover.data)

        chapter_files = []
        for position, chapter in enumerate(chapters):
            entry = chapter_file(position, chapter.title)
            archive.add(f"{PACKAGE_DIR}/{entry.href}", render_chapter(chapter, language))
            chapter_files.append(entry)

        archive.add(f"{PACKAGE_DIR}/{STYLESHEET_HREF}", STYLESHEET)
        archive.add(
            PACKAGE_PATH,
            build_opf(
                metadata,
                chapter_files,
                book_id=book_id,
                modified=_modified_timestamp(),
                cover_href=cover_href,
            ),
        )
        archive.add(
            f"{PACKAGE_DIR}/{NCX_HREF}",
            build_ncx(metadata.title, chapter_files, book_id=book_id),
        )
    except Exception:
        archive.close()
        raise

    return archive.getvalue()


# --- Reading ---


@dataclass(frozen=True)
class ManifestItem:
    href: str
    media_type: str = ""
    properties: str = ""


@dataclass
class PackageDocument:
    """Parsed OPF manifest and spine, used only while reading one EPUB."""

    path: str
    manifest: dict[str, ManifestItem]
    spine: list[str]

    @property
    def base_dir(self) -> str:
        """Directory of the OPF; manifest hrefs are relative to it."""
        return self.path.rpartition("/")[0]

    def resolve(self, href: str) -> str:
        """Resolve a manifest href to an archive path."""
        path = unquote(href.split("#", 1)[0])
        if self.base_dir:
            path = posixpath.join(self.base_dir, path)
        return posixpath.normpath(path)


@dataclass
class Loaded:
    """A spine entry that produced a chapter."""

    chapter: Chapter


@dataclass
class Skipped:
    """A spine entry that was left out of the import, and why."""

    idref: str
    reason: str
    path: str | None = None


ChapterLoad = Loaded | Skipped


@dataclass
class ImportedBook:
    """Result of reading an EPUB: metadata, chapters, and skipped spine entries."""

    metadata: BookMetadata
    chapters: list[Chapter] = field(default_factory=list)
    skipped: list[Skipped] = field(default_factory=list)


def _recovering_parser() -> etree.XMLParser:
    return etree.XMLParser(recover=True, resolve_entities=False, no_network=True)


def _localname(element: etree._Element) -> str | None:
    if not isinstance(element.tag, str):
        return None
    return etree.QName(element).localname


def _iter_named(root: etree._Element, name: str):
    """Yield descendants (and root) whose local name matches, ignoring namespaces."""
    for element in root.iter():
        if _localname(element) == name:
            yield element


def _first_named(root: etree._Element, name: str) -> etree._Element | None:
    return next(_iter_named(root, name), None)


def _text_of(element: etree._Element | None) -> str:
    if element is None:
        return ""
    return "".join(element.itertext()).strip()


def _attribute(element: etree._Element, name: str) -> str:
    """Attribute value by local name, whatever namespace it was declared in."""
    for key, value in element.attrib.items():
        if etree.QName(key).localname == name:
            return value
    return ""


def _parse_package_xml(data: bytes, what: str) -> etree._Element:
    try:
        root = etree.fromstring(data, _recovering_parser())
    except etree.XMLSyntaxError as exc:
        raise FormatError(f"Invalid EPUB: {what} is not XML: {exc}") from exc
    if root is None:
        raise FormatError(f"Invalid EPUB: {what} is not XML")
    return root


def _find_package_path(archive: ArchiveReader) -> str:
    container = archive.read_bytes(CONTAINER_PATH)
    if container is None:
        raise FormatError(f"Invalid EPUB: {CONTAINER_PATH} missing")
    root = _parse_package_xml(container, CONTAINER_PATH)
    for rootfile in _iter_named(root, "rootfile"):
        full_path = rootfile.get("full-path")
        if full_path:
            return full_path
    raise FormatError("Invalid EPUB: root document path not found in container.xml")


def _detect_isbn(identifiers: list[etree._Element]) -> str:
    """Pick the identifier that is an ISBN, skipping book-id UUIDs."""
    values = []
    for element in identifiers:
        value = _text_of(element)
        if not value:
            continue
        if value.lower().startswith(_ISBN_PREFIX):
            return value[len(_ISBN_PREFIX) :]
        marker = f"{element.get('id', '')} {_attribute(element, 'scheme')}".lower()
        if "isbn" in marker:
            return value
        values.append(value)
    # Fall back to anything shaped like an ISBN-10 or ISBN-13.
    for value in values:
        cleaned = value.replace("-", "").replace(" ", "")
        if len(cleaned) in (10, 13) and cleaned.replace("X", "").isdigit():
            return value
    return ""


def _parse_metadata(package: etree._Element) -> BookMetadata:
    section = _first_named(package, "metadata")
    if section is None:
        section = package
    tags = [_text_of(el) for el in _iter_named(section, "subject")]
    return BookMetadata(
        title=_text_of(_first_named(section, "title")) or "Untitled",
        author=_text_of(_first_named(section, "creator")) or "Unknown",
        description=_text_of(_first_named(section, "description")),
        publisher=_text_of(_first_named(section, "publisher")),
        language=_text_of(_first_named(section, "language")) or DEFAULT_LANGUAGE,
        isbn=_detect_isbn(list(_iter_named(section, "identifier"))),
        tags=[tag for tag in tags if tag],
    )


def _parse_package(package: etree._Element, path: str) -> PackageDocument:
    manifest: dict[str, ManifestItem] = {}
    manifest_section = _first_named(package, "manifest")
    if manifest_section is not None:
        for item in _iter_named(manifest_section, "item"):
            item_id, href = item.get("id"), item.get("href")
            if item_id and href:
                manifest[item_id] = ManifestItem(
                    href=href,
                    media_type=item.get("media-type", ""),
                    properties=item.get("properties", ""),
                )

    spine: list[str] = []
    spine_section = _first_named(package, "spine")
    if spine_section is not None:
        for itemref in _iter_named(spine_section, "itemref"):
            idref = itemref.get("idref")
            if idref:
                spine.append(idref)

    return PackageDocument(path=path, manifest=manifest, spine=spine)


def _find_cover(
    archive: ArchiveReader, package: etree._Element, document: PackageDocument
) -> CoverImage | None:
    """Locate the cover via the EPUB 3 property, falling back to the EPUB 2 meta."""
    cover_item = next(
        (item for item in document.manifest.values() if "cover-image" in item.properties.split()),
        None,
    )
    if cover_item is None:
        for meta in _iter_named(package, "meta"):
            if meta.get("name") == "cover":
                cover_item = document.manifest.get(meta.get("content", ""))
                break
    if cover_item is None:
        return None

    try:
        data = archive.read_bytes(document.resolve(cover_item.href))
    except FormatError as exc:
        logger.warning("Ignoring cover: %s", exc)
        return None
    if not data:
        return None
    mime_type = cover_item.media_type or mimetypes.guess_type(cover_item.href)[0] or ""
    if not mime_type.startswith("image/"):
        return None
    return CoverImage(data=data, mime_type=mime_type)


def _strip_namespaces(root: etree._Element) -> None:
    for element in root.iter():
        if not isinstance(element.tag, str):
            continue
        element.tag = etree.QName(element).localname
        for key in [k for k in element.attrib if k.startswith("{")]:
            del element.attrib[key]
    etree.cleanup_namespaces(root)


def parse_chapter_document(text: str) -> etree._Element | None:
    """Parse a chapter document and return its namespace-free <body>, or None.

    The document is parsed as XHTML first; tag soup that a strict XML parser
    rejects is re-read with the HTML parser.
    """
    text = make_xhtml_compatible(_XML_DECLARATION_RE.sub("", text, count=1))
    try:
        root = etree.fromstring(text, etree.XMLParser(resolve_entities=False, no_network=True))
    except etree.XMLSyntaxError:
        if not text.strip():
            return None
        root = lxml.html.document_fromstring(text)
    _strip_namespaces(root)
    return root if root.tag == "body" else root.find(".//body")


def _remove_keeping_tail(element: etree._Element) -> None:
    parent = element.getparent()
    if element.tail:
        previous = element.getprevious()
        if previous is not None:
            previous.tail = (previous.tail or "") + element.tail
        else:
            parent.text = (parent.text or "") + element.tail
    parent.remove(element)


def _inner_html(element: etree._Element) -> str:
    parts = [html.escape(element.text, quote=False)] if element.text else []
    parts.extend(
        etree.tostring(child, encoding="unicode", method="html", with_tail=True)
        for child in element
    )
    return "".join(parts)


def extract_chapter(body: etree._Element, position: int) -> Chapter:
    """Build a chapter from a parsed body, lifting the first h1/h2 into the title.

    The heading is removed from the body so the title is not repeated in
    the recovered Markdown. Without a heading the title is synthesized as
    ``Chapter <position + 1>``.
    """
    heading = next(body.iter("h1", "h2"), None)
    heading_text = _text_of(heading)
    title = heading_text or f"Chapter {position + 1}"
    if heading is not None and heading_text and heading_text == title.strip():
        _remove_keeping_tail(heading)

    return Chapter(
        id=new_chapter_id(),
        title=title,
        content=html_to_markdown(_inner_html(body)),
        order=position,
    )


def _load_chapter(
    archive: ArchiveReader, document: PackageDocument, idref: str, position: int
) -> ChapterLoad:
    item = document.manifest.get(idref)
    if item is None:
        return Skipped(idref=idref, reason="spine idref has no manifest entry")

    path = document.resolve(item.href)
    try:
        text = archive.read_text(path)
    except FormatError:
        return Skipped(idref=idref, reason="entry unreadable", path=path)
    if text is None:
        return Skipped(idref=idref, reason="file missing from archive", path=path)

    body = parse_chapter_document(text)
    if body is None:
        return Skipped(idref=idref, reason="document has no body", path=path)

    return Loaded(chapter=extract_chapter(body, position))


def load_spine(archive: ArchiveReader, document: PackageDocument) -> list[ChapterLoad]:
    """Load every spine entry in order, tagging each as Loaded or Skipped."""
    results = []
    for position, idref in enumerate(document.spine):
        result = _load_chapter(archive, document, idref, position)
        if isinstance(result, Skipped):
            logger.debug("Skipping spine entry %s (%s): %s", idref, result.path, result.reason)
        results.append(result)
    return results


def read_epub(data: bytes) -> ImportedBook:
    """Parse EPUB archive bytes back into book metadata and Markdown chapters.

    Chapters are produced in spine order. Spine entries that cannot be
    resolved or loaded are left out and reported on ``ImportedBook.skipped``.

    Args:
        data: The EPUB archive bytes.

    Returns:
        ImportedBook with metadata, chapters, and skipped entries.

    Raises:
        FormatError: If the archive, its container descriptor, or its root
            document is missing or unusable.
    """
    with ArchiveReader(data) as archive:
        package_path = _find_package_path(archive)
        package_bytes = archive.read_bytes(package_path)
        if package_bytes is None:
            raise FormatError(f"Invalid EPUB: root document {package_path} missing")
        package = _parse_package_xml(package_bytes, package_path)

        metadata = _parse_metadata(package)
        document = _parse_package(package, package_path)
        metadata.cover = _find_cover(archive, package, document)
        loads = load_spine(archive, document)

    return ImportedBook(
        metadata=metadata,
        chapters=[load.chapter for load in loads if isinstance(load, Loaded)],
        skipped=[load for load in loads if isinstance(load, Skipped)],
    )
