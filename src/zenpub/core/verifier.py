# ABOUTME: Structural verification of EPUB archives before they are shared.
# ABOUTME: Checks OCF packaging, strict XML well-formedness, and that ebooklib can open the book.

import logging
import tempfile
import zipfile
from dataclasses import dataclass, field
from pathlib import Path

import ebooklib
from ebooklib import epub
from lxml import etree

from zenpub.formats.archive import ArchiveReader
from zenpub.formats.epub import CONTAINER_PATH, MIMETYPE
from zenpub.formats.errors import FormatError

logger = logging.getLogger(__name__)

_XML_SUFFIXES = (".xhtml", ".html", ".htm", ".opf", ".ncx", ".xml")


@dataclass
class EpubVerifyResult:
    """Aggregated results from verifying one EPUB archive."""

    issues: list[str] = field(default_factory=list)
    checked_documents: int = 0

    @property
    def ok(self) -> bool:
        return not self.issues


def _strict_parser() -> etree.XMLParser:
    return etree.XMLParser(resolve_entities=False, no_network=True)


def _read_entry(archive: ArchiveReader, name: str, result: EpubVerifyResult) -> bytes | None:
    try:
        return archive.read_bytes(name)
    except FormatError as exc:
        result.issues.append(str(exc))
        return None


def _check_mimetype(archive: ArchiveReader, result: EpubVerifyResult) -> None:
    entries = archive.infolist()
    if not entries or entries[0].filename != "mimetype":
        result.issues.append("First archive entry is not 'mimetype'")
        return
    first = entries[0]
    if first.compress_type != zipfile.ZIP_STORED:
        result.issues.append("'mimetype' entry is compressed")
    content = _read_entry(archive, "mimetype", result)
    if content is not None and content != MIMETYPE.encode("ascii"):
        result.issues.append(f"'mimetype' content is not {MIMETYPE!r}")


def _check_package_path(archive: ArchiveReader, result: EpubVerifyResult) -> None:
    if not archive.has(CONTAINER_PATH):
        result.issues.append(f"{CONTAINER_PATH} is missing")
        return
    try:
        root = etree.fromstring(archive.read_bytes(CONTAINER_PATH), _strict_parser())
    except (FormatError, etree.XMLSyntaxError):
        # Reported by the well-formedness pass.
        return
    paths = [
        el.get("full-path")
        for el in root.iter()
        if isinstance(el.tag, str) and etree.QName(el).localname == "rootfile"
    ]
    if not any(paths):
        result.issues.append("container.xml names no root document")
    for path in filter(None, paths):
        if not archive.has(path):
            result.issues.append(f"Root document {path} is missing")


def _check_well_formed(archive: ArchiveReader, result: EpubVerifyResult) -> None:
    for name in archive.names():
        if not name.lower().endswith(_XML_SUFFIXES):
            continue
        result.checked_documents += 1
        content = _read_entry(archive, name, result)
        if content is None:
            continue
        try:
            etree.fromstring(content, _strict_parser())
        except etree.XMLSyntaxError as exc:
            result.issues.append(f"{name} is not well-formed XML: {exc}")


def _check_ebooklib(data: bytes, result: EpubVerifyResult) -> None:
    """Open the archive with ebooklib and confirm every spine entry is a document."""
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "book.epub"
        path.write_bytes(data)
        try:
            book = epub.read_epub(str(path), options={"ignore_ncx": True})
        except Exception as exc:
            logger.debug("ebooklib failed to open archive", exc_info=True)
            result.issues.append(f"ebooklib could not open the book: {exc}")
            return

    for idref, _linear in book.spine:
        item = book.get_item_with_id(idref)
        if item is None:
            result.issues.append(f"Spine entry {idref} has no manifest item")
        elif item.get_type() != ebooklib.ITEM_DOCUMENT:
            result.issues.append(f"Spine entry {idref} is not a document")


def verify_epub(data: bytes) -> EpubVerifyResult:
    """Verify that EPUB bytes are packaged the way reading systems expect.

    Checks, in order:
    1. The first entry is an uncompressed ``mimetype`` with the exact media type.
    2. container.xml exists and its root document is in the archive.
    3. Every XHTML/OPF/NCX/XML entry parses with a strict XML parser.
    4. ebooklib opens the book and every spine entry resolves to a document.

    Args:
        data: The EPUB archive bytes.

    Returns:
        An EpubVerifyResult listing every failed check.

    Raises:
        FormatError: If the bytes are not a ZIP archive at all.
    """
    result = EpubVerifyResult()
    with ArchiveReader(data) as archive:
        _check_mimetype(archive, result)
        _check_package_path(archive, result)
        _check_well_formed(archive, result)

    if not result.issues:
        _check_ebooklib(data, result)
    return result
