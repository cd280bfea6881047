# ABOUTME: XML/XHTML text building helpers for EPUB packages.
# ABOUTME: Escaping, void-tag and entity normalization, chapter document shell, first-block inspection.

import re
from dataclasses import dataclass
from html.entities import name2codepoint

import lxml.html
from lxml import etree

_XML_ESCAPES = {
    "<": "&lt;",
    ">": "&gt;",
    "&": "&amp;",
    "'": "&apos;",
    '"': "&quot;",
}
_XML_ESCAPE_RE = re.compile(r"[<>&'\"]")

# Void elements that HTML allows unclosed but an XML parser rejects.
_VOID_TAG_RE = re.compile(r"<(hr|br|img)(\b[^>]*?)\s*/?>", re.IGNORECASE)
_NAMED_ENTITY_RE = re.compile(r"&([A-Za-z][A-Za-z0-9]*);")
_XML_ENTITIES = frozenset({"amp", "lt", "gt", "quot", "apos"})

_HEADING_TAGS = ("h1", "h2")

# Code points outside the XML 1.0 Char production.
_INVALID_XML_CHARS_RE = re.compile(
    r"[^\x09\x0a\x0d\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]"
)


def strip_invalid_xml_chars(value: str) -> str:
    """Drop control characters and other code points XML 1.0 forbids."""
    return _INVALID_XML_CHARS_RE.sub("", value)


def escape_xml(value: str | None) -> str:
    """Escape a value for use in XML text or attribute content.

    All five special characters are replaced in a single pass, so an
    ampersand introduced by one replacement is never escaped again.
    None and empty values escape to the empty string.
    """
    if not value:
        return ""
    value = strip_invalid_xml_chars(value)
    return _XML_ESCAPE_RE.sub(lambda m: _XML_ESCAPES[m.group(0)], value)


def _close_void_tag(match: re.Match[str]) -> str:
    return f"<{match.group(1).lower()}{match.group(2)}/>"


def _numeric_entity(match: re.Match[str]) -> str:
    name = match.group(1)
    if name in _XML_ENTITIES:
        return match.group(0)
    codepoint = name2codepoint.get(name)
    if codepoint is None:
        return f"&amp;{name};"
    return f"&#{codepoint};"


def make_xhtml_compatible(html: str) -> str:
    """Normalize an HTML fragment so a strict XML parser accepts it.

    ``<hr>``, ``<br>`` and ``<img ...>`` become self-closing, and HTML named
    entities outside the predefined XML set are rewritten as numeric
    character references.
    """
    html = _VOID_TAG_RE.sub(_close_void_tag, html)
    return _NAMED_ENTITY_RE.sub(_numeric_entity, html)


def well_formed_fragment(html: str) -> str:
    """Re-serialize an HTML fragment as well-formed XML.

    Raw HTML inside Markdown can leave tags unclosed or attributes
    unquoted. The fragment is parsed leniently with lxml.html and written
    back with the XML serializer; forbidden control characters are dropped.
    """
    html = strip_invalid_xml_chars(html or "")
    if not html.strip():
        return ""
    container = lxml.html.fragment_fromstring(html, create_parent="div")
    parts = [escape_xml(container.text)]
    parts.extend(
        etree.tostring(child, method="xml", encoding="unicode", with_tail=True)
        for child in container
    )
    return "".join(parts)


@dataclass(frozen=True)
class FirstBlock:
    """Tag name and trimmed text of the first element in an HTML fragment."""

    tag: str
    text: str

    @property
    def is_heading(self) -> bool:
        return self.tag in _HEADING_TAGS


def first_block_element(html: str) -> FirstBlock | None:
    """Return the first top-level element of an HTML fragment, or None.

    Leading text, whitespace, and comments are skipped. The fragment is
    parsed into a throwaway tree; nothing is retained between calls.
    """
    if not html or not html.strip():
        return None
    container = lxml.html.fragment_fromstring(html, create_parent="div")
    for child in container:
        if not isinstance(child.tag, str):
            continue
        return FirstBlock(tag=child.tag.lower(), text=child.text_content().strip())
    return None


def starts_with_title_heading(html: str, title: str) -> bool:
    """Whether the fragment opens with an h1/h2 whose text equals the title."""
    block = first_block_element(html)
    return block is not None and block.is_heading and block.text == title.strip()


def xhtml_document(
    title: str,
    body: str,
    *,
    language: str,
    stylesheet: str = "style.css",
) -> str:
    """Wrap an XHTML body fragment in an XHTML 1.1 document shell."""
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE html PUBLIC "-//W3C//DTD XHTML 1.1//EN" "http://www.w3.org/TR/xhtml11/DTD/xhtml11.dtd">
<html xmlns="http://www.w3.org/1999/xhtml" xml:lang="{escape_xml(language)}">
<head>
    <title>{escape_xml(title)}</title>
    <link rel="stylesheet" type="text/css" href="{escape_xml(stylesheet)}" />
</head>
<body>
{body}
</body>
</html>
"""
