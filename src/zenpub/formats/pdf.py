# ABOUTME: PDF export: title page plus one page-broken section per chapter, rendered with reportlab.
# ABOUTME: Chapter Markdown goes through the shared HTML transcoder and is mapped onto platypus flowables.

import html
import io
from typing import Any

import lxml.html
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import mm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.cidfonts import UnicodeCIDFont
from reportlab.platypus import (
    Flowable,
    ListFlowable,
    ListItem,
    PageBreak,
    Paragraph,
    Preformatted,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)
from reportlab.platypus.flowables import HRFlowable

from zenpub.formats.errors import ExportError
from zenpub.formats.transcode import markdown_to_html
from zenpub.formats.xhtml import starts_with_title_heading
from zenpub.metadata.types import BookMetadata, Chapter

PAGE_SIZE = A4
MARGIN = 15 * mm
_LATIN_FONT = "Times-Roman"
_CODE_FONT = "Courier"

# Adobe CID fonts bundled with reportlab; no font files needed.
_CJK_FONTS = {
    "zh": "STSong-Light",
    "ja": "HeiseiMin-W3",
    "ko": "HYSMyeongJo-Medium",
}

_INLINE_TAGS = {
    "strong": "b",
    "b": "b",
    "em": "i",
    "i": "i",
    "u": "u",
    "del": "strike",
    "s": "strike",
    "sup": "super",
    "sub": "sub",
}
_HEADING_SIZES = {"h1": 20, "h2": 17, "h3": 15, "h4": 13, "h5": 12, "h6": 11}
_BLOCK_TAGS = frozenset(
    {"p", "pre", "ul", "ol", "blockquote", "hr", "table", "div", "dl", *_HEADING_SIZES}
)


def font_for_language(language: str | None) -> str:
    """Pick a font able to render the language, registering CID fonts on demand."""
    prefix = (language or "").split("-")[0].lower()
    font = _CJK_FONTS.get(prefix)
    if font is None:
        return _LATIN_FONT
    if font not in pdfmetrics.getRegisteredFontNames():
        pdfmetrics.registerFont(UnicodeCIDFont(font))
        # CID fonts have no bold/italic faces; map the family onto itself.
        pdfmetrics.registerFontFamily(font, normal=font, bold=font, italic=font, boldItalic=font)
    return font


def build_styles(font_name: str) -> dict[str, ParagraphStyle]:
    """Paragraph styles keyed by role (``body``, ``title``, ``h1``...)."""
    word_wrap = "CJK" if font_name in _CJK_FONTS.values() else None
    body = ParagraphStyle(
        "body", fontName=font_name, fontSize=11, leading=17, spaceAfter=8, wordWrap=word_wrap
    )
    styles = {
        "body": body,
        "title": ParagraphStyle(
            "title", parent=body, fontSize=28, leading=34, alignment=TA_CENTER, spaceAfter=20
        ),
        "author": ParagraphStyle(
            "author", parent=body, fontSize=18, leading=24, alignment=TA_CENTER,
            textColor=colors.HexColor("#666666"),
        ),
        "publisher": ParagraphStyle(
            "publisher", parent=body, alignment=TA_CENTER, spaceBefore=40
        ),
        "quote": ParagraphStyle(
            "quote", parent=body, leftIndent=12 * mm, textColor=colors.HexColor("#555555")
        ),
        "code": ParagraphStyle(
            "code", parent=body, fontName=_CODE_FONT, fontSize=9, leading=12,
            backColor=colors.HexColor("#f5f5f7"), wordWrap=None,
        ),
    }
    for tag, size in _HEADING_SIZES.items():
        styles[tag] = ParagraphStyle(
            tag, parent=body, fontSize=size, leading=size * 1.4, spaceBefore=size * 0.6,
            spaceAfter=size * 0.5,
        )
    return styles


def _escape(text: str | None) -> str:
    return html.escape(text or "", quote=False)


def _tag(element: Any) -> str | None:
    return element.tag.lower() if isinstance(element.tag, str) else None


def inline_markup(element: Any) -> str:
    """Render an element's content as reportlab paragraph markup."""
    parts = [_escape(element.text)]
    for child in element:
        parts.append(_inline_child(child))
        parts.append(_escape(child.tail))
    return "".join(parts)


def _inline_child(child: Any) -> str:
    tag = _tag(child)
    if tag is None:
        return ""
    if tag == "br":
        return "<br/>"
    if tag == "img":
        alt = child.get("alt")
        return _escape(f"[{alt}]") if alt else ""
    inner = inline_markup(child)
    if tag in _INLINE_TAGS:
        name = _INLINE_TAGS[tag]
        return f"<{name}>{inner}</{name}>"
    if tag == "code":
        return f'<font face="{_CODE_FONT}">{inner}</font>'
    if tag == "a" and child.get("href"):
        return f'<a href="{html.escape(child.get("href"))}" color="blue">{inner}</a>'
    return inner


def _list_flowable(element: Any, styles: dict[str, ParagraphStyle], body: str) -> Flowable | None:
    items = []
    for li in element:
        if _tag(li) != "li":
            continue
        has_blocks = any(_tag(child) in _BLOCK_TAGS for child in li)
        if has_blocks:
            flowables = html_element_flowables(li, styles, body=body)
        else:
            flowables = [Paragraph(inline_markup(li), styles[body])]
        if flowables:
            items.append(ListItem(flowables))
    if not items:
        return None
    bullet_type = "1" if _tag(element) == "ol" else "bullet"
    return ListFlowable(items, bulletType=bullet_type)


def _table_flowable(element: Any, styles: dict[str, ParagraphStyle]) -> Flowable | None:
    rows = []
    for row in element.iter("tr"):
        cells = [
            Paragraph(inline_markup(cell), styles["body"])
            for cell in row
            if _tag(cell) in ("td", "th")
        ]
        if cells:
            rows.append(cells)
    if not rows:
        return None
    width = max(len(row) for row in rows)
    rows = [row + [""] * (width - len(row)) for row in rows]
    table = Table(rows, repeatRows=1 if element.find(".//th") is not None else 0)
    table.setStyle(
        TableStyle([
            ("GRID", (0, 0), (-1, -1), 0.5, colors.lightgrey),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ])
    )
    return table


def html_element_flowables(
    container: Any, styles: dict[str, ParagraphStyle], *, body: str = "body"
) -> list[Flowable]:
    """Map the block-level children of a parsed HTML element onto flowables."""
    flowables: list[Flowable] = []
    if container.text and container.text.strip():
        flowables.append(Paragraph(_escape(container.text), styles[body]))

    for child in container:
        tag = _tag(child)
        flowable: Flowable | None = None
        if tag is None or tag == "img":
            pass
        elif tag in _HEADING_SIZES:
            flowable = Paragraph(inline_markup(child), styles[tag])
        elif tag == "p":
            flowable = Paragraph(inline_markup(child), styles[body])
        elif tag == "pre":
            flowable = Preformatted(child.text_content().rstrip("\n"), styles["code"])
        elif tag in ("ul", "ol"):
            flowable = _list_flowable(child, styles, body)
        elif tag == "blockquote":
            flowables.extend(html_element_flowables(child, styles, body="quote"))
        elif tag == "hr":
            flowable = HRFlowable(
                width="100%", thickness=0.5, color=colors.lightgrey, spaceBefore=6, spaceAfter=6
            )
        elif tag == "table":
            flowable = _table_flowable(child, styles)
        elif any(_tag(grandchild) in _BLOCK_TAGS for grandchild in child):
            flowables.extend(html_element_flowables(child, styles, body=body))
        else:
            markup = inline_markup(child)
            if markup.strip():
                flowable = Paragraph(markup, styles[body])

        if flowable is not None:
            flowables.append(flowable)
        if child.tail and child.tail.strip():
            flowables.append(Paragraph(_escape(child.tail), styles[body]))
    return flowables


def html_to_flowables(fragment: str, styles: dict[str, ParagraphStyle]) -> list[Flowable]:
    """Parse an HTML fragment and convert it into platypus flowables."""
    if not fragment.strip():
        return []
    container = lxml.html.fragment_fromstring(fragment, create_parent="div")
    return html_element_flowables(container, styles)


def title_page(metadata: BookMetadata, styles: dict[str, ParagraphStyle]) -> list[Flowable]:
    page: list[Flowable] = [
        Spacer(1, 35 * mm),
        Paragraph(_escape(metadata.title), styles["title"]),
        Paragraph(_escape(metadata.author), styles["author"]),
    ]
    if metadata.publisher:
        page.append(Paragraph(_escape(metadata.publisher), styles["publisher"]))
    return page


def chapter_flowables(chapter: Chapter, styles: dict[str, ParagraphStyle]) -> list[Flowable]:
    """Flowables for one chapter, with a title heading unless the content opens with one."""
    fragment = markdown_to_html(chapter.content)
    flowables = html_to_flowables(fragment, styles)
    if not starts_with_title_heading(fragment, chapter.title):
        flowables.insert(0, Paragraph(_escape(chapter.title), styles["h2"]))
    return flowables


def export_pdf(metadata: BookMetadata, chapters: list[Chapter]) -> bytes:
    """Render the book as an A4 PDF.

    The first page is a generated title page; every chapter starts on a new
    page. Each call lays out into its own in-memory buffer, released on both
    success and failure.

    Raises:
        ExportError: If layout or rendering fails.
    """
    buffer = io.BytesIO()
    try:
        styles = build_styles(font_for_language(metadata.language))
        story = title_page(metadata, styles)
        for chapter in chapters:
            story.append(PageBreak())
            story.extend(chapter_flowables(chapter, styles))

        doc = SimpleDocTemplate(
            buffer,
            pagesize=PAGE_SIZE,
            leftMargin=MARGIN,
            rightMargin=MARGIN,
            topMargin=MARGIN,
            bottomMargin=MARGIN,
            title=metadata.title,
            author=metadata.author,
        )
        doc.build(story)
        return buffer.getvalue()
    except Exception as exc:
        raise ExportError(f"Failed to render PDF: {exc}") from exc
    finally:
        buffer.close()
