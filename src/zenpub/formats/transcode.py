# ABOUTME: Markdown <-> HTML transcoding used by the EPUB, PDF, and Markdown exporters.
# ABOUTME: Also owns the chapter title-dedup policy at both the HTML and Markdown level.

import re

import markdown
from markdownify import ATX, markdownify

from zenpub.formats.xhtml import escape_xml, starts_with_title_heading

_MARKDOWN_EXTENSIONS = ["extra", "sane_lists"]
_EXCESS_BLANK_LINES_RE = re.compile(r"\n{3,}")


def markdown_to_html(text: str) -> str:
    """Render Markdown to an HTML fragment.

    A fresh converter is built per call; Python-Markdown instances carry
    per-document state (footnotes, reference links) between conversions.
    """
    converter = markdown.Markdown(extensions=_MARKDOWN_EXTENSIONS, output_format="xhtml")
    return converter.convert(text or "")


def html_to_markdown(html: str) -> str:
    """Convert an HTML fragment back to Markdown with ATX headings and dash bullets."""
    text = markdownify(html or "", heading_style=ATX, bullets="-")
    return _EXCESS_BLANK_LINES_RE.sub("\n\n", text).strip()


def with_title_heading(title: str, html: str) -> str:
    """Prepend an <h1> for the title unless the fragment already opens with it."""
    if starts_with_title_heading(html, title):
        return html
    return f"<h1>{escape_xml(title)}</h1>\n{html}"


def has_markdown_title(title: str, content: str) -> bool:
    """Whether the content opens with a level-1 heading that begins with the title.

    Leading whitespace is ignored and the comparison is case-insensitive,
    so "# Intro to things" counts as already carrying the title "Intro".
    """
    pattern = re.compile(rf"#[ \t]*{re.escape(title.strip())}", re.IGNORECASE)
    return pattern.match(content.strip()) is not None


def ensure_markdown_title(title: str, content: str) -> str:
    """Return chapter Markdown that starts with exactly one ``# title`` heading."""
    if has_markdown_title(title, content):
        return content
    return f"# {title}\n\n{content}"
