# ABOUTME: Download filename helpers for exported artifacts.
# ABOUTME: Sanitizes book and chapter titles into filesystem-safe names.

import re

# Anything that is not ASCII alphanumeric or a common CJK ideograph.
_UNSAFE_RE = re.compile(r"[^A-Za-z0-9\u4e00-\u9fa5]")


def sanitize_title(title: str) -> str:
    """Replace every character outside [A-Za-z0-9] and CJK ideographs with '_'."""
    return _UNSAFE_RE.sub("_", title)


def epub_filename(title: str) -> str:
    return f"{sanitize_title(title)}.epub"


def markdown_bundle_filename(title: str) -> str:
    return f"{sanitize_title(title)}_markdown.zip"


def pdf_filename(title: str) -> str:
    return f"{sanitize_title(title)}.pdf"


def chapter_markdown_filename(position: int, title: str) -> str:
    """Per-chapter Markdown filename, e.g. ``chapter_01_Intro.md`` for position 0."""
    return f"chapter_{position + 1:02d}_{sanitize_title(title)}.md"
