# ABOUTME: Core data structures for the book model: metadata, cover image, and chapters.
# ABOUTME: BookMetadata and Chapter are the interchange format between editor, cache, and codecs.

import uuid
from dataclasses import dataclass, field

DEFAULT_LANGUAGE = "zh-CN"
DEFAULT_PUBLISHER = "ZenPub"


@dataclass
class CoverImage:
    """Raw cover image bytes paired with their MIME type."""

    data: bytes
    mime_type: str

    @property
    def extension(self) -> str:
        """File extension derived from the MIME subtype, falling back to jpg."""
        _, _, subtype = self.mime_type.partition("/")
        return subtype or "jpg"


@dataclass
class BookMetadata:
    """Book-level metadata for a manuscript.

    Title and author are required; the codecs do not validate them and
    expect the caller to supply something sensible. Publisher falls back to
    the product name on export when it is absent.
    """

    title: str
    author: str
    publisher: str | None = None
    description: str | None = None
    language: str = DEFAULT_LANGUAGE
    cover: CoverImage | None = None
    isbn: str | None = None
    tags: list[str] = field(default_factory=list)

    @property
    def has_cover(self) -> bool:
        """Whether cover image data is present."""
        return self.cover is not None and len(self.cover.data) > 0


def new_chapter_id() -> str:
    """Generate a fresh opaque chapter identifier."""
    return str(uuid.uuid4())


@dataclass
class Chapter:
    """A single chapter of a manuscript.

    Content is Markdown. The memo is an editorial scratchpad and is never
    written into any exported format. Emission order follows list position;
    ``order`` is informational.
    """

    id: str
    title: str
    content: str = ""
    memo: str | None = None
    order: int = 0
