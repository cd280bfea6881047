# ABOUTME: Metadata package for the ZenPub book model.
# ABOUTME: Exports the BookMetadata, Chapter, and CoverImage dataclasses used throughout ZenPub.

from zenpub.metadata.types import (
    DEFAULT_LANGUAGE,
    DEFAULT_PUBLISHER,
    BookMetadata,
    Chapter,
    CoverImage,
    new_chapter_id,
)

__all__ = [
    "DEFAULT_LANGUAGE",
    "DEFAULT_PUBLISHER",
    "BookMetadata",
    "Chapter",
    "CoverImage",
    "new_chapter_id",
]
