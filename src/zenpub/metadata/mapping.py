# ABOUTME: Converts between the book model dataclasses and JSON-ready dictionaries.
# ABOUTME: Keeps the camelCase key layout used by project files, metadata.json, and the cache.

import base64
import binascii
import logging
from typing import Any

from zenpub.metadata.types import DEFAULT_LANGUAGE, BookMetadata, Chapter, CoverImage

logger = logging.getLogger(__name__)


def cover_to_data_url(cover: CoverImage) -> str:
    """Encode a cover as a ``data:<mime>;base64,<payload>`` URL."""
    payload = base64.b64encode(cover.data).decode("ascii")
    return f"data:{cover.mime_type};base64,{payload}"


def cover_from_fields(cover_data: str | None, mime_type: str | None) -> CoverImage | None:
    """Decode a data-URL cover paired with its MIME type.

    A cover needs both halves. When only one is present, or the data URL
    has no decodable payload, the cover is ignored with a warning.
    """
    if not cover_data and not mime_type:
        return None
    if not cover_data or not mime_type:
        logger.warning("Ignoring cover: data and MIME type must both be present")
        return None

    parts = cover_data.split(",")
    if len(parts) != 2:
        logger.warning("Ignoring cover: not a base64 data URL")
        return None
    try:
        data = base64.b64decode(parts[1], validate=True)
    except (binascii.Error, ValueError):
        logger.warning("Ignoring cover: payload is not valid base64")
        return None
    return CoverImage(data=data, mime_type=mime_type)


def metadata_to_dict(metadata: BookMetadata) -> dict[str, Any]:
    """Convert BookMetadata to a dict; absent optional fields are omitted."""
    result: dict[str, Any] = {
        "title": metadata.title,
        "author": metadata.author,
        "language": metadata.language,
    }
    if metadata.publisher is not None:
        result["publisher"] = metadata.publisher
    if metadata.description is not None:
        result["description"] = metadata.description
    if metadata.cover is not None:
        result["coverData"] = cover_to_data_url(metadata.cover)
        result["coverMimeType"] = metadata.cover.mime_type
    if metadata.isbn is not None:
        result["isbn"] = metadata.isbn
    if metadata.tags:
        result["tags"] = list(metadata.tags)
    return result


def metadata_from_dict(data: dict[str, Any]) -> BookMetadata:
    """Build BookMetadata from a dict.

    Raises:
        KeyError: If title or author is missing.
    """
    return BookMetadata(
        title=data["title"],
        author=data["author"],
        publisher=data.get("publisher"),
        description=data.get("description"),
        language=data.get("language") or DEFAULT_LANGUAGE,
        cover=cover_from_fields(data.get("coverData"), data.get("coverMimeType")),
        isbn=data.get("isbn"),
        tags=[str(tag) for tag in data.get("tags") or []],
    )


def chapter_to_dict(chapter: Chapter) -> dict[str, Any]:
    result: dict[str, Any] = {
        "id": chapter.id,
        "title": chapter.title,
        "content": chapter.content,
        "order": chapter.order,
    }
    if chapter.memo is not None:
        result["memo"] = chapter.memo
    return result


def chapter_from_dict(data: dict[str, Any]) -> Chapter:
    """Build a Chapter from a dict.

    Raises:
        KeyError: If id or title is missing.
    """
    return Chapter(
        id=data["id"],
        title=data["title"],
        content=data.get("content") or "",
        memo=data.get("memo"),
        order=int(data.get("order", 0)),
    )
