# ABOUTME: Project model and JSON project files: metadata, ordered chapters, last-modified time.
# ABOUTME: The same dict layout is used by the local cache and by `zenpub export`/`import`.

import json
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from zenpub.metadata.mapping import (
    chapter_from_dict,
    chapter_to_dict,
    metadata_from_dict,
    metadata_to_dict,
)
from zenpub.metadata.types import BookMetadata, Chapter, new_chapter_id


class ProjectFileError(Exception):
    """Raised when a project file cannot be read, parsed, or written."""


@dataclass
class ProjectData:
    """A manuscript in progress: metadata plus chapters in reading order."""

    metadata: BookMetadata
    chapters: list[Chapter] = field(default_factory=list)
    last_modified: float = field(default_factory=time.time)


def new_chapter(title: str, content: str = "", *, order: int = 0) -> Chapter:
    """Create a chapter with a fresh identifier."""
    return Chapter(id=new_chapter_id(), title=title, content=content, order=order)


def project_to_dict(project: ProjectData) -> dict[str, Any]:
    return {
        "metadata": metadata_to_dict(project.metadata),
        "chapters": [chapter_to_dict(chapter) for chapter in project.chapters],
        "lastModified": project.last_modified,
    }


def project_from_dict(data: dict[str, Any]) -> ProjectData:
    """Build a ProjectData from its dict form.

    Chapters keep the list order they were stored in.

    Raises:
        ProjectFileError: If required keys are missing or malformed.
    """
    try:
        metadata = metadata_from_dict(data["metadata"])
        chapters = [chapter_from_dict(item) for item in data.get("chapters") or []]
        last_modified = float(data.get("lastModified") or time.time())
    except (KeyError, TypeError, ValueError) as exc:
        raise ProjectFileError(f"Invalid project data: {exc!r}") from exc
    return ProjectData(metadata=metadata, chapters=chapters, last_modified=last_modified)


def load_project(path: Path) -> ProjectData:
    """Read a project JSON file.

    Raises:
        ProjectFileError: If the file is missing, not JSON, or not a project.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ProjectFileError(f"Cannot read project file: {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ProjectFileError(f"Project file is not valid JSON: {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ProjectFileError(f"Project file does not contain an object: {path}")
    return project_from_dict(data)


def save_project(path: Path, project: ProjectData) -> None:
    """Write a project JSON file, creating parent directories as needed."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(project_to_dict(project), ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
    except OSError as exc:
        raise ProjectFileError(f"Cannot write project file: {path}: {exc}") from exc
