# ABOUTME: Converts cache records between dataclasses and SQLite rows.
# ABOUTME: User state and project data are stored as JSON documents; history rows map to HistoryEntry.

import json
from dataclasses import asdict, dataclass, field
from typing import Any

from zenpub.core.project import ProjectData, project_from_dict, project_to_dict


@dataclass
class PreviewConfig:
    """Preview pane settings."""

    view_mode: str = "desktop"
    font_size: int = 16
    line_height: float = 1.8
    indent: int = 2


@dataclass
class UserState:
    """Where the user left off: open chapter, scroll positions, layout, theme."""

    last_open_time: float
    active_chapter_id: str = ""
    editor_scroll: int = 0
    preview_scroll: int = 0
    view_mode: str = "split"
    sidebar_open: bool = True
    memo_open: bool = False
    theme: str = "light"
    sidebar_width: int = 260
    editor_width_percent: float = 50.0
    preview_config: PreviewConfig = field(default_factory=PreviewConfig)


@dataclass
class HistoryEntry:
    """One file-history record."""

    id: int
    file_path: str
    timestamp: float


def user_state_to_json(state: UserState) -> str:
    return json.dumps(asdict(state), ensure_ascii=False)


def user_state_from_json(text: str) -> UserState:
    """Deserialize a user state document, ignoring unknown keys."""
    data = json.loads(text)
    preview = data.pop("preview_config", None) or {}
    known = UserState.__dataclass_fields__
    state = UserState(**{k: v for k, v in data.items() if k in known})
    state.preview_config = PreviewConfig(
        **{k: v for k, v in preview.items() if k in PreviewConfig.__dataclass_fields__}
    )
    return state


def project_to_json(project: ProjectData) -> str:
    return json.dumps(project_to_dict(project), ensure_ascii=False)


def project_from_json(text: str) -> ProjectData:
    return project_from_dict(json.loads(text))


def row_to_history_entry(row: Any) -> HistoryEntry:
    return HistoryEntry(id=row["id"], file_path=row["file_path"], timestamp=row["timestamp"])
