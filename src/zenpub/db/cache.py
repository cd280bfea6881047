# ABOUTME: Local cache operations: current user state, current project, and file history.
# ABOUTME: Lets the editor resume where the user left off; backed by the SQLite cache database.

import json
import sqlite3

from zenpub.core.project import ProjectData, ProjectFileError
from zenpub.db.connection import CacheError
from zenpub.db.mapping import (
    HistoryEntry,
    UserState,
    project_from_json,
    project_to_json,
    row_to_history_entry,
    user_state_from_json,
    user_state_to_json,
)
from zenpub.db.schema import CURRENT_KEY

DEFAULT_HISTORY_LIMIT = 10

_STORES = ("user_state", "project_data", "file_history")


class ProjectCache:
    """Wraps a sqlite3 connection and provides typed access to the cache stores."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    # --- User state ---

    def save_user_state(self, state: UserState) -> None:
        """Replace the current user state record."""
        try:
            self._conn.execute(
                "INSERT OR REPLACE INTO user_state (id, data, last_open_time) VALUES (?, ?, ?)",
                (CURRENT_KEY, user_state_to_json(state), state.last_open_time),
            )
            self._conn.commit()
        except sqlite3.Error as exc:
            raise CacheError(f"Failed to save user state: {exc}") from exc

    def get_user_state(self) -> UserState | None:
        """Return the current user state, or None if nothing was saved yet."""
        row = self._fetch_current("user_state")
        if row is None:
            return None
        try:
            return user_state_from_json(row["data"])
        except (json.JSONDecodeError, TypeError) as exc:
            raise CacheError(f"Corrupt user state record: {exc}") from exc

    # --- Project data ---

    def save_project(self, project: ProjectData) -> None:
        """Replace the current project record."""
        try:
            self._conn.execute(
                "INSERT OR REPLACE INTO project_data (id, data, last_modified) VALUES (?, ?, ?)",
                (CURRENT_KEY, project_to_json(project), project.last_modified),
            )
            self._conn.commit()
        except sqlite3.Error as exc:
            raise CacheError(f"Failed to save project data: {exc}") from exc

    def get_project(self) -> ProjectData | None:
        """Return the current project, or None if nothing was saved yet."""
        row = self._fetch_current("project_data")
        if row is None:
            return None
        try:
            return project_from_json(row["data"])
        except (json.JSONDecodeError, ProjectFileError) as exc:
            raise CacheError(f"Corrupt project record: {exc}") from exc

    # --- File history ---

    def add_file_to_history(self, file_path: str, timestamp: float) -> None:
        """Append a file-history record."""
        try:
            self._conn.execute(
                "INSERT INTO file_history (file_path, timestamp) VALUES (?, ?)",
                (file_path, timestamp),
            )
            self._conn.commit()
        except sqlite3.Error as exc:
            raise CacheError(f"Failed to add file to history: {exc}") from exc

    def get_file_history(self) -> list[HistoryEntry]:
        """All history records, newest first."""
        try:
            cursor = self._conn.execute(
                "SELECT id, file_path, timestamp FROM file_history ORDER BY timestamp DESC, id DESC"
            )
            rows = cursor.fetchall()
        except sqlite3.Error as exc:
            raise CacheError(f"Failed to read file history: {exc}") from exc
        return [row_to_history_entry(row) for row in rows]

    def cleanup_old_history(self, keep: int = DEFAULT_HISTORY_LIMIT) -> int:
        """Delete all but the newest ``keep`` history records.

        Returns:
            The number of records deleted.
        """
        stale = [entry.id for entry in self.get_file_history()[keep:]]
        if not stale:
            return 0
        try:
            self._conn.executemany("DELETE FROM file_history WHERE id = ?", [(i,) for i in stale])
            self._conn.commit()
        except sqlite3.Error as exc:
            raise CacheError(f"Failed to clean up file history: {exc}") from exc
        return len(stale)

    # --- Maintenance ---

    def clear(self) -> None:
        """Empty every cache store."""
        try:
            for store in _STORES:
                self._conn.execute(f"DELETE FROM {store}")
            self._conn.commit()
        except sqlite3.Error as exc:
            self._conn.rollback()
            raise CacheError(f"Failed to clear cache: {exc}") from exc

    def _fetch_current(self, store: str) -> sqlite3.Row | None:
        try:
            cursor = self._conn.execute(
                f"SELECT data FROM {store} WHERE id = ?", (CURRENT_KEY,)
            )
            return cursor.fetchone()
        except sqlite3.Error as exc:
            raise CacheError(f"Failed to read {store}: {exc}") from exc
