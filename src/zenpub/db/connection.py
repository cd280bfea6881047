# ABOUTME: SQLite connection management for the ZenPub local cache.
# ABOUTME: Opens or creates the cache database and applies the schema on first use.

import sqlite3
from pathlib import Path

from zenpub.db.schema import SCHEMA_V1

DEFAULT_CACHE_PATH = Path.home() / ".zenpub" / "cache.db"


class CacheError(Exception):
    """Raised when the cache database cannot be opened, read, or written."""


def _schema_exists(conn: sqlite3.Connection) -> bool:
    """Check if the schema has already been applied."""
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name='schema_version'"
    )
    return cursor.fetchone() is not None


def get_schema_version(conn: sqlite3.Connection) -> int:
    """Read the current schema version from the database."""
    cursor = conn.execute("SELECT version FROM schema_version ORDER BY version DESC LIMIT 1")
    row = cursor.fetchone()
    return row[0] if row else 0


def open_cache(path: Path | None = None) -> sqlite3.Connection:
    """Open or create the ZenPub cache database.

    Creates the database file and parent directories if they don't exist.
    Applies the schema on first creation. Sets WAL journal mode and
    sqlite3.Row factory for dict-like column access.

    Args:
        path: Path to the database file. Defaults to ~/.zenpub/cache.db.

    Returns:
        A configured sqlite3.Connection.

    Raises:
        CacheError: If the directory cannot be created or the file is not
            a usable SQLite database.
    """
    db_path = path or DEFAULT_CACHE_PATH
    try:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(db_path))
    except (OSError, sqlite3.Error) as exc:
        raise CacheError(f"Cannot open cache database {db_path}: {exc}") from exc

    try:
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        if not _schema_exists(conn):
            conn.executescript(SCHEMA_V1)
    except sqlite3.Error as exc:
        conn.close()
        raise CacheError(f"Cannot open cache database {db_path}: {exc}") from exc

    return conn
