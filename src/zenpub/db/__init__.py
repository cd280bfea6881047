# ABOUTME: Public API for the ZenPub local cache database layer.
# ABOUTME: Exports connection management, cache operations, and record types.

from zenpub.db.cache import DEFAULT_HISTORY_LIMIT, ProjectCache
from zenpub.db.connection import DEFAULT_CACHE_PATH, CacheError, open_cache
from zenpub.db.mapping import HistoryEntry, PreviewConfig, UserState

__all__ = [
    "DEFAULT_CACHE_PATH",
    "DEFAULT_HISTORY_LIMIT",
    "CacheError",
    "HistoryEntry",
    "PreviewConfig",
    "ProjectCache",
    "UserState",
    "open_cache",
]
