# ABOUTME: AI writing-assistant package for ZenPub.
# ABOUTME: Exports the suggestion client, task kinds, and the HTTP layer it runs on.

from zenpub.assist.client import (
    ResearchResult,
    ResearchSource,
    SuggestionClient,
    TaskKind,
)
from zenpub.assist.http import HttpClient, SuggestionError, ZenpubHttpClient

__all__ = [
    "HttpClient",
    "ResearchResult",
    "ResearchSource",
    "SuggestionClient",
    "SuggestionError",
    "TaskKind",
    "ZenpubHttpClient",
]
