# ABOUTME: Writing-assistant client for the Gemini generateContent REST API.
# ABOUTME: Grammar fixes, expansion, summaries, continuations, and grounded research queries.

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from zenpub.assist.http import HttpClient, SuggestionError, ZenpubHttpClient

logger = logging.getLogger(__name__)

API_BASE = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-2.5-flash"
API_KEY_ENV = "GEMINI_API_KEY"
MAX_OUTPUT_TOKENS = 1000

_BASE_INSTRUCTION = (
    "You are a professional book editor and writing assistant. "
    "Reply in the same language as the text you are given."
)
NO_SUGGESTION = "No suggestion could be generated."
NO_RESULTS = "No results found."


class TaskKind(str, Enum):
    """Kinds of writing help the assistant offers."""

    GRAMMAR = "grammar"
    EXPAND = "expand"
    SUMMARIZE = "summarize"
    CONTINUE = "continue"


# (extra system instruction, prompt prefix) per task
_TASKS: dict[TaskKind, tuple[str, str]] = {
    TaskKind.GRAMMAR: (
        "Fix grammar, spelling, and punctuation in the provided text. "
        "Return only the corrected text, without explanations.",
        "Fix the grammar of this text:",
    ),
    TaskKind.EXPAND: (
        "Expand the provided text with descriptive detail and depth "
        "while keeping the author's voice.",
        "Expand this passage:",
    ),
    TaskKind.SUMMARIZE: (
        "Briefly summarize the core content of the provided text.",
        "Summarize this content:",
    ),
    TaskKind.CONTINUE: (
        "Continue the story from the provided text, in roughly 100 to 200 words.",
        "Continue this story:",
    ),
}


@dataclass
class ResearchSource:
    title: str
    uri: str


@dataclass
class ResearchResult:
    """Research answer text plus the web sources it was grounded on."""

    text: str
    sources: list[ResearchSource] = field(default_factory=list)


def build_suggestion_request(task: TaskKind, context: str) -> dict[str, Any]:
    """Build the generateContent request body for a writing task."""
    instruction, prefix = _TASKS[task]
    return {
        "systemInstruction": {"parts": [{"text": f"{_BASE_INSTRUCTION} {instruction}"}]},
        "contents": [{"role": "user", "parts": [{"text": f"{prefix}\n{context}"}]}],
        "generationConfig": {"maxOutputTokens": MAX_OUTPUT_TOKENS},
    }


def _first_candidate(response: dict[str, Any]) -> dict[str, Any]:
    candidates = response.get("candidates") or []
    return candidates[0] if candidates else {}


def response_text(response: dict[str, Any]) -> str:
    """Concatenate the text parts of the first candidate."""
    parts = (_first_candidate(response).get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts).strip()


def grounding_sources(response: dict[str, Any]) -> list[ResearchSource]:
    """Web sources from the first candidate's grounding metadata."""
    metadata = _first_candidate(response).get("groundingMetadata") or {}
    sources = []
    for chunk in metadata.get("groundingChunks") or []:
        web = chunk.get("web") or {}
        if web.get("uri") and web.get("title"):
            sources.append(ResearchSource(title=web["title"], uri=web["uri"]))
    return sources


class SuggestionClient:
    """Client for AI writing suggestions.

    Uses dependency-injected HttpClient for testability. The API key is
    sent as a header, never in the URL.
    """

    def __init__(
        self,
        api_key: str | None,
        *,
        http_client: HttpClient | None = None,
        model: str = DEFAULT_MODEL,
    ) -> None:
        self._api_key = api_key
        self._http = http_client or ZenpubHttpClient()
        self._model = model

    @property
    def endpoint(self) -> str:
        return f"{API_BASE}/models/{self._model}:generateContent"

    def _generate(self, payload: dict[str, Any]) -> dict[str, Any]:
        if not self._api_key:
            raise SuggestionError(
                f"No API key configured; set {API_KEY_ENV} or pass --api-key"
            )
        return self._http.post_json(
            self.endpoint, payload, headers={"x-goog-api-key": self._api_key}
        )

    def suggest(self, task: TaskKind, context: str) -> str:
        """Ask the assistant for a suggestion on ``context``.

        Raises:
            SuggestionError: If no API key is configured or the request fails.
        """
        response = self._generate(build_suggestion_request(TaskKind(task), context))
        text = response_text(response)
        if not text:
            logger.warning("Empty %s suggestion from %s", TaskKind(task).value, self._model)
            return NO_SUGGESTION
        return text

    def research(self, query: str) -> ResearchResult:
        """Run a web-grounded research query and return a concise summary.

        Raises:
            SuggestionError: If no API key is configured or the request fails.
        """
        payload = {
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {"text": f"Search for this information and provide a concise summary: {query}"}
                    ],
                }
            ],
            "tools": [{"google_search": {}}],
        }
        response = self._generate(payload)
        return ResearchResult(
            text=response_text(response) or NO_RESULTS,
            sources=grounding_sources(response),
        )
