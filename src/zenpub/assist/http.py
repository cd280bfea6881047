# ABOUTME: HTTP client abstraction for AI writing-assistant API calls.
# ABOUTME: Provides rate limiting, retry with backoff, and injectable transport for testing.

import logging
import time
from typing import Any, Protocol, runtime_checkable

import httpx

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
_AUTH_STATUS_CODES = {401, 403}


class SuggestionError(Exception):
    """Raised when a writing-assistant request fails."""


@runtime_checkable
class HttpClient(Protocol):
    """Protocol for JSON POST operations against the assistant API."""

    def post_json(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]: ...


class ZenpubHttpClient:
    """HTTP client with rate limiting and retry for assistant API calls.

    Wraps httpx.Client with configurable request intervals and retry logic
    for transient failures (429, 5xx).
    """

    def __init__(
        self,
        *,
        min_request_interval: float = 0.5,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        timeout: float = 60.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        client_kwargs: dict[str, Any] = {
            "headers": {"User-Agent": "zenpub/0.1.0"},
            "timeout": timeout,
        }
        if transport is not None:
            client_kwargs["transport"] = transport
        self._client = httpx.Client(**client_kwargs)
        self._min_interval = min_request_interval
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._last_request_time: float = 0.0

    def close(self) -> None:
        self._client.close()

    def post_json(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Send a JSON POST request with rate limiting and retry.

        Args:
            url: The URL to request.
            payload: JSON body.
            headers: Extra request headers (e.g. the API key).

        Returns:
            Parsed JSON response body.

        Raises:
            SuggestionError: On authentication failures, other non-retryable
                HTTP errors, transport errors, or exhausted retries.
        """
        self._rate_limit()

        attempts = 1 + self._max_retries
        last_status = 0
        for attempt in range(attempts):
            try:
                response = self._client.post(url, json=payload, headers=headers)
                last_status = response.status_code
            except httpx.HTTPError as exc:
                raise SuggestionError(f"Request failed: {url}: {exc}") from exc

            if response.status_code == 200:
                try:
                    return response.json()
                except ValueError as exc:
                    raise SuggestionError(f"Invalid JSON from {url}") from exc

            if response.status_code in _AUTH_STATUS_CODES:
                raise SuggestionError(
                    f"Authentication failed (HTTP {response.status_code}); check the API key"
                )

            if response.status_code not in _RETRYABLE_STATUS_CODES:
                raise SuggestionError(f"HTTP {response.status_code} from {url}")

            if attempt < attempts - 1:
                delay = self._retry_delay * (2**attempt)
                logger.warning(
                    "HTTP %d from %s, retrying in %.1fs (attempt %d/%d)",
                    response.status_code,
                    url,
                    delay,
                    attempt + 1,
                    self._max_retries,
                )
                time.sleep(delay)

        raise SuggestionError(f"HTTP {last_status} from {url} after {attempts} attempts")

    def _rate_limit(self) -> None:
        """Sleep if needed to maintain minimum interval between requests."""
        if self._min_interval <= 0:
            return
        now = time.monotonic()
        elapsed = now - self._last_request_time
        if elapsed < self._min_interval and self._last_request_time > 0:
            time.sleep(self._min_interval - elapsed)
        self._last_request_time = time.monotonic()
