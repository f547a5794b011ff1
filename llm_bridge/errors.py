"""
Error taxonomy for llm-bridge.

Every failure the adapter surfaces derives from LLMBridgeError so callers
can catch one base class, or special-case a subclass:

- ConfigurationError: missing endpoint/key, raised before any network call
- APIError: non-2xx response (AuthError, RateLimitError, UpstreamServerError)
- TransportError: network-level failure (connect, timeout, broken stream)
- ProtocolError: malformed upstream data that is not fatal on its own
  (UpstreamStreamError: an error the upstream reports inside a 2xx stream,
  which ends that stream)
- ResponseFormatError: a 2xx body without the expected shape
- AbortedError: caller-initiated cancellation
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

ABORTED_MESSAGE = "aborted"


class LLMBridgeError(Exception):
    """Base class for llm-bridge errors."""


class ConfigurationError(LLMBridgeError):
    """Raised when a provider record lacks an endpoint or an API key."""


class TransportError(LLMBridgeError):
    """Raised when the HTTP transport fails before or during a response."""


class ProtocolError(LLMBridgeError):
    """Raised (or logged) when upstream stream data is malformed."""


class UpstreamStreamError(ProtocolError):
    """Raised when the upstream sends an error event in place of stream data."""


class ResponseFormatError(LLMBridgeError):
    """Raised when a successful response lacks the expected shape."""


class AbortedError(LLMBridgeError):
    """Raised when the caller cancels an in-flight request."""

    def __init__(self, message: str = ABORTED_MESSAGE):
        super().__init__(message)


class APIError(LLMBridgeError):
    """Non-2xx response from the upstream API."""

    def __init__(
        self,
        status_code: int,
        reason: str = "",
        detail: str | None = None,
    ):
        self.status_code = status_code
        self.reason = reason
        self.detail = detail
        status_line = f"{status_code} {reason}".strip()
        message = f"{status_line} - {detail}" if detail else status_line
        super().__init__(message)


class AuthError(APIError):
    """401/403: bad key or missing consent."""


class RateLimitError(APIError):
    """429: upstream rate limit."""


class UpstreamServerError(APIError):
    """5xx: upstream server failure."""


def extract_error_detail(body: str) -> str | None:
    """
    Best-effort message from an error body.

    Prefers a string ``error`` field, then ``error.message``, then the raw
    body text. Returns None for an empty body.
    """
    if not body:
        return None
    try:
        parsed: Any = json.loads(body)
    except ValueError:
        return body

    if isinstance(parsed, dict):
        error = parsed.get("error")
        if isinstance(error, str):
            return error
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return body


def classify_status(
    status_code: int, reason: str = "", body: str = ""
) -> APIError:
    """Map an HTTP status (plus body) to the matching APIError subclass."""
    detail = extract_error_detail(body)
    if status_code in (401, 403):
        return AuthError(status_code, reason, detail)
    if status_code == 429:
        return RateLimitError(status_code, reason, detail)
    if status_code >= 500:
        return UpstreamServerError(status_code, reason, detail)
    return APIError(status_code, reason, detail)


async def read_response_error(response: httpx.Response) -> APIError:
    """Read the body of a failed (possibly streaming) response and classify it."""
    try:
        await response.aread()
        body = response.text
    except httpx.HTTPError as e:
        logger.debug("Could not read error body: %s", e)
        body = ""
    return classify_status(response.status_code, response.reason_phrase, body)


def classify_exception(exc: BaseException) -> LLMBridgeError:
    """Translate an arbitrary exception raised by the transport layer."""
    if isinstance(exc, LLMBridgeError):
        return exc
    if isinstance(exc, httpx.HTTPStatusError):
        response = exc.response
        try:
            body = response.text
        except httpx.ResponseNotRead:
            body = ""
        return classify_status(response.status_code, response.reason_phrase, body)
    if isinstance(exc, httpx.TimeoutException):
        return TransportError(f"Request timed out: {exc}")
    if isinstance(exc, httpx.TransportError | httpx.StreamError):
        return TransportError(f"Network error: {exc}")
    return TransportError(str(exc) or type(exc).__name__)
