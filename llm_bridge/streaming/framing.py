"""
Line framings used by provider streams.

SSE (OpenAI-compatible, Anthropic)::

    data: {"choices": [...]}
    : keep-alive comment
    data: [DONE]

NDJSON (Google): one JSON value per line.

Malformed JSON is logged and ignored so a single corrupt line never aborts
an otherwise healthy stream.
"""

from __future__ import annotations

import contextlib
import json
import logging
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

SSE_DATA_PREFIX = "data:"
SSE_DONE_SENTINEL = "[DONE]"

# Truncate logged lines
MAX_LOG_LINE_LENGTH = 200


class Frame(Enum):
    """Non-payload outcomes of parsing a line."""

    IGNORE = "ignore"
    DONE = "done"


class Framing(str, Enum):
    SSE = "sse"
    NDJSON = "ndjson"


def parse_sse_line(line: str) -> Any:
    """
    Parse one SSE line.

    Returns Frame.IGNORE for blank, comment and non-``data:`` lines,
    Frame.DONE for the ``[DONE]`` sentinel, otherwise the decoded JSON.
    """
    line = line.strip()
    if not line or line.startswith(":"):
        return Frame.IGNORE
    if not line.startswith(SSE_DATA_PREFIX):
        return Frame.IGNORE

    data = line[len(SSE_DATA_PREFIX):].strip()
    if data == SSE_DONE_SENTINEL:
        return Frame.DONE
    try:
        return json.loads(data)
    except ValueError as e:
        logger.warning(
            "Skipping malformed SSE line (%s): %r", e, data[:MAX_LOG_LINE_LENGTH]
        )
        return Frame.IGNORE


def parse_ndjson_line(line: str) -> Any:
    """
    Parse one NDJSON line.

    The punctuation of a compact JSON-array stream (a leading ``[`` or
    ``,``, a trailing ``,`` or ``]``) is tolerated.
    """
    text = line.strip()
    if not text:
        return Frame.IGNORE
    with contextlib.suppress(json.JSONDecodeError):
        return json.loads(text)

    trimmed = text.lstrip("[,").rstrip(",]").strip()
    if not trimmed:
        return Frame.IGNORE
    try:
        return json.loads(trimmed)
    except ValueError as e:
        logger.warning(
            "Skipping malformed NDJSON line (%s): %r", e, text[:MAX_LOG_LINE_LENGTH]
        )
        return Frame.IGNORE


def parse_line(line: str, framing: Framing) -> Any:
    if framing is Framing.NDJSON:
        return parse_ndjson_line(line)
    return parse_sse_line(line)
