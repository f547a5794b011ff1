"""
Token approximation for model budgets.

Counts with tiktoken when the encoding can be loaded and falls back to
cheap heuristics otherwise. Counts are estimates; no provider tokenizer is
consulted.
"""

from __future__ import annotations

import hashlib
import json
import logging
import math
from typing import Any

import tiktoken

from llm_bridge.models import Message

logger = logging.getLogger(__name__)

# Default model encoding (OpenAI's default tokenizer)
DEFAULT_ENCODING = "cl100k_base"

WORDS_TO_TOKENS = 1.3
CHARS_PER_TOKEN = 4


def estimate_text_tokens(text: str) -> int:
    """Word-based heuristic for a plain string."""
    return math.ceil(len(text.split()) * WORDS_TO_TOKENS)


def estimate_serialized_tokens(value: Any) -> int:
    """Character-based heuristic for messages and other structured values."""
    return math.ceil(len(_serialize(value)) / CHARS_PER_TOKEN)


def _serialize(value: Any) -> str:
    # only the text parts of a message count
    if isinstance(value, Message):
        return value.text()
    if isinstance(value, list) and value and all(isinstance(v, Message) for v in value):
        return "".join(m.text() for m in value)
    try:
        return json.dumps(value, default=str)
    except (TypeError, ValueError):
        return str(value)


class TokenCounter:
    """
    Approximate token counts with a per-instance cache.
    """

    def __init__(self, encoding_name: str = DEFAULT_ENCODING):
        self.encoding_name = encoding_name
        self._cache: dict[str, int] = {}
        self._encoding: tiktoken.Encoding | None = None
        self._encoding_failed = False

    @property
    def encoding(self) -> tiktoken.Encoding | None:
        if self._encoding is None and not self._encoding_failed:
            try:
                self._encoding = tiktoken.get_encoding(self.encoding_name)
            except Exception as e:
                # tiktoken downloads encodings on first use; offline hosts fail here
                logger.warning(
                    "Failed to load encoding '%s', using heuristic counts: %s",
                    self.encoding_name,
                    e,
                )
                self._encoding_failed = True
        return self._encoding

    def compute_content_hash(self, content: str) -> str:
        """Compute a hash of the content for caching."""
        return hashlib.sha256(
            f"{self.encoding_name}:{content}".encode()
        ).hexdigest()[:16]

    def count(self, value: str | Message | list[Message] | Any) -> int:
        """
        Count tokens for a string, a message, or any JSON-like value.

        Args:
            value: The text or structure to count

        Returns:
            Approximate number of tokens
        """
        is_text = isinstance(value, str)
        text = value if is_text else _serialize(value)
        if not text:
            return 0

        content_hash = self.compute_content_hash(text)
        cached = self._cache.get(content_hash)
        if cached is not None:
            return cached

        encoding = self.encoding
        if encoding is not None:
            tokens = len(encoding.encode(text))
        elif is_text:
            tokens = estimate_text_tokens(text)
        else:
            tokens = estimate_serialized_tokens(value)

        self._cache[content_hash] = tokens
        return tokens

    def clear_cache(self) -> None:
        self._cache.clear()
