"""Turns raw response chunks into complete lines."""

from __future__ import annotations

import codecs


class ChunkDecoder:
    """
    Incremental byte-to-line decoder for one response body.

    Chunks may end anywhere, including inside a multi-byte character or in
    the middle of a line. Only ``\\n`` terminates a line; a trailing ``\\r``
    is dropped from each complete line. The unterminated tail stays buffered
    until more data arrives or ``flush()`` is called.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes | str) -> list[str]:
        """Add a chunk and return every line it completed."""
        if isinstance(chunk, bytes):
            chunk = self._decoder.decode(chunk)
        self._buffer += chunk
        if "\n" not in self._buffer:
            return []
        *lines, self._buffer = self._buffer.split("\n")
        return [_strip_cr(line) for line in lines]

    def flush(self) -> list[str]:
        """Return the final unterminated line, if any, and reset."""
        self._buffer += self._decoder.decode(b"", final=True)
        rest, self._buffer = self._buffer, ""
        if not rest:
            return []
        return [_strip_cr(rest)]

    @property
    def pending(self) -> str:
        return self._buffer


def _strip_cr(line: str) -> str:
    return line[:-1] if line.endswith("\r") else line
