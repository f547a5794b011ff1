"""Output events yielded to streaming callers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar

from llm_bridge.errors import AbortedError, LLMBridgeError


@dataclass(frozen=True)
class TextDelta:
    """A text fragment, emitted as soon as its line is parsed."""

    type: ClassVar[str] = "delta"
    text: str


@dataclass(frozen=True)
class ToolCall:
    """A complete tool/function call, emitted once the response finishes."""

    type: ClassVar[str] = "tool_call"
    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Done:
    """Final event of a successful stream."""

    type: ClassVar[str] = "done"
    full_text: str


@dataclass(frozen=True)
class Error:
    """Terminal failure. ``error`` holds the classified exception, if any."""

    type: ClassVar[str] = "error"
    message: str
    error: LLMBridgeError | None = field(default=None, compare=False)

    @property
    def aborted(self) -> bool:
        return isinstance(self.error, AbortedError)


OutputEvent = TextDelta | ToolCall | Done | Error
