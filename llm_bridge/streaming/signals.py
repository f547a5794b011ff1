"""
Semantic signals extracted from a single stream payload.

Provider stream parsers turn one decoded JSON payload into a list of these;
the pipeline turns them into OutputEvents.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class TextFragment:
    text: str


@dataclass
class ToolCallFragment:
    """A piece of a tool call. Any field may be missing on later fragments."""

    index: int | None = None
    call_id: str | None = None
    name: str | None = None
    arguments: str | None = None


@dataclass
class CompleteToolCalls:
    """A terminal message that already carries every tool call in full."""

    calls: list[ToolCallFragment] = field(default_factory=list)


@dataclass
class FinishSignal:
    """The response as a whole is complete; pending tool calls may flush."""

    reason: str | None = None


@dataclass
class StreamFailure:
    """The upstream reported an error inside an otherwise healthy stream."""

    message: str


StreamSignal = (
    TextFragment | ToolCallFragment | CompleteToolCalls | FinishSignal | StreamFailure
)
