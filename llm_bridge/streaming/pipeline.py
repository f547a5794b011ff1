"""
The streaming read loop: chunks -> lines -> payloads -> output events.

This module knows nothing about HTTP; it consumes any async iterable of
byte chunks, which keeps it testable without a server.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import AsyncIterable, AsyncIterator
from typing import TYPE_CHECKING

from llm_bridge.errors import UpstreamStreamError
from llm_bridge.events import Done, OutputEvent, TextDelta
from llm_bridge.streaming.accumulator import ToolCallAccumulator
from llm_bridge.streaming.cancellation import CancellationGate
from llm_bridge.streaming.decoder import ChunkDecoder
from llm_bridge.streaming.framing import Frame, parse_line
from llm_bridge.streaming.signals import (
    CompleteToolCalls,
    FinishSignal,
    StreamFailure,
    TextFragment,
    ToolCallFragment,
)

if TYPE_CHECKING:
    from llm_bridge.llm.base import StreamParser

logger = logging.getLogger(__name__)


class StreamAssembler:
    """
    Per-response state: accumulated text, pending tool calls, completion.

    Text deltas are returned as soon as their line is parsed; tool calls
    only when the response signals completion (or the body ends).
    """

    def __init__(self, parser: StreamParser) -> None:
        self.parser = parser
        self.accumulator = ToolCallAccumulator()
        self.finished = False
        self._text: list[str] = []

    @property
    def full_text(self) -> str:
        return "".join(self._text)

    def feed_line(self, line: str) -> list[OutputEvent]:
        frame = parse_line(line, self.parser.framing)
        if frame is Frame.IGNORE:
            return []
        if frame is Frame.DONE:
            self.finished = True
            return list(self.accumulator.flush())

        events: list[OutputEvent] = []
        for signal in self.parser.parse(frame):
            if isinstance(signal, TextFragment):
                if signal.text:
                    self._text.append(signal.text)
                    events.append(TextDelta(signal.text))
            elif isinstance(signal, ToolCallFragment):
                self.accumulator.feed(signal)
            elif isinstance(signal, CompleteToolCalls):
                self.accumulator.replace(signal.calls)
            elif isinstance(signal, FinishSignal):
                logger.debug("Finish signal received: %s", signal.reason)
                events.extend(self.accumulator.flush())
            elif isinstance(signal, StreamFailure):
                raise UpstreamStreamError(signal.message)
        return events

    def finish(self) -> list[OutputEvent]:
        """Flush whatever is still pending and close the response."""
        events: list[OutputEvent] = list(self.accumulator.flush())
        events.append(Done(self.full_text))
        return events


async def iter_stream_events(
    chunks: AsyncIterable[bytes],
    parser: StreamParser,
    gate: CancellationGate | None = None,
) -> AsyncIterator[OutputEvent]:
    """
    Decode one streaming body into OutputEvents, ending with Done.

    Raises AbortedError when the gate's signal fires and
    UpstreamStreamError when the upstream reports an in-stream error;
    callers turn those into Error events.
    """
    gate = gate or CancellationGate()
    decoder = ChunkDecoder()
    assembler = StreamAssembler(parser)

    async with contextlib.aclosing(gate.guard(chunks)) as guarded:
        async for chunk in guarded:
            for line in decoder.feed(chunk):
                for event in assembler.feed_line(line):
                    yield event
                if assembler.finished:
                    break
            if assembler.finished:
                break

    if not assembler.finished:
        for line in decoder.flush():
            for event in assembler.feed_line(line):
                yield event

    for event in assembler.finish():
        yield event
