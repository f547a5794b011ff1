from .accumulator import PendingToolCall, ToolCallAccumulator
from .cancellation import CancellationGate
from .decoder import ChunkDecoder
from .framing import Frame, Framing, parse_ndjson_line, parse_sse_line
from .pipeline import StreamAssembler, iter_stream_events

__all__ = [
    "CancellationGate",
    "ChunkDecoder",
    "Frame",
    "Framing",
    "PendingToolCall",
    "StreamAssembler",
    "ToolCallAccumulator",
    "iter_stream_events",
    "parse_ndjson_line",
    "parse_sse_line",
]
