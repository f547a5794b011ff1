"""
Tool-call accumulator for streaming responses.

Providers stream function arguments as successive string fragments, so
fragments are appended (never diffed) per slot. A slot is keyed by the
stream index when the provider sends one, else by call id. Fragments with
neither are appended to slot 0; a provider that interleaves several calls
without index or id cannot be told apart.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from llm_bridge.events import ToolCall
from llm_bridge.streaming.signals import ToolCallFragment

logger = logging.getLogger(__name__)

SlotKey = int | str


@dataclass
class PendingToolCall:
    slot_key: SlotKey
    id: str | None = None
    name: str | None = None
    arguments_buffer: str = ""


def parse_arguments(raw: str) -> dict[str, Any]:
    """Parse an accumulated argument string, keeping unparsable input."""
    if not raw.strip():
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("Tool call arguments are not valid JSON (%s): %r", e, raw)
        return {"value": raw}
    if isinstance(parsed, dict):
        return parsed
    return {"value": parsed}


class ToolCallAccumulator:
    """Merges tool-call fragments of one response and flushes them once."""

    def __init__(self) -> None:
        self._pending: dict[SlotKey, PendingToolCall] = {}
        self._flushed = False

    @property
    def pending(self) -> list[PendingToolCall]:
        return list(self._pending.values())

    @property
    def flushed(self) -> bool:
        return self._flushed

    def feed(self, fragment: ToolCallFragment) -> None:
        if self._flushed:
            logger.debug("Ignoring tool call fragment after flush: %s", fragment)
            return

        key = self._slot_key(fragment)
        slot = self._pending.get(key)
        if slot is None:
            slot = self._pending[key] = PendingToolCall(slot_key=key)

        if fragment.call_id and not slot.id:
            slot.id = fragment.call_id
        if fragment.name and not slot.name:
            slot.name = fragment.name
        if fragment.arguments:
            slot.arguments_buffer += fragment.arguments

    def replace(self, calls: list[ToolCallFragment]) -> None:
        """Adopt a complete tool_calls array, dropping any partial slots."""
        if self._flushed:
            return
        if self._pending:
            logger.debug(
                "Discarding %d partial tool call slot(s) in favour of a "
                "complete tool_calls array",
                len(self._pending),
            )
        self._pending = {
            position: PendingToolCall(
                slot_key=position,
                id=call.call_id,
                name=call.name,
                arguments_buffer=call.arguments or "",
            )
            for position, call in enumerate(calls)
        }

    def flush(self) -> list[ToolCall]:
        """Finalize every pending slot. Later calls return an empty list."""
        if self._flushed:
            return []
        self._flushed = True

        calls = [
            ToolCall(
                id=slot.id or f"call_{position}",
                name=slot.name or "",
                arguments=parse_arguments(slot.arguments_buffer),
            )
            for position, slot in enumerate(self._pending.values())
        ]
        self._pending.clear()
        if calls:
            logger.debug("Flushed %d tool call(s)", len(calls))
        return calls

    def _slot_key(self, fragment: ToolCallFragment) -> SlotKey:
        if fragment.index is not None:
            return fragment.index
        if fragment.call_id:
            for key, slot in self._pending.items():
                if slot.id == fragment.call_id:
                    return key
            return fragment.call_id
        return 0
