# llm_bridge/llm/providers/anthropic.py
from __future__ import annotations

import logging
from typing import Any

from llm_bridge.errors import ResponseFormatError
from llm_bridge.events import ToolCall
from llm_bridge.models import (
    GenerationParams,
    ProviderType,
    TextPart,
    ToolCallPart,
    ToolResultPart,
)
from llm_bridge.streaming.accumulator import parse_arguments
from llm_bridge.streaming.framing import Framing
from llm_bridge.streaming.signals import (
    FinishSignal,
    StreamFailure,
    StreamSignal,
    TextFragment,
    ToolCallFragment,
)

from ..base import (
    JSON,
    MsgList,
    ParsedResponse,
    PreparedRequest,
    ProviderAdapter,
    StreamParser,
    ToolList,
    as_dict,
    as_str,
    build_url,
    set_optional,
)

ANTHROPIC_VERSION = "2023-06-01"

logger = logging.getLogger(__name__)


def resolve_messages_url(base: str) -> str:
    lowered = base.lower()
    if lowered.endswith("/v1/messages"):
        return base
    if lowered.endswith("/v1"):
        return build_url(base, "/messages")
    return build_url(base, "/v1/messages")


def _system_prompt(msgs: MsgList) -> str | None:
    parts = [m.text() for m in msgs if m.role == "system"]
    joined = "\n\n".join(p for p in parts if p)
    return joined or None


def _append_user_blocks(out: list[dict[str, Any]], blocks: list[dict[str, Any]]) -> None:
    # Tool results ride in user messages; merge into a trailing user turn
    if out and out[-1]["role"] == "user":
        content = out[-1]["content"]
        if isinstance(content, list):
            content.extend(blocks)
        else:
            out[-1]["content"] = [{"type": "text", "text": content}, *blocks]
    else:
        out.append({"role": "user", "content": blocks})


def _to_anthropic_msgs(msgs: MsgList) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    for m in msgs:
        if m.role == "system":
            continue

        if m.role == "assistant":
            content_blocks: list[dict[str, Any]] = []
            for n, part in enumerate(m.parts):
                if isinstance(part, TextPart) and part.text:
                    content_blocks.append({"type": "text", "text": part.text})
                elif isinstance(part, ToolCallPart):
                    content_blocks.append(
                        {
                            "type": "tool_use",
                            "id": part.call_id or f"toolu_{len(out)}_{n}",
                            "name": part.name,
                            "input": parse_arguments(part.arguments),
                        }
                    )
            if content_blocks:
                out.append({"role": "assistant", "content": content_blocks})
            else:
                logger.debug("Skipping empty assistant turn")
            continue

        results = m.tool_results()
        if not results:
            # Regular user message - use simple string format for text-only messages
            out.append({"role": "user", "content": m.text()})
            continue

        blocks: list[dict[str, Any]] = []
        for part in m.parts:
            if isinstance(part, ToolResultPart):
                blocks.append(
                    {
                        "type": "tool_result",
                        "tool_use_id": part.call_id,
                        "content": part.content,
                    }
                )
            elif isinstance(part, TextPart) and part.text:
                blocks.append({"type": "text", "text": part.text})
        _append_user_blocks(out, blocks)
    return out


def _to_anthropic_tools(tools: ToolList) -> list[dict[str, Any]]:
    res = []
    for t in tools or []:
        res.append(
            {
                "name": t.identifier,
                "description": t.description or "",
                "input_schema": t.parameters,
            }
        )
    return res


def _block_index(payload: JSON) -> int | None:
    index = payload.get("index")
    return index if isinstance(index, int) else None


class AnthropicStreamParser(StreamParser):
    """Messages API events: content blocks, json deltas and stop markers."""

    framing = Framing.SSE

    def parse(self, payload: Any) -> list[StreamSignal]:
        if not isinstance(payload, dict):
            return []
        kind = payload.get("type")

        if kind == "content_block_start":
            block = as_dict(payload.get("content_block"))
            if block.get("type") == "tool_use":
                return [
                    ToolCallFragment(
                        index=_block_index(payload),
                        call_id=as_str(block.get("id")),
                        name=as_str(block.get("name")),
                    )
                ]
        elif kind == "content_block_delta":
            delta = as_dict(payload.get("delta"))
            text = delta.get("text")
            if isinstance(text, str) and text:
                return [TextFragment(text)]
            partial = delta.get("partial_json")
            if delta.get("type") == "input_json_delta" and isinstance(partial, str):
                return [
                    ToolCallFragment(
                        index=_block_index(payload),
                        arguments=partial or None,
                    )
                ]
        elif kind == "message_delta":
            stop_reason = as_dict(payload.get("delta")).get("stop_reason")
            if stop_reason == "tool_use":
                return [FinishSignal(stop_reason)]
        elif kind == "message_stop":
            return [FinishSignal(kind)]
        elif kind == "error":
            error = as_dict(payload.get("error"))
            label = error.get("type") or "error"
            message = error.get("message")
            return [StreamFailure(f"{label}: {message}" if message else label)]
        return []


class AnthropicAdapter(ProviderAdapter):
    provider_type = ProviderType.ANTHROPIC
    default_base_url = "https://api.anthropic.com"

    def build_request(
        self,
        messages: MsgList,
        params: GenerationParams,
        tools: ToolList = None,
        stream: bool = False,
    ) -> PreparedRequest:
        payload: JSON = {
            "model": self._model(),
            "messages": _to_anthropic_msgs(messages),
            "max_tokens": params.max_output_tokens,
        }
        set_optional(payload, "temperature", params.temperature)
        set_optional(payload, "top_p", params.top_p)
        sys_prompt = _system_prompt(messages)
        if sys_prompt:
            payload["system"] = sys_prompt
        if tools:
            payload["tools"] = _to_anthropic_tools(tools)
        if stream:
            payload["stream"] = True

        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }
        return PreparedRequest(
            url=resolve_messages_url(self._base_url()),
            headers=headers,
            payload=payload,
        )

    def parse_response(self, data: Any) -> ParsedResponse:
        content = data.get("content") if isinstance(data, dict) else None
        if not isinstance(content, list):
            raise ResponseFormatError("Response is missing 'content'")

        text_parts, tool_calls = [], []
        for item in content:
            if not isinstance(item, dict):
                continue
            if item.get("type") == "text":
                text_parts.append(item.get("text") or "")
            elif item.get("type") == "tool_use":
                raw_input = item.get("input")
                tool_calls.append(
                    ToolCall(
                        id=item.get("id") or f"call_{len(tool_calls)}",
                        name=item.get("name") or "",
                        arguments=raw_input if isinstance(raw_input, dict) else {},
                    )
                )

        return ParsedResponse(
            text="".join(text_parts),
            tool_calls=tool_calls,
            finish_reason=data.get("stop_reason"),
        )

    def stream_parser(self) -> StreamParser:
        return AnthropicStreamParser()
