# llm_bridge/llm/providers/openai_compat.py
from __future__ import annotations

import json
import logging
from typing import Any

from llm_bridge.errors import ResponseFormatError
from llm_bridge.events import ToolCall
from llm_bridge.models import GenerationParams, ProviderType
from llm_bridge.streaming.accumulator import parse_arguments
from llm_bridge.streaming.framing import Framing
from llm_bridge.streaming.signals import (
    CompleteToolCalls,
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
    as_list,
    as_str,
    build_url,
    set_optional,
)

CHAT_COMPLETIONS_PATH = "/chat/completions"
TOOL_FINISH_REASONS = ("tool_calls", "function_call")

logger = logging.getLogger(__name__)


def resolve_chat_completions_url(base: str) -> str:
    if base.lower().endswith(CHAT_COMPLETIONS_PATH):
        return base
    return build_url(base, CHAT_COMPLETIONS_PATH)


def _arguments_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value)


def _to_openai_msgs(messages: MsgList) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    for position, m in enumerate(messages):
        if isinstance(m.content, str):
            out.append({"role": m.role, "content": m.content})
            continue

        # tool results must directly follow the assistant turn that asked
        for result in m.tool_results():
            out.append(
                {
                    "role": "tool",
                    "tool_call_id": result.call_id,
                    "content": result.content,
                }
            )

        text = m.text()
        calls = m.tool_calls()
        if not calls and not text and m.tool_results():
            continue

        entry: dict[str, Any] = {"role": m.role, "content": text or None}
        if calls:
            entry["tool_calls"] = [
                {
                    "id": call.call_id or f"call_{position}_{n}",
                    "type": "function",
                    "function": {"name": call.name, "arguments": call.arguments},
                }
                for n, call in enumerate(calls)
            ]
        else:
            entry["content"] = text
        out.append(entry)
    return out


def _to_openai_tools(tools: ToolList) -> list[dict[str, Any]]:
    return [
        {
            "type": "function",
            "function": {
                "name": t.identifier,
                "description": t.description,
                "parameters": t.parameters,
            },
        }
        for t in tools or []
    ]


def _fragment(raw: Any) -> ToolCallFragment | None:
    if not isinstance(raw, dict):
        return None
    fn = raw.get("function") or {}
    if not isinstance(fn, dict):
        logger.warning("Skipping tool call fragment with malformed function: %r", fn)
        return None
    index = raw.get("index")
    return ToolCallFragment(
        index=index if isinstance(index, int) else None,
        call_id=as_str(raw.get("id")),
        name=as_str(fn.get("name")),
        arguments=_arguments_text(fn.get("arguments")) or None,
    )


def _error_message(error: Any) -> str:
    if isinstance(error, dict):
        return str(error.get("message") or error)
    return str(error)


class OpenAIStreamParser(StreamParser):
    """Chat-completions chunks: ``choices[0].delta`` with optional tool_calls."""

    framing = Framing.SSE

    def parse(self, payload: Any) -> list[StreamSignal]:
        if not isinstance(payload, dict):
            return []
        choices = payload.get("choices")
        if "error" in payload and not choices:
            return [StreamFailure(_error_message(payload["error"]))]
        if not isinstance(choices, list) or not choices:
            return []
        choice = choices[0]
        if not isinstance(choice, dict):
            return []

        signals: list[StreamSignal] = []
        delta = as_dict(choice.get("delta"))
        message = as_dict(choice.get("message"))

        content = delta.get("content")
        if content is None:
            content = message.get("content")
        if isinstance(content, str) and content:
            signals.append(TextFragment(content))

        for raw in as_list(delta.get("tool_calls")):
            fragment = _fragment(raw)
            if fragment is not None:
                signals.append(fragment)

        # legacy single function_call
        function_call = delta.get("function_call")
        if isinstance(function_call, dict):
            signals.append(
                ToolCallFragment(
                    index=0,
                    name=as_str(function_call.get("name")),
                    arguments=_arguments_text(function_call.get("arguments")) or None,
                )
            )

        complete = message.get("tool_calls")
        if isinstance(complete, list) and complete:
            fragments = [f for f in map(_fragment, complete) if f is not None]
            signals.append(CompleteToolCalls(fragments))

        finish = choice.get("finish_reason")
        if finish in TOOL_FINISH_REASONS:
            signals.append(FinishSignal(finish))
        return signals


class OpenAICompatibleAdapter(ProviderAdapter):
    """
    Works unchanged for:
      • api.openai.com
      • api.groq.com/openai/v1
      • openrouter.ai/api/v1
      • local servers exposing /v1/chat/completions
    """

    provider_type = ProviderType.OPENAI
    default_base_url = "https://api.openai.com/v1"

    def build_request(
        self,
        messages: MsgList,
        params: GenerationParams,
        tools: ToolList = None,
        stream: bool = False,
    ) -> PreparedRequest:
        payload: JSON = {
            "model": self._model(),
            "messages": _to_openai_msgs(messages),
            "max_tokens": params.max_output_tokens,
            "stream": stream,
        }
        set_optional(payload, "temperature", params.temperature)
        set_optional(payload, "top_p", params.top_p)
        set_optional(payload, "presence_penalty", params.presence_penalty)
        set_optional(payload, "frequency_penalty", params.frequency_penalty)
        if tools:
            payload["tools"] = _to_openai_tools(tools)

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        return PreparedRequest(
            url=resolve_chat_completions_url(self._base_url()),
            headers=headers,
            payload=payload,
        )

    def parse_response(self, data: Any) -> ParsedResponse:
        choices = data.get("choices") if isinstance(data, dict) else None
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            raise ResponseFormatError("Response is missing 'choices'")
        choice = choices[0]
        message = choice.get("message")
        if not isinstance(message, dict):
            raise ResponseFormatError("Response choice is missing a 'message' object")

        raw_calls = message.get("tool_calls") or []
        if not isinstance(raw_calls, list):
            raise ResponseFormatError("Response 'tool_calls' is not a list")
        tool_calls: list[ToolCall] = []
        for n, raw in enumerate(raw_calls):
            fn = raw.get("function") if isinstance(raw, dict) else None
            if not isinstance(fn, dict):
                raise ResponseFormatError(f"Tool call {n} is missing a 'function' object")
            args = fn.get("arguments")
            tool_calls.append(
                ToolCall(
                    id=raw.get("id") or f"call_{n}",
                    name=fn.get("name") or "",
                    arguments=(
                        args if isinstance(args, dict) else parse_arguments(_arguments_text(args))
                    ),
                )
            )

        function_call = message.get("function_call")
        if not tool_calls and isinstance(function_call, dict):
            tool_calls.append(
                ToolCall(
                    id="call_0",
                    name=function_call.get("name") or "",
                    arguments=parse_arguments(_arguments_text(function_call.get("arguments"))),
                )
            )

        content = message.get("content")
        return ParsedResponse(
            text=content if isinstance(content, str) else "",
            tool_calls=tool_calls,
            finish_reason=choice.get("finish_reason"),
        )

    def stream_parser(self) -> StreamParser:
        return OpenAIStreamParser()


class GenericAdapter(OpenAICompatibleAdapter):
    """Any other server speaking the chat-completions protocol."""

    provider_type = ProviderType.GENERIC
    default_base_url = "http://localhost:8000/v1"
