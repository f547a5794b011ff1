# llm_bridge/llm/providers/google.py
from __future__ import annotations

import json
from typing import Any
from urllib.parse import quote

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
    as_list,
    as_str,
    build_url,
    set_optional,
)


def _system_instruction(msgs: MsgList) -> JSON | None:
    texts = [m.text() for m in msgs if m.role == "system" and m.text()]
    if not texts:
        return None
    return {"parts": [{"text": "\n\n".join(texts)}]}


def _to_google_contents(msgs: MsgList) -> list[JSON]:
    """
    Build ``contents``: consecutive turns with the same role are merged and
    ``assistant`` becomes ``model``. Function responses need the function
    name, which is looked up from the earlier call with the same id.
    """
    contents: list[JSON] = []
    call_names: dict[str, str] = {}
    for m in msgs:
        if m.role == "system":
            continue
        role = "model" if m.role == "assistant" else "user"

        parts: list[JSON] = []
        for part in m.parts:
            if isinstance(part, TextPart):
                parts.append({"text": part.text})
            elif isinstance(part, ToolCallPart):
                if part.call_id:
                    call_names[part.call_id] = part.name
                parts.append(
                    {
                        "functionCall": {
                            "name": part.name,
                            "args": parse_arguments(part.arguments),
                        }
                    }
                )
            elif isinstance(part, ToolResultPart):
                parts.append(
                    {
                        "functionResponse": {
                            "name": call_names.get(part.call_id, part.call_id),
                            "response": {"content": part.content},
                        }
                    }
                )

        if contents and contents[-1]["role"] == role:
            contents[-1]["parts"].extend(parts)
        else:
            contents.append({"role": role, "parts": parts})
    return contents


def _to_google_tools(tools: ToolList) -> list[JSON]:
    declarations = [
        {
            "name": t.identifier,
            "description": t.description or "",
            "parameters": t.parameters,
        }
        for t in tools or []
    ]
    return [{"functionDeclarations": declarations}]


def _error_message(error: Any) -> str:
    if isinstance(error, dict):
        return str(error.get("message") or error.get("status") or error)
    return str(error)


class GoogleStreamParser(StreamParser):
    """
    streamGenerateContent emits whole GenerateContentResponse objects,
    either one per line or as elements of a JSON array.
    """

    framing = Framing.NDJSON

    def __init__(self) -> None:
        self._calls = 0

    def parse(self, payload: Any) -> list[StreamSignal]:
        if isinstance(payload, list):
            return [signal for item in payload for signal in self.parse(item)]
        if not isinstance(payload, dict):
            return []
        if "error" in payload:
            return [StreamFailure(_error_message(payload["error"]))]

        signals: list[StreamSignal] = []
        finish_reason = None
        for candidate in as_list(payload.get("candidates")):
            if not isinstance(candidate, dict):
                continue
            for part in as_list(as_dict(candidate.get("content")).get("parts")):
                if not isinstance(part, dict):
                    continue
                text = part.get("text")
                if isinstance(text, str) and text:
                    signals.append(TextFragment(text))
                call = part.get("functionCall")
                if isinstance(call, dict):
                    signals.append(
                        ToolCallFragment(
                            index=self._calls,
                            call_id=as_str(call.get("id")),
                            name=as_str(call.get("name")),
                            arguments=json.dumps(call.get("args") or {}),
                        )
                    )
                    self._calls += 1
            finish_reason = candidate.get("finishReason") or finish_reason
        if finish_reason:
            signals.append(FinishSignal(finish_reason))
        return signals


class GoogleAdapter(ProviderAdapter):
    provider_type = ProviderType.GOOGLE
    default_base_url = "https://generativelanguage.googleapis.com/v1beta"

    def build_request(
        self,
        messages: MsgList,
        params: GenerationParams,
        tools: ToolList = None,
        stream: bool = False,
    ) -> PreparedRequest:
        generation_config: JSON = {"maxOutputTokens": params.max_output_tokens}
        set_optional(generation_config, "temperature", params.temperature)
        set_optional(generation_config, "topP", params.top_p)

        payload: JSON = {
            "contents": _to_google_contents(messages),
            "generationConfig": generation_config,
        }
        system_instruction = _system_instruction(messages)
        if system_instruction:
            payload["systemInstruction"] = system_instruction
        if tools:
            payload["tools"] = _to_google_tools(tools)

        method = "streamGenerateContent" if stream else "generateContent"
        path = f"/models/{quote(self._model(), safe='')}:{method}"
        return PreparedRequest(
            url=build_url(self._base_url(), path),
            params={"key": self.api_key},
            headers={"Content-Type": "application/json"},
            payload=payload,
        )

    def parse_response(self, data: Any) -> ParsedResponse:
        candidates = data.get("candidates") if isinstance(data, dict) else None
        if not isinstance(candidates, list):
            raise ResponseFormatError("Response is missing 'candidates'")

        text_parts: list[str] = []
        tool_calls: list[ToolCall] = []
        finish_reason = None
        for n, candidate in enumerate(candidates):
            if not isinstance(candidate, dict):
                raise ResponseFormatError(f"Candidate {n} is not an object")
            content = candidate.get("content") or {}
            parts = (content.get("parts") or []) if isinstance(content, dict) else None
            if not isinstance(parts, list) or not all(isinstance(p, dict) for p in parts):
                raise ResponseFormatError(f"Candidate {n} has malformed content parts")
            for part in parts:
                if isinstance(part.get("text"), str):
                    text_parts.append(part["text"])
                call = part.get("functionCall")
                if isinstance(call, dict):
                    args = call.get("args")
                    tool_calls.append(
                        ToolCall(
                            id=call.get("id") or f"call_{len(tool_calls)}",
                            name=call.get("name") or "",
                            arguments=args if isinstance(args, dict) else {},
                        )
                    )
            finish_reason = candidate.get("finishReason") or finish_reason

        return ParsedResponse(
            text="".join(text_parts),
            tool_calls=tool_calls,
            finish_reason=finish_reason,
        )

    def stream_parser(self) -> StreamParser:
        return GoogleStreamParser()
