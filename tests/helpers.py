"""Shared builders for the test suite."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Callable, Iterable
from typing import Any

import httpx

from llm_bridge.http_client import HttpTransport
from llm_bridge.models import ModelInfo, ProviderConfig, ProviderType


def sse_lines(*payloads: Any, done: bool = True) -> bytes:
    body = "".join(f"data: {json.dumps(p)}\n\n" for p in payloads)
    if done:
        body += "data: [DONE]\n\n"
    return body.encode()


def ndjson_lines(*payloads: Any) -> bytes:
    return "".join(json.dumps(p) + "\n" for p in payloads).encode()


def openai_delta(text: str | None = None, **extra: Any) -> dict[str, Any]:
    delta: dict[str, Any] = {}
    if text is not None:
        delta["content"] = text
    choice: dict[str, Any] = {"index": 0, "delta": delta}
    choice.update(extra)
    return {"choices": [choice]}


async def aiter_chunks(chunks: Iterable[bytes]) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk


def split_every(data: bytes, size: int) -> list[bytes]:
    return [data[i:i + size] for i in range(0, len(data), size)]


def make_provider(
    provider_type: ProviderType = ProviderType.OPENAI,
    endpoint: str | None = "https://api.example.test/v1",
    api_key: str | None = "sk-test-key-123",
    models: list[ModelInfo] | None = None,
    **extra: Any,
) -> ProviderConfig:
    return ProviderConfig(
        id=extra.pop("id", provider_type.value),
        name=extra.pop("name", provider_type.value.title()),
        provider_type=provider_type,
        api_endpoint=endpoint,
        api_key=api_key,
        models=models or [make_model()],
        **extra,
    )


def make_model(model_id: str = "test-model", **extra: Any) -> ModelInfo:
    return ModelInfo(id=model_id, family=extra.pop("family", "test"), **extra)


class RecordingHandler:
    """httpx.MockTransport handler that records requests."""

    def __init__(self, respond: Callable[[httpx.Request], httpx.Response]):
        self.respond = respond
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.respond(request)

    @property
    def last_json(self) -> Any:
        return json.loads(self.requests[-1].content)


def mock_transport(handler: Callable[[httpx.Request], httpx.Response]) -> HttpTransport:
    return HttpTransport(transport=httpx.MockTransport(handler))
