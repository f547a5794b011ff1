# llm_bridge/llm/client.py
from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import AsyncGenerator

import httpx

from llm_bridge.errors import (
    AbortedError,
    LLMBridgeError,
    ResponseFormatError,
    classify_exception,
    classify_status,
    read_response_error,
)
from llm_bridge.events import Error, OutputEvent
from llm_bridge.http_client import HttpConfig, HttpTransport
from llm_bridge.logging_utils import mask_secret
from llm_bridge.models import (
    ChatResponse,
    GenerationParams,
    ModelInfo,
    ProviderConfig,
    ProviderType,
)
from llm_bridge.streaming.cancellation import CancellationGate
from llm_bridge.streaming.pipeline import iter_stream_events

from .base import MsgList, ProviderAdapter, ToolList
from .providers import (
    AnthropicAdapter,
    GenericAdapter,
    GoogleAdapter,
    OpenAICompatibleAdapter,
)

logger = logging.getLogger(__name__)

ADAPTERS: dict[ProviderType, type[ProviderAdapter]] = {
    ProviderType.OPENAI: OpenAICompatibleAdapter,
    ProviderType.ANTHROPIC: AnthropicAdapter,
    ProviderType.GOOGLE: GoogleAdapter,
    ProviderType.GENERIC: GenericAdapter,
}


def make_adapter(provider: ProviderConfig, model: ModelInfo) -> ProviderAdapter:
    """Pick the adapter for the provider's type. Raises ConfigurationError."""
    adapter_cls = ADAPTERS.get(provider.provider_type)
    if adapter_cls is None:
        raise ValueError(f"Unknown LLM provider type: {provider.provider_type}")
    return adapter_cls(provider, model)


class LLMClient:
    """
    Thin façade: choose adapter, forward calls.

    One client can serve any number of providers; the adapter is chosen
    per call from the provider record.
    """

    def __init__(
        self,
        config: HttpConfig | None = None,
        http: HttpTransport | None = None,
    ) -> None:
        self._owns_http = http is None
        self.http = http or HttpTransport(config)

    async def __aenter__(self) -> LLMClient:
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    # ---------- public ----------
    async def complete(
        self,
        provider: ProviderConfig,
        model: ModelInfo,
        messages: MsgList,
        params: GenerationParams,
        tools: ToolList = None,
        cancel: asyncio.Event | None = None,
    ) -> ChatResponse:
        """
        Non-streaming call.

        Raises ConfigurationError before any network call, APIError for a
        non-2xx status, TransportError, ResponseFormatError or AbortedError.
        """
        adapter = make_adapter(provider, model)
        request = adapter.build_request(messages, params, tools, stream=False)
        logger.debug(
            "POST %s (provider=%s, key=%s)",
            request.url,
            adapter.provider_type.value,
            mask_secret(adapter.api_key),
        )

        gate = CancellationGate(cancel)
        started = time.perf_counter()
        try:
            r = await gate.run(self.http.post(request))
        except httpx.HTTPError as e:
            raise classify_exception(e) from e
        latency_ms = int((time.perf_counter() - started) * 1000)

        if not r.is_success:
            error = classify_status(r.status_code, r.reason_phrase, r.text)
            logger.warning("Provider returned %s", error)
            raise error

        try:
            data = r.json()
        except ValueError as e:
            raise ResponseFormatError(f"Response body is not JSON: {e}") from e

        parsed = adapter.parse_response(data)
        logger.info(
            "Completed %s call in %d ms (%d tool call(s))",
            provider.provider_type.value,
            latency_ms,
            len(parsed.tool_calls),
        )
        return ChatResponse(
            provider_type=provider.provider_type,
            endpoint=request.url,
            request_payload=request.payload,
            response_payload=data,
            response_text=parsed.text,
            latency_ms=latency_ms,
            tool_calls=parsed.tool_calls,
        )

    async def stream(
        self,
        provider: ProviderConfig,
        model: ModelInfo,
        messages: MsgList,
        params: GenerationParams,
        tools: ToolList = None,
        cancel: asyncio.Event | None = None,
    ) -> AsyncGenerator[OutputEvent]:
        """
        Streaming call.

        Yields TextDelta / ToolCall events followed by exactly one Done, or
        ends with a single Error event. Failures never escape as exceptions,
        except task cancellation.
        """
        gate = CancellationGate(cancel)
        try:
            adapter = make_adapter(provider, model)
            request = adapter.build_request(messages, params, tools, stream=True)
            logger.debug(
                "POST %s (stream, provider=%s, key=%s)",
                request.url,
                adapter.provider_type.value,
                mask_secret(adapter.api_key),
            )

            r = await gate.run(self.http.open_stream(request))
            try:
                if not r.is_success:
                    raise await read_response_error(r)
                events = iter_stream_events(r.aiter_bytes(), adapter.stream_parser(), gate)
                async with contextlib.aclosing(events) as stream:
                    async for event in stream:
                        yield event
            finally:
                await r.aclose()

        except AbortedError as e:
            logger.info("Streaming aborted by caller")
            yield Error(str(e), e)
        except LLMBridgeError as e:
            logger.warning("Streaming failed: %s", e)
            yield Error(str(e), e)
        except httpx.HTTPError as e:
            error = classify_exception(e)
            logger.warning("Streaming failed: %s", error)
            yield Error(str(error), error)
        except asyncio.CancelledError:
            logger.info("Streaming cancelled")
            raise

    async def close(self) -> None:
        if self._owns_http:
            await self.http.close()
