"""
Completion-style entry points: one prompt (plus optional history) in, one
answer out.

``invoke_chat_completion`` works for every provider type. The streaming
variant only streams OpenAI-compatible providers; other provider types get
a single Error event. ``ChatProvider`` streams every provider type.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncGenerator, AsyncIterator

from llm_bridge.errors import ConfigurationError
from llm_bridge.events import Error, OutputEvent
from llm_bridge.http_client import HttpTransport
from llm_bridge.llm.base import require_credentials
from llm_bridge.llm.client import LLMClient
from llm_bridge.models import ChatRequestOptions, ChatResponse, ModelInfo, ProviderConfig
from llm_bridge.streaming.framing import parse_sse_line

__all__ = [
    "STREAMING_UNSUPPORTED_MESSAGE",
    "invoke_chat_completion",
    "parse_sse_line",
    "stream_chat_completion",
]

logger = logging.getLogger(__name__)

STREAMING_UNSUPPORTED_MESSAGE = (
    "Streaming currently only supported for OpenAI / OpenAI-compatible endpoints"
)


@contextlib.asynccontextmanager
async def _client_scope(http: HttpTransport | None) -> AsyncIterator[LLMClient]:
    # A shared transport stays open; a private one is closed with the call
    client = LLMClient(http=http)
    try:
        yield client
    finally:
        await client.close()


async def invoke_chat_completion(
    provider: ProviderConfig,
    model: ModelInfo,
    options: ChatRequestOptions,
    *,
    http: HttpTransport | None = None,
    cancel: asyncio.Event | None = None,
) -> ChatResponse:
    """
    Send one non-streaming chat completion.

    Raises:
        ConfigurationError: missing endpoint or key, before any request
        APIError: non-2xx response
        TransportError: network failure or timeout
        ResponseFormatError: 2xx body without the expected shape
        AbortedError: ``cancel`` fired
    """
    require_credentials(provider)
    async with _client_scope(http) as client:
        return await client.complete(
            provider,
            model,
            options.build_messages(),
            options.generation_params(model),
            options.tools,
            cancel=cancel,
        )


async def stream_chat_completion(
    provider: ProviderConfig,
    model: ModelInfo,
    options: ChatRequestOptions,
    *,
    http: HttpTransport | None = None,
    cancel: asyncio.Event | None = None,
) -> AsyncGenerator[OutputEvent]:
    """Stream one chat completion as OutputEvents."""
    try:
        require_credentials(provider)
    except ConfigurationError as e:
        yield Error(str(e), e)
        return

    if not provider.provider_type.openai_compatible:
        logger.warning(
            "Completion-style streaming requested for %s provider '%s'",
            provider.provider_type.value,
            provider.id,
        )
        yield Error(STREAMING_UNSUPPORTED_MESSAGE)
        return

    async with _client_scope(http) as client:
        events = client.stream(
            provider,
            model,
            options.build_messages(),
            options.generation_params(model),
            options.tools,
            cancel=cancel,
        )
        async with contextlib.aclosing(events) as stream:
            async for event in stream:
                yield event
