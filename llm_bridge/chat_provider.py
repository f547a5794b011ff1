"""
Host-facing chat provider.

Lists the configured models under prefixed ids, streams a response for one
of them through LLMClient (every provider type, tools included) and
approximates token counts for the host's context budgeting.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncGenerator, Iterable
from typing import Any, Protocol

from pydantic import BaseModel, Field

from llm_bridge.events import Error, OutputEvent
from llm_bridge.llm.client import LLMClient
from llm_bridge.models import (
    ChatRequestOptions,
    Message,
    ModelCapabilities,
    ModelInfo,
    ProviderConfig,
    ToolDefinition,
)
from llm_bridge.tokens import TokenCounter
from llm_bridge.tools import ToolRegistry, normalize_tool

logger = logging.getLogger(__name__)

MODEL_ID_PREFIX = "llm-bridge:"
MODEL_NOT_FOUND_MESSAGE = "cannot find the specified model."


class ProviderRepository(Protocol):
    def get_providers(self) -> list[ProviderConfig]: ...

    def find_model(self, model_id: str) -> tuple[ProviderConfig, ModelInfo] | None: ...


class ChatModelInformation(BaseModel):
    """One entry of the model picker."""

    id: str
    name: str
    family: str
    version: str
    max_input_tokens: int
    max_output_tokens: int
    tooltip: str
    detail: str
    capabilities: ModelCapabilities = Field(default_factory=ModelCapabilities)


def strip_model_prefix(model_id: str) -> str:
    if model_id.startswith(MODEL_ID_PREFIX):
        return model_id[len(MODEL_ID_PREFIX):]
    return model_id


class ChatProvider:
    def __init__(
        self,
        repository: ProviderRepository,
        *,
        tools: ToolRegistry | None = None,
        client: LLMClient | None = None,
        token_counter: TokenCounter | None = None,
    ) -> None:
        self.repository = repository
        self.tools = tools or ToolRegistry()
        self._owns_client = client is None
        self.client = client or LLMClient()
        self.token_counter = token_counter or TokenCounter()

    async def close(self) -> None:
        if self._owns_client:
            await self.client.close()

    def list_models(self, silent: bool = False) -> list[ChatModelInformation]:
        """
        Every configured model as picker entries.

        Silent listing skips providers without an API key so the host does
        not offer models that cannot answer.
        """
        providers = self.repository.get_providers()
        if silent:
            providers = [p for p in providers if p.api_key and p.api_key.strip()]

        entries: list[ChatModelInformation] = []
        for p in providers:
            for m in p.models:
                budget = f"{m.max_input_tokens}↑/{m.max_output_tokens}↓"
                entries.append(
                    ChatModelInformation(
                        id=f"{MODEL_ID_PREFIX}{m.id}",
                        name=f"{m.name} ({p.name or p.id})",
                        family=m.family,
                        version=m.version,
                        max_input_tokens=m.max_input_tokens,
                        max_output_tokens=m.max_output_tokens,
                        tooltip=m.tooltip or f"{p.name or p.id} - {budget}",
                        detail=m.detail or budget,
                        capabilities=m.capabilities,
                    )
                )
        return entries

    async def stream_response(
        self,
        model_id: str,
        messages: list[Message],
        options: ChatRequestOptions | None = None,
        cancel: asyncio.Event | None = None,
    ) -> AsyncGenerator[OutputEvent]:
        """
        Stream a reply to ``messages`` from the model behind ``model_id``.

        ``options`` supplies sampling parameters and the request's tools;
        its prompt and conversation are ignored here.
        """
        options = options or ChatRequestOptions()
        found = self.repository.find_model(strip_model_prefix(model_id))
        if found is None:
            logger.warning("Unknown model requested: %s", model_id)
            yield Error(MODEL_NOT_FOUND_MESSAGE)
            return

        provider, model = found
        tools = self.resolve_tool_definitions(options.tools)
        if model.capabilities.tool_calling is False:
            tools = None

        logger.info(
            "Streaming %s via %s (%d message(s), %d tool(s))",
            model.id,
            provider.provider_type.value,
            len(messages),
            len(tools or []),
        )
        events = self.client.stream(
            provider,
            model,
            list(messages),
            options.generation_params(model),
            tools,
            cancel=cancel,
        )
        async with contextlib.aclosing(events) as stream:
            async for event in stream:
                yield event

    def count_tokens(self, value: str | Message | Any) -> int:
        return self.token_counter.count(value)

    def resolve_tool_definitions(
        self, requested: Iterable[Any] | None
    ) -> list[ToolDefinition] | None:
        """
        Tools for one request: the requested ones (looked up in the registry
        by id when given as bare identifiers), else the registry's fallback
        tools. None when there is nothing to offer.
        """
        if not requested:
            fallback = self.tools.fallback_definitions()
            return fallback or None

        resolved: list[ToolDefinition] = []
        for raw in requested:
            if isinstance(raw, str):
                tool = self.tools.find_tool(raw)
                if tool is None:
                    logger.warning("Requested tool '%s' is not registered", raw)
                    continue
            else:
                tool = normalize_tool(raw, "request")
                if tool is None:
                    continue
            resolved.append(tool)
        return resolved or None
