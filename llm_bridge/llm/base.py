# llm_bridge/llm/base.py
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar

from llm_bridge.errors import ConfigurationError
from llm_bridge.events import ToolCall
from llm_bridge.models import (
    GenerationParams,
    Message,
    ModelInfo,
    ProviderConfig,
    ProviderType,
    ToolDefinition,
    resolve_model_identifier,
)
from llm_bridge.streaming.framing import Framing
from llm_bridge.streaming.signals import StreamSignal

JSON = dict[str, Any]
MsgList = list[Message]
ToolList = list[ToolDefinition] | None


@dataclass
class PreparedRequest:
    """Transport triple (plus query params) produced by an adapter."""

    url: str
    params: dict[str, str] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    payload: JSON = field(default_factory=dict)


@dataclass
class ParsedResponse:
    text: str
    tool_calls: list[ToolCall] = field(default_factory=list)
    finish_reason: str | None = None


class StreamParser(ABC):
    """
    Extracts semantic signals from one decoded stream payload.

    A new parser is created for every response, so implementations may
    keep per-response state.
    """

    framing: ClassVar[Framing] = Framing.SSE

    @abstractmethod
    def parse(self, payload: Any) -> list[StreamSignal]:
        ...


def normalize_base_url(endpoint: str | None, fallback: str) -> str:
    base = (endpoint or "").strip() or fallback
    return base.rstrip("/")


def build_url(base: str, path: str) -> str:
    base = base.rstrip("/")
    path = path if path.startswith("/") else f"/{path}"
    return f"{base}{path}"


def require_credentials(provider: ProviderConfig) -> tuple[str, str]:
    """Return (endpoint, api_key) or fail before any network call."""
    endpoint = (provider.api_endpoint or "").strip()
    api_key = (provider.api_key or "").strip()
    if not endpoint:
        raise ConfigurationError(
            f"unconfigured API endpoint for the provider '{provider.name or provider.id}'"
        )
    if not api_key:
        raise ConfigurationError(
            f"unconfigured API key for the provider '{provider.name or provider.id}'"
        )
    return endpoint, api_key


def set_optional(payload: JSON, key: str, value: Any) -> None:
    """Unset parameters are omitted, never sent as null."""
    if value is not None:
        payload[key] = value


def as_dict(value: Any) -> JSON:
    """Upstream JSON object, or {} when the value has another shape."""
    return value if isinstance(value, dict) else {}


def as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def as_str(value: Any) -> str | None:
    """Non-empty string value, else None."""
    return value if isinstance(value, str) and value else None



class ProviderAdapter(ABC):
    """
    Strategy interface for each provider.
    Concrete adapters produce a request, normalize the response and
    create a parser for the provider's stream format.
    """

    provider_type: ClassVar[ProviderType]
    default_base_url: ClassVar[str]

    def __init__(self, provider: ProviderConfig, model: ModelInfo):
        self.provider = provider
        self.model = model
        self.endpoint, self.api_key = require_credentials(provider)

    # ---------- helpers ----------
    def _model(self)    -> str: return resolve_model_identifier(self.model)
    def _base_url(self) -> str: return normalize_base_url(self.endpoint, self.default_base_url)

    # ---------- interface ----------
    @abstractmethod
    def build_request(
        self,
        messages: MsgList,
        params: GenerationParams,
        tools: ToolList = None,
        stream: bool = False,
    ) -> PreparedRequest:
        ...

    @abstractmethod
    def parse_response(self, data: Any) -> ParsedResponse:
        """
        Normalize a non-streaming response body.

        Raises ResponseFormatError when the body lacks the expected shape.
        """
        ...

    @abstractmethod
    def stream_parser(self) -> StreamParser:
        ...
