"""
llm-bridge: one chat-completion interface over OpenAI-style, Anthropic,
Google and generic OpenAI-compatible APIs, with incremental streaming.
"""

from llm_bridge.api_client import invoke_chat_completion, stream_chat_completion
from llm_bridge.chat_provider import ChatProvider
from llm_bridge.config import Configuration
from llm_bridge.errors import (
    AbortedError,
    APIError,
    AuthError,
    ConfigurationError,
    LLMBridgeError,
    ProtocolError,
    RateLimitError,
    ResponseFormatError,
    TransportError,
    UpstreamServerError,
    UpstreamStreamError,
)
from llm_bridge.events import Done, Error, OutputEvent, TextDelta, ToolCall
from llm_bridge.http_client import HttpConfig, HttpTransport
from llm_bridge.llm.client import LLMClient
from llm_bridge.models import (
    ChatRequestOptions,
    ChatResponse,
    GenerationParams,
    Message,
    ModelInfo,
    ProviderConfig,
    ProviderType,
    ToolDefinition,
)
from llm_bridge.streaming.framing import parse_sse_line
from llm_bridge.tools import ToolRegistry

__version__ = "0.1.0"

__all__ = [
    "APIError",
    "AbortedError",
    "AuthError",
    "ChatProvider",
    "ChatRequestOptions",
    "ChatResponse",
    "Configuration",
    "ConfigurationError",
    "Done",
    "Error",
    "GenerationParams",
    "HttpConfig",
    "HttpTransport",
    "LLMBridgeError",
    "LLMClient",
    "Message",
    "ModelInfo",
    "OutputEvent",
    "ProtocolError",
    "ProviderConfig",
    "ProviderType",
    "RateLimitError",
    "ResponseFormatError",
    "TextDelta",
    "ToolCall",
    "ToolDefinition",
    "ToolRegistry",
    "TransportError",
    "UpstreamServerError",
    "UpstreamStreamError",
    "invoke_chat_completion",
    "parse_sse_line",
    "stream_chat_completion",
]
