"""
Canonical data model shared by every provider adapter.

Pydantic v2 models for the request side (messages, generation parameters,
tool definitions, provider/model records) and the non-streaming result.
Streaming output events live in llm_bridge.events.
"""

from __future__ import annotations

import math
import re
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from llm_bridge.events import ToolCall

# Upper bound for max_output_tokens after resolution
TOKEN_LIMIT = 8192
DEFAULT_MAX_OUTPUT_TOKENS = 128

_NUMERIC_ID = re.compile(r"^[0-9]+$")

Role = Literal["system", "user", "assistant", "tool"]


# ---------- Provider / model records ----------

class ProviderType(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"
    GENERIC = "generic"

    @classmethod
    def infer(cls, endpoint: str | None) -> ProviderType:
        """Guess the provider type of a legacy record from its endpoint."""
        lowered = (endpoint or "").lower()
        if "openai.com" in lowered:
            return cls.OPENAI
        if "anthropic.com" in lowered:
            return cls.ANTHROPIC
        if "googleapis.com" in lowered:
            return cls.GOOGLE
        return cls.GENERIC

    @property
    def openai_compatible(self) -> bool:
        return self in (ProviderType.OPENAI, ProviderType.GENERIC)


class ModelCapabilities(BaseModel):
    image_input: bool = False
    tool_calling: bool | int | None = None


class ModelInfo(BaseModel):
    id: str
    name: str = ""
    family: str = ""
    version: str = "1.0.0"
    max_input_tokens: int = 4096
    max_output_tokens: int = 1024
    tooltip: str | None = None
    detail: str | None = None
    capabilities: ModelCapabilities = Field(default_factory=ModelCapabilities)

    @model_validator(mode="after")
    def _default_name(self) -> ModelInfo:
        if not self.name:
            self.name = self.id
        return self


class ProviderConfig(BaseModel):
    id: str
    name: str = ""
    provider_type: ProviderType = ProviderType.GENERIC
    api_endpoint: str | None = None
    api_key: str | None = None
    description: str | None = None
    website: str | None = None
    models: list[ModelInfo] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _infer_type(cls, data: Any) -> Any:
        # Records saved before provider_type existed only carry an endpoint
        if isinstance(data, dict) and not data.get("provider_type"):
            data = dict(data)
            data["provider_type"] = ProviderType.infer(data.get("api_endpoint"))
        return data

    def find_model(self, model_id: str) -> ModelInfo | None:
        for model in self.models:
            if model.id == model_id:
                return model
        return None


def resolve_model_identifier(model: ModelInfo) -> str:
    """
    Pick the wire model name for a model record.

    A purely numeric id is an internal record id, not a model name, so the
    family wins in that case.
    """
    trimmed_id = (model.id or "").strip()
    if trimmed_id and not _NUMERIC_ID.match(trimmed_id):
        return trimmed_id
    trimmed_family = (model.family or "").strip()
    if trimmed_family:
        return trimmed_family
    return trimmed_id or model.family


# ---------- Messages ----------

class TextPart(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ToolCallPart(BaseModel):
    type: Literal["tool_call"] = "tool_call"
    name: str
    arguments: str = "{}"
    call_id: str | None = None


class ToolResultPart(BaseModel):
    type: Literal["tool_result"] = "tool_result"
    call_id: str
    content: str


Part = Annotated[TextPart | ToolCallPart | ToolResultPart, Field(discriminator="type")]


class Message(BaseModel):
    role: Role
    content: str | list[Part]

    @property
    def parts(self) -> list[TextPart | ToolCallPart | ToolResultPart]:
        if isinstance(self.content, str):
            return [TextPart(text=self.content)]
        return list(self.content)

    def text(self) -> str:
        """Concatenated text of all text parts."""
        if isinstance(self.content, str):
            return self.content
        return "".join(p.text for p in self.content if isinstance(p, TextPart))

    def tool_calls(self) -> list[ToolCallPart]:
        return [p for p in self.parts if isinstance(p, ToolCallPart)]

    def tool_results(self) -> list[ToolResultPart]:
        return [p for p in self.parts if isinstance(p, ToolResultPart)]


# ---------- Tools ----------

class ToolDefinition(BaseModel):
    identifier: str
    name: str = ""
    description: str | None = None
    parameters: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )
    tags: list[str] = Field(default_factory=list)
    source: Literal["host", "fallback", "request"] = "request"

    @field_validator("parameters", mode="before")
    @classmethod
    def _normalize_parameters(cls, value: Any) -> dict[str, Any]:
        return normalize_parameters(value)

    @model_validator(mode="after")
    def _default_name(self) -> ToolDefinition:
        if not self.name.strip():
            self.name = self.identifier
        return self


def normalize_parameters(value: Any) -> dict[str, Any]:
    """Coerce a tool parameter schema into a JSON-schema object."""
    if not isinstance(value, dict) or not value:
        return {"type": "object", "properties": {}}
    type_value = value.get("type")
    if isinstance(type_value, str) and type_value.strip():
        return value
    return {"type": "object", "properties": value}


# ---------- Generation parameters ----------

def resolve_max_tokens(value: Any) -> int:
    """Resolve a requested token ceiling into [1, TOKEN_LIMIT]."""
    if isinstance(value, bool) or not isinstance(value, int | float):
        return DEFAULT_MAX_OUTPUT_TOKENS
    if not math.isfinite(value) or value <= 0:
        return DEFAULT_MAX_OUTPUT_TOKENS
    return min(max(math.floor(value), 1), TOKEN_LIMIT)


def clamp(value: float | None, low: float, high: float) -> float | None:
    """Clamp into [low, high]; NaN and infinities count as unset."""
    if value is None or not math.isfinite(value):
        return None
    return min(max(value, low), high)


class GenerationParams(BaseModel):
    """Sampling parameters, already clamped to what providers accept."""

    temperature: float | None = None
    top_p: float | None = None
    max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS
    presence_penalty: float | None = None
    frequency_penalty: float | None = None

    @field_validator("max_output_tokens", mode="before")
    @classmethod
    def _resolve_max_tokens(cls, value: Any) -> int:
        return resolve_max_tokens(value)

    @field_validator("temperature")
    @classmethod
    def _finite_temperature(cls, value: float | None) -> float | None:
        return None if value is None or not math.isfinite(value) else value

    @field_validator("top_p")
    @classmethod
    def _clamp_top_p(cls, value: float | None) -> float | None:
        return clamp(value, 0.0, 1.0)

    @field_validator("presence_penalty", "frequency_penalty")
    @classmethod
    def _clamp_penalty(cls, value: float | None) -> float | None:
        return clamp(value, -2.0, 2.0)


class ChatRequestOptions(BaseModel):
    """Completion-style request: optional history plus a new user prompt."""

    prompt: str = ""
    conversation: list[Message] = Field(default_factory=list)
    temperature: float | None = None
    top_p: float | None = None
    max_output_tokens: float | None = None
    override_max_output_tokens: float | None = None
    presence_penalty: float | None = None
    frequency_penalty: float | None = None
    tools: list[ToolDefinition] | None = None

    def build_messages(self) -> list[Message]:
        messages = list(self.conversation)
        if self.prompt:
            messages.append(Message(role="user", content=self.prompt))
        return messages

    def generation_params(self, model: ModelInfo | None = None) -> GenerationParams:
        requested: float | None = self.override_max_output_tokens
        if requested is None:
            requested = self.max_output_tokens
        if requested is None and model is not None:
            requested = model.max_output_tokens
        return GenerationParams(
            temperature=self.temperature,
            top_p=self.top_p,
            max_output_tokens=requested,
            presence_penalty=self.presence_penalty,
            frequency_penalty=self.frequency_penalty,
        )


# ---------- Results ----------

class ChatResponse(BaseModel):
    """Result of a non-streaming call."""

    provider_type: ProviderType
    endpoint: str
    request_payload: dict[str, Any]
    response_payload: Any
    response_text: str
    latency_ms: int
    tool_calls: list[ToolCall] = Field(default_factory=list)
