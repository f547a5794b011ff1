from .anthropic import AnthropicAdapter
from .google import GoogleAdapter
from .openai_compat import GenericAdapter, OpenAICompatibleAdapter

__all__ = [
    "AnthropicAdapter",
    "GenericAdapter",
    "GoogleAdapter",
    "OpenAICompatibleAdapter",
]
