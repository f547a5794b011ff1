from .base import ParsedResponse, PreparedRequest, ProviderAdapter, StreamParser
from .client import ADAPTERS, LLMClient, make_adapter

__all__ = [
    "ADAPTERS",
    "LLMClient",
    "ParsedResponse",
    "PreparedRequest",
    "ProviderAdapter",
    "StreamParser",
    "make_adapter",
]
