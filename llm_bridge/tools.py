"""
Caller-owned tool registry.

Host tools are captured from whatever the caller hands us per request;
fallback tools come from a loader the caller supplies and are read once.
Lookups try host tools first, then fallback tools, matching by identifier
before name.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Literal

from pydantic import ValidationError

from llm_bridge.models import ToolDefinition

logger = logging.getLogger(__name__)

ToolSource = Literal["host", "fallback", "request"]
FallbackLoader = Callable[[], Iterable[Any]]

_ID_KEYS = ("id", "identifier", "name")
_DESCRIPTION_KEYS = ("description", "detail", "summary")
_SCHEMA_KEYS = ("parameters", "inputSchema", "schema")


def _first_string(raw: Mapping[str, Any], keys: Iterable[str]) -> str | None:
    for key in keys:
        value = raw.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def normalize_tool(raw: Any, source: ToolSource = "request") -> ToolDefinition | None:
    """
    Coerce a tool description from any of the accepted shapes.

    Returns None for entries without any usable identifier.
    """
    if isinstance(raw, ToolDefinition):
        return raw.model_copy(update={"source": source})
    if not isinstance(raw, Mapping):
        logger.debug("Skipping tool entry of type %s", type(raw).__name__)
        return None

    identifier = _first_string(raw, _ID_KEYS)
    if identifier is None:
        logger.debug("Skipping tool entry without an identifier: %r", raw)
        return None

    parameters = None
    for key in _SCHEMA_KEYS:
        if key in raw:
            parameters = raw[key]
            break

    tags = raw.get("tags")
    try:
        return ToolDefinition(
            identifier=identifier,
            name=_first_string(raw, ("name",)) or identifier,
            description=_first_string(raw, _DESCRIPTION_KEYS),
            parameters=parameters,
            tags=[t for t in tags if isinstance(t, str)] if isinstance(tags, list) else [],
            source=source,
        )
    except ValidationError as e:
        logger.warning("Invalid tool definition '%s': %s", identifier, e)
        return None


class ToolRegistry:
    """Host and fallback tool definitions for one chat provider."""

    def __init__(self, fallback_loader: FallbackLoader | None = None) -> None:
        self._host: list[ToolDefinition] = []
        self._fallback: list[ToolDefinition] | None = None
        self._fallback_loader = fallback_loader

    def capture_host_tools(self, tools: Iterable[Any] | None) -> list[ToolDefinition]:
        """Replace the host tools with the normalized ``tools``."""
        self._host = self._normalize_all(tools or [], "host")
        return list(self._host)

    def set_fallback_tools(self, tools: Iterable[Any]) -> None:
        self._fallback = self._normalize_all(tools, "fallback")

    def fallback_definitions(self) -> list[ToolDefinition]:
        if self._fallback is None:
            self._fallback = self._load_fallback()
        return list(self._fallback)

    def find_tool(self, identifier: str) -> ToolDefinition | None:
        candidates = [*self._host, *self.fallback_definitions()]
        for tool in candidates:
            if tool.identifier == identifier:
                return tool
        for tool in candidates:
            if tool.name == identifier:
                return tool
        return None

    # ---------- helpers ----------
    @staticmethod
    def _normalize_all(tools: Iterable[Any], source: ToolSource) -> list[ToolDefinition]:
        normalized = (normalize_tool(raw, source) for raw in tools)
        return [tool for tool in normalized if tool is not None]

    def _load_fallback(self) -> list[ToolDefinition]:
        if self._fallback_loader is None:
            return []
        try:
            loaded = list(self._fallback_loader())
        except Exception as e:
            logger.warning("Failed to load fallback tools: %s", e)
            return []
        tools = self._normalize_all(loaded, "fallback")
        logger.debug("Loaded %d fallback tool(s)", len(tools))
        return tools
