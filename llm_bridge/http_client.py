"""
HTTP transport for llm-bridge.

A thin wrapper over one shared httpx.AsyncClient:
- Connection pooling and keep-alive limits from config
- Separate connect and read timeouts
- Plain and streamed POSTs of a PreparedRequest

Requests are never retried here; a failed call surfaces as an error and
the caller decides whether to try again.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import BaseModel

if TYPE_CHECKING:
    from llm_bridge.llm.base import PreparedRequest

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "llm-bridge/0.1"


class HttpConfig(BaseModel):
    """Configuration for the shared HTTP client."""

    # Timeouts
    timeout: float = 60.0
    connect_timeout: float = 10.0

    # Connection pool
    max_keepalive_connections: int = 20
    max_connections: int = 100
    keepalive_expiry: float = 30.0

    user_agent: str = DEFAULT_USER_AGENT


class HttpTransport:
    """Owns the httpx client used by every provider call."""

    def __init__(
        self,
        config: HttpConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Args:
            config: HTTP configuration settings
            transport: Optional httpx transport, e.g. httpx.MockTransport in tests
        """
        self.config = config or HttpConfig()
        self.http = httpx.AsyncClient(
            timeout=httpx.Timeout(
                self.config.timeout, connect=self.config.connect_timeout
            ),
            headers={"User-Agent": self.config.user_agent},
            limits=httpx.Limits(
                max_keepalive_connections=self.config.max_keepalive_connections,
                max_connections=self.config.max_connections,
                keepalive_expiry=self.config.keepalive_expiry,
            ),
            transport=transport,
        )

    def build(self, request: PreparedRequest) -> httpx.Request:
        return self.http.build_request(
            "POST",
            request.url,
            params=request.params or None,
            headers=request.headers,
            json=request.payload,
        )

    async def post(self, request: PreparedRequest) -> httpx.Response:
        """Send a request and read the whole body."""
        return await self.http.send(self.build(request))

    async def open_stream(self, request: PreparedRequest) -> httpx.Response:
        """
        Send a request and return once headers arrive.

        The body is left unread; the caller must ``aclose()`` the response.
        """
        return await self.http.send(self.build(request), stream=True)

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self.http.aclose()

    async def __aenter__(self) -> HttpTransport:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def create_http_config_from_dict(config_dict: dict[str, Any]) -> HttpConfig:
    """
    Create HttpConfig from a dictionary (e.g., from YAML config).

    Args:
        config_dict: Dictionary containing an optional ``http`` section

    Returns:
        HttpConfig instance with validated settings
    """
    http_config = config_dict.get("http") or {}

    return HttpConfig(
        timeout=http_config.get("timeout", 60.0),
        connect_timeout=http_config.get("connect_timeout", 10.0),
        max_keepalive_connections=http_config.get("max_keepalive_connections", 20),
        max_connections=http_config.get("max_connections", 100),
        keepalive_expiry=http_config.get("keepalive_expiry", 30.0),
        user_agent=http_config.get("user_agent", DEFAULT_USER_AGENT),
    )
