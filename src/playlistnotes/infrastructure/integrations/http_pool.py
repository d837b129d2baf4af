"""Shared HTTP client pool for connection reuse.

Hey future me - every outbound call (adapter → token endpoint, adapter → Spotify Web API,
token endpoint → Spotify accounts) goes through ONE httpx.AsyncClient. Keep-alive means
the metadata and tracks requests of a Spotify page reuse the same TLS connection, and
with HTTP/2 they are even multiplexed over it.

Usage:
    from playlistnotes.infrastructure.integrations.http_pool import HttpClientPool

    client = await HttpClientPool.get_client()
    response = await client.get("https://api.spotify.com/v1/playlists/...")

HttpClientPool.close() runs in the app lifespan shutdown (see main.py).
"""

import asyncio
import logging
from typing import Any, ClassVar

import httpx

logger = logging.getLogger(__name__)


class HttpClientPool:
    """Process-wide singleton httpx.AsyncClient.

    - Lazy initialization (created on first use)
    - Guarded by an asyncio.Lock so two first callers don't create two clients
    - Proper cleanup at shutdown
    """

    _client: ClassVar[httpx.AsyncClient | None] = None
    _lock: ClassVar[asyncio.Lock | None] = None

    DEFAULT_TIMEOUT: ClassVar[float] = 15.0
    DEFAULT_MAX_KEEPALIVE: ClassVar[int] = 10
    DEFAULT_MAX_CONNECTIONS: ClassVar[int] = 20

    @classmethod
    def _ensure_lock(cls) -> asyncio.Lock:
        # Created lazily so it binds to the running event loop, not import time
        if cls._lock is None:
            cls._lock = asyncio.Lock()
        return cls._lock

    @classmethod
    async def get_client(
        cls,
        timeout: float | None = None,
        max_keepalive: int | None = None,
        max_connections: int | None = None,
    ) -> httpx.AsyncClient:
        """Get the shared HTTP client instance.

        Config params only apply on the FIRST call, later calls get the same client.

        Args:
            timeout: Request timeout in seconds
            max_keepalive: Max idle connections to keep open
            max_connections: Max total concurrent connections

        Returns:
            Shared httpx.AsyncClient instance
        """
        async with cls._ensure_lock():
            if cls._client is None:
                effective_timeout = timeout or cls.DEFAULT_TIMEOUT
                effective_keepalive = max_keepalive or cls.DEFAULT_MAX_KEEPALIVE
                effective_max_conn = max_connections or cls.DEFAULT_MAX_CONNECTIONS

                cls._client = httpx.AsyncClient(
                    timeout=httpx.Timeout(effective_timeout),
                    limits=httpx.Limits(
                        max_keepalive_connections=effective_keepalive,
                        max_connections=effective_max_conn,
                    ),
                    http2=True,
                    follow_redirects=True,
                )
                logger.info(
                    "HTTP client pool initialized (timeout=%.1fs, keepalive=%d, max_conn=%d)",
                    effective_timeout,
                    effective_keepalive,
                    effective_max_conn,
                )

            return cls._client

    @classmethod
    async def close(cls) -> None:
        """Close the shared client. A later get_client() creates a fresh one."""
        async with cls._ensure_lock():
            if cls._client is not None:
                await cls._client.aclose()
                cls._client = None
                logger.info("HTTP client pool closed")

    @classmethod
    def is_initialized(cls) -> bool:
        """Check if the client pool has been initialized (used by the health probe)."""
        return cls._client is not None

    @classmethod
    def get_pool_stats(cls) -> dict[str, Any]:
        """Basic pool status for the health endpoint."""
        if cls._client is None:
            return {"initialized": False}
        return {
            "initialized": True,
            "max_connections": cls.DEFAULT_MAX_CONNECTIONS,
            "max_keepalive": cls.DEFAULT_MAX_KEEPALIVE,
            "closed": cls._client.is_closed,
        }
