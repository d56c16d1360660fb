"""
Shared HTTP Client Pool Service

One httpx.AsyncClient for every outbound call (Shippo, Freightos, the
geocoder and the postal lookup) so connections are reused across requests:
- Connection pooling (HTTP/1.1 and HTTP/2)
- Keep-alive configuration
- Default timeouts from settings; callers pass tighter per-request ones
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from ..config import get_settings

logger = logging.getLogger(__name__)


class HTTPClientPool:
    """
    Singleton HTTP client pool for all external API calls.
    """

    _instance: Optional[HTTPClientPool] = None
    _client: Optional[httpx.AsyncClient] = None

    def __new__(cls) -> HTTPClientPool:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if self._client is None:
            self._initialize_client()

    @staticmethod
    def _initialize_client() -> None:
        """Create a shared AsyncClient."""
        settings = get_settings()
        limits = httpx.Limits(
            max_connections=100,
            max_keepalive_connections=20,
            keepalive_expiry=5.0,
        )
        timeout = httpx.Timeout(
            timeout=settings.http_timeout,
            connect=min(10.0, settings.http_timeout),
            pool=5.0,
        )

        HTTPClientPool._client = httpx.AsyncClient(
            limits=limits,
            timeout=timeout,
            http2=True,
            verify=True,
            follow_redirects=True,
        )

        logger.info(
            f"HTTP Client Pool initialized: max_connections=100, timeout={settings.http_timeout}s"
        )

    @classmethod
    def get_client(cls) -> httpx.AsyncClient:
        """Get the shared HTTP client instance."""
        cls()
        if HTTPClientPool._client is None or HTTPClientPool._client.is_closed:
            HTTPClientPool._initialize_client()
        return HTTPClientPool._client

    @classmethod
    async def close(cls) -> None:
        """Close the shared HTTP client pool."""
        if HTTPClientPool._client:
            await HTTPClientPool._client.aclose()
            HTTPClientPool._client = None
            logger.info("HTTP Client Pool closed")


def get_http_client() -> httpx.AsyncClient:
    """
    Get the shared HTTP client pool.

    This function should be used instead of creating new AsyncClient instances.
    """
    return HTTPClientPool.get_client()


async def close_http_pool() -> None:
    """Close the HTTP client pool (called on application shutdown)."""
    await HTTPClientPool.close()
