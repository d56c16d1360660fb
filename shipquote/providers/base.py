"""Base provider class with common HTTP retry and error handling logic."""
from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from ..exceptions import ProviderError, ProviderResponseError, ProviderTimeoutError, is_retryable_error
from ..models import ParsedRequest, ProviderResult

logger = logging.getLogger(__name__)


class BaseProvider(ABC):
    """Base class for every outbound HTTP collaborator.

    Provides common functionality:
    - Per-request timeout
    - Retry logic for transient failures (connection errors, 429, 5xx)
    - Translation of httpx failures into ProviderError subclasses
    - Standardized provider identification for logs and results

    Subclasses implement the provider_name property.
    """

    # Default timeout (seconds)
    DEFAULT_TIMEOUT = 15.0

    # Retry configuration
    MAX_RETRIES = 2

    def __init__(self, timeout: float = DEFAULT_TIMEOUT):
        """Initialize base provider.

        Args:
            timeout: Request timeout in seconds
        """
        self.timeout = timeout

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Canonical provider name (e.g. 'Shippo', 'Freightos').

        Used for logging, quote attribution and providerStatus keys.
        """

    async def _request_with_retry(
        self,
        method: str,
        client: httpx.AsyncClient,
        url: str,
        **kwargs
    ) -> httpx.Response:
        """Issue a request, retrying transient failures.

        Raises:
            ProviderTimeoutError: If every attempt timed out
            ProviderResponseError: On a non-retryable status or exhausted retries
            ProviderError: On connection failures after all retries
        """
        last_error: Optional[Exception] = None
        send = client.get if method == "GET" else client.post

        for attempt in range(self.MAX_RETRIES):
            try:
                response = await send(url, **kwargs, timeout=self.timeout)

                if response.status_code == 429:
                    retry_after = response.headers.get("Retry-After", "unspecified")
                    logger.warning(f"{self.provider_name} rate limited. Retry-After: {retry_after}")

                response.raise_for_status()
                return response

            except httpx.HTTPStatusError as e:
                last_error = e
                status = e.response.status_code
                error = ProviderResponseError(
                    f"{self.provider_name} returned HTTP {status}",
                    provider=self.provider_name,
                    status_code=status,
                )
                if is_retryable_error(error) and attempt < self.MAX_RETRIES - 1:
                    logger.warning(f"{self.provider_name} returned {status}, retrying...")
                    continue
                raise error from e

            except httpx.TimeoutException as e:
                last_error = e
                if attempt < self.MAX_RETRIES - 1:
                    logger.warning(f"{self.provider_name} timed out, retrying... (attempt {attempt + 1})")
                    continue
                raise ProviderTimeoutError(
                    f"{self.provider_name} timed out after {self.MAX_RETRIES} attempts",
                    provider=self.provider_name,
                ) from e

            except httpx.HTTPError as e:
                last_error = e
                if attempt < self.MAX_RETRIES - 1:
                    logger.warning(f"{self.provider_name} connection error, retrying... (attempt {attempt + 1})")
                    continue
                raise ProviderError(
                    f"{self.provider_name} request failed: {e}",
                    provider=self.provider_name,
                ) from e

        raise ProviderError(
            f"{self.provider_name} failed after {self.MAX_RETRIES} attempts: {last_error}",
            provider=self.provider_name,
        )

    async def _get_with_retry(self, client: httpx.AsyncClient, url: str, **kwargs) -> httpx.Response:
        return await self._request_with_retry("GET", client, url, **kwargs)

    async def _post_with_retry(self, client: httpx.AsyncClient, url: str, **kwargs) -> httpx.Response:
        return await self._request_with_retry("POST", client, url, **kwargs)

    def _parse_json_safe(self, response: httpx.Response) -> Any:
        """Parse a JSON body.

        Raises:
            ProviderResponseError: If the body is not valid JSON
        """
        try:
            return response.json()
        except ValueError as e:
            raise ProviderResponseError(
                f"{self.provider_name} returned a malformed body: {e}",
                provider=self.provider_name,
            ) from e


class RateProvider(BaseProvider):
    """A provider that prices a ParsedRequest.

    ``get_quotes`` never raises: every failure is reported through the
    returned ProviderResult.
    """

    @abstractmethod
    async def get_quotes(self, parsed: ParsedRequest) -> ProviderResult:
        """Quote the shipment."""

    @property
    def enabled(self) -> bool:
        return True

    @staticmethod
    def _to_float(value: Any) -> Optional[float]:
        """Parse a provider amount ("12.50", 12.5); None when absent or invalid."""
        if value is None or isinstance(value, bool):
            return None
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
        return number if math.isfinite(number) else None

    @staticmethod
    def _as_dict(value: Any) -> Dict[str, Any]:
        return value if isinstance(value, dict) else {}
