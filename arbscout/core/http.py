"""
Async HTTP client wrapper with timeout and retry.

Used by the non-venue adapters (asset universe, wallet status endpoints).
Venue market data goes through ccxt instead.
"""

from typing import Any, Optional

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from arbscout.core.errors import ProviderError, RateLimitError
from arbscout.core.logging import get_logger

logger = get_logger("http")


class _TransientHttpError(ProviderError):
    """Timeout or network failure; retried before surfacing."""


class HttpClient:
    """
    Async HTTP client with built-in retry, timeout, and error handling.

    Features:
    - Configurable timeout
    - Exponential backoff retry on timeouts and network errors
    - 429 mapped to RateLimitError, other >= 400 to ProviderError
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 30,
        headers: Optional[dict[str, str]] = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self.default_headers = headers or {}
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-initialized async HTTP client."""
        if self._client is None:
            client_kwargs = {
                "timeout": self.timeout,
                "headers": self.default_headers,
            }
            if self.base_url:
                client_kwargs["base_url"] = self.base_url
            self._client = httpx.AsyncClient(**client_kwargs)
        return self._client

    async def close(self) -> None:
        """Close the underlying connection pool."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @retry(
        retry=retry_if_exception_type(_TransientHttpError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    async def get(
        self,
        url: str,
        *,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        provider_name: str = "unknown",
    ) -> Any:
        """
        Make a GET request with retry logic.

        Args:
            url: Request URL (can be relative if base_url is set)
            params: Query parameters
            headers: Additional headers
            provider_name: Provider name for error reporting

        Returns:
            Decoded JSON body

        Raises:
            ProviderError: On request failure
            RateLimitError: On 429 status
        """
        try:
            logger.debug(f"GET {url} params={params}")
            response = await self.client.get(url, params=params, headers=headers)
        except httpx.TimeoutException as e:
            logger.warning(f"Timeout on GET {url}: {e}")
            raise _TransientHttpError(
                f"Request timeout: {url}",
                provider=provider_name,
            ) from e
        except httpx.NetworkError as e:
            logger.warning(f"Network error on GET {url}: {e}")
            raise _TransientHttpError(
                f"Network error: {e}",
                provider=provider_name,
            ) from e
        return self._handle_response(response, provider_name)

    def _handle_response(
        self,
        response: httpx.Response,
        provider_name: str,
    ) -> Any:
        """Handle HTTP response and decode JSON."""
        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                "Rate limit exceeded",
                provider=provider_name,
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
            )

        if response.status_code >= 400:
            logger.debug(f"HTTP {response.status_code}: {response.text[:200]}")
            raise ProviderError(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                provider=provider_name,
                recoverable=response.status_code >= 500,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(
                f"Invalid JSON from {response.url}",
                provider=provider_name,
            ) from e
