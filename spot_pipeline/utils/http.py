"""
HTTP utilities for the enrichment pipeline.

Provides robust HTTP fetching with retry logic, rate limiting awareness,
and proper error handling.
"""

from typing import Optional

import httpx
from tenacity import (
    Retrying,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)
from loguru import logger


# Default headers for requests
DEFAULT_HEADERS = {
    "User-Agent": "SpotEnrichment/1.0 (Point-of-interest backfill; batch job)",
    "Accept": "application/json, */*",
}


class HTTPError(Exception):
    """Custom HTTP error with status code."""

    def __init__(self, message: str, status_code: int = None, response: httpx.Response = None):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class RateLimitError(HTTPError):
    """Raised when rate limited by a provider."""

    @property
    def retry_after(self) -> float | None:
        if self.response is None:
            return None
        try:
            return float(self.response.headers.get("Retry-After", ""))
        except ValueError:
            return None


class HttpFetcher:
    """
    Shared HTTP client for all provider adapters of a run.

    Usage:
        with HttpFetcher(timeout=30) as http:
            response = http.get("https://example.org", params={"q": "x"})
    """

    def __init__(
        self,
        timeout: float = 30,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        client: httpx.Client | None = None,
    ):
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._client = client
        self._owns_client = client is None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout, follow_redirects=True)
            self._owns_client = True
        return self._client

    def close(self) -> None:
        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None

    def get(
        self,
        url: str,
        params: Optional[dict] = None,
        headers: Optional[dict] = None,
    ) -> httpx.Response:
        """
        GET a URL with automatic retry on timeouts and connection errors.

        Raises:
            RateLimitError: When rate limited (429)
            HTTPError: For other HTTP errors (4xx, 5xx)
            httpx.TimeoutException / httpx.TransportError: After retries
        """
        retrying = Retrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=self.retry_delay, min=0, max=60),
            retry=retry_if_exception_type((httpx.TimeoutException, httpx.ConnectError)),
            reraise=True,
        )
        return retrying(self._request, "GET", url, params=params, headers=headers)

    def _request(
        self,
        method: str,
        url: str,
        params: Optional[dict] = None,
        headers: Optional[dict] = None,
    ) -> httpx.Response:
        request_headers = {**DEFAULT_HEADERS, **(headers or {})}

        logger.debug(f"Fetching {method} {url}")
        response = self.client.request(method=method, url=url, headers=request_headers, params=params)

        # Handle rate limiting
        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After", "60")
            raise RateLimitError(
                f"Rate limited by {url}. Retry after {retry_after}s",
                status_code=429,
                response=response,
            )

        # Handle other HTTP errors
        if response.status_code >= 400:
            raise HTTPError(
                f"HTTP {response.status_code} for {url}: {response.text[:200]}",
                status_code=response.status_code,
                response=response,
            )

        logger.debug(f"Fetched {url} ({response.status_code}, {len(response.content)} bytes)")
        return response
