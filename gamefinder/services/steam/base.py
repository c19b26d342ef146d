"""
Shared HTTP plumbing for the Steam data sources.
Handles client creation, request spacing and retry with backoff.
"""

import asyncio

import httpx

from gamefinder.config import settings
from gamefinder.infrastructure.observability.logging import get_logger
from gamefinder.services.infrastructure.rate_limiter import IntervalRateLimiter

logger = get_logger(__name__)

MAX_RETRIES = 3
BACKOFF_FACTOR = 1.0
RETRY_STATUS_CODES = {429, 500, 502, 503, 504}


class SteamApiError(Exception):
    """Raised when a Steam data source can't be reached or answers with an error."""

    def __init__(self, message: str, status_code: int | None = None, source: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.source = source


class SteamHttpClient:
    """Base class for rate-limited, retrying Steam API clients."""

    source = "steam"

    def __init__(
        self,
        base_url: str,
        min_interval_seconds: float,
        *,
        timeout: float | None = None,
        backoff_factor: float = BACKOFF_FACTOR,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.backoff_factor = backoff_factor
        self._client = client or self._create_client(timeout or settings.HTTP_TIMEOUT_SECONDS)
        self._rate_limiter = IntervalRateLimiter(min_interval_seconds, name=self.source)

    def _create_client(self, timeout: float) -> httpx.AsyncClient:
        limits = httpx.Limits(max_keepalive_connections=10, max_connections=20)
        return httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            limits=limits,
            headers={"User-Agent": "gamefinder-suggestions/1.0"},
            follow_redirects=True,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def _request_with_retry(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Execute an HTTP request with spacing, retry and backoff."""
        for attempt in range(1, MAX_RETRIES + 1):
            await self._rate_limiter.acquire()
            try:
                response = await self._client.request(method, url, **kwargs)
            except httpx.RequestError as e:
                if attempt >= MAX_RETRIES:
                    raise SteamApiError(
                        f"{self.source} request failed: {e}", source=self.source
                    ) from e
                backoff = self.backoff_factor * (2 ** (attempt - 1))
                logger.debug(
                    "Steam request error, retrying",
                    source=self.source,
                    attempt=attempt,
                    error=str(e),
                    backoff_seconds=backoff,
                )
                await asyncio.sleep(backoff)
                continue

            if response.status_code in RETRY_STATUS_CODES and attempt < MAX_RETRIES:
                backoff = self.backoff_factor * (2 ** (attempt - 1))
                logger.debug(
                    "Steam request retrying",
                    source=self.source,
                    attempt=attempt,
                    status_code=response.status_code,
                    backoff_seconds=backoff,
                )
                await asyncio.sleep(backoff)
                continue
            return response
        raise RuntimeError("Steam retry loop exhausted")

    def _raise_for_status(self, response: httpx.Response, operation: str) -> None:
        if response.is_success:
            return
        logger.warning(
            f"{self.source} {operation} failed",
            status_code=response.status_code,
        )
        raise SteamApiError(
            f"{self.source} {operation} failed with status {response.status_code}",
            status_code=response.status_code,
            source=self.source,
        )

    def _parse_json(self, response: httpx.Response, operation: str):
        try:
            return response.json() if response.text else None
        except ValueError as e:
            logger.error(f"Failed to parse {self.source} {operation} response", error=str(e))
            raise SteamApiError(f"Invalid {self.source} response format: {e}", source=self.source) from e
