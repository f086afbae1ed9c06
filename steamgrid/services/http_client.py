"""HTTP client service used for artwork and profile requests."""

import asyncio
import time
from typing import Any

import httpx
import structlog

log = structlog.stdlib.get_logger()

USER_AGENT = "steamgrid/0.1.0 (+grid image downloader)"


class HttpClientService:
    """Thin wrapper around a shared ``httpx.AsyncClient``.

    Every call is a single attempt: there are no retries anywhere in the
    artwork pipeline. Status codes are not turned into exceptions here because
    callers treat 404 and other 4xx/5xx answers differently.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        rate_limit_delay: float = 0.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the HTTP client service.

        Args:
            timeout: Per-request timeout in seconds (connect, read and write)
            rate_limit_delay: Minimum delay between requests in seconds
            transport: Optional custom transport
        """
        self.timeout = timeout
        self.rate_limit_delay = rate_limit_delay
        self._last_request_time: float = 0.0

        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
            transport=transport,
        )

        log.debug(
            "HTTP client service initialized",
            timeout=timeout,
            rate_limit_delay=rate_limit_delay,
        )

    async def get(self, url: str) -> httpx.Response:
        """Make a single GET request.

        Args:
            url: The URL to request

        Returns:
            HTTP response object, whatever its status code

        Raises:
            httpx.TransportError: On DNS, connection or timeout failures
        """
        await self._enforce_rate_limit()

        log.debug("Making HTTP GET request", url=url)
        try:
            response = await self._client.get(url)
        except httpx.TransportError as e:
            log.warning(
                "HTTP GET request failed",
                url=url,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        log.debug(
            "HTTP GET request completed",
            url=url,
            status_code=response.status_code,
            content_length=len(response.content),
        )
        return response

    async def _enforce_rate_limit(self) -> None:
        if self.rate_limit_delay <= 0:
            return

        time_since_last = time.monotonic() - self._last_request_time
        if time_since_last < self.rate_limit_delay:
            sleep_time = self.rate_limit_delay - time_since_last
            log.debug("Rate limiting: sleeping", sleep_time=sleep_time)
            await asyncio.sleep(sleep_time)

        self._last_request_time = time.monotonic()

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._client.aclose()
        log.debug("HTTP client closed")

    async def __aenter__(self) -> "HttpClientService":
        return self

    async def __aexit__(self, exc_type: type[Exception] | None, exc_val: Exception | None, exc_tb: Any) -> None:
        await self.close()
