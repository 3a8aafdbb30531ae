"""
================================================================================
SoloToon v1.0 - JSON Transport
================================================================================
Rate-limited, timeout-bounded JSON fetch shared by every provider adapter.

RATE LIMITING:
  - Token bucket per hostname (3 tokens, refilled over 3 seconds)
  - Each host has its own lock: two hosts never contend for tokens
  - An empty bucket blocks the caller until a token regenerates

RETRIES:
  - 429 / 503 -> wait Retry-After (or a fixed backoff) and retry exactly once
  - Any other non-2xx -> HttpError
================================================================================
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional
from urllib.parse import urlparse

import httpx

from .errors import HttpError, NetworkError, RequestTimeout

logger = logging.getLogger(__name__)

RETRY_STATUSES = (429, 503)


@dataclass
class _Bucket:
    tokens: float
    last_refill: float


class HostRateLimiter:
    """
    Per-host token bucket.

    TOKEN BUCKET ALGORITHM:
      - Bucket holds up to `max_tokens` tokens
      - Tokens regenerate at `max_tokens / refill_period` per second
      - Each request consumes 1 token
      - If no tokens, we wait until one regenerates

    The clock and sleep functions are injectable so tests can drive time.
    """

    def __init__(
        self,
        max_tokens: int = 3,
        refill_period: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.max_tokens = max_tokens
        self.refill_period = refill_period
        self.refill_rate = max_tokens / refill_period
        self._clock = clock
        self._sleep = sleep
        self._buckets: Dict[str, _Bucket] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, host: str) -> asyncio.Lock:
        lock = self._locks.get(host)
        if lock is None:
            lock = self._locks[host] = asyncio.Lock()
        return lock

    async def acquire(self, host: str) -> float:
        """Take one token for `host`, sleeping if needed. Returns seconds waited."""
        async with self._lock_for(host):
            now = self._clock()
            bucket = self._buckets.get(host)
            if bucket is None:
                bucket = self._buckets[host] = _Bucket(float(self.max_tokens), now)

            elapsed = max(0.0, now - bucket.last_refill)
            bucket.tokens = min(float(self.max_tokens), bucket.tokens + elapsed * self.refill_rate)
            bucket.last_refill = now

            waited = 0.0
            if bucket.tokens < 1:
                waited = (1 - bucket.tokens) / self.refill_rate
                logger.debug(f"Rate limit: waiting {waited:.2f}s for {host}")
                await self._sleep(waited)
                bucket.tokens = 1.0
                bucket.last_refill = self._clock()

            bucket.tokens -= 1
            return waited

    def available_tokens(self, host: str) -> float:
        bucket = self._buckets.get(host)
        return float(self.max_tokens) if bucket is None else bucket.tokens


class JsonTransport:
    """Shared HTTP access for provider adapters."""

    DEFAULT_HEADERS = {
        "Accept": "application/json",
        "User-Agent": "SoloToon/1.0",
    }

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        limiter: Optional[HostRateLimiter] = None,
        timeout: float = 10.0,
        retry_backoff: float = 2.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self._client = client
        self._owns_client = client is None
        self.limiter = limiter or HostRateLimiter()
        self.timeout = timeout
        self.retry_backoff = retry_backoff
        self._sleep = sleep

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(follow_redirects=True)
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this transport created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def fetch_json(
        self,
        url: str,
        timeout: Optional[float] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> Any:
        """
        GET `url` and decode the JSON body.

        Raises:
            RequestTimeout: the attempt exceeded its timeout
            NetworkError: connection failure or undecodable body
            HttpError: non-2xx status (including a second 429/503)
        """
        host = urlparse(url).hostname or ""
        request_headers = dict(self.DEFAULT_HEADERS)
        if headers:
            request_headers.update(headers)
        timeout = self.timeout if timeout is None else timeout

        await self.limiter.acquire(host)
        response = await self._send(url, host, request_headers, timeout)

        if response.status_code in RETRY_STATUSES:
            delay = self._retry_delay(response)
            logger.warning(f"{host}: throttled ({response.status_code}), retrying once in {delay:.1f}s")
            await self._sleep(delay)
            await self.limiter.acquire(host)
            response = await self._send(url, host, request_headers, timeout)

        if not response.is_success:
            raise HttpError(host, response.status_code, url, response.reason_phrase)

        try:
            return response.json()
        except ValueError as e:
            raise NetworkError(host, url, f"Invalid JSON body: {e}") from e

    async def _send(
        self,
        url: str,
        host: str,
        headers: Dict[str, str],
        timeout: float
    ) -> httpx.Response:
        client = self._get_client()
        try:
            return await asyncio.wait_for(
                client.get(url, headers=headers, timeout=timeout),
                timeout
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            raise RequestTimeout(host, url) from None
        except httpx.RequestError as e:
            raise NetworkError(host, url, str(e) or e.__class__.__name__) from e

    def _retry_delay(self, response: httpx.Response) -> float:
        """Seconds to wait before the single retry."""
        retry_after = response.headers.get("Retry-After")
        try:
            return max(0.0, float(retry_after))
        except (TypeError, ValueError):
            return self.retry_backoff
