"""Chat completion backend client with rate limiting and error handling."""

import asyncio
import os
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Any

import httpx
from cuid2 import cuid_wrapper
from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter

from app.utils.logging import get_logger

logger = get_logger(__name__)

cuid = cuid_wrapper()


def parse_retry_after(value: str | None, default: float) -> float:
    """Seconds to wait according to a Retry-After header.

    Accepts delta-seconds (integer or fractional) and HTTP dates. Missing or
    unparseable values give ``default``; dates in the past give 0.
    """
    if not value:
        return default
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        retry_at = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return default
    if retry_at.tzinfo is None:
        retry_at = retry_at.replace(tzinfo=UTC)
    return max(0.0, (retry_at - datetime.now(UTC)).total_seconds())


class HTTPError(Exception):
    """A backend call finished with a non-success HTTP response."""

    def __init__(self, message: str, response: httpx.Response):
        super().__init__(message)
        self.message = message
        self.response = response


@dataclass
class BackendConfig:
    """Configuration for the chat completion backend."""

    base_url: str = "https://api.openai.com/v1"
    api_key: str | None = None
    timeout: float = 60.0
    max_retries: int = 3
    retry_delay: float = 1.0
    rate_limit_per_minute: int | None = None

    @classmethod
    def from_env(cls) -> "BackendConfig":
        """Build configuration from BACKEND_* environment variables."""
        rate_limit = os.getenv("BACKEND_RATE_LIMIT")
        return cls(
            base_url=os.getenv("BACKEND_BASE_URL", cls.base_url),
            api_key=os.getenv("BACKEND_API_KEY"),
            timeout=float(os.getenv("BACKEND_TIMEOUT", cls.timeout)),
            max_retries=int(os.getenv("BACKEND_MAX_RETRIES", cls.max_retries)),
            rate_limit_per_minute=int(rate_limit) if rate_limit else None,
        )


class RequestRateLimiter:
    """Moving-window request rate limiter."""

    def __init__(self, requests_per_minute: int):
        """Initialize rate limiter.

        Args:
            requests_per_minute: Maximum requests per minute
        """
        self.storage = MemoryStorage()
        self.limiter = MovingWindowRateLimiter(self.storage)
        self.request_limit = parse(f"{requests_per_minute}/minute")

    async def wait_for_slot(self, identifier: str = "backend") -> None:
        """Wait until a request fits within the rate limit."""
        while not self.limiter.hit(self.request_limit, identifier):
            window_stats = self.limiter.get_window_stats(self.request_limit, identifier)
            wait_time = max(0.0, window_stats.reset_time - time.time())
            logger.warning(f"Request rate limit exceeded, waiting {wait_time:.2f}s")
            await asyncio.sleep(wait_time or 0.1)


class BackendClient:
    """Client for an OpenAI-compatible chat completion backend."""

    config: BackendConfig
    client: httpx.AsyncClient
    rate_limiter: RequestRateLimiter | None = None

    def __init__(self, config: BackendConfig | None = None, client: httpx.AsyncClient | None = None):
        """Initialize backend client.

        Args:
            config: Backend configuration (defaults to environment)
            client: HTTP client to use, mostly for tests
        """
        self.config = config or BackendConfig.from_env()

        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"

        self.client = client or httpx.AsyncClient(
            base_url=self.config.base_url,
            headers=headers,
            timeout=self.config.timeout,
        )
        if self.config.rate_limit_per_minute:
            self.rate_limiter = RequestRateLimiter(self.config.rate_limit_per_minute)

    async def create_chat_completion(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Forward a chat completion request to the backend.

        Args:
            payload: Request body with normalized messages

        Returns:
            Decoded JSON body of the backend response

        Raises:
            HTTPError: If the backend answers with a non-success status
        """
        request_id = cuid()
        if self.rate_limiter:
            await self.rate_limiter.wait_for_slot()

        logger.debug(
            f"[{request_id}] Forwarding {len(payload.get('messages', []))} messages "
            f"to backend, model: {payload.get('model')}"
        )
        response = await self._request_with_retries(
            lambda: self.client.post("/chat/completions", json=payload, headers={"X-Request-Id": request_id})
        )

        if response.is_error:
            logger.error(f"[{request_id}] Backend returned {response.status_code} {response.reason_phrase}")
            raise HTTPError("Failed to create chat completions", response)

        logger.debug(f"[{request_id}] Backend responded with {response.status_code}")
        return response.json()

    async def _request_with_retries(self, call: Callable[[], Awaitable[httpx.Response]]) -> httpx.Response:
        """Execute a backend request, retrying rate limits and server errors."""
        for attempt in range(self.config.max_retries):
            last_attempt = attempt == self.config.max_retries - 1
            try:
                response = await call()
            except httpx.TransportError as e:
                if last_attempt:
                    raise
                logger.warning(f"Backend transport error: {e}, retrying")
                await asyncio.sleep(self.config.retry_delay * (2**attempt))
                continue

            if response.status_code == 429 and not last_attempt:
                retry_after = parse_retry_after(response.headers.get("retry-after"), self.config.retry_delay)
                if retry_after < 120:
                    logger.warning(f"Backend rate limit exceeded, retrying in {retry_after:.2f}s")
                    await asyncio.sleep(retry_after)
                    continue

            elif response.status_code >= 500 and not last_attempt:
                # Server error, retry with exponential backoff
                await asyncio.sleep(self.config.retry_delay * (2**attempt))
                continue

            return response

        raise Exception(f"Failed to complete request after {self.config.max_retries} attempts")

    async def aclose(self) -> None:
        await self.client.aclose()


_backend_client: BackendClient | None = None


def get_backend_client() -> BackendClient:
    """Get or create backend client instance."""
    global _backend_client
    if _backend_client is None:
        _backend_client = BackendClient()
    return _backend_client
