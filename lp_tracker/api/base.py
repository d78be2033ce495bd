"""Shared HTTP plumbing for the explorer and price clients."""

import logging
import threading
import time
from typing import Any

import httpx

logger = logging.getLogger(__name__)

# Gateway errors explorers return under load; worth another attempt
RETRYABLE_STATUS = frozenset({502, 503, 504})


class RateLimitError(Exception):
    """Raised when API rate limit is hit."""
    def __init__(self, message: str = "Rate limit exceeded", retry_after: float | None = None):
        super().__init__(message)
        self.retry_after = retry_after


class APIError(Exception):
    """Raised when API returns an error."""
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class BaseAPIClient:
    """
    JSON-over-HTTP client with throttling and retries.

    Requests are spaced at least ``min_interval`` seconds apart (free explorer
    tiers allow about five calls a second). Rate limits, gateway errors,
    timeouts and connection failures are retried up to ``max_retries`` times;
    anything else fails fast with ``APIError``.
    """

    USER_AGENT = "LPTracker/0.1.0"

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        min_interval: float = 0.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.min_interval = min_interval
        self._transport = transport
        self._client: httpx.Client | None = None
        self._throttle_lock = threading.Lock()
        self._last_request: float | None = None
        self._client_lock = threading.Lock()

    @property
    def client(self) -> httpx.Client:
        """The underlying httpx client, created on first use."""
        if self._client is None:
            with self._client_lock:
                if self._client is None:
                    self._client = httpx.Client(
                        timeout=self.timeout,
                        headers={"Accept": "application/json", "User-Agent": self.USER_AGENT},
                        transport=self._transport,
                    )
        return self._client

    def _throttle(self) -> None:
        if self.min_interval <= 0:
            return
        with self._throttle_lock:
            if self._last_request is not None:
                wait = self._last_request + self.min_interval - time.monotonic()
                if wait > 0:
                    time.sleep(wait)
            self._last_request = time.monotonic()

    def _backoff(self, attempt: int) -> float:
        return self.retry_delay * (2 ** attempt)

    def _parse(self, response: httpx.Response) -> Any:
        """Decode a response body, raising on error statuses."""
        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            try:
                seconds = float(retry_after) if retry_after else None
            except ValueError:
                seconds = None
            raise RateLimitError(retry_after=seconds)

        if response.status_code >= 400:
            try:
                body = response.json()
                message = body.get("message") or body.get("error") or str(body)
            except (ValueError, AttributeError):
                message = response.text or f"HTTP {response.status_code}"
            raise APIError(message, response.status_code)

        try:
            return response.json()
        except ValueError:
            return {"raw": response.text}

    def get(
        self,
        endpoint: str = "",
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """
        GET ``endpoint`` (relative to the base URL) and return decoded JSON.

        Raises:
            RateLimitError: still rate limited after the last attempt
            APIError: any other failure
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}" if endpoint else self.base_url
        error: Exception = APIError(f"No attempts made for {url}")

        for attempt in range(self.max_retries):
            self._throttle()
            try:
                return self._parse(self.client.get(url, params=params, headers=headers))
            except RateLimitError as e:
                error = e
                wait = e.retry_after if e.retry_after is not None else self._backoff(attempt)
            except APIError as e:
                if e.status_code not in RETRYABLE_STATUS:
                    raise
                error = e
                wait = self._backoff(attempt)
            except httpx.TimeoutException:
                error = APIError(f"Request to {url} timed out")
                wait = self.retry_delay
            except httpx.RequestError as e:
                error = APIError(f"Request to {url} failed: {e}")
                wait = self.retry_delay

            logger.debug(
                "%s (attempt %d/%d), retrying in %.1fs",
                error, attempt + 1, self.max_retries, wait,
            )
            if attempt + 1 < self.max_retries:
                time.sleep(wait)

        raise error

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            self._client.close()
            self._client = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
