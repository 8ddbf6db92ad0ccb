"""Google Sheets values API client with rate limiting, timeouts and retries."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from core.config import Settings
from core.errors import RemoteReadError, RemoteWriteError, TransportError

logger = structlog.get_logger(__name__)

# Throttling and server faults are transient; other 4xx are rejections.
RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})

Cell = str | int | float
Grid = list[list[Cell]]


@dataclass
class RateLimiter:
    """Simple rate limiter enforcing a minimum interval between requests."""

    rate: float  # requests per second
    _last_request: float = field(default=0.0, init=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)

    async def acquire(self) -> None:
        """Wait if needed to respect rate limit.

        Concurrent callers are served one at a time, each at least one
        interval after the previous.
        """
        if self.rate <= 0:
            return

        min_interval = 1.0 / self.rate
        async with self._lock:
            elapsed = time.monotonic() - self._last_request
            if elapsed < min_interval:
                await asyncio.sleep(min_interval - elapsed)
            self._last_request = time.monotonic()


def _log_retry(state: RetryCallState) -> None:
    error = state.outcome.exception() if state.outcome else None
    logger.warning(
        "Remote store call failed, retrying",
        attempt=state.attempt_number,
        error=str(error),
        next_delay=state.next_action.sleep if state.next_action else None,
    )


class SheetsClient:
    """Async client for one spreadsheet's values endpoints."""

    def __init__(
        self,
        spreadsheet_id: str,
        api_key: str = "",
        access_token: str = "",
        base_url: str = "https://sheets.googleapis.com/v4/spreadsheets",
        timeout: float = 30.0,
        rate_limit: float = 1.0,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.spreadsheet_id = spreadsheet_id
        self.api_key = api_key
        self.access_token = access_token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.rate_limiter = RateLimiter(rate=rate_limit)
        self._transport = transport

        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> SheetsClient:
        return cls(
            spreadsheet_id=settings.spreadsheet_id,
            api_key=settings.sheets_api_key,
            access_token=settings.sheets_access_token,
            base_url=settings.sheets_base_url,
            timeout=settings.request_timeout_seconds,
            rate_limit=settings.rate_limit_rps,
            max_retries=settings.max_retries,
            retry_delay=settings.retry_delay_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> SheetsClient:
        headers = {"Content-Type": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            headers=headers,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    # Values API

    async def get_values(self, range_: str) -> Grid:
        """Read a range. Missing ``values`` means the range is empty."""
        data = await self._send("GET", self._values_url(range_), write=False)
        return data.get("values", [])

    async def append_values(self, range_: str, rows: Sequence[Sequence[Cell]]) -> dict[str, Any]:
        return await self._send(
            "POST",
            self._values_url(range_, ":append"),
            params={"valueInputOption": "RAW", "insertDataOption": "INSERT_ROWS"},
            json={"values": [list(r) for r in rows]},
            write=True,
        )

    async def update_values(self, range_: str, rows: Sequence[Sequence[Cell]]) -> dict[str, Any]:
        return await self._send(
            "PUT",
            self._values_url(range_),
            params={"valueInputOption": "RAW"},
            json={"values": [list(r) for r in rows]},
            write=True,
        )

    async def batch_update_values(
        self, data: Sequence[tuple[str, Sequence[Sequence[Cell]]]]
    ) -> dict[str, Any]:
        return await self._send(
            "POST",
            f"{self.base_url}/{self.spreadsheet_id}/values:batchUpdate",
            json={
                "valueInputOption": "RAW",
                "data": [
                    {"range": range_, "values": [list(r) for r in rows]}
                    for range_, rows in data
                ],
            },
            write=True,
        )

    # Transport

    async def fetch_with_retry(
        self, operation: Callable[[], Awaitable[httpx.Response]]
    ) -> httpx.Response:
        """Run ``operation`` with bounded attempts and linear backoff.

        Attempt n failing waits ``retry_delay * n`` before the next one. Only
        transport failures are retried; after the last attempt its error is
        raised as-is.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_incrementing(start=self.retry_delay, increment=self.retry_delay),
            retry=retry_if_exception_type(TransportError),
            before_sleep=_log_retry,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                await self.rate_limiter.acquire()
                try:
                    response = await operation()
                except httpx.TransportError as e:
                    raise TransportError(
                        f"Remote store unreachable: {type(e).__name__}: {e}"
                    ) from e
                if response.status_code in RETRYABLE_STATUS_CODES:
                    raise TransportError(
                        f"Remote store returned HTTP {response.status_code}",
                        status_code=response.status_code,
                    )
                return response
        raise AssertionError("unreachable")  # pragma: no cover

    async def _send(
        self,
        method: str,
        url: str,
        *,
        write: bool,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        if not self._client:
            raise RuntimeError("Client not initialized. Use 'async with' context.")

        query = dict(params or {})
        if self.api_key:
            query["key"] = self.api_key

        client = self._client
        try:
            response = await self.fetch_with_retry(
                lambda: client.request(method, url, params=query, json=json)
            )
        except TransportError as e:
            if write and e.status_code is not None:
                raise RemoteWriteError(
                    f"Remote store write failed after {self.max_retries} attempts "
                    f"(HTTP {e.status_code})",
                    status_code=e.status_code,
                ) from e
            raise

        if not response.is_success:
            message = _error_message(response)
            if write:
                raise RemoteWriteError(
                    f"Remote store rejected write (HTTP {response.status_code}): {message}",
                    status_code=response.status_code,
                )
            raise RemoteReadError(
                f"Remote store rejected read (HTTP {response.status_code}): {message}",
                status_code=response.status_code,
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            error = RemoteWriteError if write else RemoteReadError
            raise error(
                f"Remote store returned an unreadable body (HTTP {response.status_code})",
                status_code=response.status_code,
            ) from e

    def _values_url(self, range_: str, suffix: str = "") -> str:
        return f"{self.base_url}/{self.spreadsheet_id}/values/{quote(range_, safe='!:$')}{suffix}"


def _error_message(response: httpx.Response) -> str:
    try:
        return response.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return response.text[:200] or response.reason_phrase
