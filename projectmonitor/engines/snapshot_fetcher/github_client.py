"""Async GitHub GraphQL client with rate-limit handling and retries."""

from __future__ import annotations

import asyncio
import time
from typing import Any

import httpx
import structlog

log = structlog.get_logger("projectmonitor.engine.github")

GRAPHQL_URL = "https://api.github.com/graphql"
USER_AGENT = "ProjectMonitor"

_MAX_RETRIES = 3
_RETRY_BASE_DELAY = 1.0  # seconds
_DEFAULT_RATE_LIMIT_WAIT = 60  # seconds


class QueryError(Exception):
    """Raised when a GraphQL query fails or returns no data."""

    def __init__(self, message: str, status: int | None = None) -> None:
        self.status = status
        super().__init__(message)

    @classmethod
    def http_error(cls, status: int) -> QueryError:
        return cls(f"http error: {status}", status=status)

    @classmethod
    def no_data(cls, errors: list[dict[str, Any]] | None = None) -> QueryError:
        if errors:
            messages = "; ".join(str(e.get("message", e)) for e in errors)
            return cls(f"no data: {messages}")
        return cls("no data")


class RateLimitError(Exception):
    """Raised when GitHub rate limit is exhausted and we need to wait."""

    def __init__(self, retry_after: int) -> None:
        self.retry_after = retry_after
        super().__init__(f"rate limit exceeded, retry after {retry_after}s")


class GitHubClient:
    """Thin async wrapper around the GitHub GraphQL API."""

    def __init__(self, username: str, access_token: str) -> None:
        self.username = username
        self._client = httpx.AsyncClient(
            auth=(username, access_token),
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            timeout=30.0,
        )

    # ── lifecycle ──────────────────────────────────────────────────────────

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ── public ─────────────────────────────────────────────────────────────

    async def query(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Run a GraphQL *query* and return its ``data`` object.

        Raises :class:`QueryError` on a non-success status or when the
        response carries no data.
        """
        response = await self._request_with_retry({"query": query, "variables": variables or {}})
        await self._check_rate_limit(response)

        body = response.json()
        data = body.get("data") if isinstance(body, dict) else None
        if data is None:
            raise QueryError.no_data(body.get("errors") if isinstance(body, dict) else None)
        if isinstance(body, dict) and body.get("errors"):
            log.warning("github.partial_errors", errors=body["errors"])
        return data

    # ── internal ───────────────────────────────────────────────────────────

    async def _request_with_retry(self, payload: dict[str, Any]) -> httpx.Response:
        """POST with exponential backoff on 5xx, 403 rate-limit, and timeout errors."""
        last_exc: Exception | None = None
        for attempt in range(_MAX_RETRIES):
            try:
                resp = await self._client.post(GRAPHQL_URL, json=payload)

                if resp.status_code == 403 and self._is_rate_limited(resp):
                    wait = self._get_rate_limit_wait(resp)
                    log.warning(
                        "github.rate_limit",
                        wait_seconds=wait,
                        attempt=attempt + 1,
                        max_retries=_MAX_RETRIES,
                    )
                    await asyncio.sleep(wait)
                    last_exc = RateLimitError(wait)
                    continue

                if resp.status_code < 500:
                    if not 200 <= resp.status_code < 300:
                        raise QueryError.http_error(resp.status_code)
                    return resp

                log.warning(
                    "github.server_error",
                    status=resp.status_code,
                    attempt=attempt + 1,
                    max_retries=_MAX_RETRIES,
                )
                last_exc = QueryError.http_error(resp.status_code)
            except httpx.TimeoutException as exc:
                log.warning("github.timeout", attempt=attempt + 1, max_retries=_MAX_RETRIES)
                last_exc = exc

            if attempt < _MAX_RETRIES - 1:
                delay = _RETRY_BASE_DELAY * (2**attempt)
                await asyncio.sleep(delay)

        raise last_exc  # type: ignore[misc]

    async def _check_rate_limit(self, response: httpx.Response) -> None:
        """Sleep until rate-limit resets if remaining == 0."""
        if _header_int(response, "X-RateLimit-Remaining") == 0:
            wait = self._get_rate_limit_wait(response)
            log.warning("github.rate_limit_wait", wait_seconds=wait)
            await asyncio.sleep(wait)

    @staticmethod
    def _is_rate_limited(response: httpx.Response) -> bool:
        remaining = _header_int(response, "X-RateLimit-Remaining")
        if remaining is not None:
            return remaining == 0
        # Secondary rate limits only send Retry-After
        return "Retry-After" in response.headers

    @staticmethod
    def _get_rate_limit_wait(response: httpx.Response) -> int:
        retry_after = _header_int(response, "Retry-After")
        if retry_after is not None:
            return max(retry_after, 1)
        reset_ts = _header_int(response, "X-RateLimit-Reset")
        if reset_ts is not None:
            return max(reset_ts - int(time.time()), 1)
        return _DEFAULT_RATE_LIMIT_WAIT


def _header_int(response: httpx.Response, name: str) -> int | None:
    """Integer value of header *name*, or None if it is absent or malformed."""
    value = response.headers.get(name)
    if value is None:
        return None
    try:
        return int(value)
    except (ValueError, TypeError):
        return None

