"""Tests for the GitHub GraphQL client (no network)."""

from __future__ import annotations

import time
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from projectmonitor.engines.snapshot_fetcher.github_client import (
    GRAPHQL_URL,
    GitHubClient,
    QueryError,
    RateLimitError,
    _header_int,
)


def _client(*responses) -> GitHubClient:
    client = GitHubClient.__new__(GitHubClient)
    client.username = "octocat"
    client._client = AsyncMock()
    client._client.post = AsyncMock(side_effect=list(responses))
    return client


def _response(status: int = 200, body=None, headers=None) -> httpx.Response:
    return httpx.Response(status, json=body if body is not None else {}, headers=headers or {})


class TestQuery:
    @pytest.mark.anyio
    async def test_returns_data(self):
        client = _client(_response(body={"data": {"viewer": {"login": "octocat"}}}))

        data = await client.query("query { viewer { login } }", {"cursor": None})

        assert data == {"viewer": {"login": "octocat"}}
        client._client.post.assert_awaited_once_with(
            GRAPHQL_URL,
            json={"query": "query { viewer { login } }", "variables": {"cursor": None}},
        )

    @pytest.mark.anyio
    async def test_missing_variables_sent_as_empty_object(self):
        client = _client(_response(body={"data": {}}))

        await client.query("query { viewer { login } }")

        payload = client._client.post.call_args.kwargs["json"]
        assert payload["variables"] == {}

    @pytest.mark.anyio
    async def test_no_data_raises(self):
        client = _client(_response(body={"errors": [{"message": "Bad credentials"}]}))

        with pytest.raises(QueryError, match="Bad credentials"):
            await client.query("query { viewer { login } }")

    @pytest.mark.anyio
    async def test_null_data_raises(self):
        client = _client(_response(body={"data": None}))

        with pytest.raises(QueryError, match="no data"):
            await client.query("query { viewer { login } }")

    @pytest.mark.anyio
    async def test_partial_errors_still_return_data(self):
        body = {"data": {"repository": None}, "errors": [{"message": "not found"}]}
        client = _client(_response(body=body))

        data = await client.query("query { repository { url } }")

        assert data == {"repository": None}

    @pytest.mark.anyio
    async def test_client_error_is_not_retried(self):
        client = _client(_response(401))

        with pytest.raises(QueryError) as excinfo:
            await client.query("query { viewer { login } }")

        assert excinfo.value.status == 401
        assert str(excinfo.value) == "http error: 401"
        assert client._client.post.call_count == 1


class TestRetry:
    @pytest.mark.anyio
    async def test_retry_on_server_error(self):
        client = _client(_response(502), _response(body={"data": {}}))

        with patch("asyncio.sleep", new_callable=AsyncMock):
            result = await client._request_with_retry({"query": "q"})

        assert result.status_code == 200
        assert client._client.post.call_count == 2

    @pytest.mark.anyio
    async def test_retry_exhausted(self):
        client = _client(_response(503), _response(503), _response(503))

        with patch("asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(QueryError) as excinfo:
                await client._request_with_retry({"query": "q"})

        assert excinfo.value.status == 503
        assert client._client.post.call_count == 3

    @pytest.mark.anyio
    async def test_retry_on_timeout(self):
        client = _client(httpx.ReadTimeout("timeout"), _response(body={"data": {}}))

        with patch("asyncio.sleep", new_callable=AsyncMock):
            result = await client._request_with_retry({"query": "q"})

        assert result.status_code == 200

    @pytest.mark.anyio
    async def test_timeout_exhausted_reraises(self):
        client = _client(*(httpx.ReadTimeout("timeout") for _ in range(3)))

        with patch("asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(httpx.ReadTimeout):
                await client._request_with_retry({"query": "q"})

    @pytest.mark.anyio
    async def test_retry_on_403_rate_limit(self):
        limited = _response(403, headers={"X-RateLimit-Remaining": "0", "Retry-After": "5"})
        client = _client(limited, _response(body={"data": {}}))

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            result = await client._request_with_retry({"query": "q"})

        assert result.status_code == 200
        mock_sleep.assert_any_await(5)

    @pytest.mark.anyio
    async def test_403_rate_limit_exhausted(self):
        headers = {"X-RateLimit-Remaining": "0", "Retry-After": "60"}
        client = _client(*(_response(403, headers=headers) for _ in range(3)))

        with patch("asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(RateLimitError) as excinfo:
                await client._request_with_retry({"query": "q"})

        assert excinfo.value.retry_after == 60
        assert client._client.post.call_count == 3

    @pytest.mark.anyio
    async def test_403_without_rate_limit_raises(self):
        client = _client(_response(403, headers={"X-RateLimit-Remaining": "50"}))

        with pytest.raises(QueryError) as excinfo:
            await client._request_with_retry({"query": "q"})

        assert excinfo.value.status == 403
        assert client._client.post.call_count == 1


class TestRateLimitHeaders:
    @pytest.mark.anyio
    async def test_rate_limit_sleep(self):
        client = GitHubClient.__new__(GitHubClient)
        response = MagicMock()
        response.headers = {
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": str(int(time.time()) + 2),
        }

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            await client._check_rate_limit(response)

        mock_sleep.assert_called_once()
        assert mock_sleep.call_args[0][0] >= 1

    @pytest.mark.anyio
    async def test_rate_limit_no_sleep(self):
        client = GitHubClient.__new__(GitHubClient)
        response = MagicMock()
        response.headers = {"X-RateLimit-Remaining": "4999"}

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            await client._check_rate_limit(response)

        mock_sleep.assert_not_called()

    @pytest.mark.anyio
    async def test_malformed_remaining_header_ignored(self):
        client = GitHubClient.__new__(GitHubClient)
        response = MagicMock()
        response.headers = {"X-RateLimit-Remaining": "lots"}

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            await client._check_rate_limit(response)

        mock_sleep.assert_not_called()

    def test_is_rate_limited_by_remaining(self):
        response = MagicMock()
        response.headers = {"X-RateLimit-Remaining": "0"}
        assert GitHubClient._is_rate_limited(response)

    def test_is_rate_limited_by_retry_after(self):
        response = MagicMock()
        response.headers = {"Retry-After": "30"}
        assert GitHubClient._is_rate_limited(response)

    def test_not_rate_limited(self):
        response = MagicMock()
        response.headers = {"X-RateLimit-Remaining": "10"}
        assert not GitHubClient._is_rate_limited(response)

    def test_wait_defaults_to_a_minute(self):
        response = MagicMock()
        response.headers = {}
        assert GitHubClient._get_rate_limit_wait(response) == 60

    def test_header_int(self):
        response = MagicMock()
        response.headers = {"Retry-After": "42", "X-RateLimit-Reset": "abc"}

        assert _header_int(response, "Retry-After") == 42
        assert _header_int(response, "X-RateLimit-Reset") is None
        assert _header_int(response, "X-RateLimit-Remaining") is None

    def test_malformed_remaining_falls_back_to_retry_after(self):
        response = MagicMock()
        response.headers = {"X-RateLimit-Remaining": "lots", "Retry-After": "7"}

        assert GitHubClient._is_rate_limited(response)
        assert GitHubClient._get_rate_limit_wait(response) == 7

    def test_wait_from_reset_timestamp(self):
        response = MagicMock()
        response.headers = {"X-RateLimit-Reset": str(int(time.time()) + 120)}

        assert 100 <= GitHubClient._get_rate_limit_wait(response) <= 120


class TestLifecycle:
    @pytest.mark.anyio
    async def test_context_manager_closes_client(self):
        client = GitHubClient("octocat", "token")
        client._client = AsyncMock()

        async with client as entered:
            assert entered is client

        client._client.aclose.assert_awaited_once()

    @pytest.mark.anyio
    async def test_basic_auth_and_user_agent(self):
        async with GitHubClient("octocat", "token") as client:
            assert client.username == "octocat"
            assert client._client.headers["User-Agent"] == "ProjectMonitor"
            assert isinstance(client._client.auth, httpx.BasicAuth)
