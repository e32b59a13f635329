"""
Tests for the GitHub HTTP client with connection pooling.

Tests cover:
- Connection pooling behavior (enabled/disabled via environment)
- Event loop handling (Lambda reuse scenarios)
- Client configuration (base URL, timeouts, headers)
- close_http_clients() cleanup
"""

import asyncio
import os
from unittest.mock import patch

import httpx
import pytest

from pudim.collectors import http_client
from pudim.collectors.http_client import (
    DEFAULT_TIMEOUT,
    GITHUB_API,
    _use_connection_pooling,
    close_http_clients,
    get_github_client,
    github_headers,
    owns_client,
)


def run_async(coro):
    """Run a coroutine on a fresh loop, like a Lambda invocation."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@pytest.fixture(autouse=True)
def clean_clients():
    yield
    # Clients created without a loop or on closed loops; drop them unclosed
    http_client._github_clients.clear()
    http_client._github_client_loop_ids.clear()


class TestConnectionPoolingConfiguration:
    def test_pooling_disabled_by_default_in_tests(self):
        # conftest.py sets USE_CONNECTION_POOLING=false
        assert _use_connection_pooling() is False

    def test_pooling_enabled_case_insensitive(self):
        with patch.dict(os.environ, {"USE_CONNECTION_POOLING": "TRUE"}):
            assert _use_connection_pooling() is True

    def test_pooling_disabled_for_invalid_value(self):
        with patch.dict(os.environ, {"USE_CONNECTION_POOLING": "yes"}):
            assert _use_connection_pooling() is False


class TestGitHubHeaders:
    def test_anonymous(self):
        headers = github_headers()
        assert headers["Accept"] == "application/vnd.github.v3+json"
        assert headers["User-Agent"] == "pudim-score"
        assert "Authorization" not in headers

    def test_with_token(self):
        assert github_headers("ghp_abc")["Authorization"] == "Bearer ghp_abc"


class TestPoolingDisabled:
    def test_creates_new_client_each_call(self):
        client1 = get_github_client(github_headers())
        client2 = get_github_client(github_headers())

        assert client1 is not client2
        assert not owns_client(client1)

    def test_client_configuration(self):
        client = get_github_client(github_headers())

        assert str(client.base_url).rstrip("/") == GITHUB_API
        assert client.timeout.connect == DEFAULT_TIMEOUT.connect
        assert client.follow_redirects is True

    def test_transport_bypasses_pool(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200))

        with patch.dict(os.environ, {"USE_CONNECTION_POOLING": "true"}):
            client = get_github_client(github_headers(), transport=transport)

        assert not owns_client(client)


class TestPoolingEnabled:
    def test_same_client_within_one_loop(self):
        async def get_twice():
            return get_github_client(github_headers()), get_github_client(github_headers())

        with patch.dict(os.environ, {"USE_CONNECTION_POOLING": "true"}):
            first, second = run_async(get_twice())

        assert first is second
        assert owns_client(first)

    def test_separate_clients_per_token(self):
        async def get_both():
            return get_github_client(github_headers("a")), get_github_client(github_headers("b"))

        with patch.dict(os.environ, {"USE_CONNECTION_POOLING": "true"}):
            first, second = run_async(get_both())

        assert first is not second

    def test_new_client_when_loop_changes(self):
        async def get_client():
            return get_github_client(github_headers())

        with patch.dict(os.environ, {"USE_CONNECTION_POOLING": "true"}):
            first = run_async(get_client())
            # Simulate a loop id that cannot match the next invocation
            for key in http_client._github_client_loop_ids:
                http_client._github_client_loop_ids[key] = -1
            second = run_async(get_client())

        assert first is not second
        assert not owns_client(first)
        assert owns_client(second)


class TestCloseHttpClients:
    def test_closes_and_clears_cached_clients(self):
        async def scenario():
            client = get_github_client(github_headers())
            await close_http_clients()
            return client

        with patch.dict(os.environ, {"USE_CONNECTION_POOLING": "true"}):
            client = run_async(scenario())

        assert client.is_closed
        assert http_client._github_clients == {}

    def test_noop_without_clients(self):
        run_async(close_http_clients())
        assert http_client._github_clients == {}
