"""
Shared HTTP client for the GitHub API, with connection pooling.

Clients are cached per Authorization header so the user and repository
lookups of one invocation reuse the same TLS connection, and a rotated
GITHUB_TOKEN gets a fresh client.

Testing:
    Set USE_CONNECTION_POOLING=false to get a new client per call, or pass
    a transport (httpx.MockTransport) to stub GitHub entirely.

Lambda creates a new event loop per invocation while reusing the execution
context, and an AsyncClient is bound to the loop it was first used on, so a
cached client is dropped when the loop changes.
"""

import asyncio
import hashlib
import logging
import os
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

GITHUB_API = "https://api.github.com"

DEFAULT_TIMEOUT = httpx.Timeout(
    30.0,  # Total timeout
    connect=10.0,  # Connection timeout
)

DEFAULT_LIMITS = httpx.Limits(
    max_connections=100,
    max_keepalive_connections=20,
    keepalive_expiry=30.0,
)

# Cached GitHub clients, keyed by token hash
_github_clients: dict[str, httpx.AsyncClient] = {}
_github_client_loop_ids: dict[str, Optional[int]] = {}


def _use_connection_pooling() -> bool:
    """Check if connection pooling is enabled (runtime check)."""
    return os.environ.get("USE_CONNECTION_POOLING", "true").lower() == "true"


def github_headers(token: Optional[str] = None) -> dict:
    """Default headers for GitHub REST calls, with auth if a token is set."""
    headers = {
        "Accept": "application/vnd.github.v3+json",
        "X-GitHub-Api-Version": "2022-11-28",
        "User-Agent": "pudim-score",
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def _new_client(headers: dict, transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=GITHUB_API,
        timeout=DEFAULT_TIMEOUT,
        limits=DEFAULT_LIMITS,
        follow_redirects=True,
        http2=False,
        headers=headers,
        transport=transport,
    )


def get_github_client(
    headers: dict,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """
    Get a cached HTTP client for the GitHub API.

    Args:
        headers: Headers including the optional Authorization token
        transport: Custom transport; bypasses the cache (used by tests)

    Returns:
        httpx.AsyncClient configured for GitHub
    """
    if transport is not None or not _use_connection_pooling():
        return _new_client(headers, transport)

    # Hash so tokens are not kept as dict keys in plain text
    auth_header = headers.get("Authorization", "")
    token_hash = hashlib.sha256(auth_header.encode()).hexdigest()[:16]

    try:
        current_loop_id = id(asyncio.get_running_loop())
    except RuntimeError:
        current_loop_id = None

    if token_hash in _github_clients and _github_client_loop_ids.get(token_hash) != current_loop_id:
        logger.debug("Event loop changed, recreating GitHub client")
        del _github_clients[token_hash]
        del _github_client_loop_ids[token_hash]

    if token_hash not in _github_clients:
        logger.debug("Creating cached GitHub client")
        _github_clients[token_hash] = _new_client(headers)
        _github_client_loop_ids[token_hash] = current_loop_id

    return _github_clients[token_hash]


def owns_client(client: httpx.AsyncClient) -> bool:
    """True if the client is pooled here and must not be closed by the caller."""
    return any(cached is client for cached in _github_clients.values())


async def close_http_clients() -> None:
    """Close every cached GitHub client."""
    clients = list(_github_clients.values())
    _github_clients.clear()
    _github_client_loop_ids.clear()
    for client in clients:
        await client.aclose()
    if clients:
        logger.debug("Closed shared GitHub clients")
