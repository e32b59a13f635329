"""
GitHub collector - public profile statistics for the pudim score.

Provides:
- Followers, public repository count, account creation date
- Total stars across the first 100 repositories
- Top 5 languages by repository count

Results are cached in Redis (CacheKind.STATS). Failures are returned as a
tagged StatsError value, never raised.

Rate limit: 60 requests/hour unauthenticated, 5,000 with GITHUB_TOKEN.
Each uncached fetch costs 2 requests (user + repos).
"""

import logging
import os
import time
from typing import Optional
from urllib.parse import quote

import httpx

from pudim.shared.background import detach
from pudim.shared.cache_keys import CacheKind
from pudim.shared.clients import get_cache_client
from pudim.shared.error_classification import classify_transport_error
from pudim.shared.errors import HTTP_ERROR, NOT_FOUND, RATE_LIMITED, UPSTREAM_UNAVAILABLE, stats_error
from pudim.shared.logging_utils import error_context, log_external_call
from pudim.shared.types import LanguageEntry, StatsResult

from .http_client import get_github_client, github_headers, owns_client

logger = logging.getLogger(__name__)

REPOS_PER_PAGE = 100
TOP_LANGUAGES = 5


def summarize_languages(repos: list[dict]) -> list[LanguageEntry]:
    """
    Language histogram over repositories with a declared language.

    Counts repositories, not bytes. Percentages are relative to the number
    of repositories that declare a language.
    """
    counts: dict[str, int] = {}
    for repo in repos:
        language = repo.get("language")
        if language:
            counts[language] = counts.get(language, 0) + 1

    total = sum(counts.values())
    languages = [
        {"name": name, "count": count, "percentage": (count / total) * 100 if total else 0}
        for name, count in counts.items()
    ]
    # Stable sort keeps first-seen order for ties
    languages.sort(key=lambda entry: entry["count"], reverse=True)
    return languages[:TOP_LANGUAGES]


def _status_error(status_code: int):
    if status_code == 404:
        return stats_error(NOT_FOUND)
    if status_code == 403:
        return stats_error(RATE_LIMITED)
    if status_code >= 500:
        return stats_error(UPSTREAM_UNAVAILABLE)
    return stats_error(HTTP_ERROR, status_code=status_code)


class GitHubCollector:
    """
    Cache-first GitHub statistics fetcher.
    """

    def __init__(
        self,
        cache=None,
        token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            cache: CacheClient (or None to skip caching)
            token: GitHub Personal Access Token, defaults to GITHUB_TOKEN
            transport: httpx transport override (tests use MockTransport)
        """
        self.cache = cache
        self.token = token or os.environ.get("GITHUB_TOKEN")
        self.headers = github_headers(self.token)
        self.transport = transport

    async def fetch_stats(self, username: str) -> StatsResult:
        """
        Fetch statistics for a GitHub user.

        Returns:
            GitHubStats on success, or {"error": message, "code": code}
        """
        # GET /users/ would list users, not fetch one
        if not username or not username.strip():
            return stats_error(NOT_FOUND)

        if self.cache is not None:
            cached = await self.cache.get(CacheKind.STATS, username)
            if cached:
                logger.info(f"[GitHub Stats] Using cached data for user {username}")
                return cached

        logger.info(f"[GitHub Stats] Fetching from GitHub API for user {username}")
        client = get_github_client(self.headers, self.transport)
        try:
            stats = await self._fetch_from_github(client, username)
        except Exception as e:
            error_result = stats_error(classify_transport_error(e), error_name=type(e).__name__)
            logger.error(
                f"[GitHub Stats] Failed to fetch stats for user {username}",
                extra={"username": username, "code": error_result["code"], **error_context(e)},
            )
            return error_result
        finally:
            if not owns_client(client):
                await client.aclose()

        if "error" in stats:
            return stats

        if self.cache is not None:
            detach(self.cache.set(CacheKind.STATS, username, stats), f"stats cache write for {username}")

        return stats

    async def _fetch_from_github(self, client: httpx.AsyncClient, username: str) -> StatsResult:
        start = time.time()
        resp = await client.get(f"/users/{quote(username, safe='')}")
        latency_ms = (time.time() - start) * 1000

        if resp.status_code != 200:
            log_external_call(logger, "github", "get_user", False, latency_ms, f"HTTP {resp.status_code}")
            logger.error(
                f"[GitHub Stats] GitHub API error for user {username}",
                extra={
                    "username": username,
                    "status_code": resp.status_code,
                    "response_body": resp.text[:500],
                    "rate_limit_remaining": resp.headers.get("X-RateLimit-Remaining"),
                },
            )
            return _status_error(resp.status_code)

        log_external_call(logger, "github", "get_user", True, latency_ms)
        user = resp.json()

        repos = await self._fetch_repos(client, user.get("repos_url"), username)

        return {
            "username": user["login"],
            "avatar_url": user["avatar_url"],
            "followers": user["followers"],
            "public_repos": user["public_repos"],
            "total_stars": sum(repo.get("stargazers_count") or 0 for repo in repos),
            "created_at": user["created_at"],
            "languages": summarize_languages(repos),
        }

    async def _fetch_repos(self, client: httpx.AsyncClient, repos_url: Optional[str], username: str) -> list[dict]:
        """First page of repositories; any failure degrades to an empty list."""
        if not repos_url:
            return []

        start = time.time()
        try:
            resp = await client.get(repos_url, params={"per_page": REPOS_PER_PAGE})
            latency_ms = (time.time() - start) * 1000
            if resp.status_code != 200:
                log_external_call(logger, "github", "list_repos", False, latency_ms, f"HTTP {resp.status_code}")
                return []
            repos = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            log_external_call(logger, "github", "list_repos", False, (time.time() - start) * 1000, type(e).__name__)
            logger.warning(
                f"[GitHub Stats] Could not list repositories for {username}, continuing without them",
                extra={"username": username, **error_context(e)},
            )
            return []

        log_external_call(logger, "github", "list_repos", True, latency_ms)
        return repos if isinstance(repos, list) else []


async def fetch_stats(username: str, cache=None) -> StatsResult:
    """Fetch statistics with the process-wide cache client unless one is given."""
    if cache is None:
        cache = get_cache_client()
    return await GitHubCollector(cache).fetch_stats(username)
