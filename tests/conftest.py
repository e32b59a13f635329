"""
Shared pytest fixtures for Pudim tests.
"""

import copy
import os

import boto3
import pytest
from moto import mock_aws

from pudim.shared.cache_keys import BINARY_KINDS, CacheKind
from pudim.shared.config import LeaderboardConfig
from pudim.shared.leaderboard import LeaderboardStore

PUDIM_ENV_VARS = (
    "REDIS_ENABLED",
    "REDIS_URL",
    "REDIS_PREFIX",
    "REDIS_STATS_PREFIX",
    "REDIS_TTL",
    "REDIS_STATISTICS_TTL",
    "REDIS_CIRCUIT_BREAKER_COOLDOWN",
    "REDIS_CONNECT_TIMEOUT",
    "REDIS_CONNECT_ATTEMPTS",
    "PUDIM_RUNTIME",
    "DYNAMODB_ENABLED",
    "DYNAMODB_TABLE",
    "DYNAMODB_ENDPOINT",
    "DYNAMODB_CIRCUIT_BREAKER_COOLDOWN",
    "LEADERBOARD_ENABLED",
    "GITHUB_TOKEN",
    "LOG_LEVEL",
)


def pytest_configure(config):
    """Set AWS credentials before test collection.

    boto3 resources created while importing handlers must not fail with
    NoRegionError or reach real AWS credentials.
    """
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
    os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
    os.environ.setdefault("AWS_REGION", "us-east-1")

    # New HTTP client per call so httpx.MockTransport works everywhere
    os.environ["USE_CONNECTION_POOLING"] = "false"


@pytest.fixture(autouse=True)
def pudim_env(monkeypatch):
    """Start every test with Redis, DynamoDB and the leaderboard disabled."""
    for name in PUDIM_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    monkeypatch.setenv("AWS_REGION", "us-east-1")


@pytest.fixture(autouse=True)
def reset_shared_clients():
    """Reset process-wide client singletons between tests."""
    from pudim.shared.clients import reset_clients

    reset_clients()
    yield
    reset_clients()


class FakeCache:
    """
    In-memory stand-in for CacheClient.

    Values are copied on the way in and out, like a JSON round trip through
    Redis, so tests catch accidental sharing of mutable state.
    """

    def __init__(self):
        self.values = {}
        self.sets = []
        self.invalidations = []

    @staticmethod
    def _key(kind: CacheKind, username=None):
        return (kind, username.lower() if username else None)

    async def get(self, kind, username=None):
        value = self.values.get(self._key(kind, username))
        if value is None or kind in BINARY_KINDS:
            return value
        return copy.deepcopy(value)

    async def set(self, kind, username, value, ttl_seconds=None):
        self.sets.append((kind, username))
        self.values[self._key(kind, username)] = value if kind in BINARY_KINDS else copy.deepcopy(value)

    async def invalidate(self, kind, username=None):
        self.invalidations.append((kind, username))
        self.values.pop(self._key(kind, username), None)


@pytest.fixture
def fake_cache():
    return FakeCache()


@pytest.fixture
def leaderboard_config():
    return LeaderboardConfig(enabled=True, region="us-east-1")


@pytest.fixture
def store(leaderboard_config, fake_cache):
    """LeaderboardStore against moto DynamoDB (table created on first use)."""
    with mock_aws():
        yield LeaderboardStore(leaderboard_config, fake_cache)


@pytest.fixture
def scores_table(store):
    """Direct boto3 handle on the (mocked) scores table, for seeding and asserts."""
    from pudim.shared.background import run_async

    assert run_async(store.ensure_schema()) is True
    dynamodb = boto3.resource("dynamodb", region_name="us-east-1")
    return dynamodb.Table(store.config.table_name)


@pytest.fixture
def make_stats():
    """Factory for GitHubStats payloads."""

    def _make(username="alice", followers=10, total_stars=5, public_repos=3, languages=None):
        return {
            "username": username,
            "avatar_url": f"https://avatars.githubusercontent.com/{username}",
            "followers": followers,
            "total_stars": total_stars,
            "public_repos": public_repos,
            "created_at": "2015-06-01T12:00:00Z",
            "languages": languages if languages is not None else [
                {"name": "Python", "count": 2, "percentage": 100.0},
            ],
        }

    return _make


@pytest.fixture
def timestamps(monkeypatch):
    """Deterministic, strictly increasing record timestamps."""
    import pudim.shared.leaderboard as leaderboard

    issued = []

    def _next():
        value = f"2024-01-01T00:00:{len(issued):02d}.000Z"
        issued.append(value)
        return value

    monkeypatch.setattr(leaderboard, "utc_timestamp", _next)
    return issued
