"""
Process-wide client factory with lazy initialization.

Defers Redis and DynamoDB client creation until first use so handlers that
never touch a dependency do not pay for it on cold start. Each client owns
its own connection and circuit breaker; tests swap them with set_*().
"""

from typing import Optional

from .cache import CacheClient
from .config import CacheConfig, LeaderboardConfig
from .leaderboard import LeaderboardStore

_cache_client: Optional[CacheClient] = None
_leaderboard_store: Optional[LeaderboardStore] = None


def get_cache_client() -> CacheClient:
    """Get the Redis cache client, creating it lazily on first use."""
    global _cache_client
    if _cache_client is None:
        _cache_client = CacheClient(CacheConfig.from_env())
    return _cache_client


def get_leaderboard_store() -> LeaderboardStore:
    """Get the DynamoDB leaderboard store, creating it lazily on first use."""
    global _leaderboard_store
    if _leaderboard_store is None:
        _leaderboard_store = LeaderboardStore(LeaderboardConfig.from_env(), get_cache_client())
    return _leaderboard_store


def set_cache_client(client: Optional[CacheClient]) -> None:
    global _cache_client
    _cache_client = client


def set_leaderboard_store(store: Optional[LeaderboardStore]) -> None:
    global _leaderboard_store
    _leaderboard_store = store


def reset_clients() -> None:
    """Reset all cached clients. Used in tests for clean state."""
    global _cache_client, _leaderboard_store
    _cache_client = None
    _leaderboard_store = None
