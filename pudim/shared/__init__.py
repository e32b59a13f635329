# Shared utilities package
from .cache import CacheClient
from .cache_keys import CacheKind, derive_key
from .circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from .clients import get_cache_client, get_leaderboard_store
from .errors import APIError
from .leaderboard import LeaderboardStore

__all__ = [
    "CacheClient",
    "CacheKind",
    "derive_key",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "get_cache_client",
    "get_leaderboard_store",
    "LeaderboardStore",
    "APIError",
]
