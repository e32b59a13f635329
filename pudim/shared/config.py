"""
Runtime configuration for Pudim.

All settings come from environment variables so the same code runs in
Lambda, locally against docker-compose services, and in tests.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

DEFAULT_STATS_PREFIX = "pudim:github:"
DEFAULT_KEY_PREFIX = "pudim:"
DEFAULT_TABLE_NAME = "PudimScores"
DEFAULT_COOLDOWN_MS = 300000


def env_flag(name: str, default: str = "false") -> bool:
    """Read a boolean flag ("true" in any case enables it)."""
    return os.environ.get(name, default).strip().lower() == "true"


def env_int(name: str, default: int) -> int:
    """Read an integer setting, falling back to the default on bad input."""
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def is_edge_runtime() -> bool:
    """True when running inside a restricted edge sandbox without raw sockets."""
    return os.environ.get("PUDIM_RUNTIME", "server").strip().lower() == "edge"


@dataclass
class CacheConfig:
    """Redis cache settings."""

    enabled: bool = False
    url: str = "redis://localhost:6379"
    stats_prefix: str = DEFAULT_STATS_PREFIX
    key_prefix: str = DEFAULT_KEY_PREFIX
    ttl_seconds: int = 300
    statistics_ttl_seconds: int = 3600
    cooldown_ms: int = DEFAULT_COOLDOWN_MS
    connect_timeout_seconds: float = 5.0
    connect_attempts: int = 3

    @classmethod
    def from_env(cls) -> "CacheConfig":
        key_prefix = os.environ.get("REDIS_PREFIX") or DEFAULT_KEY_PREFIX
        return cls(
            enabled=env_flag("REDIS_ENABLED"),
            url=os.environ.get("REDIS_URL") or "redis://localhost:6379",
            stats_prefix=os.environ.get("REDIS_STATS_PREFIX") or DEFAULT_STATS_PREFIX,
            key_prefix=key_prefix,
            ttl_seconds=env_int("REDIS_TTL", 300),
            statistics_ttl_seconds=env_int("REDIS_STATISTICS_TTL", 3600),
            cooldown_ms=env_int("REDIS_CIRCUIT_BREAKER_COOLDOWN", DEFAULT_COOLDOWN_MS),
            connect_timeout_seconds=float(env_int("REDIS_CONNECT_TIMEOUT", 5)),
            connect_attempts=max(1, env_int("REDIS_CONNECT_ATTEMPTS", 3)),
        )


@dataclass
class LeaderboardConfig:
    """DynamoDB leaderboard settings."""

    enabled: bool = False
    table_name: str = DEFAULT_TABLE_NAME
    region: str = "us-east-1"
    endpoint_url: Optional[str] = None
    access_key_id: Optional[str] = field(default=None, repr=False)
    secret_access_key: Optional[str] = field(default=None, repr=False)
    cooldown_ms: int = DEFAULT_COOLDOWN_MS

    @classmethod
    def from_env(cls) -> "LeaderboardConfig":
        return cls(
            enabled=env_flag("DYNAMODB_ENABLED"),
            table_name=os.environ.get("DYNAMODB_TABLE") or DEFAULT_TABLE_NAME,
            region=os.environ.get("AWS_REGION") or "us-east-1",
            endpoint_url=os.environ.get("DYNAMODB_ENDPOINT") or None,
            access_key_id=os.environ.get("AWS_ACCESS_KEY_ID") or None,
            secret_access_key=os.environ.get("AWS_SECRET_ACCESS_KEY") or None,
            cooldown_ms=env_int("DYNAMODB_CIRCUIT_BREAKER_COOLDOWN", DEFAULT_COOLDOWN_MS),
        )


def feature_flags() -> dict:
    """Flags exposed to the frontend through the health endpoint."""
    redis_enabled = env_flag("REDIS_ENABLED")
    dynamodb_enabled = env_flag("DYNAMODB_ENABLED")
    leaderboard_enabled = env_flag("LEADERBOARD_ENABLED")
    return {
        "redis_enabled": redis_enabled,
        "dynamodb_enabled": dynamodb_enabled,
        "leaderboard_enabled": leaderboard_enabled,
        "leaderboard_visible": dynamodb_enabled and leaderboard_enabled,
    }
