"""Cache key derivation for Redis entries."""

from enum import Enum
from typing import Optional

from .config import CacheConfig


class CacheKind(Enum):
    STATS = "stats"
    BADGE = "badge"
    STATISTICS = "statistics"


# Kinds stored as raw bytes (base64 text in Redis) instead of JSON
BINARY_KINDS = frozenset({CacheKind.BADGE})


def derive_key(kind: CacheKind, username: Optional[str], config: CacheConfig) -> str:
    """
    Build the Redis key for a value kind.

    Usernames are lowercased since GitHub logins are case-insensitive.
    Formats:
        stats:      {stats_prefix}{username}
        badge:      {key_prefix}badge:{username}
        statistics: {key_prefix}statistics:all
    """
    if kind is CacheKind.STATISTICS:
        return f"{config.key_prefix}statistics:all"

    if not username:
        raise ValueError(f"username is required for {kind.value} keys")

    normalized = username.lower()
    if kind is CacheKind.STATS:
        return f"{config.stats_prefix}{normalized}"
    return f"{config.key_prefix}badge:{normalized}"
