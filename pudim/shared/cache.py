"""
Redis cache client for GitHub stats, badge images and leaderboard statistics.

Every call is guarded by a circuit breaker: while Redis is down the client
behaves like a permanently empty cache instead of paying a connection timeout
on each request. Reads return None, writes are dropped, nothing raises.

The connection is created lazily on first use and only in a runtime that can
open raw sockets. In a restricted edge runtime the client is inert.

Serialization:
- stats / statistics: JSON text
- badge: base64 text of the image bytes
"""

import asyncio
import base64
import json
import logging
import time
from typing import Any, Optional

import redis.asyncio as aioredis

from .cache_keys import BINARY_KINDS, CacheKind, derive_key
from .circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from .config import CacheConfig, is_edge_runtime
from .logging_utils import error_context, log_external_call
from .retry import RetryConfig, retry_async

logger = logging.getLogger(__name__)


def _current_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class CacheClient:
    """
    Lazily connected, circuit-breaker guarded Redis client.

    One instance per process; see clients.get_cache_client().
    """

    def __init__(self, config: Optional[CacheConfig] = None, network_capable: Optional[bool] = None):
        self.config = config or CacheConfig.from_env()
        # Capability check happens once, at construction
        self.network_capable = (not is_edge_runtime()) if network_capable is None else network_capable
        self.breaker = CircuitBreaker("redis", CircuitBreakerConfig(cooldown_ms=self.config.cooldown_ms))
        self._client: Optional[aioredis.Redis] = None
        self._client_loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def available(self) -> bool:
        """True when caching is configured for this runtime at all."""
        return self.config.enabled and self.network_capable

    def _ttl_for(self, kind: CacheKind) -> int:
        if kind is CacheKind.STATISTICS:
            return self.config.statistics_ttl_seconds
        return self.config.ttl_seconds

    def _key_for(self, kind: CacheKind, username: Optional[str], operation: str) -> Optional[str]:
        """Derive the key, or None for an unusable username (not a Redis failure)."""
        try:
            return derive_key(kind, username, self.config)
        except ValueError as e:
            logger.warning(
                f"Cache {operation} skipped for {kind.value}: {e}",
                extra={"operation": operation, "username": username},
            )
            return None

    async def _open_connection(self) -> aioredis.Redis:
        client = aioredis.from_url(
            self.config.url,
            decode_responses=True,
            socket_connect_timeout=self.config.connect_timeout_seconds,
        )
        try:
            await client.ping()
        except BaseException:
            # Also on cancellation by the connect timeout
            await client.aclose()
            raise
        return client

    async def connect(self) -> Optional[aioredis.Redis]:
        """
        Get a live Redis connection, connecting if needed.

        Returns None when caching is disabled, the runtime cannot open
        sockets, the circuit is open, or connecting failed.
        """
        if not self.available:
            return None

        if self.breaker.is_open():
            return None

        # Connections are bound to the loop they were created on
        loop = _current_loop()
        if self._client is not None and self._client_loop is not loop:
            logger.debug("Event loop changed, recreating Redis client")
            self._client = None

        if self._client is not None:
            return self._client

        retry_config = RetryConfig(max_retries=self.config.connect_attempts - 1)
        start = time.time()
        try:
            client = await asyncio.wait_for(
                retry_async(self._open_connection, config=retry_config),
                timeout=self.config.connect_timeout_seconds,
            )
        except Exception as e:
            log_external_call(logger, "redis", "connect", False, (time.time() - start) * 1000, type(e).__name__)
            self.breaker.open(e)
            self._client = None
            return None

        log_external_call(logger, "redis", "connect", True, (time.time() - start) * 1000)
        self.breaker.close()
        self._client = client
        self._client_loop = loop
        return client

    async def get(self, kind: CacheKind, username: Optional[str] = None) -> Optional[Any]:
        """Read a cached value. Returns None on miss or when Redis is unavailable."""
        key = self._key_for(kind, username, "get")
        if key is None:
            return None

        client = await self.connect()
        if client is None:
            return None

        try:
            cached = await client.get(key)
            if cached is None:
                logger.info(
                    f"Cache MISS for {kind.value}",
                    extra={"operation": "get", "key": key, "username": username},
                )
                return None

            self.breaker.close()
            logger.info(
                f"Cache HIT for {kind.value}",
                extra={"operation": "get", "key": key, "username": username},
            )
            if kind in BINARY_KINDS:
                return base64.b64decode(cached)
            return json.loads(cached)
        except Exception as e:
            logger.error(
                f"Error reading {kind.value} from cache",
                extra={"operation": "get", "key": key, "username": username, **error_context(e)},
            )
            self.breaker.open(e)
            return None

    async def set(
        self,
        kind: CacheKind,
        username: Optional[str],
        value: Any,
        ttl_seconds: Optional[int] = None,
    ) -> None:
        """Write a value with expiry. Failures are logged, never raised."""
        key = self._key_for(kind, username, "set")
        if key is None:
            return

        client = await self.connect()
        if client is None:
            logger.info(
                f"Cache SAVE skipped for {kind.value} (Redis disabled or unavailable)",
                extra={"operation": "set", "username": username},
            )
            return

        ttl = ttl_seconds if ttl_seconds is not None else self._ttl_for(kind)
        try:
            if kind in BINARY_KINDS:
                payload = base64.b64encode(value).decode("ascii")
            else:
                payload = json.dumps(value)
            await client.setex(key, ttl, payload)
            self.breaker.close()
            logger.info(
                f"Cache SAVE successful for {kind.value}",
                extra={"operation": "set", "key": key, "username": username, "ttl_seconds": ttl},
            )
        except Exception as e:
            logger.error(
                f"Error writing {kind.value} to cache",
                extra={"operation": "set", "key": key, "username": username, **error_context(e)},
            )
            self.breaker.open(e)

    async def invalidate(self, kind: CacheKind, username: Optional[str] = None) -> None:
        """Delete a cached value. Failures are logged, never raised."""
        key = self._key_for(kind, username, "invalidate")
        if key is None:
            return

        client = await self.connect()
        if client is None:
            return

        try:
            await client.delete(key)
            self.breaker.close()
            logger.info(
                f"Cache INVALIDATE for {kind.value}",
                extra={"operation": "invalidate", "key": key},
            )
        except Exception as e:
            logger.error(
                f"Error invalidating {kind.value} in cache",
                extra={"operation": "invalidate", "key": key, **error_context(e)},
            )
            self.breaker.open(e)

    async def flush(self) -> int:
        """
        Delete every key under the configured prefixes.

        Operational use only (scripts/flush_all.py). Unlike the request-path
        operations this raises if Redis is reachable but the scan fails.
        """
        client = await self.connect()
        if client is None:
            return 0

        deleted = 0
        for prefix in {self.config.stats_prefix, self.config.key_prefix}:
            keys = [key async for key in client.scan_iter(match=f"{prefix}*")]
            if keys:
                deleted += await client.delete(*keys)
        return deleted

    async def close(self) -> None:
        """Release the connection if any and reset the circuit breaker."""
        client = self._client
        self._client = None
        self._client_loop = None
        try:
            if client is not None:
                await client.aclose()
        except Exception as e:
            # Client may already be closed
            logger.warning("Error closing Redis connection", extra=error_context(e))
        finally:
            self.breaker.reset()
