"""
Circuit Breaker for cache and store protection.

Stops calls to a failing dependency for a cooldown period so a dead Redis
or DynamoDB does not cost every request a multi-second timeout.

States:
- CLOSED: Normal operation, calls allowed
- OPEN: Dependency failing, calls skipped until the cooldown elapses

There is no half-open probing state: the first call after the cooldown is a
normal attempt and its outcome decides the next transition. Any success
closes the circuit immediately.

NOTE: State is per process and unsynchronized. It relies on the single
event loop model of a Lambda invocation.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"


@dataclass
class CircuitBreakerConfig:
    """Configuration for circuit breaker behavior."""

    cooldown_ms: int = 300000  # How long the circuit stays open


@dataclass
class CircuitBreakerState:
    """Current state of a circuit breaker."""

    open_until: Optional[float] = None  # epoch seconds


class CircuitBreaker:
    """
    Cooldown circuit breaker, one instance per guarded dependency.
    """

    def __init__(self, name: str, config: Optional[CircuitBreakerConfig] = None):
        self.name = name
        self.config = config or CircuitBreakerConfig()
        self._state = CircuitBreakerState()

    @property
    def open_until(self) -> Optional[float]:
        return self._state.open_until

    @property
    def state(self) -> CircuitState:
        return CircuitState.OPEN if self.is_open() else CircuitState.CLOSED

    def is_open(self) -> bool:
        """Check if calls should be skipped, clearing an expired cooldown."""
        if self._state.open_until is None:
            return False

        if time.time() >= self._state.open_until:
            logger.info(f"Circuit {self.name}: OPEN -> CLOSED (cooldown elapsed)")
            self._state.open_until = None
            return False

        return True

    def open(self, error: Optional[BaseException] = None) -> None:
        """Open the circuit for the configured cooldown."""
        cooldown_seconds = self.config.cooldown_ms / 1000
        self._state.open_until = time.time() + cooldown_seconds
        logger.warning(
            f"Circuit {self.name}: opened for {cooldown_seconds:g}s",
            extra={
                "circuit": self.name,
                "cooldown_ms": self.config.cooldown_ms,
                "error_name": type(error).__name__ if error is not None else None,
            },
        )

    def close(self) -> None:
        """Close the circuit after a successful call."""
        if self._state.open_until is not None:
            logger.info(f"Circuit {self.name}: OPEN -> CLOSED (call succeeded)")
        self._state.open_until = None

    def reset(self) -> None:
        """Forget all state. Used on client shutdown and in tests."""
        self._state = CircuitBreakerState()
