"""Rate Admission Gate.

A blunt, process-wide bound on how many requests are admitted per fixed
window. It is not keyed by caller: it guards against runaway automated
draining of the pool, not against one user crowding out another.

Two implementations share the AdmissionGate protocol:
    - FixedWindowGate:      in-process counter serialized by an asyncio.Lock
    - RedisFixedWindowGate: shared counter (INCR + EXPIRE) for several replicas
"""

from __future__ import annotations

import asyncio
import math
import time
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from zknon_relay.logging_config import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

    import redis.asyncio as aioredis

logger = get_logger(__name__)


@runtime_checkable
class AdmissionGate(Protocol):
    """Atomic test-and-increment over the current window."""

    limit: int
    window_seconds: float

    async def admit(self) -> bool:
        """Count one attempt; True if it fits in the current window."""
        ...


class FixedWindowGate:
    """In-process fixed-window counter."""

    def __init__(
        self,
        limit: int,
        window_seconds: float = 1.0,
        *,
        name: str = "withdraw",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        self.limit = limit
        self.window_seconds = window_seconds
        self.name = name
        self._clock = clock
        self._lock = asyncio.Lock()
        self._window_start = clock()
        self._count = 0

    async def admit(self) -> bool:
        async with self._lock:
            now = self._clock()
            if now - self._window_start >= self.window_seconds:
                self._window_start = now
                self._count = 0
            if self._count >= self.limit:
                logger.warning("gate.denied", gate=self.name, limit=self.limit)
                return False
            self._count += 1
            return True


class RedisFixedWindowGate:
    """Fixed-window counter shared through Redis.

    INCR is atomic on the server, so concurrent admissions from any number
    of processes are counted exactly once each.
    """

    def __init__(
        self,
        redis: aioredis.Redis,
        limit: int,
        window_seconds: float = 1.0,
        *,
        name: str = "withdraw",
        clock: Callable[[], float] = time.time,
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        self.limit = limit
        self.window_seconds = window_seconds
        self.name = name
        self._redis = redis
        self._clock = clock

    def _key(self) -> str:
        window = math.floor(self._clock() / self.window_seconds)
        return f"zknon:gate:{self.name}:{window}"

    async def admit(self) -> bool:
        key = self._key()
        ttl_ms = max(1, math.ceil(self.window_seconds * 2000))
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.incr(key)
            pipe.pexpire(key, ttl_ms)
            count, _ = await pipe.execute()
        if int(count) > self.limit:
            logger.warning("gate.denied", gate=self.name, limit=self.limit, backend="redis")
            return False
        return True
