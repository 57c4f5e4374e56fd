"""Per-client sliding-window rate limiting."""
import math
import time
import uuid
from abc import ABC, abstractmethod
from asyncio import Lock
from collections import deque
from typing import Callable

from redis.asyncio import Redis

from src.core.logging import get_logger
from src.dtos.detection_dto import RateLimitDecision

logger = get_logger(__name__)

DEFAULT_CAPACITY = 10
DEFAULT_WINDOW_SECONDS = 60.0


def _retry_after(oldest: float, window_seconds: float, now: float) -> int:
    return max(1, math.ceil(oldest + window_seconds - now))


class RateLimiter(ABC):
    """Allows at most ``capacity`` requests per client in a trailing window."""

    def __init__(self, capacity: int, window_seconds: float) -> None:
        self.capacity = capacity
        self.window_seconds = window_seconds

    @abstractmethod
    async def check(self, client_id: str) -> RateLimitDecision:
        """Atomically count the request for ``client_id`` if there is room."""


class _ClientWindow:
    __slots__ = ("timestamps", "lock")

    def __init__(self) -> None:
        self.timestamps: deque[float] = deque()
        self.lock = Lock()


class InMemoryRateLimiter(RateLimiter):
    """Process-local limiter with one lock per client identity."""

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(capacity, window_seconds)
        self._clock = clock
        self._windows: dict[str, _ClientWindow] = {}
        self._last_sweep = clock()

    def __len__(self) -> int:
        return len(self._windows)

    async def check(self, client_id: str) -> RateLimitDecision:
        self._sweep_idle(self._clock())

        window = self._windows.get(client_id)
        if window is None:
            window = self._windows[client_id] = _ClientWindow()

        async with window.lock:
            now = self._clock()
            cutoff = now - self.window_seconds
            timestamps = window.timestamps
            while timestamps and timestamps[0] <= cutoff:
                timestamps.popleft()

            if len(timestamps) >= self.capacity:
                return RateLimitDecision(
                    allowed=False,
                    remaining=0,
                    retry_after_seconds=_retry_after(timestamps[0], self.window_seconds, now),
                )

            timestamps.append(now)
            return RateLimitDecision(allowed=True, remaining=self.capacity - len(timestamps))

    def _sweep_idle(self, now: float) -> None:
        """Drop windows whose newest entry has already left the window."""
        if now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        cutoff = now - self.window_seconds
        idle = [
            client_id
            for client_id, window in self._windows.items()
            if not window.lock.locked()
            and (not window.timestamps or window.timestamps[-1] <= cutoff)
        ]
        for client_id in idle:
            del self._windows[client_id]
        if idle:
            logger.debug("rate_limit_windows_swept", removed=len(idle), remaining=len(self._windows))


class RedisRateLimiter(RateLimiter):
    """Limiter backed by one Redis sorted set per client, shared across processes.

    Prune, count and record run in a single MULTI/EXEC transaction, so
    concurrent checks are serialized by Redis. A request that finds the window
    full removes its own entry afterwards; in between it may make a concurrent
    request see one entry too many, never one too few.
    """

    def __init__(
        self,
        redis: Redis,
        capacity: int = DEFAULT_CAPACITY,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        key_prefix: str = "rl:detect:",
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(capacity, window_seconds)
        self._redis = redis
        self._key_prefix = key_prefix
        self._clock = clock

    async def check(self, client_id: str) -> RateLimitDecision:
        key = f"{self._key_prefix}{client_id}"
        now = self._clock()
        member = f"{now:.6f}:{uuid.uuid4().hex}"

        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.zremrangebyscore(key, 0, now - self.window_seconds)
            pipe.zcard(key)
            pipe.zadd(key, {member: now})
            pipe.zrange(key, 0, 0, withscores=True)
            pipe.expire(key, math.ceil(self.window_seconds))
            _, count, _, oldest, _ = await pipe.execute()

        count = int(count)
        if count < self.capacity:
            return RateLimitDecision(allowed=True, remaining=self.capacity - count - 1)

        await self._redis.zrem(key, member)
        oldest_score = float(oldest[0][1]) if oldest else now
        return RateLimitDecision(
            allowed=False,
            remaining=0,
            retry_after_seconds=_retry_after(oldest_score, self.window_seconds, now),
        )
