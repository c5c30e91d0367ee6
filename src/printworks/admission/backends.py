"""Storage backends for admission control.

Two interchangeable implementations sit behind :class:`WindowBackend`:

- **SharedLogBackend** keeps a sliding log of request timestamps in a redis
  sorted set per window key, so every process sharing the store sees the same
  quota.
- **LocalWindowBackend** keeps a fixed-window counter in process memory.  It is
  the fallback when no shared store is reachable at construction time.  Each
  process enforces its own quota, so N instances admit up to N times the
  configured maximum.  That over-admission is accepted; admission control here
  protects generation spend, it is not a security boundary.

The controller picks one backend when it is built and never switches.

Sliding-log sequence
--------------------
One MULTI/EXEC transaction runs::

    ZREMRANGEBYSCORE key -inf (now - window)
    ZCARD key
    ZADD key now <member>
    PEXPIRE key window

The count comes from the ZCARD reply, which reflects the state before this
request's ZADD.  When it shows no room, the member is removed again with a
second round trip using the exact token that was written.  Between the two
round trips a concurrent reader can see one extra entry; that transient
overcount errs on the side of rejecting.

If the caller's timeout cancels :meth:`SharedLogBackend.hit` after EXEC has
committed but before the ZREM goes out, the entry stays in the log until it
ages out of the window.  The request is reported as failed closed and still
counts against the quota, which again errs on the side of rejecting.
"""

from __future__ import annotations

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass

from redis.asyncio import Redis

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WindowHit:
    """Result of recording one request against a window.

    Attributes:
        used: Requests counted in the window after this one was considered
        allowed: Whether this request was admitted
        reset_at_ms: Epoch milliseconds at which the window frees up
    """

    used: int
    allowed: bool
    reset_at_ms: int


class WindowBackend(ABC):
    """Abstract storage for per-key request windows."""

    name: str = "base"

    @abstractmethod
    async def hit(self, key: str, now_ms: int, window_ms: int, limit: int) -> WindowHit:
        """Record a request for ``key`` if the window has room."""

    @abstractmethod
    async def peek(self, key: str, now_ms: int, window_ms: int) -> int:
        """Return how many requests currently count against ``key`` without adding one."""

    @abstractmethod
    async def clear(self, key: str) -> None:
        """Forget everything recorded for ``key``."""

    async def aclose(self) -> None:
        """Release any connections held by the backend."""


@dataclass
class _LocalWindow:
    count: int
    reset_at_ms: int


class LocalWindowBackend(WindowBackend):
    """Fixed-window counters held in process memory.

    The read-modify-write on each window runs under a lock and contains no
    ``await``, so it is safe both under asyncio and when callers share the
    backend across threads.
    """

    name = "local"

    def __init__(self) -> None:
        self._windows: dict[str, _LocalWindow] = {}
        self._lock = threading.Lock()

    async def hit(self, key: str, now_ms: int, window_ms: int, limit: int) -> WindowHit:
        with self._lock:
            window = self._windows.get(key)

            if window is None or window.reset_at_ms <= now_ms:
                self._sweep(now_ms)
                window = _LocalWindow(count=1, reset_at_ms=now_ms + window_ms)
                self._windows[key] = window
                return WindowHit(used=1, allowed=True, reset_at_ms=window.reset_at_ms)

            if window.count >= limit:
                return WindowHit(used=window.count, allowed=False, reset_at_ms=window.reset_at_ms)

            window.count += 1
            return WindowHit(used=window.count, allowed=True, reset_at_ms=window.reset_at_ms)

    async def peek(self, key: str, now_ms: int, window_ms: int) -> int:
        with self._lock:
            window = self._windows.get(key)
            if window is None or window.reset_at_ms <= now_ms:
                return 0
            return window.count

    async def clear(self, key: str) -> None:
        with self._lock:
            self._windows.pop(key, None)

    def _sweep(self, now_ms: int) -> None:
        # Caller holds the lock.
        expired = [key for key, window in self._windows.items() if window.reset_at_ms <= now_ms]
        for key in expired:
            del self._windows[key]


class SharedLogBackend(WindowBackend):
    """Sliding-log windows in a redis sorted set shared by every instance.

    Args:
        client: Connected ``redis.asyncio.Redis`` client.  The backend takes
            ownership and closes it in :meth:`aclose`.
    """

    name = "shared"

    def __init__(self, client: Redis) -> None:
        self._redis = client

    async def hit(self, key: str, now_ms: int, window_ms: int, limit: int) -> WindowHit:
        member = f"{now_ms}-{uuid.uuid4().hex}"

        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.zremrangebyscore(key, "-inf", now_ms - window_ms)
            pipe.zcard(key)
            pipe.zadd(key, {member: now_ms})
            pipe.pexpire(key, window_ms)
            results = await pipe.execute()

        count = int(results[1])
        reset_at_ms = now_ms + window_ms

        if count >= limit:
            await self._redis.zrem(key, member)
            return WindowHit(used=count, allowed=False, reset_at_ms=reset_at_ms)

        return WindowHit(used=count + 1, allowed=True, reset_at_ms=reset_at_ms)

    async def peek(self, key: str, now_ms: int, window_ms: int) -> int:
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.zremrangebyscore(key, "-inf", now_ms - window_ms)
            pipe.zcard(key)
            results = await pipe.execute()
        return int(results[1])

    async def clear(self, key: str) -> None:
        await self._redis.delete(key)

    async def aclose(self) -> None:
        await self._redis.aclose()
