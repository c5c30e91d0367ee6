"""Per-client admission control in front of expensive generation work.

Usage
-----
::

    from printworks.admission import Identifier, create_admission_controller

    limiter = await create_admission_controller("preview")
    result = await limiter.check(Identifier("ip", "1.2.3.4"))
    if not result.allowed:
        ...  # show "retry after result.reset_at"

Failure Semantics
-----------------
The shared store is probed once, in :meth:`AdmissionController.connect`.  If
it cannot be reached the controller uses the local backend for the rest of
its life; it never retries the shared store per call.  Once running, any
store call that times out or errors makes :meth:`~AdmissionController.check`
fail closed (``allowed=False``), so outages cost availability rather than generation spend.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Literal

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from printworks.admission.backends import LocalWindowBackend, SharedLogBackend, WindowBackend
from printworks.admission.windows import AdmissionResult, Identifier, ms_to_datetime, window_key
from printworks.core.config import PrintworksConfig
from printworks.core.config import config as default_config
from printworks.core.exceptions import ConfigurationError, NotAllowedError, UpstreamUnavailableError

logger = logging.getLogger(__name__)

_STORE_FAILURES = (asyncio.TimeoutError, RedisError, OSError)


class AdmissionController:
    """Gate requests per identifier with a fixed quota per window.

    Attributes:
        window_ms: Window length in milliseconds
        max_requests: Requests admitted per identifier per window
        backend: The storage backend chosen at construction
    """

    def __init__(
        self,
        backend: WindowBackend,
        window_ms: int,
        max_requests: int,
        *,
        timeout: float = 2.0,
        key_prefix: str = "rate_limit",
        clock: Callable[[], float] = time.time,
    ) -> None:
        if window_ms <= 0 or max_requests <= 0:
            raise ConfigurationError(
                f"Admission window and maximum must be positive, got {window_ms}ms / {max_requests}"
            )
        self.backend = backend
        self.window_ms = window_ms
        self.max_requests = max_requests
        self._timeout = timeout
        self._key_prefix = key_prefix
        self._clock = clock

    @classmethod
    async def connect(
        cls,
        window_ms: int,
        max_requests: int,
        redis_url: str | None = None,
        *,
        timeout: float = 2.0,
        key_prefix: str = "rate_limit",
        clock: Callable[[], float] = time.time,
    ) -> "AdmissionController":
        """Build a controller, preferring the shared store when it answers a ping.

        Args:
            window_ms: Window length in milliseconds
            max_requests: Requests admitted per window
            redis_url: Shared store URL; ``None`` selects the local backend
            timeout: Bound on the probe and on every later store call
            key_prefix: Namespace for window keys
            clock: Returns the current epoch time in seconds

        Returns:
            A controller bound to exactly one backend for its lifetime
        """
        backend: WindowBackend | None = None

        if redis_url:
            client = aioredis.from_url(
                redis_url,
                socket_timeout=timeout,
                socket_connect_timeout=timeout,
            )
            try:
                await asyncio.wait_for(client.ping(), timeout=timeout)
            except _STORE_FAILURES as e:
                logger.warning(
                    f"Shared rate-limit store unreachable ({e!r}); using in-process windows. "
                    "Quotas are per process until restart."
                )
                await client.aclose()
            else:
                backend = SharedLogBackend(client)
                logger.info("Admission control connected to shared store")
        else:
            logger.info("No shared store configured; admission control uses in-process windows")

        if backend is None:
            backend = LocalWindowBackend()

        return cls(
            backend,
            window_ms,
            max_requests,
            timeout=timeout,
            key_prefix=key_prefix,
            clock=clock,
        )

    @property
    def backend_name(self) -> str:
        """Name of the active backend (``"shared"`` or ``"local"``)."""
        return self.backend.name

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def key_for(self, identifier: Identifier, now_ms: int | None = None) -> str:
        """Return the window key ``identifier`` is charged against at ``now_ms``."""
        if now_ms is None:
            now_ms = self._now_ms()
        return window_key(identifier, self.window_ms, now_ms, self._key_prefix)

    async def check(self, identifier: Identifier) -> AdmissionResult:
        """Record a request and report whether it is admitted.

        Args:
            identifier: Client the request is charged against

        Returns:
            AdmissionResult with the remaining allowance and reset time.
            A store timeout or error yields ``allowed=False, remaining=0``.
        """
        now_ms = self._now_ms()
        key = self.key_for(identifier, now_ms)

        try:
            hit = await asyncio.wait_for(
                self.backend.hit(key, now_ms, self.window_ms, self.max_requests),
                timeout=self._timeout,
            )
        except _STORE_FAILURES as e:
            logger.warning(f"Admission check for {identifier} failed closed: {e!r}")
            return AdmissionResult(
                allowed=False,
                remaining=0,
                reset_at=ms_to_datetime(now_ms + self.window_ms),
            )

        result = AdmissionResult(
            allowed=hit.allowed,
            remaining=max(0, self.max_requests - hit.used),
            reset_at=ms_to_datetime(hit.reset_at_ms),
        )

        if not result.allowed:
            logger.info(f"Admission denied for {identifier} until {result.reset_at.isoformat()}")
        return result

    async def enforce(self, identifier: Identifier) -> AdmissionResult:
        """Like :meth:`check`, but raise :class:`NotAllowedError` on rejection."""
        result = await self.check(identifier)
        if not result.allowed:
            raise NotAllowedError(str(identifier), result.reset_at, result.remaining)
        return result

    async def remaining(self, identifier: Identifier) -> int:
        """Return the remaining allowance without consuming any of it.

        Returns 0 if the store cannot be read.
        """
        now_ms = self._now_ms()
        key = self.key_for(identifier, now_ms)
        try:
            used = await asyncio.wait_for(
                self.backend.peek(key, now_ms, self.window_ms),
                timeout=self._timeout,
            )
        except _STORE_FAILURES as e:
            logger.warning(f"Could not read remaining allowance for {identifier}: {e!r}")
            return 0
        return max(0, self.max_requests - used)

    async def reset(self, identifier: Identifier) -> None:
        """Clear the identifier's current window, e.g. after a purchase.

        Raises:
            UpstreamUnavailableError: If the store call fails or times out
        """
        key = self.key_for(identifier)
        try:
            await asyncio.wait_for(self.backend.clear(key), timeout=self._timeout)
        except _STORE_FAILURES as e:
            raise UpstreamUnavailableError(f"Could not reset admission window {key}") from e
        logger.info(f"Admission window reset for {identifier}")

    async def aclose(self) -> None:
        """Close the backend's connections."""
        await self.backend.aclose()


LimiterKind = Literal["preview", "api"]


async def create_admission_controller(
    kind: LimiterKind,
    settings: PrintworksConfig | None = None,
    *,
    clock: Callable[[], float] = time.time,
) -> AdmissionController:
    """Build one of the named admission profiles from configuration.

    - ``preview``: free preview generations, ``preview_max_requests`` per
      ``preview_window_ms`` (3 per day by default)
    - ``api``: general API calls, ``api_max_requests`` per ``api_window_ms``
      (10 per minute by default)

    Raises:
        ConfigurationError: If ``kind`` is not a known profile
    """
    settings = settings or default_config

    if kind == "preview":
        window_ms, max_requests = settings.preview_window_ms, settings.preview_max_requests
    elif kind == "api":
        window_ms, max_requests = settings.api_window_ms, settings.api_max_requests
    else:
        raise ConfigurationError(f"Unknown admission profile '{kind}'. Available: preview, api")

    return await AdmissionController.connect(
        window_ms,
        max_requests,
        settings.redis_url,
        timeout=settings.admission_timeout_seconds,
        key_prefix=f"rate_limit:{kind}",
        clock=clock,
    )
