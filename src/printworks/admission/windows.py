"""Identifiers, results and window keys for admission control.

A rate window is addressed by ``{prefix}:{type}:{value}:{bucket}``.  The bucket
is chosen from the window length so that daily and hourly quotas reset on
human-meaningful boundaries while short windows stay exact:

========================  ==========================  ==================
Window length             Bucket                      Example
========================  ==========================  ==================
>= 24 hours               UTC calendar date           ``2025-08-23``
>= 1 hour                 UTC date and hour           ``2025-08-23-14``
shorter                   ``floor(now_ms / window)``  ``29142711``
========================  ==========================  ==================
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Literal

DAY_MS = 24 * 60 * 60 * 1000
HOUR_MS = 60 * 60 * 1000

IdentifierType = Literal["ip", "email", "user_id"]


@dataclass(frozen=True)
class Identifier:
    """The client a quota is charged against."""

    type: IdentifierType
    value: str

    @classmethod
    def parse(cls, raw: str) -> "Identifier":
        """Parse ``"type:value"``; the value may itself contain colons (IPv6)."""
        kind, sep, value = raw.partition(":")
        if not sep or not value or kind not in ("ip", "email", "user_id"):
            raise ValueError(f"Identifier must look like 'ip:1.2.3.4', got {raw!r}")
        return cls(type=kind, value=value)  # type: ignore[arg-type]

    def __str__(self) -> str:
        return f"{self.type}:{self.value}"


@dataclass(frozen=True)
class AdmissionResult:
    """Outcome of a single admission check."""

    allowed: bool
    remaining: int
    reset_at: datetime


def ms_to_datetime(epoch_ms: int) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime."""
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc)


def window_bucket(window_ms: int, now_ms: int) -> str:
    """Return the bucket label for ``now_ms`` at the given granularity."""
    if window_ms >= DAY_MS:
        return ms_to_datetime(now_ms).strftime("%Y-%m-%d")
    if window_ms >= HOUR_MS:
        return ms_to_datetime(now_ms).strftime("%Y-%m-%d-%H")
    return str(now_ms // window_ms)


def window_key(identifier: Identifier, window_ms: int, now_ms: int, prefix: str = "rate_limit") -> str:
    """Build the deterministic store key for an identifier's current window."""
    return f"{prefix}:{identifier.type}:{identifier.value}:{window_bucket(window_ms, now_ms)}"
