"""Resolve viewable URLs for an order's preview and HD images.

Each asset is resolved independently through a cascade:

1. **primary** — the object exists in the bucket under its deterministic key;
   return a signed URL.
2. **secondary** — the URL the generation backend returned, recorded on the
   order at generation time.
3. **fallback** — nothing usable; the URL is ``None``.

Every tier that misses records *why* (:data:`MissReason`), so callers and
tests can tell a missing object from an unreachable store.  Resolution never
raises: the read path degrades, it does not fail the page that asked.

URLs are computed per call and never cached, since signed URLs carry their
own expiry.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Literal

from botocore.exceptions import BotoCoreError, ClientError

from printworks.core.config import PrintworksConfig
from printworks.core.config import config as default_config
from printworks.core.exceptions import ConfigurationError
from printworks.storage.object_store import ObjectStore, hd_key, preview_key, preview_metadata_key

logger = logging.getLogger(__name__)

Tier = Literal["primary", "secondary", "fallback"]
MissReason = Literal[
    "store_unavailable",
    "invalid_reference",
    "not_found",
    "timeout",
    "store_error",
    "not_recorded",
]

_TIER_ORDER: tuple[Tier, ...] = ("primary", "secondary")


@dataclass(frozen=True)
class OrderAssetRef:
    """What the resolver needs to know about an order.

    Attributes:
        order_ref: Order identifier (keys the HD image)
        preview_id: Preview identifier (keys the preview image)
        created_at: Creation time; its UTC date partitions the keys
        preview_url: Preview URL recorded at generation time, if any
        hd_url: HD URL recorded at generation time, if any
    """

    order_ref: str
    preview_id: str
    created_at: datetime | date | str
    preview_url: str | None = None
    hd_url: str | None = None


@dataclass(frozen=True)
class TierMiss:
    """A tier that could not supply the asset, and why."""

    tier: Tier
    reason: MissReason
    detail: str = ""


@dataclass(frozen=True)
class AssetResolution:
    """Outcome of resolving a single asset."""

    url: str | None
    tier: Tier
    misses: tuple[TierMiss, ...] = ()

    @property
    def found(self) -> bool:
        return self.url is not None

    def miss_reason(self, tier: Tier) -> MissReason | None:
        """Why ``tier`` missed, or ``None`` if it was not tried or did not miss."""
        for miss in self.misses:
            if miss.tier == tier:
                return miss.reason
        return None


@dataclass(frozen=True)
class ResolvedAssetRefs:
    """Preview and HD resolutions for one order."""

    preview: AssetResolution
    hd: AssetResolution

    @property
    def preview_url(self) -> str | None:
        return self.preview.url

    @property
    def hd_url(self) -> str | None:
        return self.hd.url

    @property
    def source_tier(self) -> Tier:
        """Most upstream tier that supplied either asset.  For display only."""
        tiers = {self.preview.tier, self.hd.tier}
        for tier in _TIER_ORDER:
            if tier in tiers:
                return tier
        return "fallback"


class AssetResolver:
    """Resolve order images through the primary → secondary → fallback cascade.

    Args:
        store: Object store, or ``None`` when no credentials were configured
        url_ttl: Lifetime of the signed URLs handed out, in seconds
        timeout: Bound on each primary-tier lookup, in seconds
    """

    def __init__(self, store: ObjectStore | None, *, url_ttl: int = 3600, timeout: float = 10.0) -> None:
        self._store = store
        self._url_ttl = url_ttl
        self._timeout = timeout

    @classmethod
    def from_config(cls, settings: PrintworksConfig | None = None) -> "AssetResolver":
        """Build a resolver; without credentials it serves recorded URLs only."""
        settings = settings or default_config
        try:
            store: ObjectStore | None = ObjectStore.from_config(settings)
        except ConfigurationError as e:
            logger.warning(f"Object store not available for image resolution: {e}")
            store = None
        return cls(
            store,
            url_ttl=settings.preview_url_ttl_seconds,
            timeout=settings.store_timeout_seconds,
        )

    def is_available(self) -> bool:
        """Whether credentials were present at construction.  No network call."""
        return self._store is not None

    async def resolve_images(self, order: OrderAssetRef) -> ResolvedAssetRefs:
        """Resolve preview and HD URLs for ``order``.  Never raises."""
        preview, hd = await asyncio.gather(
            self._resolve(lambda: preview_key(order.preview_id, order.created_at), order.preview_url),
            self._resolve(lambda: hd_key(order.order_ref, order.created_at), order.hd_url),
        )
        resolved = ResolvedAssetRefs(preview=preview, hd=hd)
        logger.debug(
            f"[{order.order_ref}] Resolved images: preview={preview.tier}, hd={hd.tier}, "
            f"source={resolved.source_tier}"
        )
        return resolved

    async def _resolve(self, make_key: Callable[[], str], secondary_url: str | None) -> AssetResolution:
        primary = await self._from_primary(make_key)
        if isinstance(primary, str):
            return AssetResolution(url=primary, tier="primary")

        if secondary_url:
            return AssetResolution(url=secondary_url, tier="secondary", misses=(primary,))

        return AssetResolution(
            url=None,
            tier="fallback",
            misses=(primary, TierMiss(tier="secondary", reason="not_recorded")),
        )

    async def _from_primary(self, make_key: Callable[[], str]) -> str | TierMiss:
        """Return a signed URL, or the reason the primary tier missed."""
        if self._store is None:
            return TierMiss(tier="primary", reason="store_unavailable")

        try:
            key = make_key()
        except (TypeError, ValueError) as e:
            return TierMiss(tier="primary", reason="invalid_reference", detail=str(e))

        try:
            if not await asyncio.wait_for(self._store.exists(key), timeout=self._timeout):
                return TierMiss(tier="primary", reason="not_found", detail=key)
            return await asyncio.wait_for(
                self._store.signed_url(key, self._url_ttl), timeout=self._timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"Timed out resolving {key} from the object store")
            return TierMiss(tier="primary", reason="timeout", detail=key)
        except (ClientError, BotoCoreError) as e:
            logger.warning(f"Object store error resolving {key}: {e}")
            return TierMiss(tier="primary", reason="store_error", detail=str(e))

    async def get_preview_metadata(
        self, preview_id: str, created_at: datetime | date | str
    ) -> dict[str, Any] | None:
        """Load the JSON metadata saved next to a preview, or ``None``."""
        if self._store is None:
            return None

        try:
            key = preview_metadata_key(preview_id, created_at)
            raw = await asyncio.wait_for(self._store.get_bytes(key), timeout=self._timeout)
            metadata = json.loads(raw)
        except (asyncio.TimeoutError, ClientError, BotoCoreError, TypeError, ValueError) as e:
            logger.warning(f"Error fetching preview metadata for {preview_id}: {e}")
            return None

        return metadata if isinstance(metadata, dict) else None
