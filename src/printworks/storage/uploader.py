"""Upload finished print files where the print partner can fetch them.

Each upload lands under ``print-assets/{order_ref}/{filename}`` carrying its
retention as object metadata, an ``Expires`` header and object tags, so a
lifecycle rule can clean up after the reprint window closes.

The result carries two references:

- ``signed_url`` for submitting to the print partner (24h by default)
- ``canonical_uri`` (``s3://bucket/key``) for the order record

A write that fails is never reported as a success: every store failure is
re-raised as :class:`UploadError` with the original exception chained.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from urllib.parse import urlencode

from botocore.exceptions import BotoCoreError, ClientError

from printworks.compositor.compositor import PrintAsset
from printworks.core.config import PrintworksConfig
from printworks.core.config import config as default_config
from printworks.core.exceptions import UploadError
from printworks.storage.object_store import ObjectStore, print_asset_key

logger = logging.getLogger(__name__)

UPLOAD_PURPOSE = "print-fulfillment"

_UPLOAD_FAILURES = (ClientError, BotoCoreError, asyncio.TimeoutError, OSError)


@dataclass(frozen=True)
class UploadResult:
    """Where an uploaded print file lives.

    Attributes:
        key: Object key inside the bucket
        canonical_uri: ``s3://bucket/key``, stable for the order record
        signed_url: Time-limited GET URL for the print partner
    """

    key: str
    canonical_uri: str
    signed_url: str


class PrintAssetUploader:
    """Write print files to the object store and hand back fetchable URLs.

    Args:
        store: Object store to write to
        url_ttl: Lifetime of the returned signed URL, in seconds
        retention_days: How long the asset must be kept
        timeout: Bound on each store call, in seconds
        clock: Returns the current time in seconds since the epoch
    """

    def __init__(
        self,
        store: ObjectStore,
        *,
        url_ttl: int = 24 * 3600,
        retention_days: int = 180,
        timeout: float = 30.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._url_ttl = url_ttl
        self._retention_days = retention_days
        self._timeout = timeout
        self._clock = clock

    @classmethod
    def from_config(cls, settings: PrintworksConfig | None = None) -> "PrintAssetUploader":
        """Build an uploader from configuration.

        Raises:
            ConfigurationError: If object store credentials are missing
        """
        settings = settings or default_config
        return cls(
            ObjectStore.from_config(settings),
            url_ttl=settings.print_url_ttl_seconds,
            retention_days=settings.retention_days,
            timeout=settings.store_timeout_seconds,
        )

    def _retention(self) -> tuple[datetime, datetime]:
        now = datetime.fromtimestamp(self._clock(), tz=timezone.utc)
        return now, now + timedelta(days=self._retention_days)

    async def upload_final(
        self,
        buffer: bytes,
        filename: str,
        order_ref: str,
        content_type: str = "image/png",
    ) -> UploadResult:
        """Upload a finished print file.

        Args:
            buffer: Encoded print file
            filename: Name inside the order's namespace
            order_ref: Owning order
            content_type: MIME type recorded on the object

        Returns:
            UploadResult with the key, canonical URI and signed URL

        Raises:
            UploadError: If the buffer is empty, or the write or signing fails
        """
        key = print_asset_key(order_ref, filename)
        if not buffer:
            raise UploadError(key, order_ref, "print file is empty")

        uploaded_at, retain_until = self._retention()
        metadata = {
            "order-ref": order_ref,
            "upload-timestamp": uploaded_at.isoformat(),
            "purpose": UPLOAD_PURPOSE,
            "retain-until": retain_until.isoformat(),
        }
        tagging = urlencode({"retention-days": self._retention_days, "purpose": UPLOAD_PURPOSE})

        logger.info(f"[{order_ref}] Uploading {filename} ({len(buffer)} bytes) to {key}")
        try:
            await asyncio.wait_for(
                self._store.put(
                    key,
                    buffer,
                    content_type,
                    metadata=metadata,
                    expires=retain_until,
                    tagging=tagging,
                ),
                timeout=self._timeout,
            )
            signed_url = await asyncio.wait_for(
                self._store.signed_url(key, self._url_ttl), timeout=self._timeout
            )
        except asyncio.TimeoutError as e:
            logger.error(f"[{order_ref}] Upload of {key} timed out")
            raise UploadError(key, order_ref, f"timed out after {self._timeout:.0f}s") from e
        except _UPLOAD_FAILURES as e:
            logger.error(f"[{order_ref}] Upload of {key} failed: {e}")
            raise UploadError(key, order_ref, str(e)) from e

        logger.info(f"[{order_ref}] Uploaded print file to {self._store.canonical_uri(key)}")
        return UploadResult(
            key=key,
            canonical_uri=self._store.canonical_uri(key),
            signed_url=signed_url,
        )

    async def upload_asset(self, asset: PrintAsset) -> UploadResult:
        """Upload a composited :class:`PrintAsset` under its own order and filename."""
        return await self.upload_final(asset.buffer, asset.filename, asset.order_ref)

    async def upload_many(self, assets: Iterable[PrintAsset], order_ref: str) -> dict[str, UploadResult]:
        """Upload several print files for one order, keyed by size.

        Uploads run concurrently.  If any fails, the first failure is raised
        once every upload has settled.
        """
        assets = list(assets)
        outcomes = await asyncio.gather(
            *(self.upload_final(a.buffer, a.filename, order_ref) for a in assets),
            return_exceptions=True,
        )

        results: dict[str, UploadResult] = {}
        failures: list[BaseException] = []
        for asset, outcome in zip(assets, outcomes):
            if isinstance(outcome, BaseException):
                failures.append(outcome)
            else:
                results[asset.size_id] = outcome

        if failures:
            logger.error(f"[{order_ref}] {len(failures)} of {len(assets)} print uploads failed")
            raise failures[0]
        return results

    async def check_connection(self) -> bool:
        """Whether the bucket is reachable with the configured credentials."""
        try:
            await asyncio.wait_for(self._store.head_bucket(), timeout=self._timeout)
        except _UPLOAD_FAILURES as e:
            logger.warning(f"Object store connection check failed: {e}")
            return False
        return True
