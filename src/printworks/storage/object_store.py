"""Thin async wrapper over the S3 bucket that holds every order asset.

Key Layout
----------
All keys are derived from stable order data, never from the current time, so
any process can recompute where an asset lives::

    previews/{YYYY-MM-DD}/{preview_id}.jpg
    previews/{YYYY-MM-DD}/{preview_id}_metadata.json
    hd/{YYYY-MM-DD}/{order_ref}-hd.jpg
    print-assets/{order_ref}/{filename}

The date partition is the UTC date the preview or order was created.

boto3 is synchronous, so each call runs in a worker thread via
``asyncio.to_thread``.  botocore enforces the connect and read timeouts.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, timezone
from typing import Any

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError

from printworks.core.config import PrintworksConfig
from printworks.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


def date_partition(created_at: datetime | date | str) -> str:
    """Return the ``YYYY-MM-DD`` partition for a creation timestamp.

    Naive datetimes are taken as UTC; aware ones are converted to UTC.
    ISO 8601 strings (including a trailing ``Z``) are accepted.

    Raises:
        TypeError: If ``created_at`` is not a string, date or datetime
        ValueError: If a string is not ISO 8601
    """
    if isinstance(created_at, str):
        created_at = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
    if isinstance(created_at, datetime):
        if created_at.tzinfo is not None:
            created_at = created_at.astimezone(timezone.utc)
        return created_at.date().isoformat()
    if not isinstance(created_at, date):
        raise TypeError(f"Unsupported creation timestamp: {created_at!r}")
    return created_at.isoformat()


def preview_key(preview_id: str, created_at: datetime | date | str) -> str:
    return f"previews/{date_partition(created_at)}/{preview_id}.jpg"


def preview_metadata_key(preview_id: str, created_at: datetime | date | str) -> str:
    return f"previews/{date_partition(created_at)}/{preview_id}_metadata.json"


def hd_key(order_ref: str, created_at: datetime | date | str) -> str:
    return f"hd/{date_partition(created_at)}/{order_ref}-hd.jpg"


def print_asset_key(order_ref: str, filename: str) -> str:
    return f"print-assets/{order_ref}/{filename}"


def is_not_found(error: ClientError) -> bool:
    """True when a ClientError means the object does not exist."""
    return str(error.response.get("Error", {}).get("Code")) in _NOT_FOUND_CODES


class ObjectStore:
    """Async facade over one S3 bucket.

    Args:
        bucket: Bucket name
        region: Bucket region
        client: A boto3 S3 client (tests pass a mock)
    """

    def __init__(self, bucket: str, region: str, client: Any) -> None:
        self.bucket = bucket
        self.region = region
        self._client = client

    @classmethod
    def from_config(cls, settings: PrintworksConfig) -> "ObjectStore":
        """Build a store from configuration.

        Raises:
            ConfigurationError: If the access key or secret is missing
        """
        if not settings.has_store_credentials:
            raise ConfigurationError(
                "Object store credentials missing: set PRINTWORKS_AWS_ACCESS_KEY_ID "
                "and PRINTWORKS_AWS_SECRET_ACCESS_KEY"
            )

        client = boto3.client(
            "s3",
            region_name=settings.aws_region,
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            config=BotoConfig(
                connect_timeout=settings.store_timeout_seconds,
                read_timeout=settings.store_timeout_seconds,
                retries={"max_attempts": 2, "mode": "standard"},
                signature_version="s3v4",
            ),
        )
        return cls(settings.s3_bucket, settings.aws_region, client)

    def canonical_uri(self, key: str) -> str:
        return f"s3://{self.bucket}/{key}"

    async def exists(self, key: str) -> bool:
        """HEAD the object.

        Raises:
            ClientError: For any failure other than "not found"
        """
        try:
            await asyncio.to_thread(self._client.head_object, Bucket=self.bucket, Key=key)
        except ClientError as e:
            if is_not_found(e):
                return False
            raise
        return True

    async def signed_url(self, key: str, expires_in: int = 3600) -> str:
        """Presign a GET for ``key``.  Signing is local; it does not check existence."""
        return await asyncio.to_thread(
            self._client.generate_presigned_url,
            "get_object",
            Params={"Bucket": self.bucket, "Key": key},
            ExpiresIn=expires_in,
        )

    async def put(
        self,
        key: str,
        body: bytes,
        content_type: str,
        *,
        metadata: dict[str, str] | None = None,
        expires: datetime | None = None,
        tagging: str | None = None,
    ) -> None:
        """Write ``body`` to ``key``."""
        params: dict[str, Any] = {
            "Bucket": self.bucket,
            "Key": key,
            "Body": body,
            "ContentType": content_type,
            "Metadata": metadata or {},
        }
        if expires is not None:
            params["Expires"] = expires
        if tagging:
            params["Tagging"] = tagging
        await asyncio.to_thread(self._client.put_object, **params)

    async def get_bytes(self, key: str) -> bytes:
        """Read the whole object at ``key``."""

        def _read() -> bytes:
            response = self._client.get_object(Bucket=self.bucket, Key=key)
            return response["Body"].read()

        return await asyncio.to_thread(_read)

    async def head_bucket(self) -> None:
        """Raise if the bucket is unreachable or access is denied."""
        await asyncio.to_thread(self._client.head_bucket, Bucket=self.bucket)
