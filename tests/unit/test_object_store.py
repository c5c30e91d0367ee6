"""Tests for printworks.storage.object_store — keys and the S3 facade."""

from __future__ import annotations

import asyncio
from datetime import date, datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from printworks.core.config import PrintworksConfig
from printworks.core.exceptions import ConfigurationError
from printworks.storage import (
    ObjectStore,
    date_partition,
    hd_key,
    is_not_found,
    preview_key,
    preview_metadata_key,
    print_asset_key,
)


def _client_error(code: str, operation: str = "HeadObject") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class TestKeys:
    def test_date_partition_from_datetime(self):
        """Naive datetimes should be partitioned by their date."""
        assert date_partition(datetime(2025, 8, 23, 14, 0)) == "2025-08-23"

    def test_date_partition_converts_to_utc(self):
        """Aware datetimes are partitioned by their UTC date."""
        late_evening_new_york = datetime(2025, 8, 23, 22, 0, tzinfo=timezone(timedelta(hours=-4)))
        assert date_partition(late_evening_new_york) == "2025-08-24"

    def test_date_partition_from_iso_string(self):
        """ISO strings with a trailing Z are accepted."""
        assert date_partition("2025-08-23T23:30:00Z") == "2025-08-23"

    def test_date_partition_from_date(self):
        """Plain dates are used as-is."""
        assert date_partition(date(2025, 1, 2)) == "2025-01-02"

    def test_date_partition_rejects_garbage(self):
        """Strings that are not ISO dates raise ValueError."""
        with pytest.raises(ValueError):
            date_partition("yesterday")

    @pytest.mark.parametrize("created_at", [None, 1755959400, 1755959400.0])
    def test_date_partition_rejects_other_types(self, created_at):
        """Missing or numeric timestamps raise TypeError."""
        with pytest.raises(TypeError):
            date_partition(created_at)

    def test_layout(self):
        """Keys follow the previews/hd/print-assets layout."""
        created = "2025-08-23T10:00:00Z"
        assert preview_key("pv_1", created) == "previews/2025-08-23/pv_1.jpg"
        assert preview_metadata_key("pv_1", created) == "previews/2025-08-23/pv_1_metadata.json"
        assert hd_key("ORD-1", created) == "hd/2025-08-23/ORD-1-hd.jpg"
        assert print_asset_key("ORD-1", "ORD-1_A4_print.png") == "print-assets/ORD-1/ORD-1_A4_print.png"

    @pytest.mark.parametrize("code, expected", [("404", True), ("NoSuchKey", True), ("403", False)])
    def test_is_not_found(self, code, expected):
        """Only 404 and NoSuchKey count as not found."""
        assert is_not_found(_client_error(code)) is expected


class TestObjectStore:
    def test_exists(self, object_store: ObjectStore, s3_client: MagicMock):
        """exists() is a HEAD on the bucket."""
        assert asyncio.run(object_store.exists("hd/x.jpg")) is True
        s3_client.head_object.assert_called_once_with(Bucket="test-bucket", Key="hd/x.jpg")

    def test_missing_object(self, object_store: ObjectStore, s3_client: MagicMock):
        """A 404 means the object does not exist."""
        s3_client.head_object.side_effect = _client_error("404")
        assert asyncio.run(object_store.exists("hd/x.jpg")) is False

    def test_other_errors_propagate(self, object_store: ObjectStore, s3_client: MagicMock):
        """Errors other than not-found are raised."""
        s3_client.head_object.side_effect = _client_error("AccessDenied")
        with pytest.raises(ClientError):
            asyncio.run(object_store.exists("hd/x.jpg"))

    def test_signed_url(self, object_store: ObjectStore, s3_client: MagicMock):
        """Signed URLs are presigned GETs with the requested lifetime."""
        url = asyncio.run(object_store.signed_url("hd/x.jpg", 600))
        assert url == "https://signed.example/hd/x.jpg?ttl=600"
        s3_client.generate_presigned_url.assert_called_once_with(
            "get_object", Params={"Bucket": "test-bucket", "Key": "hd/x.jpg"}, ExpiresIn=600
        )

    def test_put_passes_retention(self, object_store: ObjectStore, s3_client: MagicMock):
        """put() forwards metadata, expiry and tagging."""
        expires = datetime(2026, 2, 1, tzinfo=timezone.utc)
        asyncio.run(
            object_store.put("k", b"data", "image/png", metadata={"a": "b"}, expires=expires, tagging="t=1")
        )
        s3_client.put_object.assert_called_once_with(
            Bucket="test-bucket",
            Key="k",
            Body=b"data",
            ContentType="image/png",
            Metadata={"a": "b"},
            Expires=expires,
            Tagging="t=1",
        )

    def test_get_bytes(self, object_store: ObjectStore, s3_client: MagicMock):
        """get_bytes() returns the object body."""
        s3_client.get_object.return_value = {"Body": MagicMock(read=MagicMock(return_value=b"{}"))}
        assert asyncio.run(object_store.get_bytes("k")) == b"{}"

    def test_canonical_uri(self, object_store: ObjectStore):
        """Canonical URIs use the s3:// scheme."""
        assert object_store.canonical_uri("print-assets/a/b.png") == "s3://test-bucket/print-assets/a/b.png"


class TestFromConfig:
    def test_requires_credentials(self):
        """Building from config without credentials fails."""
        settings = PrintworksConfig(_env_file=None, aws_access_key_id=None, aws_secret_access_key=None)
        with pytest.raises(ConfigurationError, match="credentials"):
            ObjectStore.from_config(settings)

    def test_builds_client(self, test_config: PrintworksConfig):
        """The boto3 client uses the configured region and timeouts."""
        with patch("printworks.storage.object_store.boto3.client") as client_factory:
            store = ObjectStore.from_config(test_config)

        assert store.bucket == "test-bucket"
        args, kwargs = client_factory.call_args
        assert args == ("s3",)
        assert kwargs["region_name"] == "eu-north-1"
        assert kwargs["config"].connect_timeout == test_config.store_timeout_seconds
