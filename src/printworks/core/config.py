"""Configuration management for the Printworks fulfillment pipeline.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the PRINTWORKS_ prefix,
allowing deployments to be tuned without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (PRINTWORKS_* prefix)
2. .env file in the working directory
3. Default values defined in PrintworksConfig

Example .env file:
    PRINTWORKS_REDIS_URL=redis://localhost:6379/0
    PRINTWORKS_PREVIEW_MAX_REQUESTS=3
    PRINTWORKS_S3_BUCKET=print-assets
    PRINTWORKS_AWS_ACCESS_KEY_ID=AKIA...
    PRINTWORKS_AWS_SECRET_ACCESS_KEY=...

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
Every component accepts an explicit config object as well, so tests build
their own instances instead of mutating the global one.

Usage Example
-------------
    from printworks.core.config import config

    print(config.preview_max_requests)
    print(config.s3_bucket)

Timeouts
--------
Every network collaborator has its own bound:
- admission_timeout_seconds: shared rate-limit store round trips
- fetch_timeout_seconds: source image downloads
- store_timeout_seconds: object store reads, writes and signing

See Also
--------
- PrintworksConfig: Full configuration class documentation
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PrintworksConfig(BaseSettings):
    """Main configuration for the Printworks pipeline.

    Values are loaded from environment variables with the PRINTWORKS_ prefix,
    with fallback to defaults defined here.

    Attributes
    ----------
    Admission Control:
        redis_url : str | None
            Shared rate-limit store. When unset or unreachable the admission
            controller runs on its process-local backend.
        preview_max_requests : int
            Free previews per identifier per preview window
        preview_window_ms : int
            Preview window length in milliseconds (24h by default)
        api_max_requests : int
            Requests per identifier per API window
        api_window_ms : int
            API window length in milliseconds (1 minute by default)
        admission_timeout_seconds : float
            Bound on every shared-store round trip

    Object Storage:
        aws_region : str
            Region of the asset bucket
        s3_bucket : str
            Bucket holding previews, HD images and print assets
        aws_access_key_id / aws_secret_access_key : str | None
            Credentials. Without them the resolver degrades to recorded URLs
            and the uploader refuses to start.
        store_timeout_seconds : float
            Connect/read timeout for object store calls
        preview_url_ttl_seconds : int
            Lifetime of signed URLs handed to order views
        print_url_ttl_seconds : int
            Lifetime of signed URLs handed to fulfillment
        retention_days : int
            Retention recorded on uploaded print assets

    Compositing:
        fetch_timeout_seconds : float
            Bound on source image downloads
        default_border_mm : float
            Paper border added around the artwork
        default_dpi : int
            Print resolution

    Catalogs:
        styles_path : Path | None
            Optional replacement for the shipped style catalog

    Notes
    -----
    - Configuration is read once; components copy what they need at construction
    - To modify config, set environment variables and restart the process
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PRINTWORKS_",
        case_sensitive=False,
    )

    # Admission control
    redis_url: str | None = Field(
        default=None,
        description="Shared rate-limit store URL (redis://...)",
    )
    preview_max_requests: int = Field(
        default=3,
        description="Free previews per identifier per window",
        ge=1,
    )
    preview_window_ms: int = Field(
        default=24 * 60 * 60 * 1000,
        description="Preview window length in milliseconds",
        ge=1000,
    )
    api_max_requests: int = Field(default=10, ge=1)
    api_window_ms: int = Field(default=60 * 1000, ge=1000)
    admission_timeout_seconds: float = Field(
        default=2.0,
        description="Timeout for each shared-store round trip; checks fail closed on expiry",
        gt=0,
    )

    # Object storage
    aws_region: str = Field(default="eu-north-1")
    s3_bucket: str = Field(default="printworks-assets")
    aws_access_key_id: str | None = Field(default=None)
    aws_secret_access_key: str | None = Field(default=None)
    store_timeout_seconds: float = Field(default=10.0, gt=0)
    preview_url_ttl_seconds: int = Field(
        default=3600,
        description="Signed URL lifetime for order views",
        ge=60,
        le=7 * 24 * 3600,
    )
    print_url_ttl_seconds: int = Field(
        default=24 * 3600,
        description="Signed URL lifetime for fulfillment submission",
        ge=60,
        le=7 * 24 * 3600,
    )
    retention_days: int = Field(
        default=180,
        description="Retention for print assets (long enough for reprints)",
        ge=1,
    )

    # Compositing
    fetch_timeout_seconds: float = Field(default=30.0, gt=0)
    default_border_mm: float = Field(default=10.0, ge=0)
    default_dpi: int = Field(default=300, ge=72, le=1200)

    # Catalogs
    styles_path: Path | None = Field(
        default=None,
        description="Style catalog JSON replacing the shipped one",
    )

    @property
    def has_store_credentials(self) -> bool:
        """True when both halves of the object store credentials are set."""
        return bool(self.aws_access_key_id and self.aws_secret_access_key)


# Global configuration instance, loaded from PRINTWORKS_* variables and .env
config = PrintworksConfig()
