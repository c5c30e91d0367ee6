"""Exception types raised by the Printworks pipeline.

Hierarchy::

    PrintworksError
    ├── ConfigurationError        missing credentials or catalog entries (startup)
    ├── NotAllowedError           admission quota exhausted (expected, recoverable)
    ├── DecodeError               source image could not be decoded
    └── UpstreamUnavailableError  a network collaborator failed
        ├── SourceFetchError      source image download failed
        └── UploadError           print asset could not be written

Pure components (the model router) never raise. I/O components raise these
types so the orchestrator can pick the right customer-facing message and flag
the order for manual review instead of shipping a broken asset.
"""

from __future__ import annotations

from datetime import datetime


class PrintworksError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(PrintworksError):
    """A required credential, setting or catalog entry is missing or invalid.

    Raised at construction time so misconfigured processes fail fast.
    """


class NotAllowedError(PrintworksError):
    """The identifier has exhausted its admission quota for the current window.

    Attributes:
        identifier: Rendered identifier (``type:value``) that was rejected
        remaining: Remaining allowance, always 0 when raised by the controller
        reset_at: When the window resets and the caller may retry
    """

    def __init__(self, identifier: str, reset_at: datetime, remaining: int = 0) -> None:
        self.identifier = identifier
        self.reset_at = reset_at
        self.remaining = remaining
        super().__init__(f"Quota exhausted for {identifier}; retry after {reset_at.isoformat()}")

    def retry_message(self) -> str:
        """Return the user-facing retry hint."""
        return f"You've used all your free previews. Try again after {self.reset_at:%H:%M} UTC on {self.reset_at:%d %B}."


class DecodeError(PrintworksError):
    """The source image bytes could not be decoded into a raster."""


class UpstreamUnavailableError(PrintworksError):
    """A network collaborator (shared store, image host, object store) failed."""


class SourceFetchError(UpstreamUnavailableError):
    """The source image for an order could not be downloaded.

    Attributes:
        url: The URL that was requested
        status_code: HTTP status when the host answered, else None
    """

    def __init__(self, url: str, reason: str, status_code: int | None = None) -> None:
        self.url = url
        self.status_code = status_code
        super().__init__(f"Failed to download source image: {reason}")


class UploadError(UpstreamUnavailableError):
    """A print asset could not be written to the object store.

    Always raised with ``from`` so the store's own exception stays attached
    as ``__cause__``.

    Attributes:
        key: Object key the upload targeted
        order_ref: Order the asset belongs to
    """

    def __init__(self, key: str, order_ref: str, reason: str) -> None:
        self.key = key
        self.order_ref = order_ref
        super().__init__(f"[{order_ref}] Upload of {key} failed: {reason}")
