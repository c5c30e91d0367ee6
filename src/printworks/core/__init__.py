"""Shared configuration and error types for the Printworks pipeline.

- **PrintworksConfig**: Configuration management using Pydantic Settings
- **config**: Global configuration instance (loads from PRINTWORKS_* variables)
- **exceptions**: The typed errors every component raises
"""

from printworks.core.config import PrintworksConfig, config
from printworks.core.exceptions import (
    ConfigurationError,
    DecodeError,
    NotAllowedError,
    PrintworksError,
    SourceFetchError,
    UploadError,
    UpstreamUnavailableError,
)

__all__ = [
    "PrintworksConfig",
    "config",
    "ConfigurationError",
    "DecodeError",
    "NotAllowedError",
    "PrintworksError",
    "SourceFetchError",
    "UploadError",
    "UpstreamUnavailableError",
]
