"""Object storage: resolving order images and uploading print files."""

from printworks.storage.object_store import (
    ObjectStore,
    date_partition,
    hd_key,
    is_not_found,
    preview_key,
    preview_metadata_key,
    print_asset_key,
)
from printworks.storage.resolver import (
    AssetResolution,
    AssetResolver,
    OrderAssetRef,
    ResolvedAssetRefs,
    TierMiss,
)
from printworks.storage.uploader import PrintAssetUploader, UploadResult

__all__ = [
    "AssetResolution",
    "AssetResolver",
    "ObjectStore",
    "OrderAssetRef",
    "PrintAssetUploader",
    "ResolvedAssetRefs",
    "TierMiss",
    "UploadResult",
    "date_partition",
    "hd_key",
    "is_not_found",
    "preview_key",
    "preview_metadata_key",
    "print_asset_key",
]
