"""Content-addressed asset domain exports."""

from .exceptions import AssetError, AssetStoreError, InvalidAssetName, PayloadTooLarge
from .ingestor import UploadIngestor
from .models import StoredAsset
from .store import AssetStore, AssetWriter, extension_from_filename, fingerprint

__all__ = [
    "AssetError",
    "AssetStore",
    "AssetStoreError",
    "AssetWriter",
    "InvalidAssetName",
    "PayloadTooLarge",
    "StoredAsset",
    "UploadIngestor",
    "extension_from_filename",
    "fingerprint",
]
