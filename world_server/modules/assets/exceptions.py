"""Asset domain specific exceptions."""


class AssetError(Exception):
    """Base class for asset related domain errors."""


class InvalidAssetName(AssetError, ValueError):
    """Raised when a filename or extension cannot address an asset."""


class PayloadTooLarge(AssetError):
    """Raised when an upload exceeds the configured byte ceiling."""

    def __init__(self, limit: int) -> None:
        super().__init__(f"upload exceeds {limit} bytes")
        self.limit = limit


class AssetStoreError(AssetError, OSError):
    """Raised when the filesystem refuses a read or write."""
