"""Exceptions raised by the media asset store."""


class AssetStoreError(Exception):
    """Base exception for media asset store errors."""
    pass


class AssetNotFoundError(AssetStoreError, KeyError):
    """The requested asset's file does not exist."""

    def __init__(self, asset_id: str):
        self.asset_id = asset_id
        super().__init__(f"Asset with ID {asset_id} not found")

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self.args[0]


class DecodeError(AssetStoreError, ValueError):
    """A transportable blob is not a valid base64 image data URL."""
    pass


class CorruptIndexError(AssetStoreError):
    """An index document could not be parsed."""
    pass
