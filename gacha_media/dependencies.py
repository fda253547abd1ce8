"""FastAPI dependency injection configuration."""

import logging

from gacha_media.repositories import AssetRepository
from gacha_media.storage.base import StorageClient
from gacha_media.storage.local import LocalStorageClient
from config import get_settings

logger = logging.getLogger(__name__)


# Global instance for storage client
_storage_client: StorageClient | None = None

# Global instance for the asset repository; it owns the write serializer,
# so every request must share it
_asset_repository: AssetRepository | None = None


def get_storage_client() -> StorageClient:
    """Get the storage client scoped to the configured data root.

    Returns:
        StorageClient: The shared storage client instance
    """
    global _storage_client

    if _storage_client is None:
        settings = get_settings()
        _storage_client = LocalStorageClient()
        logger.info(f"Created local storage client with root: {settings.data_root}")

    return _storage_client


def get_asset_repository() -> AssetRepository:
    """Get the shared asset repository.

    Returns:
        AssetRepository: The process-wide repository instance
    """
    global _asset_repository

    if _asset_repository is None:
        _asset_repository = AssetRepository.from_settings(get_storage_client(), get_settings())

    return _asset_repository


async def close_asset_repository() -> None:
    """Drain pending index mutations of the shared repository, if any."""
    global _asset_repository

    if _asset_repository is not None:
        await _asset_repository.close()
        _asset_repository = None
