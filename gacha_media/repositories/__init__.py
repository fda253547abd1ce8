"""Repository implementations for data access."""

from .asset import AssetRepository

__all__ = ["AssetRepository"]
