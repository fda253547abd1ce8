"""Pydantic schemas for records, results and request/response validation."""

from .asset import AssetRecord, AssetTag
from .image import ImageDataResponse, ImageImportRequest
from .result import OperationResult, OperationStatus

__all__ = [
    "AssetRecord",
    "AssetTag",
    "ImageImportRequest",
    "ImageDataResponse",
    "OperationResult",
    "OperationStatus",
]
