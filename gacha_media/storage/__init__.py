"""Filesystem capability for the media store."""

from .base import StorageClient, StorageError
from .local import LocalStorageClient

__all__ = ["StorageClient", "StorageError", "LocalStorageClient"]
