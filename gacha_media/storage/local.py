"""Local filesystem implementation of StorageClient."""
import logging
import os
from pathlib import Path
from typing import Optional

from config import get_settings

from .base import StorageClient, StorageError

logger = logging.getLogger(__name__)


class LocalStorageClient(StorageClient):
    """Local filesystem storage implementation.

    All paths are resolved under ``data_root``; a path that would escape the
    root is rejected. Writes go through a temporary sibling file followed by
    ``os.replace`` so a reader never observes a half-written file.
    """

    def __init__(self, data_root: Optional[str | Path] = None):
        """Initialize local storage client.

        Args:
            data_root: Application-private data root.
                       If not provided, uses the configured data root from settings.
        """
        settings = get_settings()

        if data_root is not None:
            self.data_root = Path(data_root)
        else:
            self.data_root = settings.data_root

        self._ensure_data_root()
        logger.info(f"Initialized LocalStorageClient with root: {self.data_root}")

    def _ensure_data_root(self) -> None:
        """Ensure the data root exists."""
        try:
            self.data_root.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Ensured data root exists: {self.data_root}")
        except OSError as e:
            logger.error(f"Failed to create data root: {e}")
            raise StorageError(f"Failed to create data root: {e}") from e

    def _resolve(self, path: str) -> Path:
        """Map a root-relative path onto the local filesystem."""
        if not path:
            raise ValueError("Path cannot be empty")

        relative = Path(path)
        if relative.is_absolute() or ".." in relative.parts:
            raise ValueError(f"Path must stay inside the data root: {path}")

        return self.data_root / relative

    def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    def mkdir(self, path: str, recursive: bool = True) -> None:
        target = self._resolve(path)
        try:
            target.mkdir(parents=recursive, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create directory {target}: {e}")
            raise StorageError(f"Failed to create directory: {e}") from e

    def read_file(self, path: str) -> bytes:
        """Read a file from the local filesystem.

        Raises:
            FileNotFoundError: If the file does not exist.
            StorageError: If the file cannot be read.
        """
        file_path = self._resolve(path)

        if not file_path.is_file():
            logger.debug(f"File not found: {path}")
            raise FileNotFoundError(f"File not found: {path}")

        try:
            content = file_path.read_bytes()
            logger.debug(f"Read {len(content)} bytes from: {file_path}")
            return content
        except FileNotFoundError:
            raise
        except OSError as e:
            logger.error(f"Failed to read {file_path}: {e}")
            raise StorageError(f"Failed to read file: {e}") from e

    def write_file(self, path: str, data: bytes) -> None:
        """Write a file atomically.

        Raises:
            StorageError: If the file cannot be written.
        """
        file_path = self._resolve(path)
        tmp_path = file_path.with_name(f".{file_path.name}.tmp")

        try:
            with open(tmp_path, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, file_path)
            logger.debug(f"Wrote {len(data)} bytes to: {file_path}")
        except OSError as e:
            logger.error(f"Failed to write {file_path}: {e}")
            tmp_path.unlink(missing_ok=True)
            raise StorageError(f"Failed to write file: {e}") from e

    def remove(self, path: str) -> None:
        """Remove a file from the local filesystem.

        Raises:
            FileNotFoundError: If the file does not exist.
            StorageError: If the file cannot be removed.
        """
        file_path = self._resolve(path)

        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        try:
            file_path.unlink()
            logger.debug(f"Removed: {file_path}")
        except FileNotFoundError:
            raise
        except OSError as e:
            logger.error(f"Failed to remove {file_path}: {e}")
            raise StorageError(f"Failed to remove file: {e}") from e
