"""Filesystem capability interface used by the media store."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class StorageClient(Protocol):
    """Abstract interface for the filesystem operations the store needs.

    Every path is relative to an application-private data root owned by the
    implementation. Callers never see absolute paths, which keeps the store
    portable across backends (local disk today, anything path-addressed
    tomorrow).
    """

    def exists(self, path: str) -> bool:
        """Check whether a file or directory exists.

        Args:
            path: Path relative to the data root.

        Returns:
            bool: True if something exists at the path.
        """
        ...

    def mkdir(self, path: str, recursive: bool = True) -> None:
        """Create a directory.

        Args:
            path: Path relative to the data root.
            recursive: Create missing parents as well.

        Raises:
            StorageError: If the directory cannot be created.
        """
        ...

    def read_file(self, path: str) -> bytes:
        """Read a whole file.

        Args:
            path: Path relative to the data root.

        Returns:
            bytes: Raw file content.

        Raises:
            FileNotFoundError: If the file does not exist.
            StorageError: If the file cannot be read.
        """
        ...

    def write_file(self, path: str, data: bytes) -> None:
        """Replace a file's content in one step.

        Args:
            path: Path relative to the data root.
            data: Content to write.

        Raises:
            StorageError: If the file cannot be written.
        """
        ...

    def remove(self, path: str) -> None:
        """Remove a file.

        Args:
            path: Path relative to the data root.

        Raises:
            FileNotFoundError: If the file does not exist.
            StorageError: If the file cannot be removed.
        """
        ...


class StorageError(Exception):
    """Filesystem failure reported by a StorageClient.

    Treated as transient by the store: swallowed on best-effort steps,
    propagated on load-bearing ones.
    """
    pass
