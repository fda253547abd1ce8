"""Asset repository: the public API of the media asset store."""

import asyncio
import logging
from typing import Iterable, List, Optional, Tuple

from config import Settings
from pydantic import ValidationError

from gacha_media.codec import decode_data_url, encode_data_url, is_data_url, mime_type_for
from gacha_media.exceptions import AssetNotFoundError, DecodeError
from gacha_media.index import IndexStore, LegacyIndexStore
from gacha_media.migration import MigrationRunner
from gacha_media.naming import allocate_file_name, is_plain_file_name, now_millis
from gacha_media.schemas.asset import AssetRecord, AssetTag
from gacha_media.schemas.result import OperationResult
from gacha_media.serializer import WriteSerializer
from gacha_media.storage.base import StorageClient, StorageError

logger = logging.getLogger(__name__)


class AssetRepository:
    """File-backed, index-tracked store of uploaded images.

    Files live in ``library_dir``; their metadata lives in one JSON index
    document next to them. Every index mutation (save, delete, clear,
    legacy migration) goes through a single WriteSerializer, so concurrent
    callers never lose each other's updates. Reads do not queue.

    An instance belongs to one event loop and assumes it is the only
    writer of its directories.
    """

    def __init__(
        self,
        storage: StorageClient,
        library_dir: str = "image_library",
        index_file: str = "image_library_index.json",
        legacy_dir: str = "film_images",
        legacy_index_file: str = "film_images_index.json",
        file_prefix: str = "img",
    ):
        """Initialize the repository.

        Args:
            storage: Filesystem capability scoped to the data root.
            library_dir: Directory of current asset files.
            index_file: Name of the library index document.
            legacy_dir: Directory of the legacy film image store.
            legacy_index_file: Name of the legacy index document.
            file_prefix: Prefix for newly allocated file names.
        """
        self.storage = storage
        self.library_dir = library_dir
        self.file_prefix = file_prefix
        self.index = IndexStore(storage, library_dir, index_file)
        self.legacy_index = LegacyIndexStore(storage, legacy_dir, legacy_index_file)
        self.serializer = WriteSerializer(name=library_dir)
        self.migration = MigrationRunner(storage, self.index, self.legacy_index, self.serializer)
        logger.info(f"Initialized AssetRepository for {library_dir}")

    @classmethod
    def from_settings(cls, storage: StorageClient, settings: Settings) -> "AssetRepository":
        return cls(
            storage,
            library_dir=settings.library_dir,
            index_file=settings.library_index_file,
            legacy_dir=settings.legacy_dir,
            legacy_index_file=settings.legacy_index_file,
            file_prefix=settings.library_file_prefix,
        )

    def _file_path(self, file_name: str) -> str:
        """Storage path of a library file.

        Raises:
            ValueError: If the name is not a plain file name or names the
                index document.
        """
        if not is_plain_file_name(file_name) or file_name == self.index.file_name:
            raise ValueError(f"Invalid asset file name: {file_name!r}")
        return f"{self.library_dir}/{file_name}"

    async def save(
        self,
        blob: str,
        original_name: Optional[str] = None,
        tags: Optional[Iterable[AssetTag]] = None,
    ) -> AssetRecord:
        """Store an image and add it to the front of the index.

        Args:
            blob: Image as ``data:<mime>;base64,<payload>``.
            original_name: User-supplied name, kept for display.
            tags: Labels to attach.

        Returns:
            AssetRecord: The created record.

        Raises:
            DecodeError: If the blob is not a valid image data URL, or the
                name or tags are invalid.
            StorageError: If the file or the index cannot be written.
        """
        await self.migration.ensure_migrated()

        decoded = decode_data_url(blob)
        file_name = allocate_file_name(self.file_prefix, original_name, decoded.mime_type)

        try:
            record = AssetRecord(
                id=file_name,
                file_name=file_name,
                original_name=original_name,
                created_at=now_millis(),
                tags=list(tags) if tags else None,
            )
        except ValidationError as e:
            raise DecodeError(f"Invalid asset metadata: {e.error_count()} validation error(s)") from e

        await asyncio.to_thread(self.index.ensure_directory)
        await asyncio.to_thread(self.storage.write_file, self._file_path(file_name), decoded.data)

        try:
            await self.serializer.submit(
                lambda: asyncio.to_thread(self._insert_record, record)
            )
        except Exception as e:
            logger.error(f"Failed to index {file_name}, removing its file: {e}")
            await self._remove_file(file_name, OperationResult())
            raise

        logger.info(f"Saved asset {record.id} ({len(decoded.data)} bytes)")
        return record

    def _insert_record(self, record: AssetRecord) -> None:
        snapshot = self.index.load()
        if snapshot.contains(record.id):
            logger.warning(f"Asset {record.id} is already indexed")
            return
        snapshot.prepend(record)
        self.index.write(snapshot.entries)

    async def load_bytes(self, asset_id: str) -> Tuple[bytes, str]:
        """Read an asset's raw content.

        Returns:
            Tuple[bytes, str]: File content and the MIME type inferred from
            its extension.

        Raises:
            AssetNotFoundError: If the file does not exist.
            StorageError: If the file exists but cannot be read.
        """
        try:
            file_path = self._file_path(asset_id)
        except ValueError:
            raise AssetNotFoundError(asset_id)

        try:
            data = await asyncio.to_thread(self.storage.read_file, file_path)
        except FileNotFoundError:
            logger.warning(f"Asset file not found: {asset_id}")
            raise AssetNotFoundError(asset_id)

        return data, mime_type_for(asset_id)

    async def load(self, asset_id: str) -> str:
        """Read an asset and encode it as a data URL.

        Raises:
            AssetNotFoundError: If the file does not exist.
        """
        data, mime_type = await self.load_bytes(asset_id)
        return encode_data_url(data, mime_type)

    async def list(self) -> List[AssetRecord]:
        """All records in index order (most recent first)."""
        await self.migration.ensure_migrated()
        return await asyncio.to_thread(self.index.read)

    async def get(self, asset_id: str) -> Optional[AssetRecord]:
        """Look up one record by ID."""
        for record in await self.list():
            if record.id == asset_id:
                return record
        return None

    async def delete(self, asset_id: str) -> OperationResult:
        """Remove an asset's index entry, then its file.

        The index entry is removed whether or not the file still exists.
        File removal is best effort: an absent file is fine, any other
        failure is reported as a warning.

        Raises:
            StorageError: If the index cannot be written.
        """
        await self.migration.ensure_migrated()

        removed = await self.serializer.submit(
            lambda: asyncio.to_thread(self._remove_record, asset_id)
        )
        if not removed:
            logger.debug(f"Asset {asset_id} was not indexed")

        result = OperationResult(affected=[asset_id])
        await self._remove_file(asset_id, result)
        logger.info(f"Deleted asset {asset_id}")
        return result

    def _remove_record(self, asset_id: str) -> bool:
        snapshot = self.index.load()
        removed = snapshot.remove(asset_id)
        self.index.write(snapshot.entries)
        return removed

    async def clear(self) -> OperationResult:
        """Remove every asset: empty the index, then delete the files.

        Raises:
            StorageError: If the index cannot be written.
        """
        await self.migration.ensure_migrated()

        removed = await self.serializer.submit(
            lambda: asyncio.to_thread(self._clear_records)
        )

        result = OperationResult(affected=[record.id for record in removed])
        for record in removed:
            await self._remove_file(record.file_name, result)

        logger.info(f"Cleared {len(removed)} asset(s) from {self.library_dir}")
        return result

    def _clear_records(self) -> List[AssetRecord]:
        snapshot = self.index.load()
        removed = snapshot.clear_records()
        if snapshot.entries:
            logger.warning(
                f"Keeping {len(snapshot.entries)} unreadable index entries in {self.library_dir}"
            )
        self.index.write(snapshot.entries)
        return removed

    async def _remove_file(self, file_name: str, result: OperationResult) -> None:
        try:
            file_path = self._file_path(file_name)
        except ValueError:
            return

        try:
            await asyncio.to_thread(self.storage.remove, file_path)
        except FileNotFoundError:
            logger.debug(f"File already absent: {file_path}")
        except StorageError as e:
            logger.warning(f"Could not remove {file_path}: {e}")
            result.add_warning(f"Could not remove {file_name}: {e}")

    async def resolve_ref(self, ref: Optional[str]) -> str:
        """Turn an image reference into something displayable.

        Consumers store either a library ID or, in older configurations, an
        inline data URL. Data URLs pass through unchanged; IDs are loaded;
        anything unknown resolves to an empty string.
        """
        if not ref:
            return ""
        if is_data_url(ref):
            return ref
        try:
            return await self.load(ref)
        except AssetNotFoundError:
            return ""

    async def close(self) -> None:
        """Wait for queued index mutations to finish."""
        await self.serializer.join()
