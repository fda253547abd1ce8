"""One-shot absorption of the legacy film image store into the image library."""

import asyncio
import logging
from typing import List

from gacha_media.index import IndexStore, LegacyIndexStore
from gacha_media.naming import is_plain_file_name, now_millis
from gacha_media.schemas.asset import AssetRecord, AssetTag
from gacha_media.schemas.result import OperationResult
from gacha_media.serializer import WriteSerializer
from gacha_media.storage.base import StorageClient, StorageError

logger = logging.getLogger(__name__)


class MigrationRunner:
    """Moves legacy film images into the image library, at most once per file.

    The check is cheap and runs before every store operation: once the
    legacy index has been observed absent (or has been retired by this
    instance) the runner remembers it and stops looking.

    The transfer itself runs under the write serializer and is idempotent.
    Each legacy file name is checked against the current index before it is
    copied, so re-running after a crash or from a second caller neither
    duplicates entries nor loses files. Legacy files are only removed after
    the updated index has been persisted.
    """

    def __init__(
        self,
        storage: StorageClient,
        index: IndexStore,
        legacy_index: LegacyIndexStore,
        serializer: WriteSerializer,
    ):
        self.storage = storage
        self.index = index
        self.legacy_index = legacy_index
        self.serializer = serializer
        self._verified = False

    @property
    def verified(self) -> bool:
        """True once this instance knows there is nothing left to migrate."""
        return self._verified

    async def ensure_migrated(self) -> OperationResult:
        """Run the migration unless it is already known to be complete."""
        if self._verified:
            return OperationResult()
        return await self.run()

    async def run(self) -> OperationResult:
        """Migrate every legacy file not yet present in the library.

        Returns:
            OperationResult: IDs of migrated assets in ``affected`` and any
            absorbed per-file failures in ``warnings``.

        Raises:
            StorageError: If the updated library index cannot be written.
        """
        legacy_names = await asyncio.to_thread(self.legacy_index.read)
        if not legacy_names:
            self._verified = True
            return OperationResult()

        logger.info(f"Found {len(legacy_names)} legacy film image(s) to check")
        result = await self.serializer.submit(
            lambda: asyncio.to_thread(self._migrate)
        )

        if result.affected:
            logger.info(f"Migrated {len(result.affected)} legacy film image(s) into the library")
        for warning in result.warnings:
            logger.warning(f"Legacy migration: {warning}")

        return result

    def _migrate(self) -> OperationResult:
        result = OperationResult()

        # Re-read under the serializer: a previous run may have finished meanwhile
        legacy_names = self.legacy_index.read()
        if not legacy_names:
            self._verified = True
            return result

        self.index.ensure_directory()
        snapshot = self.index.load()
        present = snapshot.file_names()
        migrated: List[str] = []
        copy_failed = False

        for file_name in legacy_names:
            if file_name in present:
                continue

            if not is_plain_file_name(file_name) or file_name == self.index.file_name:
                result.add_warning(f"Ignoring invalid legacy file name {file_name!r}")
                continue

            legacy_path = self.legacy_index.file_path(file_name)
            if not self.storage.exists(legacy_path):
                logger.debug(f"Legacy file already gone, skipping: {legacy_path}")
                continue

            try:
                content = self.storage.read_file(legacy_path)
                self.storage.write_file(f"{self.index.directory}/{file_name}", content)
            except (FileNotFoundError, StorageError) as e:
                result.add_warning(f"Could not copy {file_name}: {e}")
                copy_failed = True
                continue

            snapshot.append(
                AssetRecord(
                    id=file_name,
                    file_name=file_name,
                    original_name=file_name,
                    created_at=now_millis(),
                    tags=[AssetTag.FILM],
                )
            )
            present.add(file_name)
            migrated.append(file_name)

        if migrated:
            self.index.write(snapshot.entries)

        for file_name in migrated:
            try:
                self.storage.remove(self.legacy_index.file_path(file_name))
            except FileNotFoundError:
                pass
            except StorageError as e:
                result.add_warning(f"Could not remove legacy file {file_name}: {e}")

        if copy_failed:
            # The legacy index stays until every listed file has been copied
            result.affected = migrated
            return result

        try:
            self.legacy_index.retire()
        except StorageError as e:
            result.add_warning(f"Could not retire legacy index: {e}")
        else:
            self._verified = True

        result.affected = migrated
        return result
