"""JSON index documents for the image library and the legacy film store."""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Set

from pydantic import ValidationError

from gacha_media.exceptions import CorruptIndexError
from gacha_media.schemas.asset import AssetRecord
from gacha_media.storage.base import StorageClient, StorageError

logger = logging.getLogger(__name__)


def _load_json_array(raw: bytes, path: str) -> list:
    """Parse an index document whose root must be a JSON array.

    Raises:
        CorruptIndexError: If the document is not UTF-8 JSON with an array root.
    """
    try:
        parsed = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise CorruptIndexError(f"Index {path} is not valid JSON: {e}") from e

    if not isinstance(parsed, list):
        raise CorruptIndexError(
            f"Index {path} must contain a JSON array, got {type(parsed).__name__}"
        )
    return parsed


def _raw_field(entry: Any, key: str) -> Optional[str]:
    value = entry.get(key) if isinstance(entry, dict) else None
    return value if isinstance(value, str) else None


@dataclass
class IndexSnapshot:
    """The index document as read, in document order.

    Entries that parse are held as AssetRecord; entries that do not (for
    instance a tag written by a newer client) are held verbatim, so a
    read-modify-write cycle puts them back untouched.
    """

    entries: List[Any] = field(default_factory=list)

    @property
    def records(self) -> List[AssetRecord]:
        return [entry for entry in self.entries if isinstance(entry, AssetRecord)]

    @property
    def unparsed(self) -> List[Any]:
        return [entry for entry in self.entries if not isinstance(entry, AssetRecord)]

    def file_names(self) -> Set[str]:
        """File names referenced by any entry, parsed or not."""
        names = {record.file_name for record in self.records}
        names.update(
            name for name in (_raw_field(entry, "fileName") for entry in self.unparsed) if name
        )
        return names

    def contains(self, asset_id: str) -> bool:
        return any(
            (entry.id if isinstance(entry, AssetRecord) else _raw_field(entry, "id")) == asset_id
            for entry in self.entries
        )

    def prepend(self, record: AssetRecord) -> None:
        self.entries.insert(0, record)

    def append(self, record: AssetRecord) -> None:
        self.entries.append(record)

    def remove(self, asset_id: str) -> bool:
        """Drop every entry carrying ``asset_id``, parsed or not."""
        remaining = [
            entry for entry in self.entries
            if (entry.id if isinstance(entry, AssetRecord) else _raw_field(entry, "id")) != asset_id
        ]
        removed = len(remaining) != len(self.entries)
        self.entries = remaining
        return removed

    def clear_records(self) -> List[AssetRecord]:
        """Drop every parsed record and return them; unparsed entries stay."""
        removed = self.records
        self.entries = self.unparsed
        return removed


class IndexStore:
    """The image library index: sole source of truth for what exists.

    The whole document is read and written at once; there is no partial
    patching. Reads fail soft: a missing document is an empty library and a
    corrupt one is logged and treated as empty. Entries that fail
    validation are hidden from ``read()`` but survive ``load()``/``write()``
    cycles. Filesystem errors while reading or writing propagate.
    """

    def __init__(self, storage: StorageClient, directory: str, file_name: str):
        self.storage = storage
        self.directory = directory
        self.file_name = file_name
        self.path = f"{directory}/{file_name}"

    def ensure_directory(self) -> None:
        if not self.storage.exists(self.directory):
            self.storage.mkdir(self.directory, recursive=True)
            logger.debug(f"Created library directory: {self.directory}")

    def read(self) -> List[AssetRecord]:
        """Read every valid record, most recent first.

        Returns:
            List[AssetRecord]: Records in index order. Empty if the document
            (or its directory) does not exist or cannot be parsed.
        """
        return self.load().records

    def load(self) -> IndexSnapshot:
        """Read the document for a read-modify-write cycle.

        Returns:
            IndexSnapshot: Parsed records and verbatim invalid entries, in
            document order. Later duplicates of an ID are dropped.
        """
        if not self.storage.exists(self.path):
            return IndexSnapshot()

        try:
            raw = self.storage.read_file(self.path)
        except FileNotFoundError:
            return IndexSnapshot()

        try:
            entries = _load_json_array(raw, self.path)
        except CorruptIndexError as e:
            logger.warning(f"{e}; treating library as empty")
            return IndexSnapshot()

        snapshot = IndexSnapshot()
        seen: set[str] = set()
        for position, entry in enumerate(entries):
            try:
                record = AssetRecord.model_validate(entry)
            except ValidationError as e:
                logger.warning(
                    f"Skipping invalid entry #{position} in {self.path}: "
                    f"{e.error_count()} validation error(s)"
                )
                snapshot.entries.append(entry)
                continue

            if record.id in seen:
                logger.warning(f"Skipping duplicate entry for {record.id} in {self.path}")
                continue

            seen.add(record.id)
            snapshot.entries.append(record)

        return snapshot

    def write(self, entries: Sequence[Any]) -> None:
        """Replace the whole index document.

        Args:
            entries: AssetRecords, or raw entries kept from ``load()``.

        Raises:
            StorageError: If the document cannot be written.
        """
        self.ensure_directory()
        document = json.dumps(
            [
                entry.to_index_entry() if isinstance(entry, AssetRecord) else entry
                for entry in entries
            ],
            ensure_ascii=False,
        )
        self.storage.write_file(self.path, document.encode("utf-8"))
        logger.debug(f"Wrote {len(entries)} entries to {self.path}")


class LegacyIndexStore:
    """Read-only view of the legacy film image index (bare file names)."""

    def __init__(self, storage: StorageClient, directory: str, file_name: str):
        self.storage = storage
        self.directory = directory
        self.path = f"{directory}/{file_name}"

    def file_path(self, file_name: str) -> str:
        return f"{self.directory}/{file_name}"

    def read(self) -> List[str]:
        """Read the legacy file names in index order.

        Missing, unreadable or corrupt documents yield an empty list;
        empty and non-string entries are dropped.
        """
        try:
            if not self.storage.exists(self.path):
                return []
            raw = self.storage.read_file(self.path)
            entries = _load_json_array(raw, self.path)
        except FileNotFoundError:
            return []
        except CorruptIndexError as e:
            logger.warning(f"{e}; skipping legacy migration")
            return []
        except StorageError as e:
            logger.warning(f"Could not read legacy index {self.path}: {e}")
            return []

        return [name for name in entries if isinstance(name, str) and name]

    def retire(self) -> None:
        """Delete the legacy index document if it still exists.

        Raises:
            StorageError: If the document exists but cannot be removed.
        """
        if self.storage.exists(self.path):
            try:
                self.storage.remove(self.path)
            except FileNotFoundError:
                return
            logger.info(f"Retired legacy index {self.path}")
