"""Tests for the legacy film image migration."""

import asyncio
import json

import pytest

from gacha_media.schemas import AssetTag, OperationStatus
from gacha_media.storage.base import StorageError

from .conftest import create_test_image, read_index_file


@pytest.fixture
def film_bytes():
    return {
        "film_1.png": create_test_image("PNG", seed=1),
        "film_2.jpg": create_test_image("JPEG", seed=2),
    }


class TestMigrationRunner:
    """Test absorption of the legacy store into the library."""

    @pytest.mark.asyncio
    async def test_list_triggers_migration(self, repository, seed_legacy_store, film_bytes, data_root):
        """Test that the first list() migrates an existing legacy file."""
        legacy_dir = seed_legacy_store(["film_1.png"], {"film_1.png": film_bytes["film_1.png"]})

        records = await repository.list()

        assert len(records) == 1
        assert records[0].id == "film_1.png"
        assert records[0].file_name == "film_1.png"
        assert records[0].original_name == "film_1.png"
        assert records[0].tags == [AssetTag.FILM]
        assert not (legacy_dir / "film_images_index.json").exists()
        assert not (legacy_dir / "film_1.png").exists()
        assert (data_root / "image_library" / "film_1.png").read_bytes() == film_bytes["film_1.png"]

    @pytest.mark.asyncio
    async def test_missing_legacy_file_is_skipped(self, repository, seed_legacy_store, film_bytes):
        """Test a legacy entry whose file was already deleted."""
        legacy_dir = seed_legacy_store(
            ["film_1.png", "film_2.png"],
            {"film_1.png": film_bytes["film_1.png"]},
        )

        result = await repository.migration.run()

        assert result.status == OperationStatus.OK
        assert result.affected == ["film_1.png"]
        assert [record.id for record in await repository.list()] == ["film_1.png"]
        assert not (legacy_dir / "film_images_index.json").exists()

    @pytest.mark.asyncio
    async def test_migrated_entries_keep_legacy_order_after_existing(
        self, repository, seed_legacy_store, film_bytes, png_data_url
    ):
        """Test that migrated records are appended behind existing ones."""
        existing = await repository.save(png_data_url, "a.png")
        seed_legacy_store(["film_1.png", "film_2.jpg"], film_bytes)
        repository.migration._verified = False

        records = await repository.list()

        assert [record.id for record in records] == [existing.id, "film_1.png", "film_2.jpg"]

    @pytest.mark.asyncio
    async def test_running_twice_is_idempotent(self, repository, seed_legacy_store, film_bytes, data_root):
        """Test that a second run yields an identical index."""
        seed_legacy_store(["film_1.png", "film_2.jpg"], film_bytes)

        await repository.migration.run()
        first = read_index_file(data_root)
        second_result = await repository.migration.run()

        assert read_index_file(data_root) == first
        assert second_result.affected == []

    @pytest.mark.asyncio
    async def test_rerun_after_interrupted_retirement(self, repository, seed_legacy_store, film_bytes, data_root):
        """Test that a left-over legacy index does not duplicate entries."""
        seed_legacy_store(["film_1.png"], {"film_1.png": film_bytes["film_1.png"]})
        await repository.migration.run()

        # Simulate a crash before the legacy index was retired
        seed_legacy_store(["film_1.png"], {"film_1.png": film_bytes["film_1.png"]})
        result = await repository.migration.run()

        assert result.affected == []
        assert [entry["id"] for entry in read_index_file(data_root)] == ["film_1.png"]

    @pytest.mark.asyncio
    async def test_concurrent_runs_do_not_duplicate(self, repository, seed_legacy_store, film_bytes):
        """Test two overlapping migrations."""
        seed_legacy_store(["film_1.png", "film_2.jpg"], film_bytes)

        results = await asyncio.gather(repository.migration.run(), repository.migration.run())

        assert sorted(results[0].affected + results[1].affected) == ["film_1.png", "film_2.jpg"]
        assert len(await repository.list()) == 2

    @pytest.mark.asyncio
    async def test_noop_without_legacy_store(self, repository):
        """Test that an absent legacy store is a cheap no-op."""
        result = await repository.migration.run()

        assert result.ok
        assert repository.migration.verified
        assert await repository.list() == []

    @pytest.mark.asyncio
    async def test_verified_flag_skips_legacy_reads(self, repository, monkeypatch):
        """Test that a verified runner stops reading the legacy index."""
        await repository.list()
        assert repository.migration.verified

        def fail_read():
            raise AssertionError("legacy index read after verification")

        monkeypatch.setattr(repository.legacy_index, "read", fail_read)

        await repository.list()

    @pytest.mark.asyncio
    async def test_invalid_legacy_names_are_reported(self, repository, seed_legacy_store, film_bytes):
        """Test that path-like legacy names are not followed."""
        seed_legacy_store(["../escape.png", "film_1.png"], {"film_1.png": film_bytes["film_1.png"]})

        result = await repository.migration.run()

        assert result.status == OperationStatus.WARNING
        assert result.affected == ["film_1.png"]
        assert "escape.png" in result.warnings[0]

    @pytest.mark.asyncio
    async def test_copy_failure_is_a_warning(self, repository, seed_legacy_store, film_bytes, storage, monkeypatch):
        """Test that one unreadable legacy file does not stop the others."""
        legacy_dir = seed_legacy_store(["film_1.png", "film_2.jpg"], film_bytes)
        original_read = storage.read_file

        def flaky_read(path):
            if path.endswith("film_1.png"):
                raise StorageError("bad sector")
            return original_read(path)

        monkeypatch.setattr(storage, "read_file", flaky_read)

        result = await repository.migration.run()

        assert result.status == OperationStatus.WARNING
        assert result.affected == ["film_2.jpg"]
        assert (legacy_dir / "film_1.png").exists()
        assert (legacy_dir / "film_images_index.json").exists()
        assert not repository.migration.verified
        assert [record.id for record in await repository.list()] == ["film_2.jpg"]

    @pytest.mark.asyncio
    async def test_failed_copy_is_retried(self, repository, seed_legacy_store, film_bytes, storage, monkeypatch):
        """Test that a file that failed to copy is migrated by a later run."""
        legacy_dir = seed_legacy_store(["film_1.png", "film_2.jpg"], film_bytes)
        original_read = storage.read_file

        def flaky_read(path):
            if path.endswith("film_1.png"):
                raise StorageError("bad sector")
            return original_read(path)

        monkeypatch.setattr(storage, "read_file", flaky_read)
        await repository.migration.run()
        monkeypatch.setattr(storage, "read_file", original_read)

        records = await repository.list()

        assert [record.id for record in records] == ["film_2.jpg", "film_1.png"]
        assert repository.migration.verified
        assert not (legacy_dir / "film_1.png").exists()
        assert not (legacy_dir / "film_images_index.json").exists()

    @pytest.mark.asyncio
    async def test_legacy_name_clashing_with_index_is_ignored(self, repository, seed_legacy_store, film_bytes, data_root):
        """Test that a legacy file cannot overwrite the library index."""
        seed_legacy_store(
            ["image_library_index.json", ".hidden.png", "film_1.png"],
            {"image_library_index.json": b"[]", "film_1.png": film_bytes["film_1.png"]},
        )

        result = await repository.migration.run()

        assert result.affected == ["film_1.png"]
        assert len(result.warnings) == 2
        assert [entry["id"] for entry in read_index_file(data_root)] == ["film_1.png"]

    @pytest.mark.asyncio
    async def test_unparsed_index_entries_survive_migration(self, repository, seed_legacy_store, film_bytes, data_root):
        """Test that migration writes back entries it cannot parse."""
        foreign = {"id": "img_1_aaaaaa.png", "fileName": "img_1_aaaaaa.png", "createdAt": 1, "tags": ["banner"]}
        library = data_root / "image_library"
        library.mkdir(parents=True)
        (library / "image_library_index.json").write_text(json.dumps([foreign]))
        seed_legacy_store(["film_1.png"], {"film_1.png": film_bytes["film_1.png"]})

        await repository.migration.run()

        assert read_index_file(data_root)[0] == foreign
        assert [entry["id"] for entry in read_index_file(data_root)] == ["img_1_aaaaaa.png", "film_1.png"]

    @pytest.mark.asyncio
    async def test_retire_failure_is_a_warning_and_retried(
        self, repository, seed_legacy_store, film_bytes, storage, monkeypatch
    ):
        """Test that a failed retirement keeps the runner unverified."""
        seed_legacy_store(["film_1.png"], {"film_1.png": film_bytes["film_1.png"]})
        original_remove = storage.remove

        def flaky_remove(path):
            if path.endswith("film_images_index.json"):
                raise StorageError("read-only")
            return original_remove(path)

        monkeypatch.setattr(storage, "remove", flaky_remove)

        result = await repository.migration.run()

        assert result.status == OperationStatus.WARNING
        assert result.affected == ["film_1.png"]
        assert not repository.migration.verified

        monkeypatch.setattr(storage, "remove", original_remove)
        retry = await repository.migration.ensure_migrated()

        assert retry.ok
        assert repository.migration.verified
        assert len(await repository.list()) == 1

    @pytest.mark.asyncio
    async def test_index_write_failure_keeps_legacy_files(
        self, repository, seed_legacy_store, film_bytes, storage, monkeypatch
    ):
        """Test that legacy files survive when the library index cannot be written."""
        legacy_dir = seed_legacy_store(["film_1.png"], {"film_1.png": film_bytes["film_1.png"]})
        original_write = storage.write_file

        def flaky_write(path, data):
            if path.endswith("image_library_index.json"):
                raise StorageError("disk full")
            return original_write(path, data)

        monkeypatch.setattr(storage, "write_file", flaky_write)

        with pytest.raises(StorageError):
            await repository.list()

        assert (legacy_dir / "film_1.png").exists()
        assert (legacy_dir / "film_images_index.json").exists()

        monkeypatch.setattr(storage, "write_file", original_write)

        assert [record.id for record in await repository.list()] == ["film_1.png"]
        assert not (legacy_dir / "film_1.png").exists()
