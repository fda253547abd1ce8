"""Shared fixtures for the media store tests."""
import base64
import io
import json
from pathlib import Path

import pytest
from PIL import Image

from config import get_settings
from gacha_media.repositories import AssetRepository
from gacha_media.storage.local import LocalStorageClient


def create_test_image(fmt: str = "PNG", width: int = 4, height: int = 4, seed: int = 0) -> bytes:
    """Create a small test image.

    Args:
        fmt: Pillow format name (PNG, JPEG, GIF, ...).
        width: Image width in pixels.
        height: Image height in pixels.
        seed: Seed for generating different colored images.

    Returns:
        bytes: Encoded image data.
    """
    color = ((seed * 50) % 256, (seed * 100) % 256, (seed * 150) % 256)
    img = Image.new("RGB", (width, height), color=color)

    img_bytes = io.BytesIO()
    img.save(img_bytes, format=fmt)
    return img_bytes.getvalue()


def to_data_url(content: bytes, mime_type: str = "image/png") -> str:
    return f"data:{mime_type};base64,{base64.b64encode(content).decode('ascii')}"


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Make every test see a fresh Settings instance."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def data_root(tmp_path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def storage(data_root) -> LocalStorageClient:
    return LocalStorageClient(data_root=data_root)


@pytest.fixture
def repository(storage) -> AssetRepository:
    return AssetRepository(storage)


@pytest.fixture
def png_bytes() -> bytes:
    return create_test_image("PNG")


@pytest.fixture
def png_data_url(png_bytes) -> str:
    return to_data_url(png_bytes, "image/png")


@pytest.fixture
def seed_legacy_store(data_root):
    """Write a legacy film store: given files on disk plus an index listing names."""

    def _seed(index_names: list, files: dict[str, bytes]) -> Path:
        legacy_dir = data_root / "film_images"
        legacy_dir.mkdir(parents=True, exist_ok=True)
        for name, content in files.items():
            (legacy_dir / name).write_bytes(content)
        (legacy_dir / "film_images_index.json").write_text(json.dumps(index_names))
        return legacy_dir

    return _seed


def read_index_file(data_root: Path) -> list:
    """Load the raw library index document."""
    return json.loads((data_root / "image_library" / "image_library_index.json").read_text())
