"""Downscale and re-encode uploads before they reach the library."""
import io
import logging

from PIL import Image, UnidentifiedImageError

from gacha_media.exceptions import DecodeError

logger = logging.getLogger(__name__)

DEFAULT_MAX_DIMENSION = 1920
DEFAULT_JPEG_QUALITY = 82
COMPRESSED_MIME_TYPE = "image/jpeg"


def fit_within(width: int, height: int, max_dimension: int) -> tuple[int, int]:
    """Scale a size down so its longest side is at most ``max_dimension``.

    Sizes that already fit are returned unchanged; the aspect ratio is kept
    and fractional pixels round half up.
    """
    if width <= max_dimension and height <= max_dimension:
        return width, height
    if width >= height:
        return max_dimension, max(1, int(height * max_dimension / width + 0.5))
    return max(1, int(width * max_dimension / height + 0.5)), max_dimension


def compress_image(
    content: bytes,
    max_dimension: int = DEFAULT_MAX_DIMENSION,
    jpeg_quality: int = DEFAULT_JPEG_QUALITY,
) -> bytes:
    """Re-encode an image as JPEG, shrinking it to fit ``max_dimension``.

    Args:
        content: Raw bytes of any image format Pillow can read.
        max_dimension: Longest allowed side in pixels.
        jpeg_quality: JPEG quality (1-95).

    Returns:
        bytes: JPEG-encoded image.

    Raises:
        DecodeError: If the content is not a readable image.
    """
    try:
        with Image.open(io.BytesIO(content)) as img:
            img.load()
            size = fit_within(img.width, img.height, max_dimension)
            if size != img.size:
                img = img.resize(size, Image.Resampling.LANCZOS)
            if img.mode not in ("RGB", "L"):
                img = img.convert("RGB")

            output = io.BytesIO()
            img.save(output, format="JPEG", quality=jpeg_quality)
    except (UnidentifiedImageError, OSError) as e:
        raise DecodeError(f"Cannot decode image: {e}") from e

    compressed = output.getvalue()
    logger.debug(f"Compressed image from {len(content)} to {len(compressed)} bytes ({size[0]}x{size[1]})")
    return compressed
