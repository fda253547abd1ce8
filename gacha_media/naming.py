"""Collision-resistant file name allocation."""

import secrets
import string
import time
from pathlib import PurePosixPath
from typing import Optional

from gacha_media.codec import extension_for, extension_for_mime

SUFFIX_LENGTH = 6
DEFAULT_EXTENSION = "png"

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def now_millis() -> int:
    """Current time in milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


def random_suffix(length: int = SUFFIX_LENGTH) -> str:
    return "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(length))


def allocate_file_name(
    prefix: str,
    original_name: Optional[str] = None,
    mime_type: Optional[str] = None,
) -> str:
    """Build a new file name of the form ``<prefix>_<epochMillis>_<suffix>.<ext>``.

    The extension follows the declared MIME type of the content when it is a
    known image type, then the original file name's extension, then ``png``.

    Args:
        prefix: Store-specific prefix, e.g. ``img``.
        original_name: User-supplied name at import time.
        mime_type: MIME type declared by the uploaded data URL.

    Returns:
        str: A file name that is unique with overwhelming probability.
    """
    ext = extension_for_mime(mime_type) or extension_for(original_name) or DEFAULT_EXTENSION
    return f"{prefix}_{now_millis()}_{random_suffix()}.{ext}"


def is_plain_file_name(name: str) -> bool:
    """True for a bare, visible file name: no directories, no leading dot.

    Dot-prefixed names are reserved for in-flight temporary files.
    """
    return bool(name) and PurePosixPath(name).name == name and not name.startswith(".")
