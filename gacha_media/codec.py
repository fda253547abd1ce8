"""Conversion between data URLs and raw image bytes."""

import base64
import binascii
import re
from dataclasses import dataclass
from typing import Optional

from gacha_media.exceptions import DecodeError

DEFAULT_MIME_TYPE = "image/png"

_DATA_URL_RE = re.compile(
    r"^data:(?P<mime>image/[a-z0-9.+-]+);base64,(?P<payload>.*)$",
    re.IGNORECASE | re.DOTALL,
)

_MIME_BY_EXTENSION = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "bmp": "image/bmp",
}

_EXTENSION_BY_MIME = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/bmp": "bmp",
}


@dataclass(frozen=True)
class DecodedBlob:
    """Raw bytes of a data URL together with its declared MIME type."""
    mime_type: str
    data: bytes


def is_data_url(value: str) -> bool:
    """Return True if the value looks like a base64 image data URL."""
    return bool(value) and _DATA_URL_RE.match(value) is not None


def decode_data_url(blob: str) -> DecodedBlob:
    """Decode a ``data:<mime>;base64,<payload>`` string.

    Whitespace inside the payload is ignored; anything else that is not
    base64 is rejected.

    Raises:
        DecodeError: If the blob is not a base64 image data URL or its
            payload is empty or malformed.
    """
    if not isinstance(blob, str):
        raise DecodeError("Image data must be a data URL string")

    match = _DATA_URL_RE.match(blob.strip())
    if match is None:
        raise DecodeError("Image data is not a base64 image data URL")

    payload = "".join(match.group("payload").split())
    if not payload:
        raise DecodeError("Image data URL has an empty payload")

    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Invalid base64 payload: {e}") from e

    return DecodedBlob(mime_type=match.group("mime").lower(), data=data)


def encode_data_url(data: bytes, mime_type: str = DEFAULT_MIME_TYPE) -> str:
    """Encode raw bytes as a base64 data URL."""
    payload = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{payload}"


def mime_type_for(file_name: str) -> str:
    """Infer a MIME type from a file name's extension.

    Unknown or missing extensions default to ``image/png``.
    """
    _, dot, ext = file_name.rpartition(".")
    if not dot:
        return DEFAULT_MIME_TYPE
    return _MIME_BY_EXTENSION.get(ext.lower(), DEFAULT_MIME_TYPE)


def extension_for(file_name: Optional[str]) -> Optional[str]:
    """Return the normalized image extension of a file name, if recognized."""
    if not file_name:
        return None
    _, dot, ext = file_name.rpartition(".")
    ext = ext.lower()
    if dot and ext in _MIME_BY_EXTENSION:
        return ext
    return None


def extension_for_mime(mime_type: Optional[str]) -> Optional[str]:
    """Return the preferred file extension for an image MIME type, if known."""
    if not mime_type:
        return None
    return _EXTENSION_BY_MIME.get(mime_type.lower())
