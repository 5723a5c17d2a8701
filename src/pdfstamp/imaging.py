"""Signature image payload decoding.

Browsers hand us canvas exports as data URIs
(``data:image/png;base64,iVBOR...``). The format is read from the
header marker only; anything that is not clearly JPEG is treated as PNG.
"""

import base64
import binascii
import re

from .errors import ImageDecodeError
from .models import DecodedImage, ImageFormat

_HEADER_RE = re.compile(r"^data:(image/[\w.+-]+);base64,", re.IGNORECASE)

_JPEG_MARKERS = ("image/jpeg", "image/jpg")

_MIME_TYPES = {
    ImageFormat.PNG: "image/png",
    ImageFormat.JPEG: "image/jpeg",
}


def detect_format(marker: str) -> ImageFormat:
    """Map a MIME marker to an image format, defaulting to PNG."""
    if marker.lower() in _JPEG_MARKERS:
        return ImageFormat.JPEG
    return ImageFormat.PNG


def decode_data_uri(payload: str) -> DecodedImage:
    """Decode a data-URI (or bare base64) image payload.

    Args:
        payload: ``data:image/<type>;base64,<data>`` or plain base64.

    Returns:
        The raw bytes and the detected format.

    Raises:
        ImageDecodeError: If the payload is empty or not valid base64.
    """
    if not payload or not payload.strip():
        raise ImageDecodeError("Signature image payload is empty")

    payload = payload.strip()
    match = _HEADER_RE.match(payload)
    if match:
        fmt = detect_format(match.group(1))
        encoded = payload[match.end():]
    else:
        fmt = ImageFormat.PNG
        encoded = payload

    # Line-wrapped base64 is common in hand-built payloads.
    encoded = "".join(encoded.split())
    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ImageDecodeError(f"Signature image is not valid base64: {exc}") from exc

    if not data:
        raise ImageDecodeError("Signature image payload contains no data")
    return DecodedImage(data=data, format=fmt)


def encode_data_uri(data: bytes, fmt: ImageFormat = ImageFormat.PNG) -> str:
    """Build a data URI from raw image bytes."""
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{_MIME_TYPES[fmt]};base64,{encoded}"
