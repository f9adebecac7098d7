"""Image normalization for sydneyqt.

Every attached image is converted to JPEG so backends receive one
format, and is exposed as a ``data:`` URL for display and vision input.
"""

import base64
import binascii
import io
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from sydneyqt.errors import IngestError

__all__ = [
    "IMAGE_EXTENSIONS",
    "decode_base64_image",
    "to_data_url",
    "to_jpeg",
]

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp")

_DATA_URL_PREFIX = "data:image/jpeg;base64,"


def to_jpeg(source: bytes | Path, quality: int = 90) -> bytes:
    """Convert image bytes or a file to JPEG bytes.

    Transparent images are flattened onto white.

    Raises:
        IngestError: If the input is not a readable image
    """
    try:
        if isinstance(source, Path):
            image = Image.open(source)
        else:
            image = Image.open(io.BytesIO(source))
        image.load()
    except (OSError, UnidentifiedImageError) as e:
        raise IngestError(f"Cannot read image: {e}") from e

    if image.mode in ("RGBA", "LA", "P"):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        image = background
    elif image.mode != "RGB":
        image = image.convert("RGB")

    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


def to_data_url(jpeg: bytes) -> str:
    return _DATA_URL_PREFIX + base64.b64encode(jpeg).decode("ascii")


def decode_base64_image(text: str) -> bytes:
    """Decode base64 image text, with or without a ``data:`` URL prefix.

    Raises:
        IngestError: If the text is not valid base64
    """
    if text.startswith("data:"):
        _, _, text = text.partition(",")
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise IngestError(f"Invalid base64 image data: {e}") from e
