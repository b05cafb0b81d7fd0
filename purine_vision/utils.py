"""
Utility functions for the Purine Vision API.
"""

import base64
import io
import logging
from typing import NamedTuple, Optional, Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from .config import (
    ALLOWED_IMAGE_TYPES,
    COMPRESSION_THRESHOLD,
    COMPRESSION_TIERS,
    MAX_FILE_SIZE,
    SECOND_PASS_MAX_EDGE,
    SECOND_PASS_QUALITY,
)
from .errors import ErrorMessages, ImageValidationError
from .schemas import ErrorCode

logger = logging.getLogger(__name__)

# EXIF tag phones use to record how the camera was held
EXIF_ORIENTATION = 0x0112

# Pillow save format for each accepted MIME type
PIL_FORMATS = {
    "image/jpeg": "JPEG",
    "image/jpg": "JPEG",
    "image/png": "PNG",
    "image/webp": "WEBP",
}


class PreparedImage(NamedTuple):
    """Image bytes ready to send to the model."""

    content: bytes
    content_type: str
    width: int
    height: int
    compressed: bool


def validate_upload(content_type: Optional[str], size: int) -> str:
    """
    Check an upload's MIME type and size.

    Args:
        content_type: MIME type declared by the client
        size: Upload size in bytes

    Returns:
        The normalized content type

    Raises:
        ImageValidationError: If the type is not accepted or the file is too big
    """
    content_type = (content_type or "").lower()
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise ImageValidationError(ErrorMessages.INVALID_IMAGE_FORMAT)

    if size > MAX_FILE_SIZE:
        raise ImageValidationError(
            ErrorMessages.too_large(size), code=ErrorCode.IMAGE_TOO_LARGE
        )

    return content_type


def load_image_from_bytes(content: bytes) -> Image.Image:
    """
    Load and validate image from bytes.

    Raises:
        ImageValidationError: If the bytes are not a readable image
    """
    try:
        image = Image.open(io.BytesIO(content))
        image.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise ImageValidationError(f"{ErrorMessages.INVALID_IMAGE} ({e})")
    return image


def image_to_data_url(content: bytes, mime_type: str = "image/jpeg") -> str:
    """Encode image bytes as a base64 ``data:`` URL."""
    return f"data:{mime_type};base64,{base64.b64encode(content).decode('ascii')}"


def fit_within(width: int, height: int, max_edge: int) -> Tuple[int, int]:
    """Shrink ``width`` x ``height`` to fit a ``max_edge`` square, keeping aspect."""
    if width <= max_edge and height <= max_edge:
        return width, height
    ratio = min(max_edge / width, max_edge / height)
    return max(1, round(width * ratio)), max(1, round(height * ratio))


def needs_exif_rotation(image: Image.Image) -> bool:
    """True when the pixels must be rotated or flipped to show the photo upright."""
    return image.getexif().get(EXIF_ORIENTATION, 1) != 1


def _encode(image: Image.Image, content_type: str, max_edge: int, quality: float) -> bytes:
    fmt = PIL_FORMATS[content_type]
    size = fit_within(image.width, image.height, max_edge)
    if size != image.size:
        image = image.resize(size, Image.LANCZOS)

    if fmt == "JPEG" and image.mode not in ("RGB", "L"):
        image = image.convert("RGB")

    buffer = io.BytesIO()
    if fmt == "PNG":
        image.save(buffer, format=fmt, optimize=True)
    else:
        image.save(buffer, format=fmt, quality=int(quality * 100))
    return buffer.getvalue()


def compress_image(content: bytes, content_type: str) -> PreparedImage:
    """
    Downscale and recompress large uploads before they go to the model.

    Uploads up to 1MB pass through untouched unless their EXIF orientation
    says the pixels are stored sideways or flipped. Everything else is turned
    upright, then resized to a size-dependent maximum edge and quality, with a
    second, stricter pass if the result is still over 1MB. The original bytes
    are used whenever compression fails.

    Args:
        content: Raw upload bytes
        content_type: Validated MIME type of the upload

    Returns:
        A ``PreparedImage`` with the bytes to send and their pixel size

    Raises:
        ImageValidationError: If the bytes are not a readable image
    """
    image = load_image_from_bytes(content)
    original = PreparedImage(content, content_type, image.width, image.height, False)

    rotate = needs_exif_rotation(image)
    if len(content) <= COMPRESSION_THRESHOLD and not rotate:
        return original

    max_edge, quality = next(
        (edge, q) for floor, edge, q in COMPRESSION_TIERS if len(content) > floor
    )
    logger.info(
        f"Compressing {len(content) / 1024:.2f}KB image "
        f"(max edge {max_edge}px, quality {quality})"
    )

    try:
        if rotate:
            logger.info("Applying EXIF orientation before encoding")
            image = ImageOps.exif_transpose(image)
        compressed = _encode(image, content_type, max_edge, quality)
        if len(compressed) > COMPRESSION_THRESHOLD:
            logger.info("Image still large after compression, running a second pass")
            second = load_image_from_bytes(compressed)
            compressed = _encode(
                second, content_type, SECOND_PASS_MAX_EDGE, SECOND_PASS_QUALITY
            )
        result = load_image_from_bytes(compressed)
    except (OSError, ValueError, ImageValidationError) as e:
        logger.warning(f"Image compression failed, using original upload: {e}")
        return original

    logger.info(
        f"Compression done: {len(content) / 1024:.2f}KB -> {len(compressed) / 1024:.2f}KB "
        f"({(1 - len(compressed) / len(content)) * 100:.1f}% smaller), "
        f"{image.width}x{image.height} -> {result.width}x{result.height}"
    )
    return PreparedImage(compressed, content_type, result.width, result.height, True)
