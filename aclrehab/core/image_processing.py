"""
Image preparation before a photo is sent for angle estimation.

Policy: if the longer side exceeds ``max_dimension`` the image is scaled down,
aspect ratio preserved, so the longer side equals ``max_dimension``; the result
is always re-encoded as JPEG at a fixed quality.
"""

import io
import logging
from typing import Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from aclrehab.helpers.exception_handler import InvalidInputError

logger = logging.getLogger(__name__)

DEFAULT_MAX_DIMENSION = 1024
DEFAULT_JPEG_QUALITY = 80


def _round_half_up(value: float) -> int:
    return int(value + 0.5)


def compute_resized_dimensions(width: int, height: int, max_dimension: int = DEFAULT_MAX_DIMENSION) -> Tuple[int, int]:
    """
    Target size for an image of ``width`` x ``height``.

    >>> compute_resized_dimensions(2048, 1536, 1024)
    (1024, 768)
    """
    if width <= 0 or height <= 0:
        raise InvalidInputError(f"Invalid image size {width}x{height}")
    longest = max(width, height)
    if longest <= max_dimension:
        return width, height
    scale = max_dimension / longest
    return max(1, _round_half_up(width * scale)), max(1, _round_half_up(height * scale))


def load_image(image_bytes: bytes) -> Image.Image:
    """Decode a still image, applying its EXIF orientation."""
    if not image_bytes:
        raise InvalidInputError("Image is empty")
    try:
        image = Image.open(io.BytesIO(image_bytes))
        image.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise InvalidInputError(f"Image could not be decoded: {e}")
    return ImageOps.exif_transpose(image)


def encode_jpeg(image: Image.Image, quality: int = DEFAULT_JPEG_QUALITY) -> bytes:
    if image.mode != 'RGB':
        image = image.convert('RGB')
    buffer = io.BytesIO()
    image.save(buffer, format='JPEG', quality=quality)
    return buffer.getvalue()


def prepare_image(
    image_bytes: bytes,
    max_dimension: int = DEFAULT_MAX_DIMENSION,
    quality: int = DEFAULT_JPEG_QUALITY,
) -> bytes:
    """
    Resize and re-encode a photo for transmission.

    Raises:
        InvalidInputError: If the bytes are empty or not a decodable image.
    """
    image = load_image(image_bytes)
    new_size = compute_resized_dimensions(image.width, image.height, max_dimension)
    if new_size != image.size:
        logger.debug(f"Resizing image {image.width}x{image.height} -> {new_size[0]}x{new_size[1]}")
        image = image.resize(new_size, Image.LANCZOS)
    return encode_jpeg(image, quality)
