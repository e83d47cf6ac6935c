"""Image normalization utilities for the photo pipeline."""

import io
from typing import Tuple

from PIL import Image, ImageOps
from pillow_heif import register_heif_opener

# HEIC/HEIF uploads from phones decode through the same Image.open path.
register_heif_opener()

MAX_DIMENSION = 1920
WEBP_QUALITY = 85


def auto_orient(img: Image.Image) -> Image.Image:
    """Apply the EXIF orientation tag so pixels are stored upright."""
    oriented = ImageOps.exif_transpose(img)
    return oriented if oriented is not None else img


def bound_dimensions(img: Image.Image, max_dimension: int = MAX_DIMENSION) -> Image.Image:
    """
    Shrink an image so its longest edge is at most ``max_dimension``.

    Aspect ratio is preserved and images already within the bound are
    returned untouched (never upscaled).
    """
    width, height = img.size
    longest = max(width, height)
    if longest <= max_dimension:
        return img

    scale = max_dimension / float(longest)
    target = (max(1, round(width * scale)), max(1, round(height * scale)))
    return img.resize(target, Image.Resampling.LANCZOS)


def to_webp_mode(img: Image.Image) -> Image.Image:
    """Convert palette/CMYK/16-bit modes into something WebP can encode."""
    if img.mode in ("RGB", "RGBA"):
        return img
    if img.mode in ("LA", "PA") or (img.mode == "P" and "transparency" in img.info):
        return img.convert("RGBA")
    return img.convert("RGB")


def encode_webp(img: Image.Image, quality: int = WEBP_QUALITY) -> bytes:
    output_stream = io.BytesIO()
    img.save(output_stream, format="WEBP", quality=quality)
    return output_stream.getvalue()


def normalize_image(
    image_bytes: bytes,
    max_dimension: int = MAX_DIMENSION,
    quality: int = WEBP_QUALITY,
) -> Tuple[bytes, Tuple[int, int]]:
    """
    Decode, orient, bound and re-encode an image as WebP.

    Returns:
        Tuple of (webp bytes, (width, height) of the encoded image)
    """
    with Image.open(io.BytesIO(image_bytes)) as image:
        image.load()
        image = auto_orient(image)
        image = bound_dimensions(image, max_dimension)
        image = to_webp_mode(image)
        return encode_webp(image, quality), image.size
