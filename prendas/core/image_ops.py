"""Image helpers used before images are sent to Gemini."""

from __future__ import annotations

import io
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError

from prendas.config import ANCHOR_ASSETS_DIR, logger
from prendas.core.entities import Stance

TARGET_WIDTH = 784
TARGET_HEIGHT = 1024


def normalize_for_tryon(
    image_bytes: bytes, width: int = TARGET_WIDTH, height: int = TARGET_HEIGHT
) -> bytes:
    """
    Fit an image inside a fixed canvas and return it as PNG.

    The image is scaled up or down until it touches the canvas edges while
    keeping its aspect ratio, then centered. The remaining area is fully
    transparent.

    Args:
        image_bytes: Encoded source image in any format Pillow reads
        width: Canvas width in pixels
        height: Canvas height in pixels

    Returns:
        bytes: PNG encoded RGBA image of exactly width x height

    Raises:
        ValueError: If the bytes are not a readable image
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as source:
            source = ImageOps.exif_transpose(source)
            fitted = ImageOps.contain(source.convert("RGBA"), (width, height))
    except UnidentifiedImageError as exc:
        raise ValueError("Garment image is not a readable image") from exc

    canvas = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    offset = ((width - fitted.width) // 2, (height - fitted.height) // 2)
    canvas.paste(fitted, offset)

    buffer = io.BytesIO()
    canvas.save(buffer, format="PNG")
    logger.debug(
        f"Normalized garment image {fitted.width}x{fitted.height} onto {width}x{height} canvas"
    )
    return buffer.getvalue()


def guess_mime_type(image_bytes: bytes, default: str = "image/jpeg") -> str:
    """Return the MIME type of an encoded image, falling back to default."""
    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            return Image.MIME.get(image.format or "", default)
    except UnidentifiedImageError:
        return default


def load_anchor_image(stance: Stance, assets_dir: str | Path = ANCHOR_ASSETS_DIR) -> bytes:
    """Read the anchor (mannequin) image for a stance from the assets directory."""
    path = Path(assets_dir) / stance.anchor_filename
    logger.debug(f"Loading anchor image for stance {stance.value}: {path}")
    return path.read_bytes()
