"""Normalization of garment images onto the fixed try-on canvas."""

import io

import pytest
from PIL import Image

from conftest import make_png
from prendas.core.entities import Stance
from prendas.core.image_ops import (
    TARGET_HEIGHT,
    TARGET_WIDTH,
    guess_mime_type,
    load_anchor_image,
    normalize_for_tryon,
)


def _open(data: bytes) -> Image.Image:
    return Image.open(io.BytesIO(data))


def test_wide_image_is_letterboxed_on_transparent_canvas() -> None:
    normalized = _open(normalize_for_tryon(make_png(400, 200)))

    assert normalized.format == "PNG"
    assert normalized.size == (TARGET_WIDTH, TARGET_HEIGHT)
    assert normalized.mode == "RGBA"
    assert normalized.getpixel((0, 0))[3] == 0
    assert normalized.getpixel((TARGET_WIDTH - 1, TARGET_HEIGHT - 1))[3] == 0
    assert normalized.getpixel((TARGET_WIDTH // 2, TARGET_HEIGHT // 2)) == (200, 30, 30, 255)


def test_small_image_is_scaled_up_to_touch_edges() -> None:
    normalized = _open(normalize_for_tryon(make_png(49, 64)))

    assert normalized.size == (TARGET_WIDTH, TARGET_HEIGHT)
    # 49x64 has the canvas aspect ratio, so nothing stays transparent
    assert normalized.getpixel((0, 0))[3] == 255


def test_jpeg_input_becomes_png() -> None:
    buffer = io.BytesIO()
    Image.new("RGB", (300, 300), (0, 120, 0)).save(buffer, format="JPEG")

    normalized = _open(normalize_for_tryon(buffer.getvalue(), width=100, height=200))

    assert normalized.format == "PNG"
    assert normalized.size == (100, 200)


def test_unreadable_bytes_raise_value_error() -> None:
    with pytest.raises(ValueError):
        normalize_for_tryon(b"not an image")


def test_guess_mime_type() -> None:
    assert guess_mime_type(make_png()) == "image/png"
    assert guess_mime_type(b"garbage") == "image/jpeg"


def test_load_anchor_image_per_stance(anchor_dir) -> None:
    data = load_anchor_image(Stance.MALE, anchor_dir)

    assert _open(data).size == (TARGET_WIDTH, TARGET_HEIGHT)


def test_missing_anchor_image_raises(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        load_anchor_image(Stance.FEMALE, tmp_path)
