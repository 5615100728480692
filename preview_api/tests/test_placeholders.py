"""Tests for blur placeholder and average colour generation."""

from __future__ import annotations

import base64
import io
import re

from PIL import Image

from conftest import encode
from previews.models.schemas import RawImage
from previews.services.metadata import read_metadata
from previews.services.placeholders import BLUR_SIZE, average_color, generate_placeholders


def test_blur_data_url_is_tiny_webp(small_jpeg) -> None:
    placeholders = generate_placeholders(RawImage(buffer=small_jpeg, metadata=read_metadata(small_jpeg)))

    prefix = "data:image/webp;base64,"
    assert placeholders.blur_data_url.startswith(prefix)
    payload = base64.b64decode(placeholders.blur_data_url[len(prefix):])
    with Image.open(io.BytesIO(payload)) as img:
        assert img.format == "WEBP"
        assert img.size == BLUR_SIZE


def test_avg_color_format(small_jpeg) -> None:
    placeholders = generate_placeholders(RawImage(buffer=small_jpeg, metadata=read_metadata(small_jpeg)))
    assert re.fullmatch(r"rgb\(\d{1,3}, \d{1,3}, \d{1,3}\)", placeholders.avg_color)


def test_avg_color_of_solid_image() -> None:
    assert average_color(Image.new("RGB", (50, 30), (10, 120, 250))) == "rgb(10, 120, 250)"


def test_avg_color_of_split_image() -> None:
    img = Image.new("RGB", (100, 100), (0, 0, 0))
    img.paste((200, 200, 200), (0, 0, 50, 100))
    assert average_color(img) == "rgb(100, 100, 100)"


def test_placeholders_from_png() -> None:
    png = encode(Image.new("RGBA", (40, 40), (255, 0, 0, 255)), "PNG")
    placeholders = generate_placeholders(RawImage(buffer=png, metadata=read_metadata(png)))
    assert placeholders.avg_color == "rgb(255, 0, 0)"
