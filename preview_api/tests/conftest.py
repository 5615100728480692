"""Pytest fixtures for preview pipeline tests."""

from __future__ import annotations

import io
from typing import Callable

import pytest
from PIL import Image

from previews.core.config import Settings
from previews.core.errors import RendererUnavailableError
from previews.models.schemas import WatermarkTier
from previews.services.preview_service import PreviewService
from previews.services.renderers import PillowWatermarkRenderer, WatermarkRenderer


def make_photo(width: int, height: int) -> Image.Image:
    """Photo-like content: gradients plus noise so encoders have real work."""
    red = Image.linear_gradient("L").resize((width, height))
    green = Image.radial_gradient("L").resize((width, height))
    blue = Image.effect_noise((width, height), 48)
    return Image.merge("RGB", (red, green, blue))


def encode(img: Image.Image, fmt: str, **params) -> bytes:
    out = io.BytesIO()
    img.save(out, format=fmt, **params)
    return out.getvalue()


class FailingRenderer(WatermarkRenderer):
    """Stands in for a renderer whose native backend is missing."""

    def __init__(self):
        super().__init__()
        self.calls = 0

    def render(self, base: Image.Image, text: str, tier: WatermarkTier) -> Image.Image:
        self.calls += 1
        raise RendererUnavailableError("no cairo here")


@pytest.fixture
def photo_factory() -> Callable[..., bytes]:
    """Build encoded test photos: photo_factory(width, height, fmt="JPEG")."""
    def _factory(width: int, height: int, fmt: str = "JPEG", **params) -> bytes:
        return encode(make_photo(width, height), fmt, **params)
    return _factory


@pytest.fixture
def large_jpeg(photo_factory) -> bytes:
    """A 3000x2000 JPEG, typical camera output."""
    return photo_factory(3000, 2000, "JPEG", quality=90)


@pytest.fixture
def small_jpeg(photo_factory) -> bytes:
    return photo_factory(600, 400, "JPEG", quality=90)


@pytest.fixture
def square_png(photo_factory) -> bytes:
    return photo_factory(400, 400, "PNG")


@pytest.fixture
def corrupt_bytes() -> bytes:
    """Ten bytes that are not an image."""
    return b"notanimage"


@pytest.fixture
def test_settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def pillow_renderer() -> PillowWatermarkRenderer:
    return PillowWatermarkRenderer()


@pytest.fixture
def failing_renderer() -> FailingRenderer:
    return FailingRenderer()


@pytest.fixture
def service(test_settings, pillow_renderer) -> PreviewService:
    """Facade whose Full tier draws with Pillow, so tests don't need libcairo."""
    return PreviewService(test_settings, full_renderer=pillow_renderer)
