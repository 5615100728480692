"""Tests that watermark renderers actually mark the pixels."""

from __future__ import annotations

import io
import sys

import pytest
from PIL import Image, ImageChops

from conftest import encode
from previews.core.errors import RendererUnavailableError
from previews.models.schemas import Strategy, WatermarkTier
from previews.services.renderers import SvgWatermarkRenderer

GREY = (128, 128, 128, 255)


def grey_canvas(width: int = 400, height: int = 300) -> Image.Image:
    return Image.new("RGBA", (width, height), GREY)


def changed_box(base: Image.Image, out: Image.Image):
    assert out.size == base.size
    return ImageChops.difference(out.convert("RGB"), base.convert("RGB")).getbbox()


def quadrants(width: int, height: int):
    half_w, half_h = width // 2, height // 2
    return [
        (0, 0, half_w, half_h),
        (half_w, 0, width, half_h),
        (0, half_h, half_w, height),
        (half_w, half_h, width, height),
    ]


def assert_every_quadrant_marked(base: Image.Image, out: Image.Image) -> None:
    for box in quadrants(*base.size):
        assert changed_box(base.crop(box), out.crop(box)) is not None, f"quadrant {box} left clean"


def render_svg_or_skip(base: Image.Image, tier: WatermarkTier) -> Image.Image:
    try:
        return SvgWatermarkRenderer().render(base, "LOOK ESCOLAR", tier)
    except RendererUnavailableError as e:
        pytest.skip(f"libcairo not available: {e}")


class TestPillowRenderer:
    @pytest.mark.parametrize("tier", [WatermarkTier.DENSE, WatermarkTier.SIMPLE])
    def test_marks_the_canvas(self, pillow_renderer, tier) -> None:
        base = grey_canvas()
        out = pillow_renderer.render(base, "LOOK ESCOLAR", tier)
        assert changed_box(base, out) is not None

    def test_dense_tier_covers_every_quadrant(self, pillow_renderer) -> None:
        base = grey_canvas()
        out = pillow_renderer.render(base, "LOOK ESCOLAR", WatermarkTier.DENSE)
        assert_every_quadrant_marked(base, out)

    def test_simple_tier_marks_its_three_label_regions(self, pillow_renderer) -> None:
        base = grey_canvas(400, 300)
        out = pillow_renderer.render(base, "LOOK ESCOLAR", WatermarkTier.SIMPLE)
        top_left = (0, 0, 200, 60)
        centre = (100, 120, 300, 180)
        bottom_right = (200, 240, 400, 300)
        for box in (top_left, centre, bottom_right):
            assert changed_box(base.crop(box), out.crop(box)) is not None

    def test_input_is_not_modified(self, pillow_renderer) -> None:
        base = grey_canvas()
        pillow_renderer.render(base, "LOOK ESCOLAR", WatermarkTier.DENSE)
        assert base.getextrema() == ((128, 128), (128, 128), (128, 128), (255, 255))

    def test_tiny_canvas(self, pillow_renderer) -> None:
        base = grey_canvas(8, 8)
        out = pillow_renderer.render(base, "LOOK ESCOLAR", WatermarkTier.DENSE)
        assert out.size == (8, 8)


class TestSvgRenderer:
    @pytest.mark.parametrize("tier", [WatermarkTier.DENSE, WatermarkTier.SIMPLE])
    def test_marks_the_canvas(self, tier) -> None:
        base = grey_canvas()
        out = render_svg_or_skip(base, tier)
        assert changed_box(base, out) is not None

    def test_dense_tier_covers_every_quadrant(self) -> None:
        base = grey_canvas()
        out = render_svg_or_skip(base, WatermarkTier.DENSE)
        assert_every_quadrant_marked(base, out)

    def test_missing_cairosvg_is_reported(self, monkeypatch) -> None:
        # a None entry makes `import cairosvg` raise ImportError
        monkeypatch.setitem(sys.modules, "cairosvg", None)
        with pytest.raises(RendererUnavailableError):
            SvgWatermarkRenderer().render(grey_canvas(), "LOOK ESCOLAR", WatermarkTier.DENSE)


class TestWatermarkReachesPreview:
    def test_flat_photo_preview_carries_marks(self, service) -> None:
        flat = encode(Image.new("RGB", (600, 400), (128, 128, 128)), "PNG")
        result = service.process_for_preview(flat, {"max_dimension": 400, "target_size_kb": 200})

        assert result.strategy == Strategy.FULL
        with Image.open(io.BytesIO(result.processed_buffer)) as img:
            preview = img.convert("RGB")
        # white fill and dark stroke on mid grey; a bare flat photo stays within a few levels
        for box in quadrants(*preview.size):
            lows, highs = zip(*preview.crop(box).getextrema())
            assert max(highs) - min(lows) > 25, f"quadrant {box} left clean"
