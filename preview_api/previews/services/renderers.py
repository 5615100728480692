import io
import logging
import math
from pathlib import Path
from typing import Optional

from PIL import Image, ImageDraw, ImageFont

from previews.core.errors import RendererUnavailableError
from previews.models.schemas import WatermarkTier
from previews.services.watermark import WatermarkText, layout_to_svg, watermark_layout

logger = logging.getLogger(__name__)

BOLD_FONT_CANDIDATES = [
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans-Bold.ttf",
    "/Library/Fonts/Arial Bold.ttf",
    "C:\\Windows\\Fonts\\arialbd.ttf",
]

# SVG text-anchor + baseline -> Pillow anchor
PIL_ANCHORS = {
    ("start", False): "ls",
    ("middle", False): "ms",
    ("end", False): "rs",
    ("start", True): "lm",
    ("middle", True): "mm",
    ("end", True): "rm",
}


class WatermarkRenderer:
    """Composites a watermark tier onto an RGBA canvas."""

    def __init__(self, brand_text: Optional[str] = None, deterrent_text: Optional[str] = None):
        self.brand_text = brand_text
        self.deterrent_text = deterrent_text

    def layout(self, width: int, height: int, text: str, tier: WatermarkTier):
        return watermark_layout(width, height, text, tier,
                                brand=self.brand_text, deterrent=self.deterrent_text)

    def render(self, base: Image.Image, text: str, tier: WatermarkTier) -> Image.Image:
        raise NotImplementedError


class SvgWatermarkRenderer(WatermarkRenderer):
    """Rasterizes the composed SVG with CairoSVG."""

    def _svg2png(self, svg: str, width: int, height: int) -> bytes:
        # cairosvg is lazily imported so a host without libcairo can still start
        try:
            import cairosvg
        except (ImportError, OSError) as e:
            raise RendererUnavailableError(f"CairoSVG unavailable: {e}") from e
        return cairosvg.svg2png(
            bytestring=svg.encode("utf-8"),
            output_width=width,
            output_height=height,
        )

    def render(self, base: Image.Image, text: str, tier: WatermarkTier) -> Image.Image:
        width, height = base.size
        svg = layout_to_svg(self.layout(width, height, text, tier))
        png_bytes = self._svg2png(svg, width, height)
        overlay = Image.open(io.BytesIO(png_bytes)).convert("RGBA")
        if overlay.size != base.size:
            overlay = overlay.resize(base.size, Image.Resampling.LANCZOS)
        return Image.alpha_composite(base.convert("RGBA"), overlay)


class PillowWatermarkRenderer(WatermarkRenderer):
    """Draws the layout elements with ImageDraw; needs nothing beyond Pillow."""

    def __init__(self, brand_text: Optional[str] = None, deterrent_text: Optional[str] = None,
                 font_path: Optional[str] = None):
        super().__init__(brand_text, deterrent_text)
        self.font_path = font_path

    def _load_font(self, size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
        candidates = [self.font_path] if self.font_path else []
        candidates += BOLD_FONT_CANDIDATES
        for fp in candidates:
            if Path(fp).exists():
                try:
                    return ImageFont.truetype(fp, size)
                except OSError:
                    continue
        # Pillow's bundled scalable default
        return ImageFont.load_default(size=size)

    def _text_layer(self, el: WatermarkText, font) -> tuple[Image.Image, int]:
        """Render one element centred in a square layer; returns (layer, half-size)."""
        stroke = max(1, round(el.stroke_width))
        left, top, right, bottom = font.getbbox(el.text, stroke_width=stroke)
        # Large enough to hold the text at any rotation around its anchor
        half = int(math.hypot(right - left, bottom - top)) + stroke + 2
        layer = Image.new("RGBA", (half * 2, half * 2), (0, 0, 0, 0))
        draw = ImageDraw.Draw(layer)
        draw.text(
            (half, half),
            el.text,
            font=font,
            anchor=PIL_ANCHORS[(el.anchor, el.centered)],
            fill=(255, 255, 255, round(255 * el.opacity)),
            stroke_width=stroke,
            stroke_fill=(0, 0, 0, round(255 * el.stroke_opacity)),
        )
        if el.rotation:
            # SVG rotates clockwise for positive angles, Pillow counter-clockwise
            layer = layer.rotate(-el.rotation, resample=Image.Resampling.BICUBIC)
        return layer, half

    def render(self, base: Image.Image, text: str, tier: WatermarkTier) -> Image.Image:
        canvas = base.convert("RGBA")
        width, height = canvas.size
        layout = self.layout(width, height, text, tier)
        overlay = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
        fonts = {}
        # tiled elements only differ by position
        layers = {}

        for el in layout.elements:
            size = max(1, round(el.font_size))
            if size not in fonts:
                fonts[size] = self._load_font(size)
            key = el.model_copy(update={"x": 0, "y": 0})
            if key not in layers:
                layers[key] = self._text_layer(el, fonts[size])
            layer, half = layers[key]

            x0 = round(el.x) - half
            y0 = round(el.y) - half
            # Clip layers hanging off the canvas edge
            if x0 >= width or y0 >= height or x0 + layer.width <= 0 or y0 + layer.height <= 0:
                continue
            src_x, src_y = max(0, -x0), max(0, -y0)
            dest = (max(0, x0), max(0, y0))
            box = (src_x, src_y,
                   min(layer.width, width - x0), min(layer.height, height - y0))
            overlay.alpha_composite(layer, dest=dest, source=box)

        return Image.alpha_composite(canvas, overlay)
