"""Anti-theft watermark composition.

Two tiers share the same look so previews from either path stay attributable:

- DENSE: a diagonal tiled pattern covering the whole canvas (so any crop
  still carries marks), a large central deterrent label and a bottom
  call-to-action.
- SIMPLE: three static labels (centre, bottom-right, top-left) for
  constrained environments.

The composer only describes the overlay. `watermark_layout` returns the
elements as data and `compose_watermark` serializes them to SVG; rasterizing
is the renderer's job.
"""
from __future__ import annotations

import math
from html import escape
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict

from previews.core.config import settings
from previews.models.schemas import WatermarkSpec, WatermarkTier

FONT_FAMILY = "Arial, sans-serif"
ROTATION = -35.0

# tier -> (minimum font size, density divisor, base opacity, central label opacity)
TIER_PARAMS = {
    WatermarkTier.DENSE: (14, 20, 0.45, 0.5),
    WatermarkTier.SIMPLE: (12, 25, 0.35, 0.45),
}


class WatermarkText(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    x: float
    y: float
    font_size: float
    opacity: float
    stroke_width: float = 1.0
    stroke_opacity: float = 0.3
    anchor: Literal["start", "middle", "end"] = "start"
    # vertically centre on y instead of sitting on the baseline
    centered: bool = False
    rotation: float = 0.0


class WatermarkLayout(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: int
    height: int
    tier: WatermarkTier
    spec: WatermarkSpec
    elements: List[WatermarkText]
    # single tile of the SVG <pattern>, DENSE only
    tile: Optional[WatermarkText] = None


def watermark_spec(width: int, height: int, tier: WatermarkTier = WatermarkTier.DENSE) -> WatermarkSpec:
    min_font, divisor, opacity, _ = TIER_PARAMS[tier]
    font_size = max(min_font, math.floor(min(width, height) / divisor))
    return WatermarkSpec(font_size=font_size, opacity=opacity, tile_spacing=font_size * 3)


def _dense_elements(width: int, height: int, text: str, spec: WatermarkSpec,
                    brand: str, deterrent: str) -> List[WatermarkText]:
    font_size, opacity, spacing = spec.font_size, spec.opacity, spec.tile_spacing
    center_opacity = TIER_PARAMS[WatermarkTier.DENSE][3]
    elements = []

    # Grid starts 30% before the origin; +2 rows/cols guarantees coverage once rotated
    diagonal = math.sqrt(width * width + height * height)
    count = math.ceil(diagonal / spacing) + 2
    for i in range(count):
        for j in range(count):
            x = i * spacing - width * 0.3
            y = j * spacing - height * 0.3
            elements.append(WatermarkText(
                text=text, x=x, y=y, font_size=font_size, opacity=opacity,
                stroke_width=1.5, stroke_opacity=0.4, rotation=ROTATION,
            ))

    elements.append(WatermarkText(
        text=deterrent, x=width / 2, y=height / 2, font_size=font_size * 1.8,
        opacity=center_opacity, stroke_width=2.5, stroke_opacity=0.5,
        anchor="middle", centered=True, rotation=ROTATION,
    ))
    elements.append(WatermarkText(
        text=f"Comprar en {brand}", x=width / 2, y=height - 20, font_size=font_size * 0.9,
        opacity=opacity, stroke_width=1.5, stroke_opacity=0.4, anchor="middle",
    ))
    return elements


def _simple_elements(width: int, height: int, text: str, spec: WatermarkSpec,
                     brand: str) -> List[WatermarkText]:
    font_size, opacity = spec.font_size, spec.opacity
    center_opacity = TIER_PARAMS[WatermarkTier.SIMPLE][3]
    return [
        WatermarkText(
            text=f"MUESTRA - {text}", x=width / 2, y=height / 2, font_size=font_size * 1.5,
            opacity=center_opacity, stroke_width=1.5, stroke_opacity=0.3,
            anchor="middle", centered=True, rotation=ROTATION,
        ),
        WatermarkText(
            text=text, x=width - 15, y=height - 15, font_size=font_size,
            opacity=opacity, stroke_opacity=0.2, anchor="end",
        ),
        WatermarkText(
            text=brand, x=15, y=font_size + 10, font_size=font_size,
            opacity=opacity, stroke_opacity=0.2, anchor="start",
        ),
    ]


def watermark_layout(
    width: int,
    height: int,
    text: str,
    tier: WatermarkTier = WatermarkTier.DENSE,
    brand: Optional[str] = None,
    deterrent: Optional[str] = None,
) -> WatermarkLayout:
    brand = brand or settings.brand_text
    deterrent = deterrent or settings.deterrent_text
    spec = watermark_spec(width, height, tier)

    if tier is WatermarkTier.DENSE:
        tile = WatermarkText(
            text=text, x=0, y=spec.font_size, font_size=spec.font_size,
            opacity=spec.opacity, stroke_width=1.5, stroke_opacity=0.4, rotation=ROTATION,
        )
        elements = _dense_elements(width, height, text, spec, brand, deterrent)
    else:
        tile = None
        elements = _simple_elements(width, height, text, spec, brand)

    return WatermarkLayout(width=width, height=height, tier=tier, spec=spec,
                           elements=elements, tile=tile)


def _fmt(value: float) -> str:
    return f"{value:g}"


def _svg_text(el: WatermarkText) -> str:
    attrs = [
        f'x="{_fmt(el.x)}"',
        f'y="{_fmt(el.y)}"',
        f'font-family="{FONT_FAMILY}"',
        f'font-size="{_fmt(el.font_size)}"',
        'font-weight="bold"',
        'fill="white"',
        f'fill-opacity="{_fmt(el.opacity)}"',
        'stroke="black"',
        f'stroke-width="{_fmt(el.stroke_width)}"',
        f'stroke-opacity="{_fmt(el.stroke_opacity)}"',
    ]
    if el.anchor != "start":
        attrs.append(f'text-anchor="{el.anchor}"')
    if el.centered:
        attrs.append('dominant-baseline="middle"')
    if el.rotation:
        attrs.append(f'transform="rotate({_fmt(el.rotation)} {_fmt(el.x)} {_fmt(el.y)})"')
    return f"<text {' '.join(attrs)}>{escape(el.text)}</text>"


def layout_to_svg(layout: WatermarkLayout) -> str:
    width, height = layout.width, layout.height
    parts = [f'<svg width="{width}" height="{height}" viewBox="0 0 {width} {height}" '
             f'xmlns="http://www.w3.org/2000/svg">']
    if layout.tile is not None:
        spacing = layout.spec.tile_spacing
        parts.append(
            f'<defs><pattern id="watermarkPattern" patternUnits="userSpaceOnUse" '
            f'width="{spacing}" height="{spacing}">{_svg_text(layout.tile)}</pattern></defs>'
        )
        parts.append(f'<rect width="{width}" height="{height}" fill="url(#watermarkPattern)"/>')
    parts.extend(_svg_text(el) for el in layout.elements)
    parts.append("</svg>")
    return "\n".join(parts)


def compose_watermark(
    width: int,
    height: int,
    text: str,
    tier: WatermarkTier = WatermarkTier.DENSE,
    brand: Optional[str] = None,
    deterrent: Optional[str] = None,
) -> str:
    """Return a self-contained SVG overlay sized to the target canvas."""
    return layout_to_svg(watermark_layout(width, height, text, tier, brand, deterrent))
