from PIL import Image, ImageOps
import io
import logging
from typing import Iterable, Optional, Sequence, Tuple

from previews.core.errors import CompressionError
from previews.models.schemas import (
    CompressionCandidate,
    Dimensions,
    OptimizedResult,
    ProcessingConfig,
    RawImage,
    Strategy,
    WatermarkTier,
)
from previews.services.renderers import WatermarkRenderer

logger = logging.getLogger(__name__)


def build_ladder(steps: Iterable[Tuple[int, float]]) -> Tuple[CompressionCandidate, ...]:
    """Build a ladder from (quality, dimension_scale) pairs, keeping their order."""
    return tuple(CompressionCandidate(quality=q, dimension_scale=s) for q, s in steps)


# Quality alone stops paying off below ~30, so dimensions shrink with it
FULL_LADDER = build_ladder([
    (40, 1.0), (35, 1.0), (30, 0.9), (25, 0.8), (20, 0.7), (15, 0.6), (12, 0.5), (8, 0.4),
])
SIMPLIFIED_LADDER = build_ladder([
    (40, 1.0), (30, 0.9), (20, 0.8), (15, 0.7), (10, 0.6),
])

FULL_EFFORT = 6
SIMPLIFIED_EFFORT = 3


def scale_dimensions(width: int, height: int, scale: float) -> Tuple[int, int]:
    """Scale the longer side, then derive the shorter one from the aspect ratio.

    Deriving keeps the shorter side within half a pixel of the exact ratio.
    """
    long_side, short_side = max(width, height), min(width, height)
    new_long = max(1, round(long_side * scale))
    new_short = max(1, round(short_side * new_long / long_side))
    return (new_long, new_short) if width >= height else (new_short, new_long)


def cap_dimensions(width: int, height: int, max_dimension: int) -> Tuple[int, int]:
    """Scale so the longer side fits max_dimension. Never upscales."""
    return scale_dimensions(width, height, min(1.0, max_dimension / max(width, height)))


def resize_to(img: Image.Image, size: Tuple[int, int]) -> Image.Image:
    if img.size == size:
        return img.copy()
    return img.resize(size, Image.Resampling.LANCZOS)


def size_kb(num_bytes: int) -> int:
    if num_bytes <= 0:
        return 0
    return max(1, round(num_bytes / 1024))


def decode_image(buffer: bytes) -> Image.Image:
    """Decode, apply EXIF orientation and flatten transparency onto white."""
    img = Image.open(io.BytesIO(buffer))
    img = ImageOps.exif_transpose(img)
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        img = img.convert("RGBA")
        background = Image.new("RGBA", img.size, (255, 255, 255, 255))
        img = Image.alpha_composite(background, img)
    return img.convert("RGB")


class CompressionEngine:
    """Walks a descending (quality, scale) ladder until the output fits the byte budget."""

    def __init__(
        self,
        renderer: WatermarkRenderer,
        tier: WatermarkTier = WatermarkTier.DENSE,
        ladder: Sequence[CompressionCandidate] = FULL_LADDER,
        effort: int = FULL_EFFORT,
        strategy: Strategy = Strategy.FULL,
    ):
        if not ladder:
            raise ValueError("Compression ladder must have at least one rung")
        self.renderer = renderer
        self.tier = tier
        self.ladder = tuple(ladder)
        self.effort = effort
        self.strategy = strategy

    def render_rung(
        self,
        source: Image.Image,
        rung: CompressionCandidate,
        watermark_text: str,
    ) -> Tuple[bytes, Tuple[int, int]]:
        """Resize (fit inside), watermark and encode one rung. Returns (bytes, size)."""
        img = resize_to(source, scale_dimensions(source.width, source.height, rung.dimension_scale))
        watermarked = self.renderer.render(img.convert("RGBA"), watermark_text, self.tier)

        out = io.BytesIO()
        watermarked.convert("RGB").save(out, format="WEBP", quality=rung.quality, method=self.effort)
        return out.getvalue(), img.size

    def compress(self, raw_image: RawImage, config: ProcessingConfig) -> OptimizedResult:
        source = decode_image(raw_image.buffer)
        original_size = source.size
        source = resize_to(source, cap_dimensions(source.width, source.height, config.max_dimension))
        logger.info(
            f"[{self.strategy.value}] {original_size[0]}x{original_size[1]} -> "
            f"{source.width}x{source.height}, target {config.target_size_kb}KB, {len(self.ladder)} rungs"
        )

        best: Optional[Tuple[int, bytes, Tuple[int, int]]] = None
        last_error: Optional[Exception] = None

        for index, rung in enumerate(self.ladder):
            try:
                buffer, dims = self.render_rung(source, rung, config.watermark_text)
            except Exception as e:
                last_error = e
                logger.warning(
                    f"[{self.strategy.value}] Level {index} failed "
                    f"(quality {rung.quality}, scale {rung.dimension_scale}): {type(e).__name__}: {e}"
                )
                continue

            best = (index, buffer, dims)
            logger.info(
                f"[{self.strategy.value}] Level {index}: {dims[0]}x{dims[1]}px, "
                f"quality {rung.quality}, size: {size_kb(len(buffer))}KB"
            )
            # Exact byte comparison; KB rounding is only for reporting
            if len(buffer) <= config.target_bytes:
                logger.info(f"[{self.strategy.value}] Target achieved at level {index}: {size_kb(len(buffer))}KB")
                break
        else:
            if best is not None:
                logger.warning(
                    f"[{self.strategy.value}] No level met {config.target_size_kb}KB, "
                    f"using level {best[0]} at {size_kb(len(best[1]))}KB (best effort)"
                )

        if best is None:
            raise CompressionError(f"All {len(self.ladder)} compression levels failed: {last_error}")

        index, buffer, (width, height) = best
        return OptimizedResult(
            processed_buffer=buffer,
            final_dimensions=Dimensions(width=width, height=height),
            compression_level_index=index,
            actual_size_kb=size_kb(len(buffer)),
            strategy=self.strategy,
            format="webp",
        )
