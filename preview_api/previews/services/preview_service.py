from PIL import Image, ImageDraw, ImageFont
import io
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from previews.core.config import ExecutionProfile, PlaceholderPolicy, Settings, settings
from previews.core.errors import PreviewUnavailableError
from previews.models.schemas import (
    PASSTHROUGH_LEVEL,
    PLACEHOLDER_LEVEL,
    Dimensions,
    OptimizedResult,
    PreviewOptions,
    ProcessingConfig,
    RawImage,
    ResolutionVariant,
    Strategy,
    WatermarkTier,
    require_text,
)
from previews.services.compression import (
    FULL_EFFORT,
    FULL_LADDER,
    SIMPLIFIED_EFFORT,
    SIMPLIFIED_LADDER,
    CompressionEngine,
    build_ladder,
    cap_dimensions,
    decode_image,
    resize_to,
    size_kb,
)
from previews.services.metadata import read_metadata
from previews.services.placeholders import generate_placeholders
from previews.services.renderers import (
    PillowWatermarkRenderer,
    SvgWatermarkRenderer,
    WatermarkRenderer,
)

logger = logging.getLogger(__name__)

PLACEHOLDER_SIZE = (200, 100)
PLACEHOLDER_BACKGROUND = (220, 53, 69)


def _error_summary(exc: Exception) -> str:
    return f"{type(exc).__name__}: {exc}"


class PreviewService:
    """Public entry point: turns an uploaded original into a watermarked preview.

    Degrades strictly Full -> Simplified -> Placeholder, attempting each state
    at most once per call. Only a failure of the Placeholder state escapes,
    as PreviewUnavailableError.
    """

    def __init__(
        self,
        config: Settings = settings,
        full_renderer: Optional[WatermarkRenderer] = None,
        simplified_renderer: Optional[WatermarkRenderer] = None,
    ):
        self.settings = config
        self.full_renderer = full_renderer or SvgWatermarkRenderer(config.brand_text, config.deterrent_text)
        self.simplified_renderer = simplified_renderer or PillowWatermarkRenderer(
            config.brand_text, config.deterrent_text
        )
        self.engines = {
            Strategy.FULL: CompressionEngine(
                self.full_renderer, WatermarkTier.DENSE, FULL_LADDER, FULL_EFFORT, Strategy.FULL
            ),
            Strategy.SIMPLIFIED: CompressionEngine(
                self.simplified_renderer, WatermarkTier.SIMPLE, SIMPLIFIED_LADDER,
                SIMPLIFIED_EFFORT, Strategy.SIMPLIFIED,
            ),
        }

    @property
    def strategies(self) -> List[Strategy]:
        if self.settings.execution_profile is ExecutionProfile.CONSTRAINED:
            return [Strategy.SIMPLIFIED]
        return [Strategy.FULL, Strategy.SIMPLIFIED]

    def process_for_preview(
        self,
        buffer: bytes,
        options: PreviewOptions | Mapping[str, Any] | None = None,
    ) -> OptimizedResult:
        config = ProcessingConfig.from_options(options, self.settings)
        raw_image = RawImage(buffer=bytes(buffer or b""), metadata=read_metadata(buffer or b""))
        meta = raw_image.metadata
        logger.info(
            f"Processing {len(raw_image.buffer)} bytes ({meta.format} {meta.width}x{meta.height}), "
            f"target {config.target_size_kb}KB, max {config.max_dimension}px"
        )

        states = self.strategies + [Strategy.PLACEHOLDER]
        logger.info(f"Entering {states[0].value} processing")
        for strategy, next_state in zip(states, states[1:]):
            try:
                result = self.engines[strategy].compress(raw_image, config)
                if not result.processed_buffer:
                    raise ValueError("encoder returned an empty buffer")
            except Exception as e:
                logger.warning(
                    f"{strategy.value.capitalize()} processing failed ({_error_summary(e)}); "
                    f"entering {next_state.value} processing"
                )
                continue
            return self._with_placeholders(result, raw_image)

        return self._placeholder(raw_image, config)

    def _with_placeholders(self, result: OptimizedResult, raw_image: RawImage) -> OptimizedResult:
        if not self.settings.generate_placeholders:
            return result
        try:
            placeholders = generate_placeholders(raw_image)
        except Exception as e:
            logger.warning(f"Placeholder generation skipped: {_error_summary(e)}")
            return result
        return result.model_copy(update={
            "blur_data_url": placeholders.blur_data_url,
            "avg_color": placeholders.avg_color,
        })

    def _placeholder(self, raw_image: RawImage, config: ProcessingConfig) -> OptimizedResult:
        policy = self.settings.placeholder_policy
        try:
            if policy is PlaceholderPolicy.PASSTHROUGH:
                result = self._passthrough(raw_image)
            else:
                result = self._synthesize(config.watermark_text)
            if not result.processed_buffer:
                raise ValueError("placeholder buffer is empty")
        except Exception as e:
            logger.error(f"Placeholder ({policy.value}) failed, no image can be produced: {_error_summary(e)}")
            raise PreviewUnavailableError(f"Image processing unavailable: {_error_summary(e)}") from e

        logger.info(
            f"Placeholder ({policy.value}) produced {result.final_dimensions.width}x"
            f"{result.final_dimensions.height}, {result.actual_size_kb}KB"
        )
        return result

    def _synthesize(self, watermark_text: str) -> OptimizedResult:
        img = Image.new("RGB", PLACEHOLDER_SIZE, PLACEHOLDER_BACKGROUND)
        draw = ImageDraw.Draw(img)
        font = ImageFont.load_default(size=14)
        center_x = PLACEHOLDER_SIZE[0] // 2
        for y, line in ((30, "Preview Error"), (50, watermark_text), (70, "Contact Support")):
            draw.text((center_x, y), line, font=font, fill="white", anchor="mm")

        out = io.BytesIO()
        img.save(out, format="WEBP", quality=50)
        buffer = out.getvalue()
        return OptimizedResult(
            processed_buffer=buffer,
            final_dimensions=Dimensions(width=img.width, height=img.height),
            compression_level_index=PLACEHOLDER_LEVEL,
            actual_size_kb=size_kb(len(buffer)),
            strategy=Strategy.PLACEHOLDER,
            format="webp",
        )

    def _passthrough(self, raw_image: RawImage) -> OptimizedResult:
        logger.warning("Returning the original image unprocessed (no watermark)")
        meta = raw_image.metadata
        return OptimizedResult(
            processed_buffer=raw_image.buffer,
            final_dimensions=Dimensions(width=meta.width, height=meta.height),
            compression_level_index=PASSTHROUGH_LEVEL,
            actual_size_kb=size_kb(len(raw_image.buffer)),
            strategy=Strategy.PLACEHOLDER,
            format=meta.format,
        )

    def generate_multi_resolution_variants(
        self,
        buffer: bytes,
        watermark_text: Optional[str] = None,
        breakpoints: Optional[Sequence[int]] = None,
    ) -> List[ResolutionVariant]:
        """Watermarked previews capped at fixed breakpoints (longest side, no upscaling)."""
        text = self.settings.watermark_text if watermark_text is None else require_text(watermark_text)
        breakpoints = sorted(set(breakpoints or self.settings.variant_breakpoints))
        if not breakpoints or breakpoints[0] <= 0:
            raise ValueError("breakpoints must be positive")

        try:
            source = decode_image(buffer)
        except Exception as e:
            raise PreviewUnavailableError(f"Cannot decode image for variants: {_error_summary(e)}") from e

        rung = build_ladder([(self.settings.variant_quality, 1.0)])[0]
        variants: Dict[tuple, ResolutionVariant] = {}
        for breakpoint in breakpoints:
            capped = cap_dimensions(source.width, source.height, breakpoint)
            if capped in variants:
                continue
            img = resize_to(source, capped)
            encoded, dims = self._render_variant(img, rung, text)
            variants[capped] = ResolutionVariant(
                width=dims[0], height=dims[1], buffer=encoded, size_kb=size_kb(len(encoded))
            )
            logger.info(f"Variant {breakpoint}px: {dims[0]}x{dims[1]}, {size_kb(len(encoded))}KB")
        return list(variants.values())

    def _render_variant(self, img: Image.Image, rung, text: str):
        last_error = None
        for strategy in self.strategies:
            engine = self.engines[strategy]
            try:
                return engine.render_rung(img, rung, text)
            except Exception as e:
                last_error = e
                logger.warning(f"Variant render ({strategy.value}) failed: {_error_summary(e)}")
        raise PreviewUnavailableError(f"Could not render variant: {_error_summary(last_error)}")


preview_service = PreviewService()
