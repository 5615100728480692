from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, List, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

if TYPE_CHECKING:
    from previews.core.config import Settings


ImageFormat = Literal["jpeg", "png", "webp", "unknown"]


class Strategy(str, Enum):
    FULL = "full"
    SIMPLIFIED = "simplified"
    PLACEHOLDER = "placeholder"


class WatermarkTier(str, Enum):
    DENSE = "dense"
    SIMPLE = "simple"


# Negative compression_level_index values mark non-ladder results
PLACEHOLDER_LEVEL = -1
PASSTHROUGH_LEVEL = -2


class ImageMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: int = Field(gt=0)
    height: int = Field(gt=0)
    format: ImageFormat = "unknown"


class RawImage(BaseModel):
    model_config = ConfigDict(frozen=True)

    buffer: bytes
    metadata: ImageMetadata


class Dimensions(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: int
    height: int


def require_text(value: str) -> str:
    if not value.strip():
        raise ValueError("watermark_text must not be blank")
    return value


class PreviewOptions(BaseModel):
    """Caller overrides; anything left as None falls back to settings."""
    target_size_kb: Optional[int] = Field(default=None, gt=0)
    max_dimension: Optional[int] = Field(default=None, gt=0)
    watermark_text: Optional[str] = None

    @field_validator("watermark_text")
    @classmethod
    def _not_blank(cls, value: Optional[str]) -> Optional[str]:
        return value if value is None else require_text(value)


class ProcessingConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    target_size_kb: int = Field(gt=0)
    max_dimension: int = Field(gt=0)
    watermark_text: str = Field(min_length=1)
    # Originals are never stored by the preview pipeline
    store_original: Literal[False] = False

    @field_validator("watermark_text")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        return require_text(value)

    @property
    def target_bytes(self) -> int:
        return self.target_size_kb * 1024

    @classmethod
    def from_options(
        cls,
        options: PreviewOptions | Mapping[str, Any] | None,
        defaults: Settings,
    ) -> ProcessingConfig:
        """Merge caller overrides over the configured defaults."""
        merged = {
            "target_size_kb": defaults.target_size_kb,
            "max_dimension": defaults.max_dimension,
            "watermark_text": defaults.watermark_text,
        }
        if isinstance(options, PreviewOptions):
            overrides = options.model_dump(exclude_none=True)
        else:
            overrides = {k: v for k, v in dict(options or {}).items() if v is not None}
        overrides.pop("store_original", None)
        merged.update(overrides)
        return cls(**merged, store_original=False)


class CompressionCandidate(BaseModel):
    model_config = ConfigDict(frozen=True)

    quality: int = Field(ge=1, le=100)
    dimension_scale: float = Field(gt=0, le=1.0)


class OptimizedResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    processed_buffer: bytes
    final_dimensions: Dimensions
    compression_level_index: int
    actual_size_kb: int
    strategy: Strategy = Strategy.FULL
    format: str = "webp"
    blur_data_url: Optional[str] = None
    avg_color: Optional[str] = None


class Placeholders(BaseModel):
    blur_data_url: str
    avg_color: str


class WatermarkSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    font_size: int
    opacity: float
    tile_spacing: int


class ResolutionVariant(BaseModel):
    width: int
    height: int
    buffer: bytes
    size_kb: int


class StorageAnalysis(BaseModel):
    total_items: int
    per_item_target_kb: float
    total_estimated_gb: float
    within_ceiling: bool
    recommended_target_kb: Optional[int] = None
    recommendations: List[str]


class OptimizationMetrics(BaseModel):
    target_size_kb: int
    max_dimension: int
    estimated_items_for_ceiling: int


class StorageUsage(BaseModel):
    photos_count: int
    estimated_storage_used: str
    percentage_of_ceiling: int


# --- API RESPONSE MODELS ---
class PreviewResponse(BaseModel):
    filename: str
    processed: bool
    strategy: Optional[Strategy] = None
    compression_level_index: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None
    actual_size_kb: Optional[int] = None
    content_type: str = "image/webp"
    preview_base64: Optional[str] = None
    blur_data_url: Optional[str] = None
    avg_color: Optional[str] = None
    error: Optional[str] = None


class BulkPreviewResponse(BaseModel):
    total_files: int
    successful: int
    degraded: int
    failed: int
    results: List[PreviewResponse]
    processing_time: float


class VariantInfo(BaseModel):
    width: int
    height: int
    size_kb: int
    preview_base64: str


class VariantsResponse(BaseModel):
    filename: str
    variants: List[VariantInfo]
    processing_time: float


class HealthCheckResponse(BaseModel):
    status: str
    timestamp: datetime
    version: str
    execution_profile: str
