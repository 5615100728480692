"""Storage planning against a fixed total ceiling.

Pure arithmetic, no I/O. With the defaults (35KB previews, 1GB ceiling) the
ceiling holds just under 30,000 previews, e.g. 1000 students x 20 photos
comes to ~0.67GB.
"""
import math

from previews.core.config import Settings, settings
from previews.models.schemas import OptimizationMetrics, StorageAnalysis, StorageUsage

KB_PER_GB = 1024 * 1024
BYTE_UNITS = ["Bytes", "KB", "MB", "GB", "TB"]


def analyze_storage_requirements(
    item_count: int,
    per_item_kb: float,
    ceiling_gb: float = 1.0,
) -> StorageAnalysis:
    """Relate item_count x per_item_kb to the ceiling and suggest remediation."""
    if item_count < 0 or per_item_kb < 0:
        raise ValueError("item_count and per_item_kb must be non-negative")
    if ceiling_gb <= 0:
        raise ValueError("ceiling_gb must be positive")

    total_gb = item_count * per_item_kb / KB_PER_GB
    within = total_gb <= ceiling_gb

    recommended = None
    recommendations = []
    if not within:
        # floor, so re-analysing with the suggestion stays under the ceiling
        recommended = math.floor(ceiling_gb * KB_PER_GB / item_count)
        if recommended >= 1:
            recommendations.append(f"Reduce target size to {recommended}KB per photo")
        else:
            recommended = None
            recommendations.append(
                f"A {ceiling_gb:g}GB ceiling cannot hold {item_count} photos even at 1KB each; "
                "raise the ceiling or split the catalogue"
            )
        recommendations.append("Consider storing only student photos, not group photos")
        recommendations.append("Implement photo cleanup after delivery")
    else:
        recommendations.append("Current optimization targets are suitable for the storage ceiling")
        recommendations.append("Monitor storage usage with provided metrics")

    return StorageAnalysis(
        total_items=item_count,
        per_item_target_kb=per_item_kb,
        total_estimated_gb=total_gb,
        within_ceiling=within,
        recommended_target_kb=recommended,
        recommendations=recommendations,
    )


def optimization_metrics(config: Settings = settings) -> OptimizationMetrics:
    return OptimizationMetrics(
        target_size_kb=config.target_size_kb,
        max_dimension=config.max_dimension,
        estimated_items_for_ceiling=math.floor(config.storage_ceiling_gb * KB_PER_GB / config.target_size_kb),
    )


def format_bytes(num_bytes: int) -> str:
    if num_bytes <= 0:
        return "0 Bytes"
    i = 0
    while num_bytes >= 1024 ** (i + 1) and i < len(BYTE_UNITS) - 1:
        i += 1
    value = round(num_bytes / 1024 ** i, 2)
    return f"{value:g} {BYTE_UNITS[i]}"


def estimate_usage(photo_count: int, avg_kb: float = 50, ceiling_gb: float = 1.0) -> StorageUsage:
    """Rough usage estimate from a stored-photo count."""
    estimated_bytes = int(photo_count * avg_kb * 1024)
    return StorageUsage(
        photos_count=photo_count,
        estimated_storage_used=format_bytes(estimated_bytes),
        percentage_of_ceiling=round(estimated_bytes / (ceiling_gb * 1024 ** 3) * 100),
    )
