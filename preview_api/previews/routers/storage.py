from fastapi import APIRouter, HTTPException, Query
import logging
from typing import Optional

from previews.core.config import settings
from previews.models.schemas import OptimizationMetrics, StorageAnalysis, StorageUsage
from previews.services.storage_budget import (
    analyze_storage_requirements,
    estimate_usage,
    optimization_metrics,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/storage", tags=["storage"])


@router.get("/analyze", response_model=StorageAnalysis)
async def analyze_storage(
    item_count: int = Query(..., ge=0, description="Total number of previews (e.g. students x photos)"),
    per_item_kb: Optional[float] = Query(None, ge=0, description="Target size per preview; defaults to the configured target"),
):
    """
    Estimate total preview storage against the configured ceiling.
    """
    if per_item_kb is None:
        per_item_kb = settings.target_size_kb
    try:
        return analyze_storage_requirements(item_count, per_item_kb, settings.storage_ceiling_gb)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/metrics", response_model=OptimizationMetrics)
async def get_optimization_metrics():
    return optimization_metrics(settings)


@router.get("/usage", response_model=StorageUsage)
async def get_storage_usage(
    photo_count: int = Query(..., ge=0, description="Number of stored previews"),
    avg_kb: float = Query(50, gt=0),
):
    return estimate_usage(photo_count, avg_kb, settings.storage_ceiling_gb)
