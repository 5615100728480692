from fastapi import APIRouter, UploadFile, File, Form, HTTPException
from typing import List, Optional
import time
import asyncio
import base64
import logging
import os
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn

from previews.models.schemas import (
    BulkPreviewResponse,
    PreviewOptions,
    PreviewResponse,
    Strategy,
    VariantInfo,
    VariantsResponse,
)
from previews.services.preview_service import preview_service
from previews.core.config import settings
from previews.core.errors import PreviewUnavailableError

console = Console()
logger = logging.getLogger(__name__)
router = APIRouter(prefix="/previews", tags=["previews"])


# --- HELPER: Validate + Read Upload ---
async def read_upload(file: UploadFile) -> bytes:
    if not file.filename:
        raise HTTPException(status_code=400, detail="No filename")
    extension = os.path.splitext(file.filename)[1].lower()
    if extension not in settings.allowed_extensions:
        raise HTTPException(status_code=400, detail=f"Invalid file type: {extension or 'none'}")
    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Empty file")
    if len(content) > settings.max_file_size:
        raise HTTPException(status_code=400, detail="File too large")
    return content


# --- HELPER: Build Preview (runs the sync pipeline off the event loop) ---
async def build_preview(file: UploadFile, options: PreviewOptions) -> PreviewResponse:
    try:
        content = await read_upload(file)
        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(
            None, preview_service.process_for_preview, content, options
        )
    finally:
        await file.close()

    return PreviewResponse(
        filename=file.filename,
        processed=True,
        strategy=result.strategy,
        compression_level_index=result.compression_level_index,
        width=result.final_dimensions.width,
        height=result.final_dimensions.height,
        actual_size_kb=result.actual_size_kb,
        content_type=f"image/{result.format}",
        preview_base64=base64.b64encode(result.processed_buffer).decode("ascii"),
        blur_data_url=result.blur_data_url,
        avg_color=result.avg_color,
    )


def parse_options(watermark_text, target_size_kb, max_dimension) -> PreviewOptions:
    try:
        return PreviewOptions(
            watermark_text=watermark_text or None,
            target_size_kb=target_size_kb,
            max_dimension=max_dimension,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


# ===================== PREVIEW ENDPOINTS (Compress + Watermark) =====================

@router.post("/single", response_model=PreviewResponse)
async def preview_single_image(
    file: UploadFile = File(..., description="Select an image"),
    watermark_text: Optional[str] = Form(None),
    target_size_kb: Optional[int] = Form(None),
    max_dimension: Optional[int] = Form(None),
):
    options = parse_options(watermark_text, target_size_kb, max_dimension)
    try:
        return await build_preview(file, options)
    except PreviewUnavailableError as e:
        logger.error(f"Preview unavailable for {file.filename}: {e}")
        raise HTTPException(status_code=503, detail=str(e))


@router.post("/bulk", response_model=BulkPreviewResponse)
async def preview_bulk_images(
    files: List[UploadFile] = File(..., description="Select multiple images"),
    watermark_text: Optional[str] = Form(None),
    target_size_kb: Optional[int] = Form(None),
    max_dimension: Optional[int] = Form(None),
):
    start_time = time.time()
    options = parse_options(watermark_text, target_size_kb, max_dimension)
    semaphore = asyncio.Semaphore(settings.concurrency_limit)

    async def sem_task(file):
        async with semaphore:
            try:
                return await build_preview(file, options)
            except HTTPException as e:
                return PreviewResponse(filename=file.filename or "", processed=False, error=e.detail)
            except (PreviewUnavailableError, ValueError) as e:
                console.print(f"[red]Failed {file.filename}: {e}[/red]")
                return PreviewResponse(filename=file.filename or "", processed=False, error=str(e))
            finally:
                progress.advance(overall_task)

    with Progress(SpinnerColumn(), TextColumn("[bold blue]{task.description}"), BarColumn(), TextColumn("[progress.percentage]{task.percentage:>3.0f}%"), console=console) as progress:
        overall_task = progress.add_task("[green]Building previews...", total=len(files))
        results = await asyncio.gather(*[sem_task(file) for file in files])

    failed = sum(1 for r in results if not r.processed)
    degraded = sum(1 for r in results if r.processed and r.strategy != Strategy.FULL)
    return BulkPreviewResponse(
        total_files=len(files),
        successful=len(results) - failed,
        degraded=degraded,
        failed=failed,
        results=results,
        processing_time=time.time() - start_time,
    )


@router.post("/variants", response_model=VariantsResponse)
async def preview_variants(
    file: UploadFile = File(..., description="Select an image"),
    watermark_text: Optional[str] = Form(None),
):
    start_time = time.time()
    try:
        content = await read_upload(file)
        loop = asyncio.get_running_loop()
        variants = await loop.run_in_executor(
            None, preview_service.generate_multi_resolution_variants, content, watermark_text or None
        )
    except PreviewUnavailableError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    finally:
        await file.close()

    return VariantsResponse(
        filename=file.filename,
        variants=[
            VariantInfo(
                width=v.width,
                height=v.height,
                size_kb=v.size_kb,
                preview_base64=base64.b64encode(v.buffer).decode("ascii"),
            )
            for v in variants
        ],
        processing_time=time.time() - start_time,
    )
