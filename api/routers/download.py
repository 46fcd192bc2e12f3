# WORKFLOW: Download endpoint for fetching and extracting the published feed archive.
# Used by: Scheduled refresh jobs, operators
# Endpoints:
# 1. /download/fias - Download the configured ZIP archive and extract it
#
# Request flow: HTTP GET -> Download (with retries) -> Save -> Extract -> Response

from fastapi import APIRouter, HTTPException, status
from starlette.concurrency import run_in_threadpool
from pathlib import Path
import logging

from core.config import settings
from api.schemas.response import DownloadResponse
from etl.ingest_zip import download_save_and_extract

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/download", tags=["download"])


@router.get("/fias", response_model=DownloadResponse)
async def download_and_extract_fias():
    """Download the configured GAR delta archive and extract it."""
    zip_path = Path(settings.download_path) / settings.archive_name
    extract_path = settings.extract_path

    logger.info("Received request to download and extract GAR delta XML")
    result = await run_in_threadpool(
        download_save_and_extract, settings.fias_url, zip_path, extract_path
    )

    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": "Failed to download and extract GAR data",
                "error": result.error_message,
            },
        )

    return DownloadResponse(
        message="GAR delta XML downloaded and extracted successfully",
        zip_file=result.zip_path,
        extracted_to=result.extract_path,
        file_size_mb=round(result.file_size_bytes / 1024 / 1024, 2),
        duration_seconds=result.duration_seconds,
    )
