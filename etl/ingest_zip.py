# WORKFLOW: ZIP archive ingestion for the published GAR XML feed.
# Used by: Download API endpoint, CLI, complete feed refresh
# Functions:
# 1. extract_zip_file() - Extract the archive into a clean directory
# 2. download_save_and_extract() - Download the archive, save it, extract it
#
# Ingestion flow: Feed URL -> Download ZIP -> Save to disk -> Extract XML -> Ready for conversion
# This is the first step in the ETL pipeline; conversion to CSV follows.

"""
ZIP archive ingestion for the published GAR XML feed.
"""

import logging
import shutil
import time
import zipfile
from pathlib import Path
from typing import List, Optional, Union

import httpx
from pydantic import BaseModel

from etl.download import download_file
from etl.errors import SourceNotFoundError

logger = logging.getLogger(__name__)


class DownloadResult(BaseModel):
    """Outcome of the download-save-extract workflow."""
    success: bool
    zip_path: Optional[str] = None
    extract_path: Optional[str] = None
    file_size_bytes: int = 0
    duration_seconds: float = 0.0
    error_message: Optional[str] = None


def extract_zip_file(zip_path: Union[str, Path], extract_dir: Union[str, Path]) -> List[str]:
    """
    Extract a ZIP archive into a clean directory.

    Args:
        zip_path: Path to ZIP file
        extract_dir: Directory to extract files to, removed first if it exists

    Returns:
        List of extracted XML file paths
    """
    archive = Path(zip_path)
    destination = Path(extract_dir)

    logger.info(f"Starting extraction of {archive}")
    if not archive.is_file():
        logger.error(f"Archive not found at {archive}")
        raise SourceNotFoundError(f"Archive file not found: {archive}", details={"zip_path": str(archive)})

    if destination.exists():
        logger.info(f"Cleaning up existing directory {destination}")
        shutil.rmtree(destination)
    destination.mkdir(parents=True)

    try:
        with zipfile.ZipFile(archive, 'r') as zip_ref:
            zip_ref.extractall(destination)
    except Exception as e:
        logger.error(f"Failed to extract ZIP file {archive}: {e}")
        raise

    xml_files = sorted(
        str(path) for path in destination.rglob("*")
        if path.is_file() and path.suffix.lower() == ".xml"
    )
    logger.info(f"Extracted {len(xml_files)} XML files from {archive} to {destination}")
    return xml_files


def download_save_and_extract(
    url: str,
    zip_path: Union[str, Path],
    extract_path: Union[str, Path],
    client: Optional[httpx.Client] = None,
) -> DownloadResult:
    """
    Download the feed archive, save it and extract it.

    Failures are reported in the result rather than raised.

    Args:
        url: Archive URL
        zip_path: Where to save the archive
        extract_path: Directory to extract into
        client: Optional httpx client passed to the downloader

    Returns:
        DownloadResult describing the run
    """
    start_time = time.monotonic()

    try:
        logger.info(f"Starting GAR delta download workflow from {url}")
        Path(extract_path).mkdir(parents=True, exist_ok=True)

        size = download_file(url, zip_path, client=client)
        extract_zip_file(zip_path, extract_path)

        duration = time.monotonic() - start_time
        logger.info(f"GAR delta successfully downloaded and extracted in {duration:.2f}s")
        return DownloadResult(
            success=True,
            zip_path=str(zip_path),
            extract_path=str(extract_path),
            file_size_bytes=size,
            duration_seconds=duration,
        )

    except Exception as e:
        logger.error(f"Error in download or extraction process: {e}")
        return DownloadResult(
            success=False,
            duration_seconds=time.monotonic() - start_time,
            error_message=str(e),
        )
