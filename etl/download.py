# WORKFLOW: HTTP download of the published feed archive.
# Used by: Archive ingestion workflow, download API endpoint, CLI
# Functions:
# 1. download_file() - Stream a URL to disk, retrying transient failures
#
# Download flow: URL -> GET (streamed) -> Write chunks to disk -> Retry on transport/5xx errors

"""
HTTP download of the published feed archive.
"""

import logging
from pathlib import Path
from typing import Optional, Union

import httpx
import tenacity

from core.config import settings
from etl.errors import DownloadError

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 1024


def _is_retryable(error: BaseException) -> bool:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code >= 500
    return isinstance(error, httpx.TransportError)


def _log_retry(retry_state: tenacity.RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    delay = retry_state.next_action.sleep if retry_state.next_action else 0
    logger.warning(
        f"Download attempt {retry_state.attempt_number} failed: {error}. "
        f"Retrying in {delay * 1000:.0f}ms..."
    )


def _fetch(client: httpx.Client, url: str, destination: Path) -> int:
    logger.info(f"Downloading from {url}")
    written = 0
    with client.stream("GET", url) as response:
        if response.is_error:
            logger.error(f"Download failed with status {response.status_code}: {response.reason_phrase}")
        response.raise_for_status()
        with open(destination, "wb") as f:
            for chunk in response.iter_bytes(_CHUNK_SIZE):
                f.write(chunk)
                written += len(chunk)
    logger.info(f"Downloaded {written:,} bytes successfully")
    return written


def download_file(
    url: str,
    destination: Union[str, Path],
    client: Optional[httpx.Client] = None,
    max_retries: Optional[int] = None,
    retry_delay_ms: Optional[int] = None,
) -> int:
    """
    Download ``url`` into ``destination``.

    Args:
        url: Archive URL
        destination: File to write, parent directories are created
        client: Preconfigured httpx client, one is built from settings if omitted
        max_retries: Retries after the first attempt, defaults to ``settings.max_retries``
        retry_delay_ms: Base delay, the n-th retry waits ``n * retry_delay_ms``

    Returns:
        Number of bytes written

    Raises:
        DownloadError: If every attempt failed
    """
    target = Path(destination)
    target.parent.mkdir(parents=True, exist_ok=True)
    retries = settings.max_retries if max_retries is None else max_retries
    delay_seconds = (settings.retry_delay_ms if retry_delay_ms is None else retry_delay_ms) / 1000

    retrying = tenacity.Retrying(
        stop=tenacity.stop_after_attempt(retries + 1),
        wait=tenacity.wait_incrementing(start=delay_seconds, increment=delay_seconds),
        retry=tenacity.retry_if_exception(_is_retryable),
        before_sleep=_log_retry,
        reraise=True,
    )

    owns_client = client is None
    if owns_client:
        client = httpx.Client(
            timeout=settings.download_timeout_seconds,
            follow_redirects=True,
            headers={"User-Agent": settings.user_agent},
        )

    try:
        return retrying(_fetch, client, url, target)
    except httpx.HTTPError as e:
        raise DownloadError(f"Failed to download {url}: {e}", details={"url": url}) from e
    finally:
        if owns_client:
            client.close()
