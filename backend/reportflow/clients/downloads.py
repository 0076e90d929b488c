"""
Document downloads.

Both helpers raise DownloadError for transport failures and non-2xx
responses; nothing is retried here.
"""

from __future__ import annotations

from pathlib import Path

import httpx

from reportflow.core.logging import get_logger
from reportflow.pipeline.errors import DownloadError

logger = get_logger(__name__)

CHUNK_SIZE = 64 * 1024


async def fetch_bytes(http: httpx.AsyncClient, url: str | None) -> bytes:
    """Download `url` fully into memory."""
    if not url:
        raise DownloadError("No download URL provided")

    try:
        response = await http.get(url)
    except httpx.HTTPError as exc:
        raise DownloadError(f"Download failed for {url}: {exc}") from exc

    if not response.is_success:
        raise DownloadError(
            f"Download failed for {url}: HTTP {response.status_code}",
            details={"status_code": response.status_code},
        )
    return response.content


async def download_to_file(http: httpx.AsyncClient, url: str | None, path: Path) -> int:
    """Stream `url` into `path`. Returns the number of bytes written."""
    if not url:
        raise DownloadError("No download URL provided")

    written = 0
    try:
        async with http.stream("GET", url) as response:
            if not response.is_success:
                raise DownloadError(
                    f"Download failed for {url}: HTTP {response.status_code}",
                    details={"status_code": response.status_code},
                )
            with path.open("wb") as fh:
                async for chunk in response.aiter_bytes(CHUNK_SIZE):
                    fh.write(chunk)
                    written += len(chunk)
    except httpx.HTTPError as exc:
        raise DownloadError(f"Download failed for {url}: {exc}") from exc

    logger.info("Document downloaded", url=url, size_mb=round(written / 1024 / 1024, 2))
    return written
