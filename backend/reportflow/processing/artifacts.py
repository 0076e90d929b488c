"""
Artifact post-processor — turns a finished report into a public URL.

    download → strip first page (qpdf) → upload to CDN

Any failing stage raises its own PipelineError subclass and nothing is
retried; the polling supervisor decides what happens to the order.
Temporary files live in a private directory removed on every exit path.
"""

from __future__ import annotations

import tempfile
import time
from pathlib import Path

import httpx

from reportflow.clients.cdn import CloudinaryClient
from reportflow.clients.downloads import download_to_file
from reportflow.core.logging import get_logger
from reportflow.processing.pages import PageRemover

logger = get_logger(__name__)


class ArtifactPostProcessor:
    """Downloads, trims and republishes report documents."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        page_remover: PageRemover,
        cdn: CloudinaryClient,
        public_id_prefix: str = "reports",
        temp_dir: str | None = None,
    ) -> None:
        self._http = http
        self.page_remover = page_remover
        self.cdn = cdn
        self.public_id_prefix = public_id_prefix
        self.temp_dir = temp_dir

    def public_id_for(self, label: str) -> str:
        """Collision-resistant CDN key: label plus a millisecond timestamp."""
        return f"{self.public_id_prefix}/{label}_{time.time_ns() // 1_000_000}.pdf"

    async def process(self, document_url: str | None, label: str) -> str:
        """Run the three stages for one document and return its CDN URL."""
        log = logger.bind(label=label)

        with tempfile.TemporaryDirectory(prefix="reportflow-", dir=self.temp_dir) as workdir:
            input_path = Path(workdir) / "input.pdf"
            output_path = Path(workdir) / "output.pdf"

            log.info("Downloading report", url=document_url)
            await download_to_file(self._http, document_url, input_path)

            log.info("Removing first page")
            await self.page_remover.remove_first_page(input_path, output_path)

            public_id = self.public_id_for(label)
            log.info("Uploading processed report", public_id=public_id)
            url = await self.cdn.upload_raw(output_path, public_id)

        log.info("Report processed", url=url)
        return url
