"""
DownloadSourceStep — downloads the order's source file into memory.
"""

from __future__ import annotations

import httpx

from reportflow.clients.downloads import fetch_bytes
from reportflow.core.logging import get_logger
from reportflow.pipeline.context import OrderContext, StepResult
from reportflow.pipeline.errors import DownloadError
from reportflow.pipeline.step import PipelineStep

logger = get_logger(__name__)


class DownloadSourceStep(PipelineStep):
    """Download userFile.url."""

    name = "download_source"
    description = "Download the submitted file"

    def __init__(self, http: httpx.AsyncClient) -> None:
        self._http = http

    async def execute(self, ctx: OrderContext) -> StepResult:
        started_at = self._now()
        url = ctx.order.user_file.url

        if not url:
            raise DownloadError(
                "Order has no source file URL",
                order_id=ctx.order_id,
                step_name=self.name,
            )

        ctx.file_content = await fetch_bytes(self._http, url)

        logger.info(
            "Source file downloaded",
            order_id=ctx.order_id,
            filename=ctx.filename,
            size_bytes=len(ctx.file_content),
        )
        return self._success(started_at, metadata={"size_bytes": len(ctx.file_content)})
