"""
UploadToStorageStep — stores the source file and derives its public URL.
"""

from __future__ import annotations

from reportflow.clients.storage import StorageClient
from reportflow.pipeline.context import OrderContext, StepResult
from reportflow.pipeline.errors import SubmissionError
from reportflow.pipeline.step import PipelineStep


class UploadToStorageStep(PipelineStep):
    """Multipart upload under the workflow namespace."""

    name = "upload_to_storage"
    description = "Upload the file to object storage"

    def __init__(self, storage: StorageClient) -> None:
        self.storage = storage

    async def execute(self, ctx: OrderContext) -> StepResult:
        started_at = self._now()

        if ctx.file_content is None or ctx.token is None:
            raise SubmissionError(
                "Upload requires the downloaded file and a token",
                order_id=ctx.order_id,
                step_name=self.name,
            )

        stored = await self.storage.upload(ctx.file_content, ctx.filename, ctx.token)
        ctx.storage_key = stored.key
        ctx.public_file_url = stored.public_url

        # Release the buffer; nothing downstream needs the bytes.
        ctx.file_content = None

        return self._success(started_at, metadata={"storage_key": stored.key})
