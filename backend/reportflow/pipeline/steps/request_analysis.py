"""
RequestAnalysisStep — submits the public file URL for analysis.

A missing job identifier is not an error here; the handler decides
what to do with the order when ctx.job_id stays None.
"""

from __future__ import annotations

from reportflow.clients.analysis import AnalysisClient
from reportflow.pipeline.context import OrderContext, StepResult
from reportflow.pipeline.errors import SubmissionError
from reportflow.pipeline.step import PipelineStep


class RequestAnalysisStep(PipelineStep):
    """POST {uid, fileUrl} to the analysis service."""

    name = "request_analysis"
    description = "Request an analysis job"

    def __init__(self, analysis: AnalysisClient) -> None:
        self.analysis = analysis

    async def execute(self, ctx: OrderContext) -> StepResult:
        started_at = self._now()

        if ctx.public_file_url is None or ctx.cookie is None:
            raise SubmissionError(
                "Analysis requires a stored file and a cookie",
                order_id=ctx.order_id,
                step_name=self.name,
            )

        ctx.job_id = await self.analysis.submit(ctx.public_file_url, ctx.cookie)
        return self._success(started_at, metadata={"job_id": ctx.job_id})
