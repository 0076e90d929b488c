"""Credential steps — bearer token before the upload, cookie before the analysis request."""

from __future__ import annotations

from reportflow.clients.credentials import CredentialFetcher
from reportflow.pipeline.context import OrderContext, StepResult
from reportflow.pipeline.step import PipelineStep


class FetchTokenStep(PipelineStep):
    """Fetch the storage bearer token."""

    name = "fetch_token"
    description = "Fetch bearer token"

    def __init__(self, credentials: CredentialFetcher) -> None:
        self.credentials = credentials

    async def execute(self, ctx: OrderContext) -> StepResult:
        started_at = self._now()
        ctx.token = await self.credentials.fetch_token()
        return self._success(started_at)


class FetchCookieStep(PipelineStep):
    """Fetch the analysis service session cookie."""

    name = "fetch_cookie"
    description = "Fetch session cookie"

    def __init__(self, credentials: CredentialFetcher) -> None:
        self.credentials = credentials

    async def execute(self, ctx: OrderContext) -> StepResult:
        started_at = self._now()
        ctx.cookie = await self.credentials.fetch_cookie()
        return self._success(started_at)
