"""Analysis service client — submits a stored file for checking."""

from __future__ import annotations

import httpx

from reportflow.clients.http import response_json, service_error
from reportflow.core.logging import get_logger
from reportflow.pipeline.errors import SubmissionError
from reportflow.pipeline.extraction import JOB_ID_FIELDS, first_present

logger = get_logger(__name__)


class AnalysisClient:
    """Cookie-authenticated JSON submissions to the analysis service."""

    def __init__(self, http: httpx.AsyncClient, submit_url: str, workflow_id: str) -> None:
        self._http = http
        self.submit_url = submit_url
        self.workflow_id = workflow_id

    async def submit(self, file_url: str, cookie: str) -> str | None:
        """
        Request an analysis of `file_url`.

        Returns the job identifier, or None when the response does not
        carry one.  Raises SubmissionError if the request itself fails.
        """
        payload = {"uid": self.workflow_id, "fileUrl": file_url}

        try:
            response = await self._http.post(
                self.submit_url,
                json=payload,
                headers={"Cookie": cookie},
            )
        except httpx.HTTPError as exc:
            raise SubmissionError(f"Analysis request failed: {exc}") from exc

        if not response.is_success:
            raise SubmissionError(
                f"Analysis request failed: HTTP {response.status_code}",
                status_code=response.status_code,
                service_error=service_error(response),
            )

        job_id = first_present(response_json(response), JOB_ID_FIELDS)
        logger.info("Analysis requested", file_url=file_url, job_id=job_id)
        return str(job_id) if job_id is not None else None
