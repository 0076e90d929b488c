"""Job-status client — looks up an analysis job by identifier."""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from reportflow.clients.http import response_json
from reportflow.core.constants import JOB_DONE_STATUS
from reportflow.pipeline.errors import SubmissionError
from reportflow.pipeline.extraction import (
    AI_REPORT_URL_FIELDS,
    JOB_STATUS_FIELDS,
    SIMILARITY_REPORT_URL_FIELDS,
    first_present,
    first_record,
)


@dataclass(frozen=True)
class JobStatus:
    """Snapshot of one analysis job."""

    job_id: str
    status: str | None
    ai_report_url: str | None = None
    similarity_report_url: str | None = None

    @property
    def is_done(self) -> bool:
        return self.status == JOB_DONE_STATUS


class JobStatusClient:
    """Queries the job history table through the storage REST endpoint."""

    def __init__(self, http: httpx.AsyncClient, base_url: str, api_key: str) -> None:
        self._http = http
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key

    def status_url(self, job_id: str) -> str:
        return f"{self.base_url}/rest/v1/checks_history?id=eq.{job_id}"

    async def get_status(self, job_id: str, token: str) -> JobStatus | None:
        """Current status of `job_id`, or None when no record exists yet."""
        try:
            response = await self._http.get(
                self.status_url(job_id),
                headers={"apikey": self.api_key, "Authorization": token},
            )
        except httpx.HTTPError as exc:
            raise SubmissionError(f"Job status query failed: {exc}") from exc

        if not response.is_success:
            raise SubmissionError(
                f"Job status query failed: HTTP {response.status_code}",
                status_code=response.status_code,
            )

        record = first_record(response_json(response))
        if record is None:
            return None

        return JobStatus(
            job_id=job_id,
            status=first_present(record, JOB_STATUS_FIELDS),
            ai_report_url=first_present(record, AI_REPORT_URL_FIELDS),
            similarity_report_url=first_present(record, SIMILARITY_REPORT_URL_FIELDS),
        )
