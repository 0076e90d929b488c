"""
Object-storage client — multipart upload of the user's source file.

Objects are stored under `<bucket>/<workflow_id>/<filename>` and served
from the public object endpoint.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from reportflow.clients.http import response_json, service_error
from reportflow.core.logging import get_logger
from reportflow.pipeline.errors import SubmissionError
from reportflow.pipeline.extraction import STORAGE_KEY_FIELDS, first_present

logger = get_logger(__name__)


@dataclass(frozen=True)
class StoredObject:
    """Where an uploaded file ended up."""

    key: str
    public_url: str


class StorageClient:
    """Authenticated uploads to the storage service."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        base_url: str,
        api_key: str,
        bucket: str,
        workflow_id: str,
    ) -> None:
        self._http = http
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.bucket = bucket
        self.workflow_id = workflow_id

    def object_url(self, filename: str) -> str:
        return f"{self.base_url}/storage/v1/object/{self.bucket}/{self.workflow_id}/{filename}"

    def public_url(self, key: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{key}"

    async def upload(self, content: bytes, filename: str, token: str) -> StoredObject:
        """Upload `content` as `filename`. Raises SubmissionError on any failure."""
        url = self.object_url(filename)
        headers = {"apikey": self.api_key, "Authorization": token}
        files = {"file": (filename, content)}

        try:
            response = await self._http.post(url, headers=headers, files=files)
        except httpx.HTTPError as exc:
            raise SubmissionError(f"Storage upload failed: {exc}") from exc

        if not response.is_success:
            error = service_error(response)
            logger.error(
                "Storage upload rejected",
                status_code=response.status_code,
                service_error=error,
                filename=filename,
            )
            raise SubmissionError(
                f"Storage upload failed: HTTP {response.status_code}",
                status_code=response.status_code,
                service_error=error,
            )

        data = response_json(response)
        key = first_present(data, STORAGE_KEY_FIELDS)
        if key is None:
            key = f"{self.bucket}/{self.workflow_id}/{filename}"
            logger.warning("Storage response carried no key, using upload path", key=key)

        stored = StoredObject(key=str(key), public_url=self.public_url(str(key)))
        logger.info("File stored", key=stored.key)
        return stored
