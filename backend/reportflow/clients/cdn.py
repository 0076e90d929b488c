"""
CDN client — signed raw uploads to Cloudinary's REST upload API.

Signature: SHA-1 over the alphabetically sorted `key=value` upload
parameters joined with `&`, followed by the API secret.
"""

from __future__ import annotations

import hashlib
import time
from pathlib import Path

import httpx

from reportflow.clients.http import response_json
from reportflow.core.logging import get_logger
from reportflow.pipeline.errors import UploadError

logger = get_logger(__name__)


def sign_params(params: dict[str, str], api_secret: str) -> str:
    """Cloudinary request signature for `params`."""
    to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params))
    return hashlib.sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


class CloudinaryClient:
    """Uploads finished report documents and returns their secure URL."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        folder: str,
        base_url: str = "https://api.cloudinary.com/v1_1",
    ) -> None:
        self._http = http
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.folder = folder
        self.base_url = base_url.rstrip("/")

    @property
    def upload_url(self) -> str:
        return f"{self.base_url}/{self.cloud_name}/raw/upload"

    async def upload_raw(self, path: Path, public_id: str) -> str:
        """Upload the file at `path` under `public_id`. Raises UploadError."""
        params = {
            "folder": self.folder,
            "public_id": public_id,
            "timestamp": str(int(time.time())),
        }
        data = {
            **params,
            "api_key": self.api_key,
            "signature": sign_params(params, self.api_secret),
        }

        try:
            content = path.read_bytes()
            response = await self._http.post(
                self.upload_url,
                data=data,
                files={"file": (path.name, content, "application/pdf")},
            )
        except (OSError, httpx.HTTPError) as exc:
            raise UploadError(f"CDN upload failed: {exc}") from exc

        body = response_json(response)
        if not response.is_success:
            message = None
            if isinstance(body, dict) and isinstance(body.get("error"), dict):
                message = body["error"].get("message")
            raise UploadError(
                f"CDN upload failed: HTTP {response.status_code}"
                + (f" ({message})" if message else ""),
                details={"status_code": response.status_code},
            )

        secure_url = body.get("secure_url") if isinstance(body, dict) else None
        if not secure_url:
            raise UploadError("CDN upload response carried no secure_url")

        logger.info("Uploaded to CDN", public_id=public_id, url=secure_url)
        return secure_url
