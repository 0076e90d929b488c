"""
Credential fetcher — short-lived bearer token and session cookie.

Both values are published as plain text files and rotated out of band.
A failure here is fatal for the current order attempt; retrying is the
caller's business.
"""

from __future__ import annotations

import re

import httpx

from reportflow.core.logging import get_logger
from reportflow.pipeline.errors import CredentialFetchError

logger = get_logger(__name__)

_NEWLINES = re.compile(r"\r?\n")


def clean_credential(raw: str) -> str:
    """Trim surrounding whitespace and drop any embedded line breaks."""
    return _NEWLINES.sub("", raw.strip())


class CredentialFetcher:
    """Reads the token and cookie from their remote text sources."""

    def __init__(self, http: httpx.AsyncClient, token_url: str, cookie_url: str) -> None:
        self._http = http
        self.token_url = token_url
        self.cookie_url = cookie_url

    async def fetch_token(self) -> str:
        return await self._fetch("token", self.token_url)

    async def fetch_cookie(self) -> str:
        return await self._fetch("cookie", self.cookie_url)

    async def _fetch(self, kind: str, url: str) -> str:
        try:
            response = await self._http.get(url)
        except httpx.HTTPError as exc:
            logger.error("Credential fetch failed", kind=kind, error=str(exc))
            raise CredentialFetchError(f"Failed to fetch {kind}: {exc}") from exc

        if not response.is_success:
            logger.error("Credential fetch failed", kind=kind, status_code=response.status_code)
            raise CredentialFetchError(
                f"Failed to fetch {kind}: HTTP {response.status_code}",
                details={"status_code": response.status_code},
            )

        value = clean_credential(response.text)
        if not value:
            raise CredentialFetchError(f"Remote {kind} is empty")

        logger.info("Credential fetched", kind=kind)
        return value
