"""Shared httpx helpers."""

from __future__ import annotations

from typing import Any

import httpx

from reportflow.core.config import settings
from reportflow.pipeline.extraction import SERVICE_ERROR_FIELDS, first_present


def create_http_client(timeout: float | None = None) -> httpx.AsyncClient:
    """One client per runtime; every outbound call goes through it."""
    return httpx.AsyncClient(
        timeout=timeout or settings.HTTP_TIMEOUT_SECONDS,
        follow_redirects=True,
    )


def response_json(response: httpx.Response) -> Any:
    """Decoded JSON body, or None when the body is not JSON."""
    try:
        return response.json()
    except ValueError:
        return None


def service_error(response: httpx.Response) -> str | None:
    """The service's own error code/message from a JSON error body."""
    value = first_present(response_json(response), SERVICE_ERROR_FIELDS)
    return str(value) if value is not None else None
