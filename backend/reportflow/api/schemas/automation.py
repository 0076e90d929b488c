"""Automation control request/response schemas."""

from __future__ import annotations

from pydantic import BaseModel

from reportflow.core.constants import ListenerState


class AutomationStatusResponse(BaseModel):
    """Current listener state."""

    running: bool
    state: ListenerState
    retry_count: int = 0
    active_jobs: int = 0


class AutomationActionResponse(BaseModel):
    """Outcome of a start/stop request."""

    success: bool
    message: str
