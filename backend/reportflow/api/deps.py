"""Shared dependencies for API routes."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from reportflow.ingestion.change_listener import ChangeListener
from reportflow.pipeline.polling import PollingSupervisor
from reportflow.runtime import AutomationRuntime


def get_runtime(request: Request) -> AutomationRuntime:
    """The runtime built by the application lifespan."""
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Automation runtime not initialised",
        )
    return runtime


def get_listener(request: Request) -> ChangeListener:
    return get_runtime(request).listener


def get_supervisor(request: Request) -> PollingSupervisor:
    return get_runtime(request).supervisor
