"""
Automation control endpoints — status, start and stop of the order listener.
"""

from fastapi import APIRouter, Depends

from reportflow.api.deps import get_listener, get_supervisor
from reportflow.api.schemas.automation import (
    AutomationActionResponse,
    AutomationStatusResponse,
)
from reportflow.ingestion.change_listener import ChangeListener
from reportflow.pipeline.polling import PollingSupervisor

router = APIRouter(prefix="/automation", tags=["Automation"])


# ─── Status ───────────────────────────────────────────────
@router.get("/status", response_model=AutomationStatusResponse)
async def automation_status(
    listener: ChangeListener = Depends(get_listener),
    supervisor: PollingSupervisor = Depends(get_supervisor),
):
    """Whether the listener is currently subscribed to order inserts."""
    return AutomationStatusResponse(
        running=listener.is_running,
        state=listener.state,
        retry_count=listener.retry_count,
        active_jobs=len(supervisor.active_jobs()),
    )


# ─── Start ────────────────────────────────────────────────
@router.post("/start", response_model=AutomationActionResponse)
async def start_automation(listener: ChangeListener = Depends(get_listener)):
    """Start listening; reports failure when already running."""
    if await listener.start():
        return AutomationActionResponse(success=True, message="Automation started")
    return AutomationActionResponse(success=False, message="Automation already running")


# ─── Stop ─────────────────────────────────────────────────
@router.post("/stop", response_model=AutomationActionResponse)
async def stop_automation(listener: ChangeListener = Depends(get_listener)):
    """Stop listening; reports failure when already stopped."""
    if await listener.stop():
        return AutomationActionResponse(success=True, message="Automation stopped")
    return AutomationActionResponse(success=False, message="Automation already stopped")
