"""Shared constants and enums used across the application."""

from enum import StrEnum


class OrderStatus(StrEnum):
    """Processing status of an order. FAILED and COMPLETED are terminal."""

    PENDING = "pending"
    FAILED = "failed"
    COMPLETED = "completed"


class PaymentSource(StrEnum):
    """How the order was paid for; decides the refund rule."""

    REGULAR = "regular"
    DAILY = "daily"


class ListenerState(StrEnum):
    """Lifecycle of the order change listener."""

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    RECONNECTING = "reconnecting"


class StepStatus(StrEnum):
    """Status of an individual workflow step."""

    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class WorkflowStatus(StrEnum):
    """Outcome of one order handler run."""

    POLLING = "POLLING"
    FAILED = "FAILED"


class ArtifactKind(StrEnum):
    """Report artifacts produced by a finished analysis job."""

    AI_REPORT = "ai_report"
    SIMILARITY_REPORT = "similarity_report"


# ── Failure reasons shown to the user ─────────
INVALID_KEY_ERROR_CODE = "InvalidKey"
INVALID_KEY_REASON = (
    "Please make sure your filename is in full english "
    "and doesn't contain any unicode characters!"
)
POLL_TIMEOUT_REASON = "Failed to generate report, try again later!"
REPORT_PROCESSING_REASON = "Failed to process report PDFs"
MISSING_JOB_ID_REASON = "Analysis service did not return a job identifier"

JOB_DONE_STATUS = "done"
