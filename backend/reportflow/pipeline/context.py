"""
OrderContext — mutable state object carried through every workflow step.

Each step reads what earlier steps produced and writes its own output
(token, stored file, job ID) for the steps that follow.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from reportflow.api.schemas.orders import OrderDocument


# ═══════════════════════════════════════════════════════════
#  StepResult
# ═══════════════════════════════════════════════════════════

@dataclass
class StepResult:
    """Outcome of a single workflow step execution."""

    step_name: str
    status: str                     # StepStatus value
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int = 0
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serialise for logging."""
        return {
            "step_name": self.step_name,
            "status": self.status,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_ms": self.duration_ms,
            "error": self.error,
            "metadata": self.metadata,
        }


# ═══════════════════════════════════════════════════════════
#  OrderContext
# ═══════════════════════════════════════════════════════════

@dataclass
class OrderContext:
    """
    Carries all state between the steps of one order's workflow.

    Populated progressively: credentials first, then the stored
    file, then the analysis job identifier.
    """

    order: OrderDocument

    # ─── Credentials ───────────────────────────────────
    token: str | None = None
    cookie: str | None = None

    # ─── Source file ───────────────────────────────────
    file_content: bytes | None = None

    # ─── Storage ───────────────────────────────────────
    storage_key: str | None = None
    public_file_url: str | None = None

    # ─── Analysis ──────────────────────────────────────
    job_id: str | None = None

    # ─── Execution tracking ────────────────────────────
    step_results: list[StepResult] = field(default_factory=list)

    @property
    def order_id(self) -> str:
        return str(self.order.id)

    @property
    def filename(self) -> str:
        return self.order.upload_filename

    def to_summary_dict(self) -> dict[str, Any]:
        """Compact summary for logging (no secrets)."""
        return {
            "order_id": self.order_id,
            "filename": self.filename,
            "payment_source": self.order.payment_source,
            "storage_key": self.storage_key,
            "public_file_url": self.public_file_url,
            "job_id": self.job_id,
            "steps_completed": len(self.step_results),
        }
