"""
PipelineStep — abstract base class for all order workflow steps.

The order handler calls execute() in sequence and records timing and
logging.  Steps only implement the business logic: read what earlier
steps left on the OrderContext, write their own output, and raise a
PipelineError subclass on failure.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any

from reportflow.core.constants import StepStatus
from reportflow.pipeline.context import OrderContext, StepResult


class PipelineStep(ABC):
    """
    Base class for every workflow step.

    Subclasses set `name` (e.g. "fetch_token") and `description`, and
    implement execute(ctx).
    """

    name: str = "unnamed_step"
    description: str = "No description"

    @abstractmethod
    async def execute(self, ctx: OrderContext) -> StepResult:
        """Run the step against `ctx` and return its StepResult."""
        ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name}>"

    # ─── Result builders ───────────────────────────────

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)

    def _finish(
        self,
        started_at: datetime,
        status: StepStatus,
        error: str | None,
        metadata: dict[str, Any] | None,
    ) -> StepResult:
        completed_at = self._now()
        return StepResult(
            step_name=self.name,
            status=status,
            started_at=started_at,
            completed_at=completed_at,
            duration_ms=int((completed_at - started_at).total_seconds() * 1000),
            error=error,
            metadata=metadata or {},
        )

    def _success(self, started_at: datetime, metadata: dict[str, Any] | None = None) -> StepResult:
        return self._finish(started_at, StepStatus.COMPLETED, None, metadata)

    def _failure(
        self,
        started_at: datetime,
        error: str,
        metadata: dict[str, Any] | None = None,
    ) -> StepResult:
        return self._finish(started_at, StepStatus.FAILED, error, metadata)
