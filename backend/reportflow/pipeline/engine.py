"""
OrderHandler — runs one newly inserted order through the workflow.

    fetch_token → download_source → upload_to_storage
        → fetch_cookie → request_analysis → hand off to polling

Responsibilities:
    - Execute each step in order with timing and logging
    - Stop at the first failure and translate it into a user-facing reason
    - Finalize failed orders (which refunds the owner)
    - Hand successful submissions to the PollingSupervisor

Nothing raised inside a workflow escapes handle(): one order's failure
never reaches the listener or other orders.
"""

from __future__ import annotations

import time
import traceback
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from reportflow.api.schemas.orders import OrderDocument
from reportflow.core.constants import (
    INVALID_KEY_REASON,
    MISSING_JOB_ID_REASON,
    WorkflowStatus,
)
from reportflow.core.logging import get_logger
from reportflow.pipeline.context import OrderContext
from reportflow.pipeline.errors import PipelineError, SubmissionError
from reportflow.pipeline.finalize import OrderFinalizer
from reportflow.pipeline.polling import PollingSupervisor
from reportflow.pipeline.step import PipelineStep


@dataclass
class WorkflowResult:
    """Outcome of one handler run."""

    order_id: str
    status: str                     # WorkflowStatus value
    started_at: datetime | None = None
    completed_at: datetime | None = None
    total_duration_ms: int = 0
    steps_completed: int = 0
    total_steps: int = 0
    job_id: str | None = None
    failure_reason: str | None = None
    step_results: list[dict[str, Any]] = field(default_factory=list)


def failure_reason_for(exc: BaseException) -> str:
    """
    Human-readable reason stored on a failed order.

    An InvalidKey rejection from storage means the filename has
    non-ASCII characters; any other service error code is shown as is,
    falling back to the exception message.
    """
    if isinstance(exc, SubmissionError):
        if exc.is_invalid_key:
            return INVALID_KEY_REASON
        if exc.service_error:
            return exc.service_error
    return str(exc) or exc.__class__.__name__


class OrderHandler:
    """
    Runs the submission steps for one order.

    Usage::

        handler = OrderHandler(steps, finalizer, supervisor)
        result = await handler.handle(order)
    """

    def __init__(
        self,
        steps: list[PipelineStep],
        finalizer: OrderFinalizer,
        supervisor: PollingSupervisor,
    ) -> None:
        self.steps = steps
        self.finalizer = finalizer
        self.supervisor = supervisor
        self.logger = get_logger("pipeline.handler")

    async def handle(self, order: OrderDocument) -> WorkflowResult:
        started_at = datetime.now(timezone.utc)
        started = time.monotonic()
        ctx = OrderContext(order=order)

        log = self.logger.bind(
            order_id=ctx.order_id,
            filename=ctx.filename,
            payment_source=order.payment_source,
        )
        log.info("New order detected", total_steps=len(self.steps))

        try:
            await self._run_steps(ctx, log)
        except Exception as exc:
            reason = failure_reason_for(exc)
            if isinstance(exc, PipelineError):
                log.error(
                    "Error handling order",
                    error=str(exc),
                    step_name=exc.step_name,
                    details=exc.details,
                )
            else:
                log.exception("Unexpected error handling order", error=str(exc))
            await self.finalizer.fail(order.id, reason)
            return self._result(ctx, WorkflowStatus.FAILED, started_at, started, reason)

        if ctx.job_id is None:
            log.warning("No job identifier in analysis response")
            await self.finalizer.fail(order.id, MISSING_JOB_ID_REASON)
            return self._result(
                ctx, WorkflowStatus.FAILED, started_at, started, MISSING_JOB_ID_REASON
            )

        # token is set by fetch_token, which ran before any job could exist
        self.supervisor.start_polling(ctx.job_id, ctx.token or "", order.id)
        log.info("Handed off to polling", job_id=ctx.job_id, summary=ctx.to_summary_dict())
        return self._result(ctx, WorkflowStatus.POLLING, started_at, started)

    async def _run_steps(self, ctx: OrderContext, log) -> None:
        for index, step in enumerate(self.steps):
            step_log = log.bind(step_name=step.name, step_index=index + 1)
            step_log.info(f"Step {index + 1}/{len(self.steps)}: {step.description}")
            step_started = step._now()

            try:
                result = await step.execute(ctx)
            except PipelineError as exc:
                exc.order_id = exc.order_id or ctx.order_id
                exc.step_name = exc.step_name or step.name
                ctx.step_results.append(step._failure(step_started, str(exc)))
                raise
            except Exception as exc:
                ctx.step_results.append(step._failure(
                    step_started,
                    f"Unexpected: {exc}",
                    metadata={"traceback": traceback.format_exc()},
                ))
                raise

            ctx.step_results.append(result)
            step_log.info("Step completed", duration_ms=result.duration_ms)

    def _result(
        self,
        ctx: OrderContext,
        status: WorkflowStatus,
        started_at: datetime,
        started: float,
        failure_reason: str | None = None,
    ) -> WorkflowResult:
        return WorkflowResult(
            order_id=ctx.order_id,
            status=status,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc),
            total_duration_ms=int((time.monotonic() - started) * 1000),
            steps_completed=sum(1 for r in ctx.step_results if r.error is None),
            total_steps=len(self.steps),
            job_id=ctx.job_id,
            failure_reason=failure_reason,
            step_results=[r.to_dict() for r in ctx.step_results],
        )
