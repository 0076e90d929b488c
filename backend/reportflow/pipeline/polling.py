"""
PollingSupervisor — waits for analysis jobs and finalizes their orders.

One asyncio task per order:

    poll at t=0, interval, 2*interval, ... until done or max wait

A tick that finds the budget exhausted fails the order with the
timeout reason.  A tick that finds the job done runs the artifact
post-processor for both reports and completes the order.  Status
query errors are logged and the next tick tries again.

Ticks never overlap: the loop sleeps until the next scheduled tick
after the current one has returned, so slow status queries skip a
slot instead of pushing the schedule back.  A status query may run at
most until max wait + one interval, and a tick whose query ended past
max wait declares the timeout immediately.  The poll state is
released from the registry before finalization starts, so a finished
order can never be finalized twice by its own loop.
"""

from __future__ import annotations

import asyncio
import math
import time
import uuid
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from reportflow.clients.jobs import JobStatus, JobStatusClient
from reportflow.core.constants import (
    POLL_TIMEOUT_REASON,
    REPORT_PROCESSING_REASON,
    ArtifactKind,
)
from reportflow.core.logging import get_logger
from reportflow.pipeline.errors import PipelineError, PollTimeoutError
from reportflow.pipeline.finalize import OrderFinalizer
from reportflow.processing.artifacts import ArtifactPostProcessor

logger = get_logger(__name__)


@dataclass
class PollState:
    """In-memory bookkeeping for one in-flight job."""

    job_id: str
    token: str
    order_id: uuid.UUID
    started_at: float
    task: asyncio.Task | None = field(default=None, repr=False)
    ticks: int = 0


class PollingSupervisor:
    """Owns every polling loop in the process."""

    def __init__(
        self,
        jobs: JobStatusClient,
        post_processor: ArtifactPostProcessor,
        finalizer: OrderFinalizer,
        *,
        interval_seconds: float = 60.0,
        max_wait_seconds: float = 360.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.jobs = jobs
        self.post_processor = post_processor
        self.finalizer = finalizer
        self.interval_seconds = interval_seconds
        self.max_wait_seconds = max_wait_seconds
        self._clock = clock
        self._sleep = sleep
        self._states: dict[uuid.UUID, PollState] = {}

    # ── Registry ──────────────────────────────────

    def active_jobs(self) -> list[PollState]:
        return list(self._states.values())

    def is_polling(self, order_id: uuid.UUID) -> bool:
        return order_id in self._states

    def start_polling(self, job_id: str, token: str, order_id: uuid.UUID) -> PollState:
        """Start the loop for `order_id`; an already polled order keeps its loop."""
        existing = self._states.get(order_id)
        if existing is not None:
            logger.warning(
                "Order already being polled",
                order_id=str(order_id),
                job_id=existing.job_id,
            )
            return existing

        state = PollState(
            job_id=job_id,
            token=token,
            order_id=order_id,
            started_at=self._clock(),
        )
        self._states[order_id] = state
        state.task = asyncio.create_task(
            self._run(state),
            name=f"poll-{order_id}",
        )
        logger.info("Polling started", order_id=str(order_id), job_id=job_id)
        return state

    def cancel(self, order_id: uuid.UUID) -> bool:
        """Stop polling `order_id` without finalizing it."""
        state = self._states.pop(order_id, None)
        if state is None:
            return False
        if state.task is not None and state.task is not asyncio.current_task():
            state.task.cancel()
        return True

    async def shutdown(self) -> None:
        """Cancel every loop and wait for them to unwind."""
        tasks = [s.task for s in self._states.values() if s.task is not None]
        for order_id in list(self._states):
            self.cancel(order_id)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("Polling loops cancelled", count=len(tasks))

    def _release(self, state: PollState) -> None:
        if self._states.get(state.order_id) is state:
            del self._states[state.order_id]

    # ── Loop ──────────────────────────────────────

    async def _run(self, state: PollState) -> None:
        log = logger.bind(order_id=str(state.order_id), job_id=state.job_id)
        try:
            while True:
                if await self._tick(state):
                    return
                await self._sleep(self._until_next_tick(state))
        except PollTimeoutError as exc:
            self._release(state)
            log.warning("Polling timed out", elapsed_seconds=round(exc.elapsed_seconds, 1))
            await self.finalizer.fail(state.order_id, POLL_TIMEOUT_REASON)
        except asyncio.CancelledError:
            log.info("Polling cancelled")
            raise
        except Exception as exc:
            # Unexpected: fail rather than leave the order pending
            self._release(state)
            log.exception("Polling loop crashed", error=str(exc))
            await self.finalizer.fail(state.order_id, POLL_TIMEOUT_REASON)
        finally:
            self._release(state)

    def _elapsed(self, state: PollState) -> float:
        return self._clock() - state.started_at

    def _until_next_tick(self, state: PollState) -> float:
        """Seconds until the next slot on the started_at + n*interval grid."""
        elapsed = self._elapsed(state)
        next_slot = (math.floor(elapsed / self.interval_seconds) + 1) * self.interval_seconds
        return next_slot - elapsed

    def _check_budget(self, state: PollState) -> None:
        elapsed = self._elapsed(state)
        if elapsed > self.max_wait_seconds:
            raise PollTimeoutError(
                f"Job {state.job_id} not done after {elapsed:.0f}s",
                order_id=str(state.order_id),
                elapsed_seconds=elapsed,
            )

    async def _tick(self, state: PollState) -> bool:
        """One poll. Returns True once the order has been finalized."""
        state.ticks += 1
        self._check_budget(state)

        query_budget = self.max_wait_seconds + self.interval_seconds - self._elapsed(state)
        try:
            job = await asyncio.wait_for(
                self.jobs.get_status(state.job_id, state.token),
                timeout=query_budget,
            )
        except (PipelineError, asyncio.TimeoutError) as exc:
            logger.warning(
                "Polling error",
                order_id=str(state.order_id),
                job_id=state.job_id,
                error=str(exc) or type(exc).__name__,
            )
            job = None

        if job is None or not job.is_done:
            self._check_budget(state)
            logger.debug(
                "Job not done yet",
                order_id=str(state.order_id),
                status=job.status if job else None,
                tick=state.ticks,
            )
            return False

        self._release(state)
        await self._complete(state, job)
        return True

    async def _complete(self, state: PollState, job: JobStatus) -> None:
        log = logger.bind(order_id=str(state.order_id), job_id=state.job_id)
        try:
            ai_report_url = await self.post_processor.process(
                job.ai_report_url, ArtifactKind.AI_REPORT.value
            )
            similarity_report_url = await self.post_processor.process(
                job.similarity_report_url, ArtifactKind.SIMILARITY_REPORT.value
            )
        except Exception as exc:
            log.error("Error processing report PDFs", error=str(exc))
            await self.finalizer.fail(state.order_id, REPORT_PROCESSING_REASON)
            return

        await self.finalizer.complete(
            state.order_id,
            ai_report_url=ai_report_url,
            similarity_report_url=similarity_report_url,
        )
        log.info("Reports processed and order updated")
