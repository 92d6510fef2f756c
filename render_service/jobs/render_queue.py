"""In-process render queue: priority tiers, a bounded worker pool, retries.

All queue state lives on one RenderQueue instance and is only mutated from
the event loop at synchronous points (submission, dispatch, job completion),
so no locks are needed. Each dispatched job runs as its own asyncio task; the
dispatch loop never waits on a job.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Set, Union

from pydantic import ValidationError

from render_service.jobs.dispatcher import JobDispatcher
from render_service.jobs.errors import (
    InvalidJobInputError,
    JobCancelledError,
    JobSubmissionError,
    JobTimeoutError,
)
from render_service.jobs.models import (
    JobInput,
    JobOutput,
    JobPriority,
    JobRecord,
    JobStatus,
    JobType,
    QueueStatus,
    utcnow,
)
from render_service.jobs.priority_queues import PriorityQueueSet
from render_service.jobs.progress import (
    EVENT_CANCELLED,
    EVENT_COMPLETED,
    EVENT_PROGRESS,
    EVENT_QUEUED,
    ProgressPublisher,
)
from render_service.jobs.retry import FailureHandler, describe_error
from render_service.jobs.worker_pool import WorkerPool
from render_service.processors.base import ProcessingContext
from render_service.processors.registry import ProcessorRegistry
from render_service.rendering.renderer import Renderer

logger = logging.getLogger(__name__)


def _summarize_validation(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in error.errors()
    )


class RenderQueue(JobDispatcher):
    """Priority render queue backed by a WorkerPool."""

    def __init__(
        self,
        processors: ProcessorRegistry,
        renderer: Renderer,
        publisher: Optional[ProgressPublisher] = None,
        pool: Optional[WorkerPool] = None,
        max_retries: int = 3,
        dispatch_interval: float = 1.0,
        job_timeout: Optional[float] = None,
        stage_time_scale: float = 1.0,
        job_retention_hours: float = 24,
    ):
        self._processors = processors
        self._renderer = renderer
        self._publisher = publisher or ProgressPublisher()
        self._pool = pool or WorkerPool(size=3)
        self._queues = PriorityQueueSet()
        self._failures = FailureHandler(self._queues, self._publisher)
        self._max_retries = max_retries
        self._dispatch_interval = dispatch_interval
        self._job_timeout = job_timeout
        self._stage_time_scale = stage_time_scale
        self._job_retention = timedelta(hours=job_retention_hours)

        self._jobs: Dict[str, JobRecord] = {}
        self._cancel_requested: Set[str] = set()
        self._job_tasks: Dict[str, asyncio.Task] = {}
        self._wake = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self._running = False

    @property
    def pool(self) -> WorkerPool:
        return self._pool

    @property
    def queues(self) -> PriorityQueueSet:
        return self._queues

    @property
    def publisher(self) -> ProgressPublisher:
        return self._publisher

    @property
    def is_running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def add_job(
        self,
        owner_id: str,
        channel_id: str,
        project_id: str,
        sequence_id: str,
        job_type: Union[JobType, str],
        priority: Union[JobPriority, str],
        input_data: Union[JobInput, Dict[str, Any]],
        max_retries: Optional[int] = None,
    ) -> str:
        try:
            job = JobRecord(
                owner_id=owner_id,
                channel_id=channel_id,
                project_id=project_id,
                sequence_id=sequence_id,
                type=job_type,
                priority=priority,
                input_data=input_data,
                max_retries=self._max_retries if max_retries is None else max_retries,
            )
        except ValidationError as e:
            raise JobSubmissionError(_summarize_validation(e)) from e

        self._jobs[job.id] = job
        self._queues.enqueue(job)
        logger.info(f"Render job {job.id} added to {job.priority.value} priority queue")
        self._publisher.publish(job, EVENT_QUEUED)

        if self._running:
            self._dispatch_pending()
        return job.id

    async def get_job_status(self, job_id: str) -> Optional[JobRecord]:
        job = self._jobs.get(job_id)
        return job.model_copy(deep=True) if job is not None else None

    async def cancel_job(self, job_id: str) -> bool:
        job = self._jobs.get(job_id)
        if job is None or job.is_terminal or job_id in self._cancel_requested:
            return False

        if job.status == JobStatus.QUEUED:
            self._queues.remove(job_id)
            self._finish_cancelled(job)
            return True

        # Processing: honored at the processor's next progress report.
        self._cancel_requested.add(job_id)
        logger.info(f"Cancellation requested for processing job {job_id}")
        return True

    async def get_queue_status(self) -> QueueStatus:
        return QueueStatus(
            queues=self._queues.depths(),
            active_jobs=self._pool.active_count,
            available_workers=self._pool.idle_count,
            total_workers=self._pool.size,
        )

    async def list_owner_jobs(self, owner_id: str, limit: int = 10) -> List[JobRecord]:
        """Most recent jobs submitted by one owner, newest first."""
        jobs = [job for job in self._jobs.values() if job.owner_id == owner_id]
        jobs.sort(key=lambda job: job.created_at, reverse=True)
        return [job.model_copy(deep=True) for job in jobs[:limit]]

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """Forget terminal jobs that finished more than the retention period ago.

        Returns the number of records dropped. Queued and processing jobs are
        never touched.
        """
        cutoff = (now or utcnow()) - self._job_retention
        expired = [
            job_id
            for job_id, job in self._jobs.items()
            if job.is_terminal and job.completed_at is not None and job.completed_at <= cutoff
        ]
        for job_id in expired:
            del self._jobs[job_id]
        if expired:
            logger.info(f"Purged {len(expired)} finished job records")
        return len(expired)

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._dispatch_loop())
        logger.info(f"Render queue started with {self._pool.size} workers")

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        in_flight = list(self._job_tasks.values())
        for task in in_flight:
            task.cancel()
        if in_flight:
            await asyncio.gather(*in_flight, return_exceptions=True)
        await self._publisher.drain()
        logger.info("Render queue stopped")

    def notify(self) -> None:
        """Wake the dispatch loop ahead of its next tick."""
        self._wake.set()

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def _dispatch_loop(self) -> None:
        while self._running:
            self._wake.clear()
            try:
                self._dispatch_pending()
            except Exception:
                logger.exception("Render queue dispatch pass failed")
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self._dispatch_interval)
            except asyncio.TimeoutError:
                continue

    def _dispatch_pending(self) -> int:
        """Bind queued jobs to idle slots until one of them runs out."""
        dispatched = 0
        while True:
            slot = self._pool.acquire_idle()
            if slot is None:
                break
            job = self._queues.dequeue_next()
            if job is None:
                break

            self._pool.bind(slot.id, job.id)
            job.status = JobStatus.PROCESSING
            job.progress = 0
            job.started_at = utcnow()
            logger.info(
                f"Worker {slot.id} started processing job {job.id} "
                f"(attempt {job.retry_count + 1}/{job.max_retries})"
            )
            self._publisher.publish(job, EVENT_PROGRESS)

            self._job_tasks[job.id] = asyncio.create_task(
                self._run_job(job, slot.id), name=f"render-{job.id}"
            )
            dispatched += 1
        return dispatched

    async def _run_job(self, job: JobRecord, slot_id: str) -> None:
        # The slot is released before any outcome is published, so listeners
        # never see a job both bound and queued or terminal.
        try:
            output = await self._process_job(job)
        except asyncio.CancelledError:
            # Queue shutdown interrupted the attempt.
            self._release(job, slot_id)
            self._requeue_interrupted(job)
            raise
        except Exception as e:
            self._release(job, slot_id)
            self._settle_failure(job, e)
        else:
            self._release(job, slot_id)
            self._settle_success(job, output)
        finally:
            self._release(job, slot_id)

    async def _process_job(self, job: JobRecord) -> JobOutput:
        ctx = ProcessingContext(
            job,
            self._publisher,
            self._renderer,
            time_scale=self._stage_time_scale,
            is_cancelled=lambda: job.id in self._cancel_requested,
        )
        processor = self._processors.get(job.type)
        if processor is None:
            raise InvalidJobInputError(job.id, f"no processor registered for {job.type.value}")
        return await self._run_attempt(processor.process(job, ctx), job)

    async def _run_attempt(self, attempt, job: JobRecord) -> JobOutput:
        if self._job_timeout is None:
            return await attempt
        try:
            return await asyncio.wait_for(attempt, timeout=self._job_timeout)
        except asyncio.TimeoutError:
            raise JobTimeoutError(job.id, self._job_timeout)

    def _release(self, job: JobRecord, slot_id: str) -> None:
        if self._job_tasks.pop(job.id, None) is None:
            return
        self._pool.release(slot_id)
        self.notify()

    # ------------------------------------------------------------------
    # Outcomes
    # ------------------------------------------------------------------

    def _settle_success(self, job: JobRecord, output: JobOutput) -> None:
        if job.id in self._cancel_requested:
            self._finish_cancelled(job)
        else:
            self._complete(job, output)

    def _settle_failure(self, job: JobRecord, error: Exception) -> None:
        if isinstance(error, JobCancelledError):
            self._finish_cancelled(job)
        elif job.id in self._cancel_requested:
            logger.warning(
                f"Job {job.id} failed after cancellation was requested "
                f"(attempt {job.retry_count + 1}/{job.max_retries}): {describe_error(error)}"
            )
            self._finish_cancelled(job)
        else:
            self._failures.handle(job, error)

    def _requeue_interrupted(self, job: JobRecord) -> None:
        if job.status != JobStatus.PROCESSING:
            return
        if job.id in self._cancel_requested:
            self._finish_cancelled(job)
            return
        job.status = JobStatus.QUEUED
        job.progress = 0
        job.started_at = None
        self._queues.requeue_front(job)

    def _complete(self, job: JobRecord, output: JobOutput) -> None:
        job.output = output
        job.progress = 100
        job.status = JobStatus.COMPLETED
        job.completed_at = utcnow()
        logger.info(f"Job {job.id} completed successfully")
        self._publisher.publish(job, EVENT_COMPLETED)

    def _finish_cancelled(self, job: JobRecord) -> None:
        self._cancel_requested.discard(job.id)
        job.status = JobStatus.CANCELLED
        job.completed_at = utcnow()
        logger.info(f"Job {job.id} cancelled")
        self._publisher.publish(job, EVENT_CANCELLED)
