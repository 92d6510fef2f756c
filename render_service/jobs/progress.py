"""Progress publisher: fans job status changes out to listeners.

Listeners are scoped to a job owner (or to every owner) and may be plain
callables or coroutine functions. Publishing never blocks and never raises
into the caller; a failing listener is logged and otherwise ignored, and the
latest snapshot stays available through latest() for poll-based clients.
"""

import asyncio
import inspect
import logging
import time
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple, Union

from pydantic import BaseModel, Field

from render_service.jobs.models import JobOutput, JobRecord, JobStatus, utcnow
from render_service.storage.status_store import TTLStore

logger = logging.getLogger(__name__)

EVENT_QUEUED = "render:queued"
EVENT_PROGRESS = "render:progress"
EVENT_COMPLETED = "render:completed"
EVENT_FAILED = "render:failed"
EVENT_CANCELLED = "render:cancelled"


class ProgressEvent(BaseModel):
    event: str
    job_id: str
    owner_id: str
    status: JobStatus
    progress: int
    retry_count: int = 0
    output: Optional[JobOutput] = None
    error: Optional[str] = None
    timestamp: datetime = Field(default_factory=utcnow)


class StatusSnapshot(BaseModel):
    job_id: str
    status: JobStatus
    progress: int
    updated_at: datetime


Listener = Callable[[ProgressEvent], Union[None, Awaitable[None]]]


class ProgressPublisher:
    """Fire-and-forget broadcaster for job status and progress."""

    def __init__(self, status_ttl_hours: float = 24, clock: Callable[[], float] = time.monotonic):
        self._listeners: List[Tuple[Optional[str], Listener]] = []
        self._snapshots: TTLStore[StatusSnapshot] = TTLStore(status_ttl_hours * 3600, clock=clock)
        self._pending: Set[asyncio.Task] = set()

    def subscribe(self, listener: Listener, owner_id: Optional[str] = None) -> Callable[[], None]:
        """Register a listener. Returns a function that unsubscribes it.

        owner_id=None receives events for every owner.
        """
        entry = (owner_id, listener)
        self._listeners.append(entry)

        def unsubscribe() -> None:
            if entry in self._listeners:
                self._listeners.remove(entry)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def publish(self, job: JobRecord, event: str = EVENT_PROGRESS) -> ProgressEvent:
        """Record a snapshot of `job` and broadcast it."""
        message = ProgressEvent(
            event=event,
            job_id=job.id,
            owner_id=job.owner_id,
            status=job.status,
            progress=job.progress,
            retry_count=job.retry_count,
            output=job.output if event == EVENT_COMPLETED else None,
            error=job.error_message if event == EVENT_FAILED else None,
        )
        self._snapshots.set(
            job.id,
            StatusSnapshot(
                job_id=job.id,
                status=job.status,
                progress=job.progress,
                updated_at=message.timestamp,
            ),
        )
        for owner_id, listener in list(self._listeners):
            if owner_id is not None and owner_id != job.owner_id:
                continue
            self._deliver(listener, message)
        return message

    def latest(self, job_id: str) -> Optional[StatusSnapshot]:
        return self._snapshots.get(job_id)

    def cleanup_expired(self) -> int:
        return self._snapshots.cleanup_expired()

    async def drain(self) -> None:
        """Wait for in-flight async deliveries (used on shutdown and in tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _deliver(self, listener: Listener, message: ProgressEvent) -> None:
        try:
            result = listener(message)
        except Exception as e:
            logger.warning(f"Progress listener failed for job {message.job_id}: {e}")
            return

        if not inspect.isawaitable(result):
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            # No running loop to schedule on; drop the delivery.
            if inspect.iscoroutine(result):
                result.close()
            logger.warning(f"Progress delivery dropped for job {message.job_id}: {e}")
            return

        task = asyncio.ensure_future(result, loop=loop)
        self._pending.add(task)
        task.add_done_callback(lambda t: self._on_delivered(t, message))

    def _on_delivered(self, task: asyncio.Task, message: ProgressEvent) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning(f"Progress listener failed for job {message.job_id}: {exc}")


def event_payload(message: ProgressEvent) -> Dict[str, Any]:
    """JSON-ready payload for push channels."""
    return message.model_dump(mode="json", exclude_none=True)
