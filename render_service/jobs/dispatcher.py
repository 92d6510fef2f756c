"""Job dispatcher interface."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Union

from render_service.jobs.models import JobInput, JobPriority, JobRecord, JobType, QueueStatus


class JobDispatcher(ABC):
    """Abstract interface the HTTP layer and editor bridge talk to."""

    @abstractmethod
    async def add_job(
        self,
        owner_id: str,
        channel_id: str,
        project_id: str,
        sequence_id: str,
        job_type: Union[JobType, str],
        priority: Union[JobPriority, str],
        input_data: Union[JobInput, Dict[str, Any]],
    ) -> str:
        """Validate and enqueue a job. Returns job_id."""
        ...

    @abstractmethod
    async def get_job_status(self, job_id: str) -> Optional[JobRecord]:
        """Get current state of a job."""
        ...

    @abstractmethod
    async def cancel_job(self, job_id: str) -> bool:
        """Cancel a queued or processing job. False if unknown or already finished."""
        ...

    @abstractmethod
    async def get_queue_status(self) -> QueueStatus:
        """Queue depths per tier plus worker usage."""
        ...

    @abstractmethod
    async def start(self) -> None:
        """Start the dispatcher (e.g., start the dispatch loop)."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Stop the dispatcher gracefully."""
        ...
