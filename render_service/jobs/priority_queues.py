"""Four-tier priority queue of queued render jobs."""

from collections import deque
from typing import Deque, Dict, Optional

from render_service.jobs.models import PRIORITY_ORDER, JobPriority, JobRecord


class PriorityQueueSet:
    """One FIFO list per priority tier.

    dequeue_next() always drains urgent before high, high before normal and
    normal before low. Lower tiers can starve under sustained high-tier load;
    that is the intended ordering, not a bug.
    """

    def __init__(self):
        self._tiers: Dict[JobPriority, Deque[JobRecord]] = {
            priority: deque() for priority in PRIORITY_ORDER
        }

    def enqueue(self, job: JobRecord) -> None:
        self._tiers[job.priority].append(job)

    def requeue_front(self, job: JobRecord) -> None:
        """Put a retried job at the head of its own tier (no promotion)."""
        self._tiers[job.priority].appendleft(job)

    def dequeue_next(self) -> Optional[JobRecord]:
        for priority in PRIORITY_ORDER:
            tier = self._tiers[priority]
            if tier:
                return tier.popleft()
        return None

    def remove(self, job_id: str) -> Optional[JobRecord]:
        """Remove a queued job by id. Returns the removed record, if any."""
        for tier in self._tiers.values():
            for job in tier:
                if job.id == job_id:
                    tier.remove(job)
                    return job
        return None

    def contains(self, job_id: str) -> bool:
        return any(job.id == job_id for tier in self._tiers.values() for job in tier)

    def depths(self) -> Dict[str, int]:
        return {priority.value: len(self._tiers[priority]) for priority in PRIORITY_ORDER}

    def __len__(self) -> int:
        return sum(len(tier) for tier in self._tiers.values())
