"""Fixed-size pool of worker slots, growable under backlog."""

import itertools
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from render_service.jobs.errors import WorkerPoolError


@dataclass
class WorkerSlot:
    """One execution slot. Holds at most one job at a time."""
    id: str
    dynamic: bool = False
    job_id: Optional[str] = None
    idle_since: float = field(default_factory=time.monotonic)

    @property
    def is_idle(self) -> bool:
        return self.job_id is None


class WorkerPool:
    """Tracks slots and their job bindings.

    - Starts with `size` static slots that are never removed
    - grow() adds dynamic slots up to `max_size`
    - shrink_idle() drops dynamic slots that have been idle too long
    """

    def __init__(
        self,
        size: int = 3,
        max_size: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if size < 1:
            raise ValueError("Worker pool needs at least one slot")
        self._min_size = size
        self._max_size = max(max_size or size, size)
        self._clock = clock
        self._slots: Dict[str, WorkerSlot] = {}
        self._bindings: Dict[str, str] = {}  # job_id -> slot_id
        self._dynamic_ids = itertools.count()
        for i in range(size):
            slot_id = f"worker-{i}"
            self._slots[slot_id] = WorkerSlot(id=slot_id, idle_since=clock())

    @property
    def min_size(self) -> int:
        return self._min_size

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def size(self) -> int:
        return len(self._slots)

    @property
    def idle_count(self) -> int:
        return sum(1 for slot in self._slots.values() if slot.is_idle)

    @property
    def active_count(self) -> int:
        return len(self._bindings)

    def acquire_idle(self) -> Optional[WorkerSlot]:
        """Return the first idle slot without binding it."""
        for slot in self._slots.values():
            if slot.is_idle:
                return slot
        return None

    def bind(self, slot_id: str, job_id: str) -> None:
        slot = self._slots.get(slot_id)
        if slot is None:
            raise WorkerPoolError(f"Unknown worker slot: {slot_id}")
        if not slot.is_idle:
            raise WorkerPoolError(f"Worker {slot_id} is already running job {slot.job_id}")
        if job_id in self._bindings:
            raise WorkerPoolError(
                f"Job {job_id} is already bound to worker {self._bindings[job_id]}"
            )
        slot.job_id = job_id
        self._bindings[job_id] = slot_id

    def release(self, slot_id: str) -> None:
        """Mark a slot idle. Releasing an idle or removed slot is a no-op."""
        slot = self._slots.get(slot_id)
        if slot is None or slot.job_id is None:
            return
        self._bindings.pop(slot.job_id, None)
        slot.job_id = None
        slot.idle_since = self._clock()

    def slot_for(self, job_id: str) -> Optional[str]:
        return self._bindings.get(job_id)

    def bindings(self) -> Dict[str, str]:
        return dict(self._bindings)

    def grow(self, count: int) -> List[str]:
        """Add up to `count` dynamic slots without exceeding max_size."""
        count = min(count, self._max_size - self.size)
        added = []
        for _ in range(max(count, 0)):
            slot_id = f"dynamic-worker-{next(self._dynamic_ids)}"
            self._slots[slot_id] = WorkerSlot(id=slot_id, dynamic=True, idle_since=self._clock())
            added.append(slot_id)
        return added

    def shrink_idle(self, idle_seconds: float) -> List[str]:
        """Remove dynamic slots idle for at least `idle_seconds`."""
        now = self._clock()
        removed = []
        for slot in list(self._slots.values()):
            if self.size <= self._min_size:
                break
            if slot.dynamic and slot.is_idle and now - slot.idle_since >= idle_seconds:
                del self._slots[slot.id]
                removed.append(slot.id)
        return removed
