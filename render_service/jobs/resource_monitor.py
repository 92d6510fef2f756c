"""Periodic pool sizing and memory pressure checks."""

import asyncio
import gc
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import psutil

from render_service.jobs.priority_queues import PriorityQueueSet
from render_service.jobs.worker_pool import WorkerPool

logger = logging.getLogger(__name__)


@dataclass
class MonitorReport:
    queued: int
    active: int
    workers: int
    added: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    rss_bytes: int = 0
    gc_requested: bool = False


class ResourceMonitor:
    """Grows the pool under backlog, trims idle dynamic slots, watches memory.

    Only aggregate queue and pool state is read; job records are never touched.
    """

    def __init__(
        self,
        pool: WorkerPool,
        queues: PriorityQueueSet,
        high_water: int = 10,
        growth_step: int = 2,
        idle_shrink_seconds: float = 300.0,
        memory_threshold_mb: int = 500,
        interval: float = 30.0,
        on_capacity_change: Optional[Callable[[], None]] = None,
        memory_probe: Optional[Callable[[], int]] = None,
        gc_hint: Callable[[], object] = gc.collect,
    ):
        self._pool = pool
        self._queues = queues
        self._high_water = high_water
        self._growth_step = growth_step
        self._idle_shrink_seconds = idle_shrink_seconds
        self._memory_threshold_bytes = memory_threshold_mb * 1024 * 1024
        self._interval = interval
        self._on_capacity_change = on_capacity_change
        if memory_probe is None:
            process = psutil.Process()
            memory_probe = lambda: process.memory_info().rss
        self._memory_probe = memory_probe
        self._gc_hint = gc_hint
        self._task: Optional[asyncio.Task] = None
        self._running = False

    def check(self) -> MonitorReport:
        report = MonitorReport(
            queued=len(self._queues),
            active=self._pool.active_count,
            workers=self._pool.size,
        )

        if report.queued > self._high_water and self._pool.size < self._pool.max_size:
            report.added = self._pool.grow(self._growth_step)
            if report.added:
                logger.info(
                    f"Added {len(report.added)} dynamic workers due to high load "
                    f"({report.queued} queued, {report.active} active)"
                )
                if self._on_capacity_change:
                    self._on_capacity_change()
        else:
            report.removed = self._pool.shrink_idle(self._idle_shrink_seconds)
            if report.removed:
                logger.info(f"Removed {len(report.removed)} idle dynamic workers")

        report.rss_bytes = self._memory_probe()
        if report.rss_bytes > self._memory_threshold_bytes:
            logger.warning(
                f"High memory usage detected ({report.rss_bytes // (1024 * 1024)} MB), "
                "requesting garbage collection"
            )
            self._gc_hint()
            report.gc_requested = True

        logger.debug(
            f"Queue status: queues={self._queues.depths()} active={report.active} "
            f"available={self._pool.idle_count} workers={self._pool.size}"
        )
        return report

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._monitor_loop())

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _monitor_loop(self) -> None:
        while self._running:
            try:
                self.check()
            except Exception:
                logger.exception("Resource monitor check failed")
            await asyncio.sleep(self._interval)
