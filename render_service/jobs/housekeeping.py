"""Periodic cleanup of finished job records, status snapshots and outputs."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from render_service.jobs.render_queue import RenderQueue
from render_service.storage.output_store import OutputStore

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    jobs: int = 0
    snapshots: int = 0
    outputs: int = 0


class Housekeeper:
    """Keeps long-running queues from accumulating finished work."""

    def __init__(
        self,
        queue: RenderQueue,
        output_store: Optional[OutputStore] = None,
        interval: float = 3600.0,
    ):
        self._queue = queue
        self._output_store = output_store
        self._interval = interval
        self._task: Optional[asyncio.Task] = None
        self._running = False

    def sweep(self, now: Optional[datetime] = None) -> SweepReport:
        report = SweepReport(
            jobs=self._queue.purge_expired(now),
            snapshots=self._queue.publisher.cleanup_expired(),
        )
        if self._output_store is not None:
            report.outputs = self._output_store.cleanup_expired()
        logger.debug(
            f"Housekeeping sweep: jobs={report.jobs} snapshots={report.snapshots} "
            f"outputs={report.outputs}"
        )
        return report

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._sweep_loop())

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _sweep_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self._interval)
            try:
                self.sweep()
            except Exception:
                logger.exception("Housekeeping sweep failed")
