"""Base processor interface and the per-attempt processing context."""

import asyncio
from abc import ABC, abstractmethod
from typing import Callable

from render_service.jobs.errors import JobCancelledError
from render_service.jobs.models import JobOutput, JobRecord, JobType
from render_service.jobs.progress import EVENT_PROGRESS, ProgressPublisher
from render_service.rendering.renderer import Renderer


class ProcessingContext:
    """What a processor may touch while running one attempt of a job."""

    def __init__(
        self,
        job: JobRecord,
        publisher: ProgressPublisher,
        renderer: Renderer,
        time_scale: float = 1.0,
        is_cancelled: Callable[[], bool] = lambda: False,
    ):
        self.job = job
        self.renderer = renderer
        self._publisher = publisher
        self._time_scale = time_scale
        self._is_cancelled = is_cancelled

    def check_cancelled(self) -> None:
        if self._is_cancelled():
            raise JobCancelledError(self.job.id)

    def report(self, progress: float) -> None:
        """Publish a progress value. Never moves progress backwards."""
        self.check_cancelled()
        value = min(100, max(0, int(round(progress))))
        self.job.progress = max(self.job.progress, value)
        self._publisher.publish(self.job, EVENT_PROGRESS)

    async def pause(self, seconds: float) -> None:
        """Wait out a stage of simulated work."""
        await asyncio.sleep(seconds * self._time_scale)


class JobProcessor(ABC):
    """Abstract base class for job type strategies.

    To add a job type:
    1. Create a new .py file in render_service/processors/
    2. Subclass JobProcessor and set job_type
    3. Implement process()
    4. The registry auto-discovers it at startup

    Processors do not catch their own stage errors. Anything raised
    propagates to the queue, which hands it to the failure handler.
    """

    job_type: JobType

    @abstractmethod
    async def process(self, job: JobRecord, ctx: ProcessingContext) -> JobOutput:
        """Run every stage of one attempt and return the produced output."""
        ...

    async def render_output(
        self, job: JobRecord, ctx: ProcessingContext, preview: bool = False
    ) -> JobOutput:
        result = await ctx.renderer.render(job, preview=preview)
        thumbnail_path = await ctx.renderer.generate_thumbnail(job, result.path)
        return JobOutput(
            file_paths=[result.path],
            thumbnail_path=thumbnail_path,
            duration=result.duration,
            file_size=result.file_size,
        )
