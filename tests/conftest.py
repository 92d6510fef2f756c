import asyncio
from typing import Dict, List, Optional

import pytest

from render_service.jobs.models import JobOutput, JobRecord, JobStatus, JobType
from render_service.jobs.progress import ProgressPublisher
from render_service.jobs.render_queue import RenderQueue
from render_service.jobs.worker_pool import WorkerPool
from render_service.processors.base import JobProcessor, ProcessingContext
from render_service.processors.registry import ProcessorRegistry, default_registry
from render_service.rendering.renderer import SimulatedRenderer
from render_service.storage.output_store import OutputStore


def job_input(**overrides) -> Dict:
    data = {
        "project_path": "/projects/vlog.prproj",
        "sequence_name": "Main Sequence",
        "output_settings": {"format": "mp4", "preset": "1080p", "quality": "high"},
    }
    data.update(overrides)
    return data


class ScriptedProcessor(JobProcessor):
    """Test processor: fails the first `failures` attempts of every job."""

    def __init__(
        self,
        job_type: JobType = JobType.EXPORT,
        failures: int = 0,
        error: Optional[Exception] = None,
        gate: Optional[asyncio.Event] = None,
    ):
        self.job_type = job_type
        self.failures = failures
        self.error = error or RuntimeError("render backend unavailable")
        self.gate = gate
        self.attempts: Dict[str, int] = {}
        self.started: List[str] = []

    async def process(self, job: JobRecord, ctx: ProcessingContext) -> JobOutput:
        self.started.append(job.id)
        self.attempts[job.id] = self.attempts.get(job.id, 0) + 1
        ctx.report(10)
        if self.gate is not None:
            await self.gate.wait()
        await asyncio.sleep(0)
        ctx.report(50)
        if self.attempts[job.id] <= self.failures:
            raise self.error
        return JobOutput(file_paths=[f"/tmp/{job.id}.mp4"], duration=1.0, file_size=1)


@pytest.fixture
def output_store(tmp_path):
    return OutputStore(str(tmp_path / "output"), ttl_hours=1)


@pytest.fixture
def make_queue(output_store):
    """Factory for queues wired to either real or scripted processors."""

    def _make(
        *processors: JobProcessor,
        pool_size: int = 3,
        max_pool_size: Optional[int] = None,
        max_retries: int = 3,
        job_timeout: Optional[float] = None,
        publisher: Optional[ProgressPublisher] = None,
    ) -> RenderQueue:
        if processors:
            registry = ProcessorRegistry()
            for processor in processors:
                registry.register(processor)
        else:
            registry = default_registry()
        return RenderQueue(
            processors=registry,
            renderer=SimulatedRenderer(output_store, time_scale=0),
            publisher=publisher,
            pool=WorkerPool(pool_size, max_pool_size),
            max_retries=max_retries,
            dispatch_interval=0.05,
            job_timeout=job_timeout,
            stage_time_scale=0,
        )

    return _make


@pytest.fixture
def wait_for_status():
    """Poll a queue until a job reaches one of `statuses`."""

    async def _wait(queue: RenderQueue, job_id: str, *statuses: JobStatus, timeout: float = 3.0):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            job = await queue.get_job_status(job_id)
            if job is not None and job.status in statuses:
                return job
            if loop.time() > deadline:
                raise AssertionError(
                    f"job {job_id} stuck in {job.status if job else None}, wanted {statuses}"
                )
            await asyncio.sleep(0.01)

    return _wait


async def submit(queue: RenderQueue, priority: str = "normal", job_type: str = "export", **kwargs) -> str:
    return await queue.add_job(
        owner_id=kwargs.pop("owner_id", "user-1"),
        channel_id="channel-1",
        project_id="project-1",
        sequence_id="seq-1",
        job_type=job_type,
        priority=priority,
        input_data=kwargs.pop("input_data", job_input()),
        **kwargs,
    )


@pytest.fixture
def submit_job():
    return submit


@pytest.fixture
def scripted():
    return ScriptedProcessor


@pytest.fixture
def make_input():
    return job_input
