import os

import pytest
from PIL import Image

from render_service.jobs.errors import JobCancelledError
from render_service.jobs.models import JobRecord, JobStatus, JobType
from render_service.jobs.progress import EVENT_COMPLETED, ProgressPublisher
from render_service.processors.base import ProcessingContext
from render_service.processors.registry import default_registry
from render_service.rendering.renderer import SimulatedRenderer


def _record(make_input, job_type="export", **input_overrides) -> JobRecord:
    return JobRecord(
        owner_id="user-1",
        channel_id="channel-1",
        project_id="project-1",
        sequence_id="seq-1",
        type=job_type,
        input_data=make_input(**input_overrides),
    )


def test_discovery_registers_every_job_type():
    registry = default_registry()
    assert set(registry.job_types()) == {JobType.AI_EDIT, JobType.EXPORT, JobType.PREVIEW}


def test_report_never_moves_progress_backwards(make_input):
    job = _record(make_input)
    ctx = ProcessingContext(job, ProgressPublisher(), renderer=None)
    ctx.report(55.4)
    ctx.report(30)
    assert job.progress == 55
    ctx.report(250)
    assert job.progress == 100


def test_report_raises_once_cancelled(make_input):
    job = _record(make_input)
    cancelled = []
    ctx = ProcessingContext(job, ProgressPublisher(), renderer=None, is_cancelled=lambda: bool(cancelled))
    ctx.report(10)
    cancelled.append(True)
    with pytest.raises(JobCancelledError):
        ctx.report(20)
    assert job.progress == 10


async def _run(make_queue, submit_job, wait_for_status, job_type, input_data):
    publisher = ProgressPublisher()
    events = []
    publisher.subscribe(events.append)
    queue = make_queue(publisher=publisher)
    await queue.start()
    try:
        job_id = await submit_job(queue, job_type=job_type, input_data=input_data)
        job = await wait_for_status(queue, job_id, JobStatus.COMPLETED, JobStatus.FAILED)
    finally:
        await queue.stop()
    return job, [e for e in events if e.job_id == job_id]


@pytest.mark.asyncio
async def test_ai_edit_progress_is_monotonic_and_spreads_instructions(
    make_queue, submit_job, wait_for_status, make_input
):
    instructions = [
        {"type": "cut", "timestamp": 1.5},
        {"type": "transition", "timestamp": 12.0, "duration": 0.5},
        {"type": "effect", "timestamp": 30.0, "parameters": {"name": "zoom"}},
    ]
    job, events = await _run(
        make_queue, submit_job, wait_for_status, "ai-edit",
        make_input(editing_instructions=instructions),
    )

    assert job.status == JobStatus.COMPLETED
    processing = [e.progress for e in events if e.status == JobStatus.PROCESSING]
    assert processing == [0, 20, 40, 60, 80, 100]
    assert events[-1].event == EVENT_COMPLETED
    assert events[-1].progress == 100
    assert job.output.duration == 120.0


@pytest.mark.asyncio
async def test_export_steps_and_writes_thumbnail(
    make_queue, submit_job, wait_for_status, make_input, output_store
):
    job, events = await _run(
        make_queue, submit_job, wait_for_status, "export",
        make_input(output_settings={"format": "mov", "preset": "720p", "quality": "master"}),
    )

    progress = [e.progress for e in events]
    assert progress == sorted(progress)
    assert [e.progress for e in events if e.status == JobStatus.PROCESSING][1:] == list(range(0, 100, 10))

    output_path = job.output.file_paths[0]
    assert output_path == os.path.join(output_store.base_dir, job.id, f"{job.id}.mov")
    assert job.output.thumbnail_path.endswith("_thumb.jpg")
    with Image.open(job.output.thumbnail_path) as thumb:
        assert thumb.size == (320, 180)
    assert job.output.file_size == 100 * 1024 * 1024


@pytest.mark.asyncio
async def test_preview_renders_low_fidelity_copy(make_queue, submit_job, wait_for_status, make_input):
    job, events = await _run(make_queue, submit_job, wait_for_status, "preview", make_input())

    assert job.status == JobStatus.COMPLETED
    assert job.output.file_paths[0].endswith(f"{job.id}_preview.mp4")
    assert 50 in [e.progress for e in events]


@pytest.mark.asyncio
async def test_vertical_preset_thumbnail_keeps_aspect(output_store, make_input):
    job = _record(make_input, output_settings={"preset": "TikTok"})
    renderer = SimulatedRenderer(output_store, time_scale=0)
    result = await renderer.render(job)
    thumb_path = await renderer.generate_thumbnail(job, result.path)
    with Image.open(thumb_path) as thumb:
        assert thumb.size == (180, 320)
