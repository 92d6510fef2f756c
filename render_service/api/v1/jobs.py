"""Render job API: submit jobs, poll status, cancel, inspect the queue."""

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from render_service.jobs.errors import JobSubmissionError
from render_service.jobs.models import JobInput, JobPriority, JobType

router = APIRouter()

# Set by main.py during lifespan
_dispatcher = None


def set_dispatcher(dispatcher):
    global _dispatcher
    _dispatcher = dispatcher


def _require_dispatcher():
    if _dispatcher is None:
        raise HTTPException(status_code=503, detail="Render queue not initialized")
    return _dispatcher


class JobSubmitRequest(BaseModel):
    owner_id: str
    channel_id: str
    project_id: str
    sequence_id: str
    type: JobType
    priority: JobPriority = JobPriority.NORMAL
    input_data: JobInput


class JobSubmitResponse(BaseModel):
    job_id: str
    status: str
    message: str


class CancelResponse(BaseModel):
    job_id: str
    cancelled: bool


@router.post("/jobs", response_model=JobSubmitResponse, status_code=202)
async def submit_job(request: JobSubmitRequest):
    """Queue a render job."""
    dispatcher = _require_dispatcher()
    try:
        job_id = await dispatcher.add_job(
            owner_id=request.owner_id,
            channel_id=request.channel_id,
            project_id=request.project_id,
            sequence_id=request.sequence_id,
            job_type=request.type,
            priority=request.priority,
            input_data=request.input_data,
        )
    except JobSubmissionError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return JobSubmitResponse(
        job_id=job_id,
        status="queued",
        message="Job queued. Poll GET /api/v1/jobs/{id} or listen on /ws/jobs/{owner_id}.",
    )


@router.get("/jobs")
async def list_jobs(owner_id: str, limit: int = Query(10, ge=1, le=100)):
    """Most recent jobs for one owner."""
    dispatcher = _require_dispatcher()
    jobs = await dispatcher.list_owner_jobs(owner_id, limit=limit)
    return {
        "jobs": [job.model_dump(mode="json") for job in jobs],
        "count": len(jobs),
    }


@router.get("/jobs/{job_id}")
async def get_job_status(job_id: str):
    """Full job record, including output or error once finished."""
    dispatcher = _require_dispatcher()
    job = await dispatcher.get_job_status(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return job.model_dump(mode="json")


@router.get("/jobs/{job_id}/progress")
async def get_job_progress(job_id: str):
    """Latest published status/progress snapshot."""
    dispatcher = _require_dispatcher()
    snapshot = dispatcher.publisher.latest(job_id)
    if snapshot is None:
        raise HTTPException(status_code=404, detail="No progress recorded for job")
    return snapshot.model_dump(mode="json")


@router.post("/jobs/{job_id}/cancel", response_model=CancelResponse)
async def cancel_job(job_id: str):
    dispatcher = _require_dispatcher()
    if await dispatcher.get_job_status(job_id) is None:
        raise HTTPException(status_code=404, detail="Job not found")
    cancelled = await dispatcher.cancel_job(job_id)
    if not cancelled:
        raise HTTPException(status_code=409, detail="Job already finished or being cancelled")
    return CancelResponse(job_id=job_id, cancelled=True)


@router.get("/queue")
async def get_queue_status():
    """Queue depth per priority tier and worker usage."""
    dispatcher = _require_dispatcher()
    status = await dispatcher.get_queue_status()
    return {**status.model_dump(), "total_queued": status.total_queued}
