"""Health check endpoint."""

from fastapi import APIRouter
import platform
import psutil
import sys

router = APIRouter()

# Set by main.py during lifespan
_dispatcher = None


def set_dispatcher(dispatcher):
    global _dispatcher
    _dispatcher = dispatcher


@router.get("/health")
async def health_check():
    """Service health, queue state, and process info."""
    process = psutil.Process()
    queue = None
    if _dispatcher is not None:
        status = await _dispatcher.get_queue_status()
        queue = {
            "running": _dispatcher.is_running,
            "queued": status.total_queued,
            "active_jobs": status.active_jobs,
            "available_workers": status.available_workers,
            "total_workers": status.total_workers,
        }

    return {
        "status": "healthy" if queue and queue["running"] else "degraded",
        "queue": queue,
        "memory_rss_mb": round(process.memory_info().rss / 1024 / 1024),
        "cpu_count": psutil.cpu_count(),
        "python_version": sys.version,
        "platform": platform.platform(),
    }
