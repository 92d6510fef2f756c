"""Render queue backend - FastAPI application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from render_service.config import settings
from render_service.api.v1.router import v1_router
from render_service.api.v1.health import router as health_root_router
from render_service.api.v1 import health as health_api
from render_service.api.v1 import jobs as jobs_api
from render_service.api.v1 import websocket as websocket_api
from render_service.db.supabase_client import get_supabase
from render_service.jobs.audit import AuditLogListener
from render_service.jobs.housekeeping import Housekeeper
from render_service.jobs.progress import ProgressPublisher
from render_service.jobs.render_queue import RenderQueue
from render_service.jobs.resource_monitor import ResourceMonitor
from render_service.jobs.worker_pool import WorkerPool
from render_service.processors.registry import default_registry
from render_service.rendering.renderer import SimulatedRenderer
from render_service.storage.output_store import OutputStore

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown logic."""
    logger.info(f"Starting render queue backend on port {settings.port}")
    logger.info(f"Output dir: {settings.output_dir}")

    output_store = OutputStore(settings.output_dir, ttl_hours=settings.output_ttl_hours)
    publisher = ProgressPublisher(status_ttl_hours=settings.status_ttl_hours)
    if settings.audit_log_enabled:
        publisher.subscribe(AuditLogListener(get_supabase))
        logger.info("Audit logging to Supabase enabled")

    processors = default_registry()
    logger.info(f"Found processors for: {', '.join(t.value for t in processors.job_types())}")

    queue = RenderQueue(
        processors=processors,
        renderer=SimulatedRenderer(output_store, time_scale=settings.stage_time_scale),
        publisher=publisher,
        pool=WorkerPool(settings.worker_pool_size, settings.max_worker_pool_size),
        max_retries=settings.max_retries,
        dispatch_interval=settings.dispatch_interval_seconds,
        job_timeout=settings.job_timeout_seconds,
        stage_time_scale=settings.stage_time_scale,
        job_retention_hours=settings.status_ttl_hours,
    )
    monitor = ResourceMonitor(
        queue.pool,
        queue.queues,
        high_water=settings.backlog_high_water,
        growth_step=settings.worker_growth_step,
        idle_shrink_seconds=settings.worker_idle_shrink_seconds,
        memory_threshold_mb=settings.memory_threshold_mb,
        interval=settings.monitor_interval_seconds,
        on_capacity_change=queue.notify,
    )
    housekeeper = Housekeeper(queue, output_store, interval=settings.cleanup_interval_seconds)
    await queue.start()
    await monitor.start()
    await housekeeper.start()

    # Wire queue and publisher into API endpoints
    jobs_api.set_dispatcher(queue)
    health_api.set_dispatcher(queue)
    websocket_api.set_publisher(publisher)

    yield

    logger.info("Shutting down render queue backend")
    await housekeeper.stop()
    await monitor.stop()
    await queue.stop()
    jobs_api.set_dispatcher(None)
    health_api.set_dispatcher(None)
    websocket_api.set_publisher(None)
    housekeeper.sweep()


app = FastAPI(
    title="Render Queue Service",
    description="Priority render/job queue for AI edits, exports and previews",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS: the editor panel runs from a local CEP origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_root_router, tags=["health"])  # GET /health at root
app.include_router(v1_router)  # All /api/v1/* endpoints
app.include_router(websocket_api.router, tags=["websocket"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.port)
