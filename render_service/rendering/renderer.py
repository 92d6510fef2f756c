"""Render capability used by the job processors.

Actual encoding is owned by the editor host; the queue only needs something
that turns a job into an output file path. SimulatedRenderer stands in for
it, taking the time a real render would and writing a placeholder thumbnail.
"""

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Tuple

from PIL import Image

from render_service.jobs.models import JobRecord, JobType
from render_service.rendering.presets import get_preset
from render_service.storage.output_store import OutputStore

logger = logging.getLogger(__name__)

THUMBNAIL_MAX_DIM = 320


@dataclass
class RenderResult:
    path: str
    duration: float
    file_size: int


class Renderer(ABC):
    """Abstract render backend."""

    @abstractmethod
    async def render(self, job: JobRecord, preview: bool = False) -> RenderResult:
        """Render the job's sequence and return the produced file."""
        ...

    @abstractmethod
    async def generate_thumbnail(self, job: JobRecord, video_path: str) -> str:
        """Produce a still for `video_path`. Returns the image path."""
        ...


class SimulatedRenderer(Renderer):
    # job type -> (duration seconds, file size bytes)
    _MOCK_OUTPUT: Dict[JobType, Tuple[float, int]] = {
        JobType.AI_EDIT: (120.0, 50 * 1024 * 1024),
        JobType.EXPORT: (300.0, 100 * 1024 * 1024),
        JobType.PREVIEW: (60.0, 10 * 1024 * 1024),
    }

    def __init__(
        self,
        output_store: OutputStore,
        time_scale: float = 1.0,
        render_seconds: float = 3.0,
        thumbnail_seconds: float = 0.5,
    ):
        self._output_store = output_store
        self._time_scale = time_scale
        self._render_seconds = render_seconds
        self._thumbnail_seconds = thumbnail_seconds

    async def render(self, job: JobRecord, preview: bool = False) -> RenderResult:
        settings = job.input_data.output_settings
        filename = f"{job.id}{'_preview' if preview else ''}.{settings.format}"
        output_path = self._output_store.get_output_path(job.id, filename)

        logger.info(f"Rendering job {job.id} to {output_path}")
        await asyncio.sleep(self._render_seconds * self._time_scale)

        duration, file_size = self._MOCK_OUTPUT[job.type]
        return RenderResult(path=output_path, duration=duration, file_size=file_size)

    async def generate_thumbnail(self, job: JobRecord, video_path: str) -> str:
        thumbnail_path = os.path.splitext(video_path)[0] + "_thumb.jpg"
        logger.debug(f"Generating thumbnail: {thumbnail_path}")

        await asyncio.sleep(self._thumbnail_seconds * self._time_scale)

        preset = get_preset(job.input_data.output_settings.preset)
        scale = min(1.0, THUMBNAIL_MAX_DIM / max(preset.width, preset.height))
        size = (max(1, round(preset.width * scale)), max(1, round(preset.height * scale)))
        await asyncio.to_thread(self._write_placeholder, thumbnail_path, size)
        return thumbnail_path

    @staticmethod
    def _write_placeholder(path: str, size: Tuple[int, int]) -> None:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        Image.new("RGB", size, (40, 40, 40)).save(path, format="JPEG")
