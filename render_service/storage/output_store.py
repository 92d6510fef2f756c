"""Render output directories with TTL-based cleanup."""

import os
import shutil
import time
from typing import Optional

from render_service.config import settings


class OutputStore:
    """Manages per-job output directories (renders, thumbnails)."""

    def __init__(self, base_dir: Optional[str] = None, ttl_hours: int = 24):
        self._base_dir = os.path.abspath(base_dir or settings.output_dir)
        os.makedirs(self._base_dir, exist_ok=True)
        self._ttl_seconds = ttl_hours * 3600

    @property
    def base_dir(self) -> str:
        return self._base_dir

    def get_job_dir(self, job_id: str) -> str:
        """Get or create directory for a job's output files."""
        job_dir = os.path.join(self._base_dir, job_id)
        os.makedirs(job_dir, exist_ok=True)
        return job_dir

    def get_output_path(self, job_id: str, filename: str) -> str:
        return os.path.join(self.get_job_dir(job_id), filename)

    def file_exists(self, job_id: str, filename: str) -> bool:
        return os.path.exists(os.path.join(self._base_dir, job_id, filename))

    def cleanup_expired(self) -> int:
        """Remove job directories older than TTL. Returns count of removed dirs."""
        now = time.time()
        removed = 0
        if not os.path.exists(self._base_dir):
            return 0
        for entry in os.listdir(self._base_dir):
            job_dir = os.path.join(self._base_dir, entry)
            if not os.path.isdir(job_dir):
                continue
            if now - os.path.getmtime(job_dir) > self._ttl_seconds:
                shutil.rmtree(job_dir, ignore_errors=True)
                removed += 1
        return removed
