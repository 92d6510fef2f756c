"""Render job data model."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field, field_validator
import uuid

from render_service.rendering.presets import RESOLUTION_PRESETS


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobType(str, Enum):
    AI_EDIT = "ai-edit"
    EXPORT = "export"
    PREVIEW = "preview"


class JobPriority(str, Enum):
    URGENT = "urgent"
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"


# Dispatch scans tiers in exactly this order.
PRIORITY_ORDER = (JobPriority.URGENT, JobPriority.HIGH, JobPriority.NORMAL, JobPriority.LOW)


class JobStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED})


class OutputSettings(BaseModel):
    format: Literal["mp4", "mov", "avi"] = "mp4"
    preset: str = "1080p"
    quality: Literal["draft", "preview", "high", "master"] = "high"
    include_audio: bool = True
    custom_settings: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("preset")
    @classmethod
    def _known_preset(cls, value: str) -> str:
        if value not in RESOLUTION_PRESETS:
            raise ValueError(
                f"unknown preset '{value}', expected one of {sorted(RESOLUTION_PRESETS)}"
            )
        return value


class EditingInstruction(BaseModel):
    type: Literal["cut", "transition", "effect", "audio"]
    timestamp: float = Field(ge=0)
    duration: Optional[float] = Field(default=None, ge=0)
    parameters: Dict[str, Any] = Field(default_factory=dict)


class JobInput(BaseModel):
    """Processor parameters, fixed once the job is submitted."""
    project_path: str = Field(min_length=1)
    sequence_name: str = Field(min_length=1)
    output_settings: OutputSettings = Field(default_factory=OutputSettings)
    editing_instructions: Optional[List[EditingInstruction]] = None


class JobOutput(BaseModel):
    file_paths: List[str] = Field(default_factory=list)
    thumbnail_path: Optional[str] = None
    duration: float = 0.0
    file_size: int = 0


class JobRecord(BaseModel):
    """Tracks the lifecycle of one render job."""
    id: str = Field(default_factory=lambda: f"job_{uuid.uuid4().hex}", frozen=True)
    owner_id: str = Field(min_length=1, frozen=True)
    channel_id: str = Field(min_length=1, frozen=True)
    project_id: str = Field(min_length=1, frozen=True)
    sequence_id: str = Field(min_length=1, frozen=True)
    type: JobType = Field(frozen=True)
    priority: JobPriority = JobPriority.NORMAL
    status: JobStatus = JobStatus.QUEUED
    progress: int = 0
    input_data: JobInput = Field(frozen=True)
    output: Optional[JobOutput] = None
    error_message: Optional[str] = None
    retry_count: int = 0
    max_retries: int = Field(default=3, ge=1)
    created_at: datetime = Field(default_factory=utcnow, frozen=True)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class QueueStatus(BaseModel):
    """Aggregate view of the queue for callers and the resource monitor."""
    queues: Dict[str, int]
    active_jobs: int
    available_workers: int
    total_workers: int

    @property
    def total_queued(self) -> int:
        return sum(self.queues.values())
