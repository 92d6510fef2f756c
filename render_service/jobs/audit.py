"""Audit trail of job lifecycle events, written to Supabase."""

import asyncio
import logging
from typing import Any, Callable, Dict, Optional

from render_service.jobs.progress import (
    EVENT_CANCELLED,
    EVENT_COMPLETED,
    EVENT_FAILED,
    EVENT_QUEUED,
    ProgressEvent,
)

logger = logging.getLogger(__name__)

AUDIT_ACTIONS = {
    EVENT_QUEUED: "RENDER_JOB_QUEUED",
    EVENT_COMPLETED: "RENDER_JOB_COMPLETED",
    EVENT_FAILED: "RENDER_JOB_FAILED",
    EVENT_CANCELLED: "RENDER_JOB_CANCELLED",
}


class AuditLogListener:
    """Progress listener that records lifecycle transitions.

    Progress ticks are ignored. Inserts run in a worker thread because the
    Supabase client is synchronous.
    """

    def __init__(self, client_factory: Callable[[], Any], table: str = "audit_logs"):
        self._client_factory = client_factory
        self._table = table

    async def __call__(self, event: ProgressEvent) -> None:
        action = AUDIT_ACTIONS.get(event.event)
        if action is None:
            return
        row = self.build_row(event, action)
        await asyncio.to_thread(self._insert, row)

    @staticmethod
    def build_row(event: ProgressEvent, action: str) -> Dict[str, Any]:
        metadata: Dict[str, Optional[Any]] = {
            "status": event.status.value,
            "retry_count": event.retry_count,
        }
        if event.error:
            metadata["error"] = event.error
        return {
            "user_id": event.owner_id,
            "action": action,
            "entity_type": "RENDER_JOB",
            "entity_id": event.job_id,
            "metadata": metadata,
            "created_at": event.timestamp.isoformat(),
        }

    def _insert(self, row: Dict[str, Any]) -> None:
        self._client_factory().table(self._table).insert(row).execute()
