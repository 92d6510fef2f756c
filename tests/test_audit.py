from unittest.mock import MagicMock

import pytest

from render_service.jobs.audit import AuditLogListener
from render_service.jobs.models import JobRecord, JobStatus
from render_service.jobs.progress import EVENT_FAILED, EVENT_PROGRESS, EVENT_QUEUED, ProgressPublisher


def _record(make_input) -> JobRecord:
    return JobRecord(
        owner_id="user-1",
        channel_id="channel-1",
        project_id="project-1",
        sequence_id="seq-1",
        type="ai-edit",
        input_data=make_input(),
    )


@pytest.mark.asyncio
async def test_lifecycle_events_are_written(make_input):
    client = MagicMock()
    publisher = ProgressPublisher()
    publisher.subscribe(AuditLogListener(lambda: client))
    job = _record(make_input)

    publisher.publish(job, EVENT_QUEUED)
    job.status = JobStatus.PROCESSING
    publisher.publish(job, EVENT_PROGRESS)
    job.status = JobStatus.FAILED
    job.error_message = "encoder crashed"
    publisher.publish(job, EVENT_FAILED)
    await publisher.drain()

    client.table.assert_called_with("audit_logs")
    rows = [call.args[0] for call in client.table.return_value.insert.call_args_list]
    assert [row["action"] for row in rows] == ["RENDER_JOB_QUEUED", "RENDER_JOB_FAILED"]
    assert rows[1]["entity_id"] == job.id
    assert rows[1]["user_id"] == "user-1"
    assert rows[1]["metadata"]["error"] == "encoder crashed"


@pytest.mark.asyncio
async def test_insert_failure_does_not_reach_publisher(make_input, caplog):
    def broken_client():
        raise RuntimeError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")

    publisher = ProgressPublisher()
    publisher.subscribe(AuditLogListener(broken_client))

    publisher.publish(_record(make_input), EVENT_QUEUED)
    await publisher.drain()

    assert "SUPABASE_URL" in caplog.text
