"""Retry/failure handling for processing errors."""

import logging
from enum import Enum

from render_service.jobs.errors import NonRetryableJobError
from render_service.jobs.models import JobRecord, JobStatus, utcnow
from render_service.jobs.priority_queues import PriorityQueueSet
from render_service.jobs.progress import EVENT_FAILED, EVENT_PROGRESS, ProgressPublisher

logger = logging.getLogger(__name__)


class RetryDecision(str, Enum):
    REQUEUED = "requeued"
    FAILED = "failed"


def describe_error(error: BaseException) -> str:
    message = str(error)
    return message if message else type(error).__name__


class FailureHandler:
    """Decides between requeue and terminal failure after a processor error.

    Every error counts as an attempt. A job is requeued at the head of its own
    tier while retry_count < max_retries, unless the error is a
    NonRetryableJobError, which fails the job straight away.
    """

    def __init__(self, queues: PriorityQueueSet, publisher: ProgressPublisher):
        self._queues = queues
        self._publisher = publisher

    def handle(self, job: JobRecord, error: BaseException) -> RetryDecision:
        job.retry_count += 1
        cause = describe_error(error)
        retryable = not isinstance(error, NonRetryableJobError)

        if retryable and job.retry_count < job.max_retries:
            job.status = JobStatus.QUEUED
            job.progress = 0
            job.started_at = None
            self._queues.requeue_front(job)
            logger.warning(
                f"Job {job.id} failed (attempt {job.retry_count}/{job.max_retries}), "
                f"requeued: {cause}"
            )
            self._publisher.publish(job, EVENT_PROGRESS)
            return RetryDecision.REQUEUED

        job.status = JobStatus.FAILED
        job.error_message = cause
        job.completed_at = utcnow()
        if retryable:
            logger.error(
                f"Job {job.id} failed permanently (attempt {job.retry_count}/{job.max_retries}): {cause}"
            )
        else:
            logger.error(
                f"Job {job.id} failed without retry (attempt {job.retry_count}/{job.max_retries}): {cause}"
            )
        self._publisher.publish(job, EVENT_FAILED)
        return RetryDecision.FAILED
