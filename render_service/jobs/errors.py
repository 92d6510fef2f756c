"""
Render job error types.

All errors inherit from JobError for easy catching.
Anything raised by a processor that is not a NonRetryableJobError is
treated as a transient processing failure and retried.
"""


class JobError(Exception):
    """Base exception for all render job failures."""
    pass


class JobSubmissionError(JobError):
    """Raised when job parameters are rejected at submission time."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid job submission: {reason}")


class JobNotFoundError(JobError):
    """Raised when a job id is unknown to the queue."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job not found: {job_id}")


class WorkerPoolError(JobError):
    """Raised when a worker slot binding would break pool invariants."""
    pass


class NonRetryableJobError(JobError):
    """A processing failure that retrying cannot fix."""
    pass


class InvalidJobInputError(NonRetryableJobError):
    """Raised by a processor when the job's input cannot be processed."""

    def __init__(self, job_id: str, reason: str):
        self.job_id = job_id
        self.reason = reason
        super().__init__(f"Invalid input for job {job_id}: {reason}")


class JobCancelledError(JobError):
    """Raised inside a processor once cancellation has been requested."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job {job_id} was cancelled")


class JobTimeoutError(JobError):
    """Raised when a processing attempt exceeds its deadline."""

    def __init__(self, job_id: str, timeout_seconds: float):
        self.job_id = job_id
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Job {job_id} exceeded processing deadline of {timeout_seconds:g}s"
        )
