"""
Exceptions raised by the job queue and its orchestration layer.
"""

from typing import Dict, Optional


class JobError(Exception):
    """Base class for all job queue errors."""


class JobNotFoundError(JobError, KeyError):
    """Raised when an operation references a job id absent from the queue."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job {job_id} not found")

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self.args[0]


class DuplicateJobError(JobError):
    """Raised when inserting a job whose id is already queued."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job {job_id} already exists")


class InvalidTransitionError(JobError):
    """Raised when a status change or write is not allowed from the current state."""

    def __init__(self, job_id: str, current: str, requested: str, reason: Optional[str] = None):
        self.job_id = job_id
        self.current = current
        self.requested = requested
        message = f"Job {job_id}: cannot go from {current} to {requested}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class JobBusyError(InvalidTransitionError):
    """Raised when settings are edited while the job is being processed."""

    def __init__(self, job_id: str):
        super().__init__(job_id, "PROCESSING", "settings update", "job is being processed")


class BatchInProgressError(InvalidTransitionError):
    """Raised when a batch run is requested while another one is active."""

    def __init__(self):
        self.job_id = None
        self.current = "BATCH_PROCESSING"
        self.requested = "BATCH_PROCESSING"
        JobError.__init__(self, "A batch processing run is already in progress")


class ImageFetchError(JobError):
    """Raised when the bytes behind a location handle cannot be obtained."""

    def __init__(self, handle: str, reason: str):
        self.handle = handle
        self.reason = reason
        super().__init__(f"Failed to fetch image {handle}: {reason}")


class SettingsValidationError(JobError, ValueError):
    """Raised when a settings patch falls outside the allowed domains."""

    def __init__(self, errors: Dict[str, str]):
        self.errors = errors
        details = "; ".join(f"{name}: {msg}" for name, msg in errors.items())
        super().__init__(f"Invalid settings - {details}")


class NoSelectionError(JobError):
    """Raised when processing the selected job while nothing is selected."""

    def __init__(self):
        super().__init__("No job is selected")


class JobCancelledError(JobError):
    """Raised inside an orchestration step when its cancel token fires."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job {job_id} cancelled")
