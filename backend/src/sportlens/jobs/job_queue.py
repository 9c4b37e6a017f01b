"""
In-memory job queue.

The queue is the single owner of Job state. Every change goes through
``JobQueue.update`` so status transitions are validated and observable in
one place.
"""

import threading
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Optional, Union

from sportlens.jobs.errors import (
    DuplicateJobError,
    InvalidTransitionError,
    JobBusyError,
    JobNotFoundError,
)
from sportlens.jobs.models import AnalysisResult, EnhancementSettings, Job, JobStatus
from sportlens.jobs.settings_resolver import apply_settings_patch
from sportlens.utils.logging_config import get_logger

logger = get_logger(__name__)

# Listener signature: (before, after). ``before`` is None for insertions.
JobListener = Callable[[Optional[Job], Job], None]

ALLOWED_TRANSITIONS: Dict[JobStatus, FrozenSet[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.ANALYZING, JobStatus.PROCESSING}),
    JobStatus.ANALYZING: frozenset({JobStatus.PENDING, JobStatus.FAILED}),
    JobStatus.PROCESSING: frozenset({JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.FAILED: frozenset({JobStatus.PROCESSING}),
    JobStatus.COMPLETED: frozenset(),
}


def can_transition(current: JobStatus, new: JobStatus) -> bool:
    """Check whether a job may move from ``current`` to ``new``."""
    return new in ALLOWED_TRANSITIONS[current]


class JobQueue:
    """
    Ordered, thread-safe collection of image jobs.

    Insertion order is preserved for listing; lookup by id is a dict hit.
    Reads hand out snapshot copies so callers never alias queue state.

    Example:
        >>> queue = JobQueue()
        >>> job = Job(filename="dunk.jpg", source_uri="file:///tmp/dunk.jpg",
        ...           thumbnail_uri="file:///tmp/dunk_thumb.jpg")
        >>> queue.insert(job)
        >>> queue.update(job.id, status=JobStatus.ANALYZING).status
        <JobStatus.ANALYZING: 'ANALYZING'>
    """

    def __init__(self):
        self._jobs: Dict[str, Job] = {}
        self._lock = threading.RLock()
        self._listeners: List[JobListener] = []

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def __contains__(self, job_id: object) -> bool:
        with self._lock:
            return job_id in self._jobs

    def add_listener(self, listener: JobListener) -> None:
        """Register a callback invoked after every insert and update."""
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: JobListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def insert(self, job: Job) -> None:
        """
        Append a new job to the queue.

        Args:
            job: Job to insert. Its id must not already be queued.

        Raises:
            DuplicateJobError: If the id is already present.
        """
        with self._lock:
            if job.id in self._jobs:
                raise DuplicateJobError(job.id)
            stored = replace(job)
            self._jobs[job.id] = stored
            snapshot = replace(stored)
            logger.info(f"Queued job {job.id} ({job.filename}) as {job.status.value}")
            self._notify(None, snapshot)

    def get(self, job_id: str) -> Job:
        """
        Get a snapshot of a job.

        Raises:
            JobNotFoundError: If the id is not queued.
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            return replace(job)

    def list(self, status: Optional[JobStatus] = None) -> List[Job]:
        """
        List jobs in insertion order.

        Args:
            status: Only return jobs with this status.

        Returns:
            Snapshot copies, not a live view.
        """
        with self._lock:
            return [
                replace(job) for job in self._jobs.values()
                if status is None or job.status == status
            ]

    def update(
        self,
        job_id: str,
        status: Optional[JobStatus] = None,
        progress: Optional[float] = None,
        analysis: Optional[AnalysisResult] = None,
        settings: Optional[Union[EnhancementSettings, Mapping[str, Any]]] = None,
        error: Optional[str] = None,
    ) -> Job:
        """
        Shallow-merge the provided fields onto a job.

        All provided fields are applied together or not at all.

        Args:
            job_id: Job identifier.
            status: New status, validated against the transition table.
            progress: Informational progress, clamped to 0-100.
            analysis: Scene analysis. Only written once per job.
            settings: Full settings or a partial mapping of fields to overwrite.
            error: Error message, typically with status FAILED.

        Returns:
            Snapshot of the updated job.

        Raises:
            JobNotFoundError: If the id is not queued.
            InvalidTransitionError: If the status change or analysis write is not allowed.
            JobBusyError: If settings change while the job is PROCESSING.
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(job_id)

            changes: Dict[str, Any] = {}

            if settings is not None:
                if job.status == JobStatus.PROCESSING:
                    raise JobBusyError(job_id)
                if isinstance(settings, EnhancementSettings):
                    changes["settings"] = settings
                else:
                    changes["settings"] = apply_settings_patch(job.settings, settings)

            if analysis is not None:
                if job.analysis is not None:
                    raise InvalidTransitionError(
                        job_id, job.status.value, "analysis write",
                        "analysis already recorded"
                    )
                changes["analysis"] = analysis

            if status is not None and status != job.status:
                if not can_transition(job.status, status):
                    raise InvalidTransitionError(job_id, job.status.value, status.value)
                changes["status"] = status
                now = datetime.now()
                if status == JobStatus.PROCESSING:
                    changes["error"] = None
                    if job.started_at is None:
                        changes["started_at"] = now
                    changes["completed_at"] = None
                elif status in (JobStatus.COMPLETED, JobStatus.FAILED):
                    changes["completed_at"] = now
            elif status is not None:
                raise InvalidTransitionError(job_id, job.status.value, status.value)

            if progress is not None:
                changes["progress"] = min(100.0, max(0.0, float(progress)))

            if error is not None:
                changes["error"] = error

            before = replace(job)
            updated = replace(job, **changes)
            self._jobs[job_id] = updated
            after = replace(updated)

            if "status" in changes:
                logger.info(
                    f"Job {job_id} status {before.status.value} -> {after.status.value}"
                )

            self._notify(before, after)
            return after

    def _notify(self, before: Optional[Job], after: Job) -> None:
        """Call listeners; a failing listener never undoes a mutation."""
        for listener in list(self._listeners):
            try:
                listener(before, after)
            except Exception as e:
                logger.error(f"Job listener {listener!r} failed for {after.id}: {e}")
