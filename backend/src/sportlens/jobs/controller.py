"""
Orchestration of job analysis and processing.

The controller drives jobs through the state machine:

    PENDING -> ANALYZING -> PENDING | FAILED          (analysis phase)
    PENDING | FAILED -> PROCESSING -> COMPLETED | FAILED   (processing phase)

All state changes go through the JobQueue, which validates them.
Analyses for different jobs may run concurrently; batch processing runs
strictly one job at a time in queue order.
"""

import asyncio
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

from sportlens.analysis.grok_client import AnalysisClient
from sportlens.config.settings import Settings, get_settings
from sportlens.jobs.errors import (
    BatchInProgressError,
    InvalidTransitionError,
    JobCancelledError,
)
from sportlens.jobs.job_queue import JobQueue
from sportlens.jobs.models import Job, JobStatus
from sportlens.jobs.processor import Processor, SimulatedProcessor
from sportlens.jobs.settings_resolver import merge_analysis_into_settings
from sportlens.storage.image_store import ImageStore, guess_mime_type
from sportlens.utils.logging_config import get_logger

logger = get_logger(__name__)

CANCELLED_MESSAGE = "cancelled"


class CancelToken:
    """
    Cooperative cancellation flag.

    Checked before the provider call and before a job is marked terminal.
    Safe to trigger from any thread.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, job_id: str) -> None:
        if self._event.is_set():
            raise JobCancelledError(job_id)


@dataclass
class BatchReport:
    """
    Outcome of a batch run.

    Attributes:
        visited: Job ids that were processed, in the order they ran.
        completed: Job ids that reached COMPLETED.
        failed: Job ids that ended FAILED.
        skipped: Job ids that could not enter PROCESSING at their turn.
    """
    visited: List[str] = field(default_factory=list)
    completed: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "visited": list(self.visited),
            "completed": list(self.completed),
            "failed": list(self.failed),
            "skipped": list(self.skipped),
        }


class BatchController:
    """
    Advances one job or the whole queue through analysis and processing.

    Example:
        >>> controller = BatchController(queue, AnalysisClient(), ImageStore(Path("data")))
        >>> await controller.analyze_one(job.id)
        >>> report = await controller.process_all()
        >>> print(report.completed)
    """

    def __init__(
        self,
        queue: JobQueue,
        analysis_client: AnalysisClient,
        image_store: ImageStore,
        processor: Optional[Processor] = None,
        settings: Optional[Settings] = None,
    ):
        self.queue = queue
        self.analysis_client = analysis_client
        self.image_store = image_store
        self.settings = settings or get_settings()
        self.processor = processor or SimulatedProcessor(self.settings.progress_steps)

        self._job_locks: Dict[str, asyncio.Lock] = {}
        self._batch_running = False

    @property
    def is_batch_processing(self) -> bool:
        return self._batch_running

    def _lock_for(self, job_id: str) -> asyncio.Lock:
        lock = self._job_locks.get(job_id)
        if lock is None:
            lock = asyncio.Lock()
            self._job_locks[job_id] = lock
        return lock

    # -------------------------------------------------------------------------
    # Analysis
    # -------------------------------------------------------------------------

    async def analyze_one(self, job_id: str, cancel_token: Optional[CancelToken] = None) -> Job:
        """
        Run scene analysis for one job and merge its suggestions.

        Args:
            job_id: Job identifier.
            cancel_token: Optional cancellation flag.

        Returns:
            The job after analysis, back in PENDING with analysis recorded.

        Raises:
            JobNotFoundError: If the id is not queued.
            InvalidTransitionError: If the job cannot be analyzed from its state.
            ImageFetchError: If the image bytes cannot be fetched. The job is
                marked FAILED before the error propagates.
            JobCancelledError: If cancelled. The job is marked FAILED.
        """
        current = self.queue.get(job_id)
        if current.analysis is not None:
            raise InvalidTransitionError(
                job_id, current.status.value, JobStatus.ANALYZING.value,
                "analysis already recorded"
            )

        job = self.queue.update(job_id, status=JobStatus.ANALYZING)
        logger.info(f"Analyzing {job.filename} ({job_id})")

        try:
            data = await asyncio.to_thread(self.image_store.fetch_bytes, job.source_uri)
            if cancel_token:
                cancel_token.raise_if_cancelled(job_id)

            mime_type = guess_mime_type(job.filename or job.source_uri)
            analysis = await self.analysis_client.analyze_async(data, mime_type)

            if cancel_token:
                cancel_token.raise_if_cancelled(job_id)
        except (Exception, asyncio.CancelledError) as e:
            message = CANCELLED_MESSAGE if isinstance(e, (JobCancelledError, asyncio.CancelledError)) else str(e)
            logger.error(f"Analysis of {job_id} failed: {message}")
            self.queue.update(job_id, status=JobStatus.FAILED, error=message)
            raise

        # No await between read and write: the merge sees the latest user edits
        latest = self.queue.get(job_id)
        merged = merge_analysis_into_settings(latest.settings, analysis)
        job = self.queue.update(
            job_id,
            status=JobStatus.PENDING,
            analysis=analysis,
            settings=merged,
        )
        logger.info(
            f"Analysis for {job_id}: {analysis.sport_type}, "
            f"{analysis.lighting_condition.value}, confidence {analysis.confidence:.2f}"
        )
        return job

    async def analyze_many(self, job_ids: Iterable[str]) -> Dict[str, Optional[BaseException]]:
        """
        Analyze several jobs concurrently.

        Concurrency is capped by ``max_concurrent_analyses``. A failure in
        one job never affects the others.

        Returns:
            Mapping of job id to the error it raised, or None on success.
        """
        ids = list(job_ids)
        semaphore = asyncio.Semaphore(self.settings.max_concurrent_analyses)

        async def analyze_with_semaphore(job_id: str) -> None:
            async with semaphore:
                await self.analyze_one(job_id)

        results = await asyncio.gather(
            *(analyze_with_semaphore(job_id) for job_id in ids),
            return_exceptions=True,
        )

        outcomes: Dict[str, Optional[BaseException]] = {}
        for job_id, result in zip(ids, results):
            if isinstance(result, BaseException):
                logger.warning(f"Auto-analysis of {job_id} did not complete: {result}")
                outcomes[job_id] = result
            else:
                outcomes[job_id] = None
        return outcomes

    # -------------------------------------------------------------------------
    # Processing
    # -------------------------------------------------------------------------

    async def process_one(
        self,
        job_id: str,
        cancel_token: Optional[CancelToken] = None,
        duration_seconds: Optional[float] = None,
    ) -> Job:
        """
        Process one job to a terminal state.

        Args:
            job_id: Job identifier.
            cancel_token: Optional cancellation flag.
            duration_seconds: Simulated duration; defaults to processing_seconds.

        Returns:
            The job in COMPLETED or FAILED state.

        Raises:
            JobNotFoundError: If the id is not queued.
            InvalidTransitionError: If the job is PROCESSING, COMPLETED or ANALYZING.
        """
        if duration_seconds is None:
            duration_seconds = self.settings.processing_seconds

        lock = self._lock_for(job_id)
        if lock.locked():
            raise InvalidTransitionError(
                job_id, JobStatus.PROCESSING.value, JobStatus.PROCESSING.value,
                "already being processed"
            )

        async with lock:
            job = self.queue.update(job_id, status=JobStatus.PROCESSING, progress=0)
            logger.info(f"Processing {job.filename} ({job_id})")

            def report_progress(percent: float) -> None:
                self.queue.update(job_id, progress=percent)

            try:
                await self.processor.process(job, duration_seconds, on_progress=report_progress)
                if cancel_token:
                    cancel_token.raise_if_cancelled(job_id)
            except JobCancelledError:
                logger.warning(f"Processing of {job_id} cancelled")
                return self.queue.update(job_id, status=JobStatus.FAILED, error=CANCELLED_MESSAGE)
            except asyncio.CancelledError:
                self.queue.update(job_id, status=JobStatus.FAILED, error=CANCELLED_MESSAGE)
                raise
            except Exception as e:
                logger.error(f"Processing of {job_id} failed: {e}")
                return self.queue.update(job_id, status=JobStatus.FAILED, error=str(e))

            job = self.queue.update(job_id, status=JobStatus.COMPLETED, progress=100)
            logger.info(f"Completed {job_id}")
            return job

    async def process_all(
        self,
        on_focus: Optional[Callable[[str], None]] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> BatchReport:
        """
        Process every non-completed job sequentially in queue order.

        Each job reaches COMPLETED or FAILED before the next one starts.
        Failures never stop the batch.

        Args:
            on_focus: Called with each job id right before it is processed.
            cancel_token: Stops the batch; remaining jobs are reported skipped.

        Returns:
            BatchReport describing what happened to each job.

        Raises:
            BatchInProgressError: If another batch run is active.
        """
        if self._batch_running:
            raise BatchInProgressError()

        self._batch_running = True
        report = BatchReport()
        try:
            pending = [job.id for job in self.queue.list() if job.status != JobStatus.COMPLETED]
            logger.info(f"Batch processing {len(pending)} jobs")

            for index, job_id in enumerate(pending):
                if cancel_token and cancel_token.cancelled:
                    logger.warning(f"Batch cancelled - skipping {len(pending) - index} jobs")
                    report.skipped.extend(pending[index:])
                    break

                if on_focus:
                    on_focus(job_id)

                try:
                    job = await self.process_one(
                        job_id,
                        cancel_token=cancel_token,
                        duration_seconds=self.settings.batch_processing_seconds,
                    )
                except InvalidTransitionError as e:
                    logger.warning(f"Skipping {job_id} in batch: {e}")
                    report.skipped.append(job_id)
                    continue

                report.visited.append(job_id)
                if job.status == JobStatus.COMPLETED:
                    report.completed.append(job_id)
                else:
                    report.failed.append(job_id)
        finally:
            self._batch_running = False

        logger.info(
            f"Batch finished: {len(report.completed)} completed, "
            f"{len(report.failed)} failed, {len(report.skipped)} skipped"
        )
        return report
