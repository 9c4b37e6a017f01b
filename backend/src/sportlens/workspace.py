"""
User-facing operations over the job queue.

The workspace is the only entry point outside the core that may alter a
job: upload, select, edit settings, process the selection and process
everything pending.
"""

from typing import Any, Iterable, List, Mapping, Optional, Tuple

from sportlens.analysis.grok_client import AnalysisClient, GrokConfig
from sportlens.config.settings import Settings, get_settings
from sportlens.jobs.controller import BatchController, BatchReport, CancelToken
from sportlens.jobs.errors import NoSelectionError
from sportlens.jobs.job_queue import JobQueue
from sportlens.jobs.models import (
    AnalysisResult,
    BoundingBox,
    Brightness,
    EnhancementSettings,
    Job,
    JobStatus,
    LightingCondition,
    ProcessingStats,
    SceneAttributes,
)
from sportlens.jobs.processor import Processor
from sportlens.jobs.settings_resolver import default_settings, validate_settings_patch
from sportlens.storage.image_store import ImageStore
from sportlens.utils.logging_config import get_logger

logger = get_logger(__name__)

# (filename, raw bytes)
UploadedFile = Tuple[str, bytes]

DEMO_JOB_ID = "demo-1"


def build_demo_job() -> Job:
    """Sample job shown on an empty workspace."""
    return Job(
        id=DEMO_JOB_ID,
        filename="soccer_match_raw.jpg",
        source_uri="https://picsum.photos/id/1055/1200/800",
        thumbnail_uri="https://picsum.photos/id/1055/200/200",
        settings=EnhancementSettings(ev_offset=0.3, contrast=10, sharpness=25),
        analysis=AnalysisResult(
            sport_type="Soccer",
            lighting_condition=LightingCondition.OUTDOOR_DAY,
            scene_attributes=SceneAttributes(
                brightness=Brightness.HIGH,
                dominant_colors="Green, Blue",
                light_sources="Sunlight",
            ),
            detected_athletes=(
                BoundingBox(ymin=30, xmin=40, ymax=85, xmax=60, label="Striker"),
            ),
            subject_detected=True,
            suggested_ev=0.3,
            suggested_wb=0.0,
            confidence=0.92,
        ),
    )


class Workspace:
    """
    One operator's queue, selection and orchestration.

    Example:
        >>> workspace = Workspace()
        >>> jobs = await workspace.upload_files([("dunk.jpg", data)])
        >>> workspace.update_settings(jobs[0].id, {"sharpness": 60})
        >>> await workspace.process_all_pending()
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        queue: Optional[JobQueue] = None,
        analysis_client: Optional[AnalysisClient] = None,
        image_store: Optional[ImageStore] = None,
        processor: Optional[Processor] = None,
    ):
        self.settings = settings or get_settings()
        self.settings.validate()

        self.queue = queue or JobQueue()
        self.image_store = image_store or ImageStore(self.settings.data_dir)
        self.analysis_client = analysis_client or AnalysisClient(
            GrokConfig.from_settings(self.settings)
        )
        self.controller = BatchController(
            self.queue,
            self.analysis_client,
            self.image_store,
            processor=processor,
            settings=self.settings,
        )
        self.selected_job_id: Optional[str] = None

        if self.settings.seed_demo_job and len(self.queue) == 0:
            self.seed_demo_job()

    def seed_demo_job(self) -> Job:
        """Queue the sample job and select it."""
        job = build_demo_job()
        self.queue.insert(job)
        self.selected_job_id = job.id
        return self.queue.get(job.id)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def list_jobs(self, status: Optional[JobStatus] = None) -> List[Job]:
        return self.queue.list(status)

    def get_job(self, job_id: str) -> Job:
        return self.queue.get(job_id)

    @property
    def selected_job(self) -> Optional[Job]:
        if self.selected_job_id is None:
            return None
        return self.queue.get(self.selected_job_id)

    @property
    def is_batch_processing(self) -> bool:
        return self.controller.is_batch_processing

    def stats(self) -> ProcessingStats:
        """Summarize the queue: totals and mean processing time of completed jobs."""
        jobs = self.queue.list()
        completed = [job for job in jobs if job.status == JobStatus.COMPLETED]
        durations = [
            job.processing_seconds for job in completed
            if job.processing_seconds is not None
        ]
        return ProcessingStats(
            total=len(jobs),
            completed=len(completed),
            failed=sum(1 for job in jobs if job.status == JobStatus.FAILED),
            average_time=sum(durations) / len(durations) if durations else 0.0,
        )

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def add_files(self, files: Iterable[UploadedFile]) -> List[Job]:
        """
        Store uploaded files and queue a PENDING job for each.

        The first new job becomes the selection when nothing is selected.
        Analysis is not started; see upload_files.
        """
        jobs = []
        for filename, data in files:
            source_uri, thumbnail_uri = self.image_store.save_upload(filename, data)
            job = Job(
                filename=filename,
                source_uri=source_uri,
                thumbnail_uri=thumbnail_uri,
                settings=default_settings(),
            )
            self.queue.insert(job)
            jobs.append(self.queue.get(job.id))

        if jobs and self.selected_job_id is None:
            self.selected_job_id = jobs[0].id

        logger.info(f"Uploaded {len(jobs)} file(s)")
        return jobs

    async def analyze_jobs(self, job_ids: Iterable[str]) -> None:
        """Run auto-analysis for freshly uploaded jobs."""
        await self.controller.analyze_many(job_ids)

    async def upload_files(self, files: Iterable[UploadedFile]) -> List[Job]:
        """
        Upload files and run auto-analysis for each new job.

        Returns:
            Snapshots of the new jobs after analysis finished.
        """
        jobs = self.add_files(files)
        await self.analyze_jobs([job.id for job in jobs])
        return [self.queue.get(job.id) for job in jobs]

    def set_selected(self, job_id: str) -> Job:
        """Select a job. Raises JobNotFoundError for unknown ids."""
        job = self.queue.get(job_id)
        self.selected_job_id = job_id
        return job

    def update_settings(self, job_id: str, partial: Mapping[str, Any]) -> Job:
        """
        Apply a partial settings edit.

        Raises:
            SettingsValidationError: If a value is unknown or out of range.
            JobNotFoundError: If the id is not queued.
            JobBusyError: If the job is being processed.
        """
        patch = validate_settings_patch(partial)
        job = self.queue.update(job_id, settings=patch)
        logger.info(f"Updated settings for {job_id}: {patch}")
        return job

    async def process_selected(self, cancel_token: Optional[CancelToken] = None) -> Job:
        """Process the selected job. Raises NoSelectionError when nothing is selected."""
        if self.selected_job_id is None:
            raise NoSelectionError()
        return await self.controller.process_one(self.selected_job_id, cancel_token=cancel_token)

    async def process_all_pending(self, cancel_token: Optional[CancelToken] = None) -> BatchReport:
        """Process every non-completed job; the selection follows the batch."""
        def focus(job_id: str) -> None:
            self.selected_job_id = job_id

        return await self.controller.process_all(on_focus=focus, cancel_token=cancel_token)
