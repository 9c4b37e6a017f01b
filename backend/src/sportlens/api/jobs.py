"""
FastAPI router for job endpoints.

Provides REST API for listing jobs, editing settings and running
processing on the selected job or the whole queue.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel

from sportlens.jobs.errors import JobError
from sportlens.jobs.models import Job, JobStatus
from sportlens.api.dependencies import get_workspace, to_http_error
from sportlens.workspace import Workspace


router = APIRouter(prefix="/api/jobs", tags=["jobs"])


class JobResponse(BaseModel):
    """Response model for job data."""
    id: str
    filename: str
    source_uri: str
    thumbnail_uri: str
    status: str
    progress: float
    analysis: Optional[Dict[str, Any]] = None
    settings: Dict[str, Any]
    created_at: str
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    error: Optional[str] = None
    selected: bool = False

    @classmethod
    def from_job(cls, job: Job, workspace: Workspace) -> "JobResponse":
        return cls(**job.to_dict(), selected=job.id == workspace.selected_job_id)


class StatsResponse(BaseModel):
    """Response model for queue statistics."""
    total: int
    completed: int
    failed: int
    average_time: float
    is_batch_processing: bool
    selected_job_id: Optional[str] = None


class BatchResponse(BaseModel):
    """Response model for a batch run."""
    visited: List[str]
    completed: List[str]
    failed: List[str]
    skipped: List[str]


@router.get("/", response_model=List[JobResponse])
def get_jobs(
    status: Optional[JobStatus] = None,
    workspace: Workspace = Depends(get_workspace)
):
    """
    Get all jobs in queue order.

    Args:
        status: Optional status filter
        workspace: Workspace (injected)
    """
    return [JobResponse.from_job(job, workspace) for job in workspace.list_jobs(status)]


@router.get("/stats", response_model=StatsResponse)
def get_stats(workspace: Workspace = Depends(get_workspace)):
    """Get queue-wide processing statistics."""
    stats = workspace.stats()
    return StatsResponse(
        **stats.to_dict(),
        is_batch_processing=workspace.is_batch_processing,
        selected_job_id=workspace.selected_job_id,
    )


@router.post("/process-all", response_model=BatchResponse)
async def process_all(workspace: Workspace = Depends(get_workspace)):
    """
    Process every non-completed job sequentially.

    Returns when the whole batch has finished.
    """
    try:
        report = await workspace.process_all_pending()
    except JobError as e:
        raise to_http_error(e)
    return BatchResponse(**report.to_dict())


@router.post("/selected/process", response_model=JobResponse)
async def process_selected(workspace: Workspace = Depends(get_workspace)):
    """Process the currently selected job."""
    try:
        job = await workspace.process_selected()
    except JobError as e:
        raise to_http_error(e)
    return JobResponse.from_job(job, workspace)


@router.get("/{job_id}", response_model=JobResponse)
def get_job(job_id: str, workspace: Workspace = Depends(get_workspace)):
    """
    Get a specific job by ID.

    Raises:
        HTTPException: 404 if job not found
    """
    try:
        job = workspace.get_job(job_id)
    except JobError as e:
        raise to_http_error(e)
    return JobResponse.from_job(job, workspace)


@router.post("/{job_id}/select", response_model=JobResponse)
def select_job(job_id: str, workspace: Workspace = Depends(get_workspace)):
    """Make a job the current selection."""
    try:
        job = workspace.set_selected(job_id)
    except JobError as e:
        raise to_http_error(e)
    return JobResponse.from_job(job, workspace)


@router.patch("/{job_id}/settings", response_model=JobResponse)
def update_settings(
    job_id: str,
    patch: Dict[str, Any] = Body(...),
    workspace: Workspace = Depends(get_workspace)
):
    """
    Update some of a job's enhancement settings.

    Raises:
        HTTPException: 404 if job not found, 409 while processing,
            422 for out-of-range values
    """
    try:
        job = workspace.update_settings(job_id, patch)
    except JobError as e:
        raise to_http_error(e)
    return JobResponse.from_job(job, workspace)
