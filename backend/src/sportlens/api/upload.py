"""
FastAPI router for image upload endpoints.

Uploading creates one PENDING job per file and starts auto-analysis in
the background.
"""

from pathlib import Path
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, File, HTTPException, UploadFile
from pydantic import BaseModel

from sportlens.api.dependencies import get_workspace
from sportlens.utils.logging_config import get_logger
from sportlens.workspace import Workspace

logger = get_logger(__name__)

router = APIRouter(prefix="/api/upload", tags=["upload"])

VALID_EXTENSIONS = [".jpg", ".jpeg", ".png", ".webp", ".gif", ".bmp", ".tif", ".tiff"]


class UploadResponse(BaseModel):
    """Response model for upload requests."""
    job_ids: List[str]
    filenames: List[str]
    message: str


@router.post("/", response_model=UploadResponse)
async def upload_images(
    background_tasks: BackgroundTasks,
    files: List[UploadFile] = File(...),
    workspace: Workspace = Depends(get_workspace)
):
    """
    Upload one or more images and queue a job for each.

    Args:
        background_tasks: FastAPI background tasks (runs auto-analysis)
        files: Image files
        workspace: Workspace (injected)

    Returns:
        UploadResponse with the new job ids

    Raises:
        HTTPException: 400 if any file is not an image
    """
    payload = []
    for file in files:
        file_ext = Path(file.filename or "").suffix.lower()
        is_image_type = bool(file.content_type and file.content_type.startswith("image/"))
        if not is_image_type and file_ext not in VALID_EXTENSIONS:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid file {file.filename}. Only image files are allowed."
            )
        payload.append((file.filename or "image", await file.read()))

    jobs = workspace.add_files(payload)
    job_ids = [job.id for job in jobs]
    background_tasks.add_task(workspace.analyze_jobs, job_ids)

    logger.info(f"Accepted {len(jobs)} upload(s); auto-analysis scheduled")
    return UploadResponse(
        job_ids=job_ids,
        filenames=[job.filename for job in jobs],
        message="Images uploaded successfully. Analysis has started."
    )
