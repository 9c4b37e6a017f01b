"""
Shared FastAPI dependencies and error mapping.
"""

from typing import Optional

from fastapi import HTTPException, status

from sportlens.jobs.errors import (
    InvalidTransitionError,
    JobError,
    JobNotFoundError,
    NoSelectionError,
    SettingsValidationError,
)
from sportlens.workspace import Workspace

# Process-wide workspace (lazy loaded)
_workspace: Optional[Workspace] = None


def get_workspace() -> Workspace:
    """Get the process-wide workspace, creating it on first use."""
    global _workspace
    if _workspace is None:
        _workspace = Workspace()
    return _workspace


def reset_workspace() -> None:
    """Drop the process-wide workspace (useful for testing)."""
    global _workspace
    _workspace = None


def to_http_error(error: JobError) -> HTTPException:
    """Map a job error to the matching HTTP response."""
    if isinstance(error, JobNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, SettingsValidationError):
        return HTTPException(
            status_code=422,
            detail={"message": "Invalid settings", "errors": error.errors},
        )
    if isinstance(error, InvalidTransitionError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(error))
    if isinstance(error, NoSelectionError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))
