"""API routers for the batch core."""

from .jobs import router as jobs_router
from .upload import router as upload_router

__all__ = ["jobs_router", "upload_router"]
