"""
FastAPI server for the SportLens batch core.

Provides REST API endpoints for uploads, jobs and batch processing.

Usage:
    uvicorn server:app --reload
    # or
    python server.py
"""

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from sportlens import __version__
from sportlens.api import jobs_router, upload_router
from sportlens.api.dependencies import get_workspace
from sportlens.config import get_settings
from sportlens.utils import setup_logging
from sportlens.workspace import Workspace

app = FastAPI(
    title="SportLens Batch API",
    description="Queue, analyze and batch-process sports photos",
    version=__version__
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(jobs_router)
app.include_router(upload_router)


@app.on_event("startup")
def on_startup():
    """Configure logging and build the workspace."""
    setup_logging(get_settings().log_file)
    get_workspace()


@app.get("/")
def read_root():
    """Root endpoint - API information."""
    return {
        "name": "SportLens Batch API",
        "version": __version__,
        "endpoints": {
            "upload": "/api/upload/",
            "jobs": "/api/jobs/*",
            "docs": "/docs",
            "redoc": "/redoc"
        }
    }


@app.get("/health")
def health_check(workspace: Workspace = Depends(get_workspace)):
    """Health check endpoint."""
    return {
        "status": "healthy",
        "analysis": workspace.analysis_client.get_model_info(),
        "jobs": len(workspace.queue),
    }


if __name__ == "__main__":
    uvicorn.run(
        "server:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
