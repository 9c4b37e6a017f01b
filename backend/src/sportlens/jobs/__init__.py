"""
Job queue and state machine for batch image enhancement.
"""

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
    SportStyle,
)
from sportlens.jobs.job_queue import JobQueue

__all__ = [
    "AnalysisResult",
    "BoundingBox",
    "Brightness",
    "EnhancementSettings",
    "Job",
    "JobQueue",
    "JobStatus",
    "LightingCondition",
    "ProcessingStats",
    "SceneAttributes",
    "SportStyle",
]
