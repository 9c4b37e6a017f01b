"""
Data models for the image job queue.
"""

import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class JobStatus(str, Enum):
    """Job lifecycle status."""
    PENDING = "PENDING"
    ANALYZING = "ANALYZING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class SportStyle(str, Enum):
    """Look applied by the enhancement step."""
    REALISTIC = "REALISTIC"
    VIBRANT = "VIBRANT"
    DRAMATIC = "DRAMATIC"


class LightingCondition(str, Enum):
    """Environmental lighting context detected in the scene."""
    OUTDOOR_DAY = "OUTDOOR_DAY"
    OUTDOOR_NIGHT = "OUTDOOR_NIGHT"
    INDOOR = "INDOOR"
    UNKNOWN = "UNKNOWN"


class Brightness(str, Enum):
    """Coarse scene brightness."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


# Allowed ranges for the user-adjustable settings
EV_OFFSET_RANGE = (-2.0, 2.0)
CONTRAST_RANGE = (0, 50)
SHARPNESS_RANGE = (0, 100)


@dataclass(frozen=True)
class EnhancementSettings:
    """
    Per-job enhancement settings. Always fully populated.

    Attributes:
        ev_offset: Exposure correction in stops.
        contrast: Contrast boost.
        sharpness: Sharpening amount.
        style: Overall look.
    """
    ev_offset: float = 0.0
    contrast: int = 15
    sharpness: int = 30
    style: SportStyle = SportStyle.REALISTIC

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ev_offset": self.ev_offset,
            "contrast": self.contrast,
            "sharpness": self.sharpness,
            "style": self.style.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EnhancementSettings":
        defaults = cls()
        return cls(
            ev_offset=float(data.get("ev_offset", defaults.ev_offset)),
            contrast=int(data.get("contrast", defaults.contrast)),
            sharpness=int(data.get("sharpness", defaults.sharpness)),
            style=SportStyle(data.get("style", defaults.style)),
        )


@dataclass(frozen=True)
class BoundingBox:
    """Athlete bounding box with coordinates on a 0-100 scale."""
    ymin: float
    xmin: float
    ymax: float
    xmax: float
    label: str = ""

    @property
    def is_valid(self) -> bool:
        """True when the box satisfies the 0 <= min < max <= 100 contract."""
        return (
            0 <= self.xmin < self.xmax <= 100
            and 0 <= self.ymin < self.ymax <= 100
        )


@dataclass(frozen=True)
class SceneAttributes:
    """Descriptive attributes used to classify the lighting."""
    brightness: Brightness = Brightness.MEDIUM
    dominant_colors: str = ""
    light_sources: str = ""


@dataclass(frozen=True)
class AnalysisResult:
    """
    Structured scene analysis for one image.

    Attributes:
        sport_type: Detected sport.
        lighting_condition: Lighting context.
        scene_attributes: Brightness, colors and light sources.
        detected_athletes: Athlete boxes in detection order (may be empty).
        subject_detected: Whether a main subject was found.
        suggested_ev: Suggested exposure correction.
        suggested_wb: Suggested white balance offset.
        confidence: Provider confidence in [0, 1].
    """
    sport_type: str
    lighting_condition: LightingCondition
    scene_attributes: SceneAttributes
    detected_athletes: Tuple[BoundingBox, ...] = ()
    subject_detected: bool = False
    suggested_ev: float = 0.0
    suggested_wb: float = 0.0
    confidence: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        data["lighting_condition"] = self.lighting_condition.value
        data["scene_attributes"]["brightness"] = self.scene_attributes.brightness.value
        data["detected_athletes"] = [asdict(box) for box in self.detected_athletes]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisResult":
        """Create analysis result from dictionary."""
        scene = data.get("scene_attributes") or {}
        return cls(
            sport_type=data.get("sport_type", ""),
            lighting_condition=LightingCondition(data.get("lighting_condition", "UNKNOWN")),
            scene_attributes=SceneAttributes(
                brightness=Brightness(scene.get("brightness", "MEDIUM")),
                dominant_colors=scene.get("dominant_colors", ""),
                light_sources=scene.get("light_sources", ""),
            ),
            detected_athletes=tuple(
                BoundingBox(**box) for box in data.get("detected_athletes", [])
            ),
            subject_detected=bool(data.get("subject_detected", False)),
            suggested_ev=float(data.get("suggested_ev", 0.0)),
            suggested_wb=float(data.get("suggested_wb", 0.0)),
            confidence=float(data.get("confidence", 0.0)),
        )


def generate_job_id() -> str:
    """Generate a collision-resistant job identifier."""
    return uuid.uuid4().hex


@dataclass
class Job:
    """
    One queued image with its status, settings and analysis.

    Attributes:
        id: Unique job identifier, immutable once created.
        filename: Display filename.
        source_uri: Handle of the full-resolution image.
        thumbnail_uri: Handle of the thumbnail image.
        status: Current lifecycle status.
        progress: Informational progress, 0-100.
        analysis: Scene analysis once available.
        settings: Enhancement settings, always populated.
        created_at: Job creation timestamp.
        started_at: First time the job entered PROCESSING.
        completed_at: Time the job reached COMPLETED or FAILED.
        error: Error message if the job failed.
    """
    filename: str
    source_uri: str
    thumbnail_uri: str
    id: str = field(default_factory=generate_job_id)
    status: JobStatus = JobStatus.PENDING
    progress: float = 0.0
    analysis: Optional[AnalysisResult] = None
    settings: EnhancementSettings = field(default_factory=EnhancementSettings)
    created_at: datetime = field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert job to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "filename": self.filename,
            "source_uri": self.source_uri,
            "thumbnail_uri": self.thumbnail_uri,
            "status": self.status.value,
            "progress": self.progress,
            "analysis": self.analysis.to_dict() if self.analysis else None,
            "settings": self.settings.to_dict(),
            "created_at": self.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "error": self.error,
        }

    @property
    def processing_seconds(self) -> Optional[float]:
        """Wall time spent between entering PROCESSING and finishing."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None


@dataclass(frozen=True)
class ProcessingStats:
    """Queue-wide processing summary."""
    total: int
    completed: int
    failed: int
    average_time: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "completed": self.completed,
            "failed": self.failed,
            "average_time": round(self.average_time, 3),
        }
