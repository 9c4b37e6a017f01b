"""
Grok VLM client for sports scene analysis.

Sends an image to xAI's Grok vision model and asks for a structured scene
analysis: lighting classification, athlete bounding boxes and exposure /
white balance suggestions.

The client never raises to its caller:
    - no API key configured -> fixed demo result
    - provider error, timeout, empty or malformed response -> fallback
      result with zero confidence

Requirements:
    - xai-sdk Python package: `pip install xai-sdk`
    - XAI_API_KEY environment variable set (optional, see above)
"""

import asyncio
import base64
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field
from xai_sdk import AsyncClient, Client
from xai_sdk.chat import image, user

from sportlens.config.settings import Settings, get_settings
from sportlens.jobs.models import (
    EV_OFFSET_RANGE,
    AnalysisResult,
    BoundingBox,
    Brightness,
    LightingCondition,
    SceneAttributes,
)
from sportlens.utils.logging_config import get_logger

logger = get_logger(__name__)


# =============================================================================
# PYDANTIC SCHEMAS FOR STRUCTURED OUTPUT
# =============================================================================

class BoundingBoxSchema(BaseModel):
    """Athlete bounding box normalized to a 0-100 scale."""
    ymin: float = Field(description="Top coordinate 0-100")
    xmin: float = Field(description="Left coordinate 0-100")
    ymax: float = Field(description="Bottom coordinate 0-100")
    xmax: float = Field(description="Right coordinate 0-100")
    label: str = Field(default="", description="Short label, e.g. 'Striker'")


class SceneAttributesSchema(BaseModel):
    brightness: Brightness = Field(description="LOW, MEDIUM or HIGH")
    dominant_colors: str = Field(description="Dominant colors in the frame")
    light_sources: str = Field(
        description="E.g. Natural Sun, Stadium Floodlights, Gym Fluorescent"
    )


class SceneAnalysisSchema(BaseModel):
    """Pydantic schema for scene analysis structured output."""
    sport_type: str = Field(description="The specific sport.")
    lighting_condition: LightingCondition = Field(
        description="The environmental lighting context."
    )
    scene_attributes: SceneAttributesSchema
    detected_athletes: List[BoundingBoxSchema] = Field(
        default_factory=list,
        description="Bounding boxes for main athletes."
    )
    subject_detected: bool
    suggested_ev: float = Field(description="Suggested exposure offset in stops")
    suggested_wb: float = Field(description="Suggested white balance offset or tint")
    confidence: float = Field(description="Confidence score between 0.0 and 1.0")


ANALYSIS_PROMPT = """Act as a professional sports photography editing system.

1. Scene Classification: Analyze the image brightness, dominant colors, and light sources to classify it as OUTDOOR_DAY, OUTDOOR_NIGHT, or INDOOR.
2. Object Detection: Detect the main athletes in the frame. Return bounding boxes (ymin, xmin, ymax, xmax) normalized to a 0-100 scale.
3. Recommendations: Suggest EV offset and White Balance tint corrections."""


# =============================================================================
# FIXED RESULTS
# =============================================================================

def demo_result() -> AnalysisResult:
    """Result returned when no provider credentials are configured."""
    return AnalysisResult(
        sport_type="Demo Sport",
        lighting_condition=LightingCondition.OUTDOOR_DAY,
        scene_attributes=SceneAttributes(
            brightness=Brightness.HIGH,
            dominant_colors="Green, Blue",
            light_sources="Sunlight",
        ),
        detected_athletes=(
            BoundingBox(ymin=20, xmin=30, ymax=80, xmax=70, label="Athlete"),
        ),
        subject_detected=True,
        suggested_ev=0.3,
        suggested_wb=0.0,
        confidence=0.85,
    )


def fallback_result() -> AnalysisResult:
    """Zero-confidence result substituted when the provider call fails."""
    return AnalysisResult(
        sport_type="Unknown",
        lighting_condition=LightingCondition.UNKNOWN,
        scene_attributes=SceneAttributes(
            brightness=Brightness.MEDIUM,
            dominant_colors="",
            light_sources="",
        ),
        detected_athletes=(),
        subject_detected=False,
        suggested_ev=0.0,
        suggested_wb=0.0,
        confidence=0.0,
    )


def is_fallback(result: AnalysisResult) -> bool:
    """True when the result carries no usable analysis."""
    return result == fallback_result()


def sanitize_box(box: BoundingBoxSchema) -> Optional[BoundingBox]:
    """
    Clamp a provider box into 0-100 and order its edges.

    Returns:
        The repaired box, or None when it has no area.
    """
    def clamp(value: float) -> float:
        return min(100.0, max(0.0, float(value)))

    ymin, ymax = sorted((clamp(box.ymin), clamp(box.ymax)))
    xmin, xmax = sorted((clamp(box.xmin), clamp(box.xmax)))
    if ymin == ymax or xmin == xmax:
        return None
    return BoundingBox(ymin=ymin, xmin=xmin, ymax=ymax, xmax=xmax, label=box.label)


def to_analysis_result(parsed: SceneAnalysisSchema) -> AnalysisResult:
    """Convert provider output into the domain result, repairing bad values."""
    boxes = []
    for raw in parsed.detected_athletes:
        box = sanitize_box(raw)
        if box is None:
            logger.warning(f"Dropping degenerate athlete box from provider: {raw}")
            continue
        boxes.append(box)

    low, high = EV_OFFSET_RANGE
    suggested_ev = min(high, max(low, parsed.suggested_ev))
    if suggested_ev != parsed.suggested_ev:
        logger.warning(
            f"Provider EV suggestion {parsed.suggested_ev} outside "
            f"[{low}, {high}] - clamped to {suggested_ev}"
        )

    confidence = min(1.0, max(0.0, parsed.confidence))
    if confidence != parsed.confidence:
        logger.warning(
            f"Provider confidence {parsed.confidence} outside [0, 1] - "
            f"clamped to {confidence}"
        )

    return AnalysisResult(
        sport_type=parsed.sport_type,
        lighting_condition=parsed.lighting_condition,
        scene_attributes=SceneAttributes(
            brightness=parsed.scene_attributes.brightness,
            dominant_colors=parsed.scene_attributes.dominant_colors,
            light_sources=parsed.scene_attributes.light_sources,
        ),
        detected_athletes=tuple(boxes),
        subject_detected=parsed.subject_detected,
        suggested_ev=suggested_ev,
        suggested_wb=parsed.suggested_wb,
        confidence=confidence,
    )


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass
class GrokConfig:
    """
    Configuration for the Grok analysis client.

    Attributes:
        model: Grok model name
        api_key: xAI API key. None means the demo path is used.
        detail: Image detail level ("low", "high", "auto")
        timeout_seconds: Upper bound for one provider call
    """
    model: str = "grok-4-1-fast"
    api_key: Optional[str] = None
    detail: str = "high"
    timeout_seconds: float = 60.0

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "GrokConfig":
        settings = settings or get_settings()
        return cls(
            model=settings.grok_model,
            api_key=settings.xai_api_key,
            detail=settings.grok_image_detail,
            timeout_seconds=settings.analysis_timeout_seconds,
        )

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key)


# =============================================================================
# CLIENT
# =============================================================================

class AnalysisClient:
    """
    Scene analysis over xAI's Grok vision API.

    Example:
        >>> client = AnalysisClient()
        >>> result = client.analyze(open("match.jpg", "rb").read())
        >>> print(f"{result.sport_type}: {result.lighting_condition.value}")
        Demo Sport: OUTDOOR_DAY
    """

    def __init__(
        self,
        config: Optional[GrokConfig] = None,
        client: Optional[Any] = None,
        async_client: Optional[Any] = None,
    ):
        """
        Initialize the analysis client.

        Args:
            config: Grok configuration. Built from settings if None.
            client: Pre-built sync xAI client (mainly for tests).
            async_client: Pre-built async xAI client (mainly for tests).
        """
        self.config = config or GrokConfig.from_settings()
        self._client = client
        self._async_client = async_client

        if self.config.has_credentials:
            logger.info(f"AnalysisClient initialized with model: {self.config.model}")
        else:
            logger.warning("No XAI_API_KEY provided - analysis returns demo data")

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = Client(
                api_key=self.config.api_key,
                timeout=self.config.timeout_seconds,
            )
        return self._client

    def _get_async_client(self) -> Any:
        # Created lazily so it binds to the running event loop
        if self._async_client is None:
            self._async_client = AsyncClient(
                api_key=self.config.api_key,
                timeout=self.config.timeout_seconds,
            )
        return self._async_client

    def _build_message(self, image_bytes: bytes, mime_type: str) -> Any:
        encoded = base64.b64encode(image_bytes).decode("utf-8")
        image_url = f"data:{mime_type};base64,{encoded}"
        return user(
            ANALYSIS_PROMPT,
            image(image_url=image_url, detail=self.config.detail)
        )

    def _handle_parsed(self, response: Any, parsed: Optional[SceneAnalysisSchema]) -> AnalysisResult:
        if parsed is None or not getattr(response, "content", None):
            logger.error("Analysis failed: empty response from provider")
            return fallback_result()

        logger.debug(
            f"Grok structured output: {parsed.sport_type} / "
            f"{parsed.lighting_condition.value} ({parsed.confidence:.2f})"
        )
        return to_analysis_result(parsed)

    def analyze(self, image_bytes: bytes, mime_type: str = "image/jpeg") -> AnalysisResult:
        """
        Analyze one image.

        Args:
            image_bytes: Raw image bytes in any common raster format.
            mime_type: MIME type used for the data URL.

        Returns:
            The parsed analysis, the demo result or the fallback result.
        """
        if not self.config.has_credentials:
            return demo_result()

        try:
            chat = self._get_client().chat.create(model=self.config.model)
            chat.append(self._build_message(image_bytes, mime_type))
            response, parsed = chat.parse(SceneAnalysisSchema)
            return self._handle_parsed(response, parsed)
        except Exception as e:
            logger.error(f"Analysis failed: {e}")
            return fallback_result()

    async def analyze_async(self, image_bytes: bytes, mime_type: str = "image/jpeg") -> AnalysisResult:
        """
        Async version of analyze using AsyncClient.

        Same contract as analyze: never raises.
        """
        if not self.config.has_credentials:
            return demo_result()

        try:
            chat = self._get_async_client().chat.create(model=self.config.model)
            chat.append(self._build_message(image_bytes, mime_type))
            response, parsed = await asyncio.wait_for(
                chat.parse(SceneAnalysisSchema),
                timeout=self.config.timeout_seconds,
            )
            return self._handle_parsed(response, parsed)
        except asyncio.TimeoutError:
            logger.error(
                f"Analysis failed: provider did not answer within "
                f"{self.config.timeout_seconds:.0f}s"
            )
            return fallback_result()
        except Exception as e:
            logger.error(f"Analysis failed: {e}")
            return fallback_result()

    def get_model_info(self) -> Dict:
        """Get information about the configured provider."""
        return {
            "backend": "grok",
            "model": self.config.model,
            "provider": "xai",
            "detail": self.config.detail,
            "credentials": self.config.has_credentials,
        }
