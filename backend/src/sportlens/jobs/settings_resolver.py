"""
Resolution of per-job enhancement settings.

Settings come from three places: the defaults a fresh upload gets, the
values an operator edits, and the suggestions returned by scene analysis.
Analysis only ever touches exposure and (for indoor scenes) contrast;
sharpness and style stay under user control.
"""

from dataclasses import replace
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, ValidationError, field_validator

from sportlens.jobs.errors import SettingsValidationError
from sportlens.jobs.models import (
    CONTRAST_RANGE,
    EV_OFFSET_RANGE,
    SHARPNESS_RANGE,
    AnalysisResult,
    EnhancementSettings,
    LightingCondition,
    SportStyle,
)
from sportlens.utils.logging_config import get_logger

logger = get_logger(__name__)

# Contrast forced onto indoor scenes after analysis
INDOOR_CONTRAST = 25


class SettingsPatch(BaseModel):
    """Partial settings edit coming from an operator."""
    model_config = ConfigDict(extra="forbid")

    ev_offset: Optional[float] = Field(
        default=None,
        ge=EV_OFFSET_RANGE[0],
        le=EV_OFFSET_RANGE[1],
        description="Exposure correction in stops",
    )
    contrast: Optional[StrictInt] = Field(
        default=None,
        ge=CONTRAST_RANGE[0],
        le=CONTRAST_RANGE[1],
        description="Contrast boost",
    )
    sharpness: Optional[StrictInt] = Field(
        default=None,
        ge=SHARPNESS_RANGE[0],
        le=SHARPNESS_RANGE[1],
        description="Sharpening amount",
    )
    style: Optional[SportStyle] = Field(
        default=None,
        description="REALISTIC, VIBRANT or DRAMATIC",
    )

    @field_validator("ev_offset", mode="before")
    @classmethod
    def _reject_non_numeric(cls, value: Any) -> Any:
        if isinstance(value, (bool, str)):
            raise ValueError("must be a number")
        return value


def default_settings() -> EnhancementSettings:
    """Settings a freshly uploaded job starts with."""
    return EnhancementSettings()


def merge_analysis_into_settings(
    current: Optional[EnhancementSettings],
    analysis: AnalysisResult
) -> EnhancementSettings:
    """
    Fold analysis suggestions into a job's settings.

    Args:
        current: Settings before the merge. None is treated as defaults.
        analysis: Scene analysis for the job.

    Returns:
        New settings with ev_offset taken from the suggestion and contrast
        raised for indoor scenes. Sharpness and style are unchanged.
    """
    if current is None:
        logger.warning("Merging analysis into missing settings - using defaults")
        current = default_settings()

    contrast = current.contrast
    if analysis.lighting_condition == LightingCondition.INDOOR:
        contrast = INDOOR_CONTRAST

    return replace(current, ev_offset=analysis.suggested_ev, contrast=contrast)


def validate_settings_patch(patch: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Validate a partial settings edit against the allowed domains.

    Out-of-range values are rejected rather than clamped.

    Args:
        patch: Field name to new value.

    Returns:
        Cleaned patch containing only the provided fields.

    Raises:
        SettingsValidationError: If any field is unknown, mistyped or out of range.
    """
    try:
        parsed = SettingsPatch.model_validate(dict(patch))
    except ValidationError as e:
        errors = {}
        for err in e.errors():
            name = ".".join(str(part) for part in err["loc"]) or "settings"
            errors.setdefault(name, err["msg"])
        raise SettingsValidationError(errors) from e

    cleaned = parsed.model_dump(exclude_unset=True)

    # Explicit nulls are not edits
    return {name: value for name, value in cleaned.items() if value is not None}


def apply_settings_patch(
    current: EnhancementSettings,
    patch: Mapping[str, Any]
) -> EnhancementSettings:
    """Shallow-merge patch fields over current settings."""
    if not patch:
        return current
    unknown = set(patch) - set(EnhancementSettings.__dataclass_fields__)
    if unknown:
        raise SettingsValidationError({name: "unknown setting" for name in sorted(unknown)})
    return replace(current, **patch)
