"""
Configuration settings for the SportLens batch core.

Supports loading from environment variables with fallback defaults.
Uses python-dotenv for .env file support.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from sportlens.utils.logging_config import get_logger

load_dotenv()

logger = get_logger(__name__)


def _get_env_float(key: str, default: float) -> float:
    """Get float from environment variable."""
    value = os.getenv(key)
    return float(value) if value else default


def _get_env_int(key: str, default: int) -> int:
    """Get integer from environment variable."""
    value = os.getenv(key)
    return int(value) if value else default


def _get_env_bool(key: str, default: bool) -> bool:
    """Get boolean from environment variable."""
    value = os.getenv(key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes")


def _get_env_str_list(key: str, default: List[str]) -> List[str]:
    """Get a comma separated list of strings from environment variable."""
    value = os.getenv(key)
    if value:
        return [item.strip() for item in value.split(",") if item.strip()]
    return default


@dataclass
class Settings:
    """
    Configuration settings for the batch core.

    All settings can be overridden via environment variables.

    Attributes:
        xai_api_key: xAI API key. When unset the analysis client returns
            its fixed demo result instead of calling the provider.
        grok_model: Grok vision model used for scene analysis.
        grok_image_detail: Image detail level sent with the request.
        analysis_timeout_seconds: Upper bound on a single provider call.
        max_concurrent_analyses: Concurrent auto-analyses after an upload.
        processing_seconds: Simulated duration of a single-job process.
        batch_processing_seconds: Simulated duration per job in a batch.
        progress_steps: Number of progress updates per processing run.
        data_dir: Directory for uploaded images and thumbnails.
        seed_demo_job: Queue the demo job when a workspace starts.
        cors_origins: Allowed origins for the HTTP API.
        log_file: Optional log file path.
    """

    xai_api_key: Optional[str] = field(
        default_factory=lambda: os.getenv("XAI_API_KEY") or None
    )
    grok_model: str = field(
        default_factory=lambda: os.getenv("GROK_MODEL", "grok-4-1-fast")
    )
    grok_image_detail: str = field(
        default_factory=lambda: os.getenv("GROK_IMAGE_DETAIL", "high")
    )
    analysis_timeout_seconds: float = field(
        default_factory=lambda: _get_env_float("ANALYSIS_TIMEOUT_SECONDS", 60.0)
    )
    max_concurrent_analyses: int = field(
        default_factory=lambda: _get_env_int("MAX_CONCURRENT_ANALYSES", 4)
    )

    # The single-job run is deliberately slower than a batch step
    processing_seconds: float = field(
        default_factory=lambda: _get_env_float("PROCESSING_SECONDS", 1.5)
    )
    batch_processing_seconds: float = field(
        default_factory=lambda: _get_env_float("BATCH_PROCESSING_SECONDS", 0.8)
    )
    progress_steps: int = field(
        default_factory=lambda: _get_env_int("PROGRESS_STEPS", 10)
    )

    data_dir: Path = field(
        default_factory=lambda: Path(os.getenv("DATA_DIR", "data"))
    )
    seed_demo_job: bool = field(
        default_factory=lambda: _get_env_bool("SEED_DEMO_JOB", False)
    )
    cors_origins: List[str] = field(
        default_factory=lambda: _get_env_str_list(
            "CORS_ORIGINS",
            ["http://localhost:3000", "http://127.0.0.1:3000"]
        )
    )
    log_file: Optional[str] = field(
        default_factory=lambda: os.getenv("LOG_FILE") or None
    )

    def __post_init__(self):
        """Normalize paths and report provider configuration."""
        self.data_dir = Path(self.data_dir)
        if self.xai_api_key:
            logger.info("xAI API key configured - live scene analysis enabled")
        else:
            logger.info("xAI API key not configured - analysis returns demo results")

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Create settings instance from environment variables.

        Returns:
            Settings instance with values from environment.
        """
        return cls()

    def validate(self) -> bool:
        """
        Validate all settings.

        Returns:
            True if all settings are valid.

        Raises:
            ValueError: If any setting is invalid.
        """
        if self.analysis_timeout_seconds <= 0:
            raise ValueError(
                f"analysis_timeout_seconds must be > 0, "
                f"got {self.analysis_timeout_seconds}"
            )

        if self.max_concurrent_analyses < 1:
            raise ValueError(
                f"max_concurrent_analyses must be >= 1, "
                f"got {self.max_concurrent_analyses}"
            )

        if self.processing_seconds < 0 or self.batch_processing_seconds < 0:
            raise ValueError("processing durations must be >= 0")

        if self.progress_steps < 1:
            raise ValueError(
                f"progress_steps must be >= 1, got {self.progress_steps}"
            )

        if self.grok_image_detail not in ("low", "high", "auto"):
            raise ValueError(
                f"grok_image_detail must be 'low', 'high' or 'auto', "
                f"got {self.grok_image_detail!r}"
            )

        return True


# Global settings instance (lazy loaded)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the global settings instance.

    Creates settings on first call, returns cached instance thereafter.

    Returns:
        Global Settings instance.
    """
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings() -> None:
    """Reset the global settings instance (useful for testing)."""
    global _settings
    _settings = None
