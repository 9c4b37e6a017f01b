"""
Scene analysis through an external vision model.
"""

from sportlens.analysis.grok_client import (
    AnalysisClient,
    GrokConfig,
    SceneAnalysisSchema,
    demo_result,
    fallback_result,
    is_fallback,
)

__all__ = [
    "AnalysisClient",
    "GrokConfig",
    "SceneAnalysisSchema",
    "demo_result",
    "fallback_result",
    "is_fallback",
]
