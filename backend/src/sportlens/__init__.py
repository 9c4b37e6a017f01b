"""
SportLens Batch Core

Queue sports photos, analyze each scene with a vision model, tune
per-image enhancement settings and process the whole batch.
"""

from sportlens.workspace import Workspace

__version__ = "2.1.0"
__all__ = ["Workspace"]
