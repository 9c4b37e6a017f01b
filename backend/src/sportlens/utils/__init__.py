"""
Utility modules for the batch core.
"""

from sportlens.utils.logging_config import setup_logging, get_logger

__all__ = ["setup_logging", "get_logger"]
