"""
Logging setup shared by the API server and the CLI.

Every module logs through ``get_logger(__name__)`` so records carry the
``sportlens.<package>.<module>`` name, e.g. ``sportlens.jobs.job_queue`` for
status transitions or ``sportlens.analysis.grok_client`` for provider
fallbacks. ``setup_logging`` is called once at startup (server startup hook
or ``cli.main``) with ``Settings.log_file``; the file, when set, is appended
to so queue history from earlier runs is kept.
"""

import io
import logging
import sys
from pathlib import Path
from typing import Optional


def setup_logging(
    log_file: Optional[str] = None,
    level: int = logging.INFO,
    log_format: Optional[str] = None
) -> logging.Logger:
    """
    Route sportlens records to the console and, optionally, a log file.

    Replaces any handlers already on the root logger, so calling it twice
    (server reload, repeated CLI runs in one process) does not duplicate
    output. Provider SDK, gRPC, HTTP client and Pillow loggers are capped at
    WARNING so per-request chatter does not bury job transitions.

    Args:
        log_file: Log file appended to across runs. None logs to console only.
        level: Logging level (default: logging.INFO).
        log_format: Custom format string. If None, uses default format.

    Returns:
        Configured root logger.
    """
    if log_format is None:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    handlers: list[logging.Handler] = []

    # File handler with UTF-8 encoding
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(log_format))
        handlers.append(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(log_format))
    handlers.append(console_handler)

    logging.basicConfig(
        level=level,
        format=log_format,
        handlers=handlers,
        force=True
    )

    # Provider SDK and HTTP client chatter
    noisy_loggers = [
        "PIL",
        "urllib3",
        "httpx",
        "httpcore",
        "grpc",
        "xai_sdk",
        "multipart",
    ]
    for logger_name in noisy_loggers:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    _fix_windows_encoding()

    return logging.getLogger()


def _fix_windows_encoding() -> None:
    """Fix console encoding for Windows to handle special characters."""
    if sys.platform == "win32":
        if hasattr(sys.stdout, 'reconfigure'):
            sys.stdout.reconfigure(encoding='utf-8', errors='replace')
        elif hasattr(sys.stdout, 'buffer'):
            sys.stdout = io.TextIOWrapper(
                sys.stdout.buffer,
                encoding='utf-8',
                errors='replace'
            )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the specified name.

    Args:
        name: Logger name (typically __name__).

    Returns:
        Logger instance.
    """
    return logging.getLogger(name)
