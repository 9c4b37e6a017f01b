"""
Command line entry point for the batch core.

Queues images, waits for auto-analysis and optionally processes the batch.

Usage:
    sportlens photos/*.jpg                      # Upload and analyze
    sportlens photos/*.jpg --process-all        # ...then process everything
    sportlens a.jpg b.jpg --style VIBRANT --sharpness 60 --process-all
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from sportlens.config import get_settings
from sportlens.jobs.errors import JobError
from sportlens.jobs.models import Job, SportStyle
from sportlens.utils import get_logger, setup_logging
from sportlens.workspace import Workspace

logger = get_logger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="SportLens batch image queue",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument(
        "images",
        nargs="+",
        help="Image files to queue"
    )
    parser.add_argument(
        "--process-all",
        action="store_true",
        help="Process every job after analysis"
    )
    parser.add_argument(
        "--style",
        choices=[style.value for style in SportStyle],
        help="Style applied to every queued job"
    )
    parser.add_argument(
        "--sharpness",
        type=int,
        help="Sharpness applied to every queued job (0-100)"
    )
    parser.add_argument(
        "--data-dir",
        type=str,
        help="Directory for uploads and thumbnails"
    )
    parser.add_argument(
        "--log-file",
        type=str,
        help="Also write logs to this file"
    )
    return parser.parse_args(argv)


def read_images(paths: List[str]) -> List[tuple]:
    """Read image files; missing files are reported and skipped."""
    files = []
    for raw in paths:
        path = Path(raw)
        try:
            files.append((path.name, path.read_bytes()))
        except OSError as e:
            logger.error(f"Skipping {path}: {e}")
    return files


def print_summary(jobs: List[Job]) -> None:
    """Print one line per job."""
    print("-" * 78)
    print(f"{'FILE':<28} {'STATUS':<11} {'SCENE':<14} {'EV':>5} {'CON':>4} {'SHP':>4} STYLE")
    print("-" * 78)
    for job in jobs:
        scene = job.analysis.lighting_condition.value if job.analysis else "-"
        s = job.settings
        print(
            f"{job.filename[:28]:<28} {job.status.value:<11} {scene:<14} "
            f"{s.ev_offset:>+5.1f} {s.contrast:>4} {s.sharpness:>4} {s.style.value}"
        )
    print("-" * 78)


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    if args.data_dir:
        settings.data_dir = Path(args.data_dir)

    workspace = Workspace(settings)

    files = read_images(args.images)
    if not files:
        logger.error("No readable images given")
        return 1

    jobs = await workspace.upload_files(files)

    patch = {}
    if args.style:
        patch["style"] = args.style
    if args.sharpness is not None:
        patch["sharpness"] = args.sharpness
    if patch:
        for job in jobs:
            try:
                workspace.update_settings(job.id, patch)
            except JobError as e:
                logger.error(f"Could not update {job.filename}: {e}")
                return 2

    if args.process_all:
        report = await workspace.process_all_pending()
        print(
            f"\nBatch: {len(report.completed)} completed, "
            f"{len(report.failed)} failed, {len(report.skipped)} skipped"
        )

    print_summary(workspace.list_jobs())
    stats = workspace.stats()
    if stats.completed:
        print(f"Average processing time: {stats.average_time:.2f}s")
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the command line."""
    args = parse_args(argv)
    setup_logging(args.log_file or get_settings().log_file)

    try:
        code = asyncio.run(run(args))
    except ValueError as e:
        logger.error(str(e))
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
