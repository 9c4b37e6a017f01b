"""
Simulated enhancement step.

Real pixel work is out of scope; the processor only takes a bounded
amount of time and reports progress while it runs.
"""

import asyncio
from typing import Callable, Optional, Protocol

from sportlens.jobs.models import Job
from sportlens.utils.logging_config import get_logger

logger = get_logger(__name__)

ProgressCallback = Callable[[float], None]


class Processor(Protocol):
    """Anything that can run the processing step for one job."""

    async def process(
        self,
        job: Job,
        duration_seconds: float,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        ...


class SimulatedProcessor:
    """
    Processor that sleeps in equal steps and reports progress after each one.

    Args:
        steps: Number of progress updates per run.
    """

    def __init__(self, steps: int = 10):
        if steps < 1:
            raise ValueError(f"steps must be >= 1, got {steps}")
        self.steps = steps

    async def process(
        self,
        job: Job,
        duration_seconds: float,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        step_delay = max(0.0, duration_seconds) / self.steps
        logger.debug(
            f"Simulating processing for {job.id} "
            f"({job.settings.style.value}, ev={job.settings.ev_offset:+.1f}) "
            f"over {duration_seconds:.2f}s"
        )
        for step in range(1, self.steps + 1):
            await asyncio.sleep(step_delay)
            if on_progress:
                on_progress(step * 100.0 / self.steps)
