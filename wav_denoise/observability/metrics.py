"""Run metrics collection and reporting.

Provides StageTimer for measuring how long each dispatch takes, and
RunMetrics with log_run_metrics() for a single structured record at the
end of a run.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class RunMetrics:
    """Totals for one traversal of the input tree."""

    processed: int
    skipped: int
    wall_time_seconds: float

    @property
    def attempted(self) -> int:
        return self.processed + self.skipped


class StageTimer:
    """Context manager that records wall-clock duration of a stage.

    Usage:
        timer = StageTimer("dispatch")
        with timer:
            do_work()
        print(timer.duration_seconds)
    """

    def __init__(self, stage_name: str) -> None:
        self.stage_name = stage_name
        self.duration_seconds: float = 0.0
        self._mono_start: float = 0.0

    def __enter__(self) -> StageTimer:
        self._mono_start = time.monotonic()
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        elapsed = time.monotonic() - self._mono_start
        self.duration_seconds = elapsed


def log_run_metrics(metrics: RunMetrics) -> None:
    """Emit run totals as one INFO record with structured extra fields.

    Args:
        metrics: Populated RunMetrics dataclass.
    """
    logger.info(
        "Run finished: %d attempted in %.2fs",
        metrics.attempted,
        metrics.wall_time_seconds,
        extra={
            "stage": "summary",
            "processed": metrics.processed,
            "skipped": metrics.skipped,
            "duration_seconds": round(metrics.wall_time_seconds, 3),
        },
    )
