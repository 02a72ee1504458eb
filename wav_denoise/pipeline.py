"""Tree walker and driver for a denoising run.

Orchestrates, for every `.wav` regular file under the input root, in
walk order: validate header -> mirror output path -> dispatch -> count.
Exactly one file is in flight at a time. Format rejections and
backend-reported failures are counted as skipped and the run goes on;
any DenoiseToolError propagates and ends the run.
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from wav_denoise.audio.wav_header import validate_wav
from wav_denoise.dispatch.interface import DenoiseRequest, Dispatcher
from wav_denoise.observability.metrics import RunMetrics, StageTimer, log_run_metrics
from wav_denoise.storage.mirror import Roots, build_candidate

logger = logging.getLogger(__name__)

WAV_SUFFIX = ".wav"


@dataclass
class Counters:
    """Per-run tallies; processed + skipped equals files attempted."""

    processed: int = 0
    skipped: int = 0

    def summary_line(self) -> str:
        return (
            f"Denoising complete: {self.processed} files processed, "
            f"{self.skipped} skipped."
        )


def _log_walk_error(exc: OSError) -> None:
    logger.warning(
        "Cannot read directory %s: %s",
        exc.filename,
        exc.strerror or exc,
        extra={"path": exc.filename, "stage": "walk"},
    )


def _is_regular_file(path: Path) -> bool:
    return path.is_file() and not path.is_symlink()


def iter_wav_files(roots: Roots) -> Iterator[Path]:
    """Yield every `.wav` regular file under the input root.

    Directories and files are visited in sorted name order. Symbolic
    links are neither followed nor yielded. When the output root sits
    inside the input root its subtree is not descended into.
    """
    prune_output = roots.output_inside_input

    for dirpath, dirnames, filenames in os.walk(
        roots.input_root, onerror=_log_walk_error
    ):
        current = Path(dirpath)
        dirnames.sort()
        if prune_output:
            dirnames[:] = [
                name for name in dirnames if current / name != roots.output_root
            ]

        for name in sorted(filenames):
            if not name.endswith(WAV_SUFFIX):
                continue
            path = current / name
            if _is_regular_file(path):
                yield path


def process_file(
    roots: Roots, dispatcher: Dispatcher, input_path: Path, counters: Counters
) -> bool:
    """Validate, map, and dispatch a single input file.

    Args:
        roots: Canonical input and output roots.
        dispatcher: Backend that produces the denoised file.
        input_path: Absolute path of a `.wav` file under the input root.
        counters: Run tallies, updated in place.

    Returns:
        True if the backend reported success, False if the file was skipped.

    Raises:
        HeaderError: If the header cannot be parsed.
        PathMappingError: If the output path cannot be prepared.
        DispatchError: On backend transport or spawn failures.
    """
    if not validate_wav(str(input_path)):
        logger.warning(
            "Skipping invalid WAV file: %s",
            input_path,
            extra={"path": str(input_path), "stage": "validate"},
        )
        counters.skipped += 1
        return False

    candidate = build_candidate(roots, input_path)
    request = DenoiseRequest(
        input_path=str(candidate.input_path),
        output_path=str(candidate.output_path),
    )

    timer = StageTimer("dispatch")
    with timer:
        outcome = dispatcher.dispatch(request)

    logger.debug(
        "Dispatched %s in %.3fs",
        candidate.relative_path,
        timer.duration_seconds,
        extra={
            "path": request.input_path,
            "stage": timer.stage_name,
            "duration_seconds": round(timer.duration_seconds, 3),
        },
    )

    if not outcome.success:
        message = f"Denoising failed for {input_path}"
        if outcome.reason:
            message = f"{message}: {outcome.reason}"
        logger.warning(
            message,
            extra={
                "path": str(input_path),
                "stage": "dispatch",
                "reason": outcome.reason,
            },
        )
        counters.skipped += 1
        return False

    counters.processed += 1
    return True


def process_tree(roots: Roots, dispatcher: Dispatcher) -> Counters:
    """Run the whole input tree through the dispatcher.

    Args:
        roots: Canonical input and output roots.
        dispatcher: Backend that produces the denoised files.

    Returns:
        Counters for the completed run.
    """
    counters = Counters()
    start = time.monotonic()

    logger.info(
        "Denoising %s into %s using %s backend",
        roots.input_root,
        roots.output_root,
        dispatcher.name,
    )

    for input_path in iter_wav_files(roots):
        process_file(roots, dispatcher, input_path, counters)

    log_run_metrics(
        RunMetrics(
            processed=counters.processed,
            skipped=counters.skipped,
            wall_time_seconds=time.monotonic() - start,
        )
    )
    return counters
