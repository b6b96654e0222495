"""Parallel processing utilities for exifscore.

Uses ProcessPoolExecutor to analyze many files at once. Per-file
analysis has no shared state, so files can be handed out freely.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from concurrent.futures import ProcessPoolExecutor
from itertools import repeat

from exifscore.types import AestheticMatch


def _analyze_single_file(path: str, min_score: float) -> AestheticMatch | None:
    """Analyze a single file (runs in worker process).

    Args:
        path: Image file path.
        min_score: Threshold a score must reach.

    Returns:
        AestheticMatch, or None when the file has no qualifying score.
    """
    # Import inside function to avoid pickling module-level state
    from exifscore.scan import analyze_file

    return analyze_file(path, min_score)


def analyze_files_parallel(
    files: list[str],
    min_score: float,
    workers: int | None = None,
) -> Iterator[AestheticMatch | None]:
    """Analyze multiple files in parallel.

    Results are yielded in the order of `files`, so rankings built from
    them match a sequential scan.

    Args:
        files: Image file paths.
        min_score: Threshold a score must reach.
        workers: Number of worker processes (default: get_default_workers()).

    Yields:
        One result per input file.
    """
    if not files:
        return

    if workers is None:
        workers = get_default_workers()

    # Limit workers to reasonable bounds
    workers = max(1, min(workers, 16, len(files)))
    chunksize = max(1, len(files) // (workers * 4))

    with ProcessPoolExecutor(max_workers=workers) as executor:
        yield from executor.map(
            _analyze_single_file, files, repeat(min_score), chunksize=chunksize
        )


def get_default_workers() -> int:
    """Get default number of workers based on CPU count."""
    cpu_count = os.cpu_count() or 4
    # Use N-1 CPUs to leave headroom, minimum 1
    return max(1, cpu_count - 1)
