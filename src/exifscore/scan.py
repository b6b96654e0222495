"""Scan module: find images and rank them by embedded aesthetic score."""

from __future__ import annotations

import logging
import math
import os
from collections.abc import Callable, Iterable
from pathlib import Path

from exifscore.collect import collect_metadata
from exifscore.errors import (
    InvalidPathError,
    InvalidThresholdError,
    MetadataError,
    PathNotFoundError,
)
from exifscore.parallel import analyze_files_parallel
from exifscore.score import extract_score
from exifscore.types import AestheticMatch

logger = logging.getLogger(__name__)

# Supported image formats (case-insensitive matching)
SUPPORTED_EXTENSIONS = frozenset(
    {
        ".jpg",
        ".jpeg",
        ".png",
        ".tif",
        ".tiff",
        ".webp",
        ".heic",
        ".heif",
        ".avif",
        ".bmp",
    }
)
DEFAULT_MIN_SCORE = 0.0


def is_supported_image(path: str | Path) -> bool:
    """Check the file extension against SUPPORTED_EXTENSIONS."""
    return os.path.splitext(path)[1].lower() in SUPPORTED_EXTENSIONS


def find_image_files(root: str | Path) -> list[str]:
    """Find all supported images under `root` (recursive).

    Directories are walked with an explicit stack, so nesting depth is
    not limited by the interpreter's recursion limit. Directories that
    cannot be listed, and entries that cannot be inspected, are skipped.
    Symlinked directories are followed, each directory is visited once.

    Args:
        root: Directory to scan.

    Returns:
        Paths joined from `root` as given. Order is unspecified.
    """
    pending = [os.fspath(root)]
    visited: set[tuple[int, int]] = set()
    files = []

    while pending:
        directory = pending.pop()
        try:
            st = os.stat(directory)
            key = (st.st_dev, st.st_ino)
            if key in visited:
                logger.debug("Already visited %s", directory)
                continue
            visited.add(key)
            with os.scandir(directory) as it:
                entries = list(it)
        except OSError as e:
            logger.debug("Skipping directory %s: %s", directory, e)
            continue

        for entry in entries:
            try:
                if entry.is_dir():
                    pending.append(entry.path)
                elif entry.is_file() and is_supported_image(entry.name):
                    files.append(entry.path)
            except OSError as e:
                logger.debug("Skipping entry %s: %s", entry.path, e)

    return files


def analyze_file(path: str, min_score: float) -> AestheticMatch | None:
    """Score a single file.

    Returns:
        AestheticMatch if the file is a supported image whose metadata
        holds an aesthetic score >= `min_score`, else None. Read and
        decode errors count as no match.
    """
    if not is_supported_image(path):
        return None

    try:
        fields = collect_metadata(path)
    except MetadataError as e:
        logger.debug("Skipping %s: %s", path, e)
        return None

    score = extract_score(fields)
    if score is None or score < min_score:
        return None
    return AestheticMatch(path=path, score=score)


def _validate_threshold(min_score: float) -> float:
    try:
        threshold = float(min_score)
    except (TypeError, ValueError):
        raise InvalidThresholdError() from None
    if not math.isfinite(threshold):
        raise InvalidThresholdError()
    return threshold


def scan(
    root: str | Path,
    min_score: float = DEFAULT_MIN_SCORE,
    workers: int | None = None,
    on_progress: Callable[[str, int, int], None] | None = None,
) -> list[AestheticMatch]:
    """Find images under `root` whose aesthetic score is at least `min_score`.

    Args:
        root: Directory to scan, or a single image file.
        min_score: Minimum score (inclusive). Must be finite.
        workers: Worker processes; None or 1 analyzes sequentially.
        on_progress: Called after each file with its path, the number of
            files analyzed so far and the total.

    Returns:
        Matches sorted by score, highest first.

    Raises:
        InvalidThresholdError: `min_score` is not a finite number.
        PathNotFoundError: `root` does not exist.
        InvalidPathError: `root` is neither a file nor a directory.
    """
    threshold = _validate_threshold(min_score)
    root = os.fspath(root)

    if not os.path.exists(root):
        raise PathNotFoundError()
    if os.path.isfile(root):
        files = [root]
    elif os.path.isdir(root):
        files = find_image_files(root)
    else:
        raise InvalidPathError()

    results: Iterable[AestheticMatch | None]
    if workers is not None and workers > 1 and len(files) > 1:
        results = analyze_files_parallel(files, threshold, workers)
    else:
        results = (analyze_file(path, threshold) for path in files)

    matches = []
    for done, (path, match) in enumerate(zip(files, results), 1):
        if match is not None:
            matches.append(match)
        if on_progress is not None:
            on_progress(path, done, len(files))

    # Stable: equal scores keep discovery order
    matches.sort(key=lambda m: m.score, reverse=True)

    logger.info(
        "Scanned %d files under %s, %d with score >= %g",
        len(files),
        root,
        len(matches),
        threshold,
    )
    return matches


def find_aesthetic_matches(path: str, min_score: float) -> list[AestheticMatch]:
    """Scan a folder or file for images at or above `min_score`.

    Raises:
        ScanError: With a message suitable for the user.
    """
    return scan(path, min_score)
