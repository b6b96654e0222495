"""Export module: write scan results in various formats."""

from __future__ import annotations

import json
import shutil
from dataclasses import asdict
from datetime import UTC, datetime
from itertools import chain, count
from pathlib import Path
from typing import Literal

from exifscore.types import AestheticMatch

ExportFormat = Literal["list", "json", "copy"]


def export_list(
    matches: list[AestheticMatch],
    out_path: Path,
    source: Path | str | None = None,
    min_score: float | None = None,
) -> None:
    """Export ranked matches to a text file.

    Args:
        matches: Matches in rank order.
        out_path: Output file path.
        source: Scanned folder or file (for header).
        min_score: Threshold used for the scan (for header).
    """
    timestamp = datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")

    lines = [
        "# exifscore export",
        f"# generated: {timestamp}",
        f"# count: {len(matches)}",
    ]

    if source is not None:
        lines.append(f"# source: {source}")
    if min_score is not None:
        lines.append(f"# min_score: {min_score:g}")

    lines.append("")
    lines.extend(f"{m.score:.3f}\t{m.path}" for m in matches)

    out_path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def export_json(matches: list[AestheticMatch], out_path: Path) -> None:
    """Export matches as a JSON array of {"path", "score"} objects."""
    payload = [asdict(m) for m in matches]
    out_path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")


def export_copy(matches: list[AestheticMatch], out_dir: Path) -> int:
    """Copy matched files to output directory.

    Files sharing a name get `_1`, `_2`, ... appended to the stem.

    Returns:
        Number of files copied. Missing sources are skipped.
    """
    out_dir.mkdir(parents=True, exist_ok=True)
    copied = 0

    for match in matches:
        src = Path(match.path)
        if not src.exists():
            continue
        shutil.copy2(src, _free_name(out_dir, src.name))
        copied += 1

    return copied


def _free_name(out_dir: Path, name: str) -> Path:
    stem, suffix = Path(name).stem, Path(name).suffix
    candidates = chain([name], (f"{stem}_{n}{suffix}" for n in count(1)))
    return next(out_dir / c for c in candidates if not (out_dir / c).exists())
