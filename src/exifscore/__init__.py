"""exifscore: Image metadata reader and aesthetic score finder."""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict
from itertools import groupby
from pathlib import Path
from typing import get_args

from exifscore.collect import read_metadata
from exifscore.errors import MetadataError, ScanError
from exifscore.export import ExportFormat
from exifscore.scan import DEFAULT_MIN_SCORE, find_aesthetic_matches
from exifscore.types import AestheticMatch, MetadataField

__version__ = "0.1.0"

DEFAULT_TOP = 20

__all__ = [
    "AestheticMatch",
    "MetadataError",
    "MetadataField",
    "ScanError",
    "find_aesthetic_matches",
    "main",
    "read_metadata",
]


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="exifscore",
        description="Image metadata reader and aesthetic score finder.",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Show debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # read command
    read_parser = subparsers.add_parser("read", help="Show metadata of an image")
    read_parser.add_argument("path", type=Path, help="Image file")
    read_parser.add_argument(
        "--json", action="store_true", help="Print fields as JSON"
    )

    # scan command
    scan_parser = subparsers.add_parser(
        "scan", help="Find images with an aesthetic score above a threshold"
    )
    scan_parser.add_argument("path", type=Path, help="Folder or image file to scan")
    scan_parser.add_argument(
        "--min-score",
        type=float,
        default=DEFAULT_MIN_SCORE,
        help=f"Minimum aesthetic score (default: {DEFAULT_MIN_SCORE})",
    )
    scan_parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help=(
            "Worker processes for parallel analysis, 0 for one per spare CPU "
            "(default: sequential)"
        ),
    )
    scan_parser.add_argument(
        "--top",
        type=int,
        default=DEFAULT_TOP,
        help=f"Show top N images (default: {DEFAULT_TOP})",
    )
    scan_parser.add_argument("--out", type=Path, default=None, help="Output path")
    scan_parser.add_argument(
        "--format",
        choices=get_args(ExportFormat),
        default="list",
        help="Export format for --out: list, json, or copy (default: list)",
    )

    args = parser.parse_args(argv)

    from exifscore.ui import setup_logging

    setup_logging(args.verbose)

    if args.command == "read":
        return cmd_read(args.path, args.json)
    if args.command == "scan":
        return cmd_scan(
            args.path, args.min_score, args.workers, args.top, args.out, args.format
        )

    parser.print_help()
    return 1


def cmd_read(path: Path, as_json: bool) -> int:
    """Print metadata of a single image."""
    try:
        fields = read_metadata(str(path))
    except MetadataError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if as_json:
        print(json.dumps([asdict(f) for f in fields], indent=2))
        return 0

    if not fields:
        print("No metadata was found in the selected file.")
        return 0

    for section, group in groupby(fields, key=lambda f: f.section):
        print(f"[{section}]")
        for field in group:
            value = field.value.replace("\n", "\n" + " " * (len(field.tag) + 4))
            print(f"  {field.tag}: {value}")
        print()

    print(f"{len(fields)} fields")
    return 0


def cmd_scan(
    path: Path,
    min_score: float,
    workers: int | None,
    top: int,
    out: Path | None,
    fmt: ExportFormat,
) -> int:
    """Scan for images at or above a score and print the ranking."""
    from exifscore.export import export_copy, export_json, export_list
    from exifscore.parallel import get_default_workers
    from exifscore.scan import scan
    from exifscore.ui import create_progress

    if workers == 0:
        workers = get_default_workers()

    with create_progress() as progress:
        task = progress.add_task("[cyan]Scanning...", total=None)

        def on_progress(file_path: str, done: int, total: int) -> None:
            progress.update(
                task,
                completed=done,
                total=total,
                description=f"[cyan]Scanning {Path(file_path).name}...",
            )

        try:
            matches = scan(path, min_score, workers=workers, on_progress=on_progress)
        except ScanError as e:
            progress.stop()
            print(f"Error: {e}", file=sys.stderr)
            return 1

    if not matches:
        print(f"No images found with an aesthetic score of at least {min_score:g}.")
    else:
        print(f"{'Rank':<5} {'Score':<8} {'File'}")
        print("-" * 80)
        for i, match in enumerate(matches[:top], 1):
            print(f"{i:<5} {match.score:>7.3f}  {match.path}")
        print()
        noun = "image" if len(matches) == 1 else "images"
        print(
            f"{len(matches)} {noun} found with an aesthetic score >= {min_score:g}."
        )

    if out is not None:
        if fmt == "list":
            export_list(matches, out, source=path, min_score=min_score)
            print(f"Wrote list to {out}")
        elif fmt == "json":
            export_json(matches, out)
            print(f"Wrote JSON to {out}")
        elif fmt == "copy":
            count = export_copy(matches, out)
            print(f"Copied {count} files to {out}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
