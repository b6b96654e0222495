"""Tests for exifscore.scan module."""

import math
import os
import struct
from pathlib import Path

import pytest
from PIL import Image
from PIL.PngImagePlugin import PngInfo

from exifscore.errors import (
    InvalidPathError,
    InvalidThresholdError,
    PathNotFoundError,
    ScanError,
)
from exifscore.scan import (
    SUPPORTED_EXTENSIONS,
    analyze_file,
    find_aesthetic_matches,
    find_image_files,
    is_supported_image,
    scan,
)


def save_scored_png(
    path: Path, score: str | None, tag: str = "aesthetic_score"
) -> Path:
    """Save a small PNG with an aesthetic score tEXt chunk."""
    info = PngInfo()
    if score is not None:
        info.add_text(tag, score)
    Image.new("RGB", (4, 4), (128, 128, 128)).save(path, "PNG", pnginfo=info)
    return path


def damage_idat(path: Path) -> Path:
    """Overwrite the compressed pixel data of a PNG with zeros."""
    data = bytearray(path.read_bytes())
    idat = data.index(b"IDAT")
    (length,) = struct.unpack(">I", data[idat - 4 : idat])
    data[idat + 4 : idat + 4 + length] = bytes(length)
    path.write_bytes(data)
    return path

class TestIsSupportedImage:
    def test_supported(self):
        assert is_supported_image("a.jpg")
        assert is_supported_image("dir/b.PNG")
        assert is_supported_image(Path("c.Tiff"))
        assert is_supported_image("d.heic")

    def test_unsupported(self):
        assert not is_supported_image("a.txt")
        assert not is_supported_image("a.nef")
        assert not is_supported_image("png")
        assert not is_supported_image("archive.png.zip")


class TestFindImageFiles:
    def test_recursive(self, tmp_path: Path):
        sub = tmp_path / "a" / "b"
        sub.mkdir(parents=True)
        (tmp_path / "top.jpg").touch()
        (sub / "deep.PNG").touch()
        (sub / "notes.txt").touch()

        files = find_image_files(tmp_path)
        assert sorted(Path(f).name for f in files) == ["deep.PNG", "top.jpg"]

    def test_paths_joined_from_root(self, tmp_path: Path):
        (tmp_path / "x.png").touch()
        files = find_image_files(str(tmp_path))
        assert files == [os.path.join(str(tmp_path), "x.png")]

    def test_deep_nesting(self, tmp_path: Path):
        current = tmp_path
        for _ in range(200):
            current = current / "d"
        current.mkdir(parents=True)
        (current / "bottom.png").touch()

        files = find_image_files(tmp_path)
        assert len(files) == 1

    def test_symlink_cycle(self, tmp_path: Path):
        (tmp_path / "a.png").touch()
        try:
            os.symlink(tmp_path, tmp_path / "loop", target_is_directory=True)
        except (OSError, NotImplementedError):
            pytest.skip("symlinks not supported")

        files = find_image_files(tmp_path)
        assert len(files) == 1

    def test_empty(self, tmp_path: Path):
        assert find_image_files(tmp_path) == []


class TestAnalyzeFile:
    def test_match(self, tmp_path: Path):
        path = save_scored_png(tmp_path / "a.png", "0.82")
        match = analyze_file(str(path), 0.5)
        assert match is not None
        assert match.path == str(path)
        assert math.isclose(match.score, 0.82)

    def test_below_threshold(self, tmp_path: Path):
        path = save_scored_png(tmp_path / "a.png", "0.25")
        assert analyze_file(str(path), 0.5) is None

    def test_threshold_inclusive(self, tmp_path: Path):
        path = save_scored_png(tmp_path / "a.png", "0.5")
        assert analyze_file(str(path), 0.5) is not None

    def test_no_score(self, tmp_path: Path):
        path = save_scored_png(tmp_path / "a.png", None)
        assert analyze_file(str(path), 0.0) is None

    def test_corrupt_file(self, tmp_path: Path):
        path = tmp_path / "broken.jpg"
        path.write_bytes(b"not really a jpeg")
        assert analyze_file(str(path), 0.0) is None

    def test_unsupported_extension(self, tmp_path: Path):
        path = save_scored_png(tmp_path / "a.png", "0.9")
        renamed = path.rename(tmp_path / "a.dat")
        assert analyze_file(str(renamed), 0.0) is None


class TestScan:
    def test_threshold_filters(self, tmp_path: Path):
        save_scored_png(tmp_path / "good.png", "0.82")
        save_scored_png(tmp_path / "bad.png", "0.25")

        matches = scan(tmp_path, 0.5)
        assert len(matches) == 1
        assert Path(matches[0].path).name == "good.png"
        assert math.isclose(matches[0].score, 0.82)

    def test_sorted_descending(self, tmp_path: Path):
        sub = tmp_path / "sub"
        sub.mkdir()
        save_scored_png(tmp_path / "a.png", "0.4")
        save_scored_png(sub / "b.png", "0.9")
        save_scored_png(tmp_path / "c.png", "Score: 0.7/1.0", tag="Aesthetic Score")

        matches = scan(tmp_path, 0.0)
        assert [m.score for m in matches] == [0.9, 0.7, 0.4]

    def test_results_respect_threshold_and_extensions(self, tmp_path: Path):
        for i, score in enumerate(["0.1", "0.6", "0.3", "0.95", "0.5"]):
            save_scored_png(tmp_path / f"img{i}.png", score)
        (tmp_path / "readme.txt").write_text("aesthetic_score 0.99")

        matches = scan(tmp_path, 0.5)
        assert len(matches) == 3
        for m in matches:
            assert m.score >= 0.5
            assert os.path.splitext(m.path)[1].lower() in SUPPORTED_EXTENSIONS

    def test_skips_broken_files(self, tmp_path: Path):
        save_scored_png(tmp_path / "ok.png", "0.8")
        (tmp_path / "broken.jpg").write_bytes(b"\xff\xd8\xff garbage")
        (tmp_path / "empty.png").write_bytes(b"")

        matches = scan(tmp_path, 0.0)
        assert [Path(m.path).name for m in matches] == ["ok.png"]

    def test_damaged_pixel_data_keeps_score(self, tmp_path: Path):
        damage_idat(save_scored_png(tmp_path / "damaged.png", "0.9"))
        save_scored_png(tmp_path / "ok.png", "0.6")

        matches = scan(tmp_path, 0.5)
        assert [(Path(m.path).name, m.score) for m in matches] == [
            ("damaged.png", 0.9),
            ("ok.png", 0.6),
        ]

    def test_single_file(self, tmp_path: Path):
        path = save_scored_png(tmp_path / "a.png", "0.7")
        matches = scan(path, 0.5)
        assert len(matches) == 1
        assert matches[0].path == str(path)

    def test_single_file_below_threshold(self, tmp_path: Path):
        path = save_scored_png(tmp_path / "a.png", "0.2")
        assert scan(path, 0.5) == []

    def test_missing_path(self, tmp_path: Path):
        with pytest.raises(PathNotFoundError):
            scan(tmp_path / "nope", 0.5)

    @pytest.mark.parametrize("threshold", [math.nan, math.inf, -math.inf, "abc", None])
    def test_invalid_threshold(self, tmp_path: Path, threshold):
        with pytest.raises(InvalidThresholdError):
            scan(tmp_path, threshold)

    def test_threshold_checked_before_path(self, tmp_path: Path):
        with pytest.raises(InvalidThresholdError):
            scan(tmp_path / "nope", math.nan)

    @pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="requires mkfifo")
    def test_invalid_path(self, tmp_path: Path):
        fifo = tmp_path / "pipe"
        os.mkfifo(fifo)
        with pytest.raises(InvalidPathError):
            scan(fifo, 0.5)

    def test_progress_callback(self, tmp_path: Path):
        save_scored_png(tmp_path / "a.png", "0.8")
        save_scored_png(tmp_path / "b.png", None)
        calls = []

        scan(tmp_path, 0.0, on_progress=lambda p, d, t: calls.append((d, t)))
        assert calls == [(1, 2), (2, 2)]

    def test_parallel_matches_sequential(self, tmp_path: Path):
        for i, score in enumerate(["0.1", "0.6", "0.3", "0.95", "0.5", "0.6"]):
            save_scored_png(tmp_path / f"img{i}.png", score)

        sequential = scan(tmp_path, 0.3)
        parallel = scan(tmp_path, 0.3, workers=2)
        assert parallel == sequential


class TestFindAestheticMatches:
    def test_scan(self, tmp_path: Path):
        save_scored_png(tmp_path / "a.png", "0.82")
        matches = find_aesthetic_matches(str(tmp_path), 0.5)
        assert len(matches) == 1

    def test_error_messages(self, tmp_path: Path):
        with pytest.raises(ScanError, match="does not exist"):
            find_aesthetic_matches(str(tmp_path / "missing"), 0.5)
        with pytest.raises(ScanError, match="finite"):
            find_aesthetic_matches(str(tmp_path), math.nan)
