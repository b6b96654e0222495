"""Basic example demonstrating core functionality.

Creates a few PNGs with embedded aesthetic scores in a temporary folder,
reads one back, and ranks the folder.
"""

import tempfile
from pathlib import Path

from PIL import Image
from PIL.PngImagePlugin import PngInfo

from exifscore import find_aesthetic_matches, read_metadata


def make_image(path: Path, score: str) -> None:
    info = PngInfo()
    info.add_text("Software", "basic_example")
    info.add_text("aesthetic_score", score)
    Image.new("RGB", (16, 16), (90, 120, 200)).save(path, "PNG", pnginfo=info)


def main() -> None:
    """Run the basic example."""
    print("=" * 60)
    print("exifscore - Basic Example")
    print("=" * 60)

    with tempfile.TemporaryDirectory() as tmp:
        folder = Path(tmp)
        scores = [("sunset", "0.82"), ("blurry", "0.25"), ("portrait", "0.67")]
        for name, score in scores:
            make_image(folder / f"{name}.png", score)

        # Example 1: Reading metadata
        print("\n1. Metadata of sunset.png:")
        for field in read_metadata(str(folder / "sunset.png")):
            print(f"   [{field.section}] {field.tag}: {field.value}")

        # Example 2: Ranking a folder
        print("\n2. Images with score >= 0.5:")
        for match in find_aesthetic_matches(str(folder), 0.5):
            print(f"   {match.score:.3f}  {Path(match.path).name}")

    print("\n" + "=" * 60)
    print("Example completed!")
    print("=" * 60)


if __name__ == "__main__":
    main()
