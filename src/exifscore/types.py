"""Value types shared by the extraction and scanning passes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class PngSection(StrEnum):
    """Section labels for fields read from PNG text chunks."""

    TEXT = "PNG tEXt"
    ZTXT = "PNG zTXt"
    ITXT = "PNG iTXt"


# IFD index -> section label for container tags
_IFD_SECTIONS = {0: "Primary", 1: "Thumbnail"}


def container_section(ifd: int) -> str:
    """Section label for a container tag read from image file directory `ifd`."""
    return _IFD_SECTIONS.get(ifd, f"IFD{ifd}")


@dataclass(frozen=True)
class MetadataField:
    """A single extracted metadata entry."""

    tag: str  # EXIF tag name or PNG keyword
    section: str  # "Primary", "Thumbnail", or a PngSection value
    value: str  # display-ready, units applied


@dataclass(frozen=True)
class AestheticMatch:
    """An image whose embedded aesthetic score passed the threshold."""

    path: str
    score: float


def field_sort_key(field: MetadataField) -> tuple[str, str]:
    """Order fields by section, then tag."""
    return (field.section, field.tag)
