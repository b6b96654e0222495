"""Container tag decoding via Pillow, and normalization into MetadataField."""

from __future__ import annotations

import io
import logging
import struct
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Literal

from PIL import ExifTags, Image, UnidentifiedImageError

from exifscore.png import PNG_SIGNATURE, find_exif_chunk
from exifscore.types import MetadataField, container_section, field_sort_key

logger = logging.getLogger(__name__)

TagGroup = Literal["exif", "gps"]

# IFD pointer tags; they locate sub-IFDs and carry no displayable value
_POINTER_TAGS = frozenset(
    {ExifTags.IFD.Exif, ExifTags.IFD.GPSInfo, ExifTags.IFD.Interop}
)

# Register HEIF opener only when needed (expensive import)
_heif_registered = False


def _register_heif() -> None:
    """Lazily register the pillow-heif opener with Pillow."""
    global _heif_registered
    if not _heif_registered:
        from pillow_heif import register_heif_opener

        register_heif_opener()
        _heif_registered = True


class DecodeError(Exception):
    """Container decoding failed."""


class NoTagData(DecodeError):
    """The container was recognized but holds no tags."""


class UnknownFormat(DecodeError):
    """The container format was not recognized."""


class UnexpectedEnd(DecodeError):
    """Data ended before decoding finished."""


@dataclass(frozen=True)
class TagRecord:
    """A raw tag as decoded from the container."""

    tag: int  # numeric tag id
    ifd: int  # 0 = primary image, 1 = thumbnail
    group: TagGroup  # selects the tag name table
    display: str  # formatted value, units applied


def read_tag_records(data: bytes) -> list[TagRecord]:
    """Decode container tags from image bytes.

    Args:
        data: Full file contents.

    Returns:
        Tag records in IFD order (primary, Exif, GPS, Interop, thumbnail).

    Raises:
        NoTagData: The image carries no tags.
        UnknownFormat: Pillow does not recognize the format.
        UnexpectedEnd: The data is truncated.
        DecodeError: Any other decoding failure.
    """
    _register_heif()

    try:
        records = _decode_records(data)
    except DecodeError:
        raise
    except UnidentifiedImageError as e:
        raise UnknownFormat("Unknown image format") from e
    except (EOFError, struct.error) as e:
        raise UnexpectedEnd(str(e)) from e
    except OSError as e:
        if "truncat" in str(e).lower():
            raise UnexpectedEnd(str(e)) from e
        raise DecodeError(str(e)) from e
    except Exception as e:
        raise DecodeError(str(e) or type(e).__name__) from e

    if not records:
        raise NoTagData("No tag data present")
    return records


def _decode_records(data: bytes) -> list[TagRecord]:
    """Decode the Exif block of an image without decoding its pixels.

    PNG files are handled by walking chunks for eXIf, since Pillow only
    finds an eXIf placed after IDAT by loading the whole image.
    """
    if data.startswith(PNG_SIGNATURE):
        payload = find_exif_chunk(data)
        if payload is None:
            raise NoTagData("No eXIf chunk present")
        exif = Image.Exif()
        exif.load(payload)
        return _collect_records(exif)

    with Image.open(io.BytesIO(data)) as img:
        return _collect_records(img.getexif())


def _collect_records(exif: Image.Exif) -> list[TagRecord]:
    """Walk IFD0 and its sub-IFDs, then IFD1."""
    records: list[TagRecord] = []
    if not exif:
        return records

    primary = dict(exif.items())
    records.extend(_ifd_records(primary, ifd=0, group="exif"))

    exif_ifd = exif.get_ifd(ExifTags.IFD.Exif)
    records.extend(_ifd_records(exif_ifd, ifd=0, group="exif"))

    # Interop hangs off the Exif IFD
    if ExifTags.IFD.Interop in exif_ifd:
        records.extend(
            _ifd_records(exif.get_ifd(ExifTags.IFD.Interop), ifd=0, group="exif")
        )

    if ExifTags.IFD.GPSInfo in primary:
        records.extend(
            _ifd_records(exif.get_ifd(ExifTags.IFD.GPSInfo), ifd=0, group="gps")
        )

    records.extend(_ifd_records(exif.get_ifd(ExifTags.IFD.IFD1), ifd=1, group="exif"))
    return records


def _ifd_records(
    values: Mapping[int, Any], ifd: int, group: TagGroup
) -> list[TagRecord]:
    records = []
    for tag, value in values.items():
        if group == "exif" and tag in _POINTER_TAGS:
            continue
        records.append(
            TagRecord(
                tag=tag,
                ifd=ifd,
                group=group,
                display=format_value(tag, value, group, values),
            )
        )
    return records


# Display formatting

_EXIF_NAMES = ExifTags.TAGS
_GPS_NAMES = ExifTags.GPSTAGS

_RESOLUTION_UNITS = {2: "pixels per inch", 3: "pixels per centimeter"}

# Tag name -> unit suffix
_UNITS = {
    "ExposureTime": "s",
    "FocalLength": "mm",
    "FocalLengthIn35mmFilm": "mm",
    "ExposureBiasValue": "EV",
    "SubjectDistance": "m",
    "GPSAltitude": "m",
}


def tag_name(tag: int, group: TagGroup) -> str:
    """Human-readable name for a numeric tag id."""
    names = _GPS_NAMES if group == "gps" else _EXIF_NAMES
    return names.get(tag, f"Tag(0x{tag:04X})")


def format_value(
    tag: int,
    value: Any,
    group: TagGroup = "exif",
    siblings: Mapping[int, Any] | None = None,
) -> str:
    """Format a raw Pillow tag value for display, applying units.

    Args:
        tag: Numeric tag id.
        value: Value as decoded by Pillow.
        group: Tag table the id belongs to.
        siblings: Other values of the same IFD (for ResolutionUnit lookup).

    Returns:
        Display string.
    """
    name = tag_name(tag, group)

    if name == "FNumber" and _is_number(value):
        return f"f/{_format_scalar(value)}"

    if name in ("GPSLatitude", "GPSLongitude") and isinstance(value, tuple):
        if len(value) == 3:
            d, m, s = (_format_scalar(v) for v in value)
            return f"{d} deg {m} min {s} sec"

    if name in ("XResolution", "YResolution") and siblings is not None:
        unit = _RESOLUTION_UNITS.get(siblings.get(0x0128))  # ResolutionUnit
        if unit and _is_number(value):
            return f"{_format_scalar(value)} {unit}"

    if name == "ExposureTime" and _is_rational(value):
        return f"{_format_fraction(value)} s"

    text = _format_plain(value)
    unit = _UNITS.get(name)
    if unit and _is_number(value):
        return f"{text} {unit}"
    return text


def _is_rational(value: Any) -> bool:
    return hasattr(value, "numerator") and hasattr(value, "denominator")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) or _is_rational(value)


def _format_fraction(value: Any) -> str:
    num, den = value.numerator, value.denominator
    if den == 0:
        return f"{num}/{den}"
    if den == 1 or num == 0:
        return str(num)
    if num % den == 0:
        return str(num // den)
    if num > den:
        return f"{num / den:g}"
    return f"{num}/{den}"


def _format_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return str(int(value))
    if isinstance(value, int):
        return str(value)
    if _is_rational(value):
        if value.denominator == 0:
            return f"{value.numerator}/0"
        return f"{value.numerator / value.denominator:g}"
    if isinstance(value, float):
        return f"{value:g}"
    return str(value)


def _format_plain(value: Any) -> str:
    if isinstance(value, str):
        return value.rstrip("\x00").strip()
    if isinstance(value, bytes):
        return _format_bytes(value)
    if isinstance(value, tuple):
        return ", ".join(_format_plain(v) for v in value)
    return _format_scalar(value)


def _format_bytes(value: bytes) -> str:
    """Show printable ASCII payloads as text, binary blobs by size."""
    # UserComment carries an 8-byte charset prefix
    if value[:8] in (b"ASCII\x00\x00\x00", b"UNICODE\x00", b"\x00" * 8):
        body = value[8:]
        if value.startswith(b"UNICODE"):
            return body.decode("utf-16", "replace").rstrip("\x00").strip()
        value = body
    stripped = value.rstrip(b"\x00")
    if stripped and all(32 <= b < 127 or b in (9, 10, 13) for b in stripped):
        return stripped.decode("ascii").strip()
    return f"<{len(value)} bytes>"


# Normalization


def normalize_tags(records: Iterable[TagRecord]) -> list[MetadataField]:
    """Convert decoded tag records into sorted MetadataFields.

    No records are dropped or merged.
    """
    fields = [
        MetadataField(
            tag=tag_name(r.tag, r.group),
            section=container_section(r.ifd),
            value=r.display,
        )
        for r in records
    ]
    fields.sort(key=field_sort_key)
    return fields
