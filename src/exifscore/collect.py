"""Collect module: all metadata of a single file."""

from __future__ import annotations

import logging
from pathlib import Path

from exifscore.errors import (
    IoFailure,
    OtherMetadataError,
    TruncatedError,
    UnsupportedFormatError,
)
from exifscore.exif import (
    DecodeError,
    NoTagData,
    UnexpectedEnd,
    UnknownFormat,
    normalize_tags,
    read_tag_records,
)
from exifscore.png import extract_png_text
from exifscore.types import MetadataField, field_sort_key

logger = logging.getLogger(__name__)


def collect_metadata(path: Path | str) -> list[MetadataField]:
    """Read container tags and PNG text chunks from a file.

    The whole file is read into memory once and handed to both
    extractors. PNG text extraction never fails; container decoding
    errors abort the call.

    Args:
        path: Image file to read.

    Returns:
        Fields sorted by section, then tag.

    Raises:
        IoFailure: The file could not be read.
        UnsupportedFormatError: Unrecognized container format.
        TruncatedError: The container data ended unexpectedly.
        OtherMetadataError: Any other decoding failure.
    """
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise IoFailure(e.strerror or str(e)) from e

    try:
        fields = normalize_tags(read_tag_records(data))
    except NoTagData:
        fields = []
    except UnknownFormat as e:
        raise UnsupportedFormatError() from e
    except UnexpectedEnd as e:
        raise TruncatedError() from e
    except DecodeError as e:
        raise OtherMetadataError(str(e)) from e

    fields.extend(extract_png_text(data))
    fields.sort(key=field_sort_key)

    logger.debug("Collected %d fields from %s", len(fields), path)
    return fields


def read_metadata(path: str) -> list[MetadataField]:
    """Extract metadata from one file for display.

    Raises:
        MetadataError: With a message suitable for the user.
    """
    return collect_metadata(path)
