"""PNG chunk walking and text extraction: tEXt, zTXt and iTXt.

Walks the chunk stream of an in-memory PNG, turns its textual
ancillary chunks into MetadataFields and locates the eXIf payload.
Pixel data is never decoded and CRCs are not checked. Malformed chunks
are skipped one at a time so a damaged file still yields whatever text
it carries.
"""

from __future__ import annotations

import logging
import struct
import zlib
from collections.abc import Iterator

from exifscore.types import MetadataField, PngSection

logger = logging.getLogger(__name__)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

# length (u32 BE) + chunk type
_CHUNK_HEADER = struct.Struct(">I4s")
_CRC_SIZE = 4

# zTXt / iTXt compression method 0 = zlib deflate
_METHOD_DEFLATE = 0


def iter_chunks(data: bytes) -> Iterator[tuple[bytes, bytes]]:
    """Yield (chunk type, payload) pairs of a PNG up to and including IEND.

    Stops quietly at the first chunk that overruns the buffer. Yields
    nothing when `data` lacks the PNG signature.
    """
    if not data.startswith(PNG_SIGNATURE):
        return

    pos = len(PNG_SIGNATURE)
    while len(data) - pos >= _CHUNK_HEADER.size:
        length, chunk_type = _CHUNK_HEADER.unpack_from(data, pos)
        start = pos + _CHUNK_HEADER.size
        end = start + length
        if end > len(data):
            logger.debug("Chunk %r overruns buffer at offset %d", chunk_type, pos)
            return

        yield chunk_type, data[start:end]

        if chunk_type == b"IEND":
            return
        pos = end + _CRC_SIZE


def find_exif_chunk(data: bytes) -> bytes | None:
    """Return the payload of the first eXIf chunk, wherever it sits."""
    for chunk_type, payload in iter_chunks(data):
        if chunk_type == b"eXIf":
            return payload
    return None


def extract_png_text(data: bytes) -> list[MetadataField]:
    """Extract text metadata from PNG bytes.

    Args:
        data: Full file contents.

    Returns:
        Fields in chunk order. Empty when `data` is not a PNG or holds
        no readable text chunks. Never raises.
    """
    fields: list[MetadataField] = []
    for chunk_type, payload in iter_chunks(data):
        field = _parse_chunk(chunk_type, payload)
        if field is not None:
            fields.append(field)
    return fields


def _parse_chunk(chunk_type: bytes, payload: bytes) -> MetadataField | None:
    if chunk_type == b"tEXt":
        field = parse_text(payload)
    elif chunk_type == b"zTXt":
        field = parse_ztxt(payload)
    elif chunk_type == b"iTXt":
        field = parse_itxt(payload)
    else:
        return None

    if field is None:
        logger.debug("Skipping malformed %s chunk", chunk_type.decode("latin-1"))
    return field


def _split_keyword(payload: bytes) -> tuple[str, bytes] | None:
    """Split at the first NUL. Keyword must be non-empty."""
    keyword, sep, rest = payload.partition(b"\x00")
    if not sep or not keyword:
        return None
    return keyword.decode("latin-1"), rest


def _inflate(compressed: bytes) -> bytes | None:
    try:
        return zlib.decompress(compressed)
    except zlib.error:
        return None


def parse_text(payload: bytes) -> MetadataField | None:
    """Parse a tEXt payload: keyword NUL text, both Latin-1."""
    split = _split_keyword(payload)
    if split is None:
        return None
    keyword, text = split
    return MetadataField(
        tag=keyword, section=PngSection.TEXT, value=text.decode("latin-1")
    )


def parse_ztxt(payload: bytes) -> MetadataField | None:
    """Parse a zTXt payload: keyword NUL method compressed-text."""
    split = _split_keyword(payload)
    if split is None:
        return None
    keyword, rest = split
    if not rest or rest[0] != _METHOD_DEFLATE:
        return None

    text = _inflate(rest[1:])
    if text is None:
        return None
    return MetadataField(
        tag=keyword, section=PngSection.ZTXT, value=text.decode("latin-1")
    )


def parse_itxt(payload: bytes) -> MetadataField | None:
    """Parse an iTXt payload.

    Layout: keyword NUL, compression flag, compression method,
    language tag NUL, translated keyword NUL, text (UTF-8).
    """
    split = _split_keyword(payload)
    if split is None:
        return None
    keyword, rest = split

    if len(rest) < 2:
        return None
    flag, method = rest[0], rest[1]
    rest = rest[2:]

    language, sep, rest = rest.partition(b"\x00")
    if not sep:
        return None
    translated, sep, text = rest.partition(b"\x00")
    if not sep:
        return None

    if flag == 1:
        if method != _METHOD_DEFLATE:
            return None
        inflated = _inflate(text)
        if inflated is None:
            return None
        text = inflated
    elif flag != 0:
        return None

    lines = [text.decode("utf-8", "replace")]
    if language:
        lines.append(f"Language tag: {language.decode('utf-8', 'replace')}")
    if translated:
        lines.append(f"Translated keyword: {translated.decode('utf-8', 'replace')}")

    return MetadataField(
        tag=keyword, section=PngSection.ITXT, value="\n".join(lines)
    )
