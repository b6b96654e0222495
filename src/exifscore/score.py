"""Aesthetic score lookup in extracted metadata.

Producers embed the score under names like ``aesthetic_score``,
``Aesthetic-Score`` or ``AestheticScore``, and the value may carry
surrounding text (``"Score: 0.82/1.0"``). The value is split into runs
of numeric characters and the first run that parses is used.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable

from exifscore.types import MetadataField

AESTHETIC_TAGS = frozenset({"aesthetic score", "aestheticscore"})

# Anything that cannot be part of a float literal
_NON_NUMERIC = re.compile(r"[^0-9.+\-]")


def normalize_tag_name(tag: str) -> str:
    """Casefold, map ``_`` and ``-`` to spaces, strip."""
    return tag.casefold().replace("_", " ").replace("-", " ").strip()


def is_aesthetic_tag(tag: str) -> bool:
    return normalize_tag_name(tag) in AESTHETIC_TAGS


def parse_score(value: str) -> float | None:
    """First finite number found in `value`, or None.

    Examples:
        >>> parse_score("Score: 0.82/1.0")
        0.82
        >>> parse_score("n/a") is None
        True
    """
    for token in _NON_NUMERIC.split(value):
        if not token:
            continue
        try:
            number = float(token)
        except ValueError:
            continue
        if math.isfinite(number):
            return number
    return None


def extract_score(fields: Iterable[MetadataField]) -> float | None:
    """Aesthetic score of the first matching field.

    Args:
        fields: Fields in sorted order.

    Returns:
        The score, or None if no aesthetic score tag exists or its value
        holds no number.
    """
    for field in fields:
        if is_aesthetic_tag(field.tag):
            return parse_score(field.value)
    return None
