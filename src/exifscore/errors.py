"""User-facing errors raised by exifscore.

The message of each exception (``str(exc)``) is meant to be shown to the
user as-is.
"""

from __future__ import annotations


class MetadataError(Exception):
    """Reading metadata from a single file failed."""


class UnsupportedFormatError(MetadataError):
    """The container format was not recognized."""

    def __init__(self) -> None:
        super().__init__("The selected file format is not supported.")


class TruncatedError(MetadataError):
    """Data ended unexpectedly while decoding."""

    def __init__(self) -> None:
        super().__init__("The selected file appears to be truncated or corrupted.")


class IoFailure(MetadataError):
    """The file could not be opened or read."""


class OtherMetadataError(MetadataError):
    """Any decoding failure not covered above."""


class ScanError(Exception):
    """A folder scan could not be started."""


class InvalidThresholdError(ScanError):
    def __init__(self) -> None:
        super().__init__("Minimum score must be a finite number.")


class PathNotFoundError(ScanError):
    def __init__(self) -> None:
        super().__init__("The selected path does not exist.")


class InvalidPathError(ScanError):
    def __init__(self) -> None:
        super().__init__("The selected path is neither a file nor a folder.")
