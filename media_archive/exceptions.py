"""
Custom exception hierarchy for the media archive.

Declined and omitted outcomes are results, not errors; only conditions that
stop an operation are modeled here.
"""


class MediaArchiveError(Exception):
    """Base exception for all media archive errors."""
    pass


class ConfigurationError(MediaArchiveError):
    """Raised when the archive or thumbnail root is unset or unresolvable."""
    pass


class MetadataExtractionError(MediaArchiveError):
    """Raised when metadata cannot be extracted from a file."""
    pass


class TranscodeError(MediaArchiveError):
    """Raised when a thumbnail transcoder produces no usable output."""
    pass


class FileOperationError(MediaArchiveError):
    """Raised when an archive copy fails."""
    pass
