from pathlib import Path
from typing import Optional

from .. import config
from .extract import MetadataCache


class TimestampResolver:
    """
    Resolves the best-effort capture timestamp of a file.

    Fields are tried in config.TIMESTAMP_FIELDS order; the first valid one
    wins and is normalized to 'YYYY-MM-DD HH:MM:SS'. The result is a pure
    function of the metadata, which keeps re-imports idempotent.
    """

    def __init__(self, cache: Optional[MetadataCache] = None):
        self.cache = cache or MetadataCache()

    def resolve(self, path: Path) -> str:
        metadata = self.cache.get(path)
        for field in config.TIMESTAMP_FIELDS:
            value = metadata.get(field)
            if self.is_valid(value):
                return self.normalize(value)
        return config.UNKNOWN_TIMESTAMP

    def resolve_date(self, path: Path) -> str:
        """Date portion of the timestamp, or UNKNOWN."""
        return date_of(self.resolve(path))

    @staticmethod
    def is_valid(value: Optional[str]) -> bool:
        if not value or not value.strip():
            return False
        return value.strip()[:config.TIMESTAMP_LENGTH] not in config.ZERO_DATES

    @staticmethod
    def normalize(value: str) -> str:
        # Some extractors append sub-seconds or zone offsets
        clean = value.strip()[:config.TIMESTAMP_LENGTH]
        # EXIF style "YYYY:MM:DD HH:MM:SS" -> "YYYY-MM-DD HH:MM:SS"
        if clean[4:5] == ':' and clean[7:8] == ':':
            clean = clean.replace(':', '-', 2)
        return clean


def date_of(timestamp: str) -> str:
    if timestamp == config.UNKNOWN_TIMESTAMP:
        return config.UNKNOWN_TIMESTAMP
    return timestamp[:10]
