from pathlib import Path

from ..metadata.timestamp import TimestampResolver, date_of


def derive_archive_location(path: Path, archive_root: Path, resolver: TimestampResolver) -> Path:
    """Canonical archive path: {archive_root}/{capture date}/{original name}."""
    return Path(archive_root) / date_of(resolver.resolve(path)) / Path(path).name
