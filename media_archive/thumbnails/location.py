from pathlib import Path

from .. import config
from ..metadata.timestamp import TimestampResolver
from ..models import ThumbnailKind


def derive_thumbnail_location(path: Path,
                              kind: ThumbnailKind,
                              archive_root: Path,
                              thumbnail_root: Path,
                              resolver: TimestampResolver) -> Path:
    """
    Thumbnail path: {thumbnail_root}/{year}/{date}_{stem}_thumb{ext}.

    For files inside the archive the date is read from the archive's own
    {date}/ directory, which is cheaper than re-reading metadata and immune
    to metadata edits made after import. Other files fall back to the
    timestamp resolver. Videos always get the '.avi' extension.
    """
    source = Path(path).resolve()
    root = Path(archive_root).resolve()

    rel_parts = source.relative_to(root).parts if source.is_relative_to(root) else ()
    if len(rel_parts) > 1:
        date = rel_parts[0]
    else:
        date = resolver.resolve_date(source)

    ext = config.VIDEO_THUMBNAIL_EXT if kind is ThumbnailKind.VIDEO else source.suffix
    name = config.THUMBNAIL_PATTERN.format(date=date, stem=source.stem, ext=ext)
    return Path(thumbnail_root) / date[:4] / name
