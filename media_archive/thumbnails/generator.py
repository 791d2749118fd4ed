import logging
import os
import tempfile
from pathlib import Path

from .. import config
from ..archive.store import ArchiveStore
from ..exceptions import TranscodeError
from ..metadata.mimetype import MimetypeClassifier
from ..metadata.timestamp import TimestampResolver
from ..models import Report, ThumbnailKind, ThumbnailResult
from .location import derive_thumbnail_location
from .transcode import Transcoder

_PIL_FORMATS = {
    'image/jpeg': 'JPEG',
    'image/png': 'PNG',
}


class ThumbnailGenerator:
    """
    Produces previews for already-archived media.

    A non-empty file at the thumbnail location counts as done, so re-running
    over the archive only fills in what is missing.
    """

    def __init__(self,
                 store: ArchiveStore,
                 thumbnail_root: Path,
                 resolver: TimestampResolver,
                 classifier: MimetypeClassifier,
                 transcoder: Transcoder):
        self.store = store
        self.thumbnail_root = Path(thumbnail_root)
        self.resolver = resolver
        self.classifier = classifier
        self.transcoder = transcoder

    def location(self, path: Path, kind: ThumbnailKind) -> Path:
        return derive_thumbnail_location(path, kind, self.store.root, self.thumbnail_root, self.resolver)

    def location_for(self, path: Path) -> Path:
        """Thumbnail path for a file, with the kind and extension picked from its mimetype."""
        return self._target(path, self.classifier.classify(path))

    def thumbnail(self, path: Path) -> Report[ThumbnailResult]:
        if not self.store.contains(path):
            return Report(ThumbnailResult.DECLINE_UNIMPORTED, path)

        mimetype = self.classifier.classify(path)
        if mimetype not in config.ACCEPTED_MIMETYPES:
            return Report(ThumbnailResult.DECLINE_MIMETYPE, path)

        dest = self._target(path, mimetype)
        if self._already_generated(dest):
            return Report(ThumbnailResult.SUCCESS_COLLIDE, path, dest)

        dest.parent.mkdir(parents=True, exist_ok=True)
        # Transcoders write a hidden sibling; dest only ever appears complete
        fd, partial_name = tempfile.mkstemp(dir=dest.parent, prefix=".", suffix=dest.suffix)
        os.close(fd)
        partial = Path(partial_name)
        try:
            if mimetype in config.PICTURE_MIMETYPES:
                self.transcoder.resize_image(path, partial, _PIL_FORMATS[mimetype])
            elif mimetype in config.HEIF_MIMETYPES:
                self.transcoder.heif_thumbnail(path, partial)
            else:
                self.transcoder.transcode_video(path, partial)
            os.replace(partial, dest)
        except TranscodeError as e:
            logging.warning(f"Thumbnail failed for {path}: {e}")
            return Report(ThumbnailResult.FAIL, path, dest)
        finally:
            partial.unlink(missing_ok=True)

        return Report(ThumbnailResult.SUCCESS_ORIG, path, dest)

    def _target(self, path: Path, mimetype: str) -> Path:
        if mimetype in config.VIDEO_MIMETYPES:
            return self.location(path, ThumbnailKind.VIDEO)
        dest = self.location(path, ThumbnailKind.PICTURE)
        if mimetype in config.HEIF_MIMETYPES:
            dest = dest.with_suffix(config.HEIF_THUMBNAIL_EXT)
        return dest

    @staticmethod
    def _already_generated(dest: Path) -> bool:
        try:
            return dest.stat().st_size > 0
        except FileNotFoundError:
            return False
