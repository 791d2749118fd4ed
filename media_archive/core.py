import logging
from pathlib import Path
from typing import Callable, Optional, Set

from tqdm import tqdm

from .archive.importer import ArchiveImporter
from .archive.location import derive_archive_location
from .archive.membership import MembershipChecker
from .archive.purger import ArchivePurger
from .archive.store import ArchiveStore
from .exceptions import ConfigurationError
from .metadata.extract import MetadataCache, MetadataExtractor
from .metadata.mimetype import MimetypeClassifier
from .metadata.timestamp import TimestampResolver
from .models import ImportResult, PurgeResult, Report, ThumbnailResult
from .reporting import SweepSummary
from .scanning.filesystem import TreeSweeper
from .thumbnails.generator import ThumbnailGenerator
from .thumbnails.transcode import Transcoder


class MediaArchiveApp:
    """
    Entry point for every archive operation.

    Each top-level operation gets its own metadata cache, so nothing is
    memoized across files, runs or worker threads.
    """

    def __init__(self,
                 archive_root: Optional[Path] = None,
                 thumbnail_root: Optional[Path] = None,
                 extractor: Optional[MetadataExtractor] = None,
                 classifier: Optional[MimetypeClassifier] = None,
                 transcoder: Optional[Transcoder] = None,
                 skip_dirs: Optional[Set[Path]] = None,
                 max_workers: int = 1):
        self.archive_root = Path(archive_root) if archive_root else None
        self.thumbnail_root = Path(thumbnail_root) if thumbnail_root else None
        self.extractor = extractor or MetadataExtractor()
        self.classifier = classifier or MimetypeClassifier()
        self.transcoder = transcoder or Transcoder()
        self.skip_dirs = skip_dirs
        self.max_workers = max_workers

    # --- Single-file operations ---

    def import_file(self, path: Path) -> Report[ImportResult]:
        resolver = self._resolver()
        importer = ArchiveImporter(self._store(), resolver, self.classifier)
        return importer.import_file(Path(path).absolute())

    def is_imported(self, path: Path) -> bool:
        return self._membership().is_imported(Path(path).absolute())

    def purge_file(self, path: Path) -> Report[PurgeResult]:
        return ArchivePurger(self._membership()).purge(Path(path).absolute())

    def thumbnail_file(self, path: Path) -> Report[ThumbnailResult]:
        return self._thumbnailer().thumbnail(Path(path).absolute())

    def timestamp(self, path: Path) -> str:
        return self._resolver().resolve(Path(path).absolute())

    def mimetype(self, path: Path) -> str:
        return self.classifier.classify(Path(path).absolute())

    def index_location(self, path: Path) -> Path:
        return derive_archive_location(Path(path).absolute(), self._require_archive_root(), self._resolver())

    def thumbnail_location(self, path: Path) -> Path:
        return self._thumbnailer().location_for(Path(path).absolute())

    # --- Directory sweeps ---

    def import_dir(self, root: Path, summary: Optional[SweepSummary] = None,
                   emit: Optional[Callable[[str], None]] = None) -> SweepSummary:
        return self._sweep(root, self.import_file, "Import", summary, emit)

    def purge_dir(self, root: Path, summary: Optional[SweepSummary] = None,
                  emit: Optional[Callable[[str], None]] = None) -> SweepSummary:
        return self._sweep(root, self.purge_file, "Purge", summary, emit)

    def thumbnail_dir(self, root: Path, summary: Optional[SweepSummary] = None,
                      emit: Optional[Callable[[str], None]] = None) -> SweepSummary:
        self._require_thumbnail_root()
        return self._sweep(root, self.thumbnail_file, "Thumbnail", summary, emit)

    def _sweep(self,
               root: Path,
               operation: Callable[[Path], Report],
               title: str,
               summary: Optional[SweepSummary],
               emit: Optional[Callable[[str], None]]) -> SweepSummary:
        self._require_archive_root()
        summary = summary if summary is not None else SweepSummary()
        root = Path(root).absolute()
        logging.info(f"{title} sweep of {root}")

        sweeper = TreeSweeper(self.skip_dirs)
        items = sweeper.sweep(root, operation, max_workers=self.max_workers)
        for path, report, error in tqdm(items, desc=title, unit="file", disable=None):
            if report is not None:
                line = summary.record(report)
            else:
                line = summary.record_error(path, error)
            if emit:
                emit(line)

        summary.log_summary(f"{title} complete")
        return summary

    # --- Per-request wiring ---

    def _resolver(self) -> TimestampResolver:
        return TimestampResolver(MetadataCache(self.extractor))

    def _store(self) -> ArchiveStore:
        return ArchiveStore(self._require_archive_root())

    def _membership(self) -> MembershipChecker:
        return MembershipChecker(self._store(), self._resolver())

    def _thumbnailer(self) -> ThumbnailGenerator:
        return ThumbnailGenerator(
            self._store(),
            self._require_thumbnail_root(),
            self._resolver(),
            self.classifier,
            self.transcoder,
        )

    def _require_archive_root(self) -> Path:
        if self.archive_root is None:
            raise ConfigurationError("Archive root is not configured")
        return self.archive_root

    def _require_thumbnail_root(self) -> Path:
        if self.thumbnail_root is None:
            raise ConfigurationError("Thumbnail root is not configured")
        return self.thumbnail_root
