import logging
from pathlib import Path

from .. import config
from ..metadata.mimetype import MimetypeClassifier
from ..metadata.timestamp import TimestampResolver
from ..models import ImportResult, Report
from .location import derive_archive_location
from .store import ArchiveStore


class ArchiveImporter:
    """
    Copies media into the archive, content-aware:
    new name -> canonical copy, same bytes -> no-op, different bytes -> backup variant.
    """

    def __init__(self,
                 store: ArchiveStore,
                 resolver: TimestampResolver,
                 classifier: MimetypeClassifier):
        self.store = store
        self.resolver = resolver
        self.classifier = classifier

    def import_file(self, path: Path) -> Report[ImportResult]:
        mimetype = self.classifier.classify(path)
        if mimetype not in config.ACCEPTED_MIMETYPES:
            logging.debug(f"Declining {path}: mimetype {mimetype}")
            return Report(ImportResult.DECLINE_MIMETYPE, path)

        location = derive_archive_location(path, self.store.root, self.resolver)
        action, dest = self.store.write_if_absent_or_backup(path, location)
        logging.debug(f"{action.value}: {path} -> {dest}")
        return Report(action, path, dest)
