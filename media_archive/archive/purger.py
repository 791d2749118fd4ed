import logging
from pathlib import Path

from ..models import PurgeResult, Report
from .location import derive_archive_location
from .membership import MembershipChecker


class ArchivePurger:
    """
    Deletes files that are already safely archived.

    A file sitting at its own canonical location is never deleted, so
    sweeping the archive root itself only removes stray duplicates.
    """

    def __init__(self, membership: MembershipChecker):
        self.membership = membership

    def purge(self, path: Path) -> Report[PurgeResult]:
        if not self.membership.is_imported(path):
            return Report(PurgeResult.OMIT_UNIMPORTED, path)

        store = self.membership.store
        location = derive_archive_location(path, store.root, self.membership.resolver)
        if Path(path).resolve() == location.resolve():
            return Report(PurgeResult.OMIT_INDEX, path, location)

        store.remove(Path(path))
        logging.debug(f"Purged {path} (archived at {location})")
        return Report(PurgeResult.SUCCESS, path, location)
