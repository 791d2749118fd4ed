from pathlib import Path

from ..metadata.timestamp import TimestampResolver
from .location import derive_archive_location
from .store import ArchiveStore


class MembershipChecker:
    def __init__(self, store: ArchiveStore, resolver: TimestampResolver):
        self.store = store
        self.resolver = resolver

    def is_imported(self, path: Path) -> bool:
        """
        True if the archive holds a byte-identical copy of path, either at its
        canonical location or as one of that location's backup variants.
        Stops at the first match.
        """
        if not Path(path).is_file():
            return False

        location = derive_archive_location(path, self.store.root, self.resolver)
        if self.store.exists(location) and self.store.same_content(path, location):
            return True

        return any(self.store.same_content(path, v) for v in self.store.list_variants(location))
