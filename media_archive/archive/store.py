"""
Filesystem-backed archive store.

The archive has no index: an entry is the file at {root}/{date}/{name}, and
its backup variants are the siblings matching {name}.*. Writes never
overwrite: a file is copied under a hidden temporary name and then hard-linked
to its final name, which fails if the name is taken, so two writers racing
on the same name both end up preserved.
"""
import glob
import logging
import os
import re
import shutil
import tempfile
from pathlib import Path
from typing import List, Optional, Tuple

from .. import config
from ..exceptions import FileOperationError
from ..models import ImportResult
from ..scanning.hasher import FileHasher

_BACKUP_RE = re.compile(r'\.~(\d+)~$')


class ArchiveStore:
    def __init__(self, root: Path, hasher: Optional[FileHasher] = None):
        self.root = Path(root)
        self.hasher = hasher or FileHasher()

    def contains(self, path: Path) -> bool:
        """True if path lies inside the archive root."""
        try:
            return Path(path).resolve().is_relative_to(self.root.resolve())
        except OSError:
            return False

    def exists(self, path: Path) -> bool:
        return path.is_file()

    def same_content(self, source: Path, entry: Path) -> bool:
        return self.hasher.same_content(source, entry)

    def list_variants(self, entry: Path) -> List[Path]:
        """Backup variants of an entry, lowest backup index first."""
        if not entry.parent.is_dir():
            return []
        matches = [p for p in entry.parent.glob(glob.escape(entry.name) + ".*") if p.is_file()]
        return sorted(matches, key=self._variant_sort_key)

    def backup_path(self, entry: Path, index: int) -> Path:
        return entry.with_name(entry.name + config.BACKUP_SUFFIX_PATTERN.format(index=index))

    def write_if_absent_or_backup(self, source: Path, entry: Path) -> Tuple[ImportResult, Path]:
        """
        Copies source into the archive at entry without ever overwriting.

        Returns:
            (SUCCESS_ORIG, entry) if entry was free,
            (SUCCESS_DUPE, existing) if entry or a variant already holds the same bytes,
            (SUCCESS_COLLIDE, variant) if source was written as a new backup variant.
        """
        entry.parent.mkdir(parents=True, exist_ok=True)

        if self._copy_exclusive(source, entry):
            return ImportResult.SUCCESS_ORIG, entry

        if self.same_content(source, entry):
            return ImportResult.SUCCESS_DUPE, entry

        variants = self.list_variants(entry)
        for variant in variants:
            if self.same_content(source, variant):
                return ImportResult.SUCCESS_DUPE, variant

        used = {self._backup_index(v) for v in variants}
        index = 1
        while True:
            if index not in used:
                candidate = self.backup_path(entry, index)
                if self._copy_exclusive(source, candidate):
                    return ImportResult.SUCCESS_COLLIDE, candidate
                # Lost a race for this index to another writer
                if self.same_content(source, candidate):
                    return ImportResult.SUCCESS_DUPE, candidate
            index += 1

    def remove(self, path: Path):
        path.unlink()

    def _copy_exclusive(self, source: Path, dest: Path) -> bool:
        """
        Copies source to dest, keeping stat metadata and forcing mode 0644.
        Returns False if dest already exists.

        The bytes go to a hidden sibling first and dest is claimed with a hard
        link only once the copy is complete, so dest is either absent or whole.
        """
        if dest.exists():
            return False

        fd, tmp_name = tempfile.mkstemp(
            dir=dest.parent, prefix=f".{dest.name}.", suffix=config.PARTIAL_SUFFIX
        )
        tmp = Path(tmp_name)
        try:
            with os.fdopen(fd, 'wb') as out, open(source, 'rb') as inp:
                shutil.copyfileobj(inp, out, config.HASH_CHUNK_SIZE)
            shutil.copystat(source, tmp)
            os.chmod(tmp, config.ARCHIVE_FILE_MODE)
            os.link(tmp, dest)
        except FileExistsError:
            return False
        except OSError as e:
            logging.error(f"Copy failed {source} -> {dest}: {e}")
            raise FileOperationError(f"Failed to copy {source} -> {dest}: {e}") from e
        finally:
            tmp.unlink(missing_ok=True)

        logging.debug(f"Wrote {dest}")
        return True

    @staticmethod
    def _backup_index(path: Path) -> Optional[int]:
        m = _BACKUP_RE.search(path.name)
        return int(m.group(1)) if m else None

    @classmethod
    def _variant_sort_key(cls, path: Path):
        index = cls._backup_index(path)
        # Numbered backups first, anything else matching the glob after
        return (0, index, path.name) if index is not None else (1, 0, path.name)
