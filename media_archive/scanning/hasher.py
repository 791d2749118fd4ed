import hashlib
from pathlib import Path
from typing import Dict, Optional, Tuple

from .. import config


class FileHasher:
    """
    Decides whether two files are byte-identical.

    Strategy (cheapest check first):
    1. Sizes differ -> different.
    2. Large files: Sparse Hash (Header + Middle + Footer + Size) differs -> different.
    3. Full SHA-256 decides.

    Full hashes are memoized per (path, size, mtime), so comparing one source
    against many backup variants reads the source only once.
    """

    def __init__(self):
        self._full_cache: Dict[Tuple[str, int, int], str] = {}

    def same_content(self, a: Path, b: Path) -> bool:
        try:
            size_a = a.stat().st_size
            size_b = b.stat().st_size
        except FileNotFoundError:
            # File might have been moved/deleted in the meantime
            return False

        if size_a != size_b:
            return False

        if size_a >= config.SPARSE_HASH_THRESHOLD:
            if self.sparse_hash(a, size_a) != self.sparse_hash(b, size_b):
                return False

        return self.full_hash(a) == self.full_hash(b)

    def full_hash(self, path: Path) -> str:
        key = self._cache_key(path)
        if key is not None and key in self._full_cache:
            return self._full_cache[key]

        digest = self._full_sha256(path)
        if key is not None:
            self._full_cache[key] = digest
        return digest

    def _cache_key(self, path: Path) -> Optional[Tuple[str, int, int]]:
        try:
            st = path.stat()
        except OSError:
            return None
        return (str(path.absolute()), st.st_size, st.st_mtime_ns)

    def _full_sha256(self, path: Path) -> str:
        """Reads entire file. High I/O cost."""
        h = hashlib.sha256()
        with open(path, 'rb') as f:
            while chunk := f.read(config.HASH_CHUNK_SIZE):
                h.update(chunk)
        return h.hexdigest()

    def sparse_hash(self, path: Path, file_size: int) -> str:
        """
        Reads Header (4KB), Middle (4KB), Footer (4KB) and mixes in file size.
        Prefixes with 's-' to distinguish from full hashes.
        """
        chunk_size = 4096
        h = hashlib.sha256()
        h.update(str(file_size).encode('ascii'))

        with open(path, 'rb') as f:
            h.update(f.read(chunk_size))

            if file_size > chunk_size * 3:
                f.seek(file_size // 2)
                h.update(f.read(chunk_size))

            if file_size > chunk_size * 2:
                try:
                    f.seek(-chunk_size, 2)
                    h.update(f.read(chunk_size))
                except OSError:
                    pass

        return f"s-{h.hexdigest()}"
