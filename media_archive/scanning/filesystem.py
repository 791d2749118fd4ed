import os
import logging
from pathlib import Path
from typing import Callable, Iterator, Set, Optional, Tuple
from concurrent.futures import ThreadPoolExecutor, as_completed

from ..models import Report

# (path, report, error): exactly one of report/error is set
SweepItem = Tuple[Path, Optional[Report], Optional[Exception]]


class TreeSweeper:
    """
    Applies a single-file operation to every regular file beneath a root.

    A failure on one file is logged and yielded as an error item; it never
    aborts the sweep.
    """

    def __init__(self, skip_dirs: Optional[Set[Path]] = None):
        self.skip_dirs = {p.resolve() for p in (skip_dirs or set())}

    def sweep(self,
              root: Path,
              operation: Callable[[Path], Report],
              max_workers: int = 1) -> Iterator[SweepItem]:
        """
        Generator that yields one SweepItem per file under root.

        Args:
            max_workers: >1 fans the operation out to a thread pool. Per-file
                         operations are independent and idempotent, so order
                         of completion does not matter.
        """
        if max_workers <= 1:
            yield from self._sweep_sequential(root, operation)
        else:
            yield from self._sweep_parallel(root, operation, max_workers)

    def _sweep_sequential(self, root: Path, operation: Callable[[Path], Report]) -> Iterator[SweepItem]:
        for path in self.iter_files(root):
            yield self._apply(path, operation)

    def _sweep_parallel(self,
                        root: Path,
                        operation: Callable[[Path], Report],
                        max_workers: int) -> Iterator[SweepItem]:
        logging.info(f"Parallel sweep of {root} with {max_workers} workers")

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [executor.submit(self._apply, path, operation) for path in self.iter_files(root)]
            for future in as_completed(futures):
                yield future.result()

    def _apply(self, path: Path, operation: Callable[[Path], Report]) -> SweepItem:
        try:
            return path, operation(path), None
        except Exception as e:
            logging.error(f"Failed to process {path}: {e}")
            return path, None, e

    def iter_files(self, root: Path) -> Iterator[Path]:
        """Depth-first walker using os.scandir for speed."""
        stack = [root]
        while stack:
            current = stack.pop()
            if self.skip_dirs and current.resolve() in self.skip_dirs:
                continue

            try:
                with os.scandir(current) as it:
                    entries = list(it)
            except (OSError, PermissionError):
                logging.warning(f"Cannot read directory: {current}")
                continue

            # Sort for stable traversal order
            entries.sort(key=lambda e: e.name.lower())

            dirs = []
            files = []
            for e in entries:
                if e.is_dir(follow_symlinks=False):
                    dirs.append(Path(e.path))
                elif e.is_file(follow_symlinks=False):
                    files.append(Path(e.path))

            # Push dirs to stack (reversed so we process A before Z)
            for d in reversed(dirs):
                stack.append(d)

            for f in files:
                yield f
