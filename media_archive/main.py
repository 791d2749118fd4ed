import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from tqdm import tqdm

from . import config
from .core import MediaArchiveApp
from .exceptions import ConfigurationError
from .reporting import SweepSummary

FILE_COMMANDS = {"import", "purge", "thumbnail"}
INFO_COMMANDS = {"timestamp", "mimetype", "index-location", "thumbnail-location"}
DIR_COMMANDS = {"import-dir", "purge-dir", "thumbnail-dir"}
THUMBNAIL_COMMANDS = {"thumbnail", "thumbnail-location", "thumbnail-dir"}
# Pure metadata queries; no archive needed
ROOTLESS_COMMANDS = {"timestamp", "mimetype"}


def setup_logging(verbose: bool, log_file: Optional[Path] = None):
    """Logs to stderr (stdout is reserved for records) and optionally to a file."""
    log_level = logging.DEBUG if verbose else logging.INFO

    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=handlers,
        force=True,
    )

    # Silence chatty libraries
    logging.getLogger("exifread").setLevel(logging.ERROR)
    logging.getLogger("PIL").setLevel(logging.WARNING)


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Media Archive: date-organized, deduplicated media archive")

    p.add_argument("--archive-root", default=None,
                   help=f"Archive root (default: ${config.ARCHIVE_ROOT_ENV})")
    p.add_argument("--thumbnail-root", default=None,
                   help=f"Thumbnail root (default: ${config.THUMBNAIL_ROOT_ENV})")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    p.add_argument("--log-file", type=Path, default=None, help="Also write the log to this file")

    sub = p.add_subparsers(dest="command", required=True)

    for name, help_text in [
        ("import", "Copy a file into the archive"),
        ("is-imported", "Exit 0 if the file (or an identical copy) is archived, 1 otherwise"),
        ("purge", "Delete a file if it is already archived"),
        ("thumbnail", "Generate the thumbnail of an archived file"),
        ("timestamp", "Print the resolved capture timestamp"),
        ("mimetype", "Print the mimetype"),
        ("index-location", "Print the canonical archive path"),
        ("thumbnail-location", "Print the thumbnail path"),
    ]:
        sp = sub.add_parser(name, help=help_text)
        sp.add_argument("path", type=Path)

    for name, help_text in [
        ("import-dir", "Import every file under a directory"),
        ("purge-dir", "Purge every archived file under a directory"),
        ("thumbnail-dir", "Generate thumbnails for every file under a directory"),
    ]:
        sp = sub.add_parser(name, help=help_text)
        sp.add_argument("root", type=Path)
        sp.add_argument("--workers", type=int, default=1, help="Parallel workers (default: 1)")
        sp.add_argument("--strict", action="store_true",
                        help="Exit nonzero if any file was declined, omitted or failed")
        sp.add_argument("--report-csv", type=Path, default=None, help="Write every record to this CSV")
        sp.add_argument("--skip-dirs-file", type=Path, default=None, help="File containing paths to ignore")

    return p.parse_args(argv)


def load_skip_dirs(skip_file: Optional[Path]) -> set[Path]:
    if not skip_file or not skip_file.exists():
        return set()

    skips = set()
    with skip_file.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#"):
                skips.add(Path(line))
    return skips


def build_app(args) -> MediaArchiveApp:
    if args.command in ROOTLESS_COMMANDS:
        archive_root = None
    else:
        archive_root = config.resolve_root(args.archive_root, config.ARCHIVE_ROOT_ENV)
    if args.command in THUMBNAIL_COMMANDS:
        thumbnail_root = config.resolve_root(args.thumbnail_root, config.THUMBNAIL_ROOT_ENV)
    else:
        thumbnail_root = None

    skip_dirs = load_skip_dirs(getattr(args, "skip_dirs_file", None))
    return MediaArchiveApp(
        archive_root,
        thumbnail_root,
        skip_dirs=skip_dirs,
        max_workers=getattr(args, "workers", 1),
    )


def run(args) -> int:
    app = build_app(args)
    command = args.command

    if command in FILE_COMMANDS:
        operation = {
            "import": app.import_file,
            "purge": app.purge_file,
            "thumbnail": app.thumbnail_file,
        }[command]
        report = operation(args.path)
        print(report.serialize())
        return 0 if report.ok else 1

    if command == "is-imported":
        return 0 if app.is_imported(args.path) else 1

    if command in INFO_COMMANDS:
        query = {
            "timestamp": app.timestamp,
            "mimetype": app.mimetype,
            "index-location": app.index_location,
            "thumbnail-location": app.thumbnail_location,
        }[command]
        print(query(args.path))
        return 0

    sweep = {
        "import-dir": app.import_dir,
        "purge-dir": app.purge_dir,
        "thumbnail-dir": app.thumbnail_dir,
    }[command]
    if not args.root.is_dir():
        logging.error(f"Not a directory: {args.root}")
        return 1

    with SweepSummary(args.report_csv) as summary:
        sweep(args.root, summary=summary, emit=tqdm.write)

    return 1 if args.strict and summary.failures else 0


def main(argv=None):
    args = parse_args(argv)
    setup_logging(args.verbose, args.log_file)

    try:
        sys.exit(run(args))
    except ConfigurationError as e:
        logging.error(f"Configuration error: {e}")
        sys.exit(2)
    except KeyboardInterrupt:
        logging.warning("Operation cancelled by user.")
        sys.exit(1)
    except Exception:
        logging.exception("Fatal error.")
        sys.exit(1)


if __name__ == "__main__":
    main()
