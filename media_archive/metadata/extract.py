import logging
import os
import subprocess
import json
from pathlib import Path
from datetime import datetime
from typing import Optional, Dict, Any

from .. import config
from ..exceptions import MetadataExtractionError

# Optional imports handled gracefully to prevent crashes if libs are missing
try:
    import exifread
except ImportError:
    exifread = None

# Type hint 'Any' prevents Pylance from complaining about "None" having no attribute "parse"
MediaInfo: Any = None
try:
    from pymediainfo import MediaInfo
except ImportError:
    MediaInfo = None


Metadata = Dict[str, str]


class MetadataExtractor:
    """
    Returns the date fields of a file as a mapping of exiftool tag descriptions
    ('Create Date', 'GPS Date/Time', ...) to raw string values.

    Strategies:
      - 'exiftool' (robust, requires system install) for every file type.
      - Fallback when exiftool is unavailable: 'exifread' for images,
        'pymediainfo' for video, os.stat for the modification time.

    Missing fields are absent from the mapping. Extraction never raises.
    """

    def __init__(self, timeout: float = config.METADATA_TIMEOUT_SEC):
        self.timeout = timeout

    def extract(self, path: Path) -> Metadata:
        try:
            return self._extract_exiftool(path)
        except FileNotFoundError:
            logging.debug("exiftool not found on PATH; using fallback extractors.")
        except MetadataExtractionError as e:
            logging.debug(f"ExifTool failed for {path}: {e}")

        return self._extract_fallback(path)

    # --- Internal Extraction Helpers ---

    def _extract_exiftool(self, path: Path) -> Metadata:
        """
        Wraps the 'exiftool' command line utility.
        Valid dates are formatted by exiftool itself; unset dates come back raw
        (e.g. '0000:00:00 00:00:00') and are rejected by the resolver.
        """
        cmd = [
            config.EXIFTOOL_BINARY, "-j",
            "-d", config.EXIFTOOL_DATE_FORMAT,
            *[f"-{tag}" for tag in config.EXIFTOOL_TAGS],
            str(path),
        ]
        try:
            out = subprocess.check_output(
                cmd, stderr=subprocess.DEVNULL, text=True, timeout=self.timeout
            )
        except subprocess.CalledProcessError as e:
            raise MetadataExtractionError(f"exit status {e.returncode}") from e
        except subprocess.TimeoutExpired as e:
            raise MetadataExtractionError(f"timed out after {self.timeout}s") from e

        try:
            data_list = json.loads(out)
        except ValueError as e:
            raise MetadataExtractionError(f"unparseable output: {e}") from e

        data: Metadata = {}
        if not data_list:
            return data

        tags = data_list[0]
        for tag, field in config.EXIFTOOL_TAGS.items():
            value = tags.get(tag)
            if value is not None:
                data[field] = str(value)
        return data

    def _extract_fallback(self, path: Path) -> Metadata:
        data: Metadata = {}
        try:
            data.update(self._extract_exifread(path))
        except Exception as e:
            logging.debug(f"ExifRead failed for {path}: {e}")

        if not data:
            try:
                data.update(self._extract_mediainfo(path))
            except Exception as e:
                logging.debug(f"MediaInfo failed for {path}: {e}")

        mtime = self._extract_mtime(path)
        if mtime:
            data['File Modification Date/Time'] = mtime
        return data

    def _extract_exifread(self, path: Path) -> Metadata:
        if not exifread:
            return {}

        with path.open('rb') as f:
            # details=False speeds up processing significantly
            tags = exifread.process_file(f, details=False)

        data: Metadata = {}
        for tag, field in config.EXIFREAD_TAGS.items():
            if tag in tags:
                data[field] = str(tags[tag]).strip()

        # GPS date and time live in separate tags: '2019:05:01' and '[12, 30, 15]'
        if 'GPS GPSDate' in tags and 'GPS GPSTimeStamp' in tags:
            gps_time = self._format_gps_time(tags['GPS GPSTimeStamp'])
            if gps_time:
                data['GPS Date/Time'] = f"{str(tags['GPS GPSDate']).strip()} {gps_time}"
        return data

    def _extract_mediainfo(self, path: Path) -> Metadata:
        """Parses video using pymediainfo."""
        if MediaInfo is None:
            return {}

        mi = MediaInfo.parse(str(path))
        data: Metadata = {}
        for track in mi.tracks:
            if track.track_type != "General":
                continue
            for attr, field in config.MEDIAINFO_TAGS.items():
                val = getattr(track, attr, None)
                if val:
                    # MediaInfo dates look like 'UTC 2020-01-01 12:00:00' or '2020-01-01 12:00:00 UTC'
                    data[field] = str(val).replace("UTC", "").strip()
        return data

    def _extract_mtime(self, path: Path) -> Optional[str]:
        try:
            ts = os.stat(path).st_mtime
        except OSError:
            return None
        return datetime.fromtimestamp(ts).strftime(config.EXIFTOOL_DATE_FORMAT)

    def _format_gps_time(self, stamp) -> Optional[str]:
        try:
            parts = [int(float(v.num) / float(v.den)) for v in stamp.values]
        except (AttributeError, ValueError, ZeroDivisionError):
            return None
        if len(parts) != 3:
            return None
        return "{:02d}:{:02d}:{:02d}".format(*parts)


class MetadataCache:
    """
    Memoizes metadata for the most recently queried file.

    Create one per top-level operation and pass it to the resolver and
    classifier; never share it across operations, since metadata may be
    corrected between runs.
    """

    def __init__(self, extractor: Optional[MetadataExtractor] = None):
        self.extractor = extractor or MetadataExtractor()
        self._path: Optional[Path] = None
        self._metadata: Metadata = {}

    def get(self, path: Path) -> Metadata:
        key = Path(path).absolute()
        if key != self._path:
            self._metadata = self.extractor.extract(key)
            self._path = key
        return self._metadata
