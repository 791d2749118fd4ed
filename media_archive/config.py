"""
Configuration constants for the media archive.
"""
import os
from pathlib import Path
from typing import Optional

from .exceptions import ConfigurationError

# --- Roots ---
ARCHIVE_ROOT_ENV = "MEDIA_ARCHIVE_ROOT"
THUMBNAIL_ROOT_ENV = "MEDIA_THUMBNAIL_ROOT"

# --- Mimetype Classification ---
# Fast path: avoids sniffing file content on slow or remote storage
EXT_TO_MIMETYPE = {
    '3gp': 'video/3gpp',
    'avi': 'video/x-msvideo',
    'jpg': 'image/jpeg',
    'jpeg': 'image/jpeg',
    'mov': 'video/quicktime',
    'mp4': 'video/mp4',
    'mts': 'video/mp2t',
    'png': 'image/png',
}

DEFAULT_MIMETYPE = 'application/octet-stream'

# Sniffers disagree on the HEIF family name; the archive only speaks image/heif
MIMETYPE_ALIASES = {
    'image/heic': 'image/heif',
    'image/heic-sequence': 'image/heif',
    'image/heif-sequence': 'image/heif',
}

PICTURE_MIMETYPES = {'image/jpeg', 'image/png'}
HEIF_MIMETYPES = {'image/heif'}

# application/octet-stream is accepted as "probably a video". Unverified heuristic.
VIDEO_MIMETYPES = {
    'application/octet-stream',
    'video/3gpp',
    'video/mp2t',
    'video/mp4',
    'video/quicktime',
    'video/x-msvideo',
}

ACCEPTED_MIMETYPES = PICTURE_MIMETYPES | HEIF_MIMETYPES | VIDEO_MIMETYPES

# --- Metadata Parsing ---
# Priority order for the capture timestamp. Keys are exiftool tag descriptions.
TIMESTAMP_FIELDS = [
    'Create Date',
    'GPS Date/Time',
    'Date/Time Original',
    'File Modification Date/Time',
]

# exiftool JSON tag name -> description
EXIFTOOL_TAGS = {
    'CreateDate': 'Create Date',
    'GPSDateTime': 'GPS Date/Time',
    'DateTimeOriginal': 'Date/Time Original',
    'FileModifyDate': 'File Modification Date/Time',
}

# exifread tag -> description (fallback when exiftool is not installed)
EXIFREAD_TAGS = {
    'EXIF DateTimeDigitized': 'Create Date',
    'EXIF DateTimeOriginal': 'Date/Time Original',
}

# pymediainfo "General" track attribute -> description
MEDIAINFO_TAGS = {
    'encoded_date': 'Create Date',
    'recorded_date': 'Date/Time Original',
}

EXIFTOOL_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Emitted by metadata tools for unset dates, before any date formatting
ZERO_DATES = {'0000:00:00 00:00:00', '0000:01:00 00:00:00'}

TIMESTAMP_LENGTH = 19
UNKNOWN_TIMESTAMP = 'UNKNOWN'

# --- Archive ---
ARCHIVE_FILE_MODE = 0o644
BACKUP_SUFFIX_PATTERN = ".~{index}~"
# In-progress copies are hidden siblings: .{name}.XXXXXX.part
PARTIAL_SUFFIX = ".part"

# --- Hashing ---
SPARSE_HASH_THRESHOLD = 5 * 1024 * 1024  # 5 MB
HASH_CHUNK_SIZE = 64 * 1024  # 64 KB chunks for reading

# --- Thumbnails ---
THUMBNAIL_MAX_DIMENSION = 800
THUMBNAIL_JPEG_QUALITY = 85
VIDEO_THUMBNAIL_WIDTH = 320
VIDEO_THUMBNAIL_EXT = '.avi'
HEIF_THUMBNAIL_EXT = '.jpg'
THUMBNAIL_PATTERN = "{date}_{stem}_thumb{ext}"

FFMPEG_BINARY = "ffmpeg"
FFMPEG_VIDEO_ARGS = [
    "-map", "0:v:0",
    "-an",
    "-vf", f"scale={VIDEO_THUMBNAIL_WIDTH}:-2",
    "-c:v", "mpeg4",
    "-q:v", "6",
]

# --- External Tools ---
EXIFTOOL_BINARY = "exiftool"
METADATA_TIMEOUT_SEC = 60
TRANSCODE_TIMEOUT_SEC = 15 * 60


def resolve_root(value: Optional[str], env_var: str) -> Path:
    """
    Returns the absolute root directory from an explicit value or the environment.

    Raises ConfigurationError if neither is set, since there is no safe destination.
    """
    raw = value or os.environ.get(env_var)
    if not raw:
        raise ConfigurationError(f"{env_var} is not set and no root was given")
    try:
        return Path(raw).expanduser().resolve()
    except (OSError, RuntimeError) as e:
        raise ConfigurationError(f"Cannot resolve root {raw!r}: {e}") from e
