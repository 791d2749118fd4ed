"""
Wrappers around the tools that actually produce thumbnails.

  - Pictures: Pillow, resized in-process.
  - HEIF: pillow-heif decoder, rendered to a scratch JPEG and then moved.
  - Video: the 'ffmpeg' command line utility (must be on the system PATH).

Every failure is raised as TranscodeError; callers own the cleanup policy.
"""
import logging
import os
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Optional

from PIL import Image, ImageOps
from pillow_heif import register_heif_opener

from .. import config
from ..exceptions import TranscodeError

register_heif_opener()


class Transcoder:
    def __init__(self,
                 max_dimension: int = config.THUMBNAIL_MAX_DIMENSION,
                 timeout: Optional[float] = config.TRANSCODE_TIMEOUT_SEC):
        self.max_dimension = max_dimension
        self.timeout = timeout

    def resize_image(self, source: Path, dest: Path, image_format: str):
        """Fits source within max_dimension x max_dimension, keeping aspect ratio."""
        try:
            image = self._render(source, image_format)
            image.save(dest, format=image_format, **self._save_options(image_format))
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            raise TranscodeError(f"Cannot resize {source}: {e}") from e

    def heif_thumbnail(self, source: Path, dest: Path):
        """
        HEIF previews are always JPEG. The preview is rendered to a local
        scratch file first, since the destination may be a network mount.
        """
        fd, scratch = tempfile.mkstemp(suffix=config.HEIF_THUMBNAIL_EXT)
        os.close(fd)
        try:
            image = self._render(source, "JPEG")
            image.save(scratch, format="JPEG", **self._save_options("JPEG"))
            shutil.move(scratch, dest)
        except (OSError, ValueError, RuntimeError, Image.DecompressionBombError) as e:
            raise TranscodeError(f"Cannot render HEIF preview of {source}: {e}") from e
        finally:
            if os.path.exists(scratch):
                os.remove(scratch)

    def transcode_video(self, source: Path, dest: Path):
        """Low-resolution, single video track, no audio."""
        cmd = [
            config.FFMPEG_BINARY, "-y", "-loglevel", "error", "-nostdin",
            "-i", str(source),
            *config.FFMPEG_VIDEO_ARGS,
            str(dest),
        ]
        try:
            result = subprocess.run(
                cmd, stdout=subprocess.DEVNULL, stderr=subprocess.PIPE,
                text=True, timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise TranscodeError(f"{config.FFMPEG_BINARY} not found on PATH") from e
        except subprocess.TimeoutExpired as e:
            raise TranscodeError(f"ffmpeg timed out after {self.timeout}s on {source}") from e

        if result.returncode != 0:
            detail = (result.stderr or "").strip().splitlines()
            raise TranscodeError(
                f"ffmpeg exited {result.returncode} on {source}: {detail[-1] if detail else ''}"
            )

        if not dest.is_file() or dest.stat().st_size == 0:
            raise TranscodeError(f"ffmpeg produced no output for {source}")

        logging.debug(f"Transcoded {source} -> {dest}")

    def _render(self, source: Path, image_format: str) -> Image.Image:
        with Image.open(source) as im:
            # Apply EXIF orientation so previews are upright
            image = ImageOps.exif_transpose(im)
            image.thumbnail((self.max_dimension, self.max_dimension))

        if image_format == "JPEG" and image.mode not in ("RGB", "L"):
            image = image.convert("RGB")
        return image

    @staticmethod
    def _save_options(image_format: str) -> dict:
        if image_format == "JPEG":
            return {"quality": config.THUMBNAIL_JPEG_QUALITY}
        return {}
