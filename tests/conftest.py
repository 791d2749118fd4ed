import pytest
from pathlib import Path

from media_archive.core import MediaArchiveApp
from media_archive.metadata.extract import MetadataCache, MetadataExtractor
from media_archive.metadata.timestamp import TimestampResolver
from media_archive.exceptions import TranscodeError

DEFAULT_DATE = "2021-03-04 05:06:07"


class FakeExtractor(MetadataExtractor):
    """Returns canned metadata keyed by file name instead of running exiftool."""

    def __init__(self, by_name=None, default=None):
        super().__init__()
        self.by_name = by_name or {}
        self.default = default if default is not None else {"Create Date": DEFAULT_DATE}
        self.calls = []

    def extract(self, path):
        self.calls.append(Path(path))
        return dict(self.by_name.get(Path(path).name, self.default))


class FakeTranscoder:
    """Records calls; writes a small payload unless told to fail."""

    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def _produce(self, kind, source, dest):
        self.calls.append((kind, Path(source), Path(dest)))
        if self.fail:
            Path(dest).write_bytes(b"partial")
            raise TranscodeError(f"{kind} failed")
        Path(dest).write_bytes(b"thumb")

    def resize_image(self, source, dest, image_format):
        self._produce(image_format, source, dest)

    def heif_thumbnail(self, source, dest):
        self._produce("HEIF", source, dest)

    def transcode_video(self, source, dest):
        self._produce("VIDEO", source, dest)


@pytest.fixture
def extractor():
    return FakeExtractor()


@pytest.fixture
def resolver(extractor):
    return TimestampResolver(MetadataCache(extractor))


@pytest.fixture
def archive_root(tmp_path):
    root = tmp_path / "archive"
    root.mkdir()
    return root


@pytest.fixture
def thumbnail_root(tmp_path):
    root = tmp_path / "thumbs"
    root.mkdir()
    return root


@pytest.fixture
def source_dir(tmp_path):
    src = tmp_path / "incoming"
    src.mkdir()
    return src


@pytest.fixture
def transcoder():
    return FakeTranscoder()


@pytest.fixture
def app(archive_root, thumbnail_root, extractor, transcoder):
    return MediaArchiveApp(archive_root, thumbnail_root, extractor=extractor, transcoder=transcoder)
