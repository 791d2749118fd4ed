import json
import os
import subprocess
import pytest
from pathlib import Path

from media_archive import config
from media_archive.metadata.extract import MetadataCache, MetadataExtractor
from media_archive.metadata.mimetype import MimetypeClassifier
from media_archive.metadata.timestamp import TimestampResolver, date_of
from conftest import FakeExtractor


def _resolve(metadata, tmp_path):
    f = tmp_path / "clip.mov"
    f.write_bytes(b"x")
    extractor = FakeExtractor(default=metadata)
    return TimestampResolver(MetadataCache(extractor)).resolve(f)


# --- Timestamp Resolver ---

def test_create_date_wins(tmp_path):
    meta = {
        "Create Date": "2020-01-01 10:00:00",
        "Date/Time Original": "2019-01-01 10:00:00",
        "File Modification Date/Time": "2024-01-01 10:00:00",
    }
    assert _resolve(meta, tmp_path) == "2020-01-01 10:00:00"


def test_falls_back_to_date_time_original(tmp_path):
    meta = {
        "Create Date": "",
        "GPS Date/Time": "0000:01:00 00:00:00",
        "Date/Time Original": "2018-07-08 09:10:11+02:00",
        "File Modification Date/Time": "2024-01-01 10:00:00",
    }
    assert _resolve(meta, tmp_path) == "2018-07-08 09:10:11"


def test_zero_create_date_is_absent(tmp_path):
    meta = {
        "Create Date": "0000:00:00 00:00:00",
        "GPS Date/Time": "2017-06-05 04:03:02Z",
    }
    assert _resolve(meta, tmp_path) == "2017-06-05 04:03:02"


def test_modification_date_is_last_resort(tmp_path):
    meta = {"File Modification Date/Time": "2015-02-03 04:05:06"}
    assert _resolve(meta, tmp_path) == "2015-02-03 04:05:06"


def test_no_valid_candidate_is_unknown(tmp_path):
    meta = {"Create Date": "   ", "Date/Time Original": "0000:00:00 00:00:00"}
    assert _resolve(meta, tmp_path) == "UNKNOWN"


def test_exif_style_dates_are_normalized():
    assert TimestampResolver.normalize("2016:12:31 23:59:58.123") == "2016-12-31 23:59:58"


def test_date_of():
    assert date_of("2016-12-31 23:59:58") == "2016-12-31"
    assert date_of("UNKNOWN") == "UNKNOWN"


def test_cache_memoizes_per_file_only(tmp_path):
    a = tmp_path / "a.jpg"
    b = tmp_path / "b.jpg"
    a.write_bytes(b"a")
    b.write_bytes(b"b")
    extractor = FakeExtractor()
    resolver = TimestampResolver(MetadataCache(extractor))

    resolver.resolve(a)
    resolver.resolve(a)
    assert len(extractor.calls) == 1

    resolver.resolve(b)
    assert len(extractor.calls) == 2


# --- Mimetype Classifier ---

@pytest.mark.parametrize(
    "name,expected",
    [
        ("clip.3gp", "video/3gpp"),
        ("clip.AVI", "video/x-msvideo"),
        ("photo.jpg", "image/jpeg"),
        ("photo.JPEG", "image/jpeg"),
        ("movie.mov", "video/quicktime"),
        ("movie.mp4", "video/mp4"),
        ("00001.MTS", "video/mp2t"),
        ("shot.png", "image/png"),
    ],
)
def test_extension_table(name, expected, monkeypatch, tmp_path):
    def no_sniff(self, path):
        raise AssertionError("extension table should not sniff")
    monkeypatch.setattr(MimetypeClassifier, "sniff", no_sniff)

    # File does not need to exist: the lookup does no I/O
    assert MimetypeClassifier().classify(tmp_path / name) == expected


def test_text_file_is_sniffed_by_name(tmp_path):
    f = tmp_path / "notes.txt"
    f.write_text("hello")
    assert MimetypeClassifier().classify(f) == "text/plain"


def test_no_extension_is_content_sniffed(tmp_path):
    f = tmp_path / "IMG0001"
    f.write_bytes(b"\x89PNG\r\n\x1a\n" + b"\x00" * 32)
    assert MimetypeClassifier().classify(f) == "image/png"


def test_unrecognized_binary_is_octet_stream(tmp_path):
    f = tmp_path / "blob"
    f.write_bytes(b"\x00\x01\x02\x03" * 16)
    assert MimetypeClassifier().classify(f) == "application/octet-stream"


def test_heic_is_reported_as_heif(monkeypatch, tmp_path):
    import media_archive.metadata.mimetype as mimetype_module
    monkeypatch.setattr(mimetype_module.filetype, "guess_mime", lambda p: "image/heic")

    f = tmp_path / "IMG_0001.HEIC"
    f.write_bytes(b"data")
    assert MimetypeClassifier().classify(f) == "image/heif"


# --- Metadata Extractor ---

def test_exiftool_output_is_mapped_to_descriptions(monkeypatch, tmp_path):
    f = tmp_path / "photo.jpg"
    f.write_bytes(b"x")
    captured = {}

    def fake_check_output(cmd, **kwargs):
        captured["cmd"] = cmd
        return json.dumps([{
            "SourceFile": str(f),
            "CreateDate": "2020-01-02 03:04:05",
            "DateTimeOriginal": "0000:00:00 00:00:00",
            "FileModifyDate": "2024-05-06 07:08:09",
        }])

    monkeypatch.setattr(subprocess, "check_output", fake_check_output)

    data = MetadataExtractor().extract(f)

    assert data == {
        "Create Date": "2020-01-02 03:04:05",
        "Date/Time Original": "0000:00:00 00:00:00",
        "File Modification Date/Time": "2024-05-06 07:08:09",
    }
    assert captured["cmd"][0] == config.EXIFTOOL_BINARY
    assert "-CreateDate" in captured["cmd"]


def test_missing_exiftool_falls_back_to_mtime(monkeypatch, tmp_path):
    f = tmp_path / "notes.bin"
    f.write_bytes(b"not media")
    os.utime(f, (1500000000, 1500000000))

    def missing(cmd, **kwargs):
        raise FileNotFoundError("exiftool")

    monkeypatch.setattr(subprocess, "check_output", missing)
    monkeypatch.setattr(MetadataExtractor, "_extract_exifread", lambda self, p: {})
    monkeypatch.setattr(MetadataExtractor, "_extract_mediainfo", lambda self, p: {})

    data = MetadataExtractor().extract(f)
    assert set(data) == {"File Modification Date/Time"}
    assert data["File Modification Date/Time"].startswith("2017-07-1")


def test_exiftool_failure_is_not_an_error(monkeypatch, tmp_path):
    f = tmp_path / "clip.mp4"
    f.write_bytes(b"x")

    def failing(cmd, **kwargs):
        raise subprocess.CalledProcessError(1, cmd)

    monkeypatch.setattr(subprocess, "check_output", failing)
    monkeypatch.setattr(MetadataExtractor, "_extract_exifread", lambda self, p: {})
    monkeypatch.setattr(MetadataExtractor, "_extract_mediainfo", lambda self, p: {})

    data = MetadataExtractor().extract(f)
    assert "File Modification Date/Time" in data


# Mock MediaInfo class structure
class MockTrack:
    def __init__(self, **kwargs):
        self.track_type = "General"
        for k, v in kwargs.items():
            setattr(self, k, v)


class MockMediaInfo:
    def __init__(self, tracks):
        self.tracks = tracks

    @classmethod
    def parse(cls, path):
        return cls([MockTrack(encoded_date="UTC 2023-01-01 12:00:00", recorded_date=None)])


def test_video_fallback_uses_mediainfo(monkeypatch, tmp_path):
    import media_archive.metadata.extract as extract_module
    monkeypatch.setattr(extract_module, "MediaInfo", MockMediaInfo)
    monkeypatch.setattr(MetadataExtractor, "_extract_exifread", lambda self, p: {})

    def no_exiftool(self, path):
        raise FileNotFoundError("exiftool")
    monkeypatch.setattr(MetadataExtractor, "_extract_exiftool", no_exiftool)

    vid = tmp_path / "test.mp4"
    vid.write_bytes(b"\x00" * 64)

    data = MetadataExtractor().extract(vid)
    assert data["Create Date"] == "2023-01-01 12:00:00"

    resolver = TimestampResolver(MetadataCache(MetadataExtractor()))
    assert resolver.resolve(vid) == "2023-01-01 12:00:00"
