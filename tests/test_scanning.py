import pytest
from pathlib import Path

from media_archive import config
from media_archive.models import ImportResult, Report
from media_archive.reporting import SweepSummary
from media_archive.scanning.filesystem import TreeSweeper
from media_archive.scanning.hasher import FileHasher


def test_iter_files_orders_and_skips(tmp_path):
    root = tmp_path
    skip_dir = root / "skip"
    skip_dir.mkdir()
    (skip_dir / "skip.txt").write_text("skip")

    sub = root / "a"
    sub.mkdir()
    (sub / "b.txt").write_text("b")
    (root / "c.txt").write_text("c")

    files = list(TreeSweeper(skip_dirs={skip_dir}).iter_files(root))

    assert files == [root / "c.txt", sub / "b.txt"]


def test_iter_files_ignores_symlinks(tmp_path):
    real = tmp_path / "real.jpg"
    real.write_bytes(b"x")
    (tmp_path / "link.jpg").symlink_to(real)

    assert list(TreeSweeper().iter_files(tmp_path)) == [real]


def _flaky(path: Path) -> Report:
    if path.name.startswith("bad"):
        raise RuntimeError("corrupt file")
    return Report(ImportResult.SUCCESS_ORIG, path, path)


@pytest.mark.parametrize("workers", [1, 4])
def test_sweep_continues_past_failures(tmp_path, workers):
    for name in ["a.jpg", "bad.jpg", "c.jpg", "d/e.jpg"]:
        p = tmp_path / name
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_bytes(b"x")

    items = list(TreeSweeper().sweep(tmp_path, _flaky, max_workers=workers))

    assert len(items) == 4
    errors = [path for path, report, error in items if error is not None]
    assert errors == [tmp_path / "bad.jpg"]
    assert all(report.ok for _, report, error in items if error is None)


def test_summary_counts_and_csv(tmp_path):
    csv_path = tmp_path / "report.csv"
    with SweepSummary(csv_path) as summary:
        summary.record(Report(ImportResult.SUCCESS_ORIG, Path("/a"), Path("/x/a")))
        summary.record(Report(ImportResult.DECLINE_MIMETYPE, Path("/b")))
        line = summary.record_error(Path("/c"), RuntimeError("boom"))

    assert line == "ERROR\t/c\tNA"
    assert summary.total == 3
    assert summary.failures == 2
    assert summary.counts["IMPORT_SUCCESS_ORIG"] == 1

    rows = csv_path.read_text(encoding="utf-8").splitlines()
    assert rows[0] == "Action,Source,Destination"
    assert rows[2] == "IMPORT_DECLINE_MIMETYPE,/b,NA"


def test_same_content_small_files(tmp_path):
    a = tmp_path / "a.bin"
    b = tmp_path / "b.bin"
    c = tmp_path / "c.bin"
    a.write_bytes(b"hello world")
    b.write_bytes(b"hello world")
    c.write_bytes(b"hello there")

    hasher = FileHasher()
    assert hasher.same_content(a, b)
    assert not hasher.same_content(a, c)
    assert not hasher.same_content(a, tmp_path / "missing.bin")


def test_same_content_large_files_differ_in_middle(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "SPARSE_HASH_THRESHOLD", 1024)
    data = bytearray(b"\x00" * 64 * 1024)
    a = tmp_path / "a.bin"
    b = tmp_path / "b.bin"
    a.write_bytes(bytes(data))
    data[20000] = 1
    b.write_bytes(bytes(data))

    assert not FileHasher().same_content(a, b)


def test_full_hash_is_memoized(tmp_path, monkeypatch):
    p = tmp_path / "sample.bin"
    p.write_bytes(b"hello world" * 10)
    hasher = FileHasher()
    reads = []
    real = hasher._full_sha256

    def counting(path):
        reads.append(path)
        return real(path)

    monkeypatch.setattr(hasher, "_full_sha256", counting)
    first = hasher.full_hash(p)
    second = hasher.full_hash(p)

    assert first == second
    assert len(reads) == 1
