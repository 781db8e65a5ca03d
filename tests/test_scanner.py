"""Tests for the folder scanner."""

import hashlib
import os
import threading

import pytest

from treesnap import scanner
from treesnap.core import IntegrityLevel, IntegrityStatus
from treesnap.progress import ProgressThrottle
from treesnap.scanner import FolderScanner, scan_folder, split_folder_path
from treesnap.validation import ImageIntegrityValidator


def _names(result, root):
    return [os.path.relpath(f.full_path, root) for f in result.folders]


@pytest.fixture
def folder_scanner():
    return FolderScanner(validator=ImageIntegrityValidator(workers=2))


class TestScan:
    """Test scanning a small tree."""

    def test_folder_order_and_totals(self, folder_scanner, sample_tree, make_options):
        result = folder_scanner.scan(make_options(sample_tree))

        assert result.succeeded
        assert _names(result, sample_tree) == [
            ".", "My Folder", "My.Folder", "MyFolder", "sub", os.path.join("sub", "deep"),
        ]
        assert result.total_directories == 6
        assert result.total_files == 6
        assert result.total_size == 17

    def test_root_entry(self, folder_scanner, sample_tree, make_options):
        root = folder_scanner.scan(make_options(sample_tree)).folders[0]
        assert root.name == "root"
        assert root.path == str(sample_tree.parent)
        assert root.full_path == str(sample_tree)

    def test_files_sorted_by_name(self, folder_scanner, sample_tree, make_options):
        root = folder_scanner.scan(make_options(sample_tree)).folders[0]
        assert [f.name for f in root.files] == ["a.txt", "b.txt"]
        assert [f.size for f in root.files] == [1, 4]
        assert root.total_size == 5

    def test_file_timestamps(self, folder_scanner, sample_tree, make_options):
        os.utime(sample_tree / "a.txt", (1_600_000_000, 1_600_000_000))
        root = folder_scanner.scan(make_options(sample_tree)).folders[0]
        assert root.files[0].modified == 1_600_000_000

    def test_relative_root_made_absolute(self, folder_scanner, sample_tree, make_options, monkeypatch):
        monkeypatch.chdir(sample_tree.parent)
        result = folder_scanner.scan(make_options("root"))
        assert result.folders[0].full_path == str(sample_tree)

    def test_hidden_included(self, folder_scanner, sample_tree, make_options):
        result = folder_scanner.scan(make_options(sample_tree, skip_hidden=False))
        assert ".hidden_dir" in _names(result, sample_tree)
        assert ".hidden_file" in [f.name for f in result.folders[0].files]
        assert result.total_files == 8
        assert result.total_size == 24

    def test_hashing(self, folder_scanner, sample_tree, make_options):
        result = folder_scanner.scan(make_options(sample_tree, enable_hashing=True))
        a = result.folders[0].files[0]
        assert a.hash == hashlib.sha256(b"a").hexdigest()

    def test_hashing_disabled(self, folder_scanner, sample_tree, make_options):
        result = folder_scanner.scan(make_options(sample_tree))
        assert all(f.hash == "" for folder in result.folders for f in folder.files)
        assert all(
            f.integrity == IntegrityStatus.UNKNOWN
            for folder in result.folders for f in folder.files
        )

    def test_integrity(self, folder_scanner, tmp_path, write_file, png_bytes, make_options):
        write_file("imgs/good.png", png_bytes)
        write_file("imgs/bad.png", b"\x89PNG\r\n\x1a\n" + b"\x00" * 40)
        write_file("imgs/fake.gif", b"plain text")
        write_file("imgs/notes.txt", "hello")

        result = folder_scanner.scan(make_options(tmp_path / "imgs", integrity_level=IntegrityLevel.FULL))
        statuses = {f.name: f.integrity for f in result.folders[0].files}
        assert statuses == {
            "bad.png": IntegrityStatus.DECODE_FAILED,
            "fake.gif": IntegrityStatus.INVALID_SIGNATURE,
            "good.png": IntegrityStatus.VALID,
            "notes.txt": IntegrityStatus.NOT_AN_IMAGE,
        }
        summary = result.integrity_summary()
        assert summary[IntegrityStatus.VALID] == 1
        assert summary[IntegrityStatus.NOT_AN_IMAGE] == 1

    def test_validator_failure_leaves_unknown(self, sample_tree, make_options):
        class BrokenValidator:
            def validate(self, path, level):
                raise RuntimeError("boom")

        result = FolderScanner(validator=BrokenValidator()).scan(
            make_options(sample_tree, integrity_level=IntegrityLevel.SIGNATURE)
        )
        assert result.succeeded
        assert all(
            f.integrity == IntegrityStatus.UNKNOWN
            for folder in result.folders for f in folder.files
        )

    def test_exclude_files(self, folder_scanner, sample_tree, make_options):
        result = folder_scanner.scan(make_options(sample_tree, exclude=("b.txt",)))
        assert [f.name for f in result.folders[0].files] == ["a.txt"]

    def test_missing_root(self, folder_scanner, tmp_path, make_options):
        result = folder_scanner.scan(make_options(tmp_path / "nope"))
        assert not result.succeeded
        assert "does not exist" in result.error
        assert result.folders == ()

    def test_empty_root(self, folder_scanner, tmp_path, make_options):
        result = folder_scanner.scan(make_options(tmp_path))
        assert result.total_directories == 1
        assert result.total_files == 0
        assert result.folders[0].files == ()

    def test_unlistable_directory(self, folder_scanner, sample_tree, make_options, monkeypatch):
        """An unreadable folder is still recorded, with no files and no subfolders."""
        real_scandir = os.scandir
        blocked = str(sample_tree / "sub")

        def fake_scandir(path):
            if str(path) == blocked:
                raise PermissionError(13, "Permission denied", path)
            return real_scandir(path)

        monkeypatch.setattr(os, "scandir", fake_scandir)
        result = folder_scanner.scan(make_options(sample_tree))

        assert result.succeeded
        names = _names(result, sample_tree)
        assert "sub" in names
        assert os.path.join("sub", "deep") not in names
        sub = result.folders[names.index("sub")]
        assert sub.files == ()

    def test_scan_folder_helper(self, sample_tree, make_options):
        assert scan_folder(make_options(sample_tree)).total_directories == 6


class TestParallelScan:
    """Test that worker scheduling never affects the result."""

    def test_parallel_matches_sequential(self, wide_tree, make_options, monkeypatch):
        parallel = FolderScanner().scan(make_options(wide_tree, max_concurrency=4))

        monkeypatch.setattr(scanner, "PARALLEL_THRESHOLD", 10_000)
        sequential = FolderScanner().scan(make_options(wide_tree, max_concurrency=4))

        assert parallel == sequential
        assert parallel.total_directories == 26
        assert parallel.total_files == 75

    def test_repeatable(self, wide_tree, make_options):
        first = FolderScanner().scan(make_options(wide_tree, max_concurrency=8))
        second = FolderScanner().scan(make_options(wide_tree, max_concurrency=3))
        assert first == second

    def test_progress_events(self, wide_tree, make_options, monkeypatch):
        monkeypatch.setattr(
            scanner, "ProgressThrottle", lambda cb: ProgressThrottle(cb, interval=0),
        )
        events = []
        lock = threading.Lock()

        def on_progress(p):
            with lock:
                events.append(p)

        result = FolderScanner().scan(make_options(wide_tree), progress=on_progress)
        assert result.succeeded
        reading = [e for e in events if e.message.startswith("Reading files... ")]
        assert reading
        assert max(e.files_processed for e in reading) == 75

    def test_progress_reported_outside_lock(self, wide_tree, make_options, monkeypatch):
        states = []

        class RecordingState(scanner._ScanState):
            def __init__(self, *args, **kwargs):
                super().__init__(*args, **kwargs)
                states.append(self)

        monkeypatch.setattr(scanner, "_ScanState", RecordingState)
        monkeypatch.setattr(scanner, "PARALLEL_THRESHOLD", 10_000)
        monkeypatch.setattr(
            scanner, "ProgressThrottle", lambda cb: ProgressThrottle(cb, interval=0),
        )
        held = []

        def on_progress(p):
            if p.message.startswith("Reading files... "):
                held.append(states[0].lock.locked())

        FolderScanner().scan(make_options(wide_tree), progress=on_progress)
        assert len(held) == 26
        assert not any(held)


class TestCancellation:
    """Test that a cancelled scan returns a prefix of the full result."""

    def _cancel_after(self, cancel, count):
        calls = []
        lock = threading.Lock()

        def hasher(path):
            with lock:
                calls.append(path)
                if len(calls) >= count:
                    cancel.set()
            return "x"

        return hasher

    def test_cancel_before_scan(self, sample_tree, make_options, cancel_event):
        cancel_event.set()
        result = FolderScanner().scan(make_options(sample_tree), cancel=cancel_event)
        assert result.cancelled
        assert result.folders == ()

    @pytest.mark.parametrize("threshold", [10, 10_000])
    def test_cancel_mid_scan_yields_prefix(self, wide_tree, make_options, cancel_event, monkeypatch, threshold):
        monkeypatch.setattr(scanner, "PARALLEL_THRESHOLD", threshold)
        options = make_options(wide_tree, enable_hashing=True)

        full = FolderScanner(hasher=lambda p: "x").scan(options)
        partial = FolderScanner(hasher=self._cancel_after(cancel_event, 20)).scan(
            options, cancel=cancel_event,
        )

        assert partial.cancelled
        assert not partial.succeeded
        assert len(partial.folders) < len(full.folders)
        assert partial.folders == full.folders[:len(partial.folders)]
        assert partial.total_directories == len(partial.folders)


@pytest.mark.skipif(os.sep != "/", reason="POSIX path layout")
class TestSplitFolderPath:
    def test_regular(self):
        assert split_folder_path("/data/photos") == ("photos", "/data")

    def test_volume_root(self):
        assert split_folder_path("/") == ("", "/")
