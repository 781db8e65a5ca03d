"""Tests for encoding folders into the snapshot data array."""

import io
import os
import re
import threading

import pytest

from treesnap.core import IntegrityStatus, SnappedFile, SnappedFolder
from treesnap.serializer import build_child_index, encode_folder, write_dir_data

pytestmark = pytest.mark.skipif(os.sep != "/", reason="POSIX path layout")

RECORD = re.compile(r'^D\.p\(\[.*\]\)$')


def _folder(full_path, files=(), modified=1000):
    parent, name = os.path.split(full_path)
    return SnappedFolder(name=name, path=parent, modified=modified, files=tuple(files))


@pytest.fixture
def folders():
    """/data/root with two children and one grandchild, in sorted order."""
    return [
        _folder("/data/root", [
            SnappedFile(name="a.txt", size=10, modified=111),
            SnappedFile(name="b.png", size=20, modified=222, hash="ab" * 32,
                        integrity=IntegrityStatus.VALID),
        ]),
        _folder("/data/root/photos", [SnappedFile(name="c.jpg", size=5, modified=333)]),
        _folder("/data/root/photos/2024"),
        _folder("/data/root/video"),
    ]


def _encode(folders, **kwargs):
    out = io.StringIO()
    assert write_dir_data(folders, out, **kwargs)
    return out.getvalue()


class TestBuildChildIndex:
    def test_children(self, folders):
        subdirs = build_child_index(folders)
        assert subdirs["/data/root"] == ["1", "3"]
        assert subdirs["/data/root/photos"] == ["2"]
        assert subdirs["/data/root/video"] == []

    def test_root_not_listed_as_child(self, folders):
        subdirs = build_child_index(folders)
        assert all("0" not in subdirs[f.full_path] for f in folders)

    def test_start_index_offset(self, folders):
        assert build_child_index(folders, start_index=100)["/data/root"] == ["101", "103"]

    def test_orphan_dropped(self, folders):
        folders.append(_folder("/elsewhere/lost"))
        subdirs = build_child_index(folders)
        indices = [i for children in subdirs.values() for i in children]
        assert "4" not in indices

    def test_empty(self):
        assert build_child_index([]) == {}


class TestEncodeFolder:
    def test_record_layout(self, folders):
        record = encode_folder(folders[0], ["1", "3"])
        assert record == (
            'D.p(["/data/root*0*1000",'
            '"a.txt*10*111**0",'
            f'"b.png*20*222*{"ab" * 32}*1",'
            '30,'
            '"1*3"])'
        )

    def test_empty_folder(self, folders):
        assert encode_folder(folders[3], []) == 'D.p(["/data/root/video*0*1000",0,""])'

    def test_names_escaped(self):
        folder = _folder("/data/a&b", [SnappedFile(name="a\\b&c", size=1)])
        record = encode_folder(folder, [])
        assert '"/data/a&amp;b*0*1000"' in record
        assert '"a\\\\b&amp;c*1*0**0"' in record


class TestWriteDirData:
    def test_one_record_per_folder(self, folders):
        lines = _encode(folders).splitlines()
        assert len(lines) == len(folders)
        assert all(RECORD.match(line) for line in lines)

    def test_child_indices_in_range(self, folders):
        folders.append(_folder("/elsewhere/lost"))
        for line in _encode(folders).splitlines():
            children = line.rsplit(",", 1)[1][1:-3]
            for index in filter(None, children.split("*")):
                assert 0 <= int(index) < len(folders)

    def test_deterministic(self, folders):
        assert _encode(folders) == _encode(list(folders))

    def test_chunked_writes_match_single_write(self, folders):
        chunks = []

        class Sink:
            def write(self, s):
                chunks.append(s)

        assert write_dir_data(folders, Sink(), chunk_size=10)
        assert len(chunks) > 1
        assert "".join(chunks) == _encode(folders)

    def test_cancelled(self, folders):
        cancel = threading.Event()
        cancel.set()
        out = io.StringIO()
        assert not write_dir_data(folders, out, cancel=cancel)
        assert out.getvalue() == ""

    def test_progress_every_hundred(self):
        many = [_folder("/r")] + [_folder(f"/r/d{i:03d}") for i in range(249)]
        calls = []
        _encode(many, progress=lambda written, total: calls.append((written, total)))
        assert calls == [(100, 250), (200, 250)]

    def test_empty(self):
        assert _encode([]) == ""
