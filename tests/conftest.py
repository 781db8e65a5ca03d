"""Shared test fixtures and utilities."""

import io
import threading
from pathlib import Path

import pytest
from PIL import Image

from treesnap.core import ScanOptions


@pytest.fixture
def write_file(tmp_path):
    """Factory fixture to write files relative to tmp_path."""
    def _write(path: str, content="test content"):
        file_path = tmp_path / path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            file_path.write_bytes(content)
        else:
            file_path.write_text(content)
        return file_path
    return _write


@pytest.fixture
def sample_tree(tmp_path):
    """Create a small folder tree under tmp_path/root.

    root/
        a.txt, b.txt
        My Folder/ x.txt
        My.Folder/ y.txt
        MyFolder/  z.txt
        sub/ deep/ d.txt
        .hidden_dir/ h.txt
        .hidden_file
    """
    root = tmp_path / "root"
    (root / "My Folder").mkdir(parents=True)
    (root / "My.Folder").mkdir()
    (root / "MyFolder").mkdir()
    (root / "sub" / "deep").mkdir(parents=True)
    (root / ".hidden_dir").mkdir()

    (root / "b.txt").write_text("bbbb")
    (root / "a.txt").write_text("a")
    (root / "My Folder" / "x.txt").write_text("xx")
    (root / "My.Folder" / "y.txt").write_text("yyy")
    (root / "MyFolder" / "z.txt").write_text("z")
    (root / "sub" / "deep" / "d.txt").write_text("dddddd")
    (root / ".hidden_dir" / "h.txt").write_text("h")
    (root / ".hidden_file").write_text("secret")
    return root


@pytest.fixture
def wide_tree(tmp_path):
    """Create a tree with enough folders to use the parallel scan path."""
    root = tmp_path / "wide"
    root.mkdir()
    for i in range(25):
        folder = root / f"dir{i:02d}"
        folder.mkdir()
        for j in range(3):
            (folder / f"file{j}.txt").write_text("x" * (i + j))
    return root


@pytest.fixture
def png_bytes():
    """Encoded bytes of a small valid PNG."""
    buf = io.BytesIO()
    Image.new("RGB", (16, 16), color=(200, 30, 30)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def jpeg_bytes():
    """Encoded bytes of a small valid JPEG."""
    buf = io.BytesIO()
    Image.new("RGB", (16, 16), color=(30, 200, 30)).save(buf, format="JPEG")
    return buf.getvalue()


@pytest.fixture
def cancel_event():
    return threading.Event()


@pytest.fixture
def make_options():
    """Factory for ScanOptions with test-friendly defaults."""
    def _make(root: Path, **kwargs):
        kwargs.setdefault("max_concurrency", 2)
        return ScanOptions(root=str(root), **kwargs)
    return _make
