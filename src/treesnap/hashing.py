"""Content hashing for snapped files.

This module provides streaming SHA-256 hashing of single files and a
parallel batch mode that yields digests as they complete.
"""

import hashlib
import logging
import threading
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Iterable, Iterator, NamedTuple, Optional, Union

from .constants import HASH_CHUNK_SIZE

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class FileDigest(NamedTuple):
    """Digest of one file from a batch run."""
    path: str
    digest: str


def compute_file_digest(path: PathLike) -> str:
    """Compute SHA256 hash of file contents.

    The file is streamed in fixed-size chunks, never read whole.

    Args:
        path: Path to file to hash

    Returns:
        Lowercase hex digest (64 characters)

    Raises:
        OSError: If the file cannot be opened or read
    """
    sha256 = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(HASH_CHUNK_SIZE), b""):
            sha256.update(chunk)
    return sha256.hexdigest()


def try_file_digest(path: PathLike) -> str:
    """Hash a file, returning an empty string if it cannot be read."""
    try:
        return compute_file_digest(path)
    except OSError as e:
        logger.warning("Error computing hash for %s: %s", path, e)
        return ""


def compute_digests_parallel(
    paths: Iterable[PathLike],
    max_workers: int = 4,
    cancel: Optional[threading.Event] = None,
) -> Iterator[FileDigest]:
    """Compute digests for multiple files in parallel.

    Results are yielded as each file completes, so their order does not
    follow the input order. A file that fails to hash is logged and skipped.

    Args:
        paths: Paths to compute digests for
        max_workers: Number of parallel workers
        cancel: Optional event; once set no further digests are yielded

    Yields:
        FileDigest(path, digest) per successfully hashed file
    """
    def compute_one(path: PathLike) -> FileDigest:
        if cancel is not None and cancel.is_set():
            return FileDigest(str(path), "")
        return FileDigest(str(path), compute_file_digest(path))

    executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="treesnap-hash")
    try:
        futures = {executor.submit(compute_one, p): str(p) for p in paths}
        pending = set(futures)
        while pending:
            if cancel is not None and cancel.is_set():
                return
            done, pending = wait(pending, timeout=0.1, return_when=FIRST_COMPLETED)
            for future in done:
                try:
                    result = future.result()
                except OSError as e:
                    logger.warning("Error hashing file %s: %s", futures[future], e)
                    continue
                if cancel is not None and cancel.is_set():
                    return
                yield result
    finally:
        executor.shutdown(wait=True, cancel_futures=True)
