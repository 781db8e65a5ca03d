"""Image integrity validation.

Two tiers:

1. Signature check: compare the first bytes of the file with known image
   magic numbers. Constant I/O per file, no decoding.
2. Full decode: let Pillow identify the container and verify its structure.
   Pixel data is never materialized.

Batch mode runs a bounded producer/consumer pipeline so huge file sets are
validated with bounded memory while the consumers stay busy.
"""

import logging
import os
import queue
import struct
import threading
from pathlib import Path
from typing import Iterable, Iterator, Optional, Tuple, Union

from PIL import Image

from .constants import VALIDATION_QUEUE_SIZE
from .core import IntegrityLevel, IntegrityStatus

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

IMAGE_EXTENSIONS = frozenset({
    ".jpg", ".jpeg", ".png", ".gif", ".bmp", ".webp", ".tiff", ".tif",
})

# (signature, offset, format)
MAGIC_SIGNATURES = (
    (b"\xFF\xD8\xFF", 0, "JPEG"),
    (b"\x89PNG\r\n\x1a\n", 0, "PNG"),
    (b"GIF8", 0, "GIF"),
    (b"BM", 0, "BMP"),
    (b"RIFF", 0, "WebP"),
    (b"II\x2A\x00", 0, "TIFF LE"),
    (b"MM\x00\x2A", 0, "TIFF BE"),
)

# RIFF is a generic container; WebP carries this tag after the size field
WEBP_SIGNATURE = b"WEBP"
WEBP_OFFSET = 8

SIGNATURE_PREFIX_SIZE = 16

# Errors Pillow raises for unidentified, truncated or malformed images
DECODE_ERRORS = (OSError, SyntaxError, ValueError, EOFError, IndexError, struct.error)


def is_image_extension(path: PathLike) -> bool:
    """Check whether a path has a recognized image extension (case-insensitive)."""
    return os.path.splitext(str(path))[1].lower() in IMAGE_EXTENSIONS


def matches_signature(prefix: bytes) -> bool:
    """Check a file prefix against the known image signatures."""
    if not prefix:
        return False
    for signature, offset, fmt in MAGIC_SIGNATURES:
        if prefix[offset:offset + len(signature)] != signature:
            continue
        if fmt == "WebP":
            end = WEBP_OFFSET + len(WEBP_SIGNATURE)
            return prefix[WEBP_OFFSET:end] == WEBP_SIGNATURE
        return True
    return False


def read_prefix(path: PathLike, size: int = SIGNATURE_PREFIX_SIZE) -> bytes:
    with open(path, "rb") as f:
        return f.read(size)


def check_full_decode(path: PathLike) -> IntegrityStatus:
    """Confirm the image container parses and verifies."""
    try:
        with Image.open(path) as im:
            im.verify()
    except Image.DecompressionBombError as e:
        # Header parsed fine; the image is just very large
        logger.debug("Skipping verify for oversized image %s: %s", path, e)
        return IntegrityStatus.VALID
    except DECODE_ERRORS as e:
        logger.debug("Decode failed for %s: %s", path, e)
        return IntegrityStatus.DECODE_FAILED
    return IntegrityStatus.VALID


class ImageIntegrityValidator:
    """Validate image files at a configurable level."""

    def __init__(self, workers: Optional[int] = None, queue_size: int = VALIDATION_QUEUE_SIZE):
        """Initialize the validator.

        Args:
            workers: Consumer threads for batch mode (default 2x CPU count)
            queue_size: Bound of the batch work queue
        """
        self.workers = workers or (os.cpu_count() or 1) * 2
        self.queue_size = queue_size

    def validate(self, path: PathLike, level: IntegrityLevel) -> IntegrityStatus:
        """Validate one file.

        Args:
            path: File to validate
            level: Validation level

        Returns:
            UNKNOWN for level NONE, NOT_AN_IMAGE for unrecognized extensions
            (no I/O performed), otherwise the tiered result
        """
        if level == IntegrityLevel.NONE:
            return IntegrityStatus.UNKNOWN
        if not is_image_extension(path):
            return IntegrityStatus.NOT_AN_IMAGE
        return self._validate_image(path, level)

    def _validate_image(self, path: PathLike, level: IntegrityLevel) -> IntegrityStatus:
        try:
            prefix = read_prefix(path)
        except OSError as e:
            logger.warning("Error reading %s for validation: %s", path, e)
            return IntegrityStatus.DECODE_FAILED

        if not matches_signature(prefix):
            return IntegrityStatus.INVALID_SIGNATURE

        if level == IntegrityLevel.SIGNATURE:
            return IntegrityStatus.VALID

        return check_full_decode(path)

    def validate_batch(
        self,
        paths: Iterable[PathLike],
        level: IntegrityLevel,
        cancel: Optional[threading.Event] = None,
    ) -> Iterator[Tuple[str, IntegrityStatus]]:
        """Validate many files through a bounded producer/consumer pipeline.

        Only files with image extensions are validated. Results arrive in
        completion order, not input order. The generator stops promptly once
        ``cancel`` is set, and stops the pipeline if it is closed early.

        Yields:
            (path, status) pairs
        """
        if level == IntegrityLevel.NONE:
            return

        work: "queue.Queue" = queue.Queue(maxsize=self.queue_size)
        results: "queue.Queue" = queue.Queue()
        stop = threading.Event()
        end_of_work = object()
        consumer_done = object()
        producer_errors: list = []

        def stopped() -> bool:
            return stop.is_set() or (cancel is not None and cancel.is_set())

        def put_blocking(item) -> bool:
            # Back-pressure: wait for room, but keep watching for cancellation
            while not stopped():
                try:
                    work.put(item, timeout=0.1)
                    return True
                except queue.Full:
                    continue
            return False

        def produce():
            try:
                for path in paths:
                    if stopped():
                        return
                    if is_image_extension(path) and not put_blocking(str(path)):
                        return
            except Exception as e:
                # Re-raised from the generator once the consumers drain
                producer_errors.append(e)
            finally:
                for _ in range(self.workers):
                    if not put_blocking(end_of_work):
                        break

        def consume():
            try:
                while not stopped():
                    try:
                        item = work.get(timeout=0.1)
                    except queue.Empty:
                        continue
                    if item is end_of_work:
                        break
                    results.put((item, self._validate_image(item, level)))
            finally:
                results.put(consumer_done)

        threads = [threading.Thread(target=produce, name="treesnap-validate-producer", daemon=True)]
        threads.extend(
            threading.Thread(target=consume, name=f"treesnap-validate-{i}", daemon=True)
            for i in range(self.workers)
        )
        for t in threads:
            t.start()

        try:
            finished = 0
            while finished < self.workers:
                if cancel is not None and cancel.is_set():
                    return
                try:
                    item = results.get(timeout=0.1)
                except queue.Empty:
                    continue
                if item is consumer_done:
                    finished += 1
                    continue
                yield item
            if producer_errors:
                raise producer_errors[0]
        finally:
            stop.set()
            for t in threads:
                t.join()
