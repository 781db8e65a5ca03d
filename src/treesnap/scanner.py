"""Folder scanner: builds a ScanResult for a directory tree.

Phases:
1. Collect all directories breadth-first (single thread).
2. Sort them; this order is the final folder order and the array index order.
3. Build one SnappedFolder per directory, sequentially for small trees and on
   a bounded thread pool otherwise. Workers publish into a shared mapping;
   the result is assembled by replaying the sorted list against it, so worker
   completion order never affects output order.
"""

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from .collector import collect_directories
from .constants import PARALLEL_THRESHOLD
from .core import (
    IntegrityLevel,
    IntegrityStatus,
    ScanOptions,
    ScanResult,
    SnappedFile,
    SnappedFolder,
)
from .errors import RootNotFoundError
from .hashing import try_file_digest
from .ignore import EntryFilter
from .ordering import sort_dir_list
from .progress import ProgressCallback, ProgressThrottle
from .utils import is_volume_root, to_unix_timestamp
from .validation import ImageIntegrityValidator

logger = logging.getLogger(__name__)


def split_folder_path(dir_name: str):
    """Return (name, parent path) for a directory.

    A volume root has an empty name and is its own parent path.
    """
    if is_volume_root(dir_name):
        return "", dir_name
    return os.path.basename(dir_name), os.path.dirname(dir_name)


def creation_time(st: os.stat_result) -> float:
    """Best available creation time (birth time where the platform has one)."""
    return getattr(st, "st_birthtime", None) or st.st_ctime


@dataclass
class _ScanState:
    """Mutable state shared by scan workers.

    Only ``publish`` touches it, always under the lock.
    """

    throttle: ProgressThrottle
    folders: Dict[str, SnappedFolder] = field(default_factory=dict)
    total_files: int = 0
    lock: threading.Lock = field(default_factory=threading.Lock)

    def publish(self, dir_name: str, folder: SnappedFolder) -> None:
        with self.lock:
            self.folders[dir_name] = folder
            self.total_files += len(folder.files)
            folders_done, files_done = len(self.folders), self.total_files
        # Report outside the lock; the callback may be slow
        self.throttle.report(
            f"Reading files... {files_done}",
            items_processed=folders_done,
            files_processed=files_done,
            current_item=dir_name,
        )


class FolderScanner:
    """Scans a folder tree into an ordered ScanResult."""

    def __init__(
        self,
        validator: Optional[ImageIntegrityValidator] = None,
        hasher: Callable[[str], str] = try_file_digest,
    ):
        """Initialize scanner.

        Args:
            validator: Image validator (default ImageIntegrityValidator())
            hasher: Function returning a file's hex digest, or "" on failure
        """
        self.validator = validator or ImageIntegrityValidator()
        self.hasher = hasher

    def scan(
        self,
        options: ScanOptions,
        progress: Optional[ProgressCallback] = None,
        cancel: Optional[threading.Event] = None,
    ) -> ScanResult:
        """Scan ``options.root``.

        Never raises: a missing root or unexpected failure is reported in
        ``ScanResult.error``, cancellation in ``ScanResult.cancelled``.

        Args:
            options: Scan options
            progress: Optional callback for throttled status events
            cancel: Optional event; set it to stop the scan

        Returns:
            ScanResult whose folders follow the sorted directory order. When
            cancelled, folders are the completed prefix of that order.
        """
        root = os.path.abspath(options.root)
        if not os.path.isdir(root):
            return ScanResult.failed(str(RootNotFoundError(options.root)))

        options = options.model_copy(update={"root": root})
        if cancel is None:
            cancel = threading.Event()

        try:
            entry_filter = EntryFilter.from_options(options)
            collected = collect_directories(root, options, progress, cancel, entry_filter)
            if collected.cancelled:
                return ScanResult.from_folders((), cancelled=True)

            dirs = sort_dir_list(collected.directories)
            logger.debug("Collected %d directories under %s", len(dirs), root)

            state = _ScanState(throttle=ProgressThrottle(progress))
            if len(dirs) > PARALLEL_THRESHOLD:
                self._process_parallel(dirs, options, entry_filter, state, cancel)
            else:
                self._process_sequential(dirs, options, entry_filter, state, cancel)

            if cancel.is_set():
                return ScanResult.from_folders(_completed_prefix(dirs, state.folders), cancelled=True)

            return ScanResult.from_folders(state.folders[d] for d in dirs)
        except Exception as e:
            logger.exception("Scan of %s failed", root)
            return ScanResult.failed(str(e))

    def _process_sequential(self, dirs, options, entry_filter, state, cancel) -> None:
        for dir_name in dirs:
            if cancel.is_set():
                return
            folder = self.process_directory(dir_name, options, entry_filter, cancel)
            if folder is not None:
                state.publish(dir_name, folder)

    def _process_parallel(self, dirs, options, entry_filter, state, cancel) -> None:
        def work(dir_name: str) -> None:
            if cancel.is_set():
                return
            # Folder construction happens outside the lock
            folder = self.process_directory(dir_name, options, entry_filter, cancel)
            if folder is not None:
                state.publish(dir_name, folder)

        with ThreadPoolExecutor(
            max_workers=options.max_concurrency,
            thread_name_prefix="treesnap-scan",
        ) as executor:
            futures = [executor.submit(work, d) for d in dirs]
            try:
                for future in as_completed(futures):
                    future.result()
                    if cancel.is_set():
                        break
            finally:
                for future in futures:
                    future.cancel()

    def process_directory(
        self,
        dir_name: str,
        options: ScanOptions,
        entry_filter: EntryFilter,
        cancel: Optional[threading.Event] = None,
    ) -> Optional[SnappedFolder]:
        """Build the folder entry for one directory.

        Returns:
            The folder with its files sorted by name, or None if cancelled
            before the file list was complete. A directory that cannot be
            listed yields a folder with no files.
        """
        name, parent = split_folder_path(dir_name)
        modified = created = 0
        try:
            st = os.stat(dir_name)
            modified = to_unix_timestamp(st.st_mtime)
            created = to_unix_timestamp(creation_time(st))
        except OSError as e:
            logger.warning("Could not read metadata of %s: %s", dir_name, e)

        files = self._collect_files(dir_name, options, entry_filter, cancel)
        if files is None:
            return None

        return SnappedFolder(
            name=name,
            path=parent,
            modified=modified,
            created=created,
            files=tuple(files),
        )

    def _collect_files(
        self,
        dir_name: str,
        options: ScanOptions,
        entry_filter: EntryFilter,
        cancel: Optional[threading.Event],
    ) -> Optional[List[SnappedFile]]:
        result: List[SnappedFile] = []
        try:
            with os.scandir(dir_name) as it:
                for entry in it:
                    if cancel is not None and cancel.is_set():
                        return None
                    snapped = self._snap_file(entry, options, entry_filter)
                    if snapped is not None:
                        result.append(snapped)
        except OSError as e:
            logger.warning("Could not list files in %s: %s", dir_name, e)

        # Ordinal sort, independent of the filesystem's enumeration order
        result.sort(key=lambda f: f.name)
        return result

    def _snap_file(
        self,
        entry: os.DirEntry,
        options: ScanOptions,
        entry_filter: EntryFilter,
    ) -> Optional[SnappedFile]:
        try:
            if not entry.is_file():
                return None
            st = entry.stat()
        except OSError as e:
            logger.warning("Could not read %s: %s", entry.path, e)
            return None

        if not entry_filter.include_file(entry, st):
            return None

        digest = self.hasher(entry.path) if options.enable_hashing else ""

        integrity = IntegrityStatus.UNKNOWN
        if options.integrity_level != IntegrityLevel.NONE:
            try:
                integrity = self.validator.validate(entry.path, options.integrity_level)
            except Exception as e:
                logger.warning("Error validating integrity for %s: %s", entry.path, e)

        return SnappedFile(
            name=entry.name,
            size=st.st_size,
            modified=to_unix_timestamp(st.st_mtime),
            created=to_unix_timestamp(creation_time(st)),
            hash=digest,
            integrity=integrity,
        )


def _completed_prefix(dirs: List[str], folders: Dict[str, SnappedFolder]) -> List[SnappedFolder]:
    """Folders for the longest prefix of ``dirs`` that finished scanning."""
    prefix = []
    for d in dirs:
        folder = folders.get(d)
        if folder is None:
            break
        prefix.append(folder)
    return prefix


def scan_folder(
    options: ScanOptions,
    progress: Optional[ProgressCallback] = None,
    cancel: Optional[threading.Event] = None,
) -> ScanResult:
    """Scan with a default FolderScanner."""
    return FolderScanner().scan(options, progress, cancel)
