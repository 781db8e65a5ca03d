"""Stable API for treesnap operations.

This module provides a minimal, stable API surface for tools that want a
snapshot file without going through the CLI. Callers get back exactly one
outcome: success with the output location, cancelled, or an error message.
"""

import os
import threading
from typing import Iterable, Optional

from .constants import APP_NAME, TREESNAP_VERSION
from .core import (
    GenerationOptions,
    GenerationResult,
    IntegrityLevel,
    ScanOptions,
)
from .errors import RootNotFoundError
from .generator import generate_snapshot
from .progress import ProgressCallback
from .scanner import FolderScanner
from .serializer import WriteProgress


def default_title(root: str) -> str:
    return f"Snapshot of {root}"


def snap_directory(
    root: str,
    output: str,
    title: Optional[str] = None,
    skip_hidden: bool = True,
    skip_system: bool = True,
    enable_hashing: bool = False,
    integrity_level: IntegrityLevel = IntegrityLevel.NONE,
    max_concurrency: Optional[int] = None,
    exclude: Iterable[str] = (),
    link_root: Optional[str] = None,
    template_path: Optional[str] = None,
    progress: Optional[ProgressCallback] = None,
    write_progress: Optional[WriteProgress] = None,
    cancel: Optional[threading.Event] = None,
) -> GenerationResult:
    """Scan a directory and write its snapshot file.

    Args:
        root: Directory to snapshot
        output: Path of the snapshot file to write
        title: Page title (defaults to "Snapshot of <root>")
        skip_hidden: Leave out hidden files and folders
        skip_system: Leave out system files and folders
        enable_hashing: Record SHA-256 digests of file contents
        integrity_level: Image validation level
        max_concurrency: Scan worker count (default min(CPU count, 4))
        exclude: Gitignore-style patterns to leave out
        link_root: Make files clickable, linking under this root
        template_path: Template file (default: bundled template)
        progress: Callback for throttled scan progress events
        write_progress: Callback receiving (written, total) while writing
        cancel: Event to set to cancel the operation

    Returns:
        GenerationResult. A missing root is reported before any output is
        created.

    Example:
        >>> from treesnap.api import snap_directory
        >>> result = snap_directory("/data/photos", "photos.html", enable_hashing=True)
        >>> result.status
        <GenerationStatus.SUCCESS: 'success'>
    """
    if not os.path.isdir(root):
        return GenerationResult.failure(str(RootNotFoundError(root)))

    scan_kwargs = dict(
        root=root,
        skip_hidden=skip_hidden,
        skip_system=skip_system,
        enable_hashing=enable_hashing,
        integrity_level=integrity_level,
        exclude=tuple(exclude),
    )
    if max_concurrency is not None:
        scan_kwargs["max_concurrency"] = max_concurrency
    options = ScanOptions(**scan_kwargs)

    scan_result = FolderScanner().scan(options, progress, cancel)
    if scan_result.cancelled:
        return GenerationResult.cancelled(scan=scan_result)
    if scan_result.error:
        return GenerationResult.failure(scan_result.error, scan=scan_result)

    gen_options = GenerationOptions(
        title=title or default_title(root),
        output_file=output,
        root_folder=root,
        link_files=link_root is not None,
        link_root=link_root or "",
        app_name=APP_NAME,
        app_version=TREESNAP_VERSION,
        template_path=template_path,
    )
    return generate_snapshot(scan_result, gen_options, write_progress, cancel)
