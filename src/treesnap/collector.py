"""Breadth-first collection of the directories under a root."""

import logging
import os
import threading
from collections import deque
from typing import List, NamedTuple, Optional

from .core import ScanOptions
from .ignore import EntryFilter
from .progress import ProgressCallback, ProgressThrottle

logger = logging.getLogger(__name__)


class CollectResult(NamedTuple):
    """Directories found by a walk, root first, in discovery order."""
    directories: List[str]
    cancelled: bool = False


def collect_directories(
    root: str,
    options: ScanOptions,
    progress: Optional[ProgressCallback] = None,
    cancel: Optional[threading.Event] = None,
    entry_filter: Optional[EntryFilter] = None,
) -> CollectResult:
    """Collect every directory under ``root`` that passes the filters.

    Uses an explicit queue rather than recursion so deep trees cannot exhaust
    the stack, and enumerates each directory lazily. Directories that cannot be
    listed are logged and treated as having no subdirectories.

    Args:
        root: Absolute path of the directory to walk
        options: Scan options (hidden/system flags, exclusion patterns)
        progress: Optional callback for throttled status events
        cancel: Optional event polled between directories and entries
        entry_filter: Filter to use instead of one built from ``options``

    Returns:
        CollectResult with ``root`` as the first directory
    """
    if entry_filter is None:
        entry_filter = EntryFilter.from_options(options)
    throttle = ProgressThrottle(progress)

    dirs = [root]
    queue = deque([root])

    while queue:
        if cancel is not None and cancel.is_set():
            return CollectResult(dirs, cancelled=True)

        current = queue.popleft()
        try:
            with os.scandir(current) as it:
                for entry in it:
                    if cancel is not None and cancel.is_set():
                        return CollectResult(dirs, cancelled=True)

                    try:
                        # Symlinked directories are not followed to avoid cycles
                        if not entry.is_dir(follow_symlinks=False):
                            continue
                    except OSError:
                        continue

                    if not entry_filter.include_dir(entry):
                        logger.debug("Skipping filtered directory %s", entry.path)
                        continue

                    dirs.append(entry.path)
                    queue.append(entry.path)
                    throttle.report(
                        f"Getting folders... {len(dirs)}",
                        items_processed=len(dirs),
                        current_item=entry.path,
                    )
        except OSError as e:
            logger.warning("Could not list directory %s: %s", current, e)

    return CollectResult(dirs)
