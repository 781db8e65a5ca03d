"""Encoding of scanned folders into the snapshot data array.

Data format, one record per folder, each record on its own line::

    D.p(["<dir path>*0*<dir modified>",
         "<file name>*<size>*<modified>*<hash>*<integrity>",  (one per file)
         <dir size>,
         "<child index>*<child index>..."])

- Directory paths use forward slashes.
- The constant ``0`` in the first item sits where files carry their size.
- ``hash`` is empty when hashing is disabled; ``integrity`` is the ordinal
  of IntegrityStatus.
- ``dir size`` is the sum of the directory's immediate files.
- Child indices are positions in the record sequence (plus a start offset).
- Timestamps are seconds since the Unix epoch.
"""

import logging
import threading
from typing import Callable, Dict, List, Optional, Sequence, TextIO

from .constants import CHUNK_SIZE
from .core import SnappedFolder
from .utils import make_clean_js_string, to_forward_slashes

logger = logging.getLogger(__name__)

# (records written, total records)
WriteProgress = Callable[[int, int], None]


def build_child_index(folders: Sequence[SnappedFolder], start_index: int = 0) -> Dict[str, List[str]]:
    """Map each folder's full path to the indices of its subfolders.

    A folder whose parent path is not a key is an orphan; it is left out of
    every child list.
    """
    subdirs: Dict[str, List[str]] = {f.full_path: [] for f in folders}
    if not folders:
        return subdirs

    # The scanned root's parent must exist as a key so the root itself is not
    # reported as an orphan.
    first = folders[0]
    if first.name and first.path not in subdirs:
        subdirs[first.path] = []

    for index, folder in enumerate(folders, start=start_index):
        if not folder.name:
            continue
        siblings = subdirs.get(folder.path)
        if siblings is None:
            logger.debug("Orphan folder %s (parent %s not scanned)", folder.full_path, folder.path)
            continue
        siblings.append(str(index))
    return subdirs


def encode_folder(folder: SnappedFolder, child_indices: List[str]) -> str:
    """Encode one folder as a data record (without trailing newline)."""
    parts = ["D.p(["]
    dir_path = make_clean_js_string(to_forward_slashes(folder.full_path))
    parts.append(f'"{dir_path}*0*{folder.modified}",')

    dir_size = 0
    for f in folder.files:
        name = make_clean_js_string(f.name)
        parts.append(f'"{name}*{f.size}*{f.modified}*{f.hash}*{int(f.integrity)}",')
        dir_size += f.size

    parts.append(f"{dir_size},")
    parts.append(f'"{"*".join(child_indices)}"')
    parts.append("])")
    return "".join(parts)


def write_dir_data(
    folders: Sequence[SnappedFolder],
    writer: TextIO,
    start_index: int = 0,
    cancel: Optional[threading.Event] = None,
    progress: Optional[WriteProgress] = None,
    chunk_size: int = CHUNK_SIZE,
) -> bool:
    """Stream the encoded records for ``folders`` into ``writer``.

    Output is buffered and flushed whenever the buffer exceeds ``chunk_size``
    characters. Cancellation is checked before each record; already written
    output is left as is.

    Args:
        folders: Folders in final order
        writer: Text sink with a ``write`` method
        start_index: Index of the first folder, for concatenated batches
        cancel: Optional cancellation event
        progress: Optional callback receiving (written, total) every 100 records
        chunk_size: Flush threshold in characters

    Returns:
        True if every record was written, False if cancelled
    """
    folders = list(folders)
    subdirs = build_child_index(folders, start_index)

    buffer: List[str] = []
    buffered = 0
    total = len(folders)

    for count, folder in enumerate(folders, start=1):
        if cancel is not None and cancel.is_set():
            return False

        record = encode_folder(folder, subdirs[folder.full_path]) + "\n"
        buffer.append(record)
        buffered += len(record)

        # Write in chunks to limit memory consumption
        if buffered > chunk_size:
            writer.write("".join(buffer))
            buffer.clear()
            buffered = 0

        if progress is not None and count % 100 == 0:
            progress(count, total)

    if buffer:
        writer.write("".join(buffer))
    return True
