"""Deterministic ordering of directory paths.

The serializer assigns array indices by position in this order, so it must be
total and reproducible for a fixed set of paths.
"""

from typing import Iterable, List

# Sentinels sort between punctuation and letters, so "My Folder" and
# "My.Folder" stay adjacent to "MyFolder" instead of being split off by the
# low code points of ' ' and '.'.
SPACE_SENTINEL = "1|1"
PERIOD_SENTINEL = "2|2"


def sort_dir_list(dirs: Iterable[str]) -> List[str]:
    """Sort directory paths even if they have spaces or periods in them.

    Args:
        dirs: Directory paths in any order

    Returns:
        New list in code-point order after remapping spaces and periods

    Example:
        >>> sort_dir_list(["MyFolder", "My.Folder", "My Folder"])
        ['My Folder', 'My.Folder', 'MyFolder']
    """
    # Paths come back unchanged, even ones that contain a sentinel
    return sorted(dirs, key=sort_key)


def sort_key(path: str):
    """Sort key for one path; the raw path breaks ties between equal remaps."""
    return (path.replace(" ", SPACE_SENTINEL).replace(".", PERIOD_SENTINEL), path)
