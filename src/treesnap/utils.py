"""Utility functions for treesnap."""

import os
from datetime import datetime


# Characters with special meaning to the script consuming the encoded array.
# U+2028/U+2029 terminate lines in JavaScript string literals.
_STRIPPED_CHARS = ("\u2028", "\u2029", "\u0004")


def make_clean_js_string(s: str) -> str:
    """Escape a name or path for embedding in the encoded array.

    Examples:
        "a\\b&c" -> "a\\\\b&amp;c"
        "line\u2028break" -> "linebreak"
    """
    s = s.replace("\\", "\\\\").replace("&", "&amp;")
    for ch in _STRIPPED_CHARS:
        s = s.replace(ch, "")
    return s


def to_unix_timestamp(seconds: float) -> int:
    """Truncate a stat timestamp to whole seconds since the epoch."""
    return int(seconds)


def is_volume_root(path: str) -> bool:
    """Check whether a path is the root of its volume (``/``, ``C:\\``)."""
    return bool(path) and os.path.dirname(path) == path


def join_folder_path(parent: str, name: str) -> str:
    """Join a parent path and leaf name the way folder full paths are derived.

    The trailing separator is stripped unless the result is a bare volume root.
    """
    if parent.endswith(os.sep) or (os.altsep and parent.endswith(os.altsep)):
        path = parent + name
    else:
        path = parent + os.sep + name

    if path.endswith(os.sep) and not is_volume_root(path):
        path = path[:-1]
    return path


def to_forward_slashes(path: str) -> str:
    """Convert native separators to forward slashes."""
    if os.sep != "/":
        path = path.replace(os.sep, "/")
    return path


def humanize_size(size: float) -> str:
    """Convert bytes to human-readable format."""
    for unit in ["B", "KB", "MB", "GB"]:
        if size < 1024.:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TB"


def format_version(version: str) -> str:
    """Shorten a version to major.minor for display.

    Examples:
        "1.2.3" -> "1.2"
        "7" -> "7"
    """
    parts = version.split(".")
    if len(parts) >= 2:
        return f"{parts[0]}.{parts[1]}"
    return version


def format_generated(now: datetime) -> tuple:
    """Return (time, date) display strings for a generation timestamp."""
    return now.strftime("%H:%M"), now.strftime("%Y-%m-%d")
