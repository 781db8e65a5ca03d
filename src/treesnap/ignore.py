"""Entry filtering: hidden/system attributes and gitignore-style patterns."""

import logging
import os
import stat
from pathlib import Path
from typing import Iterable, Optional

from pathspec import PathSpec

from .constants import IGNORE_FILE
from .core import ScanOptions

logger = logging.getLogger(__name__)

# Windows attribute bits (st_file_attributes) and the BSD/macOS hidden flag
FILE_ATTRIBUTE_HIDDEN = getattr(stat, "FILE_ATTRIBUTE_HIDDEN", 0x2)
FILE_ATTRIBUTE_SYSTEM = getattr(stat, "FILE_ATTRIBUTE_SYSTEM", 0x4)
UF_HIDDEN = getattr(stat, "UF_HIDDEN", 0x8000)


def is_hidden(name: str, st: Optional[os.stat_result]) -> bool:
    """Check whether an entry carries the hidden attribute.

    Windows uses the attribute bit only. Elsewhere a leading dot or the
    UF_HIDDEN flag marks an entry hidden.
    """
    attrs = getattr(st, "st_file_attributes", None)
    if attrs is not None:
        return bool(attrs & FILE_ATTRIBUTE_HIDDEN)
    if getattr(st, "st_flags", 0) & UF_HIDDEN:
        return True
    return name.startswith(".")


def is_system(st: Optional[os.stat_result]) -> bool:
    """Check whether an entry carries the system attribute (Windows only)."""
    attrs = getattr(st, "st_file_attributes", None)
    return bool(attrs and attrs & FILE_ATTRIBUTE_SYSTEM)


def read_ignore_file(root: Path) -> list:
    """Read patterns from the root's ignore file, skipping blanks and comments."""
    ignore_file = root / IGNORE_FILE
    if not ignore_file.exists():
        return []
    patterns = []
    for line in ignore_file.read_text().splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            patterns.append(line)
    return patterns


class EntryFilter:
    """Decides which directories and files belong in a snapshot.

    The same rules apply to directories and files. An excluded directory is
    never descended into.
    """

    def __init__(
        self,
        root: str,
        skip_hidden: bool = True,
        skip_system: bool = True,
        patterns: Iterable[str] = (),
    ):
        """Initialize the filter.

        Args:
            root: Scanned root; patterns match paths relative to it
            skip_hidden: Drop entries with the hidden attribute
            skip_system: Drop entries with the system attribute
            patterns: Gitignore-style exclusion patterns
        """
        self.root = root
        self.skip_hidden = skip_hidden
        self.skip_system = skip_system
        patterns = list(patterns)
        # Compile patterns once for efficiency
        self.spec: Optional[PathSpec] = (
            PathSpec.from_lines("gitwildmatch", patterns) if patterns else None
        )

    @classmethod
    def from_options(cls, options: ScanOptions) -> "EntryFilter":
        """Build a filter from scan options plus the root's ignore file."""
        patterns = list(options.exclude)
        try:
            patterns.extend(read_ignore_file(Path(options.root)))
        except OSError as e:
            logger.warning("Could not read %s in %s: %s", IGNORE_FILE, options.root, e)
        return cls(options.root, options.skip_hidden, options.skip_system, patterns)

    @property
    def checks_attributes(self) -> bool:
        return self.skip_hidden or self.skip_system

    def _relpath(self, path: str) -> str:
        return Path(os.path.relpath(path, self.root)).as_posix()

    def is_excluded(self, path: str, is_dir: bool = False) -> bool:
        """Check a path against the exclusion patterns."""
        if self.spec is None:
            return False
        rel = self._relpath(path)
        if is_dir:
            # Trailing slash lets directory-only patterns match
            rel = rel + "/"
        return self.spec.match_file(rel)

    def _attributes_excluded(self, name: str, st: Optional[os.stat_result]) -> bool:
        if self.skip_hidden and is_hidden(name, st):
            return True
        if self.skip_system and is_system(st):
            return True
        return False

    def include_dir(self, entry: os.DirEntry) -> bool:
        """Check whether a subdirectory should be recorded and traversed."""
        if self.is_excluded(entry.path, is_dir=True):
            return False
        if not self.checks_attributes:
            return True
        try:
            st = entry.stat(follow_symlinks=False)
        except OSError as e:
            # Attributes unreadable: keep the directory
            logger.debug("Could not read attributes of %s: %s", entry.path, e)
            st = None
        return not self._attributes_excluded(entry.name, st)

    def include_file(self, entry: os.DirEntry, st: os.stat_result) -> bool:
        """Check whether a file should be recorded."""
        if self.is_excluded(entry.path):
            return False
        return not self._attributes_excluded(entry.name, st)
