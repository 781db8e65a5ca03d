"""Core data models for treesnap.

Scan Lifecycle:
---------------
1. ScanOptions fixes what to scan and how much work to do per file.
2. The scanner builds one SnappedFolder per directory, each holding its
   SnappedFile entries, and assembles them into an ordered ScanResult.
3. The ScanResult is handed to the serializer as an immutable snapshot.

Folders reference their parent by path string only. The string is a lookup
key resolved at serialization time, never an object reference.
"""

from enum import Enum
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, Field

from .constants import default_concurrency
from .utils import join_folder_path


# ============= Enumerations =============

class IntegrityStatus(int, Enum):
    """Outcome of image integrity validation.

    The integer value is the ordinal written to the encoded output.
    """

    UNKNOWN = 0
    VALID = 1
    INVALID_SIGNATURE = 2
    DECODE_FAILED = 3
    NOT_AN_IMAGE = 4


class IntegrityLevel(str, Enum):
    """How much work to spend validating image files."""

    NONE = "none"
    SIGNATURE = "signature"  # magic bytes only
    FULL = "full"            # magic bytes, then container parse


# ============= Options =============

class ScanOptions(BaseModel):
    """Options for one scan. Immutable for the duration of the scan."""

    model_config = {"frozen": True}

    root: str
    skip_hidden: bool = True
    skip_system: bool = True
    enable_hashing: bool = False
    integrity_level: IntegrityLevel = IntegrityLevel.NONE
    max_concurrency: int = Field(default_factory=default_concurrency, ge=1)
    exclude: Tuple[str, ...] = ()  # gitignore-style patterns


# ============= Snapshot Entries =============

class SnappedFile(BaseModel):
    """A file captured during scanning."""

    model_config = {"frozen": True}

    name: str
    size: int = 0
    modified: int = 0  # seconds since epoch
    created: int = 0
    hash: str = ""
    integrity: IntegrityStatus = IntegrityStatus.UNKNOWN


class SnappedFolder(BaseModel):
    """A folder captured during scanning.

    ``name`` is empty only for a volume root (``/``, ``C:\\``), in which case
    ``path`` holds the root itself.
    """

    model_config = {"frozen": True}

    name: str
    path: str  # parent path
    modified: int = 0
    created: int = 0
    files: Tuple[SnappedFile, ...] = ()

    @property
    def full_path(self) -> str:
        """Parent path joined with the leaf name."""
        return join_folder_path(self.path, self.name)

    @property
    def total_size(self) -> int:
        """Sum of immediate file sizes (not recursive)."""
        return sum(f.size for f in self.files)


# ============= Results =============

class ScanResult(BaseModel):
    """Ordered folders produced by one scan, plus aggregate counts."""

    model_config = {"frozen": True}

    folders: Tuple[SnappedFolder, ...] = ()
    total_directories: int = 0
    total_files: int = 0
    total_size: int = 0
    cancelled: bool = False
    error: Optional[str] = None

    @classmethod
    def from_folders(cls, folders, cancelled: bool = False) -> "ScanResult":
        """Build a result and compute its aggregate counts."""
        folders = tuple(folders)
        return cls(
            folders=folders,
            total_directories=len(folders),
            total_files=sum(len(f.files) for f in folders),
            total_size=sum(f.total_size for f in folders),
            cancelled=cancelled,
        )

    @classmethod
    def failed(cls, error: str) -> "ScanResult":
        return cls(error=error)

    @property
    def succeeded(self) -> bool:
        return not self.cancelled and self.error is None

    def integrity_summary(self) -> Dict[IntegrityStatus, int]:
        """Count files by integrity status."""
        counts: Dict[IntegrityStatus, int] = {}
        for folder in self.folders:
            for f in folder.files:
                counts[f.integrity] = counts.get(f.integrity, 0) + 1
        return counts


class ScanProgress(BaseModel):
    """Status event delivered to progress callbacks."""

    model_config = {"frozen": True}

    message: str
    items_processed: int = 0
    files_processed: int = 0
    current_item: Optional[str] = None


# ============= Generation =============

class GenerationOptions(BaseModel):
    """Options for writing a snapshot file."""

    title: str
    output_file: str
    root_folder: str
    link_files: bool = False
    link_root: str = ""
    app_name: str = ""
    app_version: str = ""
    template_path: Optional[str] = None


class GenerationStatus(str, Enum):
    """Exactly one outcome per snapshot."""

    SUCCESS = "success"
    CANCELLED = "cancelled"
    ERROR = "error"


class GenerationResult(BaseModel):
    """Result of writing a snapshot."""

    status: GenerationStatus
    output_path: Optional[str] = None
    error: Optional[str] = None
    scan: Optional[ScanResult] = None

    @classmethod
    def success(cls, output_path: str, scan: Optional[ScanResult] = None) -> "GenerationResult":
        return cls(status=GenerationStatus.SUCCESS, output_path=output_path, scan=scan)

    @classmethod
    def cancelled(cls, scan: Optional[ScanResult] = None) -> "GenerationResult":
        return cls(status=GenerationStatus.CANCELLED, scan=scan)

    @classmethod
    def failure(cls, error: str, scan: Optional[ScanResult] = None) -> "GenerationResult":
        return cls(status=GenerationStatus.ERROR, error=error, scan=scan)
