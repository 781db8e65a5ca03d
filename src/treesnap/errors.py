"""Custom exceptions for treesnap.

Item-local failures (one unreadable file or folder) never raise; they are
logged and recorded as a status. The exceptions here are for failures that
abort a whole snapshot.
"""


class SnapshotError(RuntimeError):
    """Base class for all snapshot-related errors."""
    pass


class RootNotFoundError(SnapshotError):
    """Root folder to scan does not exist or is not a directory."""

    def __init__(self, root: str):
        self.root = root
        super().__init__(f"Input path does not exist: {root}")


# Template Errors
class TemplateError(SnapshotError):
    """Template could not be loaded or is malformed."""
    pass


class TemplateNotFoundError(TemplateError):
    """Template file missing on disk."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Template file not found: {path}")


class MissingMarkerError(TemplateError):
    """Template lacks the data marker."""

    def __init__(self, marker: str):
        self.marker = marker
        super().__init__(
            f"Template does not contain the '{marker}' marker. "
            f"The encoded folder data has nowhere to go."
        )


# Output Errors
class OutputError(SnapshotError):
    """Output sink could not be opened or written."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to write output file {path}: {reason}")


# Configuration Errors
class ConfigError(SnapshotError):
    """Invalid or unreadable configuration."""
    pass
