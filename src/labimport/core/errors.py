"""Exception hierarchy for labimport.

Archive and manifest errors abort a session before any record is written.
Record errors abort the session at the failing record; records committed
before it stay committed. Cleanup errors are only ever logged.
"""

from typing import Optional


class LabImportError(Exception):
    """Base class for all labimport errors."""

    # Session phase the error was raised in, filled in by ImportSession
    phase: Optional[str] = None
    # Records successfully imported before the error
    inserted: int = 0


class ArchiveError(LabImportError):
    """The archive could not be opened or extracted."""


class ArchiveUnreadable(ArchiveError):
    def __init__(self, path, reason: str):
        super().__init__(f"Cannot read archive '{path}': {reason}")
        self.path = path
        self.reason = reason


class ArchiveExtractionFailed(ArchiveError):
    def __init__(self, path, reason: str):
        super().__init__(f"Cannot extract archive '{path}': {reason}")
        self.path = path
        self.reason = reason


class ManifestError(LabImportError):
    """The manifest is absent or cannot be parsed."""


class ManifestMissing(ManifestError):
    def __init__(self, path):
        super().__init__(
            f"No manifest found at '{path}'. "
            f"Archives must carry the manifest at their root."
        )
        self.path = path


class ManifestMalformed(ManifestError):
    def __init__(self, path, reason: str):
        super().__init__(f"Malformed manifest '{path}': {reason}")
        self.path = path
        self.reason = reason


class RecordImportError(LabImportError):
    """A single manifest record could not be imported."""


class InvalidRecord(RecordImportError):
    def __init__(self, index: int, reason: str):
        super().__init__(f"Record #{index} is invalid: {reason}")
        self.index = index
        self.reason = reason


class PersistenceFailed(RecordImportError):
    def __init__(self, index: int, reason: str):
        super().__init__(f"Could not store record #{index}: {reason}")
        self.index = index
        self.reason = reason


class SessionStateError(LabImportError):
    """An import session was used outside of its lifecycle."""


class CleanupError(LabImportError):
    """Temporary files could not be removed. Logged, never raised to callers."""

    def __init__(self, path, reason: str):
        super().__init__(f"Cannot remove '{path}': {reason}")
        self.path = path
        self.reason = reason
