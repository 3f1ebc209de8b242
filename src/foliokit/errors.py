"""Error taxonomy for the content pipeline.

Every error here is recoverable inside the pipeline:

  TargetNotFound          file vanished between scan and fingerprint → dropped
  ExtractionError         dependency scan failed → empty dependency list
  ProcessingError         caller's process function raised → recorded per target
  CacheCorruptionWarning  persisted cache unreadable → cold run

Only ``ConfigError`` (see foliokit.config) is surfaced before a run starts.
"""

from __future__ import annotations


class FoliokitError(Exception):
    """Base class for foliokit errors."""


class TargetNotFound(FoliokitError, FileNotFoundError):
    """Raised when a tracked path no longer exists on disk."""

    def __init__(self, path: str) -> None:
        super().__init__(f"File not found: {path}")
        self.path = path


class ExtractionError(FoliokitError):
    """Raised by an extractor on malformed content. Never escapes extract_dependencies()."""


class ProcessingError(FoliokitError):
    """Wraps an exception raised by the caller-supplied process function."""

    def __init__(self, path: str, cause: BaseException) -> None:
        super().__init__(f"{path}: {type(cause).__name__}: {cause}")
        self.path = path
        self.cause = cause


class CacheCorruptionWarning(UserWarning):
    """Emitted when the persisted cache cannot be read; the run proceeds cold."""
