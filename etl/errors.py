"""Exception hierarchy for the GAR feed ETL.

File-level failures (``ConversionError``, ``SourceNotFoundError``) are isolated
per file by the directory walker. ``ConversionCancelled`` deliberately sits
outside ``ETLError`` so that it is never recorded as a per-file failure.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

__all__ = [
    "ETLError",
    "SchemaLoadError",
    "SchemaFileWarning",
    "SourceNotFoundError",
    "SourceDirectoryNotFoundError",
    "NoDataElementError",
    "ConversionError",
    "ConversionCancelled",
    "DownloadError",
]


class ETLError(Exception):
    """Base exception for all ETL errors."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class SchemaLoadError(ETLError):
    """The schema directory could not be read at all."""


class SchemaFileWarning(UserWarning):
    """A single schema file was unreadable or invalid and has been skipped."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Skipped schema file {path}: {reason}")


class SourceNotFoundError(ETLError, FileNotFoundError):
    """Input file does not exist."""


class SourceDirectoryNotFoundError(ETLError, FileNotFoundError):
    """Input directory does not exist."""


class NoDataElementError(ETLError):
    """The XML file has no element deep enough to be a record."""


class ConversionError(ETLError):
    """Parsing or writing failed while a file was being converted."""


class ConversionCancelled(Exception):
    """The caller asked the conversion to stop."""


class DownloadError(ETLError):
    """The feed archive could not be downloaded."""
