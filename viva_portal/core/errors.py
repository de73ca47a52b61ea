"""Domain errors raised by the viva portal services."""

from __future__ import annotations


class VivaError(Exception):
    """Base class for errors the portal reports to its callers."""


class NotFound(VivaError):
    """Raised when a requested record or question set does not exist."""


class InvalidInput(VivaError):
    """Raised for malformed input or records that fail shape checks."""


class StorageUnavailable(VivaError):
    """Raised when the document store cannot be read or written."""


class PermissionDenied(VivaError):
    """Raised when the current identity may not perform an operation."""


class DuplicateAttempt(VivaError):
    """Raised when a student already has an attempt for an experiment."""


class SessionConflict(VivaError):
    """Raised when a student already has a different viva in progress."""
