"""
Domain errors for the property aggregate.

Routes translate these into HTTP responses (see app.main); services raise them
and never build HTTP responses themselves.
"""
from typing import Any, List, Optional


class PropertyError(Exception):
    """Base class for property aggregate failures."""

    status_code = 500

    def __init__(self, message: str, errors: Optional[List[Any]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class NotFound(PropertyError):
    """Property, image or plan does not exist (or is soft-deleted)."""

    status_code = 404


class ValidationFailure(PropertyError):
    """Malformed attribute JSON, unparseable numeric field or invalid payload."""

    status_code = 422


class ConflictFailure(PropertyError):
    """Unique constraint violated, e.g. a duplicate property code."""

    status_code = 409


class FilesystemFailure(PropertyError):
    """Moving or deleting a media file failed. Never fatal for a write."""

    status_code = 500

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class TransactionFailure(PropertyError):
    """Database error inside an aggregate transaction; everything was rolled back."""

    status_code = 500
