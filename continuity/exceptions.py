"""
Engine Exceptions

Typed failures returned by every mutating and reading operation.

Taxonomy:
- ValidationError: malformed input; the operation is a no-op
- NotFoundError: the referenced session does not exist; recoverable
- StorageError: the key-value store failed to read or write; surfaced
  unchanged, the engine never retries

Usage:
    from continuity.exceptions import NotFoundError, ValidationError

    try:
        await engine.update_progress(session_id, 40, 5)
    except NotFoundError:
        await engine.create_or_update_session(upsert)
"""

from typing import Any, Optional


class ServiceError(Exception):
    """
    Base exception for engine errors.

    Provides consistent error handling with:
    - Error code for categorization
    - Optional details for debugging

    Example:
        raise ServiceError("Unexpected state", details={"session_id": "s1"})
    """

    error_code: str = "service_error"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        self.details = details


class ValidationError(ServiceError):
    """
    Input validation error.

    Raised for out-of-range progress, negative minutes, empty identifiers
    and attempts to change immutable fields.
    """

    error_code = "validation_error"


class NotFoundError(ServiceError):
    """
    Resource not found error.

    Raised when an operation references a session with no stored record.
    """

    error_code = "not_found"


class StorageError(ServiceError):
    """
    Persistence error.

    Raised when the key-value store fails or a stored record cannot be decoded.
    """

    error_code = "storage_error"
