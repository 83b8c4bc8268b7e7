"""
Strict Base Models for Engine Inputs and Records

This module provides base classes with strict validation settings for the
engine's mutation inputs and stored records.

MOTIVATION:
    Callers build mutation payloads by hand (often from UI state), so
    misspelled fields are a common source of silent bugs. By enforcing
    strict validation on inputs:
    - Unknown fields are rejected (extra="forbid")
    - Type mismatches fail fast with clear error messages

    Stored records use a lenient model so that records written by a newer
    version (with extra fields) still decode.

Usage:
    # For mutation inputs (strictest validation)
    class SessionUpsert(StrictRequest):
        id: str
        user_id: str

    # For records and read results
    class LearningSession(StrictResponse):
        id: str
        progress_percent: float

Architecture:
    Caller payload → StrictRequest (extra="forbid") → Service
    Store bytes → StrictResponse (extra="ignore") → Caller
"""

from pydantic import BaseModel, ConfigDict


class StrictRequest(BaseModel):
    """
    Base model for mutation inputs with strict validation.

    Features:
        - extra="forbid": Unknown fields raise a validation error
        - validate_default=True: Validates default values
        - str_strip_whitespace=True: Trims whitespace from strings
        - from_attributes=True: Allows conversion from plain objects

    Example:
        >>> class BookmarkCreate(StrictRequest):
        ...     title: str
        ...     timestamp: float
        >>>
        >>> BookmarkCreate(title="Intro", timestamp=12.5)  # OK
        >>> BookmarkCreate(title="Intro", position=12.5)  # Raises ValidationError
    """

    model_config = ConfigDict(
        extra="forbid",  # Reject unknown fields
        validate_default=True,  # Validate defaults
        str_strip_whitespace=True,  # Clean string inputs
        from_attributes=True,  # Enable object conversion
    )


class StrictResponse(BaseModel):
    """
    Base model for stored records and read results.

    More lenient than StrictRequest so that stored JSON may carry fields
    this version does not know about (including serialized computed fields).

    Features:
        - extra="ignore": Silently ignores extra fields
        - validate_default=True: Validates default values
        - validate_assignment=True: Attribute writes are validated too
        - from_attributes=True: Allows conversion from plain objects
    """

    model_config = ConfigDict(
        extra="ignore",  # Allow extra fields in stored records
        validate_default=True,  # Validate defaults
        validate_assignment=True,  # Re-validate on mutation
        from_attributes=True,  # Enable object conversion
    )
