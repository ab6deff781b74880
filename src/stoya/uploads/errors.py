"""Submission errors."""

from stoya.remote.errors import PermanentStoreError


class ScreenFullError(Exception):
    """Raised when a screen has no free slot, or its occupancy is unknown."""


class UploadError(PermanentStoreError):
    """Raised when the media bytes could not be written to the store."""
