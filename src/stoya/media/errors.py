"""Media validation errors."""


class MediaValidationError(Exception):
    """Raised when media is rejected locally, before any network call."""
