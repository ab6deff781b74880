"""Session storage errors."""


class StateError(Exception):
    """Base exception for session storage operations."""


class MissingStateError(StateError):
    """Raised when a required session value is absent."""
