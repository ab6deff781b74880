"""Account errors."""


class AuthenticationError(Exception):
    """Raised when registration or sign-in cannot be completed."""
