"""Remote store errors."""


class StoreError(Exception):
    """Base exception for remote store operations."""


class TransientStoreError(StoreError):
    """Raised when the store stays unreachable after the retry budget is spent."""


class PermanentStoreError(StoreError):
    """Raised when a store operation fails and the caller cannot degrade to ``None``."""
