"""Remote store access with bounded retries."""

from .client import RemoteStoreClient
from .errors import PermanentStoreError, StoreError, TransientStoreError
from .retry import BackoffPolicy, RetryDecision

__all__ = [
    "RemoteStoreClient",
    "BackoffPolicy",
    "RetryDecision",
    "StoreError",
    "TransientStoreError",
    "PermanentStoreError",
]
