"""Credential records and sign-in."""

from .credentials import (
    INVALID_CREDENTIALS,
    AccountService,
    hash_password,
    new_owner_id,
    record_file_name,
    verify_password,
)
from .errors import AuthenticationError
from .models import CredentialRecord

__all__ = [
    "AccountService",
    "AuthenticationError",
    "CredentialRecord",
    "INVALID_CREDENTIALS",
    "hash_password",
    "verify_password",
    "record_file_name",
    "new_owner_id",
]
