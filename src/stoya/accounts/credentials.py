"""Registration and sign-in against JSON credential records."""

from __future__ import annotations

import base64
import hashlib
import json
import logging
import posixpath
import re
import secrets
import string

from pydantic import ValidationError

from stoya.catalog import DirectoryCatalog
from stoya.state.models import SignedInUser

from .errors import AuthenticationError
from .models import CredentialRecord

LOGGER = logging.getLogger(__name__)

_UNSAFE_EMAIL_CHARS = re.compile(r"[^a-zA-Z0-9@._-]")
_ID_ALPHABET = string.ascii_uppercase + string.digits
_PBKDF2_ROUNDS = 200_000
_SALT_BYTES = 16
_HASH_SCHEME = "pbkdf2_sha256"

INVALID_CREDENTIALS = "Invalid email or password."


def record_file_name(email: str) -> str:
    """Return the credential filename for ``email``."""
    return f"user_{_UNSAFE_EMAIL_CHARS.sub('_', email.strip())}.json"


def new_owner_id() -> str:
    """Return a random 9-character owner id (no ``_``, safe for filenames)."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))


def hash_password(password: str, *, rounds: int = _PBKDF2_ROUNDS) -> str:
    """Return ``pbkdf2_sha256$<rounds>$<salt>$<key>`` with base64 salt and key."""
    salt = secrets.token_bytes(_SALT_BYTES)
    key = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, rounds)
    return "$".join((_HASH_SCHEME, str(rounds), _b64(salt), _b64(key)))


def verify_password(password: str, stored: str) -> bool:
    """Check ``password`` against a hash, using the rounds recorded in it."""
    parts = stored.split("$")
    if len(parts) != 4 or parts[0] != _HASH_SCHEME or not parts[1].isdigit():
        return False
    try:
        salt = base64.b64decode(parts[2].encode("ascii"), validate=True)
        expected = base64.b64decode(parts[3].encode("ascii"), validate=True)
    except ValueError:
        return False
    rounds = int(parts[1])
    if rounds < 1 or not salt or not expected:
        return False
    key = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, rounds)
    return secrets.compare_digest(key, expected)


def _b64(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


class AccountService:
    """Create and verify credential records in the remote clients folder."""

    def __init__(self, catalog: DirectoryCatalog) -> None:
        self._catalog = catalog
        self._client = catalog.client

    def record_path(self, email: str) -> str:
        """Return the remote path of the credential record for ``email``."""
        return posixpath.join(self._catalog.clients_path, record_file_name(email))

    async def ensure_clients_directory(self) -> None:
        """Create the clients folder, and the application root if needed."""
        await self._catalog.ensure_folder(self._catalog.clients_path, create_parent=True)

    async def register(self, email: str, password: str) -> SignedInUser:
        """Create a credential record for a new identity.

        Raises:
            AuthenticationError: If the email is taken or the record cannot be written.
        """
        email = email.strip()
        if not email or not password:
            raise AuthenticationError("Email and password are required.")
        await self.ensure_clients_directory()
        path = self.record_path(email)
        if await self._catalog.exists(path):
            raise AuthenticationError("A user with this email already exists.")

        record = CredentialRecord(id=new_owner_id(), email=email, password_hash=hash_password(password))
        body = json.dumps(record.model_dump(mode="json", by_alias=True), indent=2).encode("utf-8")

        target = await self._client.call("/upload", params={"path": path, "overwrite": "true"})
        if not isinstance(target, dict) or not target.get("href"):
            raise AuthenticationError("Could not obtain an upload link for the user record.")
        if not await self._client.put_bytes(target["href"], body):
            raise AuthenticationError("Could not save the user record.")

        LOGGER.info("Registered user %s.", record.id)
        return _to_user(record)

    async def authenticate(self, email: str, password: str) -> SignedInUser:
        """Verify ``password`` against the stored record for ``email``.

        Raises:
            AuthenticationError: If the record is missing, unreadable, or the
                password does not match.
        """
        await self.ensure_clients_directory()
        path = self.record_path(email)
        if not await self._catalog.exists(path):
            raise AuthenticationError(INVALID_CREDENTIALS)

        target = await self._client.call("/download", params={"path": path})
        if not isinstance(target, dict) or not target.get("href"):
            raise AuthenticationError("Could not access the user record.")
        raw = await self._client.fetch_bytes(target["href"])
        if raw is None:
            raise AuthenticationError("Network error while signing in.")

        try:
            record = CredentialRecord.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as exc:
            raise AuthenticationError("User record is not valid JSON.") from exc

        if not verify_password(password, record.password_hash):
            raise AuthenticationError(INVALID_CREDENTIALS)
        return _to_user(record)


def _to_user(record: CredentialRecord) -> SignedInUser:
    return SignedInUser(id=record.id, email=record.email, name=record.email.split("@")[0])


__all__ = [
    "AccountService",
    "hash_password",
    "verify_password",
    "record_file_name",
    "new_owner_id",
    "INVALID_CREDENTIALS",
]
