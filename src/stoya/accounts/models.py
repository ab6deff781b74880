"""Credential records stored in the remote clients folder."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


class CredentialRecord(BaseModel):
    """One registered identity.

    Attributes:
        id: Owner id embedded in upload filenames.
        email: Sign-in email.
        password_hash: Salted PBKDF2 hash of the password.
        created_at: Registration time.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    email: str
    password_hash: str = Field(alias="passwordHash")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), alias="createdAt"
    )


__all__ = ["CredentialRecord"]
