"""Session data persisted on the local machine."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Literal, Optional

from pydantic import BaseModel, Field

Theme = Literal["light", "dark"]


class SignedInUser(BaseModel):
    """Identity of the signed-in client."""

    id: str
    email: str
    name: Optional[str] = None


class SessionState(BaseModel):
    """Local key-value records for one installation.

    Attributes:
        records: Tracked uploads keyed ``upload_{owner_id}_{screen_id}``.
        theme: Presentation theme preference.
        user: Signed-in identity, if any.
        updated_at: Last time the session was written.
    """

    records: Dict[str, str] = Field(default_factory=dict)
    theme: Theme = "light"
    user: Optional[SignedInUser] = None
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def upload_key(owner_id: str, screen_id: int) -> str:
    """Return the record key tracking an owner's upload to a screen."""
    return f"upload_{owner_id}_{screen_id}"


__all__ = ["SessionState", "SignedInUser", "Theme", "upload_key"]
