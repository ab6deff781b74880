"""Local session persistence for the Stoya client."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from .errors import MissingStateError, StateError
from .models import SessionState, SignedInUser, Theme, upload_key

DEFAULT_SESSION_PATH = Path("~/.stoya/session.json")


class SessionRepository:
    """Persist tracked uploads, theme and signed-in identity as JSON.

    Tracked-upload records are advisory: they remember the last filename an
    owner submitted to a screen, while the remote folders remain the source of
    truth for its lifecycle.
    """

    def __init__(self, path: Path | None = None) -> None:
        """Initialize the repository.

        Args:
            path: Location of the session file.
        """
        self._path = (path or DEFAULT_SESSION_PATH).expanduser()

    @property
    def path(self) -> Path:
        """Return the session file location.

        Returns:
            Path: Resolved session file path.
        """
        return self._path

    def load(self) -> SessionState:
        """Load the session, returning an empty one when no file exists.

        Returns:
            SessionState: Deserialized session.

        Raises:
            StateError: If the stored data cannot be parsed.
        """
        if not self._path.exists():
            return SessionState()
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise StateError(f"Invalid session data: {exc}") from exc
        try:
            return SessionState.model_validate(data)
        except ValidationError as exc:
            raise StateError(f"Invalid session data: {exc}") from exc

    def save(self, state: SessionState) -> None:
        """Persist the session.

        Args:
            state: Session to write.
        """
        self._path.parent.mkdir(parents=True, exist_ok=True)
        state.updated_at = datetime.now(timezone.utc)
        payload = state.model_dump(mode="json")
        self._path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")

    def get_upload(self, owner_id: str, screen_id: int) -> Optional[str]:
        """Return the last filename ``owner_id`` submitted to ``screen_id``."""
        return self.load().records.get(upload_key(owner_id, screen_id))

    def set_upload(self, owner_id: str, screen_id: int, file_name: str) -> None:
        """Remember ``file_name`` as the owner's current upload for the screen."""
        state = self.load()
        state.records[upload_key(owner_id, screen_id)] = file_name
        self.save(state)

    def clear_upload(self, owner_id: str, screen_id: int) -> bool:
        """Forget the owner's upload for the screen.

        Returns:
            bool: Whether a record was removed.
        """
        state = self.load()
        removed = state.records.pop(upload_key(owner_id, screen_id), None)
        if removed is not None:
            self.save(state)
        return removed is not None

    def theme(self) -> Theme:
        """Return the stored theme preference."""
        return self.load().theme

    def set_theme(self, theme: Theme) -> None:
        """Store the theme preference."""
        state = self.load()
        state.theme = theme
        self.save(state)

    def toggle_theme(self) -> Theme:
        """Flip between light and dark themes and return the new value."""
        state = self.load()
        state.theme = "dark" if state.theme == "light" else "light"
        self.save(state)
        return state.theme

    def sign_in(self, user: SignedInUser) -> None:
        """Remember ``user`` as the signed-in identity."""
        state = self.load()
        state.user = user
        self.save(state)

    def sign_out(self) -> None:
        """Forget the signed-in identity; tracked uploads are kept."""
        state = self.load()
        state.user = None
        self.save(state)

    def current_user(self) -> SignedInUser:
        """Return the signed-in identity.

        Raises:
            MissingStateError: If nobody is signed in.
        """
        user = self.load().user
        if user is None:
            raise MissingStateError("Not signed in. Run `stoya login` first.")
        return user


__all__ = [
    "SessionRepository",
    "DEFAULT_SESSION_PATH",
    "SessionState",
    "SignedInUser",
    "StateError",
    "MissingStateError",
    "upload_key",
]
