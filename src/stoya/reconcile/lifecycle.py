"""Lifecycle states derived from remote folder membership."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from stoya import naming
from stoya.catalog.models import RemoteEntry


class LifecycleState(str, Enum):
    """Where an owner's upload for a screen currently stands."""

    NONE = "none"
    PENDING = "pending"
    PUBLISHED = "published"
    REJECTED = "rejected"


@dataclass(frozen=True, slots=True)
class TrackedUpload:
    """An owner's current claim on a screen, as found in a remote folder.

    Attributes:
        owner_id: Uploader identity.
        screen_id: Screen the file targets.
        file_name: Encoded filename.
        path: Remote path where the file was found.
    """

    owner_id: str
    screen_id: int
    file_name: str
    path: str

    def remaining_days(self, now_ms: Optional[int] = None) -> Optional[int]:
        """Return days left in the display window for this upload."""
        return naming.remaining_display_days(self.file_name, now_ms)


@dataclass(frozen=True, slots=True)
class ReconcileResult:
    """Outcome of one reconcile pass.

    Attributes:
        owner_id: Uploader identity.
        screen_id: Screen evaluated.
        state: Derived lifecycle state.
        tracked: Matching upload when one was found.
        expected_name: Locally remembered filename used for matching.
    """

    owner_id: str
    screen_id: int
    state: LifecycleState
    tracked: Optional[TrackedUpload] = None
    expected_name: Optional[str] = None


def find_upload(
    entries: Sequence[RemoteEntry],
    *,
    owner_id: str,
    screen_id: int,
    expected_name: Optional[str],
) -> Optional[RemoteEntry]:
    """Return the first entry belonging to the owner's upload for the screen.

    With a remembered filename only an exact name match counts; otherwise the
    loose owner/screen tag match is used. List order decides between several
    candidates.
    """
    for entry in entries:
        if expected_name is not None:
            if entry.name == expected_name:
                return entry
        elif naming.matches_owner(entry.name, owner_id, screen_id):
            return entry
    return None


def derive_state(
    pending: Sequence[RemoteEntry],
    published: Sequence[RemoteEntry],
    *,
    owner_id: str,
    screen_id: int,
    expected_name: Optional[str],
) -> ReconcileResult:
    """Derive the lifecycle state from one snapshot of both folders.

    Published wins over pending. A remembered upload that appears in neither
    folder was rejected; with no record and no match there is nothing to track.
    """
    for entries, state in ((published, LifecycleState.PUBLISHED), (pending, LifecycleState.PENDING)):
        found = find_upload(entries, owner_id=owner_id, screen_id=screen_id, expected_name=expected_name)
        if found is not None:
            tracked = TrackedUpload(owner_id, screen_id, found.name, found.path)
            return ReconcileResult(owner_id, screen_id, state, tracked, expected_name)

    state = LifecycleState.REJECTED if expected_name else LifecycleState.NONE
    return ReconcileResult(owner_id, screen_id, state, None, expected_name)


__all__ = ["LifecycleState", "TrackedUpload", "ReconcileResult", "derive_state", "find_upload"]
