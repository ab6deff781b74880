"""Structured upload filenames.

An encoded name carries everything the moderator side needs to route a file::

    Screen{screen_id}_User{owner_id}_{epoch_millis}_Э{screen_id}_{original_name}

The screen id is repeated as the ``_Э{n}_`` routing tag so a file can be
located when its current folder is unknown. Decoding is anchored at the start
of the name, so delimiter sequences inside ``original_name`` cannot disturb
the owner, screen or timestamp fields.
"""

from __future__ import annotations

import math
import re
import time
from dataclasses import dataclass
from typing import Optional

DAY_MS = 24 * 60 * 60 * 1000
DISPLAY_DAYS = 30
ROUTING_MARK = "Э"

_CANONICAL = re.compile(
    rf"^Screen(?P<screen>\d+)_User(?P<owner>[^_/]+)_(?P<ts>\d+)_{ROUTING_MARK}(?P<tag>\d+)_(?P<original>.+)$"
)
_LEGACY_OWNER = re.compile(r"_User(?P<owner>[A-Za-z0-9]+)_(?P<ts>\d+)_")
_LEGACY_SCREEN = re.compile(rf"(?:^|_)Screen(?P<screen>\d+)_|_{ROUTING_MARK}(?P<tag>\d+)_")
_ROUTING_TAG = re.compile(rf"_{ROUTING_MARK}(\d+)_")


class NamingError(ValueError):
    """Raised when a filename cannot be encoded."""


@dataclass(frozen=True, slots=True)
class DecodedName:
    """Identity fields recovered from an encoded filename.

    Attributes:
        screen_id: Screen the file was submitted to.
        owner_id: Identity of the uploader.
        timestamp_ms: Upload time in epoch milliseconds.
        original_name: Original filename when the canonical layout matched.
    """

    screen_id: int
    owner_id: str
    timestamp_ms: int
    original_name: Optional[str] = None


def now_ms() -> int:
    """Return the current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def validate_owner_id(owner_id: str) -> str:
    """Return ``owner_id`` if it can be embedded in a filename.

    Raises:
        NamingError: If the id is empty or contains ``_`` or ``/``.
    """
    if not owner_id or "_" in owner_id or "/" in owner_id:
        raise NamingError(f"Owner id {owner_id!r} cannot be embedded in a filename.")
    return owner_id


def encode(screen_id: int, owner_id: str, original_name: str, timestamp_ms: int) -> str:
    """Build the encoded filename for an upload.

    Args:
        screen_id: Target screen.
        owner_id: Uploader identity; must not contain ``_``.
        original_name: Filename chosen by the uploader.
        timestamp_ms: Upload time in epoch milliseconds.

    Returns:
        str: Encoded filename.

    Raises:
        NamingError: If any field cannot be represented.
    """
    validate_owner_id(owner_id)
    if screen_id < 0 or timestamp_ms < 0:
        raise NamingError("Screen id and timestamp must be non-negative.")
    if not original_name or "/" in original_name:
        raise NamingError(f"Original filename {original_name!r} is not a plain filename.")
    return (
        f"Screen{screen_id}_User{owner_id}_{timestamp_ms}_"
        f"{ROUTING_MARK}{screen_id}_{original_name}"
    )


def decode(name: str, expected_name: Optional[str] = None) -> Optional[DecodedName]:
    """Recover identity fields from ``name``.

    When ``expected_name`` is given, only that exact name is accepted. Names in
    the canonical layout are decoded first; otherwise the legacy loose layout
    (``_User{id}_{ts}_`` anywhere plus a ``Screen{n}_`` or ``_Э{n}_`` marker) is
    tried.

    Returns:
        Optional[DecodedName]: Decoded fields, or ``None`` for names that do
        not belong to this scheme.
    """
    if expected_name is not None and name != expected_name:
        return None

    canonical = _CANONICAL.match(name)
    if canonical:
        return DecodedName(
            screen_id=int(canonical["screen"]),
            owner_id=canonical["owner"],
            timestamp_ms=int(canonical["ts"]),
            original_name=canonical["original"],
        )

    owner = _LEGACY_OWNER.search(name)
    screen = _LEGACY_SCREEN.search(name)
    if not owner or not screen:
        return None
    screen_value = screen["screen"] or screen["tag"]
    return DecodedName(
        screen_id=int(screen_value),
        owner_id=owner["owner"],
        timestamp_ms=int(owner["ts"]),
    )


def matches_owner(name: str, owner_id: str, screen_id: int) -> bool:
    """Ownership test used when no local record names the file.

    Compares decoded fields, so delimiters inside the original name cannot
    make another owner's or another screen's file match.
    """
    decoded = decode(name)
    return decoded is not None and decoded.owner_id == owner_id and decoded.screen_id == screen_id


def routing_tag(name: str) -> Optional[int]:
    """Return the screen id carried by the ``_Э{n}_`` routing tag."""
    match = _ROUTING_TAG.search(name)
    return int(match.group(1)) if match else None


def upload_timestamp(name: str) -> Optional[int]:
    """Return the embedded upload time in epoch milliseconds."""
    decoded = decode(name)
    return decoded.timestamp_ms if decoded else None


def remaining_display_days(
    name: str,
    now: Optional[int] = None,
    *,
    display_days: int = DISPLAY_DAYS,
) -> Optional[int]:
    """Return whole days left in the display window, floored at zero.

    Args:
        name: Encoded filename.
        now: Current time in epoch milliseconds; defaults to the wall clock.
        display_days: Length of the display window.

    Returns:
        Optional[int]: Days left, or ``None`` when no timestamp can be parsed.
    """
    uploaded = upload_timestamp(name)
    if uploaded is None:
        return None
    current = now_ms() if now is None else now
    left = uploaded + display_days * DAY_MS - current
    return max(0, math.ceil(left / DAY_MS))


def display_name(name: str) -> str:
    """Return the original filename portion for presentation."""
    decoded = decode(name)
    if decoded and decoded.original_name:
        return decoded.original_name
    return name.rsplit("_", 1)[-1]


__all__ = [
    "DAY_MS",
    "DISPLAY_DAYS",
    "DecodedName",
    "NamingError",
    "decode",
    "display_name",
    "encode",
    "matches_owner",
    "now_ms",
    "remaining_display_days",
    "routing_tag",
    "upload_timestamp",
    "validate_owner_id",
]
