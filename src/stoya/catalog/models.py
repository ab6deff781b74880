"""Data models describing the remote folder layout."""

from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict


class RemoteEntry(BaseModel):
    """One item of a remote folder listing."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str
    path: str
    type: Literal["file", "dir"]
    custom_properties: Optional[Dict[str, Any]] = None

    @property
    def is_file(self) -> bool:
        """Return whether the entry is a file rather than a folder."""
        return self.type == "file"


class ScreenContainer(BaseModel):
    """Published-content folder belonging to one screen.

    Attributes:
        screen_id: Number parsed from the display name, ``0`` when unparsable.
        display_name: Folder name as listed (``"Экран 3"``).
        path: Remote path of the folder.
    """

    model_config = ConfigDict(frozen=True)

    screen_id: int
    display_name: str
    path: str


class ScreenOccupancy(BaseModel):
    """Published file count for a screen.

    ``file_count`` is ``None`` when the screen's listing could not be fetched,
    so an unreachable screen is never mistaken for an empty one.
    """

    model_config = ConfigDict(frozen=True)

    screen_id: int
    file_count: Optional[int]
    capacity: int = 20

    @property
    def is_known(self) -> bool:
        """Return whether the count reflects a successful listing."""
        return self.file_count is not None

    @property
    def is_full(self) -> bool:
        """Return whether the screen has reached capacity."""
        return self.file_count is not None and self.file_count >= self.capacity

    @property
    def free_slots(self) -> Optional[int]:
        """Return remaining slots, or ``None`` when the count is unknown."""
        if self.file_count is None:
            return None
        return max(0, self.capacity - self.file_count)


__all__ = ["RemoteEntry", "ScreenContainer", "ScreenOccupancy"]
