"""Media descriptors produced by local probing."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Optional

MediaKind = Literal["image", "video"]


@dataclass(frozen=True, slots=True)
class MediaFile:
    """A local file accepted for submission.

    Attributes:
        path: Location of the file.
        mime_type: Detected MIME type.
        kind: Whether the file is an image or a video.
        size_bytes: File size.
        duration_seconds: Video length; ``None`` for images.
    """

    path: Path
    mime_type: str
    kind: MediaKind
    size_bytes: int
    duration_seconds: Optional[float] = None

    @property
    def name(self) -> str:
        """Return the original filename."""
        return self.path.name

    def read_bytes(self) -> bytes:
        """Return the raw file contents."""
        return self.path.read_bytes()
