"""Local media checks run before anything is sent over the network."""

from __future__ import annotations

import json
import logging
import mimetypes
from pathlib import Path
from typing import Callable, Optional

from ffmpeg import FFmpeg, FFmpegError
from PIL import Image, UnidentifiedImageError

from .errors import MediaValidationError
from .models import MediaFile

LOGGER = logging.getLogger(__name__)

DurationProbe = Callable[[Path], float]


def probe_duration(video: Path) -> float:
    """Return the duration of ``video`` in seconds using ffprobe."""
    ffprobe = FFmpeg(executable="ffprobe").input(
        str(video),
        print_format="json",
        show_format=None,
    )
    output = ffprobe.execute()
    data = json.loads(output)
    return float(data["format"]["duration"])


class MediaProbe:
    """Classify a local file as image or video and enforce the video length limit."""

    def __init__(
        self,
        *,
        max_video_seconds: float = 15.0,
        duration_probe: Optional[DurationProbe] = None,
    ) -> None:
        self._max_video_seconds = max_video_seconds
        self._duration_probe = duration_probe or probe_duration

    def inspect(self, path: Path) -> MediaFile:
        """Validate ``path`` and describe it.

        Args:
            path: Local file selected for upload.

        Returns:
            MediaFile: Descriptor of the accepted file.

        Raises:
            MediaValidationError: If the file is missing, is neither image nor
                video, cannot be decoded, or the video is too long.
        """
        if not path.is_file():
            raise MediaValidationError(f"File not found: {path}")

        mime_type = mimetypes.guess_type(path.name)[0] or ""
        size = path.stat().st_size
        if mime_type.startswith("image/"):
            self._check_image(path)
            return MediaFile(path=path, mime_type=mime_type, kind="image", size_bytes=size)
        if mime_type.startswith("video/"):
            duration = self._video_duration(path)
            if duration > self._max_video_seconds:
                raise MediaValidationError(
                    f"Video must not be longer than {self._max_video_seconds:g} seconds "
                    f"(got {duration:.1f})."
                )
            return MediaFile(
                path=path,
                mime_type=mime_type,
                kind="video",
                size_bytes=size,
                duration_seconds=duration,
            )
        raise MediaValidationError("Only photos and videos are supported.")

    @staticmethod
    def _check_image(path: Path) -> None:
        try:
            with Image.open(path) as img:
                img.verify()
        except (UnidentifiedImageError, OSError) as exc:
            LOGGER.debug("Image check failed for %s: %s", path, exc)
            raise MediaValidationError("Could not read the image file.") from exc

    def _video_duration(self, path: Path) -> float:
        try:
            return self._duration_probe(path)
        except (FFmpegError, OSError, KeyError, ValueError) as exc:
            LOGGER.debug("ffprobe failed reading duration for %s: %s", path, exc)
            raise MediaValidationError("Could not read the video file.") from exc


__all__ = ["MediaProbe", "probe_duration"]
