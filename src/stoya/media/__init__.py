"""Local media validation."""

from .errors import MediaValidationError
from .models import MediaFile, MediaKind
from .probe import MediaProbe, probe_duration

__all__ = ["MediaValidationError", "MediaFile", "MediaKind", "MediaProbe", "probe_duration"]
