"""Upload and delete workflows."""

from .errors import ScreenFullError, UploadError
from .models import SubmitResult
from .orchestrator import UploadOrchestrator

__all__ = ["UploadOrchestrator", "SubmitResult", "ScreenFullError", "UploadError"]
