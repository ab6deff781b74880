"""Content-safety classification."""

from .errors import ClassificationFailure
from .models import ANALYSIS_FAILED_REASON, SafetyVerdict
from .safety import MODERATION_PROMPT, DSPySafetyClassifier, SafetyClassifier

__all__ = [
    "ClassificationFailure",
    "SafetyVerdict",
    "ANALYSIS_FAILED_REASON",
    "SafetyClassifier",
    "DSPySafetyClassifier",
    "MODERATION_PROMPT",
]
