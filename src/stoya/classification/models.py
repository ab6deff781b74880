"""Safety classification results."""

from __future__ import annotations

from pydantic import BaseModel

ANALYSIS_FAILED_REASON = "AI analysis failed. Please try again."


class SafetyVerdict(BaseModel):
    """Outcome of a content-safety review.

    Attributes:
        safe: Whether the media may be shown publicly.
        reason: Short explanation of the verdict.
    """

    safe: bool
    reason: str

    @classmethod
    def failed(cls, reason: str = ANALYSIS_FAILED_REASON) -> "SafetyVerdict":
        """Return the fail-closed verdict used when analysis cannot complete."""
        return cls(safe=False, reason=reason)


__all__ = ["SafetyVerdict", "ANALYSIS_FAILED_REASON"]
