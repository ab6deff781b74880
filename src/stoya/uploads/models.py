"""Submission results."""

from __future__ import annotations

from dataclasses import dataclass

from stoya.classification.models import SafetyVerdict
from stoya.reconcile.lifecycle import LifecycleState


@dataclass(frozen=True, slots=True)
class SubmitResult:
    """Outcome of a successful submission.

    Attributes:
        file_name: Encoded filename written to the moderation folder.
        path: Remote path of the written file.
        verdict: Safety verdict that allowed the upload.
        state: Lifecycle state observed right after the upload.
        tagged: Whether the routing tag was attached as a custom property.
    """

    file_name: str
    path: str
    verdict: SafetyVerdict
    state: LifecycleState
    tagged: bool
