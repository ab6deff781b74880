"""Moderation lifecycle reconciliation."""

from .lifecycle import LifecycleState, ReconcileResult, TrackedUpload, derive_state, find_upload
from .poller import ReconcilePoller
from .reconciler import ModerationReconciler

__all__ = [
    "LifecycleState",
    "ReconcileResult",
    "TrackedUpload",
    "derive_state",
    "find_upload",
    "ModerationReconciler",
    "ReconcilePoller",
]
