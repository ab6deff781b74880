"""Submission and deletion workflows."""

from __future__ import annotations

import asyncio
import logging
import posixpath
from pathlib import Path
from typing import Callable, Optional

from stoya import naming
from stoya.catalog import DirectoryCatalog
from stoya.classification import ClassificationFailure, SafetyClassifier
from stoya.media import MediaProbe
from stoya.reconcile import LifecycleState, ModerationReconciler
from stoya.remote import StoreError
from stoya.state import SessionRepository

from .errors import ScreenFullError, UploadError
from .models import SubmitResult

LOGGER = logging.getLogger(__name__)


class UploadOrchestrator:
    """Sequence local checks, safety review, remote writes and record keeping."""

    def __init__(
        self,
        catalog: DirectoryCatalog,
        session: SessionRepository,
        reconciler: ModerationReconciler,
        classifier: SafetyClassifier,
        *,
        probe: Optional[MediaProbe] = None,
        clock: Callable[[], int] = naming.now_ms,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            catalog: Remote folder catalog.
            session: Local tracked-upload records.
            reconciler: Reconciler refreshed after every change.
            classifier: Content-safety reviewer.
            probe: Local media validator.
            clock: Source of upload timestamps in epoch milliseconds.
        """
        self._catalog = catalog
        self._client = catalog.client
        self._session = session
        self._reconciler = reconciler
        self._classifier = classifier
        self._probe = probe or MediaProbe()
        self._clock = clock

    async def submit(self, media_path: Path, screen_id: int, owner_id: str) -> SubmitResult:
        """Review and upload a file to the moderation folder.

        Args:
            media_path: Local image or video.
            screen_id: Screen the upload is meant for.
            owner_id: Uploader identity.

        Returns:
            SubmitResult: Encoded name, verdict and the freshly reconciled state.

        Raises:
            MediaValidationError: If the file is not an acceptable image or video.
            NamingError: If ``owner_id`` cannot be embedded in a filename.
            ScreenFullError: If the screen is full or its occupancy is unknown.
            ClassificationFailure: If the safety review rejects the media or fails.
            UploadError: If the bytes could not be written.
        """
        naming.validate_owner_id(owner_id)
        media = self._probe.inspect(media_path)

        occupancy = await self._catalog.screen_occupancy(screen_id)
        if not occupancy.is_known:
            raise ScreenFullError(f"Could not verify free slots on screen {screen_id}; try again later.")
        if occupancy.is_full:
            raise ScreenFullError(
                f"Screen {screen_id} already holds the maximum of {occupancy.capacity} files."
            )

        verdict = await asyncio.to_thread(self._classifier.classify, media)
        if not verdict.safe:
            LOGGER.info("Upload of %s blocked by safety review: %s", media.name, verdict.reason)
            raise ClassificationFailure(verdict.reason)

        pending = self._catalog.pending_path
        if not await self._catalog.ensure_folder(pending):
            LOGGER.warning("Could not confirm moderation folder %s; uploading anyway.", pending)

        file_name = naming.encode(screen_id, owner_id, media.name, self._clock())
        remote_path = posixpath.join(pending, file_name)
        target = await self._client.call("/upload", params={"path": remote_path, "overwrite": "true"})
        if not isinstance(target, dict) or not target.get("href"):
            raise UploadError("Could not obtain an upload link.")
        if not await self._client.put_bytes(target["href"], media.read_bytes()):
            raise UploadError("Failed to write the file to the store.")
        LOGGER.info("Uploaded %s to %s.", media.name, remote_path)

        tagged = bool(
            await self._client.call(
                method="PATCH",
                params={"path": remote_path},
                json={"custom_properties": {"screen": self._catalog.screen_label(screen_id)}},
            )
        )
        if not tagged:
            LOGGER.warning("Routing tag could not be attached to %s; continuing.", remote_path)

        self._session.set_upload(owner_id, screen_id, file_name)
        state = await self._refresh(owner_id, screen_id)
        return SubmitResult(
            file_name=file_name,
            path=remote_path,
            verdict=verdict,
            state=state,
            tagged=tagged,
        )

    async def delete(
        self,
        path: str,
        *,
        owner_id: str,
        screen_id: int,
        name_hint: Optional[str] = None,
    ) -> bool:
        """Delete an upload, falling back to the folders its routing tag points to.

        Args:
            path: Remote path the caller last saw the file at.
            owner_id: Uploader identity whose record is cleared on success.
            screen_id: Screen whose record is cleared on success.
            name_hint: Filename to use for the fallback when ``path`` is stale.

        Returns:
            bool: Whether the file was deleted.
        """
        deleted = await self._delete_at(path)
        if not deleted:
            file_name = name_hint or posixpath.basename(path.removeprefix("disk:"))
            deleted = await self._fallback_delete(file_name)
        if not deleted:
            LOGGER.warning("Could not delete %s.", path)
            return False

        self._session.clear_upload(owner_id, screen_id)
        await self._refresh(owner_id, screen_id)
        return True

    def reset(self, owner_id: str, screen_id: int) -> bool:
        """Forget the tracked upload for the screen without touching the store."""
        return self._session.clear_upload(owner_id, screen_id)

    async def _fallback_delete(self, file_name: str) -> bool:
        screen_id = naming.routing_tag(file_name) if file_name else None
        if screen_id is None:
            return False
        for folder in (self._catalog.screen_path(screen_id), self._catalog.pending_path):
            candidate = posixpath.join(folder, file_name)
            LOGGER.info("Attempting fallback delete at %s.", candidate)
            if await self._delete_at(candidate):
                return True
        return False

    async def _delete_at(self, path: str) -> bool:
        try:
            result = await self._client.call(
                method="DELETE", params={"path": path, "permanently": "true"}
            )
        except StoreError as exc:
            LOGGER.error("Delete of %s failed: %s", path, exc)
            return False
        return bool(result)

    async def _refresh(self, owner_id: str, screen_id: int) -> LifecycleState:
        try:
            return await self._reconciler.reconcile(owner_id, screen_id)
        except StoreError as exc:
            LOGGER.warning("Reconcile after change failed: %s", exc)
            return self._reconciler.last_known(owner_id, screen_id)


__all__ = ["UploadOrchestrator"]
