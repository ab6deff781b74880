"""Reconcile an owner's upload against the live remote folders."""

from __future__ import annotations

import asyncio
import logging

from stoya.catalog import DirectoryCatalog
from stoya.state import SessionRepository

from .lifecycle import LifecycleState, ReconcileResult, derive_state

LOGGER = logging.getLogger(__name__)


class ModerationReconciler:
    """Recompute lifecycle state from the pending and published folders.

    Each pass fetches both folders concurrently and decides on that single
    snapshot. The only state kept between passes is the last result per
    (owner, screen), which is informational and never feeds the decision.
    """

    def __init__(self, catalog: DirectoryCatalog, session: SessionRepository) -> None:
        self._catalog = catalog
        self._session = session
        self._last_known: dict[tuple[str, int], ReconcileResult] = {}

    async def evaluate(self, owner_id: str, screen_id: int) -> ReconcileResult:
        """Run one reconcile pass and return the full result.

        A missing folder counts as empty. A failed listing raises instead, so
        an outage is never mistaken for a rejection.

        Raises:
            StoreError: If either folder could not be listed.
        """
        expected = self._session.get_upload(owner_id, screen_id)
        pending, published = await asyncio.gather(
            self._catalog.list_pending(strict=True),
            self._catalog.list_published(screen_id, strict=True),
        )
        result = derive_state(
            pending,
            published,
            owner_id=owner_id,
            screen_id=screen_id,
            expected_name=expected,
        )
        previous = self._last_known.get((owner_id, screen_id))
        if previous is None or previous.state != result.state:
            LOGGER.info(
                "Upload state for owner %s on screen %s: %s.", owner_id, screen_id, result.state.value
            )
        self._last_known[(owner_id, screen_id)] = result
        return result

    async def reconcile(self, owner_id: str, screen_id: int) -> LifecycleState:
        """Return the current lifecycle state of the owner's upload for the screen."""
        return (await self.evaluate(owner_id, screen_id)).state

    def last_known(self, owner_id: str, screen_id: int) -> LifecycleState:
        """Return the state from the most recent pass, ``NONE`` before the first."""
        result = self._last_known.get((owner_id, screen_id))
        return result.state if result else LifecycleState.NONE

    def last_result(self, owner_id: str, screen_id: int) -> ReconcileResult | None:
        """Return the most recent result for the pair, if any."""
        return self._last_known.get((owner_id, screen_id))


__all__ = ["ModerationReconciler"]
