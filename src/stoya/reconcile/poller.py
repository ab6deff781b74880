"""Cancellable reconcile cadence for the currently selected screen."""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from typing import Any, Callable, Optional

from stoya.remote import StoreError

from .lifecycle import ReconcileResult
from .reconciler import ModerationReconciler

LOGGER = logging.getLogger(__name__)

Listener = Callable[[ReconcileResult], Any]


class ReconcilePoller:
    """Poll the selected screen on a fixed cadence.

    The poller owns at most one task. Selecting a screen cancels the previous
    task before the new one starts, and leaving the ``async with`` block
    cancels whatever is running.
    """

    def __init__(
        self,
        reconciler: ModerationReconciler,
        owner_id: str,
        *,
        interval_seconds: float = 5.0,
    ) -> None:
        """Initialize the poller.

        Args:
            reconciler: Reconciler evaluated on each tick.
            owner_id: Identity whose uploads are tracked.
            interval_seconds: Delay between ticks.
        """
        self._reconciler = reconciler
        self._owner_id = owner_id
        self._interval = max(0.0, interval_seconds)
        self._listeners: list[Listener] = []
        self._task: Optional[asyncio.Task[None]] = None
        self._screen_id: Optional[int] = None
        self._ticks = 0

    async def __aenter__(self) -> "ReconcilePoller":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.deselect()

    @property
    def selected_screen(self) -> Optional[int]:
        """Return the screen being polled, if any."""
        return self._screen_id

    @property
    def is_running(self) -> bool:
        """Return whether a polling task is active."""
        return self._task is not None and not self._task.done()

    @property
    def ticks(self) -> int:
        """Return the number of completed reconcile passes."""
        return self._ticks

    def add_listener(self, listener: Listener) -> None:
        """Register a callable (sync or async) receiving every tick result."""
        self._listeners.append(listener)

    async def select(self, screen_id: int) -> None:
        """Start polling ``screen_id``, stopping any previous cadence first."""
        await self.deselect()
        self._screen_id = screen_id
        self._task = asyncio.create_task(self._run(screen_id), name=f"reconcile-screen-{screen_id}")

    async def deselect(self) -> None:
        """Stop polling and wait until the task has finished."""
        task, self._task = self._task, None
        self._screen_id = None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def refresh(self) -> Optional[ReconcileResult]:
        """Reconcile the selected screen immediately, outside the cadence."""
        if self._screen_id is None:
            return None
        return await self._tick(self._screen_id)

    async def _run(self, screen_id: int) -> None:
        while True:
            await self._tick(screen_id)
            await asyncio.sleep(self._interval)

    async def _tick(self, screen_id: int) -> Optional[ReconcileResult]:
        try:
            result = await self._reconciler.evaluate(self._owner_id, screen_id)
        except StoreError as exc:
            LOGGER.warning("Reconcile for screen %s skipped: %s", screen_id, exc)
            return None
        except Exception:
            LOGGER.exception("Reconcile for screen %s failed; retrying next tick.", screen_id)
            return None
        self._ticks += 1
        for listener in list(self._listeners):
            try:
                outcome = listener(result)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:
                LOGGER.exception("Listener %r failed for screen %s.", listener, screen_id)
        return result


__all__ = ["ReconcilePoller"]
