"""Service wiring and payload helpers shared by CLI commands."""

from __future__ import annotations

import contextlib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, AsyncIterator, Iterable, Optional

import httpx

from stoya.accounts import AccountService
from stoya.catalog import DirectoryCatalog, ScreenContainer, ScreenOccupancy
from stoya.classification import DSPySafetyClassifier, SafetyClassifier
from stoya.config import StoyaConfig
from stoya.media import MediaProbe
from stoya.reconcile import ModerationReconciler, ReconcileResult
from stoya.remote import BackoffPolicy, RemoteStoreClient
from stoya.state import SessionRepository
from stoya.uploads import UploadOrchestrator


@dataclass(slots=True)
class Services:
    """Collaborators built from one configuration for one command run."""

    config: StoyaConfig
    client: RemoteStoreClient
    catalog: DirectoryCatalog
    session: SessionRepository
    reconciler: ModerationReconciler
    orchestrator: UploadOrchestrator
    accounts: AccountService


@contextlib.asynccontextmanager
async def open_services(
    config: StoyaConfig,
    *,
    session: Optional[SessionRepository] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    classifier: Optional[SafetyClassifier] = None,
    probe: Optional[MediaProbe] = None,
) -> AsyncIterator[Services]:
    """Build the service graph and close the HTTP client afterwards.

    Args:
        config: Effective configuration.
        session: Session repository; defaults to ``~/.stoya/session.json``.
        transport: Optional httpx transport replacing the network.
        classifier: Optional safety classifier replacing the DSPy program.
        probe: Optional media probe.

    Yields:
        Services: Wired collaborators.
    """
    client = RemoteStoreClient(
        config.store,
        policy=BackoffPolicy.from_settings(config.retry),
        transport=transport,
    )
    catalog = DirectoryCatalog(client, capacity=config.uploads.screen_capacity)
    session = session or SessionRepository()
    reconciler = ModerationReconciler(catalog, session)
    orchestrator = UploadOrchestrator(
        catalog,
        session,
        reconciler,
        classifier or DSPySafetyClassifier(config.llm),
        probe=probe or MediaProbe(max_video_seconds=config.uploads.max_video_seconds),
    )
    try:
        yield Services(
            config=config,
            client=client,
            catalog=catalog,
            session=session,
            reconciler=reconciler,
            orchestrator=orchestrator,
            accounts=AccountService(catalog),
        )
    finally:
        await client.aclose()


def screens_payload(
    screens: Iterable[ScreenContainer],
    occupancy: dict[int, ScreenOccupancy],
) -> list[dict[str, Any]]:
    """Return JSON-ready rows describing screens and their free slots."""
    rows: list[dict[str, Any]] = []
    for screen in screens:
        counts = occupancy.get(screen.screen_id)
        rows.append(
            {
                "screen_id": screen.screen_id,
                "name": screen.display_name,
                "path": screen.path,
                "files": counts.file_count if counts else None,
                "capacity": counts.capacity if counts else None,
                "free_slots": counts.free_slots if counts else None,
                "full": counts.is_full if counts else False,
            }
        )
    return rows


def result_payload(result: ReconcileResult, *, display_days: int = 30) -> dict[str, Any]:
    """Return a JSON-ready description of a reconcile result."""
    from stoya import naming

    payload: dict[str, Any] = {
        "owner_id": result.owner_id,
        "screen_id": result.screen_id,
        "state": result.state.value,
        "expected_name": result.expected_name,
        "file": None,
    }
    if result.tracked is not None:
        payload["file"] = {
            "name": result.tracked.file_name,
            "path": result.tracked.path,
            "display_name": naming.display_name(result.tracked.file_name),
            "remaining_days": naming.remaining_display_days(
                result.tracked.file_name, display_days=display_days
            ),
        }
    return payload


def resolve_media_path(value: str) -> Path:
    """Expand and resolve a media path passed on the command line."""
    return Path(value).expanduser().resolve()


__all__ = ["Services", "open_services", "screens_payload", "result_payload", "resolve_media_path"]
