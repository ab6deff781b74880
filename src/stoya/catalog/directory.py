"""Directory listings, screen discovery and occupancy counts."""

from __future__ import annotations

import asyncio
import logging
import posixpath
import re
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from stoya.remote import RemoteStoreClient, StoreError

from .models import RemoteEntry, ScreenContainer, ScreenOccupancy

LOGGER = logging.getLogger(__name__)


class DirectoryCatalog:
    """Read-side view of the remote folder layout.

    The catalog never caches: every call reflects the store as it is now, and
    callers rebuild their snapshots wholesale from the results.
    """

    def __init__(self, client: RemoteStoreClient, *, capacity: int = 20) -> None:
        self._client = client
        self._settings = client.settings
        self._capacity = capacity
        self._screen_pattern = re.compile(rf"{re.escape(self._settings.screen_prefix)}\s+(\d+)", re.I)

    @property
    def client(self) -> RemoteStoreClient:
        """Return the underlying remote client."""
        return self._client

    @property
    def app_root(self) -> str:
        """Return the folder that holds screens and service folders."""
        return self._settings.app_root

    @property
    def pending_path(self) -> str:
        """Return the shared moderation folder path."""
        return posixpath.join(self._settings.app_root, self._settings.moderator_folder)

    @property
    def clients_path(self) -> str:
        """Return the credential-record folder path."""
        return posixpath.join(self._settings.app_root, self._settings.clients_folder)

    def screen_label(self, screen_id: int) -> str:
        """Return the display name of a screen folder (``"Экран 3"``)."""
        return f"{self._settings.screen_prefix} {screen_id}"

    def screen_path(self, screen_id: int) -> str:
        """Return the published folder path for ``screen_id``."""
        return posixpath.join(self._settings.app_root, self.screen_label(screen_id))

    async def list_screens(self) -> list[ScreenContainer]:
        """Return screen folders of the application root sorted by screen id."""
        payload = await self._client.call(
            params={"path": self._settings.app_root, "limit": self._settings.root_listing_limit}
        )
        screens: list[ScreenContainer] = []
        for entry in self._parse_items(payload) or []:
            if entry.type != "dir" or not entry.name.startswith(self._settings.screen_prefix):
                continue
            match = self._screen_pattern.search(entry.name)
            screen_id = int(match.group(1)) if match else 0
            screens.append(ScreenContainer(screen_id=screen_id, display_name=entry.name, path=entry.path))
        screens.sort(key=lambda screen: screen.screen_id)
        return screens

    async def list_folder(self, path: str, *, strict: bool = False) -> list[RemoteEntry]:
        """Return the entries of ``path``.

        Absent folders are empty. Unreadable folders are empty too unless
        ``strict`` is set, in which case the failure propagates.

        Raises:
            StoreError: If ``strict`` is set and the listing failed.
        """
        entries = await self._fetch_folder(path, strict=strict)
        return entries or []

    async def list_pending(self, *, strict: bool = False) -> list[RemoteEntry]:
        """Return the contents of the shared moderation folder."""
        return await self.list_folder(self.pending_path, strict=strict)

    async def list_published(self, screen_id: int, *, strict: bool = False) -> list[RemoteEntry]:
        """Return the contents of a screen's published folder."""
        return await self.list_folder(self.screen_path(screen_id), strict=strict)

    async def screen_occupancy(self, screen_id: int) -> ScreenOccupancy:
        """Count published files for one screen.

        A failed listing yields an occupancy with an unknown count.
        """
        try:
            entries = await self._fetch_folder(self.screen_path(screen_id))
        except StoreError as exc:
            LOGGER.warning("Occupancy for screen %s unavailable: %s", screen_id, exc)
            entries = None
        count = None if entries is None else sum(1 for entry in entries if entry.is_file)
        return ScreenOccupancy(screen_id=screen_id, file_count=count, capacity=self._capacity)

    async def compute_occupancy(
        self, screens: Iterable[ScreenContainer]
    ) -> dict[int, ScreenOccupancy]:
        """Count published files for every screen concurrently."""
        results = await asyncio.gather(
            *(self.screen_occupancy(screen.screen_id) for screen in screens)
        )
        return {occupancy.screen_id: occupancy for occupancy in results}

    async def exists(self, path: str) -> bool:
        """Return whether a resource exists at ``path``."""
        return bool(await self._client.call(params={"path": path}))

    async def ensure_folder(self, path: str, *, create_parent: bool = False) -> bool:
        """Create ``path`` unless it already exists.

        A failed create is re-checked, since a concurrent client may have
        created the folder in the meantime.

        Args:
            path: Folder to create.
            create_parent: Also create the parent folder when the first create fails.

        Returns:
            bool: Whether the folder exists afterwards.
        """
        if await self.exists(path):
            return True
        if await self._client.call(method="PUT", params={"path": path}):
            LOGGER.info("Created remote folder %s.", path)
            return True
        if create_parent:
            parent = posixpath.dirname(path)
            if parent and parent != path and not await self.exists(parent):
                await self._client.call(method="PUT", params={"path": parent})
            if await self._client.call(method="PUT", params={"path": path}):
                LOGGER.info("Created remote folder %s after creating its parent.", path)
                return True
        return await self.exists(path)

    async def _fetch_folder(
        self, path: str, *, strict: bool = False
    ) -> Optional[list[RemoteEntry]]:
        payload = await self._client.call(
            params={"path": path, "limit": self._settings.folder_listing_limit}, strict=strict
        )
        return self._parse_items(payload)

    @staticmethod
    def _parse_items(payload: Any) -> Optional[list[RemoteEntry]]:
        if not isinstance(payload, dict):
            return None
        embedded = payload.get("_embedded")
        if not isinstance(embedded, dict):
            return []
        entries: list[RemoteEntry] = []
        for item in embedded.get("items") or []:
            try:
                entries.append(RemoteEntry.model_validate(item))
            except ValidationError:
                LOGGER.debug("Skipping malformed listing item: %r", item)
        return entries


__all__ = ["DirectoryCatalog"]
