"""Tests for the remote directory catalog."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Callable

import httpx
import pytest

from stoya.catalog import DirectoryCatalog, ScreenOccupancy
from stoya.remote import PermanentStoreError, RemoteStoreClient

if TYPE_CHECKING:
    from conftest import FakeStore

ClientFactory = Callable[..., RemoteStoreClient]

ROOT = "/Приложения/Стоя/Мой проект"


def _screen(screen_id: int) -> str:
    return f"{ROOT}/Экран {screen_id}"


def test_list_screens_filters_and_sorts(store: FakeStore, make_client: ClientFactory) -> None:
    store.add_folder(ROOT)
    for folder in ("Экран 10", "Модератор", "Экран 2", "Клиенты", "Экран без номера"):
        store.add_folder(f"{ROOT}/{folder}")
    store.add_file(f"{ROOT}/Экран 7.txt")

    async def _scenario():
        async with make_client() as client:
            return await DirectoryCatalog(client).list_screens()

    screens = asyncio.run(_scenario())

    assert [screen.screen_id for screen in screens] == [0, 2, 10]
    assert [screen.display_name for screen in screens] == ["Экран без номера", "Экран 2", "Экран 10"]
    assert screens[1].path == f"disk:{_screen(2)}"


def test_list_screens_without_root_is_empty(store: FakeStore, make_client: ClientFactory) -> None:
    async def _scenario():
        async with make_client() as client:
            return await DirectoryCatalog(client).list_screens()

    assert asyncio.run(_scenario()) == []


def test_full_screen_is_reported_full(store: FakeStore, make_client: ClientFactory) -> None:
    for index in range(20):
        store.add_file(f"{_screen(3)}/published_{index}.jpg")
    store.add_folder(f"{_screen(3)}/archive")

    async def _scenario() -> ScreenOccupancy:
        async with make_client() as client:
            return await DirectoryCatalog(client).screen_occupancy(3)

    occupancy = asyncio.run(_scenario())

    assert occupancy.file_count == 20
    assert occupancy.is_full
    assert occupancy.free_slots == 0


def test_occupancy_counts_files_only(store: FakeStore, make_client: ClientFactory) -> None:
    store.add_folder(ROOT)
    store.add_file(f"{_screen(1)}/a.jpg")
    store.add_file(f"{_screen(1)}/b.mp4")
    store.add_folder(f"{_screen(1)}/nested")

    async def _scenario():
        async with make_client() as client:
            catalog = DirectoryCatalog(client)
            return await catalog.compute_occupancy(await catalog.list_screens())

    occupancy = asyncio.run(_scenario())

    assert occupancy[1].file_count == 2
    assert occupancy[1].free_slots == 18
    assert not occupancy[1].is_full


def test_failed_occupancy_fetch_is_unknown_not_empty(
    store: FakeStore, make_client: ClientFactory
) -> None:
    store.add_folder(ROOT)
    store.add_folder(_screen(1))
    store.add_folder(_screen(2))
    store.add_file(f"{_screen(1)}/a.jpg")

    def _break_screen_two(request: httpx.Request) -> httpx.Response | None:
        if request.url.params.get("path") == _screen(2):
            raise httpx.ReadTimeout("timed out", request=request)
        return None

    store.intercept(_break_screen_two)

    async def _scenario():
        async with make_client() as client:
            catalog = DirectoryCatalog(client)
            return await catalog.compute_occupancy(await catalog.list_screens())

    occupancy = asyncio.run(_scenario())

    assert occupancy[1].file_count == 1
    assert occupancy[2].file_count is None
    assert not occupancy[2].is_known
    assert occupancy[2].free_slots is None


def test_screen_with_status_failure_is_unknown(store: FakeStore, make_client: ClientFactory) -> None:
    store.intercept(lambda request: httpx.Response(500))

    async def _scenario() -> ScreenOccupancy:
        async with make_client() as client:
            return await DirectoryCatalog(client).screen_occupancy(5)

    assert asyncio.run(_scenario()).file_count is None


def test_list_folder_absent_is_empty(store: FakeStore, make_client: ClientFactory) -> None:
    async def _scenario():
        async with make_client() as client:
            return await DirectoryCatalog(client).list_pending()

    assert asyncio.run(_scenario()) == []


def test_ensure_folder_creates_missing_folder(store: FakeStore, make_client: ClientFactory) -> None:
    store.add_folder(ROOT)

    async def _scenario() -> bool:
        async with make_client() as client:
            catalog = DirectoryCatalog(client)
            return await catalog.ensure_folder(catalog.pending_path)

    assert asyncio.run(_scenario()) is True
    assert f"{ROOT}/Модератор" in store.folders


def test_ensure_folder_tolerates_concurrent_creator(
    store: FakeStore, make_client: ClientFactory
) -> None:
    store.add_folder(ROOT)
    pending = f"{ROOT}/Модератор"
    checks = {"count": 0}

    def _race(request: httpx.Request) -> httpx.Response | None:
        if request.method == "GET" and request.url.params.get("path") == pending:
            checks["count"] += 1
            if checks["count"] == 1:
                return httpx.Response(404)
        if request.method == "PUT" and request.url.params.get("path") == pending:
            store.add_folder(pending)
            return httpx.Response(409, json={"error": "DiskPathPointsToExistentDirectoryError"})
        return None

    store.intercept(_race)

    async def _scenario() -> bool:
        async with make_client() as client:
            return await DirectoryCatalog(client).ensure_folder(pending)

    assert asyncio.run(_scenario()) is True
    assert checks["count"] == 2


def test_ensure_folder_creates_parent_when_asked(
    store: FakeStore, make_client: ClientFactory
) -> None:
    async def _scenario() -> bool:
        async with make_client() as client:
            catalog = DirectoryCatalog(client)
            return await catalog.ensure_folder(catalog.clients_path, create_parent=True)

    assert asyncio.run(_scenario()) is True
    assert ROOT in store.folders
    assert f"{ROOT}/Клиенты" in store.folders


def test_strict_listing_separates_failure_from_absence(
    store: FakeStore, make_client: ClientFactory
) -> None:
    store.add_folder(ROOT)
    store.intercept(
        lambda request: httpx.Response(500)
        if request.url.params.get("path") == _screen(1)
        else None
    )

    async def _absent():
        async with make_client() as client:
            return await DirectoryCatalog(client).list_pending(strict=True)

    async def _failed():
        async with make_client() as client:
            catalog = DirectoryCatalog(client)
            assert await catalog.list_published(1) == []
            await catalog.list_published(1, strict=True)

    assert asyncio.run(_absent()) == []
    with pytest.raises(PermanentStoreError):
        asyncio.run(_failed())
