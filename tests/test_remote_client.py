"""Tests for the resilient remote store client."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Callable

import httpx
import pytest

from stoya.config.models import RetrySettings
from stoya.remote import (
    BackoffPolicy,
    PermanentStoreError,
    RemoteStoreClient,
    RetryDecision,
    TransientStoreError,
)

if TYPE_CHECKING:
    from conftest import FakeStore, SleepRecorder

ClientFactory = Callable[..., RemoteStoreClient]


def _always(status: int) -> Callable[[httpx.Request], httpx.Response]:
    return lambda request: httpx.Response(status, json={"error": "busy"})


def test_locked_resource_retries_three_times_then_returns_none(
    store: FakeStore, sleeps: SleepRecorder, make_client: ClientFactory
) -> None:
    store.intercept(_always(423))

    async def _scenario() -> object:
        async with make_client() as client:
            return await client.call(params={"path": "/Приложения"})

    result = asyncio.run(_scenario())

    assert result is None
    assert len(store.requests) == 4
    assert len(sleeps.delays) == 3
    assert all(3.0 <= delay <= 5.0 for delay in sleeps.delays)
    assert 9.0 <= sum(sleeps.delays) <= 15.0


def test_lock_wait_uses_configured_window(
    store: FakeStore, sleeps: SleepRecorder, make_client: ClientFactory
) -> None:
    store.intercept(_always(423))
    windows: list[tuple[float, float]] = []

    def _uniform(low: float, high: float) -> float:
        windows.append((low, high))
        return high

    async def _scenario() -> None:
        async with make_client(uniform=_uniform) as client:
            await client.call(params={"path": "/"})

    asyncio.run(_scenario())

    assert windows == [(3.0, 5.0)] * 3
    assert sleeps.delays == [5.0, 5.0, 5.0]


@pytest.mark.parametrize("status", [429, 500, 503])
def test_rate_limit_and_server_errors_back_off_linearly(
    status: int, store: FakeStore, sleeps: SleepRecorder, make_client: ClientFactory
) -> None:
    store.intercept(_always(status))

    async def _scenario() -> object:
        async with make_client() as client:
            return await client.call(params={"path": "/"})

    assert asyncio.run(_scenario()) is None
    assert sleeps.delays == pytest.approx([1.5, 3.0, 4.5])
    assert len(store.requests) == 4


def test_recovers_when_store_stops_rate_limiting(
    store: FakeStore, sleeps: SleepRecorder, make_client: ClientFactory
) -> None:
    store.add_folder("/Приложения/Стоя/Мой проект")
    remaining = {"count": 2}

    def _flaky(request: httpx.Request) -> httpx.Response | None:
        if remaining["count"]:
            remaining["count"] -= 1
            return httpx.Response(429)
        return None

    store.intercept(_flaky)

    async def _scenario() -> object:
        async with make_client() as client:
            return await client.call(params={"path": "/Приложения/Стоя/Мой проект"})

    payload = asyncio.run(_scenario())

    assert isinstance(payload, dict)
    assert payload["type"] == "dir"
    assert sleeps.delays == pytest.approx([1.5, 3.0])


def test_mixed_failures_share_one_retry_budget(
    store: FakeStore, sleeps: SleepRecorder, make_client: ClientFactory
) -> None:
    statuses = iter([423, 429, 500, 503])
    store.intercept(lambda request: httpx.Response(next(statuses)))

    async def _scenario() -> object:
        async with make_client(uniform=lambda low, high: low) as client:
            return await client.call(params={"path": "/"})

    assert asyncio.run(_scenario()) is None
    assert len(store.requests) == 4
    assert sleeps.delays == pytest.approx([3.0, 3.0, 4.5])


def test_network_failure_raises_after_budget(
    store: FakeStore, sleeps: SleepRecorder, make_client: ClientFactory
) -> None:
    def _unreachable(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    store.intercept(_unreachable)

    async def _scenario() -> None:
        async with make_client() as client:
            await client.call(params={"path": "/"})

    with pytest.raises(TransientStoreError):
        asyncio.run(_scenario())

    assert len(store.requests) == 4
    assert sleeps.delays == [2.0, 2.0, 2.0]


def test_not_found_is_none_without_retry(
    store: FakeStore, sleeps: SleepRecorder, make_client: ClientFactory
) -> None:
    async def _scenario() -> object:
        async with make_client() as client:
            return await client.call(params={"path": "/missing"})

    assert asyncio.run(_scenario()) is None
    assert len(store.requests) == 1
    assert sleeps.delays == []


def test_other_client_errors_are_not_retried(
    store: FakeStore, sleeps: SleepRecorder, make_client: ClientFactory
) -> None:
    store.intercept(_always(409))

    async def _scenario() -> object:
        async with make_client() as client:
            return await client.call(method="PUT", params={"path": "/x"})

    assert asyncio.run(_scenario()) is None
    assert len(store.requests) == 1
    assert sleeps.delays == []


def test_body_less_success_returns_true(store: FakeStore, make_client: ClientFactory) -> None:
    store.add_file("/Приложения/Стоя/a.jpg")

    async def _scenario() -> object:
        async with make_client() as client:
            return await client.call(
                method="DELETE", params={"path": "/Приложения/Стоя/a.jpg", "permanently": "true"}
            )

    assert asyncio.run(_scenario()) is True
    assert "/Приложения/Стоя/a.jpg" not in store.files


def test_requests_carry_oauth_header(store: FakeStore, make_client: ClientFactory) -> None:
    async def _scenario() -> None:
        async with make_client() as client:
            await client.call(params={"path": "/"})

    asyncio.run(_scenario())

    assert store.requests[0].headers["Authorization"] == "OAuth test-token"


def test_byte_transfer_skips_authorization(store: FakeStore, make_client: ClientFactory) -> None:
    async def _scenario() -> tuple[bool, bytes | None]:
        async with make_client() as client:
            stored = await client.put_bytes("https://uploader.test/put?path=/f.bin", b"payload")
            fetched = await client.fetch_bytes("https://downloader.test/get?path=/f.bin")
            return stored, fetched

    stored, fetched = asyncio.run(_scenario())

    assert stored is True
    assert fetched == b"payload"
    assert all("Authorization" not in request.headers for request in store.requests)


def test_policy_refuses_retries_beyond_budget() -> None:
    policy = BackoffPolicy(2, lambda outcome, attempt: RetryDecision(True, float(attempt)))
    response = httpx.Response(500)

    assert policy.decide(response, 1).retry is True
    assert policy.decide(response, 2).delay == 2.0
    assert policy.decide(response, 3).retry is False


def test_policy_from_settings_honours_overrides() -> None:
    settings = RetrySettings(max_retries=1, rate_limit_step_seconds=0.5)
    policy = BackoffPolicy.from_settings(settings)

    assert policy.decide(httpx.Response(429), 1) == RetryDecision(True, 0.5, "status 429")
    assert policy.decide(httpx.Response(429), 2).retry is False
    assert policy.decide(httpx.Response(400), 1).retry is False


def test_strict_call_raises_on_failure_but_not_on_absence(
    store: FakeStore, make_client: ClientFactory
) -> None:
    store.intercept(
        lambda request: httpx.Response(403, json={"error": "Forbidden"})
        if request.url.params.get("path") == "/forbidden"
        else None
    )

    async def _lenient() -> tuple[object, object]:
        async with make_client() as client:
            missing = await client.call(params={"path": "/missing"}, strict=True)
            forbidden = await client.call(params={"path": "/forbidden"})
            return missing, forbidden

    async def _strict() -> object:
        async with make_client() as client:
            return await client.call(params={"path": "/forbidden"}, strict=True)

    assert asyncio.run(_lenient()) == (None, None)
    with pytest.raises(PermanentStoreError):
        asyncio.run(_strict())
