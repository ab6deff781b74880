"""Resilient HTTP client for the path-addressed remote store."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Mapping, Optional

import httpx

from stoya.config.models import RetrySettings, StoreSettings

from .errors import PermanentStoreError, TransientStoreError
from .retry import BackoffPolicy

LOGGER = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class RemoteStoreClient:
    """Issue store requests with the configured backoff policy.

    Every call is self-contained: retries, waits and the retry budget live in
    the invocation, so concurrent calls never influence each other.
    """

    def __init__(
        self,
        settings: StoreSettings,
        *,
        policy: Optional[BackoffPolicy] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Initialise the client.

        Args:
            settings: Store connection settings.
            policy: Backoff policy; defaults to the stock retry settings.
            transport: Optional httpx transport, used by tests to fake the store.
            sleep: Coroutine used to wait between attempts.
        """
        self._settings = settings
        self._policy = policy or BackoffPolicy.from_settings(RetrySettings())
        self._sleep = sleep
        self._http = httpx.AsyncClient(timeout=settings.timeout_seconds, transport=transport)

    async def __aenter__(self) -> "RemoteStoreClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Release pooled connections."""
        await self._http.aclose()

    @property
    def settings(self) -> StoreSettings:
        """Return the store settings the client was built with."""
        return self._settings

    async def call(
        self,
        endpoint: str = "",
        method: str = "GET",
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Optional[Any] = None,
        strict: bool = False,
    ) -> Any:
        """Call the store API and interpret the outcome.

        Args:
            endpoint: Path appended to the resource URL (``""``, ``/upload``...).
            method: HTTP method.
            params: Query parameters such as ``path`` and ``limit``.
            json: Optional JSON body.
            strict: Raise on failure statuses instead of returning ``None``, so
                that ``None`` only ever means "not found".

        Returns:
            Any: Decoded JSON payload, ``True`` for body-less success, or
            ``None`` when the resource is absent or the call failed.

        Raises:
            TransientStoreError: If the store stays unreachable after all retries.
            PermanentStoreError: If ``strict`` is set and the final status is a
                failure other than 404.
        """
        url = f"{self._settings.base_url}{endpoint}"
        target = f"{method} {endpoint or '/'} {dict(params or {}).get('path', '')}".strip()
        attempt = 0
        while True:
            try:
                response = await self._http.request(
                    method, url, params=params, json=json, headers=self._auth_headers()
                )
            except httpx.TransportError as exc:
                attempt += 1
                decision = self._policy.decide(exc, attempt)
                if not decision.retry:
                    LOGGER.error("Network error calling %s: %s", target, exc)
                    raise TransientStoreError(f"{target} unreachable: {exc}") from exc
                LOGGER.warning(
                    "Network error calling %s; retrying in %.1fs (attempt %d/%d).",
                    target,
                    decision.delay,
                    attempt,
                    self._policy.max_retries,
                )
                await self._sleep(decision.delay)
                continue

            decision = self._policy.decide(response, attempt + 1)
            if decision.retry:
                attempt += 1
                LOGGER.warning(
                    "Store returned %s for %s (%s); retrying in %.1fs (attempt %d/%d).",
                    response.status_code,
                    target,
                    decision.reason,
                    decision.delay,
                    attempt,
                    self._policy.max_retries,
                )
                await self._sleep(decision.delay)
                continue
            return self._interpret(target, response, strict=strict)

    async def put_bytes(self, href: str, data: bytes) -> bool:
        """Upload raw bytes to a signed upload URL."""
        try:
            response = await self._http.put(href, content=data)
        except httpx.TransportError as exc:
            LOGGER.error("Byte upload failed: %s", exc)
            return False
        if response.is_success:
            return True
        LOGGER.error("Byte upload rejected with status %s.", response.status_code)
        return False

    async def fetch_bytes(self, href: str) -> Optional[bytes]:
        """Download raw bytes from a signed download URL."""
        try:
            response = await self._http.get(href, follow_redirects=True)
        except httpx.TransportError as exc:
            LOGGER.error("Byte download failed: %s", exc)
            return None
        if not response.is_success:
            LOGGER.error("Byte download rejected with status %s.", response.status_code)
            return None
        return response.content

    def _auth_headers(self) -> dict[str, str]:
        if not self._settings.token:
            return {}
        return {"Authorization": f"OAuth {self._settings.token}"}

    @staticmethod
    def _interpret(target: str, response: httpx.Response, *, strict: bool = False) -> Any:
        status = response.status_code
        if status == 404:
            LOGGER.debug("Store reports %s as not found.", target)
            return None
        if not response.is_success:
            try:
                detail: Any = response.json()
            except ValueError:
                detail = response.reason_phrase
            LOGGER.error("Store error [%s] %s: %s", status, target, detail)
            if strict:
                raise PermanentStoreError(f"{target} failed with status {status}.")
            return None
        if status == 204 or not response.content:
            return True
        if "application/json" in response.headers.get("content-type", ""):
            try:
                return response.json()
            except ValueError:
                LOGGER.debug("Store returned malformed JSON for %s.", target)
                return True
        return True


__all__ = ["RemoteStoreClient"]
