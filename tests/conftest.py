"""Shared fixtures: an in-memory remote store served through ``httpx.MockTransport``."""

from __future__ import annotations

import json
import posixpath
from typing import Any, Callable, Optional

import httpx
import pytest

from stoya.config.models import RetrySettings, StoreSettings
from stoya.remote import BackoffPolicy, RemoteStoreClient

SETTINGS = StoreSettings(token="test-token")
RESOURCE_PATH = httpx.URL(SETTINGS.base_url).path
UPLOAD_URL = "https://uploader.test/put"
DOWNLOAD_URL = "https://downloader.test/get"

Hook = Callable[[httpx.Request], Optional[httpx.Response]]


def _strip_disk(path: str) -> str:
    return path[len("disk:") :] if path.startswith("disk:") else path


class FakeStore:
    """Path-addressed store answering the resource API used by the client."""

    def __init__(self) -> None:
        self.folders: list[str] = ["/Приложения", "/Приложения/Стоя"]
        self.files: dict[str, bytes] = {}
        self.properties: dict[str, dict[str, Any]] = {}
        self.requests: list[httpx.Request] = []
        self._hooks: list[Hook] = []

    def add_folder(self, path: str) -> None:
        if path not in self.folders:
            self.folders.append(path)

    def add_file(self, path: str, data: bytes = b"data") -> None:
        self.add_folder(posixpath.dirname(path))
        self.files[path] = data

    def file_names(self, folder: str) -> list[str]:
        return [posixpath.basename(path) for path in self.files if posixpath.dirname(path) == folder]

    def intercept(self, hook: Hook) -> None:
        """Register a hook that may answer a request before the store does."""
        self._hooks.append(hook)

    def calls(self, method: str, endpoint: str = "") -> list[httpx.Request]:
        return [
            request
            for request in self.requests
            if request.method == method and request.url.path == RESOURCE_PATH + endpoint
        ]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for hook in self._hooks:
            response = hook(request)
            if response is not None:
                return response

        path = _strip_disk(request.url.params.get("path", ""))
        if request.url.host == "uploader.test":
            self.files[path] = request.content
            return httpx.Response(201)
        if request.url.host == "downloader.test":
            if path not in self.files:
                return httpx.Response(404)
            return httpx.Response(200, content=self.files[path])

        endpoint = request.url.path[len(RESOURCE_PATH) :]
        if endpoint == "/upload":
            if posixpath.dirname(path) not in self.folders:
                return _error(409, "DiskPathDoesntExistsError")
            return httpx.Response(200, json={"href": _signed(UPLOAD_URL, path), "method": "PUT"})
        if endpoint == "/download":
            if path not in self.files:
                return _error(404, "DiskNotFoundError")
            return httpx.Response(200, json={"href": _signed(DOWNLOAD_URL, path), "method": "GET"})

        handler = getattr(self, f"_{request.method.lower()}")
        return handler(request, path)

    def _get(self, request: httpx.Request, path: str) -> httpx.Response:
        if path in self.folders:
            children = [
                self._entry(folder, "dir")
                for folder in self.folders
                if posixpath.dirname(folder) == path and folder != path
            ]
            children += [
                self._entry(file_path, "file")
                for file_path in self.files
                if posixpath.dirname(file_path) == path
            ]
            payload = self._entry(path, "dir")
            payload["_embedded"] = {"items": children, "path": f"disk:{path}"}
            return httpx.Response(200, json=payload)
        if path in self.files:
            return httpx.Response(200, json=self._entry(path, "file"))
        return _error(404, "DiskNotFoundError")

    def _put(self, request: httpx.Request, path: str) -> httpx.Response:
        if path in self.folders or path in self.files:
            return _error(409, "DiskPathPointsToExistentDirectoryError")
        parent = posixpath.dirname(path)
        if parent != "/" and parent not in self.folders:
            return _error(409, "DiskPathDoesntExistsError")
        self.folders.append(path)
        return httpx.Response(201, json={"href": f"{SETTINGS.base_url}?path={path}"})

    def _patch(self, request: httpx.Request, path: str) -> httpx.Response:
        if path not in self.files:
            return _error(404, "DiskNotFoundError")
        body = json.loads(request.content or b"{}")
        self.properties.setdefault(path, {}).update(body.get("custom_properties", {}))
        return httpx.Response(200, json=self._entry(path, "file"))

    def _delete(self, request: httpx.Request, path: str) -> httpx.Response:
        if path in self.files:
            del self.files[path]
            return httpx.Response(204)
        if path in self.folders:
            self.folders.remove(path)
            return httpx.Response(204)
        return _error(404, "DiskNotFoundError")

    def _entry(self, path: str, kind: str) -> dict[str, Any]:
        entry: dict[str, Any] = {
            "name": posixpath.basename(path),
            "path": f"disk:{path}",
            "type": kind,
        }
        if path in self.properties:
            entry["custom_properties"] = dict(self.properties[path])
        return entry


def _signed(base: str, path: str) -> str:
    return str(httpx.URL(base, params={"path": path}))


def _error(status: int, name: str) -> httpx.Response:
    return httpx.Response(status, json={"error": name, "description": name})


class SleepRecorder:
    """Awaitable stand-in for ``asyncio.sleep`` that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def store() -> FakeStore:
    """Return an empty fake store containing only the application's ancestors."""
    return FakeStore()


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def make_client(store: FakeStore, sleeps: SleepRecorder) -> Callable[..., RemoteStoreClient]:
    """Return a factory building clients wired to the fake store.

    The factory must be called inside a running event loop so the client can
    be closed on that loop.
    """

    def _factory(
        *,
        retry: RetrySettings | None = None,
        uniform: Callable[[float, float], float] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> RemoteStoreClient:
        policy_kwargs: dict[str, Any] = {}
        if uniform is not None:
            policy_kwargs["uniform"] = uniform
        return RemoteStoreClient(
            SETTINGS,
            policy=BackoffPolicy.from_settings(retry or RetrySettings(), **policy_kwargs),
            transport=transport or store.transport(),
            sleep=sleeps,
        )

    return _factory
