from __future__ import annotations

import itertools
import json
import os
import threading
from collections.abc import Callable
from typing import Any

import httplib2
import pytest
from googleapiclient.errors import HttpError

from drivestore.core.auth.oauth2 import OAuth2Config
from drivestore.core.storage.backends.drive_backend import DriveBackend


def make_http_error(status: int, message: str = "Drive API Error") -> HttpError:
    """Build a real HttpError with the given status."""
    resp = httplib2.Response({"status": status})
    content = json.dumps({"error": {"code": status, "message": message}}).encode("utf-8")
    return HttpError(resp=resp, content=content)


class FakeRequest:
    """Stand-in for googleapiclient.http.HttpRequest."""

    def __init__(self, fn: Callable[[], Any]):
        self._fn = fn

    def execute(self, num_retries: int = 0) -> Any:
        return self._fn()


class FakeFiles:
    """In-memory model of the Drive v3 ``files()`` resource.

    Supports exact name queries, page tokens, media upload/download and
    duplicate names. Every executed request is recorded in ``calls`` as
    (method, kwargs).
    """

    def __init__(self, page_size: int = 100):
        self.page_size = page_size
        self.files: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.failures: dict[str, Exception] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    # Test helpers

    def add_file(self, name: str, data: bytes, parents: list[str] | None = None) -> str:
        with self._lock:
            file_id = f"file-{next(self._ids)}"
            self.files[file_id] = {
                "name": name,
                "data": data,
                "parents": parents or ["appDataFolder"],
            }
            return file_id

    def ids_named(self, name: str) -> list[str]:
        with self._lock:
            return [fid for fid, f in self.files.items() if f["name"] == name]

    def calls_to(self, method: str) -> list[dict[str, Any]]:
        return [kwargs for m, kwargs in self.calls if m == method]

    def fail(self, method: str, error: Exception) -> None:
        """Make the next execute() of ``method`` raise ``error``."""
        self.failures[method] = error

    # Drive API surface

    def _request(self, method: str, kwargs: dict[str, Any], fn: Callable[[], Any]) -> FakeRequest:
        def run() -> Any:
            self.calls.append((method, kwargs))
            error = self.failures.pop(method, None)
            if error is not None:
                raise error
            with self._lock:
                return fn()

        return FakeRequest(run)

    def list(self, **kwargs: Any) -> FakeRequest:
        def run() -> dict[str, Any]:
            matches = list(self.files.items())
            q = kwargs.get("q")
            if q is not None:
                name = _parse_name_query(q)
                matches = [(fid, f) for fid, f in matches if f["name"] == name]

            start = int(kwargs.get("pageToken") or 0)
            page = matches[start : start + self.page_size]
            response: dict[str, Any] = {
                "files": [
                    {"id": fid, "name": f["name"], "quotaBytesUsed": str(len(f["data"]))}
                    for fid, f in page
                ]
            }
            # Partial responses only carry the token when it was asked for.
            if start + self.page_size < len(matches) and "nextPageToken" in kwargs.get(
                "fields", ""
            ):
                response["nextPageToken"] = str(start + self.page_size)
            return response

        return self._request("list", kwargs, run)

    def get_media(self, **kwargs: Any) -> FakeRequest:
        def run() -> bytes:
            f = self.files.get(kwargs["fileId"])
            if f is None:
                raise make_http_error(404, "File not found")
            return f["data"]

        return self._request("get_media", kwargs, run)

    def create(self, **kwargs: Any) -> FakeRequest:
        def run() -> dict[str, str]:
            media = kwargs["media_body"]
            file_id = f"file-{next(self._ids)}"
            self.files[file_id] = {
                "name": kwargs["body"]["name"],
                "data": media.getbytes(0, media.size()),
                "parents": kwargs["body"].get("parents", []),
            }
            return {"id": file_id}

        return self._request("create", kwargs, run)

    def delete(self, **kwargs: Any) -> FakeRequest:
        def run() -> str:
            if self.files.pop(kwargs["fileId"], None) is None:
                raise make_http_error(404, "File not found")
            return ""

        return self._request("delete", kwargs, run)


def _parse_name_query(q: str) -> str:
    prefix = "name = '"
    assert q.startswith(prefix) and q.endswith("'"), f"unsupported query: {q}"
    literal = q[len(prefix) : -1]
    out = []
    chars = iter(literal)
    for ch in chars:
        out.append(next(chars) if ch == "\\" else ch)
    return "".join(out)


class FakeDriveService:
    """Stand-in for the Drive v3 service returned by googleapiclient.discovery.build."""

    def __init__(self, page_size: int = 100):
        self.files_resource = FakeFiles(page_size=page_size)

    def files(self) -> FakeFiles:
        return self.files_resource


@pytest.fixture
def fake_service():
    """Fake Drive service with an empty appDataFolder."""
    return FakeDriveService()


@pytest.fixture
def fake_files(fake_service):
    """The fake ``files()`` resource of ``fake_service``."""
    return fake_service.files()


@pytest.fixture
def drive_backend(fake_service):
    """Drive backend wired to the fake service."""
    return DriveBackend(fake_service)


@pytest.fixture
def http_error():
    """Factory for googleapiclient HttpError instances."""
    return make_http_error


@pytest.fixture
def oauth2_config():
    """OAuth client configuration with dummy credentials."""
    return OAuth2Config(client_id="test-client-id", client_secret="test-client-secret")


@pytest.fixture
def token_options():
    """Valid Drive backend construction options."""
    return {
        "accessToken": "ya29.test-access-token",
        "tokenType": "Bearer",
        "refreshToken": "1//test-refresh-token",
        "expiry": "2026-10-18T12:00:00Z",
    }


@pytest.fixture
def clean_env(monkeypatch):
    """Remove drivestore-related variables from the environment."""
    for key in list(os.environ):
        if key.startswith(("DRIVESTORE_", "DRIVE_")):
            monkeypatch.delenv(key, raising=False)
    yield
