import functools
import json
import threading

import pytest
import requests

from orthanc_cli import config_loader
from orthanc_cli.api import client as client_mod
from orthanc_cli.models import Connection

BASE_URL = "http://orthanc.test:8042"


class FakeResponse:
    """Just enough of :class:`requests.Response` for the transport helpers."""

    def __init__(
        self,
        status_code=200,
        json_data=None,
        content=None,
        *,
        url=BASE_URL,
        chunks=None,
        fail_after_chunks=False,
    ):
        self.status_code = status_code
        if content is None:
            content = json.dumps(json_data).encode() if json_data is not None else b""
        self.content = content
        self.url = url
        self._chunks = chunks
        self._fail_after_chunks = fail_after_chunks
        self.closed = False

    @property
    def text(self):
        return self.content.decode("utf-8", "replace")

    def json(self):
        return json.loads(self.content)

    def iter_content(self, chunk_size=1):
        chunks = self._chunks if self._chunks is not None else [self.content]
        for chunk in chunks:
            yield chunk
        if self._fail_after_chunks:
            raise requests.exceptions.ChunkedEncodingError("connection broken mid-transfer")

    def close(self):
        self.closed = True


class FakeArchive:
    """Routes ``requests`` calls made by the transport module to canned answers.

    Routes are keyed by ``(METHOD, path)``; the value is a response, an
    exception to raise, or a callable receiving the request keyword
    arguments. Unknown routes answer 404 like the real server.
    """

    def __init__(self):
        self.routes = {}
        self.calls = []
        self._lock = threading.Lock()

    def route(self, method, path, answer):
        self.routes[(method, path)] = answer

    def handle(self, method, url, **kwargs):
        path = url[len(BASE_URL):].lstrip("/")
        with self._lock:
            self.calls.append((method, path, kwargs))
        answer = self.routes.get((method, path))
        if answer is None:
            return FakeResponse(404, {"Message": "Unknown resource"}, url=url)
        if callable(answer):
            answer = answer(kwargs)
        if isinstance(answer, Exception):
            raise answer
        answer.url = url
        return answer

    def paths(self, method=None):
        return [p for m, p, _ in self.calls if method is None or m == method]


@pytest.fixture
def archive(monkeypatch):
    fake = FakeArchive()
    for verb in ("get", "post", "put", "delete"):
        monkeypatch.setattr(
            client_mod.requests, verb, functools.partial(fake.handle, verb.upper())
        )
    return fake


@pytest.fixture
def conn():
    return Connection(BASE_URL, timeout=5.0)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep the developer's settings file and ORC_* variables out of tests."""
    for name in (
        config_loader.ENV_ADDRESS,
        config_loader.ENV_USERNAME,
        config_loader.ENV_PASSWORD,
        config_loader.ENV_TIMEOUT,
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(
        config_loader, "DEFAULT_SETTINGS_PATH", tmp_path / "missing" / "config.yaml"
    )
