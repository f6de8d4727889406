from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

import httpx
import pytest

from permset_revoker import config
from permset_revoker.config import HttpSettings
from permset_revoker.transport import create_http_client

ADDRESS = "https://test.salesforce.com"


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.setattr(config, "load_dotenv", lambda **_: None)
    for key in config.ENV_KEYS.values():
        monkeypatch.delenv(key, raising=False)
    config._load_settings_cached.cache_clear()
    yield
    config._load_settings_cached.cache_clear()


class RecordingTransport:
    """Replays canned responses in order and records every request."""

    def __init__(
        self,
        responses: list[httpx.Response | Callable[[httpx.Request], httpx.Response]] | None = None,
    ) -> None:
        self.responses = list(responses or [])
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.responses:
            raise AssertionError(f"Unexpected request: {request.method} {request.url}")
        response = self.responses.pop(0)
        if callable(response):
            return response(request)
        return response

    def client(self, settings: HttpSettings | None = None) -> httpx.AsyncClient:
        return create_http_client(settings or HttpSettings(), transport=httpx.MockTransport(self))


def records(*ids: str) -> httpx.Response:
    return httpx.Response(
        200,
        json={"totalSize": len(ids), "done": True, "records": [{"Id": i} for i in ids]},
    )


@pytest.fixture
def bearer_context() -> dict[str, Any]:
    return {
        "environment": {"ADDRESS": ADDRESS},
        "secrets": {"BEARER_AUTH_TOKEN": "test-access-token"},
    }


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture(name="records")
def _records_fixture() -> Callable[..., httpx.Response]:
    return records
