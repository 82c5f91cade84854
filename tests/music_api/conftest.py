"""Shared fixtures for music_api tests."""

import json
from dataclasses import dataclass
from typing import Any

import pytest

from music_api.config import ClientConfig
from music_api.transport import TransportResponse


@dataclass
class SentRequest:
    method: str
    url: str
    headers: dict[str, str]
    body: Any


class FakeTransport:
    """Transport that records requests and replays queued responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls: list[SentRequest] = []
        self.closed = False

    def queue(self, *responses) -> None:
        self.responses.extend(responses)

    def queue_json(self, payload: Any, status: int = 200) -> None:
        self.responses.append(TransportResponse(status, json.dumps(payload).encode()))

    async def send(self, method, url, headers, body=None) -> TransportResponse:
        self.calls.append(SentRequest(method, url, dict(headers), body))
        if not self.responses:
            raise AssertionError(f"Unexpected request: {method} {url}")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self) -> None:
        self.closed = True


def _error_body(detail: str, status: str, code: str, title: str) -> bytes:
    return json.dumps(
        {"errors": [{"detail": detail, "status": status, "code": code, "title": title}]}
    ).encode()


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def static_config():
    return ClientConfig(developer_token="dev-token")


@pytest.fixture
def error_body():
    """Build an API error envelope body."""
    return _error_body
