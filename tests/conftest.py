"""Shared fixtures for relay tests."""

from urllib.parse import parse_qs, urlsplit

import httpx
import pytest
from fastapi.testclient import TestClient

from app import create_app
from core.config import Config
from ui import log_utils

ENDPOINT = "/api/stream-proxy"


class RecordingLogger:
    """RequestLogger that keeps every event in memory."""

    def __init__(self):
        self.requests: list[tuple[str, str | None]] = []
        self.relays: list[tuple[str, int, str | None, bool]] = []
        self.skips: list[tuple[str, str]] = []
        self.errors: list[tuple[str, int, str]] = []

    def log_request(self, target_url, referer):
        self.requests.append((target_url, referer))

    def log_relay(self, target_url, status, content_type, *, playlist):
        self.relays.append((target_url, status, content_type, playlist))

    def log_skip(self, target_url, reason):
        self.skips.append((target_url, reason))

    def log_error(self, route, status, message):
        self.errors.append((route, status, message))


def decode_relay_url(relay_url: str) -> dict[str, str]:
    """Return the decoded query parameters of a relay URL."""
    parts = urlsplit(relay_url)
    assert parts.path == ENDPOINT
    return {key: values[0] for key, values in parse_qs(parts.query).items()}


@pytest.fixture(autouse=True)
def log_file(tmp_path, monkeypatch):
    """Keep CLI log output out of the working tree."""
    path = tmp_path / "logs" / "relay.log"
    monkeypatch.setattr(log_utils, "CLI_LOG_FILE", path)
    return path


@pytest.fixture
def config():
    return Config()


@pytest.fixture
def logger():
    return RecordingLogger()


@pytest.fixture
def make_client(config, logger):
    """Build a TestClient whose upstream is served by ``handler``."""
    clients = []

    def _make(handler, *, raise_server_exceptions=True):
        app = create_app(config, logger, transport=httpx.MockTransport(handler))
        client = TestClient(app, raise_server_exceptions=raise_server_exceptions)
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)
