"""Shared fixtures for the LINE webhook test suite."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from line_webhook.config import Settings
from line_webhook.serve import create_app
from line_webhook.webhooks.dispatcher import Signal

SECRET = "line-test-secret"


class RecordingReporter:
    """Collects reported signals in order."""

    def __init__(self) -> None:
        self.signals: list[Signal] = []

    def report(self, signal: Signal) -> None:
        self.signals.append(signal)


@pytest.fixture()
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture()
def make_client(reporter):
    """Factory for a TestClient over an app built from explicit settings."""

    def _make(**overrides) -> TestClient:
        values = {"line_channel_secret": SECRET}
        values.update(overrides)
        settings = Settings(_env_file=None, **values)
        app = create_app(settings, reporter=reporter)
        return TestClient(app, raise_server_exceptions=False)

    return _make


@pytest.fixture()
def client(make_client) -> TestClient:
    """Client for an app configured with the test channel secret."""
    return make_client()
