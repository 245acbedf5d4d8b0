"""Shared test fixtures."""

from __future__ import annotations

import threading

import pytest

from sketchchat.analysis import AnalysisPipeline
from sketchchat.canvas import DrawSurface, PointerEvent
from sketchchat.config import AppConfig
from sketchchat.model_client import ModelClient, ModelBackend, TransportError


class ScriptedClient(ModelClient):
    """Returns a fixed reply, or raises the given error."""

    backend = ModelBackend.MOCK

    def __init__(self, reply: str = "hello there", error: Exception | None = None):
        self.reply = reply
        self.error = error
        self.requests = []

    def is_configured(self) -> bool:
        return True

    def generate(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.reply


class BlockingClient(ScriptedClient):
    """Holds every request until release() is called."""

    def __init__(self, reply: str = "done"):
        super().__init__(reply)
        self.started = threading.Event()
        self._release = threading.Event()

    def release(self):
        self._release.set()

    def generate(self, request):
        self.requests.append(request)
        self.started.set()
        self._release.wait(5)
        return self.reply


@pytest.fixture
def surface() -> DrawSurface:
    return DrawSurface(200, 100)


@pytest.fixture
def inked_surface(surface) -> DrawSurface:
    surface.pointer_down(PointerEvent(10, 10))
    surface.pointer_move(PointerEvent(60, 40))
    surface.pointer_up()
    return surface


@pytest.fixture
def config() -> AppConfig:
    return AppConfig(api_key="test-key")


@pytest.fixture
def opened_urls() -> list:
    return []


@pytest.fixture
def make_pipeline(config, opened_urls):
    def _make(client):
        return AnalysisPipeline(client, config, open_url=opened_urls.append)
    return _make


@pytest.fixture
def transport_error() -> TransportError:
    return TransportError("API error: 503 - model overloaded")
