"""Shared fixtures: deterministic settings and a recording mock transport."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, List

import httpx
import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))
# the Streamlit front end is a script directory; its modules import each other flat
sys.path.insert(0, str(ROOT / "frontend"))

from config.settings import settings


@pytest.fixture(autouse=True)
def studio_settings(monkeypatch):
    monkeypatch.setattr(settings, "DUOMI_API_URL", "https://duomi.test")
    monkeypatch.setattr(settings, "DUOMI_API_KEY", "duomi-key")
    monkeypatch.setattr(settings, "DEEPSEEK_API_URL", "https://deepseek.test")
    monkeypatch.setattr(settings, "DEEPSEEK_API_KEY", "deepseek-key")
    monkeypatch.setattr(settings, "SUPABASE_URL", "https://project.supabase.test")
    monkeypatch.setattr(settings, "SUPABASE_SERVICE_ROLE_KEY", "service-key")
    monkeypatch.setattr(settings, "STORAGE_BUCKET", "banana-ai-images")
    monkeypatch.setattr(settings, "POLL_INTERVAL", 0)
    monkeypatch.setattr(settings, "MAX_POLL_ATTEMPTS", 30)
    return settings


class Recorder:
    """Mock transport that answers from a handler and remembers every request."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.handler = handler
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))

    def paths(self) -> List[str]:
        return [r.url.path for r in self.requests]


@pytest.fixture
def recorder_factory():
    return Recorder


@pytest.fixture
def patch_async_client(monkeypatch):
    """Route every httpx.AsyncClient opened by the backend through a Recorder."""

    real_client = httpx.AsyncClient

    def install(recorder: Recorder) -> Recorder:
        def factory(*args, **kwargs):
            kwargs["transport"] = httpx.MockTransport(recorder)
            return real_client(*args, **kwargs)

        monkeypatch.setattr(httpx, "AsyncClient", factory)
        return recorder

    return install
