"""Tests covering the FastAPI routes defined in :mod:`backend.app`."""

from __future__ import annotations

import base64

import httpx
import pytest
from fastapi.testclient import TestClient

import backend.app as studio_app
from backend.app import app
from backend.errors import RequestFailed
from backend.model import OptimizedPrompt

RESULT = "https://cdn.duomi.test/out/result.png"
SUBJECT = "https://storage.test/uploads/1-subject.png"
BACKGROUND = "https://storage.test/uploads/2-beach.png"


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def _task_then_success(request: httpx.Request) -> httpx.Response:
    if request.method == "POST":
        return httpx.Response(200, json={"data": {"task_id": "task-9"}})
    return httpx.Response(
        200, json={"data": {"state": "succeeded", "data": {"images": [{"url": RESULT}]}}}
    )


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_cors_preflight_is_open(client: TestClient) -> None:
    response = client.options(
        "/replace-background",
        headers={
            "Origin": "https://studio.example",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "content-type",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"


def test_hybrid_without_background_returns_error_envelope(client, recorder_factory, patch_async_client) -> None:
    recorder = patch_async_client(recorder_factory(_task_then_success))

    response = client.post(
        "/replace-background",
        json={"imageUrl": SUBJECT, "mode": "hybrid", "textPrompt": "add fog"},
    )

    assert response.status_code == 500
    body = response.json()
    assert body["error"]["code"] == "BACKGROUND_REPLACEMENT_FAILED"
    assert "hybrid" in body["error"]["message"]
    assert recorder.requests == []


def test_replace_background_end_to_end(client, recorder_factory, patch_async_client) -> None:
    recorder = patch_async_client(recorder_factory(_task_then_success))

    response = client.post(
        "/replace-background",
        json={"imageUrl": SUBJECT, "mode": "image", "backgroundImageUrl": BACKGROUND},
    )

    assert response.status_code == 200
    assert response.json() == {"data": {"images": [{"url": RESULT}]}}
    assert [r.method for r in recorder.requests] == ["POST", "GET"]
    assert recorder.requests[1].url.path == "/api/gemini/nano-banana/task-9"


def test_line_art_end_to_end(client, recorder_factory, patch_async_client) -> None:
    patch_async_client(recorder_factory(_task_then_success))

    response = client.post("/generate-line-art", json={"imageUrl": SUBJECT, "lineArtType": "technical"})

    assert response.status_code == 200
    assert response.json()["data"]["images"][0]["url"] == RESULT


def test_line_art_invalid_type(client) -> None:
    response = client.post("/generate-line-art", json={"imageUrl": SUBJECT, "lineArtType": "oil"})

    assert response.status_code == 500
    assert response.json()["error"]["code"] == "LINE_ART_GENERATION_FAILED"


def test_multi_view_generation_failure(client, recorder_factory, patch_async_client) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            return httpx.Response(200, json={"data": {"task_id": "task-9"}})
        return httpx.Response(200, json={"data": {"state": "failed", "msg": "content policy"}})

    patch_async_client(recorder_factory(handler))

    response = client.post("/generate-multi-view", json={"imageUrl": SUBJECT})

    assert response.status_code == 500
    assert response.json()["error"] == {
        "code": "MULTI_VIEW_GENERATION_FAILED",
        "message": "Image generation failed: content policy",
    }


def test_missing_api_key_surfaces_as_feature_error(client, monkeypatch, studio_settings) -> None:
    monkeypatch.setattr(studio_settings, "DUOMI_API_KEY", "")

    response = client.post("/generate-multi-view", json={"imageUrl": SUBJECT})

    assert response.status_code == 500
    assert response.json()["error"] == {
        "code": "MULTI_VIEW_GENERATION_FAILED",
        "message": "DUOMI_API_KEY not configured",
    }


def test_upload_image(client, recorder_factory, patch_async_client) -> None:
    recorder = patch_async_client(recorder_factory(lambda r: httpx.Response(200, json={})))
    data_url = "data:image/jpeg;base64," + base64.b64encode(b"jpeg-bytes").decode("ascii")

    response = client.post("/upload-image", json={"imageData": data_url, "fileName": "shoe.jpg"})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["storagePath"].endswith("-shoe.jpg")
    assert data["publicUrl"].endswith(data["storagePath"])
    assert recorder.requests[0].content == b"jpeg-bytes"


def test_upload_image_missing_fields(client) -> None:
    response = client.post("/upload-image", json={"fileName": "shoe.jpg"})

    assert response.status_code == 500
    assert response.json()["error"]["code"] == "IMAGE_UPLOAD_FAILED"


class StubOptimizer:
    def __init__(self, exc: Exception | None = None) -> None:
        self.exc = exc
        self.prompts: list = []

    async def optimize(self, user_prompt):
        self.prompts.append(user_prompt)
        if self.exc is not None:
            raise self.exc
        return OptimizedPrompt(optimizedPromptCn="海滩", optimizedPromptEn="Beach", optimizedPrompt="Beach")


def test_optimize_prompt(client, monkeypatch) -> None:
    stub = StubOptimizer()
    monkeypatch.setattr(studio_app, "get_optimizer", lambda: stub)

    response = client.post("/optimize-prompt", json={"userPrompt": "beach"})

    assert response.status_code == 200
    assert response.json() == {
        "data": {"optimizedPromptCn": "海滩", "optimizedPromptEn": "Beach", "optimizedPrompt": "Beach"}
    }
    assert stub.prompts == ["beach"]


def test_optimize_prompt_upstream_failure(client, monkeypatch) -> None:
    stub = StubOptimizer(RequestFailed(401, "invalid key", service="DeepSeek API"))
    monkeypatch.setattr(studio_app, "get_optimizer", lambda: stub)

    response = client.post("/optimize-prompt", json={"userPrompt": "beach"})

    assert response.status_code == 500
    assert response.json()["error"] == {
        "code": "PROMPT_OPTIMIZATION_FAILED",
        "message": "DeepSeek API failed: invalid key",
    }


def test_optimize_prompt_requires_prompt(client) -> None:
    response = client.post("/optimize-prompt", json={})

    assert response.status_code == 500
    assert response.json()["error"]["message"] == "User prompt is required"
