import base64
import os
from io import BytesIO
from typing import Any, Dict, Optional, Tuple

import requests
from PIL import Image

BACKEND_URL = os.getenv("BACKEND_URL", "http://127.0.0.1:8000")

POLL_INTERVAL = float(os.getenv("POLL_INTERVAL", "2.0"))
MAX_POLL_ATTEMPTS = int(os.getenv("MAX_POLL_ATTEMPTS", "30"))
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "60"))


def generation_timeout(
    poll_interval: float = POLL_INTERVAL,
    max_attempts: int = MAX_POLL_ATTEMPTS,
    request_timeout: float = REQUEST_TIMEOUT,
) -> float:
    """
    Thời gian chờ tối đa cho 1 lần gọi generate (không tính upload, là request riêng):
    submit + max_attempts lần (chờ poll_interval + 1 status query có thể tới request_timeout).
    """
    return request_timeout + max_attempts * (poll_interval + request_timeout)


GENERATE_TIMEOUT = float(os.getenv("GENERATE_TIMEOUT", "0")) or generation_timeout()


class StudioApiError(Exception):
    """Lỗi trả về từ backend, message hiển thị thẳng cho user."""

    def __init__(self, message: str, code: Optional[str] = None):
        self.message = message
        self.code = code
        super().__init__(message)


def to_data_url(content: bytes, mime_type: str) -> str:
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def unwrap(resp: requests.Response) -> Dict[str, Any]:
    """Lấy phần "data" của envelope, hoặc raise lỗi trong "error"."""
    try:
        body = resp.json()
    except ValueError:
        raise StudioApiError(f"HTTP {resp.status_code}: {resp.text[:200]}") from None

    if not isinstance(body, dict):
        raise StudioApiError(f"HTTP {resp.status_code}: unexpected response")

    if body.get("error"):
        err = body["error"]
        if isinstance(err, dict):
            raise StudioApiError(err.get("message") or "Unknown error", err.get("code"))
        raise StudioApiError(str(err))

    resp.raise_for_status()
    return body.get("data") or {}


def _post(path: str, payload: Dict[str, Any], timeout: float) -> Dict[str, Any]:
    resp = requests.post(f"{BACKEND_URL}{path}", json=payload, timeout=timeout)
    return unwrap(resp)


def first_image_url(data: Dict[str, Any]) -> str:
    images = data.get("images") or []
    if images:
        img = images[0]
        url = img if isinstance(img, str) else (img or {}).get("url")
        if url:
            return url
    if data.get("url"):
        return data["url"]
    raise StudioApiError("Generation failed, no image returned")


def upload_image(content: bytes, file_name: str, mime_type: str) -> str:
    """Upload ảnh lên bucket qua backend, trả về public URL."""
    data = _post(
        "/upload-image",
        {"imageData": to_data_url(content, mime_type), "fileName": file_name},
        timeout=60,
    )
    return data["publicUrl"]


def generate_line_art(image_url: str, line_art_type: str) -> str:
    data = _post(
        "/generate-line-art",
        {"imageUrl": image_url, "lineArtType": line_art_type},
        timeout=GENERATE_TIMEOUT,
    )
    return first_image_url(data)


def generate_multi_view(image_url: str) -> str:
    data = _post("/generate-multi-view", {"imageUrl": image_url}, timeout=GENERATE_TIMEOUT)
    return first_image_url(data)


def replace_background(
    image_url: str,
    mode: str,
    text_prompt: Optional[str] = None,
    background_url: Optional[str] = None,
) -> str:
    payload: Dict[str, Any] = {"imageUrl": image_url, "mode": mode}
    if mode in ("text", "hybrid"):
        payload["textPrompt"] = text_prompt
    if mode in ("image", "hybrid"):
        payload["backgroundUrl"] = background_url
    data = _post("/replace-background", payload, timeout=GENERATE_TIMEOUT)
    return first_image_url(data)


def optimize_prompt(user_prompt: str) -> Dict[str, str]:
    return _post("/optimize-prompt", {"userPrompt": user_prompt}, timeout=60)


def download_image(image_url: str) -> Tuple[Image.Image, bytes]:
    """Download ảnh từ URL và convert sang PIL Image"""
    resp = requests.get(image_url, timeout=30)
    resp.raise_for_status()
    img = Image.open(BytesIO(resp.content)).convert("RGB")
    return img, resp.content
