# backend/duomi_client.py
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from config.settings import settings

from .errors import (
    ConfigMissing,
    GenerationFailed,
    GenerationTimeout,
    NoImageReturned,
    RequestFailed,
)
from .model import JobHandle, JobStatus

logger = logging.getLogger(__name__)

SUBMIT_PATH = "/api/gemini/nano-banana-edit"
STATUS_PATH = "/api/gemini/nano-banana/{task_id}"


@asynccontextmanager
async def _open_client(client: Optional[httpx.AsyncClient]) -> AsyncIterator[httpx.AsyncClient]:
    """Dùng lại client của caller, nếu không có thì mở 1 client riêng cho lần gọi này."""
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(timeout=settings.REQUEST_TIMEOUT) as own:
        yield own


def _auth_headers() -> Dict[str, str]:
    if not settings.DUOMI_API_KEY:
        raise ConfigMissing("DUOMI_API_KEY not configured")
    # Duomi nhận key trần, không có tiền tố Bearer
    return {"Authorization": settings.DUOMI_API_KEY}


def _base_url() -> str:
    return settings.DUOMI_API_URL.rstrip("/")


def _url_from_entry(entry: Any) -> Optional[str]:
    if isinstance(entry, str):
        return entry or None
    if isinstance(entry, dict):
        url = entry.get("url")
        if isinstance(url, str) and url:
            return url
    return None


def _first_image(images: Any) -> Optional[str]:
    if isinstance(images, list) and images:
        return _url_from_entry(images[0])
    return None


def extract_image_url(response: Any) -> str:
    """
    Lấy URL ảnh từ response, thử lần lượt:
    1. data.images[0]  (string hoặc {"url": ...})
    2. images[0]
    3. data.url
    4. url
    5. bản thân response là một URL string
    """
    if isinstance(response, dict):
        nested = response.get("data")
        nested = nested if isinstance(nested, dict) else {}

        url = _first_image(nested.get("images")) or _first_image(response.get("images"))
        if url:
            return url

        for candidate in (nested.get("url"), response.get("url")):
            if isinstance(candidate, str) and candidate:
                return candidate

    elif isinstance(response, str) and response.strip():
        return response.strip()

    logger.error("Cannot find an image URL in response: %r", response)
    raise NoImageReturned("No image was returned by the generation API")


def parse_status(body: Any) -> JobStatus:
    """
    Status endpoint trả về:
    {"data": {"state": "succeeded", "data": {"images": [...]}}}
    {"data": {"state": "failed", "msg": "..."}}
    Mọi state khác coi như vẫn đang processing.
    """
    data = body.get("data") if isinstance(body, dict) else None
    if not isinstance(data, dict):
        return JobStatus(state="processing")

    state = data.get("state")
    if state == "succeeded":
        return JobStatus(state="succeeded", result=extract_image_url(data.get("data") or {}))
    if state == "failed":
        return JobStatus(state="failed", error_message=data.get("msg") or "Unknown error")
    return JobStatus(state="processing")


async def submit_job(
    prompt: str,
    image_urls: List[str],
    aspect_ratio: str,
    client: Optional[httpx.AsyncClient] = None,
) -> JobHandle:
    """
    Gửi 1 job sang /nano-banana-edit.
    Trả về JobHandle: có result (sync) hoặc task_id (async).
    """
    headers = _auth_headers()
    payload = {
        "prompt": prompt,
        "image_urls": image_urls,
        "aspect_ratio": aspect_ratio,
    }

    async with _open_client(client) as http:
        r = await http.post(f"{_base_url()}{SUBMIT_PATH}", json=payload, headers=headers)

    if not r.is_success:
        logger.error("Duomi returned %s: %s", r.status_code, r.text[:500])
        raise RequestFailed(r.status_code, r.text)

    try:
        body: Any = r.json()
    except ValueError:
        body = r.text

    nested = body.get("data") if isinstance(body, dict) else None
    task_id = nested.get("task_id") if isinstance(nested, dict) else None
    if task_id:
        logger.info("Got task_id: %s", task_id)
        return JobHandle(task_id=str(task_id))

    url = extract_image_url(body)
    logger.info("Got synchronous result: %s", url)
    return JobHandle(result=url)


async def wait_for_result(
    task_id: str,
    client: Optional[httpx.AsyncClient] = None,
    poll_interval: Optional[float] = None,
    max_attempts: Optional[int] = None,
) -> str:
    """
    Poll status của task cho đến khi succeeded/failed hoặc hết số lần thử.
    Mỗi lần: chờ poll_interval rồi mới query.
    """
    interval = settings.POLL_INTERVAL if poll_interval is None else poll_interval
    attempts = settings.MAX_POLL_ATTEMPTS if max_attempts is None else max_attempts
    headers = _auth_headers()
    url = f"{_base_url()}{STATUS_PATH.format(task_id=task_id)}"

    last_failure: Optional[RequestFailed] = None
    async with _open_client(client) as http:
        for attempt in range(1, attempts + 1):
            await asyncio.sleep(interval)

            try:
                r = await http.get(url, headers=headers)
                if not r.is_success:
                    raise RequestFailed(r.status_code, r.text)
                body = r.json()
            except (httpx.HTTPError, ValueError, RequestFailed) as e:
                # query lỗi vẫn tính 1 lần poll, không coi là "processing"
                last_failure = e if isinstance(e, RequestFailed) else RequestFailed(None, str(e))
                logger.warning(
                    "Status query %s/%s for task %s failed: %s", attempt, attempts, task_id, e
                )
                continue

            last_failure = None
            status = parse_status(body)
            if status.state == "succeeded":
                logger.info("Task %s succeeded after %s queries", task_id, attempt)
                return status.result
            if status.state == "failed":
                logger.error("Task %s failed: %s", task_id, status.error_message)
                raise GenerationFailed(status.error_message)
            logger.debug("Task %s still processing (%s/%s)", task_id, attempt, attempts)

    if last_failure is not None:
        raise last_failure
    logger.error("Task %s timed out after %s queries", task_id, attempts)
    raise GenerationTimeout(attempts)


async def run_generation(
    prompt: str,
    image_urls: List[str],
    aspect_ratio: str,
    client: Optional[httpx.AsyncClient] = None,
    poll_interval: Optional[float] = None,
    max_attempts: Optional[int] = None,
) -> str:
    """Submit rồi poll nếu cần; trả về đúng 1 image URL."""
    async with _open_client(client) as http:
        handle = await submit_job(prompt, image_urls, aspect_ratio, client=http)
        if not handle.is_async:
            return handle.result
        return await wait_for_result(
            handle.task_id,
            client=http,
            poll_interval=poll_interval,
            max_attempts=max_attempts,
        )
