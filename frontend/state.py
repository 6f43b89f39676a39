from typing import Any, Callable, MutableMapping, Optional

import requests

from api_client import StudioApiError

PENDING_KEY = "pending_job"


def init_state(state: MutableMapping[str, Any], tabs) -> None:
    """Mỗi tab có 1 slot kết quả + 1 slot lỗi riêng, dùng chung 1 cờ is_generating."""
    if "results" not in state:
        state["results"] = {key: None for key in tabs}
    if "errors" not in state:
        state["errors"] = {key: None for key in tabs}
    if "is_generating" not in state:
        state["is_generating"] = False


def queue_job(state: MutableMapping[str, Any], tab: str, job: Callable[[], str]) -> bool:
    """
    Bước 1: chỉ ghi job lại và bật cờ is_generating.
    Job chạy ở lần rerun sau, khi mọi nút generate đã bị disable.
    Trả về False nếu đang có job khác chạy.
    """
    if state.get("is_generating"):
        return False
    state[PENDING_KEY] = (tab, job)
    state["errors"][tab] = None
    state["is_generating"] = True
    return True


def run_pending(
    state: MutableMapping[str, Any],
    fetch: Callable[[str], bytes],
) -> Optional[str]:
    """
    Bước 2: chạy job đang chờ (nếu có), tải ảnh kết quả đúng 1 lần
    và lưu bytes cạnh URL, rồi tắt cờ is_generating.
    Trả về tab vừa chạy.
    """
    pending = state.pop(PENDING_KEY, None)
    if pending is None:
        state["is_generating"] = False
        return None

    tab, job = pending
    try:
        url = job()
        state["results"][tab] = {"url": url, "image": None}
        try:
            state["results"][tab]["image"] = fetch(url)
        except requests.RequestException as e:
            state["errors"][tab] = f"Cannot download image: {e}"
    except StudioApiError as e:
        state["errors"][tab] = e.message
    except requests.RequestException as e:
        state["errors"][tab] = f"Network error: {e}"
    finally:
        state["is_generating"] = False
    return tab
