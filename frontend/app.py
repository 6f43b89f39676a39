import datetime

import streamlit as st
import requests

from api_client import (
    BACKEND_URL,
    StudioApiError,
    download_image,
    generate_line_art,
    generate_multi_view,
    optimize_prompt,
    replace_background,
    upload_image,
)
from state import init_state, queue_job, run_pending

ACCEPTED_TYPES = ["jpg", "jpeg", "png", "webp"]

TABS = {
    "line_art": "✏️ Line art",
    "multi_view": "📦 Multi view",
    "background": "🖼️ Background",
}

BACKGROUND_MODES = {
    "text": "Text prompt",
    "image": "Background image",
    "hybrid": "Background image + text",
}


# ==========================
# Cấu hình
# ==========================
st.set_page_config(
    page_title="Banana AI Studio",
    page_icon="🍌",
    layout="wide"
)

st.title("🍌 Banana AI Studio")
st.caption("Line art, multi view and background replacement 🖼️")

# ==========================
# State
# ==========================
init_state(st.session_state, TABS)
if "bg_prompt" not in st.session_state:
    st.session_state["bg_prompt"] = ""


def _queue(tab: str, job) -> None:
    if queue_job(st.session_state, tab, job):
        st.rerun()


def _upload(file) -> str:
    return upload_image(file.getvalue(), file.name, file.type or "image/png")


def _show_result(tab: str) -> None:
    err = st.session_state["errors"][tab]
    if err:
        st.error(f"❌ {err}")

    result = st.session_state["results"][tab]
    if not result:
        return

    url = result["url"]
    if result["image"]:
        st.image(result["image"], caption="✨ Result", use_container_width=True)
        ts = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
        st.download_button(
            "⬇️ Download",
            data=result["image"],
            file_name=f"{tab}_{ts}.png",
            mime="image/png",
            key=f"download_{tab}",
        )
    st.markdown(f"🔗 [Open image]({url})")

# ==========================
# Sidebar
# ==========================
with st.sidebar:
    st.header("⚙️ Input")
    subject = st.file_uploader("Subject image", type=ACCEPTED_TYPES, key="subject")
    if subject:
        st.image(subject, use_container_width=True)

    st.markdown("---")
    if st.button("🗑️ Clear results", use_container_width=True):
        st.session_state["results"] = {key: None for key in TABS}
        st.session_state["errors"] = {key: None for key in TABS}
        st.rerun()

    st.markdown("---")
    st.write("🔗 Backend:", BACKEND_URL)

busy = st.session_state["is_generating"]
line_tab, multi_tab, bg_tab = st.tabs(list(TABS.values()))

# ==========================
# Line art
# ==========================
with line_tab:
    line_art_type = st.radio(
        "Style",
        ["technical", "concept"],
        format_func=lambda v: "Technical drawing" if v == "technical" else "Concept sketch",
        horizontal=True,
    )
    if st.button("Generate line art", disabled=busy or not subject, key="gen_line_art"):
        _queue(
            "line_art",
            lambda f=subject, t=line_art_type: generate_line_art(_upload(f), t),
        )
    _show_result("line_art")

# ==========================
# Multi view
# ==========================
with multi_tab:
    st.markdown("Front, side and top views of the subject.")
    if st.button("Generate views", disabled=busy or not subject, key="gen_multi_view"):
        _queue("multi_view", lambda f=subject: generate_multi_view(_upload(f)))
    _show_result("multi_view")

# ==========================
# Background
# ==========================
with bg_tab:
    mode = st.radio(
        "Mode",
        list(BACKGROUND_MODES),
        format_func=BACKGROUND_MODES.get,
        horizontal=True,
    )

    background = None
    if mode in ("image", "hybrid"):
        background = st.file_uploader("Background image", type=ACCEPTED_TYPES, key="background")

    if mode in ("text", "hybrid"):
        # key của widget chỉ ghi được trước khi widget được tạo
        if "bg_prompt_pending" in st.session_state:
            st.session_state["bg_prompt"] = st.session_state.pop("bg_prompt_pending")
        st.text_area("Describe the new background", key="bg_prompt")
        if st.button("✨ Optimize prompt", disabled=busy or not st.session_state["bg_prompt"].strip()):
            try:
                with st.spinner("Optimizing..."):
                    optimized = optimize_prompt(st.session_state["bg_prompt"])
                if optimized.get("optimizedPromptEn"):
                    st.session_state["bg_prompt_pending"] = optimized["optimizedPromptEn"]
                st.rerun()
            except (StudioApiError, requests.RequestException) as e:
                st.session_state["errors"]["background"] = str(e)

    text_prompt = st.session_state["bg_prompt"].strip()
    missing = None
    if mode == "text" and not text_prompt:
        missing = "Please describe the background"
    elif mode == "image" and not background:
        missing = "Please upload a background image"
    elif mode == "hybrid" and (not text_prompt or not background):
        missing = "Please describe the background and upload a background image"

    if st.button("Replace background", disabled=busy or not subject, key="gen_background"):
        if missing:
            st.session_state["errors"]["background"] = missing
        else:
            _queue(
                "background",
                lambda f=subject, bg=background, m=mode, p=text_prompt: replace_background(
                    _upload(f),
                    m,
                    text_prompt=p or None,
                    background_url=_upload(bg) if bg else None,
                ),
            )
    _show_result("background")

# ==========================
# Chạy job đang chờ: các nút generate ở trên đã render ở trạng thái disable
# ==========================
if busy:
    with st.spinner("🎨 AI is working on your image..."):
        run_pending(st.session_state, lambda url: download_image(url)[1])
    st.rerun()
