# backend/app.py

import logging
from typing import Any, Awaitable, Dict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config.settings import settings
from .errors import StudioError
from .jobs import generate_line_art, generate_multi_view, replace_background
from .model import (
    ErrorBody,
    ErrorEnvelope,
    LineArtRequest,
    MultiViewRequest,
    OptimizePromptRequest,
    ReplaceBackgroundRequest,
    UploadImageRequest,
)
from .storage_client import upload_data_url
from .utils import PromptOptimizer

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

IMAGE_UPLOAD_FAILED = "IMAGE_UPLOAD_FAILED"
LINE_ART_GENERATION_FAILED = "LINE_ART_GENERATION_FAILED"
MULTI_VIEW_GENERATION_FAILED = "MULTI_VIEW_GENERATION_FAILED"
BACKGROUND_REPLACEMENT_FAILED = "BACKGROUND_REPLACEMENT_FAILED"
PROMPT_OPTIMIZATION_FAILED = "PROMPT_OPTIMIZATION_FAILED"

app = FastAPI(title="Banana Studio Service")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
    max_age=86400,
)


def get_optimizer() -> PromptOptimizer:
    return PromptOptimizer(
        host=settings.DEEPSEEK_API_URL,
        model=settings.DEEPSEEK_MODEL,
        api_key=settings.DEEPSEEK_API_KEY,
        request_timeout=settings.REQUEST_TIMEOUT,
    )


def error_response(code: str, message: str) -> JSONResponse:
    body = ErrorEnvelope(error=ErrorBody(code=code, message=message))
    return JSONResponse(status_code=500, content=body.model_dump())


async def _envelope(code: str, feature: str, call: Awaitable[Dict[str, Any]]) -> Any:
    """
    Chạy 1 feature và bọc kết quả: {"data": ...} hoặc {"error": {code, message}}.
    """
    try:
        data = await call
    except StudioError as e:
        logger.error("%s error: %s", feature, e.message)
        return error_response(code, e.message)
    except Exception as e:
        logger.exception("%s error", feature)
        return error_response(code, str(e))
    return {"data": data}


def _images(url: str) -> Dict[str, Any]:
    return {"images": [{"url": url}]}


@app.get("/health")
async def health():
    return {
        "status": "ok",
        "generationApi": settings.DUOMI_API_URL,
        "pollInterval": settings.POLL_INTERVAL,
        "maxPollAttempts": settings.MAX_POLL_ATTEMPTS,
    }


@app.post("/upload-image")
async def upload_image(req: UploadImageRequest):
    async def run():
        result = await upload_data_url(req.image_data, req.file_name)
        return result.model_dump()

    return await _envelope(IMAGE_UPLOAD_FAILED, "Image upload", run())


@app.post("/generate-line-art")
async def line_art(req: LineArtRequest):
    async def run():
        return _images(await generate_line_art(req.image_url, req.line_art_type))

    return await _envelope(LINE_ART_GENERATION_FAILED, "Line art generation", run())


@app.post("/generate-multi-view")
async def multi_view(req: MultiViewRequest):
    async def run():
        return _images(await generate_multi_view(req.image_url))

    return await _envelope(MULTI_VIEW_GENERATION_FAILED, "Multi-view generation", run())


@app.post("/replace-background")
async def background(req: ReplaceBackgroundRequest):
    async def run():
        return _images(await replace_background(req.to_generation_request()))

    return await _envelope(BACKGROUND_REPLACEMENT_FAILED, "Background replacement", run())


@app.post("/optimize-prompt")
async def optimize_prompt(req: OptimizePromptRequest):
    async def run():
        result = await get_optimizer().optimize(req.user_prompt)
        return result.model_dump()

    return await _envelope(PROMPT_OPTIMIZATION_FAILED, "Prompt optimization", run())
