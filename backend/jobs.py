# backend/jobs.py

import logging
from typing import Optional

import httpx

from .duomi_client import run_generation
from .errors import ValidationError
from .model import GenerationRequest
from .prompts import (
    BACKGROUND_ASPECT_RATIO,
    LINE_ART_ASPECT_RATIO,
    MULTI_VIEW_ASPECT_RATIO,
    build_background_prompt,
    build_line_art_prompt,
    build_multi_view_prompt,
)

logger = logging.getLogger(__name__)


async def generate_line_art(
    image_url: Optional[str],
    line_art_type: Optional[str],
    client: Optional[httpx.AsyncClient] = None,
) -> str:
    if not image_url or not line_art_type:
        raise ValidationError("Image URL and line art type are required")

    req = GenerationRequest(source_image_url=image_url, mode="single")
    req.validate()
    prompt = build_line_art_prompt(line_art_type)

    logger.info("Line art job: type=%s, image=%s", line_art_type, image_url)
    return await run_generation(prompt, req.image_urls(), LINE_ART_ASPECT_RATIO, client=client)


async def generate_multi_view(
    image_url: Optional[str],
    client: Optional[httpx.AsyncClient] = None,
) -> str:
    if not image_url:
        raise ValidationError("Image URL is required")

    req = GenerationRequest(source_image_url=image_url, mode="single")
    req.validate()

    logger.info("Multi view job: image=%s", image_url)
    return await run_generation(
        build_multi_view_prompt(), req.image_urls(), MULTI_VIEW_ASPECT_RATIO, client=client
    )


async def replace_background(
    req: GenerationRequest,
    client: Optional[httpx.AsyncClient] = None,
) -> str:
    # kiểm tra field bắt buộc theo mode trước khi gọi mạng
    prompt = build_background_prompt(req)

    logger.info("Background job: mode=%s, images=%s", req.mode, req.image_urls())
    return await run_generation(prompt, req.image_urls(), BACKGROUND_ASPECT_RATIO, client=client)
