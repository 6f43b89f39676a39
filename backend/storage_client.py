# backend/storage_client.py

import base64
import binascii
import logging
import re
import time
from typing import Optional, Tuple

import httpx

from config.settings import settings

from .errors import ConfigMissing, UploadFailed, ValidationError
from .model import UploadResult

logger = logging.getLogger(__name__)

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)(?:;[^,]*)?;base64,(?P<payload>.*)$", re.DOTALL)


def parse_data_url(image_data: str) -> Tuple[str, bytes]:
    """
    Tách data URL "data:image/png;base64,...." thành (mime_type, bytes).
    """
    m = _DATA_URL_RE.match(image_data.strip())
    if not m:
        raise ValidationError("Image data must be a base64 data URL")
    try:
        raw = base64.b64decode(m.group("payload"), validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("Image data is not valid base64") from None
    return m.group("mime"), raw


def clean_file_name(file_name: str) -> str:
    # key trong storage chỉ nhận ASCII
    return re.sub(r"[^a-zA-Z0-9._-]", "-", file_name)


def build_storage_path(file_name: str, timestamp_ms: Optional[int] = None) -> str:
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"uploads/{timestamp_ms}-{clean_file_name(file_name)}"


def build_public_url(storage_path: str) -> str:
    base = (settings.SUPABASE_URL or "").rstrip("/")
    return f"{base}/storage/v1/object/public/{settings.STORAGE_BUCKET}/{storage_path}"


async def upload_data_url(
    image_data: Optional[str],
    file_name: Optional[str],
    client: Optional[httpx.AsyncClient] = None,
) -> UploadResult:
    """
    Upload ảnh (base64 data URL) lên storage bucket, trả về public URL.
    """
    if not image_data or not file_name:
        raise ValidationError("Image data and filename are required")

    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
        raise ConfigMissing("Supabase configuration missing")

    mime_type, raw = parse_data_url(image_data)
    storage_path = build_storage_path(file_name)
    base = settings.SUPABASE_URL.rstrip("/")
    url = f"{base}/storage/v1/object/{settings.STORAGE_BUCKET}/{storage_path}"
    headers = {
        "Authorization": f"Bearer {settings.SUPABASE_SERVICE_ROLE_KEY}",
        "Content-Type": mime_type,
        "x-upsert": "true",
    }

    if client is not None:
        r = await client.post(url, content=raw, headers=headers)
    else:
        async with httpx.AsyncClient(timeout=settings.REQUEST_TIMEOUT) as own:
            r = await own.post(url, content=raw, headers=headers)

    if not r.is_success:
        logger.error("Storage returned %s for %s: %s", r.status_code, storage_path, r.text[:300])
        raise UploadFailed(r.status_code, r.text)

    logger.info("Uploaded %s bytes to %s", len(raw), storage_path)
    return UploadResult(publicUrl=build_public_url(storage_path), storagePath=storage_path)
