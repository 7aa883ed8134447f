# apps/api/routes_uploads.py
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, UploadFile, status
from starlette.concurrency import run_in_threadpool

from cache import redis_client
from config import settings
from csrf import require_csrf
from errors import ValidationError
from schemas import UploadResponse
from session import require_user_id
from storage import store_video

router = APIRouter(tags=["uploads"])

log = logging.getLogger("routes_uploads")

UPLOAD_LIMIT = 5
UPLOAD_WINDOW_SEC = 60


def _upload_key(user_id: str) -> str:
    return f"rl:upload:{user_id}"


async def check_upload_rate_limit(user_id: str) -> None:
    key = _upload_key(user_id)
    count = await redis_client.incr(key)
    if count == 1:
        await redis_client.expire(key, UPLOAD_WINDOW_SEC)
    if count > UPLOAD_LIMIT:
        raise HTTPException(
            status_code=429,
            detail="Too many uploads, try again soon.",
        )


@router.post("/uploads", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_video(
    request: Request,
    file: UploadFile,
    user_id: str = Depends(require_user_id),
):
    require_csrf(request)

    await check_upload_rate_limit(user_id)

    content_type = (file.content_type or "").split(";")[0].strip().lower()
    if not file.filename or not content_type:
        raise ValidationError("Missing filename or content type")
    if content_type not in settings.upload_allowed_mime:
        raise ValidationError("Unsupported content type")

    # Read one byte past the cap so oversize files are detected without buffering all of them
    data = await file.read(settings.upload_max_bytes + 1)
    if not data:
        raise ValidationError("Empty file")
    if len(data) > settings.upload_max_bytes:
        raise ValidationError("File too large")

    url = await run_in_threadpool(store_video, user_id, file.filename, data, content_type)
    log.info("upload_stored: user_id=%s bytes=%d", user_id, len(data))
    return UploadResponse(video_url=url, size_bytes=len(data), content_type=content_type)
