from __future__ import annotations

import io
import logging
import os
import uuid
from typing import Optional
from urllib.parse import urlparse

from minio import Minio
from minio.error import MinioException
from urllib3.exceptions import HTTPError as TransportError

from config import settings

log = logging.getLogger("storage")

_client: Optional[Minio] = None


def client() -> Minio:
    global _client
    if _client is None:
        u = urlparse(settings.s3_endpoint)
        host = u.netloc or u.path  # supports "http://localhost:9000" or "localhost:9000"
        secure = (u.scheme == "https") if u.scheme else settings.s3_use_ssl
        _client = Minio(
            host,
            access_key=settings.s3_access_key,
            secret_key=settings.s3_secret_key,
            secure=secure,
            region=settings.s3_region,
        )
    return _client


def ensure_bucket(bucket: Optional[str] = None) -> None:
    b = bucket or settings.s3_bucket
    c = client()
    if not c.bucket_exists(b):
        c.make_bucket(b)


def build_raw_key(user_id: str, video_id: str, ext: str) -> str:
    if not ext.startswith("."):
        ext = "." + ext
    return f"raw/{user_id}/{video_id}{ext}"


def build_public_url(key: str) -> str:
    base = settings.s3_public_endpoint.rstrip("/")
    return f"{base}/{settings.s3_bucket}/{key}"


def key_from_public_url(url: str) -> Optional[str]:
    prefix = build_public_url("")
    if not url or not url.startswith(prefix):
        return None
    key = url[len(prefix):]
    return key or None


def store_video(user_id: str, filename: str, data: bytes, content_type: str) -> str:
    """Upload raw video bytes and return their public URL."""
    _, ext = os.path.splitext(filename or "")
    key = build_raw_key(user_id, str(uuid.uuid4()), ext or ".mp4")
    client().put_object(
        settings.s3_bucket,
        key,
        io.BytesIO(data),
        length=len(data),
        content_type=content_type,
    )
    log.info("storage_put_ok: key=%s bytes=%d", key, len(data))
    return build_public_url(key)


def delete_by_url(url: str) -> bool:
    key = key_from_public_url(url)
    if key is None:
        log.warning("storage_delete_skipped: foreign url=%s", url)
        return False
    try:
        client().remove_object(settings.s3_bucket, key)
    except (MinioException, TransportError) as exc:
        log.warning("storage_delete_failed: key=%s err=%s", key, exc)
        return False
    return True
