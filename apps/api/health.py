# apps/api/health.py
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict

from starlette.concurrency import run_in_threadpool

from cache import healthcheck as cache_healthcheck
from config import settings
from db import healthcheck as db_healthcheck
from storage import client as storage_client

log = logging.getLogger("health")

REQUIRED = ("database", "cache", "object_storage")


async def _probe(name: str, check: Callable[[], Awaitable[Dict[str, Any]]]) -> Dict[str, Any]:
    started = time.perf_counter()
    try:
        result = await check()
    except Exception as e:
        log.warning("health_check_failed: %s: %s", name, e)
        result = {"ok": False, "error": str(e)}
    result["latency_ms"] = round((time.perf_counter() - started) * 1000, 1)
    return result


async def _database() -> Dict[str, Any]:
    await db_healthcheck()
    return {"ok": True}


async def _cache() -> Dict[str, Any]:
    if not await cache_healthcheck():
        raise RuntimeError("Redis ping returned falsy response")
    return {"ok": True}


async def _object_storage() -> Dict[str, Any]:
    bucket = settings.s3_bucket
    if not bucket:
        return {"ok": True, "skipped": True, "reason": "S3 bucket not configured"}
    if not await run_in_threadpool(storage_client().bucket_exists, bucket):
        raise RuntimeError(f"Bucket '{bucket}' does not exist")
    return {"ok": True, "bucket": bucket}


def _ai_provider() -> Dict[str, Any]:
    # Optional: uploads still succeed without enrichment
    if not (settings.openai_api_key or "").strip():
        return {"ok": True, "optional": True, "skipped": True, "reason": "OPENAI_API_KEY not configured"}
    return {"ok": True, "optional": True}


async def collect_health_status() -> Dict[str, Any]:
    """Probe the datastore, Redis and object storage concurrently.

    Overall ``ok`` reflects the required services only.
    """
    database, cache, storage = await asyncio.gather(
        _probe("database", _database),
        _probe("cache", _cache),
        _probe("object_storage", _object_storage),
    )
    checks = {
        "database": database,
        "cache": cache,
        "object_storage": storage,
        "ai_provider": _ai_provider(),
    }
    return {
        "ok": all(checks[name].get("ok", False) for name in REQUIRED),
        "checks": checks,
    }
