# apps/api/session.py
"""Resolve the caller's identity from the session the identity provider issued."""
import json
import logging
from typing import Dict, Optional

from fastapi import Depends, Request
from redis.exceptions import RedisError

from config import settings
from cache import redis_client
from errors import AuthenticationError

log = logging.getLogger("session")

SESSION_PREFIX = "sess:"
TTL = settings.session_ttl_seconds


def _key(sid: str) -> str:
    return f"{SESSION_PREFIX}{sid}"


async def get_session(sid: str) -> Optional[Dict]:
    raw = await redis_client.get(_key(sid))
    if not raw:
        return None
    # Rolling TTL: extend on each access
    await redis_client.expire(_key(sid), TTL)
    try:
        return json.loads(raw)
    except ValueError:
        log.warning("session_payload_invalid: sid=%s", sid[:8])
        return None


async def get_current_user_id(request: Request) -> Optional[str]:
    """Return the authenticated user id, or None. Any lookup failure means unauthenticated."""
    sid = request.cookies.get(settings.session_cookie_name)
    if not sid:
        return None
    try:
        sess = await get_session(sid)
    except RedisError as exc:
        log.warning("session_lookup_failed: %s", exc)
        return None
    if not sess:
        return None
    user_id = sess.get("user_id")
    return str(user_id) if user_id else None


async def require_user_id(user_id: Optional[str] = Depends(get_current_user_id)) -> str:
    if not user_id:
        raise AuthenticationError("Not authenticated")
    return user_id
