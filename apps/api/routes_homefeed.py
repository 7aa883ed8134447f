# apps/api/routes_homefeed.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends

from db import get_session_factory
from errors import PersistenceError
from feed import compose_feed
from routes_videos import video_to_out
from schemas import HomeFeedResponse
from session import get_current_user_id
from videos import load_uploaders

router = APIRouter(prefix="/homefeed", tags=["homefeed"])

log = logging.getLogger("routes_homefeed")


def _empty_response() -> HomeFeedResponse:
    return HomeFeedResponse(items=[], source="empty")


@router.get("", response_model=HomeFeedResponse)
async def homefeed(
    limit: Optional[int] = None,
    user_id: Optional[str] = Depends(get_current_user_id),
    session_factory=Depends(get_session_factory),
):
    try:
        result = await compose_feed(session_factory, user_id, limit)
    except PersistenceError as exc:
        # The feed never hard-fails
        log.error("homefeed_failed user_id=%s: %s", user_id, exc.message)
        return _empty_response()

    if not result.videos:
        return _empty_response()
    try:
        async with session_factory() as db:
            uploaders = await load_uploaders(db, (v.user_id for v in result.videos))
    except PersistenceError as exc:
        log.warning("homefeed_uploaders_failed user_id=%s: %s", user_id, exc.message)
        uploaders = {}

    return HomeFeedResponse(
        items=[video_to_out(v, uploaders.get(v.user_id)) for v in result.videos],
        source=result.source,
    )
