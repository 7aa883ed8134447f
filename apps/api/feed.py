# apps/api/feed.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from models import Video
from recommendations import SOURCE_RECENCY, get_recommended_videos
from videos import list_recent_videos

log = logging.getLogger("feed")

SOURCE_BLENDED = "blended"


@dataclass
class FeedResult:
    videos: List[Video] = field(default_factory=list)
    source: str = SOURCE_RECENCY


def clamp_limit(limit: Optional[int]) -> int:
    if limit is None:
        return settings.feed_default_limit
    return max(0, min(settings.feed_max_limit, int(limit)))


def merge_feed(
    recommended: Sequence[Video], recent: Sequence[Video], limit: int
) -> List[Video]:
    """Recommended videos first in ranked order, then recent ones, no repeats, at most ``limit``."""
    seen = set()
    merged: List[Video] = []
    for video in list(recommended) + list(recent):
        if len(merged) >= limit:
            break
        if video.id in seen:
            continue
        seen.add(video.id)
        merged.append(video)
    return merged


async def _recent(session_factory: Callable[[], AsyncSession], limit: int) -> List[Video]:
    async with session_factory() as db:
        return await list_recent_videos(db, limit)


async def _recommended(session_factory: Callable[[], AsyncSession], user_id: str, limit: int):
    async with session_factory() as db:
        return await get_recommended_videos(db, user_id, limit)


async def compose_feed(
    session_factory: Callable[[], AsyncSession],
    user_id: Optional[str],
    limit: Optional[int] = None,
) -> FeedResult:
    """Build the home feed.

    Anonymous callers get the recency list as-is. Otherwise recommendations and
    the recency list are fetched concurrently, each on its own session, and
    merged. A failed recommendation branch degrades to recency; a failed
    recency branch propagates.
    """
    limit = clamp_limit(limit)
    if limit == 0:
        return FeedResult(videos=[], source=SOURCE_RECENCY)
    if not user_id:
        return FeedResult(videos=await _recent(session_factory, limit), source=SOURCE_RECENCY)

    # Twice the limit so the recency tail can still fill the page after dedupe
    recommended, recent = await asyncio.gather(
        _recommended(session_factory, user_id, limit),
        _recent(session_factory, limit * 2),
        return_exceptions=True,
    )
    if isinstance(recent, BaseException):
        raise recent
    if isinstance(recommended, BaseException):
        log.warning("feed_recommendations_failed user_id=%s: %s", user_id, recommended)
        return FeedResult(videos=merge_feed([], recent, limit), source=SOURCE_RECENCY)

    videos = merge_feed(recommended.videos, recent, limit)
    source = recommended.source
    if recommended.source != SOURCE_RECENCY and len(videos) > len(recommended.videos):
        source = SOURCE_BLENDED
    log.debug(
        "feed_composed user_id=%s source=%s recommended=%d total=%d",
        user_id, source, len(recommended.videos), len(videos),
    )
    return FeedResult(videos=videos, source=source)
