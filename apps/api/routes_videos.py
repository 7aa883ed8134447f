# apps/api/routes_videos.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

import videos
from csrf import require_csrf
from db import get_db
from errors import PersistenceError
from interactions import get_video_analytics
from models import Video
from schemas import AnalyticsOut, CreateVideoRequest, Ok, PaginatedVideos, VideoOut
from session import require_user_id

router = APIRouter(prefix="/videos", tags=["videos"])


def video_to_out(v: Video, uploader: Optional[videos.Uploader] = None) -> VideoOut:
    uploader = uploader or videos.Uploader()
    return VideoOut(
        id=str(v.id),
        user_id=v.user_id,
        username=uploader.username,
        avatar_url=uploader.avatar_url,
        video_url=v.video_url,
        caption=v.caption,
        summary=v.summary,
        tags=list(v.tags or []),
        metadata=v.meta,
        has_transcription=bool(v.transcription),
        has_embedding=v.embedding is not None,
        created_at=v.created_at,
    )


async def _uploader(db: AsyncSession, user_id: str) -> Optional[videos.Uploader]:
    try:
        return (await videos.load_uploaders(db, [user_id])).get(user_id)
    except PersistenceError:
        return None


@router.post("", response_model=VideoOut, status_code=status.HTTP_201_CREATED)
async def create_video(
    request: Request,
    body: CreateVideoRequest,
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
):
    require_csrf(request)
    metadata = {"categories": body.categories}
    if body.location:
        metadata["location"] = body.location
    v = await videos.create_video(
        db,
        user_id,
        body.video_url,
        caption=body.caption,
        metadata=metadata,
        video_size=body.video_size,
    )
    return video_to_out(v, await _uploader(db, user_id))


@router.get("/my", response_model=PaginatedVideos)
async def list_my_videos(
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
    limit: int = 20,
    offset: int = 0,
):
    limit = max(1, min(100, limit))
    offset = max(0, offset)
    items = await videos.list_user_videos(db, user_id, limit=limit + 1, offset=offset)
    has_more = len(items) > limit
    items = items[:limit]
    uploader = await _uploader(db, user_id)
    out: List[VideoOut] = [video_to_out(v, uploader) for v in items]
    next_offset = offset + len(items) if has_more else None
    return PaginatedVideos(items=out, next_offset=next_offset)


@router.get("/{video_id}", response_model=VideoOut)
async def get_video(video_id: str, db: AsyncSession = Depends(get_db)):
    v = await videos.get_video(db, videos.parse_video_id(video_id))
    return video_to_out(v, await _uploader(db, v.user_id))


@router.get("/{video_id}/analytics", response_model=AnalyticsOut)
async def get_analytics(video_id: str, db: AsyncSession = Depends(get_db)):
    snapshot = await get_video_analytics(db, videos.parse_video_id(video_id))
    return AnalyticsOut(
        views=snapshot.views,
        likes=snapshot.likes,
        comments=snapshot.comments,
        shares=snapshot.shares,
        bookmarks=snapshot.bookmarks,
    )


@router.delete("/{video_id}", response_model=Ok)
async def delete_video(
    video_id: str,
    request: Request,
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
):
    require_csrf(request)
    await videos.delete_video(db, user_id, videos.parse_video_id(video_id))
    return Ok(ok=True)
