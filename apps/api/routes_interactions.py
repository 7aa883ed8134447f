# apps/api/routes_interactions.py
import logging
from typing import Awaitable, Optional

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

import interactions
from csrf import require_csrf
from db import get_db
from errors import NotFoundError, PersistenceError
from results import Done, Failure, Result, Success
from schemas import (
    BookmarkResponse,
    CommentOut,
    CommentRequest,
    CommentResponse,
    InteractionOut,
    LikeResponse,
    Ok,
    ShareResponse,
    UserVideoInteractions,
    ViewDurationRequest,
    ViewResponse,
)
from session import get_current_user_id, require_user_id
from videos import parse_video_id

router = APIRouter(prefix="/interactions", tags=["interactions"])

log = logging.getLogger("routes_interactions")


async def _soft(action: str, call: Awaitable) -> Result:
    """Await a non-critical ledger write; datastore or lookup failures become a Failure."""
    try:
        return await call
    except PersistenceError as exc:
        log.warning("interaction_soft_failed: action=%s err=%s", action, exc.message)
        return Failure(reason=exc.message, retryable=True)
    except NotFoundError as exc:
        log.info("interaction_soft_failed: action=%s err=%s", action, exc.message)
        return Failure(reason=exc.message, retryable=False)


@router.post("/{video_id}/view", response_model=ViewResponse)
async def record_view(
    video_id: str,
    request: Request,
    user_id: Optional[str] = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    require_csrf(request)
    vid = parse_video_id(video_id)
    if not user_id:
        return ViewResponse(recorded=False, message="Not authenticated")

    result = await _soft("view", interactions.record_view(db, user_id, vid))
    if isinstance(result, Success):
        return ViewResponse(recorded=True, message=result.message)
    if isinstance(result, Done):
        return ViewResponse(recorded=False, message=result.message)
    return ViewResponse(recorded=False, message=result.reason)


@router.put("/{video_id}/view", response_model=Ok)
async def update_view_duration(
    video_id: str,
    body: ViewDurationRequest,
    request: Request,
    user_id: Optional[str] = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    require_csrf(request)
    vid = parse_video_id(video_id)
    if not user_id:
        return Ok(ok=False)
    await interactions.update_view_duration(db, user_id, vid, body.duration, body.percentage)
    return Ok(ok=True)


@router.post("/{video_id}/like", response_model=LikeResponse)
async def toggle_like(
    video_id: str,
    request: Request,
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
):
    require_csrf(request)
    # The client renders the new state from this answer, so failures propagate
    result = await interactions.toggle_like(db, user_id, parse_video_id(video_id))
    return LikeResponse(liked=result.data)


@router.post("/{video_id}/bookmark", response_model=BookmarkResponse)
async def toggle_bookmark(
    video_id: str,
    request: Request,
    user_id: Optional[str] = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    require_csrf(request)
    vid = parse_video_id(video_id)
    if not user_id:
        return BookmarkResponse(bookmarked=False, message="Not authenticated")

    result = await _soft("bookmark", interactions.toggle_bookmark(db, user_id, vid))
    if isinstance(result, Failure):
        return BookmarkResponse(bookmarked=False, message=result.reason)
    return BookmarkResponse(bookmarked=result.data, message=result.message)


@router.post("/{video_id}/share", response_model=ShareResponse)
async def record_share(
    video_id: str,
    request: Request,
    user_id: Optional[str] = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    require_csrf(request)
    vid = parse_video_id(video_id)
    if not user_id:
        return ShareResponse(success=False, message="Not authenticated")

    result = await _soft("share", interactions.record_share(db, user_id, vid))
    if isinstance(result, Failure):
        return ShareResponse(success=False, message=result.reason)
    return ShareResponse(success=True, message=result.message)


@router.post(
    "/{video_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    video_id: str,
    body: CommentRequest,
    request: Request,
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
):
    require_csrf(request)
    result = await interactions.add_comment(db, user_id, parse_video_id(video_id), body.content)
    c = result.data
    return CommentResponse(
        success=True,
        comment=CommentOut(
            id=str(c.id),
            user_id=c.user_id,
            video_id=str(c.video_id),
            content=c.content,
            total_likes=int(c.total_likes or 0),
            created_at=c.created_at,
        ),
    )


@router.get("/{video_id}", response_model=UserVideoInteractions)
async def get_user_video_interactions(
    video_id: str,
    user_id: Optional[str] = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    vid = parse_video_id(video_id)
    if not user_id:
        return UserVideoInteractions(liked=False, bookmarked=False, viewed=False, items=[])

    rows = await interactions.get_user_video_interactions(db, user_id, vid)
    types = {r.interaction_type for r in rows}
    return UserVideoInteractions(
        liked="like" in types,
        bookmarked="bookmark" in types,
        viewed="view" in types,
        items=[
            InteractionOut(
                id=str(r.id),
                interaction_type=r.interaction_type,
                interaction_strength=r.interaction_strength,
                view_duration=r.view_duration,
                watch_percentage=r.watch_percentage,
                created_at=r.created_at,
            )
            for r in rows
        ],
    )
