# apps/api/interactions.py
"""Interaction ledger.

Every write pairs an interaction row with its VideoAnalytics counter and both
are committed together. Views, likes and bookmarks exist at most once per
(user, video); shares and comments accumulate.
"""
from __future__ import annotations

import functools
import logging
import uuid
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config import INTERACTION_TYPES, settings
from errors import NotFoundError, PersistenceError, ValidationError
from models import Comment, Interaction, Video, VideoAnalytics
from results import Done, Success

log = logging.getLogger("interactions")

COUNTER_BY_TYPE = {
    "view": "total_views",
    "like": "total_likes",
    "share": "total_shares",
    "bookmark": "total_bookmarks",
    "comment": "total_comments",
}


@dataclass(frozen=True)
class AnalyticsSnapshot:
    views: int = 0
    likes: int = 0
    comments: int = 0
    shares: int = 0
    bookmarks: int = 0


def strength_for(interaction_type: str) -> int:
    if interaction_type not in INTERACTION_TYPES:
        raise ValidationError(f"Unknown interaction type: {interaction_type}")
    strength = settings.interaction_strengths[interaction_type]
    if strength <= 0:
        raise ValidationError(
            f"Interaction strength for '{interaction_type}' must be positive"
        )
    return strength


def _transactional(action: str):
    """Commit on success, roll back and raise PersistenceError on datastore failure."""

    def decorator(fn):
        @functools.wraps(fn)
        async def wrapper(db: AsyncSession, *args, **kwargs):
            try:
                result = await fn(db, *args, **kwargs)
                await db.commit()
                return result
            except SQLAlchemyError as exc:
                await db.rollback()
                log.error("interactions_%s_failed: %s", action, exc)
                raise PersistenceError(f"Failed to {action.replace('_', ' ')}") from exc
            except Exception:
                await db.rollback()
                raise

        return wrapper

    return decorator


async def _require_video(db: AsyncSession, video_id: uuid.UUID) -> None:
    found = await db.scalar(select(Video.id).where(Video.id == video_id))
    if found is None:
        raise NotFoundError("Video not found")


async def _find_interaction(
    db: AsyncSession, user_id: str, video_id: uuid.UUID, interaction_type: str
) -> Optional[Interaction]:
    result = await db.execute(
        select(Interaction)
        .where(
            Interaction.user_id == user_id,
            Interaction.video_id == video_id,
            Interaction.interaction_type == interaction_type,
        )
        .limit(1)
    )
    return result.scalar_one_or_none()


async def _ensure_analytics(db: AsyncSession, video_id: uuid.UUID) -> None:
    found = await db.scalar(
        select(VideoAnalytics.id).where(VideoAnalytics.video_id == video_id)
    )
    if found is None:
        db.add(VideoAnalytics(video_id=video_id))
        await db.flush()


async def _bump(db: AsyncSession, video_id: uuid.UUID, counter: str, delta: int) -> None:
    await _ensure_analytics(db, video_id)
    column = getattr(VideoAnalytics, counter)
    stmt = (
        update(VideoAnalytics)
        .where(VideoAnalytics.video_id == video_id)
        .values({counter: column + delta})
    )
    if delta < 0:
        # Counters never go negative
        stmt = stmt.where(column > 0)
    await db.execute(stmt)


def _new_interaction(user_id: str, video_id: uuid.UUID, interaction_type: str, **fields) -> Interaction:
    return Interaction(
        user_id=user_id,
        video_id=video_id,
        interaction_type=interaction_type,
        interaction_strength=strength_for(interaction_type),
        **fields,
    )


@_transactional("record_view")
async def record_view(db: AsyncSession, user_id: str, video_id: uuid.UUID):
    await _require_video(db, video_id)
    if await _find_interaction(db, user_id, video_id, "view") is not None:
        return Done("View already recorded")

    db.add(
        _new_interaction(
            user_id, video_id, "view", view_duration=0.0, watch_percentage=0.0
        )
    )
    try:
        await db.flush()
    except IntegrityError:
        # A concurrent request recorded the same view first
        await db.rollback()
        return Done("View already recorded")
    await _bump(db, video_id, "total_views", 1)
    return Success(True, "View recorded")


async def _toggle(
    db: AsyncSession, user_id: str, video_id: uuid.UUID, interaction_type: str
) -> bool:
    await _require_video(db, video_id)
    counter = COUNTER_BY_TYPE[interaction_type]
    existing = await _find_interaction(db, user_id, video_id, interaction_type)
    if existing is not None:
        await db.delete(existing)
        await _bump(db, video_id, counter, -1)
        return False
    db.add(_new_interaction(user_id, video_id, interaction_type))
    await _bump(db, video_id, counter, 1)
    return True


@_transactional("toggle_like")
async def toggle_like(db: AsyncSession, user_id: str, video_id: uuid.UUID) -> Success[bool]:
    liked = await _toggle(db, user_id, video_id, "like")
    return Success(liked, "Video liked" if liked else "Video unliked")


@_transactional("toggle_bookmark")
async def toggle_bookmark(db: AsyncSession, user_id: str, video_id: uuid.UUID) -> Success[bool]:
    bookmarked = await _toggle(db, user_id, video_id, "bookmark")
    return Success(
        bookmarked, "Video bookmarked" if bookmarked else "Bookmark removed"
    )


@_transactional("record_share")
async def record_share(db: AsyncSession, user_id: str, video_id: uuid.UUID) -> Done:
    await _require_video(db, video_id)
    db.add(_new_interaction(user_id, video_id, "share"))
    await _bump(db, video_id, "total_shares", 1)
    return Done("Share recorded")


@_transactional("add_comment")
async def add_comment(
    db: AsyncSession, user_id: str, video_id: uuid.UUID, content: str
) -> Success[Comment]:
    content = (content or "").strip()
    if not content:
        raise ValidationError("Comment content must not be empty")
    await _require_video(db, video_id)

    comment = Comment(user_id=user_id, video_id=video_id, content=content, total_likes=0)
    db.add(comment)
    db.add(_new_interaction(user_id, video_id, "comment"))
    await _bump(db, video_id, "total_comments", 1)
    return Success(comment, "Comment added")


@_transactional("update_view_duration")
async def update_view_duration(
    db: AsyncSession,
    user_id: str,
    video_id: uuid.UUID,
    duration: float,
    percentage: float,
) -> Done:
    if duration < 0:
        raise ValidationError("duration must be >= 0")
    if not 0 <= percentage <= 100:
        raise ValidationError("percentage must be between 0 and 100")

    view = await _find_interaction(db, user_id, video_id, "view")
    if view is None:
        raise NotFoundError("No view record found")
    view.view_duration = float(duration)
    view.watch_percentage = float(percentage)
    return Done("View duration updated")


async def get_user_video_interactions(
    db: AsyncSession, user_id: str, video_id: uuid.UUID
) -> List[Interaction]:
    try:
        result = await db.execute(
            select(Interaction)
            .where(Interaction.user_id == user_id, Interaction.video_id == video_id)
            .order_by(Interaction.created_at.asc())
        )
    except SQLAlchemyError as exc:
        log.error("interactions_list_failed: %s", exc)
        raise PersistenceError("Failed to load interactions") from exc
    return list(result.scalars().all())


async def get_video_analytics(db: AsyncSession, video_id: uuid.UUID) -> AnalyticsSnapshot:
    try:
        await _require_video(db, video_id)
        row: Optional[VideoAnalytics] = (
            await db.execute(
                select(VideoAnalytics).where(VideoAnalytics.video_id == video_id)
            )
        ).scalar_one_or_none()
    except SQLAlchemyError as exc:
        log.error("interactions_analytics_failed: %s", exc)
        raise PersistenceError("Failed to load analytics") from exc

    if row is None:
        return AnalyticsSnapshot()
    return AnalyticsSnapshot(
        views=int(row.total_views or 0),
        likes=int(row.total_likes or 0),
        comments=int(row.total_comments or 0),
        shares=int(row.total_shares or 0),
        bookmarks=int(row.total_bookmarks or 0),
    )
