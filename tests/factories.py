"""
Seed and inspect helpers. Each opens its own session so tests can use them
around the code under test without sharing state.
"""
import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy import func, select

from config import settings
from models import Comment, Interaction, User, Video, VideoAnalytics

BASE_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)


def at(minutes: int) -> datetime:
    return BASE_TIME + timedelta(minutes=minutes)


async def add_user(
    session_factory,
    user_id: str = "user-1",
    *,
    embedding: Optional[List[float]] = None,
    interests: Optional[List[str]] = None,
    avatar_url: Optional[str] = None,
) -> str:
    async with session_factory() as db:
        db.add(
            User(
                id=user_id,
                username=f"{user_id.replace('-', '_')}",
                meta={"interests": interests or []},
                embedding=embedding,
                avatar_url=avatar_url,
            )
        )
        await db.commit()
    return user_id


async def add_video(
    session_factory,
    user_id: str = "user-1",
    *,
    embedding: Optional[List[float]] = None,
    created_at: Optional[datetime] = None,
    caption: Optional[str] = None,
    with_analytics: bool = True,
) -> uuid.UUID:
    video_id = uuid.uuid4()
    async with session_factory() as db:
        db.add(
            Video(
                id=video_id,
                user_id=user_id,
                video_url=f"http://localhost:9000/media/raw/{user_id}/{video_id}.mp4",
                caption=caption,
                embedding=embedding,
                created_at=created_at or BASE_TIME,
            )
        )
        if with_analytics:
            db.add(VideoAnalytics(video_id=video_id))
        await db.commit()
    return video_id


async def add_interaction(
    session_factory, user_id: str, video_id: uuid.UUID, interaction_type: str, strength: Optional[int] = None
) -> None:
    async with session_factory() as db:
        db.add(
            Interaction(
                user_id=user_id,
                video_id=video_id,
                interaction_type=interaction_type,
                interaction_strength=(
                    strength if strength is not None else settings.interaction_strengths[interaction_type]
                ),
            )
        )
        await db.commit()


async def get_analytics_row(session_factory, video_id: uuid.UUID) -> Optional[VideoAnalytics]:
    async with session_factory() as db:
        return await db.scalar(select(VideoAnalytics).where(VideoAnalytics.video_id == video_id))


async def count_interactions(session_factory, video_id: uuid.UUID, interaction_type: Optional[str] = None) -> int:
    stmt = select(func.count()).select_from(Interaction).where(Interaction.video_id == video_id)
    if interaction_type:
        stmt = stmt.where(Interaction.interaction_type == interaction_type)
    async with session_factory() as db:
        return int(await db.scalar(stmt))


async def count_comments(session_factory, video_id: uuid.UUID) -> int:
    async with session_factory() as db:
        return int(
            await db.scalar(select(func.count()).select_from(Comment).where(Comment.video_id == video_id))
        )


async def load_video(session_factory, video_id: uuid.UUID) -> Optional[Video]:
    async with session_factory() as db:
        return await db.get(Video, video_id)


async def load_user(session_factory, user_id: str) -> Optional[User]:
    async with session_factory() as db:
        return await db.get(User, user_id)
