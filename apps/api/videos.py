# apps/api/videos.py
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Awaitable, Dict, Iterable, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

import storage
from config import CATEGORIES, settings
from embedding_utils import build_video_embedding_text, generate_embedding
from errors import ForbiddenError, NotFoundError, PersistenceError, ValidationError
from extract import extract_tags, summarize_video
from models import Comment, Interaction, User, Video, VideoAnalytics
from transcribe import transcribe_video

log = logging.getLogger("videos")

MAX_CAPTION_CHARS = 2200
MAX_LOCATION_CHARS = 100

# Committed on insert; enough to answer without reloading the row
_STORED_COLUMNS = ("id", "user_id", "video_url", "video_size", "caption", "meta", "created_at", "updated_at")


@dataclass
class Enrichment:
    transcription: Optional[str] = None
    summary: Optional[str] = None
    tags: Optional[List[str]] = None
    embedding: Optional[List[float]] = None


def _clean_metadata(metadata: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    metadata = dict(metadata or {})
    categories = metadata.get("categories") or []
    if not isinstance(categories, list):
        raise ValidationError("categories must be a list")
    unknown = [c for c in categories if c not in CATEGORIES]
    if unknown:
        raise ValidationError(f"Unknown categories: {', '.join(map(str, unknown))}")
    metadata["categories"] = list(dict.fromkeys(categories))

    location = metadata.get("location")
    if location is not None:
        location = str(location).strip()
        if len(location) > MAX_LOCATION_CHARS:
            raise ValidationError(f"location must be at most {MAX_LOCATION_CHARS} characters")
        metadata["location"] = location or None
    return metadata


async def _guarded(step: str, video_id: uuid.UUID, call: Awaitable):
    """Await one enrichment call under the per-call timeout; any failure yields None."""
    try:
        return await asyncio.wait_for(call, timeout=settings.ai_call_timeout_seconds)
    except asyncio.TimeoutError:
        log.warning("video_enrich_timeout: step=%s video_id=%s", step, video_id)
    except Exception as exc:
        log.warning("video_enrich_failed: step=%s video_id=%s err=%s", step, video_id, exc)
    return None


async def _skipped():
    return None


async def enrich_video(
    video_id: uuid.UUID,
    video_url: str,
    caption: Optional[str],
    metadata: Optional[Dict[str, Any]],
) -> Enrichment:
    """Run the AI enrichment calls for a freshly stored video.

    Transcription and summary run together, then tags and the content embedding
    run together. Each call fails on its own: a failed step leaves its field
    None and never aborts the rest.
    """
    transcription, summary = await asyncio.gather(
        _guarded("transcription", video_id, transcribe_video(video_url)),
        _guarded("summary", video_id, summarize_video(video_url, caption, metadata)),
    )

    embed_text = None
    if caption or summary or transcription:
        embed_text = build_video_embedding_text(
            caption=caption,
            summary=summary,
            transcription=transcription,
            metadata=metadata,
        )

    tags, embedding = await asyncio.gather(
        _guarded("tags", video_id, extract_tags(summary)) if summary else _skipped(),
        _guarded("embedding", video_id, generate_embedding(embed_text)) if embed_text else _skipped(),
    )
    return Enrichment(
        transcription=transcription or None,
        summary=summary or None,
        tags=tags or None,
        embedding=embedding,
    )


async def create_video(
    db: AsyncSession,
    user_id: str,
    video_url: str,
    caption: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
    video_size: Optional[int] = None,
) -> Video:
    """Persist a video with a zeroed analytics row, then attach whatever enrichment succeeds."""
    video_url = (video_url or "").strip()
    if not video_url:
        raise ValidationError("video_url is required")
    caption = (caption or "").strip() or None
    if caption and len(caption) > MAX_CAPTION_CHARS:
        raise ValidationError(f"caption must be at most {MAX_CAPTION_CHARS} characters")
    metadata = _clean_metadata(metadata)

    try:
        if await db.get(User, user_id) is None:
            raise NotFoundError("Complete onboarding before uploading videos")

        video = Video(
            id=uuid.uuid4(),
            user_id=user_id,
            video_url=video_url,
            video_size=video_size,
            caption=caption,
            meta=metadata,
        )
        db.add(video)
        db.add(VideoAnalytics(video_id=video.id))
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ValidationError("A video with this URL already exists") from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        log.error("video_create_failed: user_id=%s err=%s", user_id, exc)
        raise PersistenceError("Failed to save video") from exc

    log.info("video_created: id=%s user_id=%s", video.id, user_id)
    stored = {column: getattr(video, column) for column in _STORED_COLUMNS}

    enrichment = await enrich_video(video.id, video_url, caption, metadata)
    video.transcription = enrichment.transcription
    video.summary = enrichment.summary
    video.tags = enrichment.tags
    video.embedding = enrichment.embedding
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        # The video itself is stored; it just stays unenriched
        await db.rollback()
        log.error("video_enrich_persist_failed: id=%s err=%s", stored["id"], exc)
        return Video(**stored)

    log.info(
        "video_enriched: id=%s transcription=%s summary=%s tags=%d embedding=%s",
        video.id,
        video.transcription is not None,
        video.summary is not None,
        len(video.tags or []),
        video.embedding is not None,
    )
    return video


async def get_video(db: AsyncSession, video_id: uuid.UUID) -> Video:
    try:
        video = await db.get(Video, video_id)
    except SQLAlchemyError as exc:
        raise PersistenceError("Failed to load video") from exc
    if video is None:
        raise NotFoundError("Video not found")
    return video


async def list_recent_videos(db: AsyncSession, limit: int) -> List[Video]:
    """Newest videos first; ties broken by id."""
    if limit <= 0:
        return []
    try:
        rows = await db.execute(
            select(Video).order_by(Video.created_at.desc(), Video.id).limit(limit)
        )
    except SQLAlchemyError as exc:
        log.error("videos_list_recent_failed: %s", exc)
        raise PersistenceError("Failed to list videos") from exc
    return list(rows.scalars().all())


async def list_user_videos(
    db: AsyncSession, user_id: str, limit: int = 20, offset: int = 0
) -> List[Video]:
    try:
        rows = await db.execute(
            select(Video)
            .where(Video.user_id == user_id)
            .order_by(Video.created_at.desc(), Video.id)
            .limit(limit)
            .offset(max(0, offset))
        )
    except SQLAlchemyError as exc:
        raise PersistenceError("Failed to list videos") from exc
    return list(rows.scalars().all())


async def delete_video(db: AsyncSession, user_id: str, video_id: uuid.UUID) -> bool:
    """Delete an owned video with its interactions, comments and analytics.

    Rows go in one transaction; the stored blob is removed afterwards. Returns
    whether the blob was removed.
    """
    video = await get_video(db, video_id)
    if video.user_id != user_id:
        raise ForbiddenError("Only the owner can delete this video")

    video_url = video.video_url
    try:
        await db.execute(delete(Interaction).where(Interaction.video_id == video_id))
        await db.execute(delete(Comment).where(Comment.video_id == video_id))
        await db.execute(delete(VideoAnalytics).where(VideoAnalytics.video_id == video_id))
        await db.delete(video)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        log.error("video_delete_failed: id=%s err=%s", video_id, exc)
        raise PersistenceError("Failed to delete video") from exc

    blob_deleted = await asyncio.to_thread(storage.delete_by_url, video_url)
    log.info("video_deleted: id=%s blob_deleted=%s", video_id, blob_deleted)
    return blob_deleted


@dataclass
class Uploader:
    username: Optional[str] = None
    avatar_url: Optional[str] = None


async def load_uploaders(db: AsyncSession, user_ids: Iterable[str]) -> Dict[str, Uploader]:
    """Username and avatar for each uploader, fetched in one query."""
    ids = set(user_ids)
    if not ids:
        return {}
    try:
        rows = await db.execute(
            select(User.id, User.username, User.avatar_url).where(User.id.in_(ids))
        )
    except SQLAlchemyError as exc:
        log.error("videos_load_uploaders_failed: %s", exc)
        raise PersistenceError("Failed to load uploaders") from exc
    return {row.id: Uploader(row.username, row.avatar_url) for row in rows}


def parse_video_id(value: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except ValueError as exc:
        raise ValidationError("Invalid video_id") from exc
