# apps/api/recommendations.py
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Set
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from errors import PersistenceError
from models import Interaction, User, Video
from videos import list_recent_videos

log = logging.getLogger("recommendations")

SOURCE_INTERACTIONS = "interactions"
SOURCE_PROFILE = "profile"
SOURCE_RECENCY = "recency"


@dataclass
class WeightedInteraction:
    video_id: UUID
    strength: float
    embedding: List[float]


@dataclass
class RankCandidate:
    video_id: UUID
    embedding: Optional[List[float]]
    created_at: Optional[datetime]


@dataclass
class ScoredCandidate:
    video_id: UUID
    similarity: float
    created_at: Optional[datetime]


@dataclass
class RecommendationResult:
    videos: List[Video]
    source: str


def _safe_vector(value) -> Optional[List[float]]:
    if not isinstance(value, (list, tuple)) or not value:
        return None
    try:
        return [float(x) for x in value]
    except (TypeError, ValueError):
        return None


def _timestamp(value: Optional[datetime]) -> float:
    if value is None:
        return 0.0
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def cosine_similarity(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    if not vec_a or not vec_b:
        return 0.0
    if len(vec_a) != len(vec_b):
        return 0.0
    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for a, b in zip(vec_a, vec_b):
        dot += a * b
        norm_a += a * a
        norm_b += b * b
    if norm_a <= 0 or norm_b <= 0:
        return 0.0
    return dot / math.sqrt(norm_a * norm_b)


def weighted_centroid(entries: Sequence[WeightedInteraction]) -> Optional[List[float]]:
    """Strength-weighted mean of the entries' embeddings, or None without usable signal."""
    accumulator: Optional[List[float]] = None
    weight_sum = 0.0
    expected_dim: Optional[int] = None

    for entry in entries:
        weight = float(entry.strength or 0.0)
        if weight <= 0:
            continue
        if not entry.embedding:
            continue
        if expected_dim is None:
            expected_dim = len(entry.embedding)
            accumulator = [0.0] * expected_dim
        elif len(entry.embedding) != expected_dim:
            log.debug(
                "recommendations_skip_vector_dim_mismatch video_id=%s expected=%d actual=%d",
                entry.video_id, expected_dim, len(entry.embedding),
            )
            continue

        for idx, value in enumerate(entry.embedding):
            accumulator[idx] += weight * value
        weight_sum += weight

    if not accumulator or weight_sum <= 0:
        return None
    return [value / weight_sum for value in accumulator]


def rank_by_similarity(
    reference: Sequence[float],
    candidates: Sequence[RankCandidate],
    limit: Optional[int] = None,
) -> List[ScoredCandidate]:
    """Order candidates by cosine similarity to ``reference``.

    Candidates without a vector, or with a vector of a different dimension, are
    dropped rather than scored. Equal scores fall back to newest first, then id,
    so the order is stable across requests. ``limit`` applies after sorting.
    """
    scored: List[ScoredCandidate] = []
    for candidate in candidates:
        vector = candidate.embedding
        if not vector:
            continue
        if len(vector) != len(reference):
            log.debug(
                "recommendations_skip_candidate_dim_mismatch video_id=%s", candidate.video_id
            )
            continue
        scored.append(
            ScoredCandidate(
                video_id=candidate.video_id,
                similarity=cosine_similarity(reference, vector),
                created_at=candidate.created_at,
            )
        )

    scored.sort(key=lambda c: (-c.similarity, -_timestamp(c.created_at), str(c.video_id)))
    if limit is not None:
        scored = scored[: max(0, limit)]
    return scored


async def _fetch_video_embeddings(
    db: AsyncSession, video_ids: Sequence[UUID]
) -> Dict[UUID, List[float]]:
    if not video_ids:
        return {}
    rows = await db.execute(
        select(Video.id, Video.embedding).where(
            Video.id.in_(list(video_ids)), Video.embedding.isnot(None)
        )
    )
    embeddings: Dict[UUID, List[float]] = {}
    for video_id, embedding in rows.all():
        vector = _safe_vector(embedding)
        if vector:
            embeddings[video_id] = vector
    return embeddings


async def calculate_user_interaction_embedding(
    db: AsyncSession, user_id: str
) -> Optional[List[float]]:
    """Weighted centroid of the embeddings of every video the user interacted with.

    Returns None when the user has no interactions, or none of them point at a
    video that has an embedding.
    """
    rows = (
        await db.execute(
            select(Interaction.video_id, Interaction.interaction_strength).where(
                Interaction.user_id == user_id
            )
        )
    ).all()
    if not rows:
        return None

    embedding_by_video = await _fetch_video_embeddings(
        db, list({video_id for video_id, _ in rows})
    )
    entries = [
        WeightedInteraction(
            video_id=video_id,
            strength=float(strength or 0),
            embedding=embedding_by_video[video_id],
        )
        for video_id, strength in rows
        if video_id in embedding_by_video
    ]
    if not entries:
        return None
    return weighted_centroid(entries)


async def _interacted_video_ids(db: AsyncSession, user_id: str) -> Set[UUID]:
    rows = await db.execute(
        select(Interaction.video_id).where(Interaction.user_id == user_id).distinct()
    )
    return set(rows.scalars().all())


async def _fetch_profile_embedding(db: AsyncSession, user_id: str) -> Optional[List[float]]:
    embedding = await db.scalar(select(User.embedding).where(User.id == user_id))
    return _safe_vector(embedding)


async def _rank_unseen_videos(
    db: AsyncSession, user_id: str, reference: Sequence[float], limit: int
) -> List[Video]:
    seen = await _interacted_video_ids(db, user_id)
    stmt = select(Video).where(Video.embedding.isnot(None))
    if seen:
        stmt = stmt.where(Video.id.notin_(list(seen)))
    videos = list((await db.execute(stmt)).scalars().all())

    by_id = {v.id: v for v in videos}
    ranked = rank_by_similarity(
        reference,
        [
            RankCandidate(video_id=v.id, embedding=_safe_vector(v.embedding), created_at=v.created_at)
            for v in videos
        ],
        limit=limit,
    )
    if ranked:
        log.debug(
            "recommendations_ranked user_id=%s candidates=%d top=%.4f",
            user_id, len(videos), ranked[0].similarity,
        )
    return [by_id[c.video_id] for c in ranked]


async def get_recommended_videos(
    db: AsyncSession, user_id: str, limit: int = 20
) -> RecommendationResult:
    """Rank videos for a user: interaction taste first, profile interests second, recency last."""
    try:
        reference = await calculate_user_interaction_embedding(db, user_id)
        if reference is not None:
            videos = await _rank_unseen_videos(db, user_id, reference, limit)
            return RecommendationResult(videos=videos, source=SOURCE_INTERACTIONS)

        log.info("recommendations_fallback_profile user_id=%s", user_id)
        reference = await _fetch_profile_embedding(db, user_id)
        if reference is not None:
            videos = await _rank_unseen_videos(db, user_id, reference, limit)
            return RecommendationResult(videos=videos, source=SOURCE_PROFILE)

        log.info("recommendations_fallback_recency user_id=%s", user_id)
        videos = await list_recent_videos(db, limit)
        return RecommendationResult(videos=videos, source=SOURCE_RECENCY)
    except SQLAlchemyError as exc:
        log.error("recommendations_failed user_id=%s: %s", user_id, exc)
        raise PersistenceError("Failed to compute recommendations") from exc
