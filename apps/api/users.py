# apps/api/users.py
from __future__ import annotations

import asyncio
import logging
import re
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config import CATEGORIES, settings
from embedding_utils import build_interest_text, generate_embedding
from errors import NotFoundError, PersistenceError, ValidationError
from models import User

log = logging.getLogger("users")

USERNAME_RE = re.compile(r"^[A-Za-z0-9_.]{3,30}$")


def normalize_username(username: str) -> str:
    username = (username or "").strip()
    if not USERNAME_RE.match(username):
        raise ValidationError(
            "Username must be 3-30 characters of letters, digits, '_' or '.'"
        )
    return username


def normalize_interests(interests: Sequence[str]) -> List[str]:
    cleaned = list(dict.fromkeys(i.strip() for i in (interests or []) if i and i.strip()))
    if not cleaned:
        raise ValidationError("Select at least one interest")
    unknown = [i for i in cleaned if i not in CATEGORIES]
    if unknown:
        raise ValidationError(f"Unknown interests: {', '.join(unknown)}")
    return cleaned


async def _interest_embedding(user_id: str, interests: Sequence[str]) -> Optional[List[float]]:
    """Profile embedding for the interests; None when the provider fails."""
    try:
        return await asyncio.wait_for(
            generate_embedding(build_interest_text(interests)),
            timeout=settings.ai_call_timeout_seconds,
        )
    except asyncio.TimeoutError:
        log.warning("user_embedding_timeout: user_id=%s", user_id)
    except Exception as exc:
        log.warning("user_embedding_failed: user_id=%s err=%s", user_id, exc)
    return None


async def get_user(db: AsyncSession, user_id: str) -> User:
    try:
        user = await db.get(User, user_id)
    except SQLAlchemyError as exc:
        raise PersistenceError("Failed to load user") from exc
    if user is None:
        raise NotFoundError("User not found")
    return user


async def _save(db: AsyncSession, user: User, action: str) -> User:
    try:
        db.add(user)
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ValidationError("Username or email already taken") from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        log.error("user_%s_failed: user_id=%s err=%s", action, user.id, exc)
        raise PersistenceError("Failed to save user profile") from exc
    return user


async def complete_onboarding(
    db: AsyncSession,
    user_id: str,
    *,
    username: str,
    interests: Sequence[str],
    email: Optional[str] = None,
    full_name: Optional[str] = None,
    bio: Optional[str] = None,
) -> User:
    """Create (or refresh) the profile row for an authenticated identity.

    The interests become the profile embedding used by the recommendation
    fallback. An embedding failure still saves the profile, without a vector.
    """
    username = normalize_username(username)
    interests = normalize_interests(interests)

    try:
        taken = await db.scalar(
            select(User.id).where(User.username == username, User.id != user_id)
        )
        user = await db.get(User, user_id)
    except SQLAlchemyError as exc:
        raise PersistenceError("Failed to load user") from exc
    if taken is not None:
        raise ValidationError("Username already taken")

    embedding = await _interest_embedding(user_id, interests)

    if user is None:
        user = User(id=user_id)
    user.username = username
    user.email = (email or "").strip().lower() or user.email
    user.full_name = (full_name or "").strip() or user.full_name
    user.bio = (bio or "").strip() or user.bio
    user.meta = {**(user.meta or {}), "interests": interests}
    user.embedding = embedding

    await _save(db, user, "onboarding")
    log.info(
        "user_onboarded: user_id=%s interests=%d embedding=%s",
        user_id, len(interests), embedding is not None,
    )
    return user


async def update_user_interests(db: AsyncSession, user_id: str, interests: Sequence[str]) -> User:
    interests = normalize_interests(interests)
    user = await get_user(db, user_id)
    user.meta = {**(user.meta or {}), "interests": interests}
    user.embedding = await _interest_embedding(user_id, interests)
    await _save(db, user, "interests")
    log.info("user_interests_updated: user_id=%s interests=%d", user_id, len(interests))
    return user
