# apps/api/routes_users.py
from typing import List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

import users
from config import CATEGORIES
from csrf import require_csrf
from db import get_db
from models import User
from schemas import InterestsRequest, OnboardingRequest, UserOut
from session import require_user_id

router = APIRouter(prefix="/users", tags=["users"])


def _user_out(u: User) -> UserOut:
    return UserOut(
        id=u.id,
        username=u.username,
        email=u.email,
        full_name=u.full_name,
        bio=u.bio,
        avatar_url=u.avatar_url,
        interests=list((u.meta or {}).get("interests") or []),
        has_embedding=u.embedding is not None,
        created_at=u.created_at,
    )


@router.get("/categories", response_model=List[str])
async def list_categories():
    return list(CATEGORIES)


@router.post("/onboarding", response_model=UserOut)
async def complete_onboarding(
    request: Request,
    body: OnboardingRequest,
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
):
    require_csrf(request)
    u = await users.complete_onboarding(
        db,
        user_id,
        username=body.username,
        interests=body.interests,
        email=body.email,
        full_name=body.full_name,
        bio=body.bio,
    )
    return _user_out(u)


@router.get("/me", response_model=UserOut)
async def me(user_id: str = Depends(require_user_id), db: AsyncSession = Depends(get_db)):
    return _user_out(await users.get_user(db, user_id))


@router.put("/me/interests", response_model=UserOut)
async def update_interests(
    request: Request,
    body: InterestsRequest,
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
):
    require_csrf(request)
    return _user_out(await users.update_user_interests(db, user_id, body.interests))
