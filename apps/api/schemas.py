# apps/api/schemas.py
from pydantic import BaseModel, Field
from typing import Dict, Any, List, Optional
from datetime import datetime


class Ok(BaseModel):
    ok: bool


class ErrorOut(BaseModel):
    error: str
    retryable: bool = True


class CsrfOut(BaseModel):
    csrf_token: str


# Interactions

class ViewResponse(BaseModel):
    recorded: bool
    message: str = ""


class LikeResponse(BaseModel):
    liked: bool


class BookmarkResponse(BaseModel):
    bookmarked: bool
    message: str = ""


class ShareResponse(BaseModel):
    success: bool
    message: str = ""


class CommentRequest(BaseModel):
    content: str = Field(..., max_length=2200)


class CommentOut(BaseModel):
    id: str
    user_id: str
    video_id: str
    content: str
    total_likes: int = 0
    created_at: datetime


class CommentResponse(BaseModel):
    success: bool
    comment: Optional[CommentOut] = None


class ViewDurationRequest(BaseModel):
    duration: float = Field(..., ge=0)
    percentage: float = Field(..., ge=0, le=100)


class InteractionOut(BaseModel):
    id: str
    interaction_type: str
    interaction_strength: int
    view_duration: Optional[float] = None
    watch_percentage: Optional[float] = None
    created_at: datetime


class UserVideoInteractions(BaseModel):
    liked: bool
    bookmarked: bool
    viewed: bool
    items: List[InteractionOut]


class AnalyticsOut(BaseModel):
    views: int
    likes: int
    comments: int
    shares: int
    bookmarks: int


# Videos

class CreateVideoRequest(BaseModel):
    video_url: str
    caption: Optional[str] = None
    categories: List[str] = []
    location: Optional[str] = None
    video_size: Optional[int] = None


class VideoOut(BaseModel):
    id: str
    user_id: str
    username: Optional[str] = None
    avatar_url: Optional[str] = None
    video_url: str
    caption: Optional[str] = None
    summary: Optional[str] = None
    tags: List[str] = []
    metadata: Optional[Dict[str, Any]] = None
    has_transcription: bool = False
    has_embedding: bool = False
    created_at: datetime


class PaginatedVideos(BaseModel):
    items: List[VideoOut]
    next_offset: Optional[int] = None


class HomeFeedResponse(BaseModel):
    items: List[VideoOut]
    source: str


class UploadResponse(BaseModel):
    video_url: str
    size_bytes: int
    content_type: str


# Users

class OnboardingRequest(BaseModel):
    username: str
    interests: List[str]
    email: Optional[str] = None
    full_name: Optional[str] = None
    bio: Optional[str] = None


class InterestsRequest(BaseModel):
    interests: List[str]


class UserOut(BaseModel):
    id: str
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    interests: List[str] = []
    has_embedding: bool = False
    created_at: datetime
