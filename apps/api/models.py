# apps/api/models.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    BigInteger,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base

# Naming convention helps Alembic autogenerate predictable constraint names
naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}
metadata = MetaData(naming_convention=naming_convention)
Base = declarative_base(metadata=metadata)

# JSONB on PostgreSQL, plain JSON elsewhere
JSONType = JSON(none_as_null=True).with_variant(JSONB(none_as_null=True), "postgresql")

TOGGLE_ONCE_TYPES = "interaction_type IN ('view', 'like', 'bookmark')"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    # Identity provider's user id
    id = Column(String(255), primary_key=True, nullable=False)
    username = Column(String(30), unique=True, nullable=False)
    email = Column(String(320), unique=True, nullable=True)
    full_name = Column(String(255), nullable=True)
    bio = Column(Text, nullable=True)
    avatar_url = Column(Text, nullable=True)
    meta = Column("metadata", JSONType, nullable=True)  # {"interests": [...]}
    embedding = Column(JSONType, nullable=True)

    created_at = Column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
        nullable=False,
    )


class Video(Base):
    __tablename__ = "videos"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, nullable=False)
    user_id = Column(
        String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    video_url = Column(Text, nullable=False, unique=True)
    video_size = Column(BigInteger, nullable=True)
    caption = Column(Text, nullable=True)
    transcription = Column(Text, nullable=True)
    summary = Column(Text, nullable=True)
    tags = Column(JSONType, nullable=True)
    meta = Column("metadata", JSONType, nullable=True)  # categories, location, original name
    embedding = Column(JSONType, nullable=True)

    created_at = Column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
        nullable=False,
    )

    __table_args__ = (
        Index("ix_videos_created_at", "created_at"),
        Index("ix_videos_user_id_created_at", "user_id", "created_at"),
    )


class Interaction(Base):
    __tablename__ = "video_interactions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, nullable=False)
    user_id = Column(
        String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    video_id = Column(
        Uuid, ForeignKey("videos.id", ondelete="CASCADE"), nullable=False
    )
    interaction_type = Column(String(30), nullable=False)  # view|like|share|bookmark|comment
    interaction_strength = Column(Integer, nullable=False)
    view_duration = Column(Float, nullable=True)  # seconds
    watch_percentage = Column(Float, nullable=True)
    meta = Column("metadata", JSONType, nullable=True)

    created_at = Column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
        nullable=False,
    )

    __table_args__ = (
        Index("ix_video_interactions_user_id", "user_id"),
        Index("ix_video_interactions_video_type", "video_id", "interaction_type"),
        # Shares and comments repeat; views, likes and bookmarks do not
        Index(
            "uq_video_interactions_once",
            "user_id",
            "video_id",
            "interaction_type",
            unique=True,
            postgresql_where=text(TOGGLE_ONCE_TYPES),
            sqlite_where=text(TOGGLE_ONCE_TYPES),
        ),
    )


class Comment(Base):
    __tablename__ = "comments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, nullable=False)
    user_id = Column(
        String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    video_id = Column(
        Uuid, ForeignKey("videos.id", ondelete="CASCADE"), nullable=False
    )
    content = Column(Text, nullable=False)
    total_likes = Column(BigInteger, nullable=False, default=0, server_default="0")

    created_at = Column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
        nullable=False,
    )

    __table_args__ = (Index("ix_comments_video_id_created_at", "video_id", "created_at"),)


class VideoAnalytics(Base):
    __tablename__ = "video_analytics"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, nullable=False)
    video_id = Column(
        Uuid, ForeignKey("videos.id", ondelete="CASCADE"), nullable=False
    )
    total_views = Column(BigInteger, nullable=False, default=0, server_default="0")
    total_likes = Column(BigInteger, nullable=False, default=0, server_default="0")
    total_comments = Column(BigInteger, nullable=False, default=0, server_default="0")
    total_shares = Column(BigInteger, nullable=False, default=0, server_default="0")
    total_bookmarks = Column(BigInteger, nullable=False, default=0, server_default="0")

    created_at = Column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
        nullable=False,
    )

    __table_args__ = (UniqueConstraint("video_id"),)
