"""initial schema: users, videos, interactions, comments, analytics

Revision ID: 4c7e2a9d1f03
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '4c7e2a9d1f03'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=255), nullable=False),
        sa.Column('username', sa.String(length=30), nullable=False),
        sa.Column('email', sa.String(length=320), nullable=True),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('avatar_url', sa.Text(), nullable=True),
        sa.Column('metadata', postgresql.JSONB(), nullable=True),
        sa.Column('embedding', postgresql.JSONB(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_users')),
        sa.UniqueConstraint('username', name=op.f('uq_users_username')),
        sa.UniqueConstraint('email', name=op.f('uq_users_email')),
    )

    op.create_table(
        'videos',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=False),
        sa.Column('video_url', sa.Text(), nullable=False),
        sa.Column('video_size', sa.BigInteger(), nullable=True),
        sa.Column('caption', sa.Text(), nullable=True),
        sa.Column('transcription', sa.Text(), nullable=True),
        sa.Column('summary', sa.Text(), nullable=True),
        sa.Column('tags', postgresql.JSONB(), nullable=True),
        sa.Column('metadata', postgresql.JSONB(), nullable=True),
        sa.Column('embedding', postgresql.JSONB(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('fk_videos_user_id_users'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_videos')),
        sa.UniqueConstraint('video_url', name=op.f('uq_videos_video_url')),
    )
    op.create_index('ix_videos_created_at', 'videos', ['created_at'])
    op.create_index('ix_videos_user_id_created_at', 'videos', ['user_id', 'created_at'])

    op.create_table(
        'video_interactions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=False),
        sa.Column('video_id', sa.Uuid(), nullable=False),
        sa.Column('interaction_type', sa.String(length=30), nullable=False),
        sa.Column('interaction_strength', sa.Integer(), nullable=False),
        sa.Column('view_duration', sa.Float(), nullable=True),
        sa.Column('watch_percentage', sa.Float(), nullable=True),
        sa.Column('metadata', postgresql.JSONB(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('fk_video_interactions_user_id_users'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['video_id'], ['videos.id'], name=op.f('fk_video_interactions_video_id_videos'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_video_interactions')),
    )
    op.create_index('ix_video_interactions_user_id', 'video_interactions', ['user_id'])
    op.create_index('ix_video_interactions_video_type', 'video_interactions', ['video_id', 'interaction_type'])
    op.create_index(
        'uq_video_interactions_once',
        'video_interactions',
        ['user_id', 'video_id', 'interaction_type'],
        unique=True,
        postgresql_where=sa.text("interaction_type IN ('view', 'like', 'bookmark')"),
    )

    op.create_table(
        'comments',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=False),
        sa.Column('video_id', sa.Uuid(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('total_likes', sa.BigInteger(), server_default='0', nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('fk_comments_user_id_users'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['video_id'], ['videos.id'], name=op.f('fk_comments_video_id_videos'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_comments')),
    )
    op.create_index('ix_comments_video_id_created_at', 'comments', ['video_id', 'created_at'])

    op.create_table(
        'video_analytics',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('video_id', sa.Uuid(), nullable=False),
        sa.Column('total_views', sa.BigInteger(), server_default='0', nullable=False),
        sa.Column('total_likes', sa.BigInteger(), server_default='0', nullable=False),
        sa.Column('total_comments', sa.BigInteger(), server_default='0', nullable=False),
        sa.Column('total_shares', sa.BigInteger(), server_default='0', nullable=False),
        sa.Column('total_bookmarks', sa.BigInteger(), server_default='0', nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['video_id'], ['videos.id'], name=op.f('fk_video_analytics_video_id_videos'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_video_analytics')),
        sa.UniqueConstraint('video_id', name=op.f('uq_video_analytics_video_id')),
    )


def downgrade() -> None:
    op.drop_table('video_analytics')
    op.drop_index('ix_comments_video_id_created_at', table_name='comments')
    op.drop_table('comments')
    op.drop_index('uq_video_interactions_once', table_name='video_interactions')
    op.drop_index('ix_video_interactions_video_type', table_name='video_interactions')
    op.drop_index('ix_video_interactions_user_id', table_name='video_interactions')
    op.drop_table('video_interactions')
    op.drop_index('ix_videos_user_id_created_at', table_name='videos')
    op.drop_index('ix_videos_created_at', table_name='videos')
    op.drop_table('videos')
    op.drop_table('users')
