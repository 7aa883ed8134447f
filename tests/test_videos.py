"""
Tests for video creation with AI enrichment, listing and owner deletion.
"""
import asyncio
import uuid
from contextlib import ExitStack, contextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError
from urllib3.exceptions import MaxRetryError

import interactions
import videos
from config import settings
from errors import (
    EmbeddingProviderError,
    ForbiddenError,
    NotFoundError,
    SummarizationError,
    TranscriptionError,
    ValidationError,
)
from factories import (
    add_interaction,
    add_user,
    add_video,
    at,
    count_comments,
    count_interactions,
    get_analytics_row,
    load_video,
)

pytestmark = pytest.mark.anyio

URL = "http://localhost:9000/media/raw/creator/clip.mp4"


PROVIDERS = (
    "videos.transcribe_video",
    "videos.summarize_video",
    "videos.extract_tags",
    "videos.generate_embedding",
)


@contextmanager
def _providers(transcription=None, summary=None, tags=None, embedding=None):
    """Patch every AI provider used during enrichment; values may be exceptions."""
    with ExitStack() as stack:
        mocks = []
        for target, value in zip(PROVIDERS, (transcription, summary, tags, embedding)):
            if isinstance(value, BaseException):
                mock = AsyncMock(side_effect=value)
            else:
                mock = AsyncMock(return_value=value)
            mocks.append(stack.enter_context(patch(target, mock)))
        yield mocks


class TestCreateVideo:
    async def test_full_enrichment(self, db, session_factory):
        await add_user(session_factory, "creator")
        with _providers(
            transcription="hello there",
            summary="A cat plays piano.",
            tags=["cats", "music"],
            embedding=[0.1, 0.2, 0.3],
        ) as (_, _, _, embed):
            video = await videos.create_video(
                db, "creator", URL, caption="my cat", metadata={"categories": ["Animals", "Music"]}
            )

        stored = await load_video(session_factory, video.id)
        assert stored.transcription == "hello there"
        assert stored.summary == "A cat plays piano."
        assert stored.tags == ["cats", "music"]
        assert stored.embedding == [0.1, 0.2, 0.3]
        assert stored.meta["categories"] == ["Animals", "Music"]
        embed_text = embed.await_args.args[0]
        assert "my cat" in embed_text and "Animals" in embed_text

        row = await get_analytics_row(session_factory, video.id)
        assert (row.total_views, row.total_likes, row.total_bookmarks) == (0, 0, 0)

    async def test_every_provider_failing_still_creates_video(self, db, session_factory):
        await add_user(session_factory, "creator")
        with _providers(
            transcription=TranscriptionError("down"),
            summary=SummarizationError("down"),
            tags=SummarizationError("down"),
            embedding=EmbeddingProviderError("down"),
        ):
            video = await videos.create_video(db, "creator", URL, caption="still here")

        stored = await load_video(session_factory, video.id)
        assert stored.caption == "still here"
        assert stored.transcription is None
        assert stored.summary is None
        assert stored.tags is None
        assert stored.embedding is None

    async def test_one_failure_leaves_only_that_field_null(self, db, session_factory):
        await add_user(session_factory, "creator")
        with _providers(
            transcription=TranscriptionError("down"),
            summary="A skateboard trick.",
            tags=["skate"],
            embedding=[1.0, 0.0],
        ):
            video = await videos.create_video(db, "creator", URL)

        stored = await load_video(session_factory, video.id)
        assert stored.transcription is None
        assert stored.summary == "A skateboard trick."
        assert stored.tags == ["skate"]
        assert stored.embedding == [1.0, 0.0]

    async def test_wrong_dimension_embedding_is_stored_as_null(self, db, session_factory):
        await add_user(session_factory, "creator")
        with _providers(
            summary="A recipe.",
            tags=["food"],
            embedding=ValidationError("Embedding has 3 dimensions, expected 1536"),
        ):
            video = await videos.create_video(db, "creator", URL, caption="soup")

        stored = await load_video(session_factory, video.id)
        assert stored.summary == "A recipe."
        assert stored.embedding is None

    async def test_slow_provider_times_out_to_null(self, db, session_factory, monkeypatch):
        await add_user(session_factory, "creator")
        monkeypatch.setattr(settings, "ai_call_timeout_seconds", 0.05)

        async def _slow(url):
            await asyncio.sleep(5)
            return "never"

        with _providers(summary="Quick summary.", tags=[], embedding=[1.0]):
            with patch("videos.transcribe_video", _slow):
                video = await videos.create_video(db, "creator", URL)

        stored = await load_video(session_factory, video.id)
        assert stored.transcription is None
        assert stored.summary == "Quick summary."

    async def test_no_summary_skips_tags(self, db, session_factory):
        await add_user(session_factory, "creator")
        with _providers(summary=SummarizationError("down"), embedding=[1.0]) as (_, _, tags, _):
            await videos.create_video(db, "creator", URL, caption="caption only")
        tags.assert_not_awaited()

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"video_url": "   "},
            {"caption": "x" * 2201},
            {"metadata": {"categories": ["Not A Category"]}},
        ],
    )
    async def test_invalid_input(self, db, session_factory, kwargs):
        await add_user(session_factory, "creator")
        args = {"video_url": URL, **kwargs}
        with pytest.raises(ValidationError):
            await videos.create_video(db, "creator", **args)

    async def test_requires_profile(self, db):
        with pytest.raises(NotFoundError):
            await videos.create_video(db, "ghost", URL)


    async def test_enrichment_persist_failure_returns_unenriched_video(self, db, session_factory):
        await add_user(session_factory, "creator")
        real_commit = db.commit
        commits = []

        async def commit_then_fail():
            commits.append(1)
            if len(commits) > 1:
                raise OperationalError("UPDATE videos", {}, Exception("connection lost"))
            await real_commit()

        with _providers(summary="A cat.", embedding=[1.0, 0.0]):
            with patch.object(db, "commit", commit_then_fail):
                video = await videos.create_video(db, "creator", URL, caption="cat")

        assert video.caption == "cat"
        assert video.summary is None
        assert video.embedding is None
        stored = await load_video(session_factory, video.id)
        assert stored is not None
        assert stored.summary is None


class TestListing:
    async def test_recent_newest_first(self, db, session_factory):
        await add_user(session_factory, "creator")
        ids = [await add_video(session_factory, "creator", created_at=at(i)) for i in range(4)]
        recent = await videos.list_recent_videos(db, 3)
        assert [v.id for v in recent] == [ids[3], ids[2], ids[1]]

    async def test_user_videos_only_own(self, db, session_factory):
        await add_user(session_factory, "a")
        await add_user(session_factory, "b")
        mine = await add_video(session_factory, "a")
        await add_video(session_factory, "b")
        assert [v.id for v in await videos.list_user_videos(db, "a")] == [mine]

    async def test_get_unknown(self, db):
        with pytest.raises(NotFoundError):
            await videos.get_video(db, uuid.uuid4())

    async def test_load_uploaders(self, db, session_factory):
        await add_user(session_factory, "a", avatar_url="http://cdn/a.png")
        await add_user(session_factory, "b")

        uploaders = await videos.load_uploaders(db, ["a", "b", "a", "ghost"])

        assert uploaders == {
            "a": videos.Uploader("a", "http://cdn/a.png"),
            "b": videos.Uploader("b", None),
        }
        assert await videos.load_uploaders(db, []) == {}


class TestDeleteVideo:
    async def test_owner_delete_cascades(self, db, session_factory):
        await add_user(session_factory, "creator")
        await add_user(session_factory, "fan")
        vid = await add_video(session_factory, "creator")
        await add_interaction(session_factory, "fan", vid, "like")
        await interactions.add_comment(db, "fan", vid, "great")

        with patch("videos.storage.delete_by_url", return_value=True) as blob_delete:
            assert await videos.delete_video(db, "creator", vid) is True

        blob_delete.assert_called_once()
        assert await load_video(session_factory, vid) is None
        assert await count_interactions(session_factory, vid) == 0
        assert await count_comments(session_factory, vid) == 0
        assert await get_analytics_row(session_factory, vid) is None

    async def test_non_owner_forbidden(self, db, session_factory):
        await add_user(session_factory, "creator")
        await add_user(session_factory, "fan")
        vid = await add_video(session_factory, "creator")

        with patch("videos.storage.delete_by_url") as blob_delete:
            with pytest.raises(ForbiddenError):
                await videos.delete_video(db, "fan", vid)

        blob_delete.assert_not_called()
        assert await load_video(session_factory, vid) is not None

    async def test_unreachable_storage_still_deletes_rows(self, db, session_factory):
        await add_user(session_factory, "creator")
        vid = await add_video(session_factory, "creator")
        minio = MagicMock()
        minio.remove_object.side_effect = MaxRetryError(None, "/media", "connection refused")

        with patch("storage.client", return_value=minio):
            assert await videos.delete_video(db, "creator", vid) is False

        minio.remove_object.assert_called_once()
        assert await load_video(session_factory, vid) is None
