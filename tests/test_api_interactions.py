"""
Tests for /interactions endpoints.
"""
import asyncio
import uuid
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from errors import PersistenceError
from factories import add_user, add_video, get_analytics_row
from main import app


@pytest.fixture
def video_id(session_factory):
    asyncio.run(add_user(session_factory, "creator"))
    asyncio.run(add_user(session_factory, "viewer"))
    return asyncio.run(add_video(session_factory, "creator"))


class TestViewEndpoint:
    def test_anonymous_view_is_neutral(self, client, video_id):
        """Unauthenticated view tracking degrades instead of failing."""
        response = client.post(f"/interactions/{video_id}/view")
        assert response.status_code == 200
        assert response.json()["recorded"] is False

    def test_view_recorded_once(self, client, login, session_factory, video_id):
        login("viewer")
        first = client.post(f"/interactions/{video_id}/view")
        second = client.post(f"/interactions/{video_id}/view")

        assert first.json()["recorded"] is True
        assert second.json() == {"recorded": False, "message": "View already recorded"}
        assert asyncio.run(get_analytics_row(session_factory, video_id)).total_views == 1

    def test_persistence_failure_is_soft(self, client, login, video_id):
        login("viewer")
        with patch("interactions.record_view", AsyncMock(side_effect=PersistenceError("db down"))):
            response = client.post(f"/interactions/{video_id}/view")
        assert response.status_code == 200
        assert response.json() == {"recorded": False, "message": "db down"}

    def test_duration_without_view_is_404(self, client, login, video_id):
        login("viewer")
        response = client.put(
            f"/interactions/{video_id}/view", json={"duration": 3.0, "percentage": 50.0}
        )
        assert response.status_code == 404
        assert response.json() == {"error": "No view record found"}

    def test_duration_after_view(self, client, login, video_id):
        login("viewer")
        client.post(f"/interactions/{video_id}/view")
        response = client.put(
            f"/interactions/{video_id}/view", json={"duration": 3.0, "percentage": 50.0}
        )
        assert response.json() == {"ok": True}


class TestLikeEndpoint:
    def test_like_requires_auth(self, client, video_id):
        response = client.post(f"/interactions/{video_id}/like")
        assert response.status_code == 401
        assert response.json() == {"error": "Not authenticated"}

    def test_like_toggles(self, client, login, session_factory, video_id):
        login("viewer")
        assert client.post(f"/interactions/{video_id}/like").json() == {"liked": True}
        assert client.post(f"/interactions/{video_id}/like").json() == {"liked": False}
        assert asyncio.run(get_analytics_row(session_factory, video_id)).total_likes == 0

    def test_like_failure_propagates(self, client, login, video_id):
        login("viewer")
        with patch("interactions.toggle_like", AsyncMock(side_effect=PersistenceError("Failed to toggle like"))):
            response = client.post(f"/interactions/{video_id}/like")
        assert response.status_code == 503
        assert response.json() == {"error": "Failed to toggle like"}

    def test_invalid_video_id(self, client, login):
        login("viewer")
        response = client.post("/interactions/not-a-uuid/like")
        assert response.status_code == 400

    def test_unknown_video(self, client, login, video_id):
        login("viewer")
        response = client.post(f"/interactions/{uuid.uuid4()}/like")
        assert response.status_code == 404

    def test_csrf_required(self, client, login, video_id):
        login("viewer")
        bare = TestClient(app)
        response = bare.post(f"/interactions/{video_id}/like")
        assert response.status_code == 403
        assert response.json() == {"error": "CSRF token missing"}


class TestBookmarkShareComment:
    def test_bookmark_soft_fails_on_missing_video(self, client, login, video_id):
        login("viewer")
        response = client.post(f"/interactions/{uuid.uuid4()}/bookmark")
        assert response.status_code == 200
        assert response.json()["bookmarked"] is False

    def test_bookmark_and_state(self, client, login, video_id):
        login("viewer")
        assert client.post(f"/interactions/{video_id}/bookmark").json()["bookmarked"] is True
        client.post(f"/interactions/{video_id}/like")

        state = client.get(f"/interactions/{video_id}").json()
        assert state["liked"] is True
        assert state["bookmarked"] is True
        assert state["viewed"] is False
        assert len(state["items"]) == 2

    def test_share(self, client, login, video_id):
        login("viewer")
        response = client.post(f"/interactions/{video_id}/share")
        assert response.json() == {"success": True, "message": "Share recorded"}

    def test_anonymous_share_is_neutral(self, client, video_id):
        assert client.post(f"/interactions/{video_id}/share").json()["success"] is False

    def test_comment(self, client, login, video_id):
        login("viewer")
        response = client.post(f"/interactions/{video_id}/comments", json={"content": "wow"})
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["comment"]["content"] == "wow"

    def test_empty_comment_is_400(self, client, login, video_id):
        login("viewer")
        response = client.post(f"/interactions/{video_id}/comments", json={"content": "  "})
        assert response.status_code == 400
        assert "error" in response.json()

    def test_analytics(self, client, login, video_id):
        login("viewer")
        client.post(f"/interactions/{video_id}/view")
        client.post(f"/interactions/{video_id}/share")
        client.post(f"/interactions/{video_id}/comments", json={"content": "hi"})

        response = client.get(f"/videos/{video_id}/analytics")
        assert response.json() == {"views": 1, "likes": 0, "comments": 1, "shares": 1, "bookmarks": 0}
