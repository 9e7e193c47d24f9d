"""End-to-end tests for the HTTP API."""
import json
import time

import httpx
import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from mikromatter.core.security import create_refresh_token
from mikromatter.main import app
from mikromatter.models.bookclub import Bookclub, BookclubMember
from mikromatter.services import bookclub_service
from mikromatter.services.ai_service import TextGenerationClient, get_text_client
from mikromatter.services.broadcast_service import broadcaster, get_broadcaster, hub
from tests.conftest import SlowSocket, add_user, auth_headers

API = "/api/v1"


class RecordingBroadcaster:
    def __init__(self):
        self.events = []

    async def publish(self, event):
        self.events.append(event)


class TestAuth:
    async def test_requires_token(self, client):
        r = await client.get(f"{API}/auth/me")
        assert r.status_code == 401

    async def test_me(self, client, session_maker):
        await add_user(session_maker, "github:1", email="ada@example.com")
        r = await client.get(f"{API}/auth/me", headers=auth_headers("github:1"))
        assert r.status_code == 200
        assert r.json()["email"] == "ada@example.com"

    async def test_token_for_unknown_user(self, client):
        r = await client.get(f"{API}/users/me", headers=auth_headers("github:404"))
        assert r.status_code == 401

    async def test_refresh(self, client, session_maker):
        await add_user(session_maker, "github:1")
        r = await client.post(f"{API}/auth/refresh", json={"refresh_token": create_refresh_token("github:1")})
        assert r.status_code == 200
        assert r.json()["user"]["id"] == "github:1"

    async def test_refresh_rejects_access_token(self, client, session_maker):
        await add_user(session_maker, "github:1")
        headers = auth_headers("github:1")
        access = headers["Authorization"].split()[1]
        r = await client.post(f"{API}/auth/refresh", json={"refresh_token": access})
        assert r.status_code == 401


class TestPostsApi:
    async def test_create_post_indexes_and_broadcasts(self, client, session_maker):
        recorder = RecordingBroadcaster()
        app.dependency_overrides[get_broadcaster] = lambda: recorder
        await add_user(session_maker, "github:1")

        r = await client.post(
            f"{API}/posts",
            json={"content": "Loving #Python and #python today"},
            headers=auth_headers("github:1"),
        )
        assert r.status_code == 201
        post = r.json()
        assert post["word_count"] == 5
        assert post["author"]["id"] == "github:1"

        assert len(recorder.events) == 1
        assert recorder.events[0]["type"] == "new_post"
        assert recorder.events[0]["post"]["id"] == post["id"]

        trending = (await client.get(f"{API}/hashtags/trending")).json()
        assert trending == [{"name": "python", "count": 1}]
        tagged = (await client.get(f"{API}/hashtags/PYTHON/posts")).json()
        assert [p["id"] for p in tagged] == [post["id"]]

    async def test_slow_subscriber_does_not_delay_create(self, client, session_maker, monkeypatch):
        await add_user(session_maker, "github:1")
        monkeypatch.setattr(hub, "send_timeout", 0.5)
        slow = SlowSocket(delay=5)
        await hub.connect(slow)
        try:
            started = time.monotonic()
            r = await client.post(f"{API}/posts", json={"content": "hello"}, headers=auth_headers("github:1"))
            elapsed = time.monotonic() - started
            assert r.status_code == 201
            assert elapsed < 0.5
            await broadcaster.stop()
            assert hub.connection_count == 0
        finally:
            hub.disconnect(slow)

    async def test_create_post_validation(self, client, session_maker):
        await add_user(session_maker, "github:1")
        r = await client.post(f"{API}/posts", json={"content": ""}, headers=auth_headers("github:1"))
        assert r.status_code == 422
        r = await client.post(
            f"{API}/posts",
            json={"content": "word " * 1001},
            headers=auth_headers("github:1"),
        )
        assert r.status_code == 422

    async def test_create_post_requires_auth(self, client):
        r = await client.post(f"{API}/posts", json={"content": "hi"})
        assert r.status_code == 401

    async def test_like_and_repost_toggles(self, client, session_maker):
        await add_user(session_maker, "github:1")
        await add_user(session_maker, "github:2")
        post_id = (
            await client.post(f"{API}/posts", json={"content": "hi"}, headers=auth_headers("github:1"))
        ).json()["id"]
        viewer = auth_headers("github:2")

        for _ in range(2):
            r = await client.post(f"{API}/posts/{post_id}/like", headers=viewer)
        assert r.json()["likes_count"] == 1
        assert r.json()["is_liked"] is True

        r = await client.post(f"{API}/posts/{post_id}/repost", headers=viewer)
        assert r.json()["reposts_count"] == 1

        r = await client.delete(f"{API}/posts/{post_id}/like", headers=viewer)
        assert r.json()["likes_count"] == 0
        assert r.json()["is_liked"] is False
        r = await client.delete(f"{API}/posts/{post_id}/repost", headers=viewer)
        assert r.json()["is_reposted"] is False

    async def test_like_missing_post(self, client, session_maker):
        await add_user(session_maker, "github:1")
        r = await client.post(f"{API}/posts/missing/like", headers=auth_headers("github:1"))
        assert r.status_code == 404

    async def test_delete_permissions(self, client, session_maker):
        await add_user(session_maker, "github:1")
        await add_user(session_maker, "github:2")
        post_id = (
            await client.post(f"{API}/posts", json={"content": "mine"}, headers=auth_headers("github:1"))
        ).json()["id"]

        r = await client.delete(f"{API}/posts/{post_id}", headers=auth_headers("github:2"))
        assert r.status_code == 403
        r = await client.delete(f"{API}/posts/{post_id}", headers=auth_headers("github:1"))
        assert r.status_code == 204
        r = await client.get(f"{API}/posts/{post_id}")
        assert r.status_code == 404
        r = await client.delete(f"{API}/posts/{post_id}", headers=auth_headers("github:1"))
        assert r.status_code == 404

    async def test_comments(self, client, session_maker):
        await add_user(session_maker, "github:1")
        await add_user(session_maker, "github:2")
        post_id = (
            await client.post(f"{API}/posts", json={"content": "talk"}, headers=auth_headers("github:1"))
        ).json()["id"]

        r = await client.post(
            f"{API}/posts/{post_id}/comments", json={"content": "reply"}, headers=auth_headers("github:2")
        )
        assert r.status_code == 201
        comment_id = r.json()["id"]
        assert r.json()["author"]["id"] == "github:2"

        listed = (await client.get(f"{API}/posts/{post_id}/comments")).json()
        assert [c["id"] for c in listed] == [comment_id]
        assert (await client.get(f"{API}/posts/{post_id}")).json()["comments_count"] == 1

        r = await client.delete(f"{API}/posts/{post_id}/comments/{comment_id}", headers=auth_headers("github:1"))
        assert r.status_code == 403
        r = await client.delete(f"{API}/posts/{post_id}/comments/{comment_id}", headers=auth_headers("github:2"))
        assert r.status_code == 204

    async def test_comment_on_missing_post(self, client, session_maker):
        await add_user(session_maker, "github:1")
        r = await client.post(f"{API}/posts/missing/comments", json={"content": "x"}, headers=auth_headers("github:1"))
        assert r.status_code == 404

    async def test_trending_limit_bounds(self, client):
        assert (await client.get(f"{API}/hashtags/trending", params={"limit": 0})).status_code == 422
        assert (await client.get(f"{API}/hashtags/trending", params={"limit": 51})).status_code == 422
        assert (await client.get(f"{API}/hashtags/trending", params={"limit": 50})).status_code == 200


class TestUsersApi:
    async def test_follow_flow_and_stats(self, client, session_maker):
        await add_user(session_maker, "github:1")
        await add_user(session_maker, "github:2")
        follower = auth_headers("github:2")

        assert (await client.post(f"{API}/users/github:1/follow", headers=follower)).status_code == 200
        assert (await client.post(f"{API}/users/github:1/follow", headers=follower)).status_code == 200

        stats = (await client.get(f"{API}/users/github:1", headers=follower)).json()
        assert stats["followers_count"] == 1
        assert stats["is_following"] is True

        for _ in range(2):
            assert (await client.delete(f"{API}/users/github:1/follow", headers=follower)).status_code == 200
        stats = (await client.get(f"{API}/users/github:1")).json()
        assert stats["followers_count"] == 0
        assert stats["is_following"] is False

    async def test_self_follow_and_unknown_target(self, client, session_maker):
        await add_user(session_maker, "github:1")
        headers = auth_headers("github:1")
        assert (await client.post(f"{API}/users/github:1/follow", headers=headers)).status_code == 400
        assert (await client.post(f"{API}/users/github:404/follow", headers=headers)).status_code == 404

    async def test_unknown_user_profile(self, client):
        assert (await client.get(f"{API}/users/github:404")).status_code == 404

    async def test_update_me(self, client, session_maker):
        await add_user(session_maker, "github:1")
        r = await client.patch(f"{API}/users/me", json={"bio": "Reader"}, headers=auth_headers("github:1"))
        assert r.status_code == 200
        assert r.json()["bio"] == "Reader"
        assert r.json()["first_name"] == "Ada"

    async def test_search(self, client, session_maker):
        await add_user(session_maker, "github:1", first_name="Grace")
        r = await client.get(f"{API}/search/users", params={"q": "gra"})
        assert [u["id"] for u in r.json()] == ["github:1"]
        r = await client.get(f"{API}/search/users", params={"q": "g"})
        assert r.json() == []


class TestBookclubsApi:
    FIELDS = {
        "name": "Small Press",
        "description": "Indie fiction",
        "current_book": "The Quiet Orchard",
        "current_author": "M. Vale",
        "author_website": "https://mvale.example.com",
    }

    async def test_bookclub_scenario(self, client, session_maker):
        await add_user(session_maker, "github:1")
        await add_user(session_maker, "github:2")
        creator, reader = auth_headers("github:1"), auth_headers("github:2")

        r = await client.post(f"{API}/bookclubs", json=self.FIELDS, headers=creator)
        assert r.status_code == 201
        club = r.json()
        assert club["members_count"] == 1
        assert club["is_creator"] is True

        assert (await client.post(f"{API}/bookclubs/{club['id']}/join", headers=reader)).json() == {"success": True}
        view = (await client.get(f"{API}/bookclubs/{club['id']}", headers=reader)).json()
        assert (view["members_count"], view["is_member"], view["is_creator"]) == (2, True, False)

        assert (await client.delete(f"{API}/bookclubs/{club['id']}/join", headers=creator)).status_code == 403
        assert (await client.delete(f"{API}/bookclubs/{club['id']}/join", headers=reader)).status_code == 200
        view = (await client.get(f"{API}/bookclubs/{club['id']}")).json()
        assert view["members_count"] == 1

        mine = (await client.get(f"{API}/users/github:1/bookclubs")).json()
        assert [c["id"] for c in mine] == [club["id"]]

        assert (await client.delete(f"{API}/bookclubs/{club['id']}", headers=reader)).status_code == 403
        assert (await client.delete(f"{API}/bookclubs/{club['id']}", headers=creator)).status_code == 204
        assert (await client.get(f"{API}/bookclubs/{club['id']}")).status_code == 404

    async def test_unknown_bookclub(self, client, session_maker):
        await add_user(session_maker, "github:1")
        headers = auth_headers("github:1")
        assert (await client.post(f"{API}/bookclubs/missing/join", headers=headers)).status_code == 404
        assert (await client.delete(f"{API}/bookclubs/missing/join", headers=headers)).status_code == 404

    async def test_failed_membership_insert_rolls_back_bookclub(self, client, session_maker, monkeypatch):
        await add_user(session_maker, "github:1")

        def orphan_membership(**kwargs):
            return BookclubMember(**{**kwargs, "user_id": "github:ghost"})

        monkeypatch.setattr(bookclub_service, "BookclubMember", orphan_membership)
        with pytest.raises(IntegrityError):
            await client.post(f"{API}/bookclubs", json=self.FIELDS, headers=auth_headers("github:1"))

        async with session_maker() as session:
            assert await session.scalar(select(func.count()).select_from(Bookclub)) == 0
            assert await session.scalar(select(func.count()).select_from(BookclubMember)) == 0

    async def test_validation(self, client, session_maker):
        await add_user(session_maker, "github:1")
        r = await client.post(
            f"{API}/bookclubs", json={**self.FIELDS, "name": "x" * 101}, headers=auth_headers("github:1")
        )
        assert r.status_code == 422


class TestUploadsApi:
    async def test_post_image_flow(self, client, session_maker):
        await add_user(session_maker, "github:1")
        await add_user(session_maker, "github:2")
        owner = auth_headers("github:1")

        upload_url = (await client.post(f"{API}/uploads/post-image/upload-url", headers=owner)).json()["upload_url"]
        r = await client.put(upload_url, content=b"\x89PNG fake", headers={"content-type": "image/png"})
        assert r.status_code == 204

        r = await client.post(f"{API}/posts/image/finalize", json={"image_url": upload_url}, headers=auth_headers("github:2"))
        assert r.status_code == 403

        r = await client.post(f"{API}/posts/image/finalize", json={"image_url": upload_url}, headers=owner)
        object_path = r.json()["object_path"]
        assert object_path.startswith("/objects/uploads/")

        r = await client.get(object_path)
        assert r.status_code == 200
        assert r.content == b"\x89PNG fake"
        assert r.headers["content-type"] == "image/png"
        assert r.headers["cache-control"] == "public, max-age=3600"

        r = await client.post(f"{API}/posts", json={"content": "pic", "image_url": object_path}, headers=owner)
        assert r.json()["image_url"] == object_path

    async def test_avatar_flow(self, client, session_maker):
        await add_user(session_maker, "github:1")
        headers = auth_headers("github:1")
        upload_url = (await client.post(f"{API}/uploads/avatar/upload-url", headers=headers)).json()["upload_url"]
        await client.put(upload_url, content=b"jpeg", headers={"content-type": "image/jpeg"})

        r = await client.put(f"{API}/users/me/avatar", json={"avatar_url": upload_url}, headers=headers)
        assert r.status_code == 200
        assert r.json()["profile_image_url"].startswith("/objects/uploads/")

    async def test_avatar_rejects_script_url(self, client, session_maker):
        await add_user(session_maker, "github:1")
        r = await client.put(
            f"{API}/users/me/avatar", json={"avatar_url": "javascript:alert(1)"}, headers=auth_headers("github:1")
        )
        assert r.status_code == 422
        me = (await client.get(f"{API}/users/me", headers=auth_headers("github:1"))).json()
        assert me["profile_image_url"] is None

    async def test_private_object_not_publicly_cacheable(self, client, session_maker, storage):
        await add_user(session_maker, "github:1")
        url = storage.get_upload_url("github:1", "avatar")
        storage.store_upload(url.rsplit("/", 1)[-1], b"jpeg", "image/jpeg")
        path = storage.finalize(url, "github:1", visibility="private")

        assert (await client.get(path)).status_code == 401
        r = await client.get(path, headers=auth_headers("github:1"))
        assert r.status_code == 200
        assert r.headers["cache-control"] == "private, no-store"

    async def test_rejects_bad_content_type(self, client, session_maker):
        await add_user(session_maker, "github:1")
        upload_url = (
            await client.post(f"{API}/uploads/avatar/upload-url", headers=auth_headers("github:1"))
        ).json()["upload_url"]
        r = await client.put(upload_url, content=b"text", headers={"content-type": "text/plain"})
        assert r.status_code == 400

    async def test_missing_object(self, client):
        assert (await client.get("/objects/uploads/" + "0" * 32)).status_code == 404


class TestAiApi:
    def _override(self, payload=None, status_code=200):
        def handler(request):
            body = {"choices": [{"message": {"content": json.dumps(payload or {})}}]}
            return httpx.Response(status_code, json=body)

        client = TextGenerationClient(api_key="k", base_url="https://llm.test/v1", transport=httpx.MockTransport(handler))
        app.dependency_overrides[get_text_client] = lambda: client

    async def test_generate_ideas(self, client, session_maker):
        await add_user(session_maker, "github:1")
        self._override({"ideas": ["a", "b"]})
        r = await client.post(f"{API}/ai/generate-ideas", json={"topic": "tea"}, headers=auth_headers("github:1"))
        assert r.json() == {"ideas": ["a", "b"]}

    async def test_upstream_failure_is_502(self, client, session_maker):
        await add_user(session_maker, "github:1")
        self._override(status_code=503)
        r = await client.post(f"{API}/ai/generate-ideas", json={}, headers=auth_headers("github:1"))
        assert r.status_code == 502

    async def test_proofread_blank_content(self, client, session_maker):
        await add_user(session_maker, "github:1")
        self._override()
        r = await client.post(f"{API}/ai/proofread", json={"content": "  "}, headers=auth_headers("github:1"))
        assert r.status_code == 400

    async def test_proofread(self, client, session_maker):
        await add_user(session_maker, "github:1")
        self._override({"correctedText": "Fixed."})
        r = await client.post(f"{API}/ai/proofread", json={"content": "Fixd."}, headers=auth_headers("github:1"))
        assert r.json() == {"corrected_text": "Fixed.", "suggestions": []}


class TestHealth:
    async def test_health(self, client):
        assert (await client.get("/health")).json() == {"status": "ok"}
