"""Tests for the post accessor."""
from datetime import datetime, timedelta

import pytest
from sqlalchemy import func, select

from mikromatter.core.exceptions import ForbiddenError
from mikromatter.models.comment import Comment
from mikromatter.models.engagement import Like, Repost
from mikromatter.models.hashtag import Hashtag, PostHashtag
from mikromatter.services import post_service
from mikromatter.services.comment_service import create_comment
from tests.conftest import make_post, make_user


async def _rows(db, model, **filters):
    q = select(func.count()).select_from(model)
    for field, value in filters.items():
        q = q.where(getattr(model, field) == value)
    return (await db.execute(q)).scalar()


class TestWordCount:
    @pytest.mark.parametrize(
        "content,expected",
        [
            ("hello world", 2),
            ("  padded   text \n with\tbreaks  ", 4),
            ("one", 1),
            ("   ", 0),
            ("", 0),
        ],
    )
    def test_count_words(self, content, expected):
        assert post_service.count_words(content) == expected

    async def test_word_count_stored_at_creation(self, db):
        author = await make_user(db)
        post = await post_service.create_post(db, author.id, "  three little words ")
        assert post.word_count == 3

    async def test_empty_image_url_stored_as_none(self, db):
        author = await make_user(db)
        post = await post_service.create_post(db, author.id, "pic", image_url="")
        assert post.image_url is None

    async def test_image_url_stored(self, db):
        author = await make_user(db)
        post = await post_service.create_post(db, author.id, "pic", image_url="/objects/uploads/abc")
        assert post.image_url == "/objects/uploads/abc"


class TestPostView:
    async def test_get_post_view_missing(self, db):
        assert await post_service.get_post_view(db, "nope") is None

    async def test_view_counts_and_flags(self, db):
        author = await make_user(db, "github:1")
        viewer = await make_user(db, "github:2", first_name="Bo")
        post = await make_post(db, author, "counted")
        await post_service.like_post(db, viewer.id, post.id)
        await post_service.like_post(db, author.id, post.id)
        await post_service.repost_post(db, viewer.id, post.id)
        await create_comment(db, viewer.id, post.id, "nice")

        view = await post_service.get_post_view(db, post.id, viewer.id)
        assert view.likes_count == 2
        assert view.reposts_count == 1
        assert view.comments_count == 1
        assert view.is_liked is True
        assert view.is_reposted is True
        assert view.author.id == author.id
        assert view.author.first_name == "Ada"

    async def test_anonymous_viewer_flags_false(self, db):
        author = await make_user(db)
        post = await make_post(db, author)
        await post_service.like_post(db, author.id, post.id)
        view = await post_service.get_post_view(db, post.id)
        assert view.likes_count == 1
        assert view.is_liked is False
        assert view.is_reposted is False

    async def test_list_views_match_single_view(self, db):
        author = await make_user(db, "github:1")
        viewer = await make_user(db, "github:2")
        first = await make_post(db, author, "first")
        second = await make_post(db, author, "second")
        await post_service.like_post(db, viewer.id, second.id)

        listed = {v.id: v for v in await post_service.list_all_posts(db, viewer.id)}
        for post in (first, second):
            single = await post_service.get_post_view(db, post.id, viewer.id)
            assert listed[post.id] == single

    async def test_list_newest_first(self, db):
        author = await make_user(db)
        old = await make_post(db, author, "old")
        new = await make_post(db, author, "new")
        old.created_at = datetime.utcnow() - timedelta(hours=1)
        new.created_at = datetime.utcnow()
        await db.flush()
        views = await post_service.list_all_posts(db)
        assert [v.id for v in views] == [new.id, old.id]

    async def test_list_user_posts_filters_author(self, db):
        a = await make_user(db, "github:1")
        b = await make_user(db, "github:2")
        await make_post(db, a, "by a")
        await make_post(db, b, "by b")
        views = await post_service.list_user_posts(db, a.id)
        assert [v.content for v in views] == ["by a"]


class TestToggles:
    async def test_double_like_leaves_one_row(self, db):
        user = await make_user(db)
        post = await make_post(db, user)
        assert await post_service.like_post(db, user.id, post.id) is True
        assert await post_service.like_post(db, user.id, post.id) is False
        assert await _rows(db, Like, post_id=post.id) == 1

    async def test_unlike_never_liked_is_noop(self, db):
        user = await make_user(db)
        post = await make_post(db, user)
        assert await post_service.unlike_post(db, user.id, post.id) is False
        assert await _rows(db, Like, post_id=post.id) == 0

    async def test_like_then_unlike(self, db):
        user = await make_user(db)
        post = await make_post(db, user)
        await post_service.like_post(db, user.id, post.id)
        assert await post_service.unlike_post(db, user.id, post.id) is True
        assert await _rows(db, Like, post_id=post.id) == 0

    async def test_repost_idempotent(self, db):
        user = await make_user(db)
        post = await make_post(db, user)
        await post_service.repost_post(db, user.id, post.id)
        await post_service.repost_post(db, user.id, post.id)
        assert await _rows(db, Repost, post_id=post.id) == 1
        await post_service.unrepost_post(db, user.id, post.id)
        await post_service.unrepost_post(db, user.id, post.id)
        assert await _rows(db, Repost, post_id=post.id) == 0


class TestDeletePost:
    async def test_delete_cascades_but_keeps_hashtags(self, db):
        author = await make_user(db, "github:1")
        other = await make_user(db, "github:2")
        post = await make_post(db, author, "going away #gone")
        await post_service.like_post(db, other.id, post.id)
        await post_service.repost_post(db, other.id, post.id)
        await create_comment(db, other.id, post.id, "bye")

        assert await post_service.delete_post(db, post.id, author.id) is True

        assert await post_service.get_post(db, post.id) is None
        assert await _rows(db, Like, post_id=post.id) == 0
        assert await _rows(db, Repost, post_id=post.id) == 0
        assert await _rows(db, Comment, post_id=post.id) == 0
        assert await _rows(db, PostHashtag, post_id=post.id) == 0
        assert await _rows(db, Hashtag, name="gone") == 1

    async def test_delete_missing_returns_false(self, db):
        assert await post_service.delete_post(db, "missing") is False

    async def test_only_author_can_delete(self, db):
        author = await make_user(db, "github:1")
        other = await make_user(db, "github:2")
        post = await make_post(db, author)
        with pytest.raises(ForbiddenError):
            await post_service.delete_post(db, post.id, other.id)
        assert await post_service.get_post(db, post.id) is not None
