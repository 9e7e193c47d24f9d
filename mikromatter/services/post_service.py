"""Post accessor: CRUD, likes/reposts and the post-with-author-and-counts view."""
from sqlalchemy import Select, delete, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from mikromatter.core.exceptions import ForbiddenError
from mikromatter.db.upsert import insert_if_absent
from mikromatter.models.comment import Comment
from mikromatter.models.engagement import Like, Repost
from mikromatter.models.post import Post
from mikromatter.schemas.post import PostResponse
from mikromatter.schemas.user import UserPublic


def count_words(content: str) -> int:
    return len(content.split())


def posts_query() -> Select:
    """Base select for posts with their author, newest first."""
    return (
        select(Post)
        .options(selectinload(Post.author))
        .order_by(desc(Post.created_at), desc(Post.id))
        .execution_options(populate_existing=True)
    )


async def create_post(db: AsyncSession, author_id: str, content: str, image_url: str | None = None) -> Post:
    post = Post(
        user_id=author_id,
        content=content,
        image_url=image_url or None,
        word_count=count_words(content),
    )
    db.add(post)
    await db.flush()
    await db.refresh(post)
    return post


async def get_post(db: AsyncSession, post_id: str) -> Post | None:
    result = await db.execute(select(Post).where(Post.id == post_id))
    return result.scalar_one_or_none()


async def delete_post(db: AsyncSession, post_id: str, actor_id: str | None = None) -> bool:
    """Hard-delete a post. Likes, reposts, comments and hashtag links go with it (ON DELETE CASCADE).

    When ``actor_id`` is given only the author may delete; anyone else gets ForbiddenError.
    """
    post = await get_post(db, post_id)
    if not post:
        return False
    if actor_id is not None and post.user_id != actor_id:
        raise ForbiddenError("Only the author can delete this post")
    await db.execute(delete(Post).where(Post.id == post_id))
    db.expunge(post)
    return True


async def _count_by_post(db: AsyncSession, model, post_ids: list[str]) -> dict[str, int]:
    result = await db.execute(
        select(model.post_id, func.count())
        .where(model.post_id.in_(post_ids))
        .group_by(model.post_id)
    )
    return {post_id: count for post_id, count in result.all()}


async def _viewer_post_ids(db: AsyncSession, model, user_id: str, post_ids: list[str]) -> set[str]:
    result = await db.execute(
        select(model.post_id).where(
            model.user_id == user_id,
            model.post_id.in_(post_ids),
        )
    )
    return {row[0] for row in result.all()}


async def get_user_liked_post_ids(db: AsyncSession, user_id: str, post_ids: list[str]) -> set[str]:
    """Return set of post IDs that the user has liked."""
    if not post_ids:
        return set()
    return await _viewer_post_ids(db, Like, user_id, post_ids)


async def get_user_reposted_post_ids(db: AsyncSession, user_id: str, post_ids: list[str]) -> set[str]:
    """Return set of post IDs that the user has reposted."""
    if not post_ids:
        return set()
    return await _viewer_post_ids(db, Repost, user_id, post_ids)


async def build_post_views(db: AsyncSession, posts: list[Post], viewer_id: str | None = None) -> list[PostResponse]:
    """Resolve counts and viewer flags for a page of posts.

    Uses one grouped query per aggregate for the whole page instead of a round
    trip per post. Posts must have ``author`` loaded (see ``posts_query``).
    """
    if not posts:
        return []
    post_ids = [p.id for p in posts]
    likes = await _count_by_post(db, Like, post_ids)
    reposts = await _count_by_post(db, Repost, post_ids)
    comments = await _count_by_post(db, Comment, post_ids)
    liked_ids = await get_user_liked_post_ids(db, viewer_id, post_ids) if viewer_id else set()
    reposted_ids = await get_user_reposted_post_ids(db, viewer_id, post_ids) if viewer_id else set()
    return [
        post_to_response(
            p,
            likes_count=likes.get(p.id, 0),
            reposts_count=reposts.get(p.id, 0),
            comments_count=comments.get(p.id, 0),
            is_liked=p.id in liked_ids,
            is_reposted=p.id in reposted_ids,
        )
        for p in posts
    ]


async def get_post_view(db: AsyncSession, post_id: str, viewer_id: str | None = None) -> PostResponse | None:
    result = await db.execute(posts_query().where(Post.id == post_id))
    post = result.scalar_one_or_none()
    if not post:
        return None
    views = await build_post_views(db, [post], viewer_id)
    return views[0]


async def list_posts(
    db: AsyncSession,
    query: Select,
    viewer_id: str | None = None,
    skip: int = 0,
    limit: int | None = None,
) -> list[PostResponse]:
    if skip:
        query = query.offset(skip)
    if limit is not None:
        query = query.limit(limit)
    result = await db.execute(query)
    posts = list(result.scalars().all())
    return await build_post_views(db, posts, viewer_id)


async def list_all_posts(
    db: AsyncSession,
    viewer_id: str | None = None,
    skip: int = 0,
    limit: int | None = None,
) -> list[PostResponse]:
    return await list_posts(db, posts_query(), viewer_id, skip=skip, limit=limit)


async def list_user_posts(
    db: AsyncSession,
    author_id: str,
    viewer_id: str | None = None,
    skip: int = 0,
    limit: int | None = None,
) -> list[PostResponse]:
    q = posts_query().where(Post.user_id == author_id)
    return await list_posts(db, q, viewer_id, skip=skip, limit=limit)


async def like_post(db: AsyncSession, user_id: str, post_id: str) -> bool:
    """Insert-if-absent. Returns True if a new like was stored."""
    return await insert_if_absent(db, Like, user_id=user_id, post_id=post_id)


async def unlike_post(db: AsyncSession, user_id: str, post_id: str) -> bool:
    """Delete-if-present. Returns True if a like was removed."""
    result = await db.execute(delete(Like).where(Like.user_id == user_id, Like.post_id == post_id))
    return (result.rowcount or 0) > 0


async def repost_post(db: AsyncSession, user_id: str, post_id: str) -> bool:
    return await insert_if_absent(db, Repost, user_id=user_id, post_id=post_id)


async def unrepost_post(db: AsyncSession, user_id: str, post_id: str) -> bool:
    result = await db.execute(delete(Repost).where(Repost.user_id == user_id, Repost.post_id == post_id))
    return (result.rowcount or 0) > 0


def post_to_response(
    post: Post,
    likes_count: int = 0,
    reposts_count: int = 0,
    comments_count: int = 0,
    is_liked: bool = False,
    is_reposted: bool = False,
) -> PostResponse:
    author = post.author
    return PostResponse(
        id=post.id,
        user_id=post.user_id,
        content=post.content,
        image_url=post.image_url,
        word_count=post.word_count,
        created_at=post.created_at,
        author=UserPublic.model_validate(author) if author else None,
        likes_count=likes_count,
        reposts_count=reposts_count,
        comments_count=comments_count,
        is_liked=is_liked,
        is_reposted=is_reposted,
    )
