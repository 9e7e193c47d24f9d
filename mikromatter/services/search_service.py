"""Substring search over users and posts."""
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from mikromatter.models.post import Post
from mikromatter.models.user import User
from mikromatter.schemas.post import PostResponse
from mikromatter.services.post_service import list_posts, posts_query

MIN_QUERY_LENGTH = 2


async def search_users(db: AsyncSession, query: str, limit: int = 20) -> list[User]:
    query = query.strip()
    if len(query) < MIN_QUERY_LENGTH:
        return []
    result = await db.execute(
        select(User)
        .where(
            or_(
                User.first_name.icontains(query, autoescape=True),
                User.last_name.icontains(query, autoescape=True),
                User.email.icontains(query, autoescape=True),
            )
        )
        .order_by(User.first_name, User.id)
        .limit(limit)
    )
    return list(result.scalars().all())


async def search_posts(
    db: AsyncSession,
    query: str,
    viewer_id: str | None = None,
    limit: int = 50,
) -> list[PostResponse]:
    query = query.strip()
    if len(query) < MIN_QUERY_LENGTH:
        return []
    q = posts_query().where(Post.content.icontains(query, autoescape=True))
    return await list_posts(db, q, viewer_id, limit=limit)
