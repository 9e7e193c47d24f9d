"""Social graph accessor: follow/unfollow and per-user stats."""
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mikromatter.core.exceptions import SelfFollowError
from mikromatter.db.upsert import insert_if_absent
from mikromatter.models.engagement import Follow
from mikromatter.models.post import Post
from mikromatter.models.user import User
from mikromatter.schemas.user import UserStatsResponse


async def follow_user(db: AsyncSession, follower_id: str, following_id: str) -> bool:
    """Insert-if-absent. Returns True if a new edge was stored."""
    if follower_id == following_id:
        raise SelfFollowError("Cannot follow yourself")
    return await insert_if_absent(db, Follow, follower_id=follower_id, following_id=following_id)


async def unfollow_user(db: AsyncSession, follower_id: str, following_id: str) -> bool:
    result = await db.execute(
        delete(Follow).where(
            Follow.follower_id == follower_id,
            Follow.following_id == following_id,
        )
    )
    return (result.rowcount or 0) > 0


async def is_following(db: AsyncSession, follower_id: str, following_id: str) -> bool:
    result = await db.execute(
        select(Follow).where(
            Follow.follower_id == follower_id,
            Follow.following_id == following_id,
        )
    )
    return result.scalar_one_or_none() is not None


async def _count(db: AsyncSession, column, value: str) -> int:
    result = await db.execute(select(func.count()).where(column == value))
    return result.scalar() or 0


async def get_user_stats(db: AsyncSession, user_id: str, viewer_id: str | None = None) -> UserStatsResponse | None:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        return None
    posts_count = await _count(db, Post.user_id, user_id)
    following_count = await _count(db, Follow.follower_id, user_id)
    followers_count = await _count(db, Follow.following_id, user_id)
    following = False
    if viewer_id and viewer_id != user_id:
        following = await is_following(db, viewer_id, user_id)
    return UserStatsResponse(
        id=user.id,
        first_name=user.first_name,
        last_name=user.last_name,
        profile_image_url=user.profile_image_url,
        bio=user.bio,
        location=user.location,
        created_at=user.created_at,
        posts_count=posts_count,
        following_count=following_count,
        followers_count=followers_count,
        is_following=following,
    )
