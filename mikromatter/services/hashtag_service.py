"""Hashtag indexer: extracts tags from post text, links them, and serves trending/lookup queries.

Tags are keyed by their literal lowercase string. There is no stemming, merging
or fuzzy matching: ``#Book`` and ``#books`` are different tags.
"""
import logging
import re

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mikromatter.db.upsert import insert_if_absent
from mikromatter.models.hashtag import Hashtag, PostHashtag
from mikromatter.models.post import Post
from mikromatter.schemas.hashtag import TrendingHashtag
from mikromatter.schemas.post import PostResponse
from mikromatter.services.post_service import list_posts, posts_query

logger = logging.getLogger(__name__)

# '#' immediately followed by letters, digits or underscore
HASHTAG_RE = re.compile(r"#(\w+)", re.ASCII)


def normalize_tag(name: str) -> str:
    return name.strip().lstrip("#").lower()


def extract_hashtags(content: str) -> list[str]:
    """Unique lowercase tag names in order of first appearance."""
    seen: dict[str, None] = {}
    for match in HASHTAG_RE.findall(content or ""):
        seen.setdefault(match.lower(), None)
    return list(seen)


async def get_hashtag(db: AsyncSession, name: str) -> Hashtag | None:
    result = await db.execute(select(Hashtag).where(Hashtag.name == normalize_tag(name)))
    return result.scalar_one_or_none()


async def index_post(db: AsyncSession, post_id: str, content: str) -> list[str]:
    """Link a post to every hashtag in its content, creating dictionary rows as needed."""
    names = extract_hashtags(content)
    for name in names:
        await insert_if_absent(db, Hashtag, name=name)
        # Insert may have been a no-op on conflict; read back whichever row holds the name
        hashtag = await get_hashtag(db, name)
        await insert_if_absent(db, PostHashtag, post_id=post_id, hashtag_id=hashtag.id)
    if names:
        logger.debug("Indexed post %s with hashtags %s", post_id, names)
    return names


async def get_trending(db: AsyncSession, limit: int = 10) -> list[TrendingHashtag]:
    """Most-linked hashtags first; ties broken by name. Tags with no links are left out."""
    link_count = func.count(PostHashtag.post_id)
    result = await db.execute(
        select(Hashtag.name, link_count)
        .join(PostHashtag, PostHashtag.hashtag_id == Hashtag.id)
        .group_by(Hashtag.id, Hashtag.name)
        .having(link_count > 0)
        .order_by(desc(link_count), Hashtag.name)
        .limit(limit)
    )
    return [TrendingHashtag(name=name, count=count) for name, count in result.all()]


async def get_posts_by_tag(db: AsyncSession, name: str, viewer_id: str | None = None) -> list[PostResponse]:
    hashtag = await get_hashtag(db, name)
    if not hashtag:
        return []
    q = posts_query().join(PostHashtag, PostHashtag.post_id == Post.id).where(PostHashtag.hashtag_id == hashtag.id)
    return await list_posts(db, q, viewer_id)
