"""Trending hashtags and posts by tag."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from mikromatter.api.deps import get_current_user_optional, get_db
from mikromatter.models.user import User
from mikromatter.schemas.hashtag import TrendingHashtag
from mikromatter.schemas.post import PostResponse
from mikromatter.services.hashtag_service import get_posts_by_tag, get_trending

router = APIRouter(prefix="/hashtags", tags=["hashtags"])


@router.get("/trending", response_model=list[TrendingHashtag])
async def trending(
    limit: int = Query(10, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
):
    return await get_trending(db, limit=limit)


@router.get("/{name}/posts", response_model=list[PostResponse])
async def posts_by_tag(
    name: str,
    current_user: User | None = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_db),
):
    """Posts linked to ``name`` (case-insensitive, leading '#' optional). Unknown tags give []."""
    viewer_id = current_user.id if current_user else None
    return await get_posts_by_tag(db, name, viewer_id)
