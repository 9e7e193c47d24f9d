from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from mikromatter.api import deps
from mikromatter.models.user import User
from mikromatter.schemas.post import PostResponse
from mikromatter.schemas.user import UserPublic
from mikromatter.services.search_service import search_posts, search_users

router = APIRouter()


@router.get("/users", response_model=list[UserPublic])
async def search_users_endpoint(
    q: str = "",
    limit: int = Query(20, ge=1, le=50),
    db: AsyncSession = Depends(deps.get_db),
):
    """
    Case-insensitive match on first name, last name or email.
    """
    users = await search_users(db, q, limit=limit)
    return [UserPublic.model_validate(u) for u in users]


@router.get("/posts", response_model=list[PostResponse])
async def search_posts_endpoint(
    q: str = "",
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(deps.get_db),
    current_user: User | None = Depends(deps.get_current_user_optional),
):
    viewer_id = current_user.id if current_user else None
    return await search_posts(db, q, viewer_id, limit=limit)
