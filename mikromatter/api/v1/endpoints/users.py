"""User profile and social graph endpoints."""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from mikromatter.api.deps import get_current_user, get_current_user_optional, get_db
from mikromatter.core.exceptions import ForbiddenError, NotFoundError, SelfFollowError
from mikromatter.models.user import User
from mikromatter.schemas.bookclub import BookclubResponse
from mikromatter.schemas.post import PostResponse
from mikromatter.schemas.user import AvatarUpdate, UserResponse, UserStatsResponse, UserUpdate
from mikromatter.services import social_service
from mikromatter.services.bookclub_service import list_user_bookclubs
from mikromatter.services.post_service import list_user_posts
from mikromatter.services.storage_service import get_storage
from mikromatter.services.user_service import get_user, update_avatar, update_profile, user_to_response

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    return user_to_response(current_user, include_email=True)


@router.patch("/me", response_model=UserResponse)
async def update_me(
    data: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    user = await update_profile(db, current_user, data)
    await db.commit()
    return user_to_response(user, include_email=True)


@router.put("/me/avatar", response_model=UserResponse)
async def set_avatar(
    data: AvatarUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Finalize an uploaded avatar (public object) and store its path on the profile."""
    try:
        path = get_storage().finalize(data.avatar_url, current_user.id, visibility="public")
    except ForbiddenError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    await update_avatar(db, current_user.id, path)
    await db.commit()
    await db.refresh(current_user)
    return user_to_response(current_user, include_email=True)


@router.get("/{user_id}", response_model=UserStatsResponse)
async def get_user_profile(
    user_id: str,
    current_user: User | None = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_db),
):
    """Profile fields plus post, following and follower counts."""
    viewer_id = current_user.id if current_user else None
    stats = await social_service.get_user_stats(db, user_id, viewer_id)
    if stats is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return stats


@router.get("/{user_id}/posts", response_model=list[PostResponse])
async def get_user_posts(
    user_id: str,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    current_user: User | None = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_db),
):
    viewer_id = current_user.id if current_user else None
    return await list_user_posts(db, user_id, viewer_id, skip=skip, limit=limit)


@router.get("/{user_id}/bookclubs", response_model=list[BookclubResponse])
async def get_user_bookclubs(
    user_id: str,
    current_user: User | None = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_db),
):
    viewer_id = current_user.id if current_user else None
    return await list_user_bookclubs(db, user_id, viewer_id)


@router.post("/{user_id}/follow", response_model=dict)
async def follow_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Follow a user. Idempotent."""
    if not await get_user(db, user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    try:
        await social_service.follow_user(db, current_user.id, user_id)
    except SelfFollowError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    await db.commit()
    return {"follows": True}


@router.delete("/{user_id}/follow", response_model=dict)
async def unfollow_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Unfollow a user. Unfollowing someone you don't follow is a no-op."""
    await social_service.unfollow_user(db, current_user.id, user_id)
    await db.commit()
    return {"follows": False}
