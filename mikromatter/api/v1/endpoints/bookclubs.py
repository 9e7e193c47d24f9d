"""Bookclub endpoints."""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from mikromatter.api.deps import get_current_user, get_current_user_optional, get_db
from mikromatter.core.exceptions import ForbiddenError, NotFoundError
from mikromatter.models.user import User
from mikromatter.schemas.bookclub import BookclubCreate, BookclubResponse
from mikromatter.services import bookclub_service

router = APIRouter(prefix="/bookclubs", tags=["bookclubs"])


@router.get("", response_model=list[BookclubResponse])
async def list_bookclubs(
    current_user: User | None = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_db),
):
    viewer_id = current_user.id if current_user else None
    return await bookclub_service.list_bookclubs(db, viewer_id)


@router.post("", response_model=BookclubResponse, status_code=status.HTTP_201_CREATED)
async def create_bookclub(
    data: BookclubCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    bookclub = await bookclub_service.create_bookclub(db, current_user.id, data)
    await db.commit()
    return await bookclub_service.get_bookclub_view(db, bookclub.id, current_user.id)


@router.get("/{bookclub_id}", response_model=BookclubResponse)
async def get_bookclub(
    bookclub_id: str,
    current_user: User | None = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_db),
):
    viewer_id = current_user.id if current_user else None
    view = await bookclub_service.get_bookclub_view(db, bookclub_id, viewer_id)
    if not view:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Bookclub not found")
    return view


@router.post("/{bookclub_id}/join", response_model=dict)
async def join_bookclub(
    bookclub_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Join a bookclub. Joining twice is a no-op."""
    if not await bookclub_service.get_bookclub(db, bookclub_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Bookclub not found")
    await bookclub_service.join_bookclub(db, current_user.id, bookclub_id)
    await db.commit()
    return {"success": True}


@router.delete("/{bookclub_id}/join", response_model=dict)
async def leave_bookclub(
    bookclub_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        await bookclub_service.leave_bookclub(db, current_user.id, bookclub_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ForbiddenError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    await db.commit()
    return {"success": True}


@router.delete("/{bookclub_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_bookclub(
    bookclub_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        deleted = await bookclub_service.delete_bookclub(db, bookclub_id, current_user.id)
    except ForbiddenError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Bookclub not found")
    await db.commit()
    return None
