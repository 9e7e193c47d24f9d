"""Posts, engagement toggles and comments."""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from mikromatter.api.deps import get_current_user, get_current_user_optional, get_db
from mikromatter.core.exceptions import ForbiddenError, NotFoundError
from mikromatter.models.user import User
from mikromatter.schemas.comment import CommentCreate, CommentResponse
from mikromatter.schemas.post import ImageFinalize, PostCreate, PostResponse
from mikromatter.schemas.upload import ObjectPathResponse
from mikromatter.services import comment_service, post_service
from mikromatter.services.broadcast_service import Broadcaster, get_broadcaster
from mikromatter.services.hashtag_service import index_post
from mikromatter.services.storage_service import get_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["posts"])


async def _require_post(db: AsyncSession, post_id: str) -> None:
    if not await post_service.get_post(db, post_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")


@router.post("/image/finalize", response_model=ObjectPathResponse)
async def finalize_post_image(
    data: ImageFinalize,
    current_user: User = Depends(get_current_user),
):
    """Turn an uploaded post image into a public object path to pass as ``image_url``."""
    try:
        path = get_storage().finalize(data.image_url, current_user.id, visibility="public")
    except ForbiddenError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return ObjectPathResponse(object_path=path)


@router.get("", response_model=list[PostResponse])
async def list_posts(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    current_user: User | None = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_db),
):
    viewer_id = current_user.id if current_user else None
    return await post_service.list_all_posts(db, viewer_id, skip=skip, limit=limit)


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    data: PostCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    post = await post_service.create_post(db, current_user.id, data.content, data.image_url)
    await index_post(db, post.id, post.content)
    await db.commit()
    view = await post_service.get_post_view(db, post.id, current_user.id)
    logger.info("Post %s created by %s", post.id, current_user.id)
    await broadcaster.publish({"type": "new_post", "post": view.model_dump(mode="json")})
    return view


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: str,
    current_user: User | None = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_db),
):
    viewer_id = current_user.id if current_user else None
    view = await post_service.get_post_view(db, post_id, viewer_id)
    if not view:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    return view


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(
    post_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        deleted = await post_service.delete_post(db, post_id, current_user.id)
    except ForbiddenError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    await db.commit()
    return None


@router.post("/{post_id}/like", response_model=PostResponse)
async def like_post(
    post_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await _require_post(db, post_id)
    await post_service.like_post(db, current_user.id, post_id)
    await db.commit()
    return await post_service.get_post_view(db, post_id, current_user.id)


@router.delete("/{post_id}/like", response_model=PostResponse)
async def unlike_post(
    post_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await _require_post(db, post_id)
    await post_service.unlike_post(db, current_user.id, post_id)
    await db.commit()
    return await post_service.get_post_view(db, post_id, current_user.id)


@router.post("/{post_id}/repost", response_model=PostResponse)
async def repost_post(
    post_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await _require_post(db, post_id)
    await post_service.repost_post(db, current_user.id, post_id)
    await db.commit()
    return await post_service.get_post_view(db, post_id, current_user.id)


@router.delete("/{post_id}/repost", response_model=PostResponse)
async def unrepost_post(
    post_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await _require_post(db, post_id)
    await post_service.unrepost_post(db, current_user.id, post_id)
    await db.commit()
    return await post_service.get_post_view(db, post_id, current_user.id)


@router.get("/{post_id}/comments", response_model=list[CommentResponse])
async def list_comments(
    post_id: str,
    db: AsyncSession = Depends(get_db),
):
    await _require_post(db, post_id)
    comments = await comment_service.list_post_comments(db, post_id)
    return [comment_service.comment_to_response(c) for c in comments]


@router.post("/{post_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def create_comment(
    post_id: str,
    data: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await _require_post(db, post_id)
    comment = await comment_service.create_comment(db, current_user.id, post_id, data.content)
    await db.commit()
    comment = await comment_service.get_comment(db, comment.id)
    return comment_service.comment_to_response(comment)


@router.delete("/{post_id}/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    post_id: str,
    comment_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    comment = await comment_service.get_comment(db, comment_id)
    if not comment or comment.post_id != post_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")
    try:
        await comment_service.delete_comment(db, comment_id, current_user.id)
    except ForbiddenError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    await db.commit()
    return None
