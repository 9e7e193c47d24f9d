"""Comment business logic."""
from sqlalchemy import delete, desc, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from mikromatter.core.exceptions import ForbiddenError
from mikromatter.models.comment import Comment
from mikromatter.schemas.comment import CommentResponse
from mikromatter.schemas.user import UserPublic


async def create_comment(db: AsyncSession, user_id: str, post_id: str, content: str) -> Comment:
    comment = Comment(user_id=user_id, post_id=post_id, content=content)
    db.add(comment)
    await db.flush()
    await db.refresh(comment)
    return comment


async def get_comment(db: AsyncSession, comment_id: str) -> Comment | None:
    result = await db.execute(
        select(Comment)
        .where(Comment.id == comment_id)
        .options(selectinload(Comment.author))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_post_comments(db: AsyncSession, post_id: str) -> list[Comment]:
    result = await db.execute(
        select(Comment)
        .where(Comment.post_id == post_id)
        .order_by(desc(Comment.created_at), desc(Comment.id))
        .options(selectinload(Comment.author))
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def delete_comment(db: AsyncSession, comment_id: str, actor_id: str) -> bool:
    comment = await get_comment(db, comment_id)
    if not comment:
        return False
    if comment.user_id != actor_id:
        raise ForbiddenError("Only the author can delete this comment")
    await db.execute(delete(Comment).where(Comment.id == comment_id))
    db.expunge(comment)
    return True


def comment_to_response(comment: Comment) -> CommentResponse:
    author = comment.author
    return CommentResponse(
        id=comment.id,
        user_id=comment.user_id,
        post_id=comment.post_id,
        content=comment.content,
        created_at=comment.created_at,
        author=UserPublic.model_validate(author) if author else None,
    )
