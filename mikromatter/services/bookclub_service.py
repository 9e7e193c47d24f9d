"""Bookclub accessor: lifecycle, membership and the bookclub-with-details view.

Membership per (user, bookclub) moves NonMember -> Member on join and back on
leave. The creator holds a ``creator`` row from creation until the bookclub is
deleted and cannot leave.
"""
import logging

from sqlalchemy import Select, delete, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from mikromatter.core.exceptions import CreatorCannotLeaveError, ForbiddenError, NotFoundError
from mikromatter.db.upsert import insert_if_absent
from mikromatter.models.bookclub import ROLE_CREATOR, ROLE_MEMBER, Bookclub, BookclubMember
from mikromatter.schemas.bookclub import BookclubCreate, BookclubResponse
from mikromatter.schemas.user import UserPublic

logger = logging.getLogger(__name__)


def bookclubs_query() -> Select:
    return (
        select(Bookclub)
        .options(selectinload(Bookclub.creator))
        .order_by(desc(Bookclub.created_at), desc(Bookclub.id))
        .execution_options(populate_existing=True)
    )


async def get_bookclub(db: AsyncSession, bookclub_id: str) -> Bookclub | None:
    result = await db.execute(select(Bookclub).where(Bookclub.id == bookclub_id))
    return result.scalar_one_or_none()


async def create_bookclub(db: AsyncSession, creator_id: str, data: BookclubCreate) -> Bookclub:
    """Insert the bookclub and the creator's membership in the caller's transaction.

    Both rows are flushed before returning; if either write fails the exception
    propagates and the session rollback discards both.
    """
    bookclub = Bookclub(creator_id=creator_id, **data.model_dump())
    db.add(bookclub)
    await db.flush()
    db.add(BookclubMember(bookclub_id=bookclub.id, user_id=creator_id, role=ROLE_CREATOR))
    await db.flush()
    await db.refresh(bookclub)
    logger.info("Bookclub %s created by %s", bookclub.id, creator_id)
    return bookclub


async def join_bookclub(db: AsyncSession, user_id: str, bookclub_id: str) -> bool:
    """Insert-if-absent with role ``member``. Returns True if the user was not a member before."""
    return await insert_if_absent(db, BookclubMember, bookclub_id=bookclub_id, user_id=user_id, role=ROLE_MEMBER)


async def leave_bookclub(db: AsyncSession, user_id: str, bookclub_id: str) -> bool:
    """Delete-if-present. The creator cannot leave; they delete the bookclub instead."""
    bookclub = await get_bookclub(db, bookclub_id)
    if not bookclub:
        raise NotFoundError("Bookclub not found")
    if bookclub.creator_id == user_id:
        raise CreatorCannotLeaveError("Creators cannot leave their own bookclub. Delete it instead.")
    result = await db.execute(
        delete(BookclubMember).where(
            BookclubMember.bookclub_id == bookclub_id,
            BookclubMember.user_id == user_id,
        )
    )
    return (result.rowcount or 0) > 0


async def delete_bookclub(db: AsyncSession, bookclub_id: str, actor_id: str | None = None) -> bool:
    bookclub = await get_bookclub(db, bookclub_id)
    if not bookclub:
        return False
    if actor_id is not None and bookclub.creator_id != actor_id:
        raise ForbiddenError("Only the creator can delete this bookclub")
    await db.execute(delete(Bookclub).where(Bookclub.id == bookclub_id))
    db.expunge(bookclub)
    logger.info("Bookclub %s deleted", bookclub_id)
    return True


async def build_bookclub_views(
    db: AsyncSession,
    bookclubs: list[Bookclub],
    viewer_id: str | None = None,
) -> list[BookclubResponse]:
    if not bookclubs:
        return []
    ids = [b.id for b in bookclubs]
    result = await db.execute(
        select(BookclubMember.bookclub_id, func.count())
        .where(BookclubMember.bookclub_id.in_(ids))
        .group_by(BookclubMember.bookclub_id)
    )
    member_counts = {bookclub_id: count for bookclub_id, count in result.all()}
    member_of: set[str] = set()
    if viewer_id:
        result = await db.execute(
            select(BookclubMember.bookclub_id).where(
                BookclubMember.user_id == viewer_id,
                BookclubMember.bookclub_id.in_(ids),
            )
        )
        member_of = {row[0] for row in result.all()}
    return [
        bookclub_to_response(
            b,
            members_count=member_counts.get(b.id, 0),
            is_member=b.id in member_of,
            is_creator=viewer_id is not None and viewer_id == b.creator_id,
        )
        for b in bookclubs
    ]


async def get_bookclub_view(db: AsyncSession, bookclub_id: str, viewer_id: str | None = None) -> BookclubResponse | None:
    result = await db.execute(bookclubs_query().where(Bookclub.id == bookclub_id))
    bookclub = result.scalar_one_or_none()
    if not bookclub:
        return None
    views = await build_bookclub_views(db, [bookclub], viewer_id)
    return views[0]


async def list_bookclubs(db: AsyncSession, viewer_id: str | None = None) -> list[BookclubResponse]:
    result = await db.execute(bookclubs_query())
    return await build_bookclub_views(db, list(result.scalars().all()), viewer_id)


async def list_user_bookclubs(db: AsyncSession, user_id: str, viewer_id: str | None = None) -> list[BookclubResponse]:
    """Bookclubs ``user_id`` belongs to (as creator or member)."""
    memberships = select(BookclubMember.bookclub_id).where(BookclubMember.user_id == user_id)
    result = await db.execute(bookclubs_query().where(Bookclub.id.in_(memberships)))
    return await build_bookclub_views(db, list(result.scalars().all()), viewer_id)


def bookclub_to_response(
    bookclub: Bookclub,
    members_count: int = 0,
    is_member: bool = False,
    is_creator: bool = False,
) -> BookclubResponse:
    creator = bookclub.creator
    return BookclubResponse(
        id=bookclub.id,
        name=bookclub.name,
        description=bookclub.description,
        creator_id=bookclub.creator_id,
        current_book=bookclub.current_book,
        current_author=bookclub.current_author,
        author_website=bookclub.author_website,
        book_cover_url=bookclub.book_cover_url,
        created_at=bookclub.created_at,
        creator=UserPublic.model_validate(creator) if creator else None,
        members_count=members_count,
        is_member=is_member,
        is_creator=is_creator,
    )
