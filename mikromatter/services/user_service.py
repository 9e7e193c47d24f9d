"""User accessor: OAuth upsert, profile updates and token issuing."""
import logging
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from mikromatter.core.security import create_access_token, create_refresh_token
from mikromatter.db.upsert import upsert_by_key
from mikromatter.models.user import User
from mikromatter.schemas.user import OAuthProfile, UserResponse, UserUpdate

logger = logging.getLogger(__name__)


async def get_user(db: AsyncSession, user_id: str) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def upsert_user(db: AsyncSession, profile: OAuthProfile) -> User:
    """Create the user on first login, otherwise refresh the fields the provider sent."""
    values = profile.model_dump(exclude_unset=True)
    values["id"] = profile.id
    changes = {k: v for k, v in values.items() if k != "id"}
    changes["updated_at"] = datetime.utcnow()
    await upsert_by_key(db, User, ["id"], values, changes)
    result = await db.execute(
        select(User).where(User.id == profile.id).execution_options(populate_existing=True)
    )
    user = result.scalar_one()
    logger.info("Upserted user %s", user.id)
    return user


async def update_profile(db: AsyncSession, user: User, data: UserUpdate) -> User:
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(user, field, value)
    await db.flush()
    await db.refresh(user)
    return user


async def update_avatar(db: AsyncSession, user_id: str, avatar_path: str) -> None:
    await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(profile_image_url=avatar_path, updated_at=datetime.utcnow())
    )


def user_to_response(user: User, include_email: bool = False) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email if include_email else None,
        first_name=user.first_name,
        last_name=user.last_name,
        profile_image_url=user.profile_image_url,
        bio=user.bio,
        location=user.location,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


def create_tokens_for_user(user: User) -> tuple[str, str]:
    return create_access_token(user.id), create_refresh_token(user.id)
